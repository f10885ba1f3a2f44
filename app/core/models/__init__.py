from app.core.models.classroom import Classroom
from app.core.models.enrollment import Enrollment
from app.core.models.game_config import GameConfig
from app.core.models.game_session import GameSession
from app.core.models.guardian_link import GuardianLink
from app.core.models.titanic_word import TitanicWord

__all__ = [
    "Classroom",
    "Enrollment",
    "GameConfig",
    "GameSession",
    "GuardianLink",
    "TitanicWord",
]
