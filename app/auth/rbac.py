from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole

_ROLE_LABELS = {
    UserRole.TEACHER: "teachers",
    UserRole.GUARDIAN: "guardians",
    UserRole.STUDENT: "students",
}


def require_role(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Example:
        current_user: CurrentUser = Depends(require_role(UserRole.TEACHER))
    """
    allowed = " or ".join(_ROLE_LABELS[r] for r in roles)

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {allowed} can perform this action",
            )
        return current_user

    return _checker


require_teacher = require_role(UserRole.TEACHER)
require_guardian = require_role(UserRole.GUARDIAN)
require_student = require_role(UserRole.STUDENT)
