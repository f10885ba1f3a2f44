from enum import Enum


class UserRole(str, Enum):
    TEACHER = "teacher"
    GUARDIAN = "guardian"
    STUDENT = "student"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRANSFERRED = "transferred"


class RelationshipType(str, Enum):
    PADRE = "padre"
    MADRE = "madre"
    REPRESENTANTE = "representante"
    TUTOR = "tutor"
    ABUELO = "abuelo"
    ABUELA = "abuela"
    TIO = "tio"
    TIA = "tia"
    OTRO = "otro"


class GameType(str, Enum):
    ORTOGRAFIA = "ortografia"
    REGLAS = "reglas"
    AHORCADO = "ahorcado"
    TITANIC = "titanic"


class WordDifficulty(int, Enum):
    EASY = 1
    MEDIUM = 2
    HARD = 3
