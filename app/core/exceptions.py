from typing import Any, Dict, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code = "error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """Malformed or missing input, or an actor with the wrong role for the target."""

    code = "validation"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class NotFoundError(ServiceError):
    code = "not_found"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class ForbiddenError(ServiceError):
    code = "forbidden"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class ConflictError(ServiceError):
    """Operation would break an invariant. details lets the client offer a corrective action."""

    code = "conflict"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, details)


class AuthenticationError(ServiceError):
    """Bad credentials or an unusable token."""

    code = "unauthorized"

    def __init__(self, message: str = "Invalid credentials", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class CapacityError(ServiceError):
    """A hard numeric ceiling (classroom seats, guardians per student) would be exceeded."""

    code = "capacity"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, details)
