from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def build_claims(user_id: UUID, role: str, issued_at: datetime, **extra: Any) -> Dict[str, Any]:
    """Claims carried by an access token. The role is informational; requests re-read it from the database."""
    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "user_id": str(user_id),
        "role": role,
        "iat": int(issued_at.timestamp()),
    }
    claims.update(extra)
    return claims


def create_access_token(claims: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """
    Return the user id carried by the token.

    Raises jose.JWTError when the token is malformed, tampered with, expired,
    or has no usable subject.
    """
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("user_id") or payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    try:
        return UUID(subject)
    except ValueError as e:
        raise JWTError("Token subject is not a user id") from e
