import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import AuthResponse, LoginRequest, RegisterRequest, UserInfo
from app.auth.security import build_claims, create_access_token, hash_password, verify_password
from app.core.exceptions import AuthenticationError, ConflictError, ForbiddenError

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _issue_token(user: User, message: str) -> AuthResponse:
    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        build_claims(user.id, user.role, issued_at, name=user.name, email=user.email)
    )
    return AuthResponse(
        message=message,
        access_token=access_token,
        user=UserInfo(id=user.id, name=user.name, email=user.email, role=user.role),
        issued_at=issued_at,
    )


async def register_user(db: AsyncSession, payload: RegisterRequest) -> AuthResponse:
    email = normalize_email(payload.email)
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email is already registered")

    user = User(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Email is already registered") from e
    await db.refresh(user)
    logger.info("Registered %s user %s", user.role, user.id)
    return _issue_token(user, "User registered successfully")


async def login_user(db: AsyncSession, payload: LoginRequest) -> AuthResponse:
    # 1. Find user by email (case-insensitive) or exact display name
    identifier = payload.email.strip()
    stmt = (
        select(User)
        .where(or_(func.lower(User.email) == identifier.lower(), User.name == identifier))
        .order_by(User.created_at)
        .limit(1)
    )
    result = await db.execute(stmt)
    user: Optional[User] = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login attempt for %r", identifier)
        raise AuthenticationError("Invalid credentials")

    # 2. Check user status
    if not user.active:
        raise ForbiddenError("User is inactive")

    logger.info("User %s logged in", user.id)
    return _issue_token(user, "Login successful")
