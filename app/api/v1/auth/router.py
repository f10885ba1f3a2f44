from fastapi import APIRouter, Depends
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.schemas import AuthResponse, CurrentUser, LoginRequest, RegisterRequest
from app.auth.services import login_user, register_user
from app.db.session import get_db

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    return await register_user(db, payload)


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    return await login_user(db, payload)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await login_user(
        db, LoginRequest(email=form_data.username.strip(), password=form_data.password)
    )
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
    }


@router.get("/me")
async def me(current_user: CurrentUser = Depends(get_current_user)) -> dict:
    return {"success": True, "valid": True, "user": current_user}
