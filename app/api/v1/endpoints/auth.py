"""Authentication endpoints."""

import structlog
from fastapi import APIRouter, status

from app.dependencies import CacheManagerDep, CurrentUser, DatabaseSession
from app.schemas.auth import LoginRequest, LoginResponse, Token, TokenRefresh, UserResponse
from app.services.auth_service import AuthService

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Staff login",
)
async def login(
    request: LoginRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> LoginResponse:
    """
    Authenticate a staff member and return JWT tokens.

    Raises:
        UnauthorizedException: If the credentials are wrong
    """
    auth_service = AuthService(cache_manager)
    user, tokens = await auth_service.login(db, request.email, request.password)
    logger.info("user_logged_in", user_id=str(user["id"]), role=user["role"])

    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    cache_manager: CacheManagerDep,
) -> Token:
    """Exchange a refresh token for a new token pair."""
    return AuthService(cache_manager).refresh_access_token(request.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Logout and revoke tokens",
)
async def logout(
    request: TokenRefresh,
    cache_manager: CacheManagerDep,
) -> None:
    """Logout user by revoking refresh token."""
    AuthService(cache_manager).revoke_token(request.refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current user profile",
)
async def me(current_user: CurrentUser) -> UserResponse:
    """Get the authenticated staff member's profile."""
    return UserResponse.model_validate(current_user)
