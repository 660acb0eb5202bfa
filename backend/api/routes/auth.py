"""
Authentication API routes.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from core.errors import ConflictError, ForbiddenError, UnauthorizedError
from core.security.password import password_hasher
from core.security.tokens import TokenService
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User, UserStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
    refresh_token_expire_days=settings.jwt_refresh_token_expire_days,
    unsubscribe_token_expire_days=settings.unsubscribe_token_expire_days,
)

# Checked against when the email is unknown so response timing does not
# reveal which accounts exist
_DUMMY_HASH = password_hasher.hash(secrets.token_urlsafe(16))


def _cookie_kwargs() -> dict:
    """SameSite=None; Secure for deployed frontends, Lax for local development."""
    is_local = any(h in settings.frontend_url for h in ("localhost", "127.0.0.1"))
    cross_site = settings.is_production or not is_local
    return dict(
        httponly=True,
        secure=cross_site,
        samesite="none" if cross_site else "lax",
        path="/",
    )


def _token_response(user: User) -> JSONResponse:
    """Return the token pair in the body and as HttpOnly cookies."""
    access_token, refresh_token = token_service.create_token_pair(
        user_id=user.id,
        email=user.email,
        role=user.role,
    )
    response = JSONResponse(
        content={
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.jwt_access_token_expire_minutes * 60,
        }
    )
    kwargs = _cookie_kwargs()
    response.set_cookie(
        "access_token",
        access_token,
        max_age=settings.jwt_access_token_expire_minutes * 60,
        **kwargs,
    )
    response.set_cookie(
        "refresh_token",
        refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * 86400,
        **kwargs,
    )
    return response


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    scheme, _, credentials = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


async def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from a Bearer token, or the ``access_token`` cookie
    that browser clients send instead.
    """
    token = _bearer_token(authorization) or request.cookies.get("access_token")
    if not token:
        raise UnauthorizedError()

    payload = token_service.verify_access_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    user = await db.get(User, payload.sub)
    if user is None:
        raise UnauthorizedError("User not found")

    if not user.is_active:
        raise ForbiddenError("User account is not active")

    return user


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("register"))
async def register(
    request: Request,
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Register a new user account.

    Invited partners register with the invited email and then accept the
    invitation from the link they were sent.
    """
    email = register_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise ConflictError("An account with this email already exists")

    user = User(
        email=email,
        first_name=register_data.first_name,
        last_name=register_data.last_name,
        password_hash=password_hasher.hash(register_data.password),
        status=UserStatus.ACTIVE.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("User registered: %s", user.id, extra={"user_id": user.id})
    return user


@router.post("/login", response_model=TokenResponse)
@limiter.limit(get_rate_limit("login"))
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange email and password for a token pair, in the body and as HttpOnly cookies."""
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    password_ok = password_hasher.verify(
        login_data.password,
        user.password_hash if user else _DUMMY_HASH,
    )
    if not user or not password_ok:
        raise UnauthorizedError("Invalid email or password")

    if user.status == UserStatus.SUSPENDED.value:
        raise ForbiddenError("Account has been suspended")
    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    user.last_login = datetime.now(timezone.utc)
    await db.commit()

    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Issue a new token pair.

    The refresh token is read from the HttpOnly cookie first, then the body.
    """
    refresh_tok = request.cookies.get("refresh_token")
    if not refresh_tok and body is not None:
        refresh_tok = body.refresh_token
    if not refresh_tok:
        raise UnauthorizedError("Refresh token required")

    payload = token_service.verify_refresh_token(refresh_tok)
    if not payload:
        raise UnauthorizedError("Invalid or expired refresh token")

    user = await db.get(User, payload.sub)
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    return current_user


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout():
    """Clear the auth cookies."""
    response = JSONResponse(content={"message": "Logged out"})
    kwargs = _cookie_kwargs()
    response.delete_cookie("access_token", **kwargs)
    response.delete_cookie("refresh_token", **kwargs)
    return response
