"""Auth routes: login, refresh, logout, profile.

Route overview:
  POST /login    email + password login
  POST /refresh  exchange a refresh token for new access + refresh tokens
  POST /logout   revoke the current access token
  GET  /me       return the current user profile + permissions
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.auth.deps import get_current_user
from coletaops.auth.jwt import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from coletaops.auth.password import verify_password
from coletaops.auth.permissions import get_permissions
from coletaops.auth.revocation import TokenRevocation
from coletaops.database import get_db
from coletaops.models.user import User
from coletaops.schemas.auth import LoginRequest, RefreshRequest, TokenResponse, UserOut
from coletaops.schemas.common import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _load_user(db: AsyncSession, **criteria) -> User | None:
    stmt = select(User).options(selectinload(User.org)).filter_by(**criteria)
    return (await db.execute(stmt)).scalar_one_or_none()


def _build_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role.value,
        is_active=user.is_active,
        org_id=user.org_id,
        org_name=user.org.name if user.org else None,
        employee_id=user.employee_id,
        permissions=get_permissions(user.role),
    )


def _build_token_response(user: User) -> TokenResponse:
    permissions = get_permissions(user.role)
    return TokenResponse(
        access_token=create_access_token(
            user_id=user.id,
            role=user.role.value,
            org_id=user.org_id,
            permissions=permissions,
        ),
        refresh_token=create_refresh_token(user.id, user.role.value, user.org_id),
        user=_build_user_out(user),
    )


# ── Routes ───────────────────────────────────────────────────

@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await _load_user(db, email=body.email.lower())
    if not user or not verify_password(body.password, user.hashed_password):
        logger.warning("Failed login for %s", body.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account deactivated")
    if user.org and not user.org.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Organization deactivated")

    logger.info("User %s logged in", user.id)
    return ApiResponse(data=_build_token_response(user))


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a valid refresh token for a fresh token pair."""
    payload = decode_token(body.refresh_token)
    if not payload or payload.get("type") != REFRESH_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    user = await _load_user(db, id=payload.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return ApiResponse(data=_build_token_response(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(user: User = Depends(get_current_user)):
    """Blacklist the caller's access token until it expires."""
    payload: dict = getattr(user, "_token_payload", {})
    await TokenRevocation.revoke_token(user._token, float(payload.get("exp", 0)))  # type: ignore[attr-defined]
    logger.info("User %s logged out", user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=ApiResponse[UserOut])
async def me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = await _load_user(db, id=user.id)
    return ApiResponse(data=_build_user_out(profile))
