"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user        → decode JWT, load user from DB, return User
  get_current_org         → the caller's organization id (claim must match the user row)
  require_permission(...) → restrict to roles that hold a permission
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.jwt import ACCESS_TOKEN, decode_token
from coletaops.auth.permissions import has_permission
from coletaops.auth.revocation import TokenRevocation
from coletaops.database import get_db
from coletaops.middleware.exceptions import PermissionDeniedError, TenantContextError
from coletaops.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user and return it.

    The decoded payload is stashed on the user as `_token_payload` so
    downstream deps can read claims without re-decoding.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != ACCESS_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if await TokenRevocation.is_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    user._token_payload = payload  # type: ignore[attr-defined]
    user._token = token  # type: ignore[attr-defined]
    return user


# ── Organization context ────────────────────────────────────

async def get_current_org(user: User = Depends(get_current_user)) -> str:
    """Return the caller's org id.

    A token whose `org_id` claim disagrees with the stored user (user moved
    or token forged with a valid key) is refused.
    """
    payload: dict = getattr(user, "_token_payload", {})
    if payload.get("org_id") != user.org_id:
        raise TenantContextError("Session organization does not match user")
    return user.org_id


# ── Permission-based access control ─────────────────────────

def require_permission(permission: str):
    """Dependency factory: restrict to users whose role grants `permission`.

    The check reads the static role table, not the JWT claim, so a role
    change applies on the user's next request.

    Usage:
        @router.post("/runs/start")
        async def start(user: User = Depends(require_permission("runs:execute"))):
            ...
    """
    async def _check(
        user: User = Depends(get_current_user),
        _org_id: str = Depends(get_current_org),
    ) -> User:
        if not has_permission(user.role, permission):
            raise PermissionDeniedError(f"Missing permission: {permission}")
        return user

    return _check
