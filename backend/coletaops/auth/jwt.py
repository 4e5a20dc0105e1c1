"""Signed session tokens.

A login hands out two tokens sharing the same identity claims:

  sub       user id
  role      UserRole value at issue time
  org_id    organization of the user; checked again against the DB row
  type      ACCESS_TOKEN or REFRESH_TOKEN

Access tokens additionally carry ``permissions`` so clients can hide
actions they cannot perform; the server never trusts that list and
re-reads the role table on every request.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from coletaops.config import settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def _issue(claims: dict, lifetime: timedelta) -> str:
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: str,
    role: str,
    org_id: str,
    permissions: list[str],
    expires_delta: timedelta | None = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _issue(
        {
            "sub": user_id,
            "role": role,
            "org_id": org_id,
            "permissions": permissions,
            "type": ACCESS_TOKEN,
        },
        lifetime,
    )


def create_refresh_token(user_id: str, role: str, org_id: str) -> str:
    return _issue(
        {"sub": user_id, "role": role, "org_id": org_id, "type": REFRESH_TOKEN},
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str) -> dict:
    """Claims of a valid, unexpired token; ``{}`` for anything else."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return {}
