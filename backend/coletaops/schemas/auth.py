from pydantic import EmailStr

from coletaops.schemas.common import CamelModel


# ── Login ────────────────────────────────────────────────────

class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


# ── Profile ──────────────────────────────────────────────────

class UserOut(CamelModel):
    id: str
    email: str
    name: str
    role: str
    is_active: bool
    org_id: str
    org_name: str | None = None
    employee_id: str | None = None
    permissions: list[str]


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut
