"""Tenant middleware: resolves the organization context from the JWT.

Flow:
  1. Extract Bearer token from Authorization header
  2. Decode JWT → get `org_id` claim
  3. Validate the claim
  4. Set ContextVar so downstream code (log filter, services) can read it
  5. After the response, clear the ContextVar

Public routes (login, refresh, health) never need an org context.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from coletaops.auth.jwt import decode_token
from coletaops.middleware.exceptions import create_error_response
from coletaops.tenancy import clear_org_context, set_current_org_id, validate_org_id

# Routes that never require auth; don't reject expired tokens here
_PUBLIC_PREFIXES = ("/api/auth/login", "/api/auth/refresh", "/docs", "/openapi.json", "/health", "/api/health")


class TenantMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        auth_header = request.headers.get("authorization", "")
        path = request.url.path

        clear_org_context()
        if auth_header.startswith("Bearer "):
            payload = decode_token(auth_header[7:])

            if not payload:
                # Expired or malformed token on a protected route: answer 401
                # here so clients can go back to login.
                if not any(path.startswith(p) for p in _PUBLIC_PREFIXES):
                    return create_error_response(
                        status_code=401,
                        message="Token expired or invalid",
                        error_code="HTTP_401",
                        headers={"WWW-Authenticate": "Bearer"},
                    )
            else:
                org_id = payload.get("org_id")
                if org_id:
                    try:
                        set_current_org_id(validate_org_id(org_id))
                    except ValueError:
                        clear_org_context()

        try:
            response = await call_next(request)
        finally:
            clear_org_context()

        return response
