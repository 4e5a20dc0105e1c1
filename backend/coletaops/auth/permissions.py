"""Role-based permission table.

Design:
  - Each role maps to a FIXED set of permissions (defined here, not in DB).
  - The table is immutable at runtime: roles are not configurable per user.
  - The effective set is embedded in the JWT for the frontend, but every
    server-side check reads this table, so a role change takes effect on
    the next request.

Permission naming: `<resource>:<action>`
  Resources: collection-points, routes, teams, vehicles, assignments, runs,
             sorting, stock, destinations, material-types, users, employees,
             reports, dashboard
  Actions:   create, read, update, delete, execute, close, movement, view
"""

from __future__ import annotations

from types import MappingProxyType

from coletaops.models.user import UserRole


def _crud(resource: str, *actions: str) -> set[str]:
    return {f"{resource}:{action}" for action in actions}


# ── All known permissions ───────────────────────────────────

ALL_PERMISSIONS: frozenset[str] = frozenset(
    {"dashboard:view", "reports:view"}
    | _crud("collection-points", "create", "read", "update", "delete")
    | _crud("routes", "create", "read", "update", "delete")
    | _crud("teams", "create", "read", "update", "delete")
    | _crud("vehicles", "create", "read", "update", "delete")
    | _crud("assignments", "create", "read", "update", "delete")
    | _crud("runs", "create", "read", "update", "execute")
    | _crud("sorting", "create", "read", "update", "close")
    | _crud("stock", "create", "read", "update", "movement")
    | _crud("destinations", "create", "read", "update", "delete")
    | _crud("material-types", "create", "read", "update", "delete")
    | _crud("users", "create", "read", "update", "delete")
    | _crud("employees", "create", "read", "update", "delete")
)


# ── Role → permissions ──────────────────────────────────────

ROLE_PERMISSIONS: MappingProxyType[UserRole, frozenset[str]] = MappingProxyType({
    UserRole.ADMIN: ALL_PERMISSIONS,

    UserRole.GESTOR_OPERACAO: frozenset({
        "dashboard:view",
        "collection-points:create", "collection-points:read", "collection-points:update",
        "routes:create", "routes:read", "routes:update", "routes:delete",
        "teams:create", "teams:read", "teams:update",
        "vehicles:read",
        "assignments:create", "assignments:read", "assignments:update", "assignments:delete",
        "runs:create", "runs:read", "runs:update",
        "sorting:read",
        "stock:read",
        "destinations:read",
        "material-types:read",
        "employees:read",
        "reports:view",
    }),

    UserRole.ALMOXARIFE: frozenset({
        "dashboard:view",
        "stock:create", "stock:read", "stock:update", "stock:movement",
        "destinations:read",
        "material-types:read",
        "sorting:read",
        "reports:view",
    }),

    UserRole.SUPERVISOR: frozenset({
        "dashboard:view",
        "collection-points:read",
        "routes:read",
        "teams:read",
        "vehicles:read",
        "assignments:read",
        "runs:read", "runs:update",
        "sorting:read", "sorting:update", "sorting:close",
        "stock:read",
        "destinations:read",
        "material-types:read",
        "reports:view",
    }),

    UserRole.COLETOR: frozenset({
        "runs:read", "runs:execute",
        "material-types:read",
    }),

    UserRole.TRIAGEM: frozenset({
        "dashboard:view",
        "runs:read",
        "sorting:create", "sorting:read", "sorting:update",
        "material-types:read",
    }),

    UserRole.VISUALIZADOR: frozenset({
        "dashboard:view",
        "collection-points:read",
        "routes:read",
        "teams:read",
        "vehicles:read",
        "assignments:read",
        "runs:read",
        "sorting:read",
        "stock:read",
        "destinations:read",
        "material-types:read",
        "reports:view",
    }),
})


# ── Resolution ──────────────────────────────────────────────

def get_permissions(role: UserRole | str) -> list[str]:
    """Return the role's permissions as a sorted list (for stable JWT claims)."""
    try:
        role = UserRole(role)
    except ValueError:
        return []
    return sorted(ROLE_PERMISSIONS.get(role, frozenset()))


def has_permission(role: UserRole | str, required: str) -> bool:
    """Check whether a role grants a permission."""
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return required in ROLE_PERMISSIONS.get(role, frozenset())
