"""Multi-tenancy: organization scoping.

Every root entity carries an ``org_id`` column and every query filters on
the caller's organization.  The org id of the current request lives in a
ContextVar so code without access to the request (log filters, helpers)
can read it.

Key components:
  - _org_ctx                ContextVar holding the org id for the current request
  - set / peek / clear helpers for the ContextVar
  - validate_org_id()       rejects malformed org ids from token claims
"""

import re
from contextvars import ContextVar

# ── Request-scoped org context ──────────────────────────────

_org_ctx: ContextVar[str | None] = ContextVar("_org_ctx", default=None)


def set_current_org_id(org_id: str) -> None:
    _org_ctx.set(org_id)


def peek_current_org_id() -> str | None:
    """Return the current org id, or None outside a request (used by logging)."""
    return _org_ctx.get()


def clear_org_context() -> None:
    _org_ctx.set(None)


# ── Validation ──────────────────────────────────────────────

_ORG_ID_RE = re.compile(r"^[A-Za-z0-9-]{1,36}$")


def validate_org_id(org_id: str) -> str:
    """Ensure an org id claim looks like one of our primary keys."""
    if not _ORG_ID_RE.match(org_id):
        raise ValueError(f"Invalid organization id: {org_id!r}")
    return org_id
