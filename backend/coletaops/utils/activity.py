"""Lightweight helper for recording activity log entries.

Usage:
    await log_activity(
        db, user, action="closed", entity_type="sorting_batch",
        entity_id=batch.id, summary="Closed batch with 3 items",
    )

The row is added to the current session and committed with the
enclosing transaction; no extra flush is performed.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.models.activity_log import ActivityLog
from coletaops.models.user import User


async def log_activity(
    db: AsyncSession,
    user: User,
    *,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> None:
    """Append an activity log entry to the current DB session."""
    entry = ActivityLog(
        org_id=user.org_id,
        user_id=user.id,
        user_name=user.name,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        summary=summary,
        details=details,
    )
    db.add(entry)
