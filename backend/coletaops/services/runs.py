"""Run execution: start a run, work through its stops, finish it.

Per-stop state machine (see ``EventStatus``):

    PENDENTE ──arrive──▶ EM_ANDAMENTO ──close──▶ COLETADO | NAO_COLETADO

Items can be (re)registered only while the stop is EM_ANDAMENTO; every
registration replaces the whole item set.  A run finishes once no stop
is PENDENTE; stops left EM_ANDAMENTO do not block it.
"""

import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models.assignment import RouteAssignment
from coletaops.models.collection_run import (
    CollectedItem,
    CollectionEvent,
    CollectionRun,
    EventStatus,
    RunStatus,
)
from coletaops.models.material_type import MaterialType
from coletaops.models.route import Route, RouteStop
from coletaops.models.user import User
from coletaops.schemas.run import CollectedItemIn
from coletaops.services.scoping import assignments_in_org, runs_in_org
from coletaops.utils.activity import log_activity

logger = logging.getLogger(__name__)

EVENT_LOAD = (
    selectinload(CollectionEvent.stop).selectinload(RouteStop.point),
    selectinload(CollectionEvent.items).selectinload(CollectedItem.material_type),
)

RUN_LOAD = (
    selectinload(CollectionRun.assignment).selectinload(RouteAssignment.route),
    selectinload(CollectionRun.assignment).selectinload(RouteAssignment.team),
    selectinload(CollectionRun.assignment).selectinload(RouteAssignment.vehicle),
    selectinload(CollectionRun.events).selectinload(CollectionEvent.stop).selectinload(RouteStop.point),
    selectinload(CollectionRun.events).selectinload(CollectionEvent.items).selectinload(CollectedItem.material_type),
    selectinload(CollectionRun.sorting_batches),
)


# ── Reads ────────────────────────────────────────────────────

async def list_runs(
    db: AsyncSession,
    org_id: str,
    status: RunStatus | None = None,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
) -> list[CollectionRun]:
    """Runs newest first; the date range applies to the assignment date."""
    stmt = runs_in_org(org_id).options(*RUN_LOAD)
    if status:
        stmt = stmt.where(CollectionRun.status == status)
    if date_from:
        stmt = stmt.where(RouteAssignment.date >= date_from)
    if date_to:
        stmt = stmt.where(RouteAssignment.date <= date_to)
    result = await db.execute(stmt.order_by(CollectionRun.created_at.desc()))
    return list(result.scalars().all())


async def get_run(db: AsyncSession, org_id: str, run_id: str) -> CollectionRun:
    result = await db.execute(
        runs_in_org(org_id)
        .where(CollectionRun.id == run_id)
        .options(*RUN_LOAD)
        .execution_options(populate_existing=True)
    )
    run = result.scalar_one_or_none()
    if run is None:
        raise ResourceNotFoundError("Run")
    return run


async def _reload_event(db: AsyncSession, event_id: str) -> CollectionEvent:
    result = await db.execute(
        select(CollectionEvent)
        .where(CollectionEvent.id == event_id)
        .options(*EVENT_LOAD)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _active_run_event(
    db: AsyncSession,
    org_id: str,
    run_id: str,
    stop_id: str,
    *,
    with_items: bool = False,
) -> CollectionEvent:
    """Return the run's event for a stop, requiring the run to be in progress."""
    run = (
        await db.execute(runs_in_org(org_id).where(CollectionRun.id == run_id))
    ).scalar_one_or_none()
    if run is None:
        raise ResourceNotFoundError("Run")
    if run.status != RunStatus.EM_ANDAMENTO:
        raise BusinessLogicError("This run is not in progress")

    stmt = select(CollectionEvent).where(
        CollectionEvent.run_id == run_id, CollectionEvent.stop_id == stop_id
    )
    if with_items:
        stmt = stmt.options(selectinload(CollectionEvent.items))
    event = (await db.execute(stmt)).scalar_one_or_none()
    if event is None:
        raise ResourceNotFoundError("Stop in this run")
    return event


def _require_open_stop(event: CollectionEvent, action: str) -> None:
    if event.status.is_terminal:
        raise BusinessLogicError("This stop has already been closed")
    if event.status != EventStatus.EM_ANDAMENTO:
        raise BusinessLogicError(f"Arrive at the stop before {action}")


# ── Run lifecycle ────────────────────────────────────────────

async def start_run(db: AsyncSession, user: User, assignment_id: str) -> CollectionRun:
    """Start a run with one PENDENTE event per route stop.

    The assignment row is locked so two crews starting the same
    assignment at once cannot both pass the active-run check.
    """
    result = await db.execute(
        assignments_in_org(user.org_id)
        .where(RouteAssignment.id == assignment_id)
        .options(selectinload(RouteAssignment.route).selectinload(Route.stops))
        .with_for_update(of=RouteAssignment)
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise ResourceNotFoundError("Assignment")

    active = await db.scalar(
        select(CollectionRun.id).where(
            CollectionRun.assignment_id == assignment.id,
            CollectionRun.status == RunStatus.EM_ANDAMENTO,
        )
    )
    if active:
        raise BusinessLogicError(
            "A run is already in progress for this assignment",
            error_code="RUN_ALREADY_ACTIVE",
        )

    run = CollectionRun(
        assignment_id=assignment.id,
        status=RunStatus.EM_ANDAMENTO,
        started_at=dt.datetime.utcnow(),
        events=[
            CollectionEvent(stop_id=stop.id, status=EventStatus.PENDENTE)
            for stop in assignment.route.stops
        ],
    )
    db.add(run)
    await db.flush()

    await log_activity(
        db, user,
        action="started",
        entity_type="run",
        entity_id=run.id,
        summary=f"Started route {assignment.route.name} with {len(run.events)} stops",
    )
    logger.info("Run %s started for assignment %s", run.id, assignment.id)
    return await get_run(db, user.org_id, run.id)


async def update_run_notes(
    db: AsyncSession, user: User, run_id: str, notes: str | None
) -> CollectionRun:
    run = (
        await db.execute(runs_in_org(user.org_id).where(CollectionRun.id == run_id))
    ).scalar_one_or_none()
    if run is None:
        raise ResourceNotFoundError("Run")
    run.notes = notes
    await db.flush()
    return await get_run(db, user.org_id, run_id)


async def finish_run(db: AsyncSession, user: User, run_id: str) -> CollectionRun:
    result = await db.execute(
        runs_in_org(user.org_id)
        .where(CollectionRun.id == run_id)
        .options(selectinload(CollectionRun.events))
        .with_for_update(of=CollectionRun)
    )
    run = result.scalar_one_or_none()
    if run is None:
        raise ResourceNotFoundError("Run")
    if run.status != RunStatus.EM_ANDAMENTO:
        raise BusinessLogicError("This run is not in progress")

    pending = [e for e in run.events if e.status == EventStatus.PENDENTE]
    if pending:
        raise BusinessLogicError(
            f"There are still {len(pending)} pending stops",
            error_code="STOPS_PENDING",
        )

    run.status = RunStatus.CONCLUIDO
    run.ended_at = dt.datetime.utcnow()
    await db.flush()

    await log_activity(
        db, user,
        action="finished",
        entity_type="run",
        entity_id=run.id,
    )
    logger.info("Run %s finished", run.id)
    return await get_run(db, user.org_id, run.id)


# ── Stop operations ──────────────────────────────────────────

async def arrive(
    db: AsyncSession,
    user: User,
    run_id: str,
    stop_id: str,
    lat: float | None = None,
    lng: float | None = None,
) -> CollectionEvent:
    event = await _active_run_event(db, user.org_id, run_id, stop_id)
    if not event.status.can_advance_to(EventStatus.EM_ANDAMENTO):
        raise BusinessLogicError("This stop has already been visited")

    event.status = EventStatus.EM_ANDAMENTO
    event.arrived_at = dt.datetime.utcnow()
    event.lat = lat
    event.lng = lng
    await db.flush()

    await log_activity(
        db, user,
        action="arrived",
        entity_type="collection_event",
        entity_id=event.id,
    )
    return await _reload_event(db, event.id)


async def register_collected_items(
    db: AsyncSession,
    user: User,
    run_id: str,
    stop_id: str,
    items: list[CollectedItemIn],
    notes: str | None = None,
) -> CollectionEvent:
    """Replace the stop's collected items with ``items``.

    Callers send the complete list every time; nothing is merged.
    """
    event = await _active_run_event(db, user.org_id, run_id, stop_id, with_items=True)
    _require_open_stop(event, "registering items")

    material_ids = {item.material_type_id for item in items}
    if material_ids:
        found = await db.execute(
            select(MaterialType.id).where(
                MaterialType.id.in_(material_ids),
                MaterialType.org_id == user.org_id,
            )
        )
        if material_ids - set(found.scalars().all()):
            raise ResourceNotFoundError("Material type")

    # delete-orphan cascade removes the previous set on flush
    event.items = [
        CollectedItem(
            material_type_id=item.material_type_id,
            quantity=item.quantity,
            unit=item.unit,
            is_estimated=item.is_estimated,
        )
        for item in items
    ]
    if notes:
        event.notes = notes
    await db.flush()

    await log_activity(
        db, user,
        action="collected",
        entity_type="collection_event",
        entity_id=event.id,
        summary=f"Registered {len(items)} items",
        details={"total_quantity": sum(item.quantity for item in items)},
    )
    return await _reload_event(db, event.id)


async def close_stop(
    db: AsyncSession,
    user: User,
    run_id: str,
    stop_id: str,
    status: EventStatus,
    skip_reason: str | None = None,
) -> CollectionEvent:
    if not status.is_terminal:
        raise BusinessLogicError("A stop can only be closed as COLETADO or NAO_COLETADO")

    event = await _active_run_event(db, user.org_id, run_id, stop_id)
    _require_open_stop(event, "closing it")

    reason = (skip_reason or "").strip() or None
    if status == EventStatus.NAO_COLETADO and reason is None:
        raise BusinessLogicError(
            "A reason is required when the stop was not collected",
            error_code="SKIP_REASON_REQUIRED",
        )

    event.status = status
    event.skip_reason = reason if status == EventStatus.NAO_COLETADO else None
    event.departed_at = dt.datetime.utcnow()
    await db.flush()

    await log_activity(
        db, user,
        action="closed",
        entity_type="collection_event",
        entity_id=event.id,
        summary=(
            f"{status.value}: {event.skip_reason}" if event.skip_reason else status.value
        ),
    )
    logger.info("Stop %s of run %s closed as %s", stop_id, run_id, status.value)
    return await _reload_event(db, event.id)
