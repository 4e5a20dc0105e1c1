"""Scheduling: route assignments (route × team × vehicle on a date/shift).

Overlapping assignments for the same team or vehicle are not detected;
two crews may be booked on the same slot.
"""

import datetime as dt
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models.assignment import RouteAssignment
from coletaops.models.route import Route, RouteStop
from coletaops.models.team import Team
from coletaops.models.user import User
from coletaops.models.vehicle import Vehicle
from coletaops.schemas.assignment import AssignmentCreate
from coletaops.services.scoping import assignments_in_org, get_owned
from coletaops.utils.activity import log_activity

logger = logging.getLogger(__name__)

ASSIGNMENT_LOAD = (
    selectinload(RouteAssignment.route)
    .selectinload(Route.stops)
    .selectinload(RouteStop.point),
    selectinload(RouteAssignment.team),
    selectinload(RouteAssignment.vehicle),
    selectinload(RouteAssignment.runs),
)


async def list_assignments(
    db: AsyncSession,
    org_id: str,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
) -> list[RouteAssignment]:
    stmt = assignments_in_org(org_id).options(*ASSIGNMENT_LOAD)
    if date_from:
        stmt = stmt.where(RouteAssignment.date >= date_from)
    if date_to:
        stmt = stmt.where(RouteAssignment.date <= date_to)
    stmt = stmt.order_by(RouteAssignment.date, RouteAssignment.shift)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_assignment(
    db: AsyncSession, org_id: str, assignment_id: str
) -> RouteAssignment:
    result = await db.execute(
        assignments_in_org(org_id)
        .where(RouteAssignment.id == assignment_id)
        .options(*ASSIGNMENT_LOAD)
        .execution_options(populate_existing=True)
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise ResourceNotFoundError("Assignment")
    return assignment


async def create_assignment(
    db: AsyncSession, user: User, body: AssignmentCreate
) -> RouteAssignment:
    # Separate checks so the caller learns which reference is wrong
    route = await get_owned(db, Route, body.route_id, user.org_id, "Route")
    team = await get_owned(db, Team, body.team_id, user.org_id, "Team")
    vehicle = await get_owned(db, Vehicle, body.vehicle_id, user.org_id, "Vehicle")

    assignment = RouteAssignment(
        route_id=route.id,
        team_id=team.id,
        vehicle_id=vehicle.id,
        date=body.date,
        shift=body.shift,
    )
    db.add(assignment)
    await db.flush()

    await log_activity(
        db, user,
        action="created",
        entity_type="assignment",
        entity_id=assignment.id,
        summary=f"Scheduled route {route.name} for {team.name} on {body.date.isoformat()}",
    )
    logger.info("Assignment %s created for route %s", assignment.id, route.id)
    return await get_assignment(db, user.org_id, assignment.id)


async def delete_assignment(db: AsyncSession, user: User, assignment_id: str) -> None:
    """Delete an assignment that has never been executed."""
    result = await db.execute(
        assignments_in_org(user.org_id)
        .where(RouteAssignment.id == assignment_id)
        .options(selectinload(RouteAssignment.runs))
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise ResourceNotFoundError("Assignment")

    if assignment.runs:
        raise BusinessLogicError(
            "Cannot delete an assignment that already has runs",
            error_code="ASSIGNMENT_HAS_RUNS",
        )

    await db.delete(assignment)
    await log_activity(
        db, user,
        action="deleted",
        entity_type="assignment",
        entity_id=assignment_id,
    )
    logger.info("Assignment %s deleted", assignment_id)
