"""Organization-scoped lookups.

Catalog rows and stock lots carry ``org_id`` directly.  Workflow rows are
reached through their route:

    assignment → route
    run        → assignment → route
    batch      → run → assignment → route

A row that belongs to another organization is reported exactly like a
missing one, so callers cannot discover other tenants' ids.
"""

from typing import TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.middleware.exceptions import ResourceNotFoundError
from coletaops.models.assignment import RouteAssignment
from coletaops.models.collection_run import CollectionRun
from coletaops.models.route import Route
from coletaops.models.sorting_batch import SortingBatch

ModelT = TypeVar("ModelT")


async def get_owned(
    db: AsyncSession,
    model: type[ModelT],
    entity_id: str,
    org_id: str,
    label: str,
) -> ModelT:
    """Load an org-rooted row by id or raise ResourceNotFoundError(label)."""
    result = await db.execute(
        select(model).where(model.id == entity_id, model.org_id == org_id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError(label)
    return row


def assignments_in_org(org_id: str) -> Select:
    return (
        select(RouteAssignment)
        .join(Route, RouteAssignment.route_id == Route.id)
        .where(Route.org_id == org_id)
    )


def runs_in_org(org_id: str) -> Select:
    return (
        select(CollectionRun)
        .join(RouteAssignment, CollectionRun.assignment_id == RouteAssignment.id)
        .join(Route, RouteAssignment.route_id == Route.id)
        .where(Route.org_id == org_id)
    )


def batches_in_org(org_id: str) -> Select:
    return (
        select(SortingBatch)
        .join(CollectionRun, SortingBatch.run_id == CollectionRun.id)
        .join(RouteAssignment, CollectionRun.assignment_id == RouteAssignment.id)
        .join(Route, RouteAssignment.route_id == Route.id)
        .where(Route.org_id == org_id)
    )
