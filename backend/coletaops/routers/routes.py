"""Route catalog router: routes and their manually ordered stops.

Endpoints:
    GET    /api/routes                         List active routes with stops
    POST   /api/routes                         Create
    GET    /api/routes/{id}                    Route with stops
    PUT    /api/routes/{id}                    Update
    DELETE /api/routes/{id}                    Deactivate
    GET    /api/routes/{id}/stops              List stops in order
    POST   /api/routes/{id}/stops              Add a stop at an order index
    PUT    /api/routes/{id}/stops              Reorder stops
    DELETE /api/routes/{id}/stops/{stop_id}    Remove a stop
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models.collection_point import CollectionPoint
from coletaops.models.collection_run import CollectionEvent
from coletaops.models.route import Route, RouteStop
from coletaops.models.user import User
from coletaops.schemas.catalog import (
    RouteCreate,
    RouteDetail,
    RouteStopCreate,
    RouteStopOut,
    RouteStopsReorder,
    RouteUpdate,
)
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()

_STOPS_LOAD = selectinload(Route.stops).selectinload(RouteStop.point)


async def _load_route(db: AsyncSession, org_id: str, route_id: str) -> Route:
    result = await db.execute(
        select(Route)
        .where(Route.id == route_id, Route.org_id == org_id)
        .options(_STOPS_LOAD)
        .execution_options(populate_existing=True)
    )
    route = result.scalar_one_or_none()
    if route is None:
        raise ResourceNotFoundError("Route")
    return route


# ── Routes ───────────────────────────────────────────────────

@router.get("", response_model=ApiResponse[list[RouteDetail]])
async def list_routes(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:read")),
):
    result = await db.execute(
        select(Route)
        .where(Route.org_id == user.org_id, Route.is_active == True)  # noqa: E712
        .options(_STOPS_LOAD)
        .order_by(Route.name)
    )
    return ApiResponse(data=[RouteDetail.model_validate(r) for r in result.scalars().all()])


@router.post("", response_model=ApiResponse[RouteDetail], status_code=status.HTTP_201_CREATED)
async def create_route(
    body: RouteCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:create")),
):
    route = Route(org_id=user.org_id, **body.model_dump())
    db.add(route)
    await db.flush()
    return ApiResponse(data=RouteDetail.model_validate(await _load_route(db, user.org_id, route.id)))


@router.get("/{route_id}", response_model=ApiResponse[RouteDetail])
async def get_route(
    route_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:read")),
):
    return ApiResponse(data=RouteDetail.model_validate(await _load_route(db, user.org_id, route_id)))


@router.put("/{route_id}", response_model=ApiResponse[RouteDetail])
async def update_route(
    route_id: str,
    body: RouteUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:update")),
):
    route = await _load_route(db, user.org_id, route_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(route, key, value)
    await db.flush()
    return ApiResponse(data=RouteDetail.model_validate(route))


@router.delete("/{route_id}", response_model=ApiResponse[RouteDetail])
async def delete_route(
    route_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:delete")),
):
    """Soft delete: past assignments and runs keep their route."""
    route = await _load_route(db, user.org_id, route_id)
    route.is_active = False
    await db.flush()
    return ApiResponse(data=RouteDetail.model_validate(route))


# ── Stops ────────────────────────────────────────────────────

@router.get("/{route_id}/stops", response_model=ApiResponse[list[RouteStopOut]])
async def list_stops(
    route_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:read")),
):
    route = await _load_route(db, user.org_id, route_id)
    return ApiResponse(data=[RouteStopOut.model_validate(s) for s in route.stops])


@router.post(
    "/{route_id}/stops",
    response_model=ApiResponse[RouteStopOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_stop(
    route_id: str,
    body: RouteStopCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:update")),
):
    route = await _load_route(db, user.org_id, route_id)
    await get_owned(db, CollectionPoint, body.point_id, user.org_id, "Collection point")
    if any(stop.order_index == body.order_index for stop in route.stops):
        raise BusinessLogicError(
            f"Order index {body.order_index} is already used on this route",
            error_code="DUPLICATE_ORDER_INDEX",
        )

    stop = RouteStop(route_id=route.id, **body.model_dump())
    db.add(stop)
    await db.flush()
    result = await db.execute(
        select(RouteStop).where(RouteStop.id == stop.id).options(selectinload(RouteStop.point))
    )
    return ApiResponse(data=RouteStopOut.model_validate(result.scalar_one()))


@router.put("/{route_id}/stops", response_model=ApiResponse[list[RouteStopOut]])
async def reorder_stops(
    route_id: str,
    body: RouteStopsReorder,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:update")),
):
    """Assign new order indexes; stops not listed keep theirs."""
    route = await _load_route(db, user.org_id, route_id)
    stops = {stop.id: stop for stop in route.stops}

    requested = {entry.id: entry.order_index for entry in body.stops}
    unknown = set(requested) - set(stops)
    if unknown:
        raise ResourceNotFoundError("Route stop")

    final = {stop_id: requested.get(stop_id, stop.order_index) for stop_id, stop in stops.items()}
    if len(set(final.values())) != len(final):
        raise BusinessLogicError(
            "Each stop needs a distinct order index",
            error_code="DUPLICATE_ORDER_INDEX",
        )

    # Park the moved stops on negative indexes first so swaps never
    # collide with the (route_id, order_index) unique constraint.
    for position, stop_id in enumerate(requested):
        stops[stop_id].order_index = -(position + 1)
    await db.flush()
    for stop_id, order_index in requested.items():
        stops[stop_id].order_index = order_index
    await db.flush()

    route = await _load_route(db, user.org_id, route_id)
    return ApiResponse(data=[RouteStopOut.model_validate(s) for s in route.stops])


@router.delete("/{route_id}/stops/{stop_id}", response_model=ApiResponse[dict])
async def remove_stop(
    route_id: str,
    stop_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("routes:update")),
):
    route = await _load_route(db, user.org_id, route_id)
    stop = next((s for s in route.stops if s.id == stop_id), None)
    if stop is None:
        raise ResourceNotFoundError("Route stop")

    visited = await db.scalar(
        select(CollectionEvent.id).where(CollectionEvent.stop_id == stop.id).limit(1)
    )
    if visited:
        raise BusinessLogicError("This stop has collection history and cannot be removed")

    route.stops.remove(stop)
    await db.flush()
    return ApiResponse(data={"deleted": True})
