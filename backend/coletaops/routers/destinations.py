"""Destination catalog router (where outbound stock goes).

Endpoints:
    GET    /api/destinations        List active destinations
    POST   /api/destinations        Create
    GET    /api/destinations/{id}   Get
    PUT    /api/destinations/{id}   Update
    DELETE /api/destinations/{id}   Deactivate
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.destination import Destination
from coletaops.models.user import User
from coletaops.schemas.catalog import DestinationCreate, DestinationOut, DestinationUpdate
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()


@router.get("", response_model=ApiResponse[list[DestinationOut]])
async def list_destinations(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("destinations:read")),
):
    result = await db.execute(
        select(Destination)
        .where(Destination.org_id == user.org_id, Destination.is_active == True)  # noqa: E712
        .order_by(Destination.name)
    )
    return ApiResponse(data=[DestinationOut.model_validate(d) for d in result.scalars().all()])


@router.post("", response_model=ApiResponse[DestinationOut], status_code=status.HTTP_201_CREATED)
async def create_destination(
    body: DestinationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("destinations:create")),
):
    destination = Destination(org_id=user.org_id, **body.model_dump())
    db.add(destination)
    await db.flush()
    await db.refresh(destination)
    return ApiResponse(data=DestinationOut.model_validate(destination))


@router.get("/{destination_id}", response_model=ApiResponse[DestinationOut])
async def get_destination(
    destination_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("destinations:read")),
):
    destination = await get_owned(db, Destination, destination_id, user.org_id, "Destination")
    return ApiResponse(data=DestinationOut.model_validate(destination))


@router.put("/{destination_id}", response_model=ApiResponse[DestinationOut])
async def update_destination(
    destination_id: str,
    body: DestinationUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("destinations:update")),
):
    destination = await get_owned(db, Destination, destination_id, user.org_id, "Destination")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(destination, key, value)
    await db.flush()
    return ApiResponse(data=DestinationOut.model_validate(destination))


@router.delete("/{destination_id}", response_model=ApiResponse[DestinationOut])
async def delete_destination(
    destination_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("destinations:delete")),
):
    destination = await get_owned(db, Destination, destination_id, user.org_id, "Destination")
    destination.is_active = False
    await db.flush()
    return ApiResponse(data=DestinationOut.model_validate(destination))
