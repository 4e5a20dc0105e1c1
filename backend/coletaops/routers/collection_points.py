"""Collection point catalog router.

Endpoints:
    GET    /api/collection-points        List active points
    POST   /api/collection-points        Create
    GET    /api/collection-points/{id}   Get
    PUT    /api/collection-points/{id}   Update
    DELETE /api/collection-points/{id}   Deactivate
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.collection_point import CollectionPoint
from coletaops.models.user import User
from coletaops.schemas.catalog import (
    CollectionPointCreate,
    CollectionPointOut,
    CollectionPointUpdate,
)
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()


@router.get("", response_model=ApiResponse[list[CollectionPointOut]])
async def list_points(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("collection-points:read")),
):
    result = await db.execute(
        select(CollectionPoint)
        .where(CollectionPoint.org_id == user.org_id, CollectionPoint.is_active == True)  # noqa: E712
        .order_by(CollectionPoint.name)
    )
    return ApiResponse(data=[CollectionPointOut.model_validate(p) for p in result.scalars().all()])


@router.post("", response_model=ApiResponse[CollectionPointOut], status_code=status.HTTP_201_CREATED)
async def create_point(
    body: CollectionPointCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("collection-points:create")),
):
    point = CollectionPoint(org_id=user.org_id, **body.model_dump())
    db.add(point)
    await db.flush()
    await db.refresh(point)
    return ApiResponse(data=CollectionPointOut.model_validate(point))


@router.get("/{point_id}", response_model=ApiResponse[CollectionPointOut])
async def get_point(
    point_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("collection-points:read")),
):
    point = await get_owned(db, CollectionPoint, point_id, user.org_id, "Collection point")
    return ApiResponse(data=CollectionPointOut.model_validate(point))


@router.put("/{point_id}", response_model=ApiResponse[CollectionPointOut])
async def update_point(
    point_id: str,
    body: CollectionPointUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("collection-points:update")),
):
    point = await get_owned(db, CollectionPoint, point_id, user.org_id, "Collection point")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(point, key, value)
    await db.flush()
    return ApiResponse(data=CollectionPointOut.model_validate(point))


@router.delete("/{point_id}", response_model=ApiResponse[CollectionPointOut])
async def delete_point(
    point_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("collection-points:delete")),
):
    point = await get_owned(db, CollectionPoint, point_id, user.org_id, "Collection point")
    point.is_active = False
    await db.flush()
    return ApiResponse(data=CollectionPointOut.model_validate(point))
