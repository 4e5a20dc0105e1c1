"""Sorting router: batches and sorted items.

Endpoints:
    GET    /api/sorting-batches                        List batches (status=open|closed)
    POST   /api/sorting-batches                        Open a batch for a finished run
    GET    /api/sorting-batches/{id}                   Batch with items and generated lots
    POST   /api/sorting-batches/{id}/items             Add a sorted item
    DELETE /api/sorting-batches/{id}/items/{item_id}   Remove a sorted item
    POST   /api/sorting-batches/{id}/close             Close the batch into stock lots
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.user import User
from coletaops.schemas.common import ApiResponse
from coletaops.schemas.sorting import BatchCreate, BatchOut, SortedItemCreate, SortedItemOut
from coletaops.services import sorting

router = APIRouter()


@router.get("", response_model=ApiResponse[list[BatchOut]])
async def list_batches(
    batch_status: Literal["open", "closed"] | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("sorting:read")),
):
    batches = await sorting.list_batches(db, user.org_id, batch_status)
    return ApiResponse(data=[BatchOut.model_validate(b) for b in batches])


@router.post("", response_model=ApiResponse[BatchOut], status_code=status.HTTP_201_CREATED)
async def create_batch(
    body: BatchCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("sorting:create")),
):
    batch = await sorting.create_batch(db, user, body.run_id, body.notes)
    return ApiResponse(data=BatchOut.model_validate(batch))


@router.get("/{batch_id}", response_model=ApiResponse[BatchOut])
async def get_batch(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("sorting:read")),
):
    batch = await sorting.get_batch(db, user.org_id, batch_id)
    return ApiResponse(data=BatchOut.model_validate(batch))


@router.post(
    "/{batch_id}/items",
    response_model=ApiResponse[SortedItemOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_item(
    batch_id: str,
    body: SortedItemCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("sorting:update")),
):
    item = await sorting.add_item(db, user, batch_id, body)
    return ApiResponse(data=SortedItemOut.model_validate(item))


@router.delete("/{batch_id}/items/{item_id}", response_model=ApiResponse[dict])
async def remove_item(
    batch_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("sorting:update")),
):
    await sorting.remove_item(db, user, batch_id, item_id)
    return ApiResponse(data={"deleted": True})


@router.post("/{batch_id}/close", response_model=ApiResponse[BatchOut])
async def close_batch(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("sorting:close")),
):
    batch = await sorting.close_batch(db, user, batch_id)
    return ApiResponse(data=BatchOut.model_validate(batch))
