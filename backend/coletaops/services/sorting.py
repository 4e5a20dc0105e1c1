"""Sorting: classify a finished run's material and move it into stock.

A batch is opened against a CONCLUIDO run (one open batch per run),
collects sorted items while open, and on close turns each item into its
own StockLot with a matching IN movement.  The close runs inside the
request transaction, so either every lot is created and the batch is
closed, or nothing is written.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models.collection_run import CollectionRun, RunStatus
from coletaops.models.material_type import MaterialType
from coletaops.models.sorting_batch import SortedItem, SortingBatch
from coletaops.models.stock import MovementType, StockLot, StockMovement
from coletaops.models.user import User
from coletaops.schemas.sorting import SortedItemCreate
from coletaops.services.scoping import batches_in_org, get_owned, runs_in_org
from coletaops.services.stock import KG_DECIMALS
from coletaops.utils.activity import log_activity

logger = logging.getLogger(__name__)

AUTOMATIC_ENTRY_NOTE = "Automatic entry from sorting batch"

BATCH_LOAD = (
    selectinload(SortingBatch.run),
    selectinload(SortingBatch.items).selectinload(SortedItem.material_type),
    selectinload(SortingBatch.stock_lots),
)


def batch_origin_note(batch_id: str) -> str:
    return f"Sorting batch #{batch_id[-6:]}"


# ── Reads ────────────────────────────────────────────────────

async def list_batches(
    db: AsyncSession, org_id: str, status: str | None = None
) -> list[SortingBatch]:
    """Batches newest first; ``status`` is "open", "closed" or None for all."""
    stmt = batches_in_org(org_id).options(*BATCH_LOAD)
    if status == "open":
        stmt = stmt.where(SortingBatch.is_closed.is_(False))
    elif status == "closed":
        stmt = stmt.where(SortingBatch.is_closed.is_(True))
    result = await db.execute(stmt.order_by(SortingBatch.created_at.desc()))
    return list(result.scalars().all())


async def get_batch(db: AsyncSession, org_id: str, batch_id: str) -> SortingBatch:
    result = await db.execute(
        batches_in_org(org_id)
        .where(SortingBatch.id == batch_id)
        .options(*BATCH_LOAD)
        .execution_options(populate_existing=True)
    )
    batch = result.scalar_one_or_none()
    if batch is None:
        raise ResourceNotFoundError("Sorting batch")
    return batch


async def _open_batch(
    db: AsyncSession, org_id: str, batch_id: str, *, lock: bool = False
) -> SortingBatch:
    stmt = batches_in_org(org_id).where(SortingBatch.id == batch_id)
    if lock:
        stmt = (
            stmt.options(selectinload(SortingBatch.items))
            .with_for_update(of=SortingBatch)
            .execution_options(populate_existing=True)
        )
    batch = (await db.execute(stmt)).scalar_one_or_none()
    if batch is None:
        raise ResourceNotFoundError("Sorting batch")
    if batch.is_closed:
        raise BusinessLogicError("This batch is already closed", error_code="BATCH_CLOSED")
    return batch


# ── Operations ───────────────────────────────────────────────

async def create_batch(
    db: AsyncSession, user: User, run_id: str, notes: str | None = None
) -> SortingBatch:
    run = (
        await db.execute(
            runs_in_org(user.org_id)
            .where(CollectionRun.id == run_id)
            .with_for_update(of=CollectionRun)
        )
    ).scalar_one_or_none()
    if run is None:
        raise ResourceNotFoundError("Run")
    if run.status != RunStatus.CONCLUIDO:
        raise BusinessLogicError("The run must be finished before sorting starts")

    existing = await db.scalar(
        select(SortingBatch.id).where(
            SortingBatch.run_id == run.id, SortingBatch.is_closed.is_(False)
        )
    )
    if existing:
        raise BusinessLogicError(
            "This run already has an open sorting batch",
            error_code="BATCH_ALREADY_OPEN",
        )

    batch = SortingBatch(run_id=run.id, sorted_by=user.id, notes=notes)
    db.add(batch)
    await db.flush()

    await log_activity(
        db, user,
        action="created",
        entity_type="sorting_batch",
        entity_id=batch.id,
        summary=f"Opened sorting for run {run.id}",
    )
    return await get_batch(db, user.org_id, batch.id)


async def add_item(
    db: AsyncSession, user: User, batch_id: str, body: SortedItemCreate
) -> SortedItem:
    batch = await _open_batch(db, user.org_id, batch_id)
    await get_owned(db, MaterialType, body.material_type_id, user.org_id, "Material type")

    item = SortedItem(
        batch_id=batch.id,
        material_type_id=body.material_type_id,
        weight_kg=body.weight_kg,
        quality_grade=body.quality_grade,
        contamination_pct=body.contamination_pct,
        contamination_note=body.contamination_note,
    )
    db.add(item)
    await db.flush()

    await log_activity(
        db, user,
        action="item_added",
        entity_type="sorting_batch",
        entity_id=batch.id,
        summary=f"{body.weight_kg}kg grade {body.quality_grade.value}",
    )
    result = await db.execute(
        select(SortedItem)
        .where(SortedItem.id == item.id)
        .options(selectinload(SortedItem.material_type))
    )
    return result.scalar_one()


async def remove_item(db: AsyncSession, user: User, batch_id: str, item_id: str) -> None:
    batch = await _open_batch(db, user.org_id, batch_id)

    item = (
        await db.execute(
            select(SortedItem).where(
                SortedItem.id == item_id, SortedItem.batch_id == batch.id
            )
        )
    ).scalar_one_or_none()
    if item is None:
        raise ResourceNotFoundError("Sorted item")

    await db.delete(item)
    await log_activity(
        db, user,
        action="item_removed",
        entity_type="sorting_batch",
        entity_id=batch.id,
    )


async def close_batch(db: AsyncSession, user: User, batch_id: str) -> SortingBatch:
    """Close the batch, creating one stock lot and one IN movement per item."""
    batch = await _open_batch(db, user.org_id, batch_id, lock=True)
    if not batch.items:
        raise BusinessLogicError(
            "Add at least one item before closing the batch",
            error_code="BATCH_EMPTY",
        )

    origin = batch_origin_note(batch.id)
    for item in batch.items:
        lot = StockLot(
            org_id=user.org_id,
            material_type_id=item.material_type_id,
            source_batch_id=batch.id,
            total_kg=round(item.weight_kg, KG_DECIMALS),
            available_kg=round(item.weight_kg, KG_DECIMALS),
            quality_grade=item.quality_grade,
            origin_note=origin,
        )
        db.add(lot)
        db.add(
            StockMovement(
                lot=lot,
                type=MovementType.IN,
                quantity_kg=round(item.weight_kg, KG_DECIMALS),
                moved_by=user.id,
                notes=AUTOMATIC_ENTRY_NOTE,
            )
        )

    batch.is_closed = True
    await db.flush()

    await log_activity(
        db, user,
        action="closed",
        entity_type="sorting_batch",
        entity_id=batch.id,
        summary=f"Closed batch into {len(batch.items)} stock lots",
        details={"total_kg": sum(item.weight_kg for item in batch.items)},
    )
    logger.info("Sorting batch %s closed into %d lots", batch.id, len(batch.items))
    return await get_batch(db, user.org_id, batch.id)
