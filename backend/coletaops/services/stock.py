"""Stock: lots and the movement ledger.

Movement semantics:

    IN      available += qty, total += qty
    OUT     available -= qty             (rejected when qty > available)
    ADJUST  available  = qty             (absolute; total unchanged)

Every movement locks its lot row (SELECT ... FOR UPDATE) before reading
the available quantity, so concurrent OUT movements are serialized and
cannot overdraw the lot together.
"""

import datetime as dt
import io
import json
import logging

import segno
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.middleware.exceptions import InsufficientStockError, ResourceNotFoundError
from coletaops.models.destination import Destination
from coletaops.models.material_type import MaterialType
from coletaops.models.stock import MovementType, StockLot, StockMovement
from coletaops.models.user import User
from coletaops.models.vehicle import Vehicle
from coletaops.schemas.common import MaterialTypeBrief
from coletaops.schemas.stock import (
    LotCreate,
    MaterialStock,
    MovementCreate,
    StockSummary,
    StockTotals,
)
from coletaops.services.scoping import get_owned
from coletaops.utils.activity import log_activity

logger = logging.getLogger(__name__)

MANUAL_ORIGIN_NOTE = "Manual entry"
MANUAL_ENTRY_NOTE = "Manual stock entry"

MOVEMENT_LOAD = (
    selectinload(StockMovement.destination),
    selectinload(StockMovement.vehicle),
    selectinload(StockMovement.lot).selectinload(StockLot.material_type),
)


# Lot quantities are stored rounded to the gram.
KG_DECIMALS = 3


def apply_movement(
    available_kg: float,
    total_kg: float,
    movement_type: MovementType,
    quantity_kg: float,
) -> tuple[float, float]:
    """Return the lot's (available_kg, total_kg) after a movement, rounded to the gram."""
    available_kg = round(available_kg, KG_DECIMALS)
    total_kg = round(total_kg, KG_DECIMALS)
    quantity_kg = round(quantity_kg, KG_DECIMALS)
    if movement_type == MovementType.IN:
        return round(available_kg + quantity_kg, KG_DECIMALS), round(total_kg + quantity_kg, KG_DECIMALS)
    if movement_type == MovementType.OUT:
        if quantity_kg > available_kg:
            raise InsufficientStockError(available_kg)
        return round(available_kg - quantity_kg, KG_DECIMALS), total_kg
    if movement_type == MovementType.ADJUST:
        return quantity_kg, total_kg
    raise ValueError(f"Unknown movement type: {movement_type}")


# ── Lots ─────────────────────────────────────────────────────

async def list_lots(
    db: AsyncSession,
    org_id: str,
    material_type_id: str | None = None,
    has_stock: bool = False,
) -> list[StockLot]:
    stmt = (
        select(StockLot)
        .where(StockLot.org_id == org_id)
        .options(selectinload(StockLot.material_type))
    )
    if material_type_id:
        stmt = stmt.where(StockLot.material_type_id == material_type_id)
    if has_stock:
        stmt = stmt.where(StockLot.available_kg > 0)
    result = await db.execute(stmt.order_by(StockLot.created_at.desc()))
    return list(result.scalars().all())


async def get_lot(db: AsyncSession, org_id: str, lot_id: str) -> StockLot:
    result = await db.execute(
        select(StockLot)
        .where(StockLot.id == lot_id, StockLot.org_id == org_id)
        .options(
            selectinload(StockLot.material_type),
            selectinload(StockLot.movements).selectinload(StockMovement.destination),
            selectinload(StockLot.movements).selectinload(StockMovement.vehicle),
        )
        .execution_options(populate_existing=True)
    )
    lot = result.scalar_one_or_none()
    if lot is None:
        raise ResourceNotFoundError("Stock lot")
    return lot


async def create_lot(db: AsyncSession, user: User, body: LotCreate) -> StockLot:
    """Manual stock entry: a new lot plus its opening IN movement."""
    material = await get_owned(
        db, MaterialType, body.material_type_id, user.org_id, "Material type"
    )

    lot = StockLot(
        org_id=user.org_id,
        material_type_id=material.id,
        total_kg=round(body.total_kg, KG_DECIMALS),
        available_kg=round(body.total_kg, KG_DECIMALS),
        quality_grade=body.quality_grade,
        origin_note=body.origin_note or MANUAL_ORIGIN_NOTE,
    )
    db.add(lot)
    db.add(
        StockMovement(
            lot=lot,
            type=MovementType.IN,
            quantity_kg=round(body.total_kg, KG_DECIMALS),
            moved_by=user.id,
            notes=MANUAL_ENTRY_NOTE,
        )
    )
    await db.flush()

    await log_activity(
        db, user,
        action="created",
        entity_type="stock_lot",
        entity_id=lot.id,
        summary=f"{body.total_kg}kg of {material.name}",
    )
    logger.info("Stock lot %s created with %.2fkg", lot.id, body.total_kg)
    return await get_lot(db, user.org_id, lot.id)


def lot_label_svg(lot: StockLot) -> bytes:
    """SVG QR label for a lot (lot id, material, grade, available kg, origin)."""
    qr_data = json.dumps({
        "type": "stock_lot",
        "lot_id": lot.id,
        "material": lot.material_type.name if lot.material_type else lot.material_type_id,
        "grade": lot.quality_grade.value if lot.quality_grade else None,
        "available_kg": round(lot.available_kg, 2),
        "origin": lot.origin_note,
    }, separators=(",", ":"))

    qr = segno.make(qr_data)
    buf = io.BytesIO()
    qr.save(buf, kind="svg", scale=4, dark="#15803d")
    return buf.getvalue()


# ── Movements ────────────────────────────────────────────────

async def list_movements(
    db: AsyncSession,
    org_id: str,
    lot_id: str | None = None,
    movement_type: MovementType | None = None,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
    limit: int | None = None,
) -> list[StockMovement]:
    """Movements newest first; ``date_to`` includes the whole day."""
    stmt = (
        select(StockMovement)
        .join(StockLot, StockMovement.lot_id == StockLot.id)
        .where(StockLot.org_id == org_id)
        .options(*MOVEMENT_LOAD)
    )
    if lot_id:
        stmt = stmt.where(StockMovement.lot_id == lot_id)
    if movement_type:
        stmt = stmt.where(StockMovement.type == movement_type)
    if date_from:
        stmt = stmt.where(StockMovement.moved_at >= day_start(date_from))
    if date_to:
        stmt = stmt.where(StockMovement.moved_at < day_start(date_to + dt.timedelta(days=1)))
    stmt = stmt.order_by(StockMovement.moved_at.desc())
    if limit:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


def day_start(day: dt.date) -> dt.datetime:
    return dt.datetime.combine(day, dt.time.min)


async def record_movement(db: AsyncSession, user: User, body: MovementCreate) -> StockMovement:
    lot = (
        await db.execute(
            select(StockLot)
            .where(StockLot.id == body.lot_id, StockLot.org_id == user.org_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if lot is None:
        raise ResourceNotFoundError("Stock lot")

    if body.destination_id:
        await get_owned(db, Destination, body.destination_id, user.org_id, "Destination")
    if body.vehicle_id:
        await get_owned(db, Vehicle, body.vehicle_id, user.org_id, "Vehicle")

    lot.available_kg, lot.total_kg = apply_movement(
        lot.available_kg, lot.total_kg, body.type, body.quantity_kg
    )

    movement = StockMovement(
        lot_id=lot.id,
        type=body.type,
        quantity_kg=round(body.quantity_kg, KG_DECIMALS),
        destination_id=body.destination_id,
        vehicle_id=body.vehicle_id,
        invoice_ref=body.invoice_ref,
        notes=body.notes,
        moved_by=user.id,
    )
    db.add(movement)
    await db.flush()

    await log_activity(
        db, user,
        action="moved",
        entity_type="stock_lot",
        entity_id=lot.id,
        summary=f"{body.type.value} {body.quantity_kg}kg",
        details={"movement_id": movement.id, "available_kg": lot.available_kg},
    )
    logger.info(
        "Movement %s %s %.2fkg on lot %s (available %.2fkg)",
        movement.id, body.type.value, body.quantity_kg, lot.id, lot.available_kg,
    )
    result = await db.execute(
        select(StockMovement)
        .where(StockMovement.id == movement.id)
        .options(*MOVEMENT_LOAD)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


# ── Summary ──────────────────────────────────────────────────

async def stock_summary(db: AsyncSession, org_id: str) -> StockSummary:
    """Per-material totals for lots with stock, plus org-wide totals."""
    rows = (
        await db.execute(
            select(
                MaterialType,
                func.sum(StockLot.available_kg),
                func.sum(StockLot.total_kg),
                func.count(StockLot.id),
            )
            .join(StockLot, StockLot.material_type_id == MaterialType.id)
            .where(StockLot.org_id == org_id, StockLot.available_kg > 0)
            .group_by(MaterialType.id)
            .order_by(MaterialType.name)
        )
    ).all()

    available, total, count = (
        await db.execute(
            select(
                func.coalesce(func.sum(StockLot.available_kg), 0.0),
                func.coalesce(func.sum(StockLot.total_kg), 0.0),
                func.count(StockLot.id),
            ).where(StockLot.org_id == org_id)
        )
    ).one()

    return StockSummary(
        by_material=[
            MaterialStock(
                material_type=MaterialTypeBrief.model_validate(material),
                available_kg=round(material_available or 0.0, 2),
                total_kg=round(material_total or 0.0, 2),
                lots_count=lots,
            )
            for material, material_available, material_total, lots in rows
        ],
        totals=StockTotals(
            available_kg=round(available, 2),
            total_kg=round(total, 2),
            lots_count=count,
        ),
    )
