"""Pydantic schemas for stock lots, movements and the stock summary."""

from datetime import datetime

from pydantic import Field

from coletaops.models.sorting_batch import QualityGrade
from coletaops.models.stock import MovementType
from coletaops.schemas.common import CamelModel, MaterialTypeBrief, NamedRef, VehicleBrief


# ── Requests ─────────────────────────────────────────────────

class LotCreate(CamelModel):
    material_type_id: str = Field(..., min_length=1)
    total_kg: float = Field(..., gt=0)
    quality_grade: QualityGrade | None = None
    origin_note: str | None = Field(None, max_length=255)


class MovementCreate(CamelModel):
    """IN and OUT are deltas; ADJUST sets the lot's available quantity."""
    lot_id: str = Field(..., min_length=1)
    type: MovementType
    quantity_kg: float = Field(..., gt=0)
    destination_id: str | None = None
    vehicle_id: str | None = None
    invoice_ref: str | None = Field(None, max_length=100)
    notes: str | None = None


# ── Responses ────────────────────────────────────────────────

class LotOut(CamelModel):
    id: str
    material_type_id: str
    source_batch_id: str | None
    total_kg: float
    available_kg: float
    quality_grade: QualityGrade | None
    origin_note: str | None
    created_at: datetime
    updated_at: datetime
    material_type: MaterialTypeBrief | None = None


class MovementOut(CamelModel):
    id: str
    lot_id: str
    type: MovementType
    quantity_kg: float
    destination_id: str | None
    vehicle_id: str | None
    invoice_ref: str | None
    notes: str | None
    moved_by: str
    moved_at: datetime
    destination: NamedRef | None = None
    vehicle: VehicleBrief | None = None


class MovementWithLot(MovementOut):
    lot: LotOut | None = None


class LotDetail(LotOut):
    movements: list[MovementOut] = []


class MaterialStock(CamelModel):
    material_type: MaterialTypeBrief
    available_kg: float
    total_kg: float
    lots_count: int


class StockTotals(CamelModel):
    available_kg: float
    total_kg: float
    lots_count: int


class StockSummary(CamelModel):
    by_material: list[MaterialStock]
    totals: StockTotals
