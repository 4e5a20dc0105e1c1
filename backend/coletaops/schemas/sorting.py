"""Pydantic schemas for sorting batches and sorted items."""

from datetime import datetime

from pydantic import Field

from coletaops.models.sorting_batch import QualityGrade
from coletaops.schemas.assignment import RunBrief
from coletaops.schemas.common import CamelModel, MaterialTypeBrief


class BatchCreate(CamelModel):
    run_id: str = Field(..., min_length=1)
    notes: str | None = None


class SortedItemCreate(CamelModel):
    material_type_id: str = Field(..., min_length=1)
    weight_kg: float = Field(..., gt=0)
    quality_grade: QualityGrade = QualityGrade.B
    contamination_pct: float | None = Field(None, ge=0, le=100)
    contamination_note: str | None = None


class SortedItemOut(CamelModel):
    id: str
    batch_id: str
    material_type_id: str
    weight_kg: float
    quality_grade: QualityGrade
    contamination_pct: float | None
    contamination_note: str | None
    created_at: datetime
    material_type: MaterialTypeBrief | None = None


class GeneratedLot(CamelModel):
    id: str
    material_type_id: str
    total_kg: float
    available_kg: float
    quality_grade: QualityGrade | None
    origin_note: str | None


class BatchOut(CamelModel):
    id: str
    run_id: str
    sorted_by: str
    is_closed: bool
    notes: str | None
    created_at: datetime
    updated_at: datetime
    run: RunBrief | None = None
    items: list[SortedItemOut] = []
    stock_lots: list[GeneratedLot] = []
