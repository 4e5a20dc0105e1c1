"""Dashboard report schema (GET /api/reports/summary)."""

from datetime import date

from pydantic import Field

from coletaops.schemas.common import CamelModel
from coletaops.schemas.stock import MovementWithLot


class ReportPeriod(CamelModel):
    from_: date | None = Field(None, alias="from")
    to: date | None = None


class CollectionTotals(CamelModel):
    total_runs: int
    completed_runs: int
    total_stops: int
    completed_stops: int
    skipped_stops: int
    completion_rate: int
    total_collected_kg: float


class MaterialCollected(CamelModel):
    material_type_id: str
    name: str
    category: str | None
    total_kg: float


class TeamProductivity(CamelModel):
    team_id: str
    name: str
    runs: int
    stops_completed: int
    total_kg: float


class StockOnHand(CamelModel):
    total_available_kg: float


class SkipReasonCount(CamelModel):
    reason: str
    count: int


class ReportSummary(CamelModel):
    period: ReportPeriod
    collection: CollectionTotals
    collected_by_material: list[MaterialCollected]
    team_productivity: list[TeamProductivity]
    stock: StockOnHand
    recent_movements: list[MovementWithLot]
    skip_reasons: list[SkipReasonCount]
