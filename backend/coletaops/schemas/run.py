"""Pydantic schemas for collection runs and their per-stop events."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from coletaops.models.collection_run import EventStatus, RunStatus
from coletaops.schemas.assignment import AssignmentOut
from coletaops.schemas.common import CamelModel, CollectionPointBrief, MaterialTypeBrief


# ── Requests ─────────────────────────────────────────────────

class StartRunRequest(CamelModel):
    assignment_id: str = Field(..., min_length=1)


class RunUpdate(CamelModel):
    notes: str | None = None


class ArriveRequest(CamelModel):
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)


class CollectedItemIn(CamelModel):
    material_type_id: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: str = Field("kg", max_length=10)
    is_estimated: bool = True


class RegisterItemsRequest(CamelModel):
    """Complete item list for a stop; replaces whatever was registered before."""
    items: list[CollectedItemIn]
    notes: str | None = None


class CloseStopRequest(CamelModel):
    status: Literal["COLETADO", "NAO_COLETADO"]
    skip_reason: str | None = Field(None, max_length=255)


# ── Responses ────────────────────────────────────────────────

class CollectedItemOut(CamelModel):
    id: str
    material_type_id: str
    quantity: float
    unit: str
    is_estimated: bool
    material_type: MaterialTypeBrief | None = None


class StopBrief(CamelModel):
    id: str
    order_index: int
    planned_window: str | None = None
    point: CollectionPointBrief | None = None


class EventOut(CamelModel):
    id: str
    run_id: str
    stop_id: str
    status: EventStatus
    arrived_at: datetime | None
    departed_at: datetime | None
    notes: str | None
    skip_reason: str | None
    lat: float | None
    lng: float | None
    stop: StopBrief | None = None
    items: list[CollectedItemOut] = []


class SortingBatchRef(CamelModel):
    id: str
    is_closed: bool
    created_at: datetime


class RunOut(CamelModel):
    id: str
    assignment_id: str
    status: RunStatus
    started_at: datetime | None
    ended_at: datetime | None
    notes: str | None
    created_at: datetime
    assignment: AssignmentOut | None = None
    events: list[EventOut] = []

    @field_validator("events")
    @classmethod
    def _in_stop_order(cls, events: list[EventOut]) -> list[EventOut]:
        return sorted(events, key=lambda e: e.stop.order_index if e.stop else 0)


class RunDetail(RunOut):
    sorting_batches: list[SortingBatchRef] = []
