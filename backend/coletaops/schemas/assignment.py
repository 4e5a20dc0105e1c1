"""Pydantic schemas for route assignments (the schedule)."""

import datetime as dt
from typing import Literal

from pydantic import Field

from coletaops.models.collection_run import RunStatus
from coletaops.schemas.catalog import RouteDetail, RouteOut
from coletaops.schemas.common import CamelModel, NamedRef, VehicleBrief

Shift = Literal["manha", "tarde", "noite"]


class AssignmentCreate(CamelModel):
    route_id: str = Field(..., min_length=1)
    team_id: str = Field(..., min_length=1)
    vehicle_id: str = Field(..., min_length=1)
    date: dt.date
    shift: Shift | None = None


class RunBrief(CamelModel):
    id: str
    status: RunStatus
    started_at: dt.datetime | None
    ended_at: dt.datetime | None
    created_at: dt.datetime


class AssignmentOut(CamelModel):
    id: str
    route_id: str
    team_id: str
    vehicle_id: str
    date: dt.date
    shift: str | None
    created_at: dt.datetime
    route: RouteOut | None = None
    team: NamedRef | None = None
    vehicle: VehicleBrief | None = None


class AssignmentDetail(AssignmentOut):
    route: RouteDetail | None = None
    runs: list[RunBrief] = []
