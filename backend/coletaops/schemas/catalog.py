"""Pydantic schemas for catalog reference data.

Material types, collection points, routes (and their ordered stops),
vehicles, teams (and members), employees, destinations and users.
Every `*Update` model is partial: only the fields sent are applied.
"""

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from coletaops.models.destination import DestinationType
from coletaops.models.user import UserRole
from coletaops.schemas.common import CamelModel, CollectionPointBrief

PointType = Literal["residencia", "comercio", "condominio", "ecoponto"]


# ── Material types ───────────────────────────────────────────

class MaterialTypeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str | None = Field(None, max_length=50)
    default_unit: str = Field("kg", max_length=10)
    requires_sorting: bool = True
    allows_contamination: bool = False
    reference_price: float | None = None


class MaterialTypeUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    category: str | None = Field(None, max_length=50)
    default_unit: str | None = Field(None, max_length=10)
    requires_sorting: bool | None = None
    allows_contamination: bool | None = None
    reference_price: float | None = None


class MaterialTypeOut(CamelModel):
    id: str
    name: str
    category: str | None
    default_unit: str
    requires_sorting: bool
    allows_contamination: bool
    reference_price: float | None
    is_active: bool
    created_at: datetime


# ── Collection points ────────────────────────────────────────

class CollectionPointCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    type: PointType | None = None
    contact: str | None = None
    phone: str | None = None
    notes: str | None = None


class CollectionPointUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = Field(None, min_length=1, max_length=500)
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    type: PointType | None = None
    contact: str | None = None
    phone: str | None = None
    notes: str | None = None


class CollectionPointOut(CollectionPointBrief):
    type: str | None
    contact: str | None
    phone: str | None
    notes: str | None
    is_active: bool
    created_at: datetime


# ── Routes & stops ───────────────────────────────────────────

class RouteCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class RouteUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class RouteStopCreate(CamelModel):
    point_id: str = Field(..., min_length=1)
    order_index: int = Field(..., ge=0)
    planned_window: str | None = Field(None, max_length=50)
    notes: str | None = None


class StopOrder(CamelModel):
    id: str
    order_index: int = Field(..., ge=0)


class RouteStopsReorder(CamelModel):
    """Payload for PUT /api/routes/{id}/stops."""
    stops: list[StopOrder] = Field(..., min_length=1)


class RouteStopOut(CamelModel):
    id: str
    route_id: str
    point_id: str
    order_index: int
    planned_window: str | None
    notes: str | None
    point: CollectionPointBrief | None = None


class RouteOut(CamelModel):
    id: str
    name: str
    description: str | None
    is_active: bool
    created_at: datetime


class RouteDetail(RouteOut):
    stops: list[RouteStopOut] = []


# ── Vehicles ─────────────────────────────────────────────────

class VehicleCreate(CamelModel):
    plate: str = Field(..., min_length=1, max_length=20)
    model: str | None = Field(None, max_length=100)
    capacity_kg: float | None = Field(None, gt=0)


class VehicleUpdate(CamelModel):
    plate: str | None = Field(None, min_length=1, max_length=20)
    model: str | None = Field(None, max_length=100)
    capacity_kg: float | None = Field(None, gt=0)


class VehicleOut(CamelModel):
    id: str
    plate: str
    model: str | None
    capacity_kg: float | None
    is_active: bool
    created_at: datetime


# ── Employees ────────────────────────────────────────────────

class EmployeeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    cpf: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=30)


class EmployeeUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    cpf: str | None = Field(None, max_length=20)
    phone: str | None = Field(None, max_length=30)


class EmployeeOut(CamelModel):
    id: str
    name: str
    cpf: str | None
    phone: str | None
    is_active: bool
    created_at: datetime


# ── Teams ────────────────────────────────────────────────────

class TeamCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)


class TeamUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)


class TeamMemberCreate(CamelModel):
    employee_id: str = Field(..., min_length=1)
    role: str | None = Field(None, max_length=50)


class TeamMemberOut(CamelModel):
    id: str
    team_id: str
    employee_id: str
    role: str | None
    employee: EmployeeOut | None = None


class TeamOut(CamelModel):
    id: str
    name: str
    is_active: bool
    created_at: datetime
    members: list[TeamMemberOut] = []


# ── Destinations ─────────────────────────────────────────────

class DestinationCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: DestinationType
    address: str | None = Field(None, max_length=500)
    contact: str | None = None
    phone: str | None = None


class DestinationUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    type: DestinationType | None = None
    address: str | None = Field(None, max_length=500)
    contact: str | None = None
    phone: str | None = None


class DestinationOut(CamelModel):
    id: str
    name: str
    type: DestinationType
    address: str | None
    contact: str | None
    phone: str | None
    is_active: bool
    created_at: datetime


# ── Users (admin) ────────────────────────────────────────────

class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole
    employee_id: str | None = None


class UserUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    role: UserRole | None = None
    is_active: bool | None = None
    employee_id: str | None = None


class UserAdminOut(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole
    is_active: bool
    employee_id: str | None
    created_at: datetime
