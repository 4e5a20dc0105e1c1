"""Common schemas used across the application."""

from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for every API model: snake_case in Python, camelCase on the wire.

    Requests accept either spelling; responses are rendered with aliases.
    """
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope.

    Usage:
        response_model=ApiResponse[RunOut]

    Returns:
        {"success": true, "data": {...}}
    """
    success: bool = True
    data: T


# ── Small references embedded in other responses ─────────────

class NamedRef(CamelModel):
    id: str
    name: str


class MaterialTypeBrief(CamelModel):
    id: str
    name: str
    category: str | None = None
    default_unit: str = "kg"


class CollectionPointBrief(CamelModel):
    id: str
    name: str
    address: str
    lat: float | None = None
    lng: float | None = None


class VehicleBrief(CamelModel):
    id: str
    plate: str
    model: str | None = None
