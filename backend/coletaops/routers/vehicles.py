"""Vehicle catalog router.

Endpoints:
    GET    /api/vehicles        List active vehicles
    POST   /api/vehicles        Create
    GET    /api/vehicles/{id}   Get
    PUT    /api/vehicles/{id}   Update
    DELETE /api/vehicles/{id}   Deactivate
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.user import User
from coletaops.models.vehicle import Vehicle
from coletaops.schemas.catalog import VehicleCreate, VehicleOut, VehicleUpdate
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()


@router.get("", response_model=ApiResponse[list[VehicleOut]])
async def list_vehicles(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("vehicles:read")),
):
    result = await db.execute(
        select(Vehicle)
        .where(Vehicle.org_id == user.org_id, Vehicle.is_active == True)  # noqa: E712
        .order_by(Vehicle.plate)
    )
    return ApiResponse(data=[VehicleOut.model_validate(v) for v in result.scalars().all()])


@router.post("", response_model=ApiResponse[VehicleOut], status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    body: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("vehicles:create")),
):
    vehicle = Vehicle(org_id=user.org_id, **body.model_dump())
    vehicle.plate = vehicle.plate.upper()
    db.add(vehicle)
    await db.flush()
    await db.refresh(vehicle)
    return ApiResponse(data=VehicleOut.model_validate(vehicle))


@router.get("/{vehicle_id}", response_model=ApiResponse[VehicleOut])
async def get_vehicle(
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("vehicles:read")),
):
    vehicle = await get_owned(db, Vehicle, vehicle_id, user.org_id, "Vehicle")
    return ApiResponse(data=VehicleOut.model_validate(vehicle))


@router.put("/{vehicle_id}", response_model=ApiResponse[VehicleOut])
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("vehicles:update")),
):
    vehicle = await get_owned(db, Vehicle, vehicle_id, user.org_id, "Vehicle")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(vehicle, key, value.upper() if key == "plate" and value else value)
    await db.flush()
    return ApiResponse(data=VehicleOut.model_validate(vehicle))


@router.delete("/{vehicle_id}", response_model=ApiResponse[VehicleOut])
async def delete_vehicle(
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("vehicles:delete")),
):
    vehicle = await get_owned(db, Vehicle, vehicle_id, user.org_id, "Vehicle")
    vehicle.is_active = False
    await db.flush()
    return ApiResponse(data=VehicleOut.model_validate(vehicle))
