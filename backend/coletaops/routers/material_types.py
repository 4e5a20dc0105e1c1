"""Material type catalog router.

Endpoints:
    GET    /api/material-types        List active material types
    POST   /api/material-types        Create
    GET    /api/material-types/{id}   Get
    PUT    /api/material-types/{id}   Update
    DELETE /api/material-types/{id}   Deactivate
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.middleware.exceptions import BusinessLogicError
from coletaops.models.material_type import MaterialType
from coletaops.models.user import User
from coletaops.schemas.catalog import MaterialTypeCreate, MaterialTypeOut, MaterialTypeUpdate
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()


async def _ensure_unique_name(
    db: AsyncSession, org_id: str, name: str, exclude_id: str | None = None
) -> None:
    query = select(MaterialType.id).where(
        MaterialType.org_id == org_id, MaterialType.name == name
    )
    if exclude_id:
        query = query.where(MaterialType.id != exclude_id)
    if await db.scalar(query):
        raise BusinessLogicError("A material type with this name already exists")


@router.get("", response_model=ApiResponse[list[MaterialTypeOut]])
async def list_material_types(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("material-types:read")),
):
    result = await db.execute(
        select(MaterialType)
        .where(MaterialType.org_id == user.org_id, MaterialType.is_active == True)  # noqa: E712
        .order_by(MaterialType.name)
    )
    return ApiResponse(data=[MaterialTypeOut.model_validate(m) for m in result.scalars().all()])


@router.post("", response_model=ApiResponse[MaterialTypeOut], status_code=status.HTTP_201_CREATED)
async def create_material_type(
    body: MaterialTypeCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("material-types:create")),
):
    await _ensure_unique_name(db, user.org_id, body.name)
    material = MaterialType(org_id=user.org_id, **body.model_dump())
    db.add(material)
    await db.flush()
    await db.refresh(material)
    return ApiResponse(data=MaterialTypeOut.model_validate(material))


@router.get("/{material_type_id}", response_model=ApiResponse[MaterialTypeOut])
async def get_material_type(
    material_type_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("material-types:read")),
):
    material = await get_owned(db, MaterialType, material_type_id, user.org_id, "Material type")
    return ApiResponse(data=MaterialTypeOut.model_validate(material))


@router.put("/{material_type_id}", response_model=ApiResponse[MaterialTypeOut])
async def update_material_type(
    material_type_id: str,
    body: MaterialTypeUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("material-types:update")),
):
    material = await get_owned(db, MaterialType, material_type_id, user.org_id, "Material type")
    updates = body.model_dump(exclude_unset=True)
    if updates.get("name"):
        await _ensure_unique_name(db, user.org_id, updates["name"], exclude_id=material.id)
    for key, value in updates.items():
        setattr(material, key, value)
    await db.flush()
    return ApiResponse(data=MaterialTypeOut.model_validate(material))


@router.delete("/{material_type_id}", response_model=ApiResponse[MaterialTypeOut])
async def delete_material_type(
    material_type_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("material-types:delete")),
):
    """Soft delete: lots and past collections keep referencing the type."""
    material = await get_owned(db, MaterialType, material_type_id, user.org_id, "Material type")
    material.is_active = False
    await db.flush()
    return ApiResponse(data=MaterialTypeOut.model_validate(material))
