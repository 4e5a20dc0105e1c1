"""User management router (admin).

Endpoints:
    GET    /api/users        List users of the organization
    POST   /api/users        Create a login with a role
    GET    /api/users/{id}   Get
    PUT    /api/users/{id}   Update name, role, active flag or employee link
    DELETE /api/users/{id}   Deactivate
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.auth.password import hash_password
from coletaops.database import get_db
from coletaops.middleware.exceptions import BusinessLogicError
from coletaops.models.employee import Employee
from coletaops.models.user import User
from coletaops.schemas.catalog import UserAdminOut, UserCreate, UserUpdate
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned
from coletaops.utils.activity import log_activity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse[list[UserAdminOut]])
async def list_users(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:read")),
):
    result = await db.execute(
        select(User).where(User.org_id == user.org_id).order_by(User.name)
    )
    return ApiResponse(data=[UserAdminOut.model_validate(u) for u in result.scalars().all()])


@router.post("", response_model=ApiResponse[UserAdminOut], status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:create")),
):
    email = body.email.lower()
    # Emails are unique across organizations (login is by email only)
    if await db.scalar(select(func.count(User.id)).where(User.email == email)):
        raise BusinessLogicError("Email already registered")
    if body.employee_id:
        await get_owned(db, Employee, body.employee_id, user.org_id, "Employee")

    new_user = User(
        email=email,
        hashed_password=hash_password(body.password),
        name=body.name,
        role=body.role,
        org_id=user.org_id,
        employee_id=body.employee_id,
    )
    db.add(new_user)
    await db.flush()

    await log_activity(
        db, user,
        action="created",
        entity_type="user",
        entity_id=new_user.id,
        summary=f"{new_user.email} as {new_user.role.value}",
    )
    logger.info("User %s created with role %s", new_user.id, new_user.role.value)
    return ApiResponse(data=UserAdminOut.model_validate(new_user))


@router.get("/{user_id}", response_model=ApiResponse[UserAdminOut])
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:read")),
):
    target = await get_owned(db, User, user_id, user.org_id, "User")
    return ApiResponse(data=UserAdminOut.model_validate(target))


@router.put("/{user_id}", response_model=ApiResponse[UserAdminOut])
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:update")),
):
    target = await get_owned(db, User, user_id, user.org_id, "User")
    updates = body.model_dump(exclude_unset=True)
    if updates.get("employee_id"):
        await get_owned(db, Employee, updates["employee_id"], user.org_id, "Employee")
    if target.id == user.id and updates.get("is_active") is False:
        raise BusinessLogicError("You cannot deactivate your own account")

    for key, value in updates.items():
        setattr(target, key, value)
    await db.flush()

    await log_activity(
        db, user,
        action="updated",
        entity_type="user",
        entity_id=target.id,
        details={k: (v.value if hasattr(v, "value") else v) for k, v in updates.items()},
    )
    return ApiResponse(data=UserAdminOut.model_validate(target))


@router.delete("/{user_id}", response_model=ApiResponse[UserAdminOut])
async def deactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:delete")),
):
    target = await get_owned(db, User, user_id, user.org_id, "User")
    if target.id == user.id:
        raise BusinessLogicError("You cannot deactivate your own account")
    target.is_active = False
    await db.flush()

    await log_activity(
        db, user,
        action="deactivated",
        entity_type="user",
        entity_id=target.id,
    )
    return ApiResponse(data=UserAdminOut.model_validate(target))
