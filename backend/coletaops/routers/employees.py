"""Employee catalog router.

Endpoints:
    GET    /api/employees        List active employees
    POST   /api/employees        Create
    GET    /api/employees/{id}   Get
    PUT    /api/employees/{id}   Update
    DELETE /api/employees/{id}   Deactivate
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.employee import Employee
from coletaops.models.user import User
from coletaops.schemas.catalog import EmployeeCreate, EmployeeOut, EmployeeUpdate
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()


@router.get("", response_model=ApiResponse[list[EmployeeOut]])
async def list_employees(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("employees:read")),
):
    result = await db.execute(
        select(Employee)
        .where(Employee.org_id == user.org_id, Employee.is_active == True)  # noqa: E712
        .order_by(Employee.name)
    )
    return ApiResponse(data=[EmployeeOut.model_validate(e) for e in result.scalars().all()])


@router.post("", response_model=ApiResponse[EmployeeOut], status_code=status.HTTP_201_CREATED)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("employees:create")),
):
    employee = Employee(org_id=user.org_id, **body.model_dump())
    db.add(employee)
    await db.flush()
    await db.refresh(employee)
    return ApiResponse(data=EmployeeOut.model_validate(employee))


@router.get("/{employee_id}", response_model=ApiResponse[EmployeeOut])
async def get_employee(
    employee_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("employees:read")),
):
    employee = await get_owned(db, Employee, employee_id, user.org_id, "Employee")
    return ApiResponse(data=EmployeeOut.model_validate(employee))


@router.put("/{employee_id}", response_model=ApiResponse[EmployeeOut])
async def update_employee(
    employee_id: str,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("employees:update")),
):
    employee = await get_owned(db, Employee, employee_id, user.org_id, "Employee")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(employee, key, value)
    await db.flush()
    return ApiResponse(data=EmployeeOut.model_validate(employee))


@router.delete("/{employee_id}", response_model=ApiResponse[EmployeeOut])
async def delete_employee(
    employee_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("employees:delete")),
):
    employee = await get_owned(db, Employee, employee_id, user.org_id, "Employee")
    employee.is_active = False
    await db.flush()
    return ApiResponse(data=EmployeeOut.model_validate(employee))
