"""Scheduling router: route assignments.

Endpoints:
    GET    /api/assignments          List assignments (optional from/to date range)
    POST   /api/assignments          Schedule a route for a team and vehicle
    GET    /api/assignments/{id}     Assignment with route stops and runs
    DELETE /api/assignments/{id}     Delete (only if never executed)
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.user import User
from coletaops.schemas.assignment import AssignmentCreate, AssignmentDetail
from coletaops.schemas.common import ApiResponse
from coletaops.services import scheduling

router = APIRouter()


@router.get("", response_model=ApiResponse[list[AssignmentDetail]])
async def list_assignments(
    date_from: dt.date | None = Query(None, alias="from"),
    date_to: dt.date | None = Query(None, alias="to"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("assignments:read")),
):
    assignments = await scheduling.list_assignments(db, user.org_id, date_from, date_to)
    return ApiResponse(data=[AssignmentDetail.model_validate(a) for a in assignments])


@router.post("", response_model=ApiResponse[AssignmentDetail], status_code=status.HTTP_201_CREATED)
async def create_assignment(
    body: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("assignments:create")),
):
    assignment = await scheduling.create_assignment(db, user, body)
    return ApiResponse(data=AssignmentDetail.model_validate(assignment))


@router.get("/{assignment_id}", response_model=ApiResponse[AssignmentDetail])
async def get_assignment(
    assignment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("assignments:read")),
):
    assignment = await scheduling.get_assignment(db, user.org_id, assignment_id)
    return ApiResponse(data=AssignmentDetail.model_validate(assignment))


@router.delete("/{assignment_id}", response_model=ApiResponse[dict])
async def delete_assignment(
    assignment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("assignments:delete")),
):
    await scheduling.delete_assignment(db, user, assignment_id)
    return ApiResponse(data={"deleted": True})
