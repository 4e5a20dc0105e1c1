"""Team catalog router: crews and their members.

Endpoints:
    GET    /api/teams                            List active teams with members
    POST   /api/teams                            Create
    GET    /api/teams/{id}                       Team with members
    PUT    /api/teams/{id}                       Rename
    DELETE /api/teams/{id}                       Deactivate
    POST   /api/teams/{id}/members               Add an employee to the team
    DELETE /api/teams/{id}/members/{member_id}   Remove a member
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models.employee import Employee
from coletaops.models.team import Team, TeamMember
from coletaops.models.user import User
from coletaops.schemas.catalog import (
    TeamCreate,
    TeamMemberCreate,
    TeamMemberOut,
    TeamOut,
    TeamUpdate,
)
from coletaops.schemas.common import ApiResponse
from coletaops.services.scoping import get_owned

router = APIRouter()

_MEMBERS_LOAD = selectinload(Team.members).selectinload(TeamMember.employee)


async def _load_team(db: AsyncSession, org_id: str, team_id: str) -> Team:
    result = await db.execute(
        select(Team)
        .where(Team.id == team_id, Team.org_id == org_id)
        .options(_MEMBERS_LOAD)
        .execution_options(populate_existing=True)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise ResourceNotFoundError("Team")
    return team


@router.get("", response_model=ApiResponse[list[TeamOut]])
async def list_teams(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:read")),
):
    result = await db.execute(
        select(Team)
        .where(Team.org_id == user.org_id, Team.is_active == True)  # noqa: E712
        .options(_MEMBERS_LOAD)
        .order_by(Team.name)
    )
    return ApiResponse(data=[TeamOut.model_validate(t) for t in result.scalars().all()])


@router.post("", response_model=ApiResponse[TeamOut], status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:create")),
):
    team = Team(org_id=user.org_id, name=body.name)
    db.add(team)
    await db.flush()
    return ApiResponse(data=TeamOut.model_validate(await _load_team(db, user.org_id, team.id)))


@router.get("/{team_id}", response_model=ApiResponse[TeamOut])
async def get_team(
    team_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:read")),
):
    return ApiResponse(data=TeamOut.model_validate(await _load_team(db, user.org_id, team_id)))


@router.put("/{team_id}", response_model=ApiResponse[TeamOut])
async def update_team(
    team_id: str,
    body: TeamUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:update")),
):
    team = await _load_team(db, user.org_id, team_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(team, key, value)
    await db.flush()
    return ApiResponse(data=TeamOut.model_validate(team))


@router.delete("/{team_id}", response_model=ApiResponse[TeamOut])
async def delete_team(
    team_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:delete")),
):
    team = await _load_team(db, user.org_id, team_id)
    team.is_active = False
    await db.flush()
    return ApiResponse(data=TeamOut.model_validate(team))


# ── Members ──────────────────────────────────────────────────

@router.post(
    "/{team_id}/members",
    response_model=ApiResponse[TeamMemberOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    team_id: str,
    body: TeamMemberCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:update")),
):
    team = await _load_team(db, user.org_id, team_id)
    employee = await get_owned(db, Employee, body.employee_id, user.org_id, "Employee")
    if any(m.employee_id == employee.id for m in team.members):
        raise BusinessLogicError("This employee is already a member of the team")

    member = TeamMember(team_id=team.id, employee_id=employee.id, role=body.role)
    db.add(member)
    await db.flush()
    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.id == member.id)
        .options(selectinload(TeamMember.employee))
    )
    return ApiResponse(data=TeamMemberOut.model_validate(result.scalar_one()))


@router.delete("/{team_id}/members/{member_id}", response_model=ApiResponse[dict])
async def remove_member(
    team_id: str,
    member_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("teams:update")),
):
    team = await _load_team(db, user.org_id, team_id)
    member = next((m for m in team.members if m.id == member_id), None)
    if member is None:
        raise ResourceNotFoundError("Team member")
    await db.delete(member)
    await db.flush()
    return ApiResponse(data={"deleted": True})
