"""Run execution router.

Endpoints:
    GET  /api/runs                                  List runs (status, from/to)
    POST /api/runs/start                            Start a run from an assignment
    GET  /api/runs/{run_id}                         Run with events and sorting batches
    PUT  /api/runs/{run_id}                         Update run notes
    POST /api/runs/{run_id}/stops/{stop_id}/arrive  Crew arrived at a stop
    POST /api/runs/{run_id}/stops/{stop_id}/collect Register (replace) collected items
    POST /api/runs/{run_id}/stops/{stop_id}/close   Close a stop as collected / not collected
    POST /api/runs/{run_id}/finish                  Finish the run
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.collection_run import EventStatus, RunStatus
from coletaops.models.user import User
from coletaops.schemas.common import ApiResponse
from coletaops.schemas.run import (
    ArriveRequest,
    CloseStopRequest,
    EventOut,
    RegisterItemsRequest,
    RunDetail,
    RunOut,
    RunUpdate,
    StartRunRequest,
)
from coletaops.services import runs as run_service

router = APIRouter()


# ── Runs ─────────────────────────────────────────────────────

@router.get("", response_model=ApiResponse[list[RunOut]])
async def list_runs(
    run_status: RunStatus | None = Query(None, alias="status"),
    date_from: dt.date | None = Query(None, alias="from"),
    date_to: dt.date | None = Query(None, alias="to"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:read")),
):
    runs = await run_service.list_runs(db, user.org_id, run_status, date_from, date_to)
    return ApiResponse(data=[RunOut.model_validate(r) for r in runs])


@router.post("/start", response_model=ApiResponse[RunDetail], status_code=status.HTTP_201_CREATED)
async def start_run(
    body: StartRunRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:execute")),
):
    run = await run_service.start_run(db, user, body.assignment_id)
    return ApiResponse(data=RunDetail.model_validate(run))


@router.get("/{run_id}", response_model=ApiResponse[RunDetail])
async def get_run(
    run_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:read")),
):
    run = await run_service.get_run(db, user.org_id, run_id)
    return ApiResponse(data=RunDetail.model_validate(run))


@router.put("/{run_id}", response_model=ApiResponse[RunDetail])
async def update_run(
    run_id: str,
    body: RunUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:update")),
):
    run = await run_service.update_run_notes(db, user, run_id, body.notes)
    return ApiResponse(data=RunDetail.model_validate(run))


@router.post("/{run_id}/finish", response_model=ApiResponse[RunDetail])
async def finish_run(
    run_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:execute")),
):
    run = await run_service.finish_run(db, user, run_id)
    return ApiResponse(data=RunDetail.model_validate(run))


# ── Stops ────────────────────────────────────────────────────

@router.post("/{run_id}/stops/{stop_id}/arrive", response_model=ApiResponse[EventOut])
async def arrive(
    run_id: str,
    stop_id: str,
    body: ArriveRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:execute")),
):
    body = body or ArriveRequest()
    event = await run_service.arrive(db, user, run_id, stop_id, body.lat, body.lng)
    return ApiResponse(data=EventOut.model_validate(event))


@router.post("/{run_id}/stops/{stop_id}/collect", response_model=ApiResponse[EventOut])
async def collect(
    run_id: str,
    stop_id: str,
    body: RegisterItemsRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:execute")),
):
    event = await run_service.register_collected_items(
        db, user, run_id, stop_id, body.items, body.notes
    )
    return ApiResponse(data=EventOut.model_validate(event))


@router.post("/{run_id}/stops/{stop_id}/close", response_model=ApiResponse[EventOut])
async def close_stop(
    run_id: str,
    stop_id: str,
    body: CloseStopRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("runs:execute")),
):
    event = await run_service.close_stop(
        db, user, run_id, stop_id, EventStatus(body.status), body.skip_reason
    )
    return ApiResponse(data=EventOut.model_validate(event))
