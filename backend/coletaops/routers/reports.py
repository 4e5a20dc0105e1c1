"""Reports router: dashboard summary."""

import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.user import User
from coletaops.schemas.common import ApiResponse
from coletaops.schemas.report import ReportSummary
from coletaops.services.reports import build_summary

router = APIRouter()


@router.get("/summary", response_model=ApiResponse[ReportSummary])
async def report_summary(
    date_from: dt.date | None = Query(None, alias="from"),
    date_to: dt.date | None = Query(None, alias="to"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:view")),
):
    """Collection, productivity and stock figures for a date range (inclusive)."""
    summary = await build_summary(db, user.org_id, date_from, date_to)
    return ApiResponse(data=summary)
