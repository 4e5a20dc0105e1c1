"""Dashboard report: read-only aggregation over runs, events and stock.

The report is composed of several independent queries; they are not
taken from one snapshot, so figures may drift slightly if workflow
writes happen while the report is built.
"""

import datetime as dt
import math
from collections import Counter

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coletaops.config import settings
from coletaops.models.assignment import RouteAssignment
from coletaops.models.collection_run import (
    CollectedItem,
    CollectionEvent,
    CollectionRun,
    EventStatus,
    RunStatus,
)
from coletaops.models.stock import StockLot
from coletaops.schemas.report import (
    CollectionTotals,
    MaterialCollected,
    ReportPeriod,
    ReportSummary,
    SkipReasonCount,
    StockOnHand,
    TeamProductivity,
)
from coletaops.schemas.stock import MovementWithLot
from coletaops.services.scoping import runs_in_org
from coletaops.services.stock import day_start, list_movements

UNINFORMED_REASON = "Not informed"


def completion_rate(completed: int, total: int) -> int:
    """Completed stops as a whole percentage, half rounded up."""
    if total == 0:
        return 0
    return math.floor(completed * 100 / total + 0.5)


async def build_summary(
    db: AsyncSession,
    org_id: str,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
) -> ReportSummary:
    """Aggregate the collection, stock and movement figures for a period.

    Runs are selected by creation time; ``date_to`` includes that whole day.
    """
    stmt = runs_in_org(org_id).options(
        selectinload(CollectionRun.assignment).selectinload(RouteAssignment.team),
        selectinload(CollectionRun.events)
        .selectinload(CollectionEvent.items)
        .selectinload(CollectedItem.material_type),
    )
    if date_from:
        stmt = stmt.where(CollectionRun.created_at >= day_start(date_from))
    if date_to:
        stmt = stmt.where(CollectionRun.created_at < day_start(date_to + dt.timedelta(days=1)))
    runs = list((await db.execute(stmt)).scalars().all())

    # ── Collection ────────────────────────────────────────────
    total_stops = completed_stops = skipped_stops = 0
    total_kg = 0.0
    by_material: dict[str, dict] = {}
    by_team: dict[str, dict] = {}
    skip_reasons: Counter[str] = Counter()

    for run in runs:
        team = run.assignment.team
        team_stats = by_team.setdefault(
            team.id,
            {"team_id": team.id, "name": team.name, "runs": 0, "stops_completed": 0, "total_kg": 0.0},
        )
        team_stats["runs"] += 1

        for event in run.events:
            total_stops += 1
            if event.status == EventStatus.COLETADO:
                completed_stops += 1
                team_stats["stops_completed"] += 1
                for item in event.items:
                    material = by_material.setdefault(
                        item.material_type_id,
                        {
                            "material_type_id": item.material_type_id,
                            "name": item.material_type.name,
                            "category": item.material_type.category,
                            "total_kg": 0.0,
                        },
                    )
                    material["total_kg"] += item.quantity
                    team_stats["total_kg"] += item.quantity
                    total_kg += item.quantity
            elif event.status == EventStatus.NAO_COLETADO:
                skipped_stops += 1
                skip_reasons[event.skip_reason or UNINFORMED_REASON] += 1

    # ── Stock ─────────────────────────────────────────────────
    available = await db.scalar(
        select(func.coalesce(func.sum(StockLot.available_kg), 0.0)).where(
            StockLot.org_id == org_id
        )
    )
    movements = await list_movements(
        db,
        org_id,
        date_from=date_from,
        date_to=date_to,
        limit=settings.report_recent_movements,
    )

    return ReportSummary(
        period=ReportPeriod(from_=date_from, to=date_to),
        collection=CollectionTotals(
            total_runs=len(runs),
            completed_runs=sum(1 for run in runs if run.status == RunStatus.CONCLUIDO),
            total_stops=total_stops,
            completed_stops=completed_stops,
            skipped_stops=skipped_stops,
            completion_rate=completion_rate(completed_stops, total_stops),
            total_collected_kg=round(total_kg, 2),
        ),
        collected_by_material=[
            MaterialCollected(**{**m, "total_kg": round(m["total_kg"], 2)})
            for m in sorted(by_material.values(), key=lambda m: m["total_kg"], reverse=True)
        ],
        team_productivity=[
            TeamProductivity(**{**t, "total_kg": round(t["total_kg"], 2)})
            for t in sorted(by_team.values(), key=lambda t: t["total_kg"], reverse=True)
        ],
        stock=StockOnHand(total_available_kg=round(available or 0.0, 2)),
        recent_movements=[MovementWithLot.model_validate(m) for m in movements],
        skip_reasons=[
            SkipReasonCount(reason=reason, count=count)
            for reason, count in skip_reasons.most_common()
        ],
    )
