"""Stock router: lots, movements and the stock summary.

Endpoints:
    GET  /api/stock/lots                List lots (materialTypeId, hasStock)
    POST /api/stock/lots                Manual stock entry
    GET  /api/stock/lots/{lot_id}       Lot with its movements
    GET  /api/stock/lots/{lot_id}/qr    QR label (SVG)
    GET  /api/stock/movements           List movements (lotId, type, from/to)
    POST /api/stock/movements           Record an IN / OUT / ADJUST movement
    GET  /api/stock/summary             Stock on hand per material
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from coletaops.auth.deps import require_permission
from coletaops.database import get_db
from coletaops.models.stock import MovementType
from coletaops.models.user import User
from coletaops.schemas.common import ApiResponse
from coletaops.schemas.stock import (
    LotCreate,
    LotDetail,
    LotOut,
    MovementCreate,
    MovementWithLot,
    StockSummary,
)
from coletaops.services import stock

router = APIRouter()


# ── Lots ─────────────────────────────────────────────────────

@router.get("/lots", response_model=ApiResponse[list[LotOut]])
async def list_lots(
    material_type_id: str | None = Query(None, alias="materialTypeId"),
    has_stock: bool = Query(False, alias="hasStock"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:read")),
):
    lots = await stock.list_lots(db, user.org_id, material_type_id, has_stock)
    return ApiResponse(data=[LotOut.model_validate(lot) for lot in lots])


@router.post("/lots", response_model=ApiResponse[LotDetail], status_code=status.HTTP_201_CREATED)
async def create_lot(
    body: LotCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:create")),
):
    lot = await stock.create_lot(db, user, body)
    return ApiResponse(data=LotDetail.model_validate(lot))


@router.get("/lots/{lot_id}", response_model=ApiResponse[LotDetail])
async def get_lot(
    lot_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:read")),
):
    lot = await stock.get_lot(db, user.org_id, lot_id)
    return ApiResponse(data=LotDetail.model_validate(lot))


@router.get("/lots/{lot_id}/qr")
async def lot_qr(
    lot_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:read")),
):
    """QR label for printing and sticking on the lot's bags."""
    lot = await stock.get_lot(db, user.org_id, lot_id)
    return Response(content=stock.lot_label_svg(lot), media_type="image/svg+xml")


# ── Movements ────────────────────────────────────────────────

@router.get("/movements", response_model=ApiResponse[list[MovementWithLot]])
async def list_movements(
    lot_id: str | None = Query(None, alias="lotId"),
    movement_type: MovementType | None = Query(None, alias="type"),
    date_from: dt.date | None = Query(None, alias="from"),
    date_to: dt.date | None = Query(None, alias="to"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:read")),
):
    movements = await stock.list_movements(
        db, user.org_id, lot_id, movement_type, date_from, date_to
    )
    return ApiResponse(data=[MovementWithLot.model_validate(m) for m in movements])


@router.post(
    "/movements",
    response_model=ApiResponse[MovementWithLot],
    status_code=status.HTTP_201_CREATED,
)
async def record_movement(
    body: MovementCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:movement")),
):
    movement = await stock.record_movement(db, user, body)
    return ApiResponse(data=MovementWithLot.model_validate(movement))


# ── Summary ──────────────────────────────────────────────────

@router.get("/summary", response_model=ApiResponse[StockSummary])
async def stock_summary(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stock:read")),
):
    return ApiResponse(data=await stock.stock_summary(db, user.org_id))
