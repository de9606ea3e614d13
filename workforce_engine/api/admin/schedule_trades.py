"""관리자 스케줄 교환 라우터 — 교환 승인 API.

Admin Shift Trade Router — Managers review trades awaiting approval.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import require_manager
from workforce_engine.database import get_db
from workforce_engine.schemas.common import PaginatedResponse
from workforce_engine.schemas.schedule_trade import TradeDecision, TradeResponse
from workforce_engine.services.org_context import CallerContext
from workforce_engine.services.shift_trade_service import shift_trade_service

router: APIRouter = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def list_trades(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
    status: Annotated[str | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """회사 교환 요청 목록 (Company trades, e.g. status=AWAITING_APPROVAL)."""
    trades, total = await shift_trade_service.get_trades(db, caller, status, page, per_page)
    return {
        "items": [shift_trade_service.build_response(t) for t in trades],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.post("/{trade_id}/decision", response_model=TradeResponse)
async def decide_trade(
    trade_id: UUID,
    data: TradeDecision,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
) -> dict:
    """승인 대기 중인 교환을 승인 또는 거절합니다.

    Approve (executing the swap) or reject a trade awaiting approval.

    Args:
        trade_id: 교환 요청 UUID (Trade request UUID)
        data: 결정 (ACCEPT or REJECT, optional comment)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 관리자 (Authenticated manager)

    Returns:
        dict: 갱신된 교환 요청 (Updated trade request)
    """
    trade = await shift_trade_service.approve_trade(db, caller, trade_id, data)
    await db.commit()
    return shift_trade_service.build_response(trade)
