"""앱 스케줄 교환 라우터 — 내 근무 교환 API.

App Shift Trade Router — Employees propose trades and answer the ones
addressed to them.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import get_caller
from workforce_engine.database import get_db
from workforce_engine.schemas.common import PaginatedResponse
from workforce_engine.schemas.schedule_trade import TradeCreate, TradeRespond, TradeResponse
from workforce_engine.services.org_context import CallerContext
from workforce_engine.services.shift_trade_service import shift_trade_service

router: APIRouter = APIRouter()


@router.post("", response_model=TradeResponse, status_code=status.HTTP_201_CREATED)
async def create_trade(
    data: TradeCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> dict:
    """스케줄 교환을 요청합니다.

    Offer one of my schedule entries in exchange for a colleague's entry.

    Args:
        data: 교환 요청 데이터 (Trade payload)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 직원 (Authenticated employee)

    Returns:
        dict: 생성된 교환 요청 (Created trade request)
    """
    trade = await shift_trade_service.create_trade(db, caller, data)
    await db.commit()
    return shift_trade_service.build_response(trade)


@router.get("", response_model=PaginatedResponse)
async def list_my_trades(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
    status: Annotated[str | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """내가 요청했거나 받은 교환 요청 목록 (Trades I requested or received)."""
    trades, total = await shift_trade_service.get_my_trades(db, caller, status, page, per_page)
    return {
        "items": [shift_trade_service.build_response(t) for t in trades],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.post("/{trade_id}/respond", response_model=TradeResponse)
async def respond_trade(
    trade_id: UUID,
    data: TradeRespond,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> dict:
    """받은 교환 요청을 수락 또는 거절합니다.

    Accept or reject a trade addressed to me.

    Args:
        trade_id: 교환 요청 UUID (Trade request UUID)
        data: 응답 (ACCEPT or REJECT, optional comment)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 직원 (Authenticated employee)

    Returns:
        dict: 갱신된 교환 요청 (Updated trade request)
    """
    trade = await shift_trade_service.respond_trade(db, caller, trade_id, data)
    await db.commit()
    return shift_trade_service.build_response(trade)
