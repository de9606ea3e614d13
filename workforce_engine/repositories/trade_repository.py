"""스케줄 교환 레포지토리 — 교환 요청 DB 쿼리 담당.

Shift Trade Repository — Trade request lookups. State changes go through
BaseRepository.update_if_status so concurrent transitions are serialized
by the database.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.models.enums import OPEN_TRADE_STATUSES
from workforce_engine.models.schedule import ShiftTradeRequest
from workforce_engine.repositories.base import BaseRepository


class TradeRepository(BaseRepository[ShiftTradeRequest]):
    """스케줄 교환 요청 레포지토리.

    Extends:
        BaseRepository[ShiftTradeRequest]
    """

    def __init__(self) -> None:
        super().__init__(ShiftTradeRequest)

    async def get_open_for_schedule(
        self,
        db: AsyncSession,
        requester_schedule_id: UUID,
    ) -> ShiftTradeRequest | None:
        """요청 스케줄에 진행 중인 교환 요청을 조회합니다 (Open request for the source entry)."""
        result = await db.execute(
            select(ShiftTradeRequest)
            .where(ShiftTradeRequest.requester_schedule_id == requester_schedule_id)
            .where(ShiftTradeRequest.status.in_(OPEN_TRADE_STATUSES))
        )
        return result.scalars().first()

    async def get_user_trades(
        self,
        db: AsyncSession,
        user_id: UUID,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[ShiftTradeRequest], int]:
        """내가 요청했거나 받은 교환 요청 목록 (Trades where the user is requester or target)."""
        query: Select = select(ShiftTradeRequest).where(
            or_(ShiftTradeRequest.requester_id == user_id, ShiftTradeRequest.target_id == user_id)
        )
        if status is not None:
            query = query.where(ShiftTradeRequest.status == status)
        query = query.order_by(ShiftTradeRequest.created_at.desc())
        return await self.get_paginated(db, query, page, per_page)

    async def get_by_filters(
        self,
        db: AsyncSession,
        company_id: UUID,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[ShiftTradeRequest], int]:
        """회사의 교환 요청 목록 (Company trades for manager review)."""
        query: Select = select(ShiftTradeRequest).where(ShiftTradeRequest.company_id == company_id)
        if status is not None:
            query = query.where(ShiftTradeRequest.status == status)
        query = query.order_by(ShiftTradeRequest.created_at.desc())
        return await self.get_paginated(db, query, page, per_page)


# 싱글턴 인스턴스 — Singleton instance
trade_repository: TradeRepository = TradeRepository()
