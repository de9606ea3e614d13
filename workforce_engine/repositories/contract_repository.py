"""근로 계약 레포지토리 — 계약 관련 DB 쿼리 담당.

Contract Repository — Contract lookups used by materialization and the
check-in schedule fallback.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.models.contract import Contract
from workforce_engine.models.enums import ContractStatus
from workforce_engine.repositories.base import BaseRepository


class ContractRepository(BaseRepository[Contract]):
    """근로 계약 레포지토리.

    Extends:
        BaseRepository[Contract]
    """

    def __init__(self) -> None:
        super().__init__(Contract)

    async def get_active_for_staff(
        self,
        db: AsyncSession,
        staff_id: UUID,
        on_date: date,
    ) -> Contract | None:
        """해당 날짜에 유효한 직원의 활성 계약을 조회합니다.

        Return the staff member's ACTIVE contract covering on_date, preferring
        the most recently started one when several overlap.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            staff_id: 직원 UUID (Employee UUID)
            on_date: 기준일 (Date the contract must cover)

        Returns:
            Contract | None: 유효 계약 또는 None (Covering contract or None)
        """
        query: Select = (
            select(Contract)
            .where(Contract.staff_id == staff_id)
            .where(Contract.status == ContractStatus.ACTIVE.value)
            .where(Contract.start_date <= on_date)
            .where(or_(Contract.end_date.is_(None), Contract.end_date >= on_date))
            .order_by(Contract.start_date.desc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


# 싱글턴 인스턴스 — Singleton instance
contract_repository: ContractRepository = ContractRepository()
