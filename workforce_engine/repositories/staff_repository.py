"""직원 디렉터리 레포지토리 — 관리자 조회 담당.

Staff Repository — Looks up the managers eligible to approve requests and
receive manager alerts for a company or store.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.models.enums import MANAGER_ROLES, StaffRole
from workforce_engine.models.user import StaffMember
from workforce_engine.repositories.base import BaseRepository


class StaffRepository(BaseRepository[StaffMember]):
    """직원 레포지토리.

    Extends:
        BaseRepository[StaffMember]
    """

    def __init__(self) -> None:
        super().__init__(StaffMember)

    async def get_managers(
        self,
        db: AsyncSession,
        company_id: UUID,
        store_id: UUID | None = None,
    ) -> Sequence[StaffMember]:
        """회사(또는 매장)의 활성 관리자 목록을 조회합니다.

        Active managers of the company. When store_id is given, company
        admins are always included while manager/store_manager roles are
        limited to that store or to company-wide managers (no home store).

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            company_id: 회사 UUID (Company UUID)
            store_id: 매장 UUID, 선택 (Optional store UUID)

        Returns:
            Sequence[StaffMember]: 관리자 목록 (Eligible managers)
        """
        query: Select = (
            select(StaffMember)
            .where(StaffMember.company_id == company_id)
            .where(StaffMember.is_active.is_(True))
            .where(StaffMember.role.in_(sorted(MANAGER_ROLES)))
        )
        if store_id is not None:
            query = query.where(
                or_(
                    StaffMember.role == StaffRole.COMPANY_ADMIN.value,
                    StaffMember.store_id == store_id,
                    StaffMember.store_id.is_(None),
                )
            )

        result = await db.execute(query.order_by(StaffMember.created_at))
        return result.scalars().all()


# 싱글턴 인스턴스 — Singleton instance
staff_repository: StaffRepository = StaffRepository()
