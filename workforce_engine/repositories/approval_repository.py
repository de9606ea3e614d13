"""승인 요청 레포지토리.

Approval Request Repository — Finds the approval request linked to an
attendance record.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.models.approval import ApprovalRequest
from workforce_engine.repositories.base import BaseRepository


class ApprovalRepository(BaseRepository[ApprovalRequest]):
    """승인 요청 레포지토리.

    Extends:
        BaseRepository[ApprovalRequest]
    """

    def __init__(self) -> None:
        super().__init__(ApprovalRequest)

    async def get_for_attendance(
        self,
        db: AsyncSession,
        attendance_id: UUID,
        approval_type: str,
    ) -> ApprovalRequest | None:
        """근태 기록에 연결된 승인 요청을 조회합니다 (Approval request for an attendance record)."""
        result = await db.execute(
            select(ApprovalRequest)
            .where(ApprovalRequest.attendance_id == attendance_id)
            .where(ApprovalRequest.type == approval_type)
            .order_by(ApprovalRequest.created_at.desc())
        )
        return result.scalars().first()


# 싱글턴 인스턴스 — Singleton instance
approval_repository: ApprovalRepository = ApprovalRepository()
