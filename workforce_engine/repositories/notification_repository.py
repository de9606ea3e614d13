"""알림 레포지토리 — 알림 관련 DB 쿼리 담당.

Notification Repository — Persists notification intents and answers the
"was this already sent today" question used for prompt deduplication.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.models.notification import Notification
from workforce_engine.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """알림 레포지토리.

    Extends:
        BaseRepository[Notification]
    """

    def __init__(self) -> None:
        super().__init__(Notification)

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        category: str,
        priority: str,
        title: str,
        body: str,
        company_id: UUID | None = None,
        deep_link: str | None = None,
        actions: list[dict[str, Any]] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """알림을 생성합니다.

        Create a notification row.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 수신자 UUID (Recipient UUID)
            category: 분류 (ATTENDANCE, SCHEDULE, APPROVAL)
            priority: 우선순위 (LOW, NORMAL, HIGH)
            title: 제목 (Title)
            body: 본문 (Body text)
            company_id: 회사 UUID, 선택 (Company scope)
            deep_link: 앱 내 경로, 선택 (In-app route)
            actions: 버튼 목록, 선택 (Action buttons)
            data: 부가 데이터, 선택 (Extra payload)

        Returns:
            Notification: 생성된 알림 (Created notification)
        """
        return await self.create(
            db,
            {
                "user_id": user_id,
                "company_id": company_id,
                "category": category,
                "priority": priority,
                "title": title,
                "body": body,
                "deep_link": deep_link,
                "actions": actions or [],
                "data": data or {},
            },
        )

    async def exists_titled_since(
        self,
        db: AsyncSession,
        user_id: UUID,
        category: str,
        since: datetime,
        title_keyword: str,
    ) -> bool:
        """기준 시각 이후 제목에 키워드가 포함된 알림이 있는지 확인합니다.

        Whether the user already received a notification of the category
        whose title contains title_keyword since the given moment.
        """
        query: Select = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.category == category)
            .where(Notification.created_at >= since)
            .where(Notification.title.contains(title_keyword))
        )
        count: int = (await db.execute(query)).scalar() or 0
        return count > 0


# 싱글턴 인스턴스 — Singleton instance
notification_repository: NotificationRepository = NotificationRepository()
