"""알림 서비스 — 알림 의도 발송.

Notification Service — Sends notification intents through a narrow gateway.
Sending is best-effort: a failed send is logged and reported as False, never
raised, so it cannot roll back the workflow transition that triggered it.
"""

import logging
from typing import Iterable, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.repositories.notification_repository import notification_repository
from workforce_engine.repositories.staff_repository import staff_repository
from workforce_engine.schemas.notification import NotificationIntent

logger = logging.getLogger(__name__)


class NotificationGateway(Protocol):
    """알림 발송 게이트웨이 인터페이스.

    Anything that can deliver an intent to one recipient. Implementations
    may raise; NotificationService absorbs the failure.
    """

    async def send(
        self,
        db: AsyncSession,
        user_id: UUID,
        intent: NotificationIntent,
        company_id: UUID | None = None,
    ) -> None:
        ...


class DatabaseNotificationGateway:
    """알림 테이블에 기록하는 기본 게이트웨이.

    Default gateway: writes a notifications row inside a SAVEPOINT so a
    failed insert leaves the caller's transaction usable.
    """

    async def send(
        self,
        db: AsyncSession,
        user_id: UUID,
        intent: NotificationIntent,
        company_id: UUID | None = None,
    ) -> None:
        async with db.begin_nested():
            await notification_repository.create_notification(
                db,
                user_id=user_id,
                company_id=company_id,
                category=intent.category.value,
                priority=intent.priority.value,
                title=intent.title,
                body=intent.body,
                deep_link=intent.deep_link,
                actions=[action.model_dump() for action in intent.actions],
                data=intent.data,
            )


class NotificationService:
    """알림 서비스.

    Attributes:
        gateway: 실제 발송 구현 (Delivery implementation; replaceable in tests)
    """

    def __init__(self, gateway: NotificationGateway | None = None) -> None:
        self.gateway: NotificationGateway = gateway or DatabaseNotificationGateway()

    async def notify(
        self,
        db: AsyncSession,
        user_id: UUID,
        intent: NotificationIntent,
        company_id: UUID | None = None,
    ) -> bool:
        """한 명에게 알림을 발송합니다.

        Send one intent to one recipient.

        Returns:
            bool: 발송 성공 여부 (True when the gateway accepted the intent)
        """
        try:
            await self.gateway.send(db, user_id, intent, company_id=company_id)
        except Exception:
            logger.exception("Notification send failed (user=%s, title=%s)", user_id, intent.title)
            return False
        return True

    async def notify_many(
        self,
        db: AsyncSession,
        user_ids: Iterable[UUID],
        intent: NotificationIntent,
        company_id: UUID | None = None,
    ) -> int:
        """여러 명에게 같은 알림을 발송합니다 (Returns the number of successful sends)."""
        sent: int = 0
        for user_id in user_ids:
            if await self.notify(db, user_id, intent, company_id=company_id):
                sent += 1
        return sent

    async def notify_managers(
        self,
        db: AsyncSession,
        company_id: UUID,
        intent: NotificationIntent,
        store_id: UUID | None = None,
        exclude: UUID | None = None,
    ) -> int:
        """회사(매장) 관리자 전원에게 알림을 발송합니다.

        Send an intent to every eligible manager of the company/store.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            company_id: 회사 UUID (Company UUID)
            intent: 알림 의도 (Notification intent)
            store_id: 매장 UUID, 선택 (Optional store scope)
            exclude: 제외할 사용자 (User not to notify, e.g. the acting manager)

        Returns:
            int: 발송 성공 수 (Number of successful sends)
        """
        managers = await staff_repository.get_managers(db, company_id, store_id)
        recipients: list[UUID] = [m.id for m in managers if m.id != exclude]
        if not recipients:
            logger.info("No managers to notify (company=%s, store=%s)", company_id, store_id)
            return 0
        return await self.notify_many(db, recipients, intent, company_id=company_id)


# 싱글턴 인스턴스 — Singleton instance
notification_service: NotificationService = NotificationService()
