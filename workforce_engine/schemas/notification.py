"""알림 의도 Pydantic 스키마.

Notification intent schemas. An intent is what the engine wants the
employee or manager to see; delivery mechanics live elsewhere.
"""

from typing import Any
from pydantic import BaseModel, Field

from workforce_engine.models.enums import NotificationCategory, NotificationPriority


class NotificationAction(BaseModel):
    """알림 버튼 (Action button shown with the notification)."""

    id: str  # 액션 식별자 — e.g. "ACCEPT", "ENTER_REASON"
    label: str  # 버튼 표시 문구 (Button label)


class NotificationIntent(BaseModel):
    """알림 의도.

    Attributes:
        title: 제목 (Title)
        body: 본문 (Body text)
        category: 분류 (ATTENDANCE, SCHEDULE, APPROVAL)
        priority: 우선순위 (LOW, NORMAL, HIGH)
        deep_link: 앱 내 경로 (In-app route)
        actions: 버튼 목록 (Action buttons)
        data: 부가 데이터 (Free-form payload)
    """

    title: str
    body: str
    category: NotificationCategory
    priority: NotificationPriority = NotificationPriority.NORMAL
    deep_link: str | None = None
    actions: list[NotificationAction] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
