"""알림 관련 SQLAlchemy ORM 모델 정의.

Notification SQLAlchemy ORM model definitions.
Rows are the persisted form of notification intents; push/email delivery
is handled by a separate dispatcher reading this table.

Tables:
    - notifications: 사용자 알림 (User notifications with deep links and actions)
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.database import Base
from workforce_engine.models.types import JSONDocument, TZDateTime, utc_now


class Notification(Base):
    """알림 모델 — 사용자에게 전달되는 시스템 알림.

    Notification model — System notifications delivered to users.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        user_id: 수신자 (Recipient)
        company_id: 회사 범위, 선택 (Company scope)
        category: 분류 (ATTENDANCE, SCHEDULE, APPROVAL)
        priority: 우선순위 (LOW, NORMAL, HIGH)
        title / body: 제목과 본문 (Title and body text)
        deep_link: 앱 내 이동 경로 (In-app route opened on tap)
        actions: 버튼 목록 (Action buttons: [{"id": ..., "label": ...}])
        data: 부가 데이터 (Free-form payload)
        is_read: 읽음 여부 (Read flag)
        created_at: 생성 일시 UTC (Creation timestamp)
    """

    __tablename__ = "notifications"

    # 알림 고유 식별자 — Notification unique identifier
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 수신자 — Recipient user id (no FK: recipients may live only in the identity service)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    company_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="NORMAL")
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    deep_link: Mapped[str | None] = mapped_column(String(300), nullable=True)
    actions: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    data: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    # 읽음 여부 — Read flag
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)

    __table_args__ = (
        Index("ix_notifications_user_category_created", "user_id", "category", "created_at"),
    )
