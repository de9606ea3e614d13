"""근로 계약 SQLAlchemy ORM 모델 정의.

Employment contract SQLAlchemy ORM model definition.

Tables:
    - contracts: 근로 계약 (Employment contracts carrying the weekly work pattern)
"""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.database import Base
from workforce_engine.models.types import JSONDocument, TZDateTime, utc_now


class Contract(Base):
    """근로 계약 모델 — 주간 근무 패턴의 원천.

    Employment contract model — Source of the recurring weekly work pattern
    from which schedule entries are materialized.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        staff_id: 직원 FK (Employee bound by this contract)
        company_id / brand_id / store_id: 조직 범위 (Organizational scope)
        position: 직무, 선택 (Optional position copied onto generated entries)
        start_date: 계약 시작일 (First day covered)
        end_date: 계약 종료일, 선택 (Last day covered; defaults to start + 3 months)
        work_schedules: 근무 패턴 목록 (List of WorkPatternEntry documents)
        status: 상태 (DRAFT, ACTIVE, TERMINATED)
    """

    __tablename__ = "contracts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 직원 FK — Employee bound by the contract
    staff_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    brand_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # 근무 패턴 — Validated WorkPatternEntry list, serialized with model_dump(mode="json")
    work_schedules: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_contracts_staff_status", "staff_id", "status"),
    )
