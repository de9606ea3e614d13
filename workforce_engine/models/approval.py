"""승인 요청 SQLAlchemy ORM 모델 정의.

Approval request SQLAlchemy ORM model definition.

Tables:
    - approval_requests: 관리자 승인 요청 (Manager approval requests, e.g. unscheduled check-in)
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.database import Base
from workforce_engine.models.types import JSONDocument, TZDateTime, utc_now


class ApprovalRequest(Base):
    """승인 요청 모델.

    Approval request model — Routed to the eligible managers listed in
    approver_ids. details carries the attendance id, work date,
    check-in time and the employee's reason.
    """

    __tablename__ = "approval_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    brand_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 대상 근태 — Attendance record awaiting the decision
    attendance_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("attendances.id", ondelete="CASCADE"), nullable=True)
    # 승인권자 — Manager ids (JSON list of strings)
    approver_ids: Mapped[list[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    details: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    final_status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    finalized_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)

    __table_args__ = (
        Index("ix_approval_requests_attendance", "attendance_id", "type"),
    )
