"""스케줄 관련 SQLAlchemy ORM 모델 정의.

Schedule-related SQLAlchemy ORM model definitions.
Schedule entries are concrete shifts, either materialized from a contract's
weekly pattern or created manually; trade requests swap the assignees of
two entries through a multi-party approval flow.

Tables:
    - schedules: 근무 스케줄 (Concrete work shifts)
    - schedule_trade_requests: 스케줄 교환 요청 (Shift trade requests)
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.database import Base
from workforce_engine.models.types import TZDateTime, utc_now


class ScheduleEntry(Base):
    """스케줄 모델 — 특정 날짜의 확정된 근무 시간.

    Schedule entry model — One concrete shift for one employee.
    start_time/end_time are absolute timestamps; an overnight shift simply
    has an end_time on the following calendar day.

    Status Flow:
        SCHEDULED → CONFIRMED → COMPLETED, or → CANCELLED

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        contract_id: 원천 계약 FK, 선택 (Contract that generated the entry)
        staff_id: 근무 직원 FK (Assigned employee; changes on trade)
        company_id / brand_id / store_id: 조직 범위 (Organizational scope)
        position: 직무, 선택 (Optional position)
        work_date: 근무일 (Calendar day the shift starts on)
        start_time / end_time: 근무 시작/종료 시각 (Absolute shift bounds)
        break_minutes: 휴게 시간(분) (Unpaid break minutes)
        status: 상태 (SCHEDULED, CONFIRMED, COMPLETED, CANCELLED)
        generated_by: 생성 출처 (CONTRACT or MANUAL)
        traded_from_id: 교환 상대 스케줄 (Counterpart entry of the last executed trade)
        original_staff_id: 교환 전 직원 (Assignee before the last executed trade)

    Constraints:
        uq_schedules_slot: (staff_id, work_date, generated_by, start_time) 고유
            (Natural key; materialization upserts on it)
    """

    __tablename__ = "schedules"

    # 스케줄 고유 식별자 — Schedule unique identifier
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 원천 계약 FK — Contract that produced this entry (null for manual entries)
    contract_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True)
    # 근무 직원 FK — Assigned employee
    staff_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    brand_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # 근무일 — Work date in the organizational timezone
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    # 근무 시작/종료 — Absolute shift bounds (UTC on disk)
    start_time: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    # 휴게 시간 — Unpaid break minutes
    break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="SCHEDULED")
    generated_by: Mapped[str] = mapped_column(String(20), nullable=False, default="MANUAL")
    # 교환 이력 — Trade lineage
    traded_from_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("schedules.id", ondelete="SET NULL"), nullable=True)
    original_staff_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("staff_id", "work_date", "generated_by", "start_time", name="uq_schedules_slot"),
        Index("ix_schedules_company_date", "company_id", "work_date"),
        Index("ix_schedules_staff_date", "staff_id", "work_date"),
    )


class ShiftTradeRequest(Base):
    """스케줄 교환 요청 모델.

    Shift trade request model — A requester offers their entry in exchange
    for a target employee's entry.

    Status Flow:
        PENDING → REJECTED | AWAITING_APPROVAL | APPROVED
        AWAITING_APPROVAL → APPROVED | MANAGER_REJECTED

    Constraints:
        uq_trade_open_source: 요청 스케줄당 진행 중 요청 1건
            (At most one PENDING/AWAITING_APPROVAL request per requester schedule)
    """

    __tablename__ = "schedule_trade_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # 요청자 — Employee offering their shift
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    requester_schedule_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    # 대상자 — Employee asked to swap
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_schedule_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="PENDING")
    requires_manager_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # 대상자 응답 — Target employee response
    response_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    # 관리자 결정 — Manager decision
    manager_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    manager_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_responded_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index(
            "uq_trade_open_source",
            "requester_schedule_id",
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'AWAITING_APPROVAL')"),
            sqlite_where=text("status IN ('PENDING', 'AWAITING_APPROVAL')"),
        ),
        Index("ix_trade_target_status", "target_id", "status"),
    )
