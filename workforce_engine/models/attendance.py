"""근태 관리 관련 SQLAlchemy ORM 모델 정의.

Attendance management SQLAlchemy ORM model definitions.

Tables:
    - attendances: 근태 기록 (Daily attendance records per employee)
    - attendance_correction_requests: 근태 수정 요청 (Anomaly resolution requests)
"""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, Date, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.database import Base
from workforce_engine.models.types import JSONDocument, TZDateTime, utc_now


class AttendanceRecord(Base):
    """근태 기록 모델 — 직원별 일일 출퇴근 기록.

    Attendance record model — One record per employee per work date.

    Status values:
        WORKING, EARLY_CHECK_IN, LATE, UNSCHEDULED while open;
        NORMAL, OVERTIME, EARLY_LEAVE, LATE, UNSCHEDULED once closed;
        ADDITIONAL_WORK after an unscheduled check-in is approved;
        ABSENT, VACATION set by external processes.

    Attributes:
        scheduled_check_in / scheduled_check_out: 예정 출퇴근 (Resolved shift bounds, null when unscheduled)
        actual_check_in / actual_check_out: 실제 출퇴근 (Observed timestamps)
        break_minutes: 휴게 시간(분) (Break resolved at check-in)
        work_hours / overtime_hours / night_hours: 근무 시간 집계 (Hour aggregates, 2 decimals)
        extensions: 감사 정보 (Validated AttendanceExtensions document)
        unscheduled_reason: 미배정 출근 사유 (Reason given for an unscheduled check-in)

    Constraints:
        uq_attendances_staff_date: 동일 직원+날짜 1건 (One record per employee per day)
    """

    __tablename__ = "attendances"

    # 근태 고유 식별자 — Attendance unique identifier
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 직원 FK — Employee the record belongs to
    staff_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    brand_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 근무일 — Work date in the organizational timezone
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_check_in: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    scheduled_check_out: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    actual_check_in: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    actual_check_out: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    break_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="WORKING")
    work_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    overtime_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    night_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # 감사 정보 — Reassign the whole dict on change; in-place mutation is not tracked
    extensions: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    unscheduled_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # 미배정 출근 결정 — Manager decision on an unscheduled check-in
    unscheduled_decided_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    unscheduled_decided_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("staff_id", "work_date", name="uq_attendances_staff_date"),
        Index("ix_attendances_company_date", "company_id", "work_date"),
    )


class AttendanceCorrectionRequest(Base):
    """근태 수정 요청 모델 — 지각/조퇴 사유 입력 요청.

    Attendance correction request model — Created automatically when a
    late check-in or early check-out is detected; the employee fills in
    the reason and a manager resolves it.

    Status Flow:
        PENDING → APPROVED | REJECTED | CANCELLED

    Constraints:
        uq_correction_attendance_type: (attendance_id, request_type) 고유
            (At most one request per record per anomaly kind)
    """

    __tablename__ = "attendance_correction_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    attendance_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("attendances.id", ondelete="CASCADE"), nullable=False)
    staff_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 요청 유형 — LATE_CHECKIN or EARLY_CHECKOUT
    request_type: Mapped[str] = mapped_column(String(30), nullable=False)
    original_check_in: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    original_check_out: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    requested_check_in: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    requested_check_out: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    # 사유 — Empty until the employee fills it in
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_sent_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    # 검토 정보 — Manager review
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)
    review_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("attendance_id", "request_type", name="uq_correction_attendance_type"),
    )
