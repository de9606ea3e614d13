"""근태 관련 Pydantic 스키마.

Attendance request/response schemas, the audit extension document stored
on each record, and the structured results of the batch jobs.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


class AttendanceExtensions(BaseModel):
    """근태 감사 정보 문서.

    Audit document stored in attendances.extensions. Only keys that are set
    are persisted (model_dump(exclude_none=True)).

    Attributes:
        auto_checkout: 자동 퇴근 처리 여부 (Closed by the reconciliation sweeper)
        auto_checkout_reason: 자동 퇴근 사유 (Human-readable reason)
        auto_checkout_at: 자동 퇴근 처리 시각 (When the sweeper closed it)
        manual_batch_process: 일괄 처리 여부 (Closed by an operator-triggered backfill)
        check_in_status: 출근 판정 (Classification taken at check-in)
        checkout_timing: 퇴근 판정 (EARLY, ON_TIME, LATE relative to the scheduled end)
        checkout_diff_minutes: 예정 퇴근 대비 차이(분) (Signed minutes vs scheduled end)
        unscheduled_rejected: 미배정 출근 거절 여부 (Manager rejected the unscheduled check-in)
        unscheduled_rejection_reason: 거절 사유 (Rejection reason)
    """

    auto_checkout: bool | None = None
    auto_checkout_reason: str | None = None
    auto_checkout_at: datetime | None = None
    manual_batch_process: bool | None = None
    check_in_status: str | None = None
    checkout_timing: str | None = None
    checkout_diff_minutes: int | None = None
    unscheduled_rejected: bool | None = None
    unscheduled_rejection_reason: str | None = None

    def merged_into(self, current: dict | None) -> dict:
        """기존 문서에 병합한 새 dict를 반환합니다 (Merge over an existing stored document)."""
        merged: dict = dict(current or {})
        merged.update(self.model_dump(mode="json", exclude_none=True))
        return merged


class CheckInRequest(BaseModel):
    """출근 요청 스키마 (Check-in request; reason is used for unscheduled check-ins)."""

    reason: str | None = Field(default=None, max_length=500)


class AttendanceResponse(BaseModel):
    id: str
    staff_id: str
    company_id: str
    brand_id: str | None
    store_id: str | None
    work_date: date
    scheduled_check_in: datetime | None
    scheduled_check_out: datetime | None
    actual_check_in: datetime | None
    actual_check_out: datetime | None
    break_minutes: int | None
    status: str
    work_hours: float
    overtime_hours: float
    night_hours: float
    extensions: dict
    unscheduled_reason: str | None
    created_at: datetime
    updated_at: datetime


class UnscheduledDecision(BaseModel):
    """미배정 출근 승인/거절 요청 (Manager decision on an unscheduled check-in)."""

    action: Literal["approve", "reject"]
    rejection_reason: str | None = Field(default=None, max_length=500)


class SweepError(BaseModel):
    attendance_id: str
    error: str


class SweepResult(BaseModel):
    """자동 퇴근 처리 결과.

    Attributes:
        processed: 처리된 기록 수 (Records closed)
        skipped: 건너뛴 기록 수 (Records already closed by a concurrent run)
        errors: 개별 실패 목록 (Per-record failures)
        notified_companies: 요약 알림을 보낸 회사 수 (Companies that received a summary)
    """

    processed: int = 0
    skipped: int = 0
    errors: list[SweepError] = Field(default_factory=list)
    notified_companies: int = 0


class BackfillRequest(BaseModel):
    """과거 미퇴근 일괄 처리 요청 (Range defaults to the last 30 days through yesterday)."""

    start_date: date | None = None
    end_date: date | None = None


class CorrectionScanError(BaseModel):
    attendance_id: str
    kind: str
    error: str


class CorrectionScanResult(BaseModel):
    """근태 이상 감지 결과.

    Attributes:
        late_checkin: 지각 수정 요청 생성 수 (LATE_CHECKIN requests created)
        early_checkout: 조퇴 수정 요청 생성 수 (EARLY_CHECKOUT requests created)
        overtime_prompts: 연장근무 알림 수 (Overtime prompts sent)
        notifications_sent: 발송된 알림 수 (Notifications sent in total)
        errors: 개별 실패 목록 (Per-record failures)
    """

    late_checkin: int = 0
    early_checkout: int = 0
    overtime_prompts: int = 0
    notifications_sent: int = 0
    errors: list[CorrectionScanError] = Field(default_factory=list)


class CorrectionReasonSubmit(BaseModel):
    """수정 요청 사유 입력 (Employee fills in the reason for a correction request)."""

    reason: str = Field(..., min_length=1, max_length=1000)
    requested_check_in: datetime | None = None
    requested_check_out: datetime | None = None


class CorrectionDecision(BaseModel):
    """수정 요청 승인/거절 (Manager decision; a comment is mandatory for rejection)."""

    action: Literal["approve", "reject"]
    comment: str | None = Field(default=None, max_length=1000)


class CorrectionResponse(BaseModel):
    id: str
    attendance_id: str
    staff_id: str
    request_type: str
    original_check_in: datetime | None
    original_check_out: datetime | None
    requested_check_in: datetime | None
    requested_check_out: datetime | None
    reason: str
    status: str
    auto_generated: bool
    notification_sent: bool
    reviewed_by: str | None
    reviewed_at: datetime | None
    review_comment: str | None
    created_at: datetime
