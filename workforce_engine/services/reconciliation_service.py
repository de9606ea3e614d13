"""자동 퇴근 처리 서비스 — 미퇴근 기록 정리.

Reconciliation Service — Closes attendance records left open (checked in,
never checked out). Driven by an external cron trigger and by an
operator-triggered backfill over a past date range.

Every close is a guarded conditional update, so re-running the sweeper over
the same data is a no-op. Per-record failures are collected into the
result instead of aborting the batch.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.config import settings
from workforce_engine.models.attendance import AttendanceRecord
from workforce_engine.models.enums import AttendanceStatus, NotificationCategory
from workforce_engine.repositories.attendance_repository import attendance_repository
from workforce_engine.schemas.attendance import AttendanceExtensions, SweepError, SweepResult
from workforce_engine.schemas.notification import NotificationIntent
from workforce_engine.services.attendance_service import build_close_values
from workforce_engine.services.notification_service import notification_service
from workforce_engine.utils.datetime_utils import local_date, now_utc
from workforce_engine.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

REASON_SCHEDULED_END = "예정 퇴근 시간 기준 자동 처리"
REASON_DEFAULT_SHIFT = "출근 후 8시간 기준 자동 처리"
REASON_ADJUSTED_SUFFIX = " (시간 조정)"
REASON_TODAY_OVERDUE = "스케줄 종료 2시간 초과 자동 처리"
BATCH_REASON_SCHEDULED_END = "예정 퇴근 시간 기준 일괄 처리"
BATCH_REASON_DEFAULT_SHIFT = "출근 후 8시간 기준 일괄 처리"


def past_due_checkout(record: AttendanceRecord, batch: bool = False) -> tuple[datetime, str]:
    """지난 날짜 미퇴근 기록의 퇴근 시각과 사유를 결정합니다.

    Close at the scheduled end when known, else check-in + DEFAULT_SHIFT_HOURS.
    A scheduled end that is not after the check-in falls back to the default
    shift length and the reason is marked as adjusted.

    Args:
        record: 미퇴근 기록 (Open record)
        batch: 일괄 처리 여부 (Operator-triggered backfill)

    Returns:
        tuple[datetime, str]: (퇴근 시각, 사유) (Check-out moment, reason)
    """
    default_out: datetime = record.actual_check_in + timedelta(hours=settings.DEFAULT_SHIFT_HOURS)
    scheduled_reason: str = BATCH_REASON_SCHEDULED_END if batch else REASON_SCHEDULED_END
    default_reason: str = BATCH_REASON_DEFAULT_SHIFT if batch else REASON_DEFAULT_SHIFT

    if record.scheduled_check_out is None:
        return default_out, default_reason
    if record.scheduled_check_out <= record.actual_check_in:
        return default_out, default_reason + REASON_ADJUSTED_SUFFIX
    return record.scheduled_check_out, scheduled_reason


def today_overdue_checkout(record: AttendanceRecord) -> tuple[datetime, str]:
    """당일 기록의 퇴근 시각과 사유를 결정합니다.

    Close at the scheduled end. A scheduled end that is not after the
    check-in falls back to check-in + DEFAULT_SHIFT_HOURS, marked as adjusted.
    """
    if record.scheduled_check_out <= record.actual_check_in:
        default_out: datetime = record.actual_check_in + timedelta(hours=settings.DEFAULT_SHIFT_HOURS)
        return default_out, REASON_DEFAULT_SHIFT + REASON_ADJUSTED_SUFFIX
    return record.scheduled_check_out, REASON_TODAY_OVERDUE


def is_due(check_out: datetime, now: datetime) -> bool:
    """퇴근 시각 + 유예 시간이 지났는지 (Check-out moment is AUTO_CHECKOUT_GRACE_HOURS in the past)."""
    return check_out + timedelta(hours=settings.AUTO_CHECKOUT_GRACE_HOURS) <= now


class ReconciliationService:
    """자동 퇴근 처리 서비스."""

    async def run_sweeper(
        self,
        db: AsyncSession,
        now: datetime | None = None,
    ) -> SweepResult:
        """미퇴근 기록을 자동 퇴근 처리합니다.

        Past-due pass: every open record with work_date before today.
        Today pass: open records whose scheduled end is at least
        AUTO_CHECKOUT_GRACE_HOURS in the past, closed at the scheduled end.
        In both passes a record is left open until its computed check-out
        is AUTO_CHECKOUT_GRACE_HOURS in the past (overnight shifts still
        running, check-ins after the scheduled end).
        Each company with closed records gets one summary for its managers.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            now: 기준 시각, 테스트용 (Clock override)

        Returns:
            SweepResult: 처리 결과 (Processed/skipped counts and errors)
        """
        now = now or now_utc()
        today: date = local_date(now)
        result = SweepResult()
        closed_by_company: dict[UUID, int] = defaultdict(int)

        for record in await attendance_repository.list_open_before(db, today):
            check_out, reason = past_due_checkout(record)
            if not is_due(check_out, now):
                logger.debug("Record %s still running until %s, left open", record.id, check_out)
                continue
            await self._close(db, record, check_out, reason, now, result, closed_by_company)

        overdue_before: datetime = now - timedelta(hours=settings.AUTO_CHECKOUT_GRACE_HOURS)
        for record in await attendance_repository.list_open_overdue(db, today, overdue_before):
            check_out, reason = today_overdue_checkout(record)
            if not is_due(check_out, now):
                logger.debug("Record %s still running until %s, left open", record.id, check_out)
                continue
            await self._close(db, record, check_out, reason, now, result, closed_by_company)

        result.notified_companies = await self._notify_companies(db, closed_by_company)
        logger.info(
            "Auto-checkout sweep: %d processed, %d skipped, %d errors",
            result.processed, result.skipped, len(result.errors),
        )
        return result

    async def run_backfill(
        self,
        db: AsyncSession,
        start_date: date | None = None,
        end_date: date | None = None,
        now: datetime | None = None,
    ) -> SweepResult:
        """지정 기간의 과거 미퇴근 기록을 일괄 처리합니다.

        Apply the past-due logic to [start_date, end_date]. Defaults to the
        last BACKFILL_DEFAULT_DAYS days through yesterday.

        Raises:
            ValidationError: 시작일 > 종료일, 또는 종료일이 오늘 이후
                             (Inverted range, or a range reaching today)
        """
        now = now or now_utc()
        today: date = local_date(now)
        end: date = end_date or today - timedelta(days=1)
        start: date = start_date or today - timedelta(days=settings.BACKFILL_DEFAULT_DAYS)

        if start > end:
            raise ValidationError("시작일이 종료일보다 늦습니다 (start_date is after end_date)")
        if end >= today:
            raise ValidationError("종료일은 어제 이전이어야 합니다 (end_date must be before today)")

        result = SweepResult()
        closed_by_company: dict[UUID, int] = defaultdict(int)
        for record in await attendance_repository.list_open_before(db, end + timedelta(days=1), start):
            check_out, reason = past_due_checkout(record, batch=True)
            if not is_due(check_out, now):
                continue
            await self._close(
                db, record, check_out, reason, now, result, closed_by_company, batch=True
            )

        result.notified_companies = await self._notify_companies(db, closed_by_company)
        logger.info(
            "Auto-checkout backfill %s..%s: %d processed, %d skipped, %d errors",
            start, end, result.processed, result.skipped, len(result.errors),
        )
        return result

    async def _close(
        self,
        db: AsyncSession,
        record: AttendanceRecord,
        check_out: datetime,
        reason: str,
        now: datetime,
        result: SweepResult,
        closed_by_company: dict[UUID, int],
        batch: bool = False,
    ) -> None:
        extensions = AttendanceExtensions(
            auto_checkout=True,
            auto_checkout_reason=reason,
            auto_checkout_at=now,
            manual_batch_process=True if batch else None,
        )
        break_minutes: int = (
            record.break_minutes if record.break_minutes is not None else settings.DEFAULT_BREAK_MINUTES
        )
        try:
            async with db.begin_nested():
                closed: bool = await attendance_repository.close_if_open(
                    db,
                    record.id,
                    build_close_values(
                        record, check_out, AttendanceStatus.NORMAL, extensions, break_minutes=break_minutes
                    ),
                )
        except SQLAlchemyError as exc:
            logger.warning("Auto-checkout of attendance %s failed: %s", record.id, exc)
            result.errors.append(SweepError(attendance_id=str(record.id), error=str(exc)[:300]))
            return

        if closed:
            result.processed += 1
            closed_by_company[record.company_id] += 1
        else:
            result.skipped += 1

    async def _notify_companies(
        self,
        db: AsyncSession,
        closed_by_company: dict[UUID, int],
    ) -> int:
        notified: int = 0
        for company_id, count in closed_by_company.items():
            sent: int = await notification_service.notify_managers(
                db,
                company_id,
                NotificationIntent(
                    title="자동 퇴근 처리 완료",
                    body=f"{count}건의 미퇴근 기록이 자동으로 퇴근 처리되었습니다.",
                    category=NotificationCategory.ATTENDANCE,
                    deep_link="/attendances",
                    data={"count": count},
                ),
            )
            if sent:
                notified += 1
        return notified


# 싱글턴 인스턴스 — Singleton instance
reconciliation_service: ReconciliationService = ReconciliationService()
