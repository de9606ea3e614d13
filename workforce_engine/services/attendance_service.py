"""근태 서비스 — 출퇴근 기록 비즈니스 로직.

Attendance Service — Records check-in and check-out for the calling
employee, classifies punctuality against the resolved schedule, computes
worked/overtime/night hours on close, and handles the manager decision on
unscheduled check-ins.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Sequence
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.config import settings
from workforce_engine.models.approval import ApprovalRequest
from workforce_engine.models.attendance import AttendanceRecord
from workforce_engine.models.contract import Contract
from workforce_engine.models.enums import (
    ApprovalStatus,
    ApprovalType,
    AttendanceStatus,
    CheckoutTiming,
    NotificationCategory,
    NotificationPriority,
)
from workforce_engine.models.schedule import ScheduleEntry
from workforce_engine.models.types import utc_now
from workforce_engine.repositories.approval_repository import approval_repository
from workforce_engine.repositories.attendance_repository import attendance_repository
from workforce_engine.repositories.contract_repository import contract_repository
from workforce_engine.repositories.schedule_repository import schedule_repository
from workforce_engine.repositories.staff_repository import staff_repository
from workforce_engine.schemas.attendance import AttendanceExtensions, UnscheduledDecision
from workforce_engine.schemas.contract import WorkPatternEntry
from workforce_engine.schemas.notification import NotificationIntent
from workforce_engine.services.notification_service import notification_service
from workforce_engine.services.org_context import CallerContext, resolve_org_context
from workforce_engine.utils.datetime_utils import (
    combine_local,
    js_weekday,
    local_date,
    now_utc,
    start_of_local_day,
)
from workforce_engine.utils.exceptions import ConflictError, NotFoundError, ValidationError
from workforce_engine.utils.work_hours import calculate_work_hours

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSchedule:
    """출근 시점에 결정된 당일 예정 근무.

    Attributes:
        scheduled_in: 예정 출근 (Earliest scheduled start)
        scheduled_out: 예정 퇴근 (Latest scheduled end)
        break_minutes: 휴게 시간 합계 (Summed break minutes)
        entry: 첫 스케줄, 계약 패턴에서 온 경우 None (First entry; None when taken from the contract)
        contract: 유효 계약 (Covering contract, if any)
    """

    scheduled_in: datetime | None = None
    scheduled_out: datetime | None = None
    break_minutes: int | None = None
    entry: ScheduleEntry | None = None
    contract: Contract | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.scheduled_in is not None


def classify_check_in(check_in: datetime, scheduled_in: datetime | None) -> AttendanceStatus:
    """출근 시각을 예정 출근과 비교해 분류합니다.

    No schedule → UNSCHEDULED; at least EARLY_CHECK_IN_THRESHOLD_MINUTES
    early → EARLY_CHECK_IN; at least LATE_THRESHOLD_MINUTES late → LATE;
    anything in between → WORKING.
    """
    if scheduled_in is None:
        return AttendanceStatus.UNSCHEDULED
    if check_in <= scheduled_in - timedelta(minutes=settings.EARLY_CHECK_IN_THRESHOLD_MINUTES):
        return AttendanceStatus.EARLY_CHECK_IN
    if check_in >= scheduled_in + timedelta(minutes=settings.LATE_THRESHOLD_MINUTES):
        return AttendanceStatus.LATE
    return AttendanceStatus.WORKING


def classify_check_out(
    current_status: str,
    check_out: datetime,
    scheduled_out: datetime | None,
) -> tuple[AttendanceStatus, CheckoutTiming | None, int | None]:
    """퇴근 시 최종 상태를 결정합니다.

    Precedence: UNSCHEDULED (and an approved ADDITIONAL_WORK) stays;
    EARLY_LEAVE when leaving EARLY_CHECKOUT_THRESHOLD_MINUTES or more before
    the scheduled end; OVERTIME when OVERTIME_THRESHOLD_MINUTES or more
    after; LATE stays LATE; otherwise NORMAL.

    Returns:
        tuple: (최종 상태, 퇴근 판정, 예정 대비 차이(분))
               (Final status, checkout timing, signed minutes vs scheduled end)
    """
    timing: CheckoutTiming | None = None
    diff_minutes: int | None = None
    if scheduled_out is not None:
        diff: timedelta = check_out - scheduled_out
        diff_minutes = round(diff.total_seconds() / 60)
        if diff <= -timedelta(minutes=settings.EARLY_CHECKOUT_THRESHOLD_MINUTES):
            timing = CheckoutTiming.EARLY
        elif diff >= timedelta(minutes=settings.OVERTIME_THRESHOLD_MINUTES):
            timing = CheckoutTiming.LATE
        else:
            timing = CheckoutTiming.ON_TIME

    if current_status in (AttendanceStatus.UNSCHEDULED.value, AttendanceStatus.ADDITIONAL_WORK.value):
        return AttendanceStatus(current_status), timing, diff_minutes
    if timing == CheckoutTiming.EARLY:
        return AttendanceStatus.EARLY_LEAVE, timing, diff_minutes
    if timing == CheckoutTiming.LATE:
        return AttendanceStatus.OVERTIME, timing, diff_minutes
    if current_status == AttendanceStatus.LATE.value:
        return AttendanceStatus.LATE, timing, diff_minutes
    return AttendanceStatus.NORMAL, timing, diff_minutes


def build_close_values(
    record: AttendanceRecord,
    check_out: datetime,
    status: AttendanceStatus,
    extensions: AttendanceExtensions,
    break_minutes: int | None = None,
) -> dict[str, Any]:
    """퇴근 처리 컬럼 값을 계산합니다.

    Column values closing a record, shared by manual check-out and the
    reconciliation sweeper so both account hours the same way.
    """
    if break_minutes is None:
        break_minutes = record.break_minutes
    hours = calculate_work_hours(record.actual_check_in, check_out, break_minutes)
    return {
        "actual_check_out": check_out,
        "break_minutes": break_minutes,
        "work_hours": hours.work_hours,
        "overtime_hours": hours.overtime_hours,
        "night_hours": hours.night_hours,
        "status": status.value,
        "extensions": extensions.merged_into(record.extensions),
        "updated_at": utc_now(),
    }


def _minutes_between(earlier: datetime, later: datetime) -> int:
    return int((later - earlier).total_seconds() // 60)


class AttendanceService:
    """근태 서비스.

    Attendance service for employee check-in/check-out and manager review.
    """

    async def resolve_schedule(
        self,
        db: AsyncSession,
        staff_id: UUID,
        work_date: date,
    ) -> ResolvedSchedule:
        """당일 예정 근무를 결정합니다.

        Today's non-cancelled schedule entries win (earliest start, latest
        end, summed breaks). Without entries the active contract's pattern for
        the weekday is used. Otherwise the day is unscheduled.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            staff_id: 직원 UUID (Employee UUID)
            work_date: 근무일 (Work date in ORG_TIMEZONE)

        Returns:
            ResolvedSchedule: 결정된 예정 근무 (Resolved schedule, possibly empty)
        """
        contract: Contract | None = await contract_repository.get_active_for_staff(db, staff_id, work_date)

        entries: Sequence[ScheduleEntry] = await schedule_repository.get_staff_day(db, staff_id, work_date)
        if entries:
            return ResolvedSchedule(
                scheduled_in=min(e.start_time for e in entries),
                scheduled_out=max(e.end_time for e in entries),
                break_minutes=sum(e.break_minutes or 0 for e in entries),
                entry=entries[0],
                contract=contract,
            )

        if contract is None or not contract.work_schedules:
            return ResolvedSchedule(contract=contract)

        try:
            patterns: list[WorkPatternEntry] = [
                WorkPatternEntry.model_validate(entry) for entry in contract.work_schedules
            ]
        except PydanticValidationError:
            logger.warning("Contract %s has an invalid work pattern; treating %s as unscheduled", contract.id, work_date)
            return ResolvedSchedule(contract=contract)

        weekday: int = js_weekday(work_date)
        slots: list[tuple[datetime, datetime, int]] = []
        for pattern in patterns:
            if not pattern.applies_on(work_date, weekday):
                continue
            start_at: datetime = combine_local(work_date, pattern.start_time)
            end_at: datetime = combine_local(work_date, pattern.end_time)
            if end_at <= start_at:
                end_at = combine_local(work_date + timedelta(days=1), pattern.end_time)
            slots.append((start_at, end_at, pattern.break_minutes))

        if not slots:
            return ResolvedSchedule(contract=contract)

        return ResolvedSchedule(
            scheduled_in=min(s[0] for s in slots),
            scheduled_out=max(s[1] for s in slots),
            break_minutes=sum(s[2] for s in slots),
            contract=contract,
        )

    async def check_in(
        self,
        db: AsyncSession,
        caller: CallerContext,
        now: datetime | None = None,
        reason: str | None = None,
    ) -> AttendanceRecord:
        """출근을 기록합니다.

        Record today's check-in for the caller. The record is upserted on
        (staff_id, work_date); a record that already carries a check-in is
        never overwritten.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            caller: 호출 직원 (Calling employee)
            now: 기준 시각, 테스트용 (Clock override)
            reason: 미배정 출근 사유 (Reason given for an unscheduled check-in)

        Returns:
            AttendanceRecord: 출근 기록 (The written record)

        Raises:
            ConflictError: 오늘 이미 출근한 경우 (Already checked in today)
        """
        now = now or now_utc()
        today: date = local_date(now)

        existing: AttendanceRecord | None = await attendance_repository.get_user_day(db, caller.user_id, today)
        if existing is not None and existing.actual_check_in is not None:
            raise ConflictError("오늘 이미 출근했습니다 (Already checked in today)")

        schedule: ResolvedSchedule = await self.resolve_schedule(db, caller.user_id, today)
        scope = resolve_org_context(schedule.entry, schedule.contract, caller)
        status: AttendanceStatus = classify_check_in(now, schedule.scheduled_in)

        record_id: UUID | None = await attendance_repository.upsert_check_in(
            db,
            {
                "id": uuid.uuid4(),
                "staff_id": caller.user_id,
                "company_id": scope.company_id,
                "brand_id": scope.brand_id,
                "store_id": scope.store_id,
                "work_date": today,
                "scheduled_check_in": schedule.scheduled_in,
                "scheduled_check_out": schedule.scheduled_out,
                "actual_check_in": now,
                "actual_check_out": None,
                "break_minutes": schedule.break_minutes,
                "status": status.value,
                "extensions": AttendanceExtensions(check_in_status=status.value).merged_into(
                    existing.extensions if existing is not None else None
                ),
                "unscheduled_reason": reason if status == AttendanceStatus.UNSCHEDULED else None,
                "created_at": utc_now(),
                "updated_at": utc_now(),
            },
        )
        if record_id is None:
            # 동시 출근 요청에 밀림 — Lost the race against a concurrent check-in
            raise ConflictError("오늘 이미 출근했습니다 (Already checked in today)")

        record: AttendanceRecord = await attendance_repository.get_fresh(db, record_id)
        logger.info("Check-in %s for staff %s on %s: %s", record.id, caller.user_id, today, status.value)

        if status == AttendanceStatus.UNSCHEDULED:
            await self._open_unscheduled_approval(db, record, reason)
        elif status in (AttendanceStatus.LATE, AttendanceStatus.EARLY_CHECK_IN):
            await self._notify_abnormal_check_in(db, record, status)

        return record

    async def _open_unscheduled_approval(
        self,
        db: AsyncSession,
        record: AttendanceRecord,
        reason: str | None,
    ) -> None:
        # 미배정 출근 — one approval request when managers exist, then notify
        managers = await staff_repository.get_managers(db, record.company_id, record.store_id)
        staff = await staff_repository.get_by_id(db, record.staff_id)
        name: str = staff.name if staff is not None else str(record.staff_id)

        if managers:
            approval: ApprovalRequest = await approval_repository.create(
                db,
                {
                    "type": ApprovalType.UNSCHEDULED_CHECKIN.value,
                    "requester_id": record.staff_id,
                    "company_id": record.company_id,
                    "brand_id": record.brand_id,
                    "store_id": record.store_id,
                    "attendance_id": record.id,
                    "approver_ids": [str(m.id) for m in managers],
                    "details": {
                        "work_date": record.work_date.isoformat(),
                        "check_in": record.actual_check_in.isoformat(),
                        "reason": reason,
                    },
                    "final_status": ApprovalStatus.PENDING.value,
                },
            )
            await notification_service.notify_many(
                db,
                [m.id for m in managers if m.id != record.staff_id],
                NotificationIntent(
                    title="미배정 출근 승인 요청",
                    body=f"{name}님이 배정된 스케줄 없이 출근했습니다. 승인이 필요합니다.",
                    category=NotificationCategory.APPROVAL,
                    priority=NotificationPriority.HIGH,
                    deep_link=f"/attendances/{record.id}",
                    data={"attendance_id": str(record.id), "approval_id": str(approval.id)},
                ),
                company_id=record.company_id,
            )
        else:
            logger.warning("Unscheduled check-in %s has no eligible approver", record.id)

        await notification_service.notify(
            db,
            record.staff_id,
            NotificationIntent(
                title="미배정 출근",
                body="오늘 배정된 스케줄이 없습니다. 관리자 승인 후 추가근무로 인정됩니다.",
                category=NotificationCategory.ATTENDANCE,
                deep_link=f"/attendances/{record.id}",
                data={"attendance_id": str(record.id)},
            ),
            company_id=record.company_id,
        )

    async def _notify_abnormal_check_in(
        self,
        db: AsyncSession,
        record: AttendanceRecord,
        status: AttendanceStatus,
    ) -> None:
        staff = await staff_repository.get_by_id(db, record.staff_id)
        name: str = staff.name if staff is not None else str(record.staff_id)
        if status == AttendanceStatus.LATE:
            minutes: int = _minutes_between(record.scheduled_check_in, record.actual_check_in)
            title, body = f"[지각] {name}", f"예정 시간보다 {minutes}분 늦게 출근했습니다."
        else:
            minutes = _minutes_between(record.actual_check_in, record.scheduled_check_in)
            title, body = f"[조기출근] {name}", f"예정 시간보다 {minutes}분 일찍 출근했습니다."

        await notification_service.notify_managers(
            db,
            record.company_id,
            NotificationIntent(
                title=title,
                body=body,
                category=NotificationCategory.ATTENDANCE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/attendances/{record.id}",
                data={"attendance_id": str(record.id), "status": status.value},
            ),
            store_id=record.store_id,
            exclude=record.staff_id,
        )

    async def _find_open_record(
        self,
        db: AsyncSession,
        staff_id: UUID,
        today: date,
    ) -> AttendanceRecord | None:
        # 오늘 기록 우선, 없으면 오늘 끝나는 어제의 야간 근무
        record: AttendanceRecord | None = await attendance_repository.get_user_day(db, staff_id, today)
        if record is not None and record.actual_check_in is not None:
            return record

        overnight: AttendanceRecord | None = await attendance_repository.get_user_day(
            db, staff_id, today - timedelta(days=1)
        )
        if (
            overnight is not None
            and overnight.actual_check_in is not None
            and overnight.actual_check_out is None
            and overnight.scheduled_check_out is not None
            and overnight.scheduled_check_out >= start_of_local_day(today)
        ):
            return overnight
        return None

    async def check_out(
        self,
        db: AsyncSession,
        caller: CallerContext,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """퇴근을 기록합니다.

        Close today's record: compute hours and the final status, and record
        the checkout timing in extensions.

        Raises:
            NotFoundError: 오늘 출근 기록이 없는 경우 (No checked-in record for today)
            ConflictError: 이미 퇴근한 경우 (Already checked out)
        """
        now = now or now_utc()
        today: date = local_date(now)

        record: AttendanceRecord | None = await self._find_open_record(db, caller.user_id, today)
        if record is None:
            raise NotFoundError("오늘 출근 기록이 없습니다 (No check-in found for today)")
        if record.actual_check_out is not None:
            raise ConflictError("이미 퇴근했습니다 (Already checked out)")
        if now < record.actual_check_in:
            raise ValidationError("퇴근 시각이 출근 시각보다 빠릅니다 (Check-out precedes check-in)")

        status, timing, diff_minutes = classify_check_out(record.status, now, record.scheduled_check_out)
        extensions = AttendanceExtensions(
            checkout_timing=timing.value if timing is not None else None,
            checkout_diff_minutes=diff_minutes,
        )
        closed: bool = await attendance_repository.close_if_open(
            db, record.id, build_close_values(record, now, status, extensions)
        )
        if not closed:
            raise ConflictError("이미 퇴근했습니다 (Already checked out)")

        record = await attendance_repository.get_fresh(db, record.id)
        logger.info(
            "Check-out %s for staff %s: %s (%.2fh, overtime %.2fh)",
            record.id, caller.user_id, record.status, record.work_hours, record.overtime_hours,
        )
        return record

    async def get_today(
        self,
        db: AsyncSession,
        caller: CallerContext,
        now: datetime | None = None,
    ) -> AttendanceRecord | None:
        """오늘 근태 기록을 조회합니다 (Today's record, or an overnight one still open)."""
        today: date = local_date(now or now_utc())
        record = await self._find_open_record(db, caller.user_id, today)
        if record is None:
            record = await attendance_repository.get_user_day(db, caller.user_id, today)
        return record

    async def get_my_attendances(
        self,
        db: AsyncSession,
        caller: CallerContext,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        """본인 근태 이력 (Own attendance history)."""
        return await attendance_repository.get_user_attendances(
            db, caller.user_id, date_from, date_to, page, per_page
        )

    async def get_attendances(
        self,
        db: AsyncSession,
        caller: CallerContext,
        store_id: UUID | None = None,
        staff_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        """회사 근태 목록 (Company attendance list for managers)."""
        return await attendance_repository.get_by_filters(
            db, caller.company_id, store_id, staff_id, date_from, date_to, status, page, per_page
        )

    async def decide_unscheduled(
        self,
        db: AsyncSession,
        caller: CallerContext,
        attendance_id: UUID,
        data: UnscheduledDecision,
    ) -> AttendanceRecord:
        """미배정 출근을 승인 또는 거절합니다.

        Approve (→ ADDITIONAL_WORK) or reject (status kept, rejection
        recorded in extensions) an unscheduled check-in, finalize the linked
        approval request and tell the employee.

        Raises:
            NotFoundError: 기록이 없는 경우 (Record not found in the caller's company)
            ValidationError: 미배정 출근이 아닌 경우 (Record is not an unscheduled check-in)
            ConflictError: 이미 결정된 경우 (Already decided)
        """
        record: AttendanceRecord | None = await attendance_repository.get_by_id(
            db, attendance_id, company_id=caller.company_id
        )
        if record is None:
            raise NotFoundError("근태 기록을 찾을 수 없습니다 (Attendance record not found)")
        if record.unscheduled_decided_at is not None:
            raise ConflictError("이미 처리된 미배정 출근입니다 (Unscheduled check-in already decided)")
        if record.status != AttendanceStatus.UNSCHEDULED.value:
            raise ValidationError("미배정 출근 기록이 아닙니다 (Record is not an unscheduled check-in)")

        decided_at: datetime = utc_now()
        values: dict[str, Any] = {
            "unscheduled_decided_at": decided_at,
            "unscheduled_decided_by": caller.user_id,
            "updated_at": decided_at,
        }
        if data.action == "approve":
            values["status"] = AttendanceStatus.ADDITIONAL_WORK.value
            final_status = ApprovalStatus.APPROVED
        else:
            values["extensions"] = AttendanceExtensions(
                unscheduled_rejected=True,
                unscheduled_rejection_reason=data.rejection_reason,
            ).merged_into(record.extensions)
            final_status = ApprovalStatus.REJECTED

        if not await attendance_repository.decide_unscheduled_if_pending(db, record.id, values):
            raise ConflictError("이미 처리된 미배정 출근입니다 (Unscheduled check-in already decided)")

        approval: ApprovalRequest | None = await approval_repository.get_for_attendance(
            db, record.id, ApprovalType.UNSCHEDULED_CHECKIN.value
        )
        if approval is not None:
            await approval_repository.update_if_status(
                db,
                approval.id,
                ApprovalStatus.PENDING.value,
                {"final_status": final_status.value, "finalized_at": decided_at},
                status_column="final_status",
            )

        record = await attendance_repository.get_fresh(db, record.id)
        work_date: str = record.work_date.isoformat()
        if final_status == ApprovalStatus.APPROVED:
            intent = NotificationIntent(
                title="미배정 출근 승인됨",
                body=f"{work_date} 미배정 출근이 승인되어 추가근무로 처리되었습니다.",
                category=NotificationCategory.ATTENDANCE,
                deep_link=f"/attendances/{record.id}",
            )
        else:
            suffix: str = f" 사유: {data.rejection_reason}" if data.rejection_reason else ""
            intent = NotificationIntent(
                title="미배정 출근 거절됨",
                body=f"{work_date} 미배정 출근이 거절되었습니다.{suffix}",
                category=NotificationCategory.ATTENDANCE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/attendances/{record.id}",
            )
        await notification_service.notify(db, record.staff_id, intent, company_id=record.company_id)
        logger.info("Unscheduled check-in %s %s by %s", record.id, final_status.value, caller.user_id)
        return record

    def build_response(self, record: AttendanceRecord) -> dict:
        """근태 응답 딕셔너리 (Attendance response dict)."""
        return {
            "id": str(record.id),
            "staff_id": str(record.staff_id),
            "company_id": str(record.company_id),
            "brand_id": str(record.brand_id) if record.brand_id else None,
            "store_id": str(record.store_id) if record.store_id else None,
            "work_date": record.work_date,
            "scheduled_check_in": record.scheduled_check_in,
            "scheduled_check_out": record.scheduled_check_out,
            "actual_check_in": record.actual_check_in,
            "actual_check_out": record.actual_check_out,
            "break_minutes": record.break_minutes,
            "status": record.status,
            "work_hours": record.work_hours or 0.0,
            "overtime_hours": record.overtime_hours or 0.0,
            "night_hours": record.night_hours or 0.0,
            "extensions": record.extensions or {},
            "unscheduled_reason": record.unscheduled_reason,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }


# 싱글턴 인스턴스 — Singleton instance
attendance_service: AttendanceService = AttendanceService()
