"""근태 수정 요청 서비스 — 지각/조퇴 감지 및 사유 처리.

Correction Service — Scans today's attendance for late check-ins, early
check-outs and overdue check-outs, opens at most one correction request
per record and anomaly kind, and resolves requests through the
employee-reason / manager-decision workflow.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.config import settings
from workforce_engine.models.attendance import AttendanceCorrectionRequest, AttendanceRecord
from workforce_engine.models.enums import (
    CorrectionStatus,
    CorrectionType,
    NotificationCategory,
    NotificationPriority,
)
from workforce_engine.models.types import utc_now
from workforce_engine.repositories.attendance_repository import (
    attendance_repository,
    correction_request_repository,
)
from workforce_engine.repositories.notification_repository import notification_repository
from workforce_engine.repositories.staff_repository import staff_repository
from workforce_engine.schemas.attendance import (
    CorrectionDecision,
    CorrectionReasonSubmit,
    CorrectionScanError,
    CorrectionScanResult,
)
from workforce_engine.schemas.notification import NotificationAction, NotificationIntent
from workforce_engine.services.notification_service import notification_service
from workforce_engine.services.org_context import CallerContext
from workforce_engine.utils.datetime_utils import format_local_hhmm, local_date, now_utc, start_of_local_day
from workforce_engine.utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from workforce_engine.utils.work_hours import calculate_work_hours

logger = logging.getLogger(__name__)

OVERTIME_PROMPT_TITLE = "연장근무 신청하시겠어요?"
OVERTIME_TITLE_KEYWORD = "연장근무"


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


class CorrectionService:
    """근태 수정 요청 서비스."""

    async def scan_corrections(
        self,
        db: AsyncSession,
        now: datetime | None = None,
    ) -> CorrectionScanResult:
        """오늘의 근태 이상을 감지하여 수정 요청과 알림을 만듭니다.

        Scan today's records:
          - LATE_CHECKIN when the check-in is LATE_THRESHOLD_MINUTES or more
            after the scheduled start
          - EARLY_CHECKOUT when the check-out is EARLY_CHECKOUT_THRESHOLD_MINUTES
            or more before the scheduled end
          - an overtime prompt (no request) for open records whose scheduled
            end passed OVERTIME_THRESHOLD_MINUTES ago, within the prompt window

        Safe to run repeatedly: requests are deduplicated on
        (attendance_id, request_type) and overtime prompts on the day's
        notifications.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            now: 기준 시각, 테스트용 (Clock override)

        Returns:
            CorrectionScanResult: 유형별 건수와 오류 (Counts per kind and errors)
        """
        now = now or now_utc()
        today: date = local_date(now)
        result = CorrectionScanResult()

        records: Sequence[AttendanceRecord] = await attendance_repository.list_for_date(db, today)
        for record in records:
            if record.scheduled_check_in is not None:
                late_by: timedelta = record.actual_check_in - record.scheduled_check_in
                if late_by >= timedelta(minutes=settings.LATE_THRESHOLD_MINUTES):
                    await self._open_request(db, record, CorrectionType.LATE_CHECKIN, _minutes(late_by), result)

            if record.scheduled_check_out is None:
                continue

            if record.actual_check_out is not None:
                early_by: timedelta = record.scheduled_check_out - record.actual_check_out
                if early_by >= timedelta(minutes=settings.EARLY_CHECKOUT_THRESHOLD_MINUTES):
                    await self._open_request(
                        db, record, CorrectionType.EARLY_CHECKOUT, _minutes(early_by), result
                    )
            else:
                await self._maybe_prompt_overtime(db, record, now, result)

        logger.info(
            "Correction scan for %s: %d late, %d early, %d overtime prompts, %d errors",
            today, result.late_checkin, result.early_checkout, result.overtime_prompts, len(result.errors),
        )
        return result

    async def _open_request(
        self,
        db: AsyncSession,
        record: AttendanceRecord,
        kind: CorrectionType,
        minutes: int,
        result: CorrectionScanResult,
    ) -> None:
        existing = await correction_request_repository.get_for_attendance(db, record.id, kind.value)
        if existing is not None:
            return

        try:
            async with db.begin_nested():
                request: AttendanceCorrectionRequest = await correction_request_repository.create(
                    db,
                    {
                        "attendance_id": record.id,
                        "staff_id": record.staff_id,
                        "company_id": record.company_id,
                        "store_id": record.store_id,
                        "request_type": kind.value,
                        "original_check_in": record.actual_check_in,
                        "original_check_out": record.actual_check_out,
                        "reason": "",
                        "status": CorrectionStatus.PENDING.value,
                        "auto_generated": True,
                    },
                )
        except IntegrityError:
            # 동시 실행에서 이미 생성됨 — Created by a concurrent scan
            return
        except SQLAlchemyError as exc:
            logger.warning("Could not open %s request for attendance %s: %s", kind.value, record.id, exc)
            result.errors.append(
                CorrectionScanError(attendance_id=str(record.id), kind=kind.value, error=str(exc)[:300])
            )
            return

        if kind == CorrectionType.LATE_CHECKIN:
            result.late_checkin += 1
            intent = NotificationIntent(
                title="지각 사유를 입력해주세요",
                body=(
                    f"예정 출근 시간({format_local_hhmm(record.scheduled_check_in)})보다 "
                    f"{minutes}분 늦게 출근하셨습니다. 사유를 입력해주세요."
                ),
                category=NotificationCategory.ATTENDANCE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/attendance/correction/{request.id}",
                actions=[NotificationAction(id="ENTER_REASON", label="사유 입력")],
                data={"correction_request_id": str(request.id), "minutes": minutes},
            )
        else:
            result.early_checkout += 1
            intent = NotificationIntent(
                title="조퇴 사유를 입력해주세요",
                body=(
                    f"예정 퇴근 시간({format_local_hhmm(record.scheduled_check_out)})보다 "
                    f"{minutes}분 일찍 퇴근하셨습니다. 사유를 입력해주세요."
                ),
                category=NotificationCategory.ATTENDANCE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/attendance/correction/{request.id}",
                actions=[NotificationAction(id="ENTER_REASON", label="사유 입력")],
                data={"correction_request_id": str(request.id), "minutes": minutes},
            )

        if await notification_service.notify(db, record.staff_id, intent, company_id=record.company_id):
            result.notifications_sent += 1
            await correction_request_repository.update_fields(
                db, request, {"notification_sent": True, "notification_sent_at": utc_now()}
            )

    async def _maybe_prompt_overtime(
        self,
        db: AsyncSession,
        record: AttendanceRecord,
        now: datetime,
        result: CorrectionScanResult,
    ) -> None:
        overdue: timedelta = now - record.scheduled_check_out
        window_start = timedelta(minutes=settings.OVERTIME_THRESHOLD_MINUTES)
        window_end = window_start + timedelta(minutes=settings.OVERTIME_PROMPT_WINDOW_MINUTES)
        if not window_start <= overdue < window_end:
            return

        try:
            already_prompted: bool = await notification_repository.exists_titled_since(
                db,
                record.staff_id,
                NotificationCategory.ATTENDANCE.value,
                start_of_local_day(local_date(now)),
                OVERTIME_TITLE_KEYWORD,
            )
        except SQLAlchemyError as exc:
            result.errors.append(
                CorrectionScanError(attendance_id=str(record.id), kind="OVERTIME", error=str(exc)[:300])
            )
            return
        if already_prompted:
            return

        sent: bool = await notification_service.notify(
            db,
            record.staff_id,
            NotificationIntent(
                title=OVERTIME_PROMPT_TITLE,
                body=(
                    f"예정 퇴근 시간({format_local_hhmm(record.scheduled_check_out)})이 "
                    f"{_minutes(overdue)}분 지났습니다. 연장근무를 신청하거나 퇴근해주세요."
                ),
                category=NotificationCategory.ATTENDANCE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/attendance/overtime/{record.id}",
                actions=[
                    NotificationAction(id="REQUEST_OVERTIME", label="연장근무 신청"),
                    NotificationAction(id="CHECKOUT_NOW", label="퇴근하기"),
                ],
                data={"attendance_id": str(record.id)},
            ),
            company_id=record.company_id,
        )
        if sent:
            result.overtime_prompts += 1
            result.notifications_sent += 1

    async def _get_owned(
        self,
        db: AsyncSession,
        caller: CallerContext,
        request_id: UUID,
    ) -> AttendanceCorrectionRequest:
        request = await correction_request_repository.get_by_id(db, request_id, company_id=caller.company_id)
        if request is None:
            raise NotFoundError("수정 요청을 찾을 수 없습니다 (Correction request not found)")
        if request.staff_id != caller.user_id:
            raise ForbiddenError("본인의 수정 요청만 처리할 수 있습니다 (Not your correction request)")
        return request

    async def submit_reason(
        self,
        db: AsyncSession,
        caller: CallerContext,
        request_id: UUID,
        data: CorrectionReasonSubmit,
    ) -> AttendanceCorrectionRequest:
        """수정 요청에 사유를 입력합니다.

        The employee fills in the reason (and optionally the times they
        claim). Managers are notified that a review is needed.

        Raises:
            NotFoundError: 요청이 없는 경우 (Request not found)
            ForbiddenError: 본인 요청이 아닌 경우 (Not the owner)
            ValidationError: 사유가 비어 있는 경우 (Blank reason)
            ConflictError: 대기 상태가 아닌 경우 (Request no longer PENDING)
        """
        request = await self._get_owned(db, caller, request_id)
        reason: str = data.reason.strip()
        if not reason:
            raise ValidationError("사유를 입력해주세요 (Reason must not be blank)")
        if (
            data.requested_check_in is not None
            and data.requested_check_out is not None
            and data.requested_check_out < data.requested_check_in
        ):
            raise ValidationError("퇴근 시각이 출근 시각보다 빠릅니다 (Requested check-out precedes check-in)")

        values: dict[str, Any] = {"reason": reason, "updated_at": utc_now()}
        if data.requested_check_in is not None:
            values["requested_check_in"] = data.requested_check_in
        if data.requested_check_out is not None:
            values["requested_check_out"] = data.requested_check_out

        if not await correction_request_repository.update_if_status(
            db, request.id, CorrectionStatus.PENDING.value, values
        ):
            raise ConflictError("이미 처리된 수정 요청입니다 (Correction request is no longer pending)")

        request = await correction_request_repository.get_fresh(db, request.id)
        attendance = await attendance_repository.get_by_id(db, request.attendance_id)
        staff = await staff_repository.get_by_id(db, request.staff_id)
        name: str = staff.name if staff is not None else str(request.staff_id)
        work_date: str = attendance.work_date.isoformat() if attendance is not None else ""

        await notification_service.notify_managers(
            db,
            request.company_id,
            NotificationIntent(
                title=f"[수정 요청] {name}",
                body=f"{name}님이 {work_date} 출퇴근 기록 수정을 요청했습니다. 승인이 필요합니다.",
                category=NotificationCategory.APPROVAL,
                deep_link=f"/attendance-corrections/{request.id}",
                data={"correction_request_id": str(request.id)},
            ),
            store_id=request.store_id,
            exclude=request.staff_id,
        )
        return request

    async def cancel(
        self,
        db: AsyncSession,
        caller: CallerContext,
        request_id: UUID,
    ) -> AttendanceCorrectionRequest:
        """대기 중인 본인 수정 요청을 취소합니다 (Cancel one's own PENDING request)."""
        request = await self._get_owned(db, caller, request_id)
        if not await correction_request_repository.update_if_status(
            db,
            request.id,
            CorrectionStatus.PENDING.value,
            {"status": CorrectionStatus.CANCELLED.value, "updated_at": utc_now()},
        ):
            raise ConflictError("대기 중인 요청만 취소할 수 있습니다 (Only pending requests can be cancelled)")
        return await correction_request_repository.get_fresh(db, request.id)

    async def decide(
        self,
        db: AsyncSession,
        caller: CallerContext,
        request_id: UUID,
        data: CorrectionDecision,
    ) -> AttendanceCorrectionRequest:
        """관리자가 수정 요청을 승인 또는 거절합니다.

        Approval requires the employee's reason and applies any requested
        times to the attendance record, recomputing its hours. Rejection
        requires a comment. The employee is notified either way.

        Raises:
            NotFoundError: 요청이 없는 경우 (Request not found in the caller's company)
            ValidationError: 사유 미입력 승인 또는 코멘트 없는 거절
                             (Approving without a reason, rejecting without a comment)
            ConflictError: 대기 상태가 아닌 경우 (Request no longer PENDING)
        """
        request = await correction_request_repository.get_by_id(db, request_id, company_id=caller.company_id)
        if request is None:
            raise NotFoundError("수정 요청을 찾을 수 없습니다 (Correction request not found)")

        comment: str | None = data.comment.strip() if data.comment else None
        if data.action == "approve":
            if not request.reason.strip():
                raise ValidationError("사유가 입력되지 않은 요청입니다 (Reason has not been submitted yet)")
            new_status = CorrectionStatus.APPROVED
        else:
            if not comment:
                raise ValidationError("거절 사유를 입력해주세요 (A comment is required to reject)")
            new_status = CorrectionStatus.REJECTED

        reviewed_at: datetime = utc_now()
        if not await correction_request_repository.update_if_status(
            db,
            request.id,
            CorrectionStatus.PENDING.value,
            {
                "status": new_status.value,
                "reviewed_by": caller.user_id,
                "reviewed_at": reviewed_at,
                "review_comment": comment,
                "updated_at": reviewed_at,
            },
        ):
            raise ConflictError("이미 처리된 수정 요청입니다 (Correction request is no longer pending)")

        request = await correction_request_repository.get_fresh(db, request.id)
        if new_status == CorrectionStatus.APPROVED:
            await self._apply_requested_times(db, request)
            intent = NotificationIntent(
                title="근태 수정 요청 승인",
                body="제출하신 근태 수정 요청이 승인되어 반영되었습니다.",
                category=NotificationCategory.ATTENDANCE,
                deep_link=f"/attendance/correction/{request.id}",
            )
        else:
            intent = NotificationIntent(
                title="근태 수정 요청 거절",
                body=f"제출하신 근태 수정 요청이 거절되었습니다. 사유: {comment}",
                category=NotificationCategory.ATTENDANCE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/attendance/correction/{request.id}",
            )
        await notification_service.notify(db, request.staff_id, intent, company_id=request.company_id)
        logger.info("Correction request %s %s by %s", request.id, new_status.value, caller.user_id)
        return request

    async def _apply_requested_times(
        self,
        db: AsyncSession,
        request: AttendanceCorrectionRequest,
    ) -> None:
        if request.requested_check_in is None and request.requested_check_out is None:
            return
        record = await attendance_repository.get_by_id(db, request.attendance_id)
        if record is None:
            return

        check_in: datetime | None = request.requested_check_in or record.actual_check_in
        check_out: datetime | None = request.requested_check_out or record.actual_check_out
        if check_in is not None and check_out is not None and check_out < check_in:
            raise ValidationError("퇴근 시각이 출근 시각보다 빠릅니다 (Requested check-out precedes check-in)")

        values: dict[str, Any] = {"actual_check_in": check_in, "actual_check_out": check_out}
        if check_in is not None and check_out is not None:
            hours = calculate_work_hours(check_in, check_out, record.break_minutes)
            values.update(
                work_hours=hours.work_hours,
                overtime_hours=hours.overtime_hours,
                night_hours=hours.night_hours,
            )
        await attendance_repository.update_fields(db, record, values)

    async def get_my_requests(
        self,
        db: AsyncSession,
        caller: CallerContext,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceCorrectionRequest], int]:
        """본인 수정 요청 목록 (Own correction requests)."""
        return await correction_request_repository.get_user_requests(db, caller.user_id, status, page, per_page)

    async def get_requests(
        self,
        db: AsyncSession,
        caller: CallerContext,
        status: str | None = None,
        store_id: UUID | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceCorrectionRequest], int]:
        """회사 수정 요청 목록 (Company correction requests)."""
        return await correction_request_repository.get_by_filters(
            db, caller.company_id, status, store_id, page, per_page
        )

    def build_response(self, request: AttendanceCorrectionRequest) -> dict:
        """수정 요청 응답 딕셔너리 (Correction request response dict)."""
        return {
            "id": str(request.id),
            "attendance_id": str(request.attendance_id),
            "staff_id": str(request.staff_id),
            "request_type": request.request_type,
            "original_check_in": request.original_check_in,
            "original_check_out": request.original_check_out,
            "requested_check_in": request.requested_check_in,
            "requested_check_out": request.requested_check_out,
            "reason": request.reason,
            "status": request.status,
            "auto_generated": request.auto_generated,
            "notification_sent": request.notification_sent,
            "reviewed_by": str(request.reviewed_by) if request.reviewed_by else None,
            "reviewed_at": request.reviewed_at,
            "review_comment": request.review_comment,
            "created_at": request.created_at,
        }


# 싱글턴 인스턴스 — Singleton instance
correction_service: CorrectionService = CorrectionService()
