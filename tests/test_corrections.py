"""근태 수정 요청 테스트.

Correction workflow tests — Late/early detection with deduplication, the
overtime prompt window, and the reason → decision lifecycle.
"""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import FailingGateway, auth_header, caller_for
from workforce_engine.models.attendance import AttendanceCorrectionRequest, AttendanceRecord
from workforce_engine.models.notification import Notification
from workforce_engine.models.user import StaffMember
from workforce_engine.repositories.attendance_repository import attendance_repository
from workforce_engine.schemas.attendance import CorrectionDecision, CorrectionReasonSubmit
from workforce_engine.services.correction_service import OVERTIME_PROMPT_TITLE, correction_service
from workforce_engine.services.notification_service import notification_service
from workforce_engine.utils.datetime_utils import combine_local
from workforce_engine.utils.exceptions import ConflictError, ForbiddenError, ValidationError

APP = "/api/v1/app"
ADMIN = "/api/v1/admin"

MON = date(2024, 1, 1)


def at(clock: str):
    return combine_local(MON, clock)


async def add_record(
    db: AsyncSession,
    staff: StaffMember,
    check_in: str,
    check_out: str | None = None,
) -> AttendanceRecord:
    """09:00~18:00 예정 근무의 근태 기록을 생성합니다."""
    record = AttendanceRecord(
        staff_id=staff.id,
        company_id=staff.company_id,
        store_id=staff.store_id,
        work_date=MON,
        scheduled_check_in=at("09:00"),
        scheduled_check_out=at("18:00"),
        actual_check_in=at(check_in),
        actual_check_out=at(check_out) if check_out else None,
        break_minutes=60,
        status="WORKING",
        extensions={},
    )
    db.add(record)
    await db.flush()
    await db.refresh(record)
    return record


async def requests_of(db: AsyncSession) -> list[AttendanceCorrectionRequest]:
    result = await db.execute(
        select(AttendanceCorrectionRequest).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class TestCorrectionScan:
    """근태 이상 감지 테스트."""

    async def test_late_check_in_opens_request(self, db: AsyncSession, employee, gateway):
        record = await add_record(db, employee, "09:10")

        result = await correction_service.scan_corrections(db, now=at("10:00"))

        assert result.late_checkin == 1
        assert result.notifications_sent == 1
        [request] = await requests_of(db)
        assert request.attendance_id == record.id
        assert request.request_type == "LATE_CHECKIN"
        assert request.status == "PENDING"
        assert request.reason == ""
        assert request.auto_generated is True
        assert request.notification_sent is True
        assert request.original_check_in == at("09:10")

        [(recipient, intent)] = gateway.sent
        assert recipient == employee.id
        assert intent.title == "지각 사유를 입력해주세요"
        assert intent.deep_link == f"/attendance/correction/{request.id}"
        assert [a.id for a in intent.actions] == ["ENTER_REASON"]
        assert "10분" in intent.body

    async def test_rescan_does_not_duplicate(self, db: AsyncSession, employee, gateway):
        await add_record(db, employee, "09:10")
        await correction_service.scan_corrections(db, now=at("10:00"))

        result = await correction_service.scan_corrections(db, now=at("10:10"))

        assert result.late_checkin == 0
        assert len(await requests_of(db)) == 1
        assert len(gateway.sent) == 1

    async def test_below_threshold_is_ignored(self, db: AsyncSession, employee, gateway):
        await add_record(db, employee, "09:04")

        result = await correction_service.scan_corrections(db, now=at("10:00"))

        assert result.late_checkin == 0
        assert await requests_of(db) == []

    async def test_early_check_out_opens_request(self, db: AsyncSession, employee, gateway):
        await add_record(db, employee, "09:00", check_out="17:30")

        result = await correction_service.scan_corrections(db, now=at("19:00"))

        assert result.early_checkout == 1
        [request] = await requests_of(db)
        assert request.request_type == "EARLY_CHECKOUT"
        assert request.original_check_out == at("17:30")
        assert gateway.sent[0][1].title == "조퇴 사유를 입력해주세요"

    async def test_late_and_early_on_same_record(self, db: AsyncSession, employee, gateway):
        await add_record(db, employee, "09:30", check_out="17:00")

        result = await correction_service.scan_corrections(db, now=at("19:00"))

        assert result.late_checkin == 1
        assert result.early_checkout == 1
        assert {r.request_type for r in await requests_of(db)} == {"LATE_CHECKIN", "EARLY_CHECKOUT"}

    async def test_failed_notification_leaves_flag_unset(self, db: AsyncSession, employee, monkeypatch):
        monkeypatch.setattr(notification_service, "gateway", FailingGateway())
        await add_record(db, employee, "09:10")

        result = await correction_service.scan_corrections(db, now=at("10:00"))

        assert result.late_checkin == 1
        assert result.notifications_sent == 0
        [request] = await requests_of(db)
        assert request.notification_sent is False


class TestOvertimePrompt:
    """연장근무 알림 테스트."""

    async def test_prompt_inside_window(self, db: AsyncSession, employee, gateway):
        record = await add_record(db, employee, "09:00")

        result = await correction_service.scan_corrections(db, now=at("18:35"))

        assert result.overtime_prompts == 1
        [(recipient, intent)] = gateway.sent
        assert recipient == employee.id
        assert intent.title == OVERTIME_PROMPT_TITLE
        assert intent.deep_link == f"/attendance/overtime/{record.id}"
        assert [a.id for a in intent.actions] == ["REQUEST_OVERTIME", "CHECKOUT_NOW"]
        assert await requests_of(db) == []

    @pytest.mark.parametrize("clock", ["18:29", "18:40", "19:30"])
    async def test_no_prompt_outside_window(self, db: AsyncSession, employee, gateway, clock):
        await add_record(db, employee, "09:00")

        result = await correction_service.scan_corrections(db, now=at(clock))

        assert result.overtime_prompts == 0

    async def test_prompt_sent_once_per_day(self, db: AsyncSession, employee):
        """같은 날 두 번 스캔해도 알림은 한 번."""
        await add_record(db, employee, "09:00")

        first = await correction_service.scan_corrections(db, now=at("18:31"))
        second = await correction_service.scan_corrections(db, now=at("18:38"))

        assert first.overtime_prompts == 1
        assert second.overtime_prompts == 0
        count = (
            await db.execute(
                select(func.count()).select_from(Notification).where(Notification.title == OVERTIME_PROMPT_TITLE)
            )
        ).scalar()
        assert count == 1

    async def test_closed_record_not_prompted(self, db: AsyncSession, employee, gateway):
        await add_record(db, employee, "09:00", check_out="18:00")

        result = await correction_service.scan_corrections(db, now=at("18:35"))

        assert result.overtime_prompts == 0


class TestCorrectionWorkflow:
    """사유 입력 및 관리자 결정 테스트."""

    async def _open(self, db: AsyncSession, employee, check_in: str = "09:10", check_out: str = "18:00"):
        await add_record(db, employee, check_in, check_out=check_out)
        await correction_service.scan_corrections(db, now=at("19:00"))
        [request] = await requests_of(db)
        return request

    async def test_submit_reason_notifies_managers(self, db: AsyncSession, employee, manager, gateway):
        request = await self._open(db, employee)

        updated = await correction_service.submit_reason(
            db, caller_for(employee), request.id, CorrectionReasonSubmit(reason="  버스 지연  ")
        )

        assert updated.reason == "버스 지연"
        assert updated.status == "PENDING"
        assert gateway.titles_for(manager.id) == ["[수정 요청] 김직원"]

    async def test_only_owner_can_submit(self, db: AsyncSession, employee, coworker, gateway):
        request = await self._open(db, employee)

        with pytest.raises(ForbiddenError):
            await correction_service.submit_reason(
                db, caller_for(coworker), request.id, CorrectionReasonSubmit(reason="대신 입력")
            )

    async def test_blank_reason_rejected(self, db: AsyncSession, employee, gateway):
        request = await self._open(db, employee)

        with pytest.raises(ValidationError):
            await correction_service.submit_reason(
                db, caller_for(employee), request.id, CorrectionReasonSubmit(reason="   ")
            )

    async def test_inverted_requested_times_rejected(self, db: AsyncSession, employee, gateway):
        request = await self._open(db, employee)

        with pytest.raises(ValidationError):
            await correction_service.submit_reason(
                db,
                caller_for(employee),
                request.id,
                CorrectionReasonSubmit(reason="착오", requested_check_in=at("18:00"), requested_check_out=at("09:00")),
            )

    async def test_approve_requires_reason(self, db: AsyncSession, employee, manager, gateway):
        request = await self._open(db, employee)

        with pytest.raises(ValidationError):
            await correction_service.decide(
                db, caller_for(manager), request.id, CorrectionDecision(action="approve")
            )

    async def test_reject_requires_comment(self, db: AsyncSession, employee, manager, gateway):
        request = await self._open(db, employee)

        with pytest.raises(ValidationError):
            await correction_service.decide(
                db, caller_for(manager), request.id, CorrectionDecision(action="reject", comment="  ")
            )

    async def test_approve_applies_requested_times(self, db: AsyncSession, employee, manager, gateway):
        request = await self._open(db, employee)
        await correction_service.submit_reason(
            db,
            caller_for(employee),
            request.id,
            CorrectionReasonSubmit(reason="출입 태그 오류", requested_check_in=at("09:00")),
        )

        decided = await correction_service.decide(
            db, caller_for(manager), request.id, CorrectionDecision(action="approve")
        )

        assert decided.status == "APPROVED"
        assert decided.reviewed_by == manager.id
        record = await attendance_repository.get_fresh(db, decided.attendance_id)
        assert record.actual_check_in == at("09:00")
        assert record.actual_check_out == at("18:00")
        assert record.work_hours == 8.0
        assert "근태 수정 요청 승인" in gateway.titles_for(employee.id)

    async def test_reject_notifies_with_comment(self, db: AsyncSession, employee, manager, gateway):
        request = await self._open(db, employee)

        decided = await correction_service.decide(
            db, caller_for(manager), request.id, CorrectionDecision(action="reject", comment="증빙 없음")
        )

        assert decided.status == "REJECTED"
        assert decided.review_comment == "증빙 없음"
        rejection = [intent for user, intent in gateway.sent if intent.title == "근태 수정 요청 거절"]
        assert len(rejection) == 1
        assert rejection[0].body.endswith("사유: 증빙 없음")

    async def test_second_decision_conflicts(self, db: AsyncSession, employee, manager, gateway):
        request = await self._open(db, employee)
        await correction_service.decide(
            db, caller_for(manager), request.id, CorrectionDecision(action="reject", comment="불가")
        )

        with pytest.raises(ConflictError):
            await correction_service.decide(
                db, caller_for(manager), request.id, CorrectionDecision(action="reject", comment="불가")
            )

    async def test_cancel_pending_request(self, db: AsyncSession, employee, gateway):
        request = await self._open(db, employee)

        cancelled = await correction_service.cancel(db, caller_for(employee), request.id)

        assert cancelled.status == "CANCELLED"
        with pytest.raises(ConflictError):
            await correction_service.cancel(db, caller_for(employee), request.id)
        with pytest.raises(ConflictError):
            await correction_service.submit_reason(
                db, caller_for(employee), request.id, CorrectionReasonSubmit(reason="늦은 입력")
            )


class TestCorrectionApi:
    """수정 요청 API 테스트."""

    async def test_reason_then_decision(
        self, client: AsyncClient, db: AsyncSession, employee, employee_token, manager_token, gateway
    ):
        await add_record(db, employee, "09:20", check_out="18:00")
        await correction_service.scan_corrections(db, now=at("19:00"))
        [request] = await requests_of(db)

        res = await client.get(f"{APP}/my/attendance-corrections", headers=auth_header(employee_token))
        assert res.status_code == 200
        assert res.json()["total"] == 1

        res = await client.put(
            f"{APP}/my/attendance-corrections/{request.id}/reason",
            json={"reason": "병원 진료"},
            headers=auth_header(employee_token),
        )
        assert res.status_code == 200
        assert res.json()["reason"] == "병원 진료"

        res = await client.get(
            f"{ADMIN}/attendance-corrections", params={"status": "PENDING"}, headers=auth_header(manager_token)
        )
        assert [item["id"] for item in res.json()["items"]] == [str(request.id)]

        res = await client.post(
            f"{ADMIN}/attendance-corrections/{request.id}/decision",
            json={"action": "approve", "comment": "확인"},
            headers=auth_header(manager_token),
        )
        assert res.status_code == 200
        assert res.json()["status"] == "APPROVED"

        res = await client.post(
            f"{APP}/my/attendance-corrections/{request.id}/cancel", headers=auth_header(employee_token)
        )
        assert res.status_code == 409

    async def test_empty_reason_is_422(self, client: AsyncClient, employee_token):
        res = await client.put(
            f"{APP}/my/attendance-corrections/00000000-0000-0000-0000-000000000001/reason",
            json={"reason": ""},
            headers=auth_header(employee_token),
        )
        assert res.status_code == 422
