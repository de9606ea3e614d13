"""출퇴근 기록 테스트.

Attendance recorder tests — Check-in classification, check-out status
precedence and hour accounting, overnight shifts, unscheduled check-in
approval, and the employee/manager attendance API.
"""

import uuid
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import (
    FailingGateway,
    add_contract,
    add_schedule,
    add_staff,
    auth_header,
    caller_for,
)
from workforce_engine.models.approval import ApprovalRequest
from workforce_engine.models.attendance import AttendanceRecord
from workforce_engine.models.contract import Contract
from workforce_engine.models.notification import Notification
from workforce_engine.models.schedule import ScheduleEntry
from workforce_engine.models.user import StaffMember
from workforce_engine.schemas.attendance import UnscheduledDecision
from workforce_engine.services.attendance_service import (
    attendance_service,
    classify_check_in,
    classify_check_out,
)
from workforce_engine.services.notification_service import notification_service
from workforce_engine.services.org_context import CallerContext, resolve_contract_scope, resolve_org_context
from workforce_engine.utils.datetime_utils import combine_local
from workforce_engine.utils.exceptions import ConflictError, NotFoundError, ValidationError

APP = "/api/v1/app"
ADMIN = "/api/v1/admin"

MON = date(2024, 1, 1)
TUE = date(2024, 1, 2)


def at(clock: str, day: date = MON):
    return combine_local(day, clock)


class TestClassification:
    """출퇴근 판정 순수 함수 테스트."""

    @pytest.mark.parametrize(
        ("clock", "expected"),
        [
            ("08:29", "EARLY_CHECK_IN"),
            ("08:30", "EARLY_CHECK_IN"),
            ("08:31", "WORKING"),
            ("09:00", "WORKING"),
            ("09:04", "WORKING"),
            ("09:05", "LATE"),
            ("11:00", "LATE"),
        ],
    )
    def test_check_in_boundaries(self, clock, expected):
        assert classify_check_in(at(clock), at("09:00")).value == expected

    def test_no_schedule_is_unscheduled(self):
        assert classify_check_in(at("09:00"), None).value == "UNSCHEDULED"

    @pytest.mark.parametrize(
        ("current", "clock", "expected", "timing"),
        [
            ("WORKING", "17:50", "EARLY_LEAVE", "EARLY"),
            ("WORKING", "17:51", "NORMAL", "ON_TIME"),
            ("WORKING", "18:29", "NORMAL", "ON_TIME"),
            ("WORKING", "18:30", "OVERTIME", "LATE"),
            ("LATE", "18:00", "LATE", "ON_TIME"),
            ("LATE", "18:30", "OVERTIME", "LATE"),
            ("LATE", "17:00", "EARLY_LEAVE", "EARLY"),
            ("EARLY_CHECK_IN", "18:00", "NORMAL", "ON_TIME"),
            ("UNSCHEDULED", "17:00", "UNSCHEDULED", "EARLY"),
            ("ADDITIONAL_WORK", "20:00", "ADDITIONAL_WORK", "LATE"),
        ],
    )
    def test_check_out_precedence(self, current, clock, expected, timing):
        status, checkout_timing, _ = classify_check_out(current, at(clock), at("18:00"))
        assert status.value == expected
        assert checkout_timing.value == timing

    def test_check_out_without_schedule(self):
        status, timing, diff = classify_check_out("UNSCHEDULED", at("18:00"), None)
        assert status.value == "UNSCHEDULED"
        assert timing is None
        assert diff is None


class TestOrgContext:
    """조직 범위 결정 테스트."""

    def test_schedule_wins(self):
        caller = CallerContext(user_id=uuid.uuid4(), company_id=uuid.uuid4(), role="employee", store_id=uuid.uuid4())
        entry = ScheduleEntry(company_id=caller.company_id, brand_id=uuid.uuid4(), store_id=uuid.uuid4())
        scope = resolve_org_context(entry, None, caller)
        assert scope.store_id == entry.store_id
        assert scope.brand_id == entry.brand_id

    def test_contract_used_without_schedule(self):
        caller = CallerContext(user_id=uuid.uuid4(), company_id=uuid.uuid4(), role="employee", store_id=uuid.uuid4())
        contract = Contract(company_id=caller.company_id, brand_id=None, store_id=uuid.uuid4())
        scope = resolve_org_context(None, contract, caller)
        assert scope.store_id == contract.store_id
        assert scope.brand_id is None

    def test_storeless_schedule_falls_through_to_caller(self):
        caller = CallerContext(
            user_id=uuid.uuid4(), company_id=uuid.uuid4(), role="employee",
            brand_id=uuid.uuid4(), store_id=uuid.uuid4(),
        )
        entry = ScheduleEntry(company_id=caller.company_id, brand_id=uuid.uuid4(), store_id=None)
        scope = resolve_org_context(entry, None, caller)
        assert scope.store_id == caller.store_id
        assert scope.brand_id == caller.brand_id
        assert scope.company_id == caller.company_id

    def test_contract_scope_prefers_request_then_staff_then_caller(self):
        caller = CallerContext(
            user_id=uuid.uuid4(), company_id=uuid.uuid4(), role="store_manager",
            brand_id=uuid.uuid4(), store_id=uuid.uuid4(),
        )
        staff = StaffMember(company_id=caller.company_id, brand_id=None, store_id=uuid.uuid4())
        requested = uuid.uuid4()

        assert resolve_contract_scope(None, requested, staff, caller) == (caller.brand_id, requested)
        assert resolve_contract_scope(None, None, staff, caller) == (caller.brand_id, staff.store_id)

        staff.store_id = None
        assert resolve_contract_scope(None, None, staff, caller) == (caller.brand_id, caller.store_id)


class TestCheckIn:
    """출근 기록 테스트."""

    async def test_on_time_check_in(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON)

        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:04"))

        assert record.status == "WORKING"
        assert record.work_date == MON
        assert record.scheduled_check_in == at("09:00")
        assert record.scheduled_check_out == at("18:00")
        assert record.break_minutes == 60
        assert record.store_id == employee.store_id
        assert record.extensions["check_in_status"] == "WORKING"
        assert gateway.sent == []

    async def test_late_check_in_notifies_managers(self, db: AsyncSession, employee, manager, gateway):
        await add_schedule(db, employee, MON)

        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:05"))

        assert record.status == "LATE"
        assert gateway.titles_for(manager.id) == ["[지각] 김직원"]
        assert gateway.titles_for(employee.id) == []

    async def test_early_check_in_notifies_managers(self, db: AsyncSession, employee, manager, gateway):
        await add_schedule(db, employee, MON)

        record = await attendance_service.check_in(db, caller_for(employee), now=at("08:30"))

        assert record.status == "EARLY_CHECK_IN"
        assert gateway.titles_for(manager.id) == ["[조기출근] 김직원"]

    async def test_split_shifts_use_first_start_and_last_end(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON, "08:00", "12:00", break_minutes=0)
        await add_schedule(db, employee, MON, "17:00", "21:00", break_minutes=30)

        record = await attendance_service.check_in(db, caller_for(employee), now=at("08:02"))

        assert record.scheduled_check_in == at("08:00")
        assert record.scheduled_check_out == at("21:00")
        assert record.break_minutes == 30

    async def test_contract_pattern_used_without_schedule(self, db: AsyncSession, employee, gateway):
        """스케줄이 없으면 계약 패턴으로 예정 시간 결정."""
        contract = await add_contract(
            db, employee, [{"days_of_week": [1], "start_time": "10:00", "end_time": "15:00", "break_minutes": 30}]
        )
        contract.store_id = uuid.uuid4()
        await db.flush()

        record = await attendance_service.check_in(db, caller_for(employee), now=at("10:20"))

        assert record.status == "LATE"
        assert record.scheduled_check_in == at("10:00")
        assert record.scheduled_check_out == at("15:00")
        assert record.break_minutes == 30
        assert record.store_id == contract.store_id

    async def test_cancelled_schedule_is_ignored(self, db: AsyncSession, employee, gateway):
        entry = await add_schedule(db, employee, MON)
        entry.status = "CANCELLED"
        await db.flush()

        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        assert record.status == "UNSCHEDULED"

    async def test_double_check_in_conflicts(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON)
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        with pytest.raises(ConflictError):
            await attendance_service.check_in(db, caller_for(employee), now=at("09:30"))

        count = (await db.execute(select(func.count()).select_from(AttendanceRecord))).scalar()
        assert count == 1

    async def test_fills_precreated_record(self, db: AsyncSession, employee, gateway):
        """출근 없이 미리 생성된 기록은 채워서 사용."""
        await add_schedule(db, employee, MON)
        placeholder = AttendanceRecord(
            staff_id=employee.id,
            company_id=employee.company_id,
            work_date=MON,
            status="ABSENT",
            extensions={"note": "pre-created"},
        )
        db.add(placeholder)
        await db.flush()

        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        assert record.id == placeholder.id
        assert record.status == "WORKING"
        assert record.actual_check_in == at("09:00")
        assert record.extensions["note"] == "pre-created"

    async def test_work_date_uses_org_timezone(self, db: AsyncSession, employee, gateway):
        """UTC로는 전날이어도 서울 기준 날짜로 기록."""
        record = await attendance_service.check_in(db, caller_for(employee), now=at("07:00"))
        assert record.work_date == MON

    async def test_failed_notification_does_not_block(self, db: AsyncSession, employee, manager, monkeypatch):
        await add_schedule(db, employee, MON)
        monkeypatch.setattr(notification_service, "gateway", FailingGateway())

        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:30"))

        assert record.status == "LATE"
        assert record.actual_check_in == at("09:30")


class TestUnscheduledCheckIn:
    """미배정 출근 테스트."""

    async def test_creates_one_approval_request(self, db: AsyncSession, employee, manager, admin, gateway):
        record = await attendance_service.check_in(
            db, caller_for(employee), now=at("09:00"), reason="대타 요청 받음"
        )

        assert record.status == "UNSCHEDULED"
        assert record.scheduled_check_in is None
        assert record.unscheduled_reason == "대타 요청 받음"

        approvals = (await db.execute(select(ApprovalRequest))).scalars().all()
        assert len(approvals) == 1
        approval = approvals[0]
        assert approval.type == "UNSCHEDULED_CHECKIN"
        assert approval.attendance_id == record.id
        assert approval.final_status == "PENDING"
        assert set(approval.approver_ids) == {str(manager.id), str(admin.id)}
        assert approval.details["reason"] == "대타 요청 받음"

        assert gateway.titles_for(manager.id) == ["미배정 출근 승인 요청"]
        assert gateway.titles_for(admin.id) == ["미배정 출근 승인 요청"]
        assert gateway.titles_for(employee.id) == ["미배정 출근"]

    async def test_no_approval_without_managers(self, db: AsyncSession, employee, gateway):
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        count = (await db.execute(select(func.count()).select_from(ApprovalRequest))).scalar()
        assert count == 0
        assert gateway.titles_for(employee.id) == ["미배정 출근"]

    async def test_other_store_manager_not_asked(self, db: AsyncSession, employee, company_id, gateway):
        other = await add_staff(db, company_id, "타매장", role="store_manager", store_id=uuid.uuid4())

        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        assert gateway.titles_for(other.id) == []

    async def test_default_gateway_writes_notifications(self, db: AsyncSession, employee, manager):
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        rows = (await db.execute(select(Notification).order_by(Notification.title))).scalars().all()
        assert {(n.user_id, n.title) for n in rows} == {
            (employee.id, "미배정 출근"),
            (manager.id, "미배정 출근 승인 요청"),
        }
        request = next(n for n in rows if n.user_id == manager.id)
        assert request.category == "APPROVAL"
        assert request.priority == "HIGH"

    async def test_approve_becomes_additional_work(self, db: AsyncSession, employee, manager, gateway):
        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        decided = await attendance_service.decide_unscheduled(
            db, caller_for(manager), record.id, UnscheduledDecision(action="approve")
        )

        assert decided.status == "ADDITIONAL_WORK"
        assert decided.unscheduled_decided_by == manager.id
        approval = (await db.execute(select(ApprovalRequest).execution_options(populate_existing=True))).scalar_one()
        assert approval.final_status == "APPROVED"
        assert "미배정 출근 승인됨" in gateway.titles_for(employee.id)

        closed = await attendance_service.check_out(db, caller_for(employee), now=at("13:00"))
        assert closed.status == "ADDITIONAL_WORK"

    async def test_reject_keeps_status(self, db: AsyncSession, employee, manager, gateway):
        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        decided = await attendance_service.decide_unscheduled(
            db, caller_for(manager), record.id, UnscheduledDecision(action="reject", rejection_reason="배정 없음")
        )

        assert decided.status == "UNSCHEDULED"
        assert decided.extensions["unscheduled_rejected"] is True
        assert decided.extensions["unscheduled_rejection_reason"] == "배정 없음"
        assert "미배정 출근 거절됨" in gateway.titles_for(employee.id)

    async def test_second_decision_conflicts(self, db: AsyncSession, employee, manager, gateway):
        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))
        await attendance_service.decide_unscheduled(
            db, caller_for(manager), record.id, UnscheduledDecision(action="reject")
        )

        with pytest.raises(ConflictError):
            await attendance_service.decide_unscheduled(
                db, caller_for(manager), record.id, UnscheduledDecision(action="approve")
            )

    async def test_scheduled_record_cannot_be_decided(self, db: AsyncSession, employee, manager, gateway):
        await add_schedule(db, employee, MON)
        record = await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        with pytest.raises(ValidationError):
            await attendance_service.decide_unscheduled(
                db, caller_for(manager), record.id, UnscheduledDecision(action="approve")
            )


class TestCheckOut:
    """퇴근 기록 테스트."""

    async def test_overtime_hours(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON)
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        record = await attendance_service.check_out(db, caller_for(employee), now=at("19:30"))

        assert record.status == "OVERTIME"
        assert record.actual_check_out == at("19:30")
        assert record.work_hours == 9.5
        assert record.overtime_hours == 1.5
        assert record.night_hours == 0.0
        assert record.extensions["checkout_timing"] == "LATE"
        assert record.extensions["checkout_diff_minutes"] == 90
        assert record.extensions["check_in_status"] == "WORKING"

    async def test_early_leave(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON)
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        record = await attendance_service.check_out(db, caller_for(employee), now=at("17:50"))

        assert record.status == "EARLY_LEAVE"
        assert record.extensions["checkout_timing"] == "EARLY"

    async def test_late_stays_late(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON)
        await attendance_service.check_in(db, caller_for(employee), now=at("09:10"))

        record = await attendance_service.check_out(db, caller_for(employee), now=at("18:05"))

        assert record.status == "LATE"

    async def test_unscheduled_without_break(self, db: AsyncSession, employee, gateway):
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        record = await attendance_service.check_out(db, caller_for(employee), now=at("13:00"))

        assert record.status == "UNSCHEDULED"
        assert record.work_hours == 4.0
        assert "checkout_timing" not in record.extensions

    async def test_overnight_shift_closes_previous_day(self, db: AsyncSession, employee, gateway):
        """전날 시작한 야간 근무는 다음 날 퇴근으로 종료."""
        await add_schedule(db, employee, MON, "22:00", "06:00", break_minutes=60)
        entry = (await db.execute(select(ScheduleEntry))).scalar_one()
        entry.end_time = at("06:00", TUE)
        await db.flush()
        opened = await attendance_service.check_in(db, caller_for(employee), now=at("21:55"))

        record = await attendance_service.check_out(db, caller_for(employee), now=at("06:05", TUE))

        assert record.id == opened.id
        assert record.work_date == MON
        assert record.status == "NORMAL"
        assert record.work_hours == 7.17
        assert record.night_hours == 2.0

    async def test_no_record_is_not_found(self, db: AsyncSession, employee, gateway):
        with pytest.raises(NotFoundError):
            await attendance_service.check_out(db, caller_for(employee), now=at("18:00"))

    async def test_double_check_out_conflicts(self, db: AsyncSession, employee, gateway):
        await add_schedule(db, employee, MON)
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))
        await attendance_service.check_out(db, caller_for(employee), now=at("18:00"))

        with pytest.raises(ConflictError):
            await attendance_service.check_out(db, caller_for(employee), now=at("18:10"))

    async def test_check_out_before_check_in_rejected(self, db: AsyncSession, employee, gateway):
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        with pytest.raises(ValidationError):
            await attendance_service.check_out(db, caller_for(employee), now=at("08:00"))

    async def test_yesterday_regular_shift_not_reopened(self, db: AsyncSession, employee, gateway):
        """어제의 일반 근무는 오늘 퇴근 대상이 아님."""
        await add_schedule(db, employee, MON)
        await attendance_service.check_in(db, caller_for(employee), now=at("09:00"))

        with pytest.raises(NotFoundError):
            await attendance_service.check_out(db, caller_for(employee), now=at("09:00", TUE))


class TestAttendanceApi:
    """출퇴근 API 테스트."""

    async def test_check_in_flow(self, client: AsyncClient, employee, employee_token):
        res = await client.post(
            f"{APP}/my/attendance/check-in", json={"reason": "긴급 호출"}, headers=auth_header(employee_token)
        )
        assert res.status_code == 200
        data = res.json()
        assert data["status"] == "UNSCHEDULED"
        assert data["unscheduled_reason"] == "긴급 호출"

        res = await client.post(f"{APP}/my/attendance/check-in", headers=auth_header(employee_token))
        assert res.status_code == 409

        res = await client.get(f"{APP}/my/attendance/today", headers=auth_header(employee_token))
        assert res.status_code == 200
        assert res.json()["id"] == data["id"]

        res = await client.post(f"{APP}/my/attendance/check-out", headers=auth_header(employee_token))
        assert res.status_code == 200
        assert res.json()["actual_check_out"] is not None

        res = await client.get(f"{APP}/my/attendance", headers=auth_header(employee_token))
        assert res.status_code == 200
        assert res.json()["total"] == 1

    async def test_check_out_without_check_in(self, client: AsyncClient, employee, employee_token):
        res = await client.post(f"{APP}/my/attendance/check-out", headers=auth_header(employee_token))
        assert res.status_code == 404

    async def test_manager_lists_and_decides(
        self, client: AsyncClient, employee, employee_token, manager_token
    ):
        res = await client.post(f"{APP}/my/attendance/check-in", headers=auth_header(employee_token))
        attendance_id = res.json()["id"]

        res = await client.get(
            f"{ADMIN}/attendances", params={"status": "UNSCHEDULED"}, headers=auth_header(manager_token)
        )
        assert res.status_code == 200
        assert [item["id"] for item in res.json()["items"]] == [attendance_id]

        res = await client.post(
            f"{ADMIN}/attendances/{attendance_id}/unscheduled-decision",
            json={"action": "approve"},
            headers=auth_header(manager_token),
        )
        assert res.status_code == 200
        assert res.json()["status"] == "ADDITIONAL_WORK"

        res = await client.post(
            f"{ADMIN}/attendances/{attendance_id}/unscheduled-decision",
            json={"action": "approve"},
            headers=auth_header(manager_token),
        )
        assert res.status_code == 409

    async def test_employee_cannot_decide(self, client: AsyncClient, employee, employee_token):
        res = await client.post(
            f"{ADMIN}/attendances/{uuid.uuid4()}/unscheduled-decision",
            json={"action": "approve"},
            headers=auth_header(employee_token),
        )
        assert res.status_code == 403
