"""자동 퇴근 처리 테스트.

Reconciliation sweeper tests — Past-due and same-day closes, idempotent
re-runs, per-record failure isolation, backfill ranges and the job API.
"""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import auth_header, caller_for
from workforce_engine.config import settings
from workforce_engine.models.attendance import AttendanceRecord
from workforce_engine.models.user import StaffMember
from workforce_engine.repositories.attendance_repository import attendance_repository
from workforce_engine.services.attendance_service import attendance_service
from workforce_engine.services.reconciliation_service import (
    BATCH_REASON_SCHEDULED_END,
    REASON_ADJUSTED_SUFFIX,
    REASON_DEFAULT_SHIFT,
    REASON_SCHEDULED_END,
    REASON_TODAY_OVERDUE,
    reconciliation_service,
)
from workforce_engine.utils.datetime_utils import combine_local
from workforce_engine.utils.exceptions import ValidationError

ADMIN = "/api/v1/admin"
JOBS = "/api/v1/jobs"

JAN_8 = date(2024, 1, 8)
JAN_9 = date(2024, 1, 9)
JAN_10 = date(2024, 1, 10)


async def add_open_record(
    db: AsyncSession,
    staff: StaffMember,
    work_date: date,
    check_in: str = "09:00",
    scheduled_out: str | None = "18:00",
    break_minutes: int | None = 60,
    status: str = "WORKING",
    scheduled_out_date: date | None = None,
) -> AttendanceRecord:
    """출근만 한 근태 기록을 생성합니다."""
    record = AttendanceRecord(
        staff_id=staff.id,
        company_id=staff.company_id,
        store_id=staff.store_id,
        work_date=work_date,
        scheduled_check_in=combine_local(work_date, "09:00") if scheduled_out else None,
        scheduled_check_out=combine_local(scheduled_out_date or work_date, scheduled_out) if scheduled_out else None,
        actual_check_in=combine_local(work_date, check_in),
        break_minutes=break_minutes,
        status=status,
        extensions={"check_in_status": status},
    )
    db.add(record)
    await db.flush()
    await db.refresh(record)
    return record


async def reload(db: AsyncSession, record: AttendanceRecord) -> AttendanceRecord:
    return await attendance_repository.get_fresh(db, record.id)


class TestPastDueSweep:
    """지난 날짜 미퇴근 처리 테스트."""

    async def test_closes_at_scheduled_end(self, db: AsyncSession, employee, gateway):
        record = await add_open_record(db, employee, JAN_8)

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        assert result.processed == 1
        assert result.errors == []
        closed = await reload(db, record)
        assert closed.actual_check_out == combine_local(JAN_8, "18:00")
        assert closed.status == "NORMAL"
        assert closed.work_hours == 8.0
        assert closed.extensions["auto_checkout"] is True
        assert closed.extensions["auto_checkout_reason"] == REASON_SCHEDULED_END
        assert closed.extensions["check_in_status"] == "WORKING"
        assert "manual_batch_process" not in closed.extensions

    async def test_default_shift_without_schedule(self, db: AsyncSession, employee, gateway):
        """예정 퇴근이 없으면 출근 + 8시간, 휴게 기본 60분."""
        record = await add_open_record(db, employee, JAN_8, scheduled_out=None, break_minutes=None)

        await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        closed = await reload(db, record)
        assert closed.actual_check_out == combine_local(JAN_8, "17:00")
        assert closed.break_minutes == 60
        assert closed.work_hours == 7.0
        assert closed.extensions["auto_checkout_reason"] == REASON_DEFAULT_SHIFT

    async def test_scheduled_end_before_check_in_is_adjusted(self, db: AsyncSession, employee, gateway):
        record = await add_open_record(db, employee, JAN_8, check_in="19:00", scheduled_out="18:00")

        await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        closed = await reload(db, record)
        assert closed.actual_check_out == combine_local(JAN_9, "03:00")
        assert closed.extensions["auto_checkout_reason"] == REASON_DEFAULT_SHIFT + REASON_ADJUSTED_SUFFIX

    async def test_overnight_shift_still_running_is_left_open(self, db: AsyncSession, employee, gateway):
        """어제 시작한 야간 근무는 예정 퇴근 전에 닫지 않음."""
        record = await add_open_record(
            db, employee, JAN_8, check_in="22:00", scheduled_out="06:00", scheduled_out_date=JAN_9
        )

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_9, "00:05"))

        assert result.processed == 0
        assert result.skipped == 0
        assert (await reload(db, record)).actual_check_out is None

        closed = await attendance_service.check_out(db, caller_for(employee), now=combine_local(JAN_9, "06:05"))
        assert closed.id == record.id
        assert closed.actual_check_out == combine_local(JAN_9, "06:05")
        assert closed.extensions.get("auto_checkout") is None

    async def test_overnight_shift_closed_after_grace(self, db: AsyncSession, employee, gateway):
        record = await add_open_record(
            db, employee, JAN_8, check_in="22:00", scheduled_out="06:00", scheduled_out_date=JAN_9
        )

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_9, "08:30"))

        assert result.processed == 1
        closed = await reload(db, record)
        assert closed.actual_check_out == combine_local(JAN_9, "06:00")
        assert closed.extensions["auto_checkout_reason"] == REASON_SCHEDULED_END

    async def test_rerun_is_noop(self, db: AsyncSession, employee, gateway):
        record = await add_open_record(db, employee, JAN_8)
        now = combine_local(JAN_10, "03:00")
        await reconciliation_service.run_sweeper(db, now=now)
        first = dict((await reload(db, record)).extensions)

        result = await reconciliation_service.run_sweeper(db, now=now)

        assert result.processed == 0
        assert result.skipped == 0
        assert (await reload(db, record)).extensions == first

    async def test_closed_records_untouched(self, db: AsyncSession, employee, gateway):
        record = await add_open_record(db, employee, JAN_8)
        record.actual_check_out = combine_local(JAN_8, "17:30")
        record.status = "NORMAL"
        await db.flush()

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        assert result.processed == 0
        assert (await reload(db, record)).actual_check_out == combine_local(JAN_8, "17:30")

    async def test_lost_race_counts_as_skipped(self, db: AsyncSession, employee, gateway, monkeypatch):
        await add_open_record(db, employee, JAN_8)

        async def _already_closed(db, record_id, values):
            return False

        monkeypatch.setattr(attendance_repository, "close_if_open", _already_closed)

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        assert result.processed == 0
        assert result.skipped == 1

    async def test_one_failure_does_not_abort_batch(
        self, db: AsyncSession, employee, coworker, gateway, monkeypatch
    ):
        broken = await add_open_record(db, employee, JAN_8)
        healthy = await add_open_record(db, coworker, JAN_8)
        original = attendance_repository.close_if_open

        async def _flaky(db, record_id, values):
            if record_id == broken.id:
                raise SQLAlchemyError("row locked")
            return await original(db, record_id, values)

        monkeypatch.setattr(attendance_repository, "close_if_open", _flaky)

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        assert result.processed == 1
        assert [e.attendance_id for e in result.errors] == [str(broken.id)]
        assert (await reload(db, healthy)).actual_check_out is not None
        assert (await reload(db, broken)).actual_check_out is None

    async def test_managers_get_one_summary(self, db: AsyncSession, employee, coworker, manager, gateway):
        await add_open_record(db, employee, JAN_8)
        await add_open_record(db, coworker, JAN_9)

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "03:00"))

        assert result.processed == 2
        assert result.notified_companies == 1
        assert gateway.titles_for(manager.id) == ["자동 퇴근 처리 완료"]
        summary = gateway.sent[0][1]
        assert summary.body == "2건의 미퇴근 기록이 자동으로 퇴근 처리되었습니다."


class TestSameDaySweep:
    """당일 예정 퇴근 초과 처리 테스트."""

    async def test_closes_two_hours_after_scheduled_end(self, db: AsyncSession, employee, coworker, gateway):
        overdue = await add_open_record(db, employee, JAN_10, scheduled_out="18:00")
        within_grace = await add_open_record(db, coworker, JAN_10, scheduled_out="19:00")

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "20:30"))

        assert result.processed == 1
        closed = await reload(db, overdue)
        assert closed.actual_check_out == combine_local(JAN_10, "18:00")
        assert closed.extensions["auto_checkout_reason"] == REASON_TODAY_OVERDUE
        assert (await reload(db, within_grace)).actual_check_out is None

    async def test_check_in_after_scheduled_end_uses_default_shift(self, db: AsyncSession, employee, gateway):
        """예정 퇴근 이후 출근이면 출근 + 8시간 기준, 그 전에는 닫지 않음."""
        record = await add_open_record(db, employee, JAN_10, check_in="10:00", scheduled_out="09:30")

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "16:00"))

        assert result.processed == 0
        assert (await reload(db, record)).actual_check_out is None

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "20:30"))

        assert result.processed == 1
        closed = await reload(db, record)
        assert closed.actual_check_out == combine_local(JAN_10, "18:00")
        assert closed.work_hours == 7.0
        assert closed.extensions["auto_checkout_reason"] == REASON_DEFAULT_SHIFT + REASON_ADJUSTED_SUFFIX

    async def test_unscheduled_today_left_open(self, db: AsyncSession, employee, gateway):
        record = await add_open_record(db, employee, JAN_10, scheduled_out=None, status="UNSCHEDULED")

        result = await reconciliation_service.run_sweeper(db, now=combine_local(JAN_10, "23:00"))

        assert result.processed == 0
        assert (await reload(db, record)).actual_check_out is None


class TestBackfill:
    """과거 미퇴근 일괄 처리 테스트."""

    async def test_range_is_respected(self, db: AsyncSession, employee, coworker, gateway):
        inside = await add_open_record(db, employee, JAN_8)
        outside = await add_open_record(db, coworker, date(2024, 1, 2))

        result = await reconciliation_service.run_backfill(
            db, start_date=date(2024, 1, 5), end_date=JAN_9, now=combine_local(JAN_10, "10:00")
        )

        assert result.processed == 1
        closed = await reload(db, inside)
        assert closed.extensions["manual_batch_process"] is True
        assert closed.extensions["auto_checkout_reason"] == BATCH_REASON_SCHEDULED_END
        assert (await reload(db, outside)).actual_check_out is None

    async def test_default_range_reaches_thirty_days_back(self, db: AsyncSession, employee, coworker, gateway):
        await add_open_record(db, employee, date(2023, 12, 11))
        too_old = await add_open_record(db, coworker, date(2023, 12, 10))

        result = await reconciliation_service.run_backfill(db, now=combine_local(JAN_10, "10:00"))

        assert result.processed == 1
        assert (await reload(db, too_old)).actual_check_out is None

    async def test_inverted_range_rejected(self, db: AsyncSession):
        with pytest.raises(ValidationError):
            await reconciliation_service.run_backfill(
                db, start_date=JAN_9, end_date=JAN_8, now=combine_local(JAN_10, "10:00")
            )

    async def test_range_reaching_today_rejected(self, db: AsyncSession):
        with pytest.raises(ValidationError):
            await reconciliation_service.run_backfill(
                db, start_date=JAN_8, end_date=JAN_10, now=combine_local(JAN_10, "10:00")
            )


class TestReconciliationApi:
    """자동 퇴근 API 테스트."""

    async def test_job_requires_cron_secret(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        res = await client.post(f"{JOBS}/auto-checkout")
        assert res.status_code == 401

        res = await client.post(f"{JOBS}/auto-checkout", headers={"Authorization": "Bearer wrong"})
        assert res.status_code == 401

        res = await client.post(f"{JOBS}/auto-checkout", headers={"Authorization": "Bearer s3cret"})
        assert res.status_code == 200
        assert res.json()["processed"] == 0

    async def test_job_open_without_secret(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        res = await client.post(f"{JOBS}/attendance-correction-alert")
        assert res.status_code == 200
        assert res.json()["late_checkin"] == 0

    async def test_backfill_is_admin_only(self, client: AsyncClient, manager_token):
        res = await client.post(f"{ADMIN}/attendances/auto-checkout/backfill", headers=auth_header(manager_token))
        assert res.status_code == 403

    async def test_backfill_validates_range(self, client: AsyncClient, admin_token):
        res = await client.post(
            f"{ADMIN}/attendances/auto-checkout/backfill",
            json={"start_date": "2024-01-09", "end_date": "2024-01-08"},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 400

    async def test_backfill_defaults(self, client: AsyncClient, admin_token):
        res = await client.post(f"{ADMIN}/attendances/auto-checkout/backfill", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert res.json() == {"processed": 0, "skipped": 0, "errors": [], "notified_companies": 0}
