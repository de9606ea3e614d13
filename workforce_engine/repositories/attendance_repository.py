"""근태 관리 레포지토리 — 근태 기록 및 수정 요청 DB 쿼리 담당.

Attendance Repository — Handles attendance record and correction request
queries, the check-in upsert, and the guarded close used by both manual
check-out and the reconciliation sweeper.
"""

from datetime import date, datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.database import dialect_name
from workforce_engine.models.attendance import AttendanceCorrectionRequest, AttendanceRecord
from workforce_engine.models.types import utc_now
from workforce_engine.repositories.base import BaseRepository


class AttendanceRepository(BaseRepository[AttendanceRecord]):
    """근태 기록 레포지토리.

    Extends:
        BaseRepository[AttendanceRecord]
    """

    def __init__(self) -> None:
        super().__init__(AttendanceRecord)

    async def get_by_filters(
        self,
        db: AsyncSession,
        company_id: UUID,
        store_id: UUID | None = None,
        staff_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        """필터 조건에 맞는 근태 기록을 페이지네이션하여 조회합니다.

        Retrieve paginated attendance records of a company.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            company_id: 회사 UUID (Company UUID)
            store_id: 매장 UUID 필터, 선택 (Optional store filter)
            staff_id: 직원 UUID 필터, 선택 (Optional employee filter)
            date_from: 시작일 필터, 선택 (Optional date range start)
            date_to: 종료일 필터, 선택 (Optional date range end)
            status: 상태 필터, 선택 (Optional status filter)
            page: 페이지 번호, 1부터 시작 (Page number, 1-based)
            per_page: 페이지당 항목 수 (Items per page)

        Returns:
            tuple[Sequence[AttendanceRecord], int]: (근태 목록, 전체 개수)
        """
        query: Select = select(AttendanceRecord).where(AttendanceRecord.company_id == company_id)

        if store_id is not None:
            query = query.where(AttendanceRecord.store_id == store_id)
        if staff_id is not None:
            query = query.where(AttendanceRecord.staff_id == staff_id)
        if date_from is not None:
            query = query.where(AttendanceRecord.work_date >= date_from)
        if date_to is not None:
            query = query.where(AttendanceRecord.work_date <= date_to)
        if status is not None:
            query = query.where(AttendanceRecord.status == status)

        query = query.order_by(AttendanceRecord.work_date.desc(), AttendanceRecord.actual_check_in.desc())
        return await self.get_paginated(db, query, page, per_page)

    async def get_user_day(
        self,
        db: AsyncSession,
        staff_id: UUID,
        work_date: date,
    ) -> AttendanceRecord | None:
        """직원의 특정 날짜 근태 기록을 조회합니다 (One employee's record for a work date)."""
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.staff_id == staff_id)
            .where(AttendanceRecord.work_date == work_date)
        )
        return result.scalar_one_or_none()

    async def get_user_attendances(
        self,
        db: AsyncSession,
        staff_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        """직원 본인의 근태 이력을 최신순으로 조회합니다 (Own history, newest first)."""
        query: Select = select(AttendanceRecord).where(AttendanceRecord.staff_id == staff_id)
        if date_from is not None:
            query = query.where(AttendanceRecord.work_date >= date_from)
        if date_to is not None:
            query = query.where(AttendanceRecord.work_date <= date_to)
        query = query.order_by(AttendanceRecord.work_date.desc())
        return await self.get_paginated(db, query, page, per_page)

    async def upsert_check_in(
        self,
        db: AsyncSession,
        values: dict[str, Any],
    ) -> UUID | None:
        """(staff_id, work_date) 기준으로 출근 기록을 upsert 합니다.

        Insert today's record, or fill in an existing check-in-less record
        (e.g. one pre-created as ABSENT or VACATION by another process).
        A record that already carries a check-in is never overwritten.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            values: 컬럼 값 (Column values, id included)

        Returns:
            UUID | None: 기록 ID, 이미 출근된 경우 None
                         (Id of the written record, None when already checked in)
        """
        insert_fn = pg_insert if dialect_name(db) == "postgresql" else sqlite_insert
        stmt = insert_fn(AttendanceRecord).values(**values)
        updatable: dict[str, Any] = {
            key: stmt.excluded[key]
            for key in values
            if key not in ("id", "staff_id", "work_date", "created_at")
        }
        updatable["updated_at"] = utc_now()
        stmt = stmt.on_conflict_do_update(
            index_elements=["staff_id", "work_date"],
            set_=updatable,
            where=AttendanceRecord.actual_check_in.is_(None),
        ).returning(AttendanceRecord.id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def close_if_open(
        self,
        db: AsyncSession,
        record_id: UUID,
        values: dict[str, Any],
    ) -> bool:
        """아직 퇴근 처리되지 않은 경우에만 퇴근 값을 기록합니다.

        Conditional close: UPDATE … WHERE id = :id AND actual_check_in IS NOT NULL
        AND actual_check_out IS NULL. Returns False when someone closed it first.
        """
        stmt = (
            update(AttendanceRecord)
            .where(AttendanceRecord.id == record_id)
            .where(AttendanceRecord.actual_check_in.is_not(None))
            .where(AttendanceRecord.actual_check_out.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def decide_unscheduled_if_pending(
        self,
        db: AsyncSession,
        record_id: UUID,
        values: dict[str, Any],
    ) -> bool:
        """미결정 미배정 출근에만 결정을 기록합니다.

        Conditional update guarded on status = UNSCHEDULED and no prior decision.
        """
        stmt = (
            update(AttendanceRecord)
            .where(AttendanceRecord.id == record_id)
            .where(AttendanceRecord.status == "UNSCHEDULED")
            .where(AttendanceRecord.unscheduled_decided_at.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def list_open_before(
        self,
        db: AsyncSession,
        before_date: date,
        from_date: date | None = None,
    ) -> Sequence[AttendanceRecord]:
        """지정일 이전의 미퇴근 기록을 조회합니다.

        Open records (checked in, not out) with work_date < before_date,
        optionally bounded below by from_date.
        """
        query: Select = (
            select(AttendanceRecord)
            .where(AttendanceRecord.work_date < before_date)
            .where(AttendanceRecord.actual_check_in.is_not(None))
            .where(AttendanceRecord.actual_check_out.is_(None))
        )
        if from_date is not None:
            query = query.where(AttendanceRecord.work_date >= from_date)
        result = await db.execute(query.order_by(AttendanceRecord.work_date))
        return result.scalars().all()

    async def list_open_overdue(
        self,
        db: AsyncSession,
        work_date: date,
        scheduled_out_before: datetime,
    ) -> Sequence[AttendanceRecord]:
        """당일 미퇴근 기록 중 예정 퇴근이 기준 시각 이전인 기록을 조회합니다.

        Today's open records whose scheduled_check_out <= scheduled_out_before.
        """
        query: Select = (
            select(AttendanceRecord)
            .where(AttendanceRecord.work_date == work_date)
            .where(AttendanceRecord.actual_check_in.is_not(None))
            .where(AttendanceRecord.actual_check_out.is_(None))
            .where(AttendanceRecord.scheduled_check_out.is_not(None))
            .where(AttendanceRecord.scheduled_check_out <= scheduled_out_before)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def list_for_date(
        self,
        db: AsyncSession,
        work_date: date,
    ) -> Sequence[AttendanceRecord]:
        """해당 근무일의 출근 기록 전체를 조회합니다 (All checked-in records of a work date)."""
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.work_date == work_date)
            .where(AttendanceRecord.actual_check_in.is_not(None))
        )
        return result.scalars().all()


class CorrectionRequestRepository(BaseRepository[AttendanceCorrectionRequest]):
    """근태 수정 요청 레포지토리.

    Extends:
        BaseRepository[AttendanceCorrectionRequest]
    """

    def __init__(self) -> None:
        super().__init__(AttendanceCorrectionRequest)

    async def get_for_attendance(
        self,
        db: AsyncSession,
        attendance_id: UUID,
        request_type: str,
    ) -> AttendanceCorrectionRequest | None:
        """근태 기록과 유형으로 수정 요청을 조회합니다 (Lookup by the dedup key)."""
        result = await db.execute(
            select(AttendanceCorrectionRequest)
            .where(AttendanceCorrectionRequest.attendance_id == attendance_id)
            .where(AttendanceCorrectionRequest.request_type == request_type)
        )
        return result.scalar_one_or_none()

    async def get_user_requests(
        self,
        db: AsyncSession,
        staff_id: UUID,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceCorrectionRequest], int]:
        """직원 본인의 수정 요청 목록 (Own correction requests, newest first)."""
        query: Select = select(AttendanceCorrectionRequest).where(
            AttendanceCorrectionRequest.staff_id == staff_id
        )
        if status is not None:
            query = query.where(AttendanceCorrectionRequest.status == status)
        query = query.order_by(AttendanceCorrectionRequest.created_at.desc())
        return await self.get_paginated(db, query, page, per_page)

    async def get_by_filters(
        self,
        db: AsyncSession,
        company_id: UUID,
        status: str | None = None,
        store_id: UUID | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[AttendanceCorrectionRequest], int]:
        """회사의 수정 요청 목록 (Company correction requests for manager review)."""
        query: Select = select(AttendanceCorrectionRequest).where(
            AttendanceCorrectionRequest.company_id == company_id
        )
        if status is not None:
            query = query.where(AttendanceCorrectionRequest.status == status)
        if store_id is not None:
            query = query.where(AttendanceCorrectionRequest.store_id == store_id)
        query = query.order_by(AttendanceCorrectionRequest.created_at.desc())
        return await self.get_paginated(db, query, page, per_page)


# 싱글턴 인스턴스 — Singleton instances
attendance_repository: AttendanceRepository = AttendanceRepository()
correction_request_repository: CorrectionRequestRepository = CorrectionRequestRepository()
