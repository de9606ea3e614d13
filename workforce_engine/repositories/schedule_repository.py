"""스케줄 레포지토리 — 스케줄 관련 DB 쿼리 담당.

Schedule Repository — Handles schedule entry queries and the idempotent
upsert used by contract materialization. Upserts are dialect-aware
(PostgreSQL in production, SQLite in tests) and keyed on the natural key
(staff_id, work_date, generated_by, start_time).
"""

from datetime import date, datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.database import dialect_name
from workforce_engine.models.enums import ScheduleStatus
from workforce_engine.models.schedule import ScheduleEntry
from workforce_engine.models.types import utc_now
from workforce_engine.repositories.base import BaseRepository

# 자연 키 컬럼 — Natural key columns the upsert conflicts on
_NATURAL_KEY: list[str] = ["staff_id", "work_date", "generated_by", "start_time"]

# 재생성 시 갱신하는 컬럼 — Columns refreshed when an existing entry is re-materialized
_UPSERT_COLUMNS: tuple[str, ...] = (
    "end_time", "break_minutes", "position", "contract_id", "company_id", "brand_id", "store_id",
)

# 한 번에 기록하는 최대 행 수 — Keeps bound parameters under driver limits
_UPSERT_CHUNK_SIZE: int = 200


class ScheduleRepository(BaseRepository[ScheduleEntry]):
    """스케줄 레포지토리.

    Extends:
        BaseRepository[ScheduleEntry]
    """

    def __init__(self) -> None:
        super().__init__(ScheduleEntry)

    async def get_staff_day(
        self,
        db: AsyncSession,
        staff_id: UUID,
        work_date: date,
    ) -> Sequence[ScheduleEntry]:
        """직원의 해당 날짜 스케줄(취소 제외)을 시작 시각 순으로 조회합니다.

        Non-cancelled entries of one employee on one work date, ordered by start.
        """
        query: Select = (
            select(ScheduleEntry)
            .where(ScheduleEntry.staff_id == staff_id)
            .where(ScheduleEntry.work_date == work_date)
            .where(ScheduleEntry.status != ScheduleStatus.CANCELLED.value)
            .order_by(ScheduleEntry.start_time)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_existing_slots(
        self,
        db: AsyncSession,
        staff_id: UUID,
        generated_by: str,
        date_from: date,
        date_to: date,
    ) -> set[tuple[date, datetime]]:
        """기간 내 이미 존재하는 (근무일, 시작 시각) 키를 조회합니다.

        Natural-key slots already stored for the employee and source in the range.
        """
        query = (
            select(ScheduleEntry.work_date, ScheduleEntry.start_time)
            .where(ScheduleEntry.staff_id == staff_id)
            .where(ScheduleEntry.generated_by == generated_by)
            .where(ScheduleEntry.work_date >= date_from)
            .where(ScheduleEntry.work_date <= date_to)
        )
        result = await db.execute(query)
        return {(row.work_date, row.start_time) for row in result.all()}

    async def get_traded_away_slots(
        self,
        db: AsyncSession,
        contract_id: UUID,
        staff_id: UUID,
        date_from: date,
        date_to: date,
    ) -> set[tuple[date, datetime]]:
        """직원이 교환으로 넘겨준 스케줄 슬롯을 조회합니다.

        Slots generated from the contract, or last held by the employee,
        that now belong to someone else through executed trades. Chains of
        trades still count. Re-materialization must not recreate them.
        """
        query = (
            select(ScheduleEntry.work_date, ScheduleEntry.start_time)
            .where(
                or_(
                    ScheduleEntry.contract_id == contract_id,
                    ScheduleEntry.original_staff_id == staff_id,
                )
            )
            .where(ScheduleEntry.staff_id != staff_id)
            .where(ScheduleEntry.work_date >= date_from)
            .where(ScheduleEntry.work_date <= date_to)
        )
        result = await db.execute(query)
        return {(row.work_date, row.start_time) for row in result.all()}

    def _insert(self, db: AsyncSession):
        # 방언별 INSERT 구성 — Dialect-specific INSERT supporting ON CONFLICT
        if dialect_name(db) == "postgresql":
            return pg_insert(ScheduleEntry)
        return sqlite_insert(ScheduleEntry)

    async def bulk_upsert(
        self,
        db: AsyncSession,
        rows: list[dict[str, Any]],
    ) -> None:
        """스케줄 행을 자연 키 기준으로 일괄 upsert 합니다.

        Insert rows, updating times/break/scope of rows whose natural key
        already exists. Status and trade lineage of existing rows are kept.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            rows: 컬럼 값 딕셔너리 목록 (Column value dicts, ids included)
        """
        for offset in range(0, len(rows), _UPSERT_CHUNK_SIZE):
            chunk: list[dict[str, Any]] = rows[offset:offset + _UPSERT_CHUNK_SIZE]
            stmt = self._insert(db).values(chunk)
            set_: dict[str, Any] = {column: stmt.excluded[column] for column in _UPSERT_COLUMNS}
            set_["updated_at"] = utc_now()
            stmt = stmt.on_conflict_do_update(index_elements=_NATURAL_KEY, set_=set_)
            await db.execute(stmt)

    async def insert_one(
        self,
        db: AsyncSession,
        row: dict[str, Any],
    ) -> None:
        """단일 스케줄 행을 삽입합니다 (Plain INSERT; raises IntegrityError on a key clash)."""
        await db.execute(self._insert(db).values(row))


# 싱글턴 인스턴스 — Singleton instance
schedule_repository: ScheduleRepository = ScheduleRepository()
