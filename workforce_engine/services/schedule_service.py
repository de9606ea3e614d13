"""스케줄 서비스 — 계약 기반 스케줄 생성.

Schedule Service — Materializes concrete schedule entries from a contract's
recurring weekly work pattern.

Materialization never raises to its caller: the bulk upsert is attempted
first, and if it fails every entry is retried on its own inside a
savepoint. The outcome is always reported as a MaterializeResult.
"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.config import settings
from workforce_engine.models.contract import Contract
from workforce_engine.models.enums import ScheduleSource, ScheduleStatus
from workforce_engine.models.types import utc_now
from workforce_engine.repositories.schedule_repository import schedule_repository
from workforce_engine.schemas.contract import MaterializeFailure, MaterializeResult, WorkPatternEntry
from workforce_engine.utils.datetime_utils import combine_local, iter_days, js_weekday

logger = logging.getLogger(__name__)


def contract_period(contract: Contract) -> tuple[date, date]:
    """계약 적용 기간 — 종료일이 없으면 시작일 + 기본 개월 수.

    Inclusive [start, end] covered by the contract.
    """
    end: date = contract.end_date or contract.start_date + relativedelta(months=settings.CONTRACT_DEFAULT_MONTHS)
    return contract.start_date, end


def build_schedule_rows(
    contract: Contract,
    patterns: list[WorkPatternEntry],
    start: date,
    end: date,
) -> list[dict[str, Any]]:
    """근무 패턴에서 스케줄 행을 계산합니다.

    Expand the weekly pattern over [start, end] into schedule rows.
    Every pattern entry matching a day yields its own row, so overlapping
    entries produce split shifts. Two entries starting at the same minute
    on the same day collapse into one row (the later entry wins).

    Args:
        contract: 원천 계약 (Source contract)
        patterns: 검증된 근무 패턴 (Validated pattern entries)
        start: 시작일 (First day, inclusive)
        end: 종료일 (Last day, inclusive)

    Returns:
        list[dict[str, Any]]: INSERT용 컬럼 값 목록 (Column values for INSERT)
    """
    now: datetime = utc_now()
    rows: dict[tuple[date, datetime], dict[str, Any]] = {}

    for day in iter_days(start, end):
        weekday: int = js_weekday(day)
        for pattern in patterns:
            if not pattern.applies_on(day, weekday):
                continue

            start_at: datetime = combine_local(day, pattern.start_time)
            end_at: datetime = combine_local(day, pattern.end_time)
            # 종료가 시작 이전이면 익일 종료 — Overnight shift ends the next day
            if end_at <= start_at:
                end_at = combine_local(day + timedelta(days=1), pattern.end_time)

            rows[(day, start_at)] = {
                "id": uuid.uuid4(),
                "contract_id": contract.id,
                "staff_id": contract.staff_id,
                "company_id": contract.company_id,
                "brand_id": contract.brand_id,
                "store_id": contract.store_id,
                "position": contract.position,
                "work_date": day,
                "start_time": start_at,
                "end_time": end_at,
                "break_minutes": pattern.break_minutes,
                "status": ScheduleStatus.SCHEDULED.value,
                "generated_by": ScheduleSource.CONTRACT.value,
                "created_at": now,
                "updated_at": now,
            }

    return list(rows.values())


class ScheduleService:
    """스케줄 서비스.

    Schedule service turning contracts into schedule entries.
    """

    async def materialize_contract(
        self,
        db: AsyncSession,
        contract: Contract,
    ) -> MaterializeResult:
        """계약의 근무 패턴으로 스케줄을 생성합니다.

        Materialize the contract's pattern over its period. Re-running is
        idempotent: existing entries are updated in place, never duplicated.
        Slots the employee traded away are left alone.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            contract: 원천 계약 (Source contract)

        Returns:
            MaterializeResult: 생성 결과, 예외를 던지지 않음 (Outcome; never raises)
        """
        result = MaterializeResult()

        try:
            patterns: list[WorkPatternEntry] = [
                WorkPatternEntry.model_validate(entry) for entry in contract.work_schedules or []
            ]
        except PydanticValidationError as exc:
            logger.warning("Contract %s has an invalid work pattern: %s", contract.id, exc)
            result.error = f"Invalid work pattern: {exc.error_count()} error(s)"
            return result

        start, end = contract_period(contract)
        rows: list[dict[str, Any]] = build_schedule_rows(contract, patterns, start, end)

        try:
            traded_away = await schedule_repository.get_traded_away_slots(
                db, contract.id, contract.staff_id, start, end
            )
            existing = await schedule_repository.get_existing_slots(
                db, contract.staff_id, ScheduleSource.CONTRACT.value, start, end
            )
        except SQLAlchemyError as exc:
            logger.exception("Could not read existing schedules for contract %s", contract.id)
            result.error = str(exc)[:300]
            return result

        if traded_away:
            kept = [row for row in rows if (row["work_date"], row["start_time"]) not in traded_away]
            result.skipped += len(rows) - len(kept)
            rows = kept

        result.attempted = len(rows)
        if not rows:
            return result

        try:
            async with db.begin_nested():
                await schedule_repository.bulk_upsert(db, rows)
        except SQLAlchemyError as exc:
            logger.warning(
                "Bulk schedule upsert failed for contract %s, falling back to per-entry insert: %s",
                contract.id, exc,
            )
            result.error = str(exc)[:300]
            await self._insert_individually(db, rows, result)
            return result

        result.updated = sum(1 for row in rows if (row["work_date"], row["start_time"]) in existing)
        result.created = result.attempted - result.updated
        logger.info(
            "Materialized contract %s: %d created, %d updated, %d skipped",
            contract.id, result.created, result.updated, result.skipped,
        )
        return result

    async def _insert_individually(
        self,
        db: AsyncSession,
        rows: list[dict[str, Any]],
        result: MaterializeResult,
    ) -> None:
        # 개별 삽입 — Per-entry insert, each in its own savepoint
        for row in rows:
            try:
                async with db.begin_nested():
                    await schedule_repository.insert_one(db, row)
                result.created += 1
            except IntegrityError:
                result.skipped += 1
            except SQLAlchemyError as exc:
                logger.warning("Schedule entry %s %s failed: %s", row["work_date"], row["start_time"], exc)
                result.failures.append(
                    MaterializeFailure(
                        work_date=row["work_date"],
                        start_time=row["start_time"],
                        error=str(exc)[:300],
                    )
                )


# 싱글턴 인스턴스 — Singleton instance
schedule_service: ScheduleService = ScheduleService()
