"""근로 계약 및 스케줄 생성 Pydantic 스키마.

Contract and schedule materialization request/response schemas.
The weekly work pattern is validated here, at the boundary, so the
materializer only ever sees well-formed entries.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from workforce_engine.utils.datetime_utils import parse_hhmm


class WorkPatternEntry(BaseModel):
    """주간 근무 패턴 항목.

    Weekly work pattern entry. days_of_week uses Sunday-based numbering
    (0=Sunday … 6=Saturday). An end_time not after start_time means the
    shift ends on the next calendar day.

    Attributes:
        days_of_week: 근무 요일 (Weekdays the entry applies to)
        start_time: 시작 시각 "HH:MM" (Local start time)
        end_time: 종료 시각 "HH:MM" (Local end time)
        break_minutes: 휴게 시간(분) (Break minutes, default 60)
        effective_from: 적용 시작일, 선택 (Optional first applicable date)
        effective_to: 적용 종료일, 선택 (Optional last applicable date)
    """

    days_of_week: set[int] = Field(..., min_length=1)
    start_time: str
    end_time: str
    break_minutes: int = Field(default=60, ge=0)
    effective_from: date | None = None
    effective_to: date | None = None

    @field_validator("days_of_week")
    @classmethod
    def _check_days(cls, value: set[int]) -> set[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("days_of_week must contain values between 0 (Sunday) and 6 (Saturday)")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        parsed = parse_hhmm(value)
        return parsed.strftime("%H:%M")

    @model_validator(mode="after")
    def _check_window(self) -> "WorkPatternEntry":
        if self.effective_from and self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to must not be before effective_from")
        return self

    def applies_on(self, day: date, weekday: int) -> bool:
        """해당 날짜에 적용되는 항목인지 (Weekday matches and day is inside the effective window)."""
        if weekday not in self.days_of_week:
            return False
        if self.effective_from is not None and day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to


class ContractCreate(BaseModel):
    """근로 계약 생성 요청 스키마.

    Attributes:
        staff_id: 직원 UUID (Employee identifier)
        brand_id / store_id: 조직 범위, 선택 (Optional scope; defaults to the caller's)
        position: 직무, 선택 (Optional position)
        start_date / end_date: 계약 기간 (Contract period; end defaults to start + 3 months)
        work_schedules: 주간 근무 패턴 (Weekly work pattern, at least one entry)
    """

    staff_id: str
    brand_id: str | None = None
    store_id: str | None = None
    position: str | None = None
    start_date: date
    end_date: date | None = None
    work_schedules: list[WorkPatternEntry] = Field(..., min_length=1)


class MaterializeFailure(BaseModel):
    """스케줄 생성 실패 항목 (One entry that could not be written)."""

    work_date: date
    start_time: datetime
    error: str


class MaterializeResult(BaseModel):
    """스케줄 생성 결과.

    Outcome of a materialization run. Never raised; always returned.

    Attributes:
        attempted: 생성 시도 수 (Entries derived from the pattern)
        created: 신규 생성 수 (Entries inserted)
        updated: 갱신 수 (Existing entries refreshed by the upsert)
        skipped: 건너뜀 수 (Entries that already existed during per-entry fallback)
        error: 일괄 처리 오류 메시지 (Bulk write error that triggered the fallback)
        failures: 개별 실패 목록 (Entries that failed individually)
    """

    attempted: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    error: str | None = None
    failures: list[MaterializeFailure] = Field(default_factory=list)


class ContractResponse(BaseModel):
    id: str
    staff_id: str
    company_id: str
    brand_id: str | None
    store_id: str | None
    position: str | None
    start_date: date
    end_date: date | None
    work_schedules: list[dict]
    status: str
    created_at: datetime
    schedule_result: MaterializeResult | None = None
