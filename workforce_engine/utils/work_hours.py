"""근무 시간 계산 유틸리티 — 출퇴근 및 자동 퇴근 공통 사용.

Work-hour accounting shared by manual check-out and the reconciliation
sweeper, so both paths produce identical figures for the same inputs.

    work_hours     = max(0, (check_out - check_in - break) / 60min)
    overtime_hours = max(0, work_hours - STANDARD_DAILY_HOURS)
    night_hours    = overlap with the 22:00-06:00 local window,
                     capped at NIGHT_HOURS_CAP and at work_hours
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta

from workforce_engine.config import settings
from workforce_engine.utils.datetime_utils import combine_local, local_date


@dataclass(frozen=True)
class WorkHours:
    """근무 시간 집계 결과 (Aggregated hours, rounded to 2 decimals)."""

    work_hours: float
    overtime_hours: float
    night_hours: float


def night_overlap_hours(check_in: datetime, check_out: datetime) -> float:
    """야간 구간(현지 22:00~06:00)과 근무 구간의 겹치는 시간.

    Hours of [check_in, check_out) falling inside the local night window.
    Windows are built per local day so shifts crossing midnight on either
    end are counted correctly.
    """
    if check_out <= check_in:
        return 0.0

    window_start: time = time(settings.NIGHT_WINDOW_START_HOUR, 0)
    window_end: time = time(settings.NIGHT_WINDOW_END_HOUR, 0)

    overlap: timedelta = timedelta(0)
    # 전날 밤 구간부터 확인 — Start from the previous evening's window
    day = local_date(check_in) - timedelta(days=1)
    last_day = local_date(check_out)
    while day <= last_day:
        night_start: datetime = combine_local(day, window_start)
        night_end: datetime = combine_local(day + timedelta(days=1), window_end)
        latest_start: datetime = max(check_in, night_start)
        earliest_end: datetime = min(check_out, night_end)
        if earliest_end > latest_start:
            overlap += earliest_end - latest_start
        day += timedelta(days=1)

    return overlap.total_seconds() / 3600


def calculate_work_hours(
    check_in: datetime,
    check_out: datetime,
    break_minutes: int | None,
) -> WorkHours:
    """출퇴근 시각과 휴게 시간으로 근무/연장/야간 시간을 계산합니다.

    Compute worked, overtime and night hours for a closed attendance record.

    Args:
        check_in: 실제 출근 시각 (Actual check-in, timezone-aware)
        check_out: 실제 퇴근 시각 (Actual check-out, timezone-aware)
        break_minutes: 휴게 시간(분), None이면 0 (Break minutes, None counts as zero)

    Returns:
        WorkHours: 소수점 둘째 자리 반올림 결과 (Figures rounded to 2 decimals)
    """
    worked_minutes: float = (check_out - check_in).total_seconds() / 60 - (break_minutes or 0)
    work_hours: float = max(0.0, worked_minutes / 60)
    overtime_hours: float = max(0.0, work_hours - settings.STANDARD_DAILY_HOURS)
    night_hours: float = min(
        night_overlap_hours(check_in, check_out),
        settings.NIGHT_HOURS_CAP,
        work_hours,
    )
    return WorkHours(
        work_hours=round(work_hours, 2),
        overtime_hours=round(overtime_hours, 2),
        night_hours=round(night_hours, 2),
    )
