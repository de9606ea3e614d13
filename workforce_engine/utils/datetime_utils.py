"""조직 타임존 기준 날짜/시간 유틸리티.

Organizational-timezone date/time helpers.
Timestamps are stored in UTC; every calendar decision (which day is
"today", weekday matching, the night window) is taken in ORG_TIMEZONE.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from workforce_engine.config import settings


def org_tz() -> ZoneInfo:
    """설정된 조직 타임존을 반환합니다 (Configured organizational timezone)."""
    return ZoneInfo(settings.ORG_TIMEZONE)


def now_utc() -> datetime:
    """현재 UTC 시각. 테스트에서 대체하기 쉽도록 분리 (Wrapped so callers can pass a fixed clock)."""
    return datetime.now(timezone.utc)


def to_local(moment: datetime) -> datetime:
    """시각을 조직 타임존으로 변환합니다 (Convert an aware timestamp to ORG_TIMEZONE)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(org_tz())


def local_date(moment: datetime) -> date:
    """조직 타임존 기준 날짜 (Calendar date of the moment in ORG_TIMEZONE)."""
    return to_local(moment).date()


def parse_hhmm(value: str) -> time:
    """"HH:MM" 문자열을 time 객체로 변환합니다.

    Raises:
        ValueError: 형식이 잘못되었거나 범위를 벗어난 경우 (Malformed or out-of-range value)
    """
    parts: list[str] = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid HH:MM time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def combine_local(day: date, clock: time | str) -> datetime:
    """날짜 + 현지 시각을 UTC 시각으로 결합합니다.

    Build an absolute UTC timestamp from a calendar date and a wall-clock time
    interpreted in ORG_TIMEZONE.

    Args:
        day: 근무일 (Work date)
        clock: 현지 시각 또는 "HH:MM" (Local time of day)

    Returns:
        datetime: UTC 기준 aware datetime (Timezone-aware UTC timestamp)
    """
    if isinstance(clock, str):
        clock = parse_hhmm(clock)
    return datetime.combine(day, clock, tzinfo=org_tz()).astimezone(timezone.utc)


def start_of_local_day(day: date) -> datetime:
    """조직 타임존 기준 자정을 UTC로 반환합니다 (Local midnight of the day, as UTC)."""
    return combine_local(day, time(0, 0))


def js_weekday(day: date) -> int:
    """요일 번호 — 0=일요일 … 6=토요일 (Sunday-based weekday as used in work patterns)."""
    return (day.weekday() + 1) % 7


def iter_days(start: date, end: date):
    """start..end (양 끝 포함) 날짜를 하나씩 생성합니다 (Inclusive day iterator)."""
    current: date = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_local_hhmm(moment: datetime | None) -> str:
    """현지 "HH:MM" 표기 (Local HH:MM, empty when missing)."""
    if moment is None:
        return ""
    return to_local(moment).strftime("%H:%M")
