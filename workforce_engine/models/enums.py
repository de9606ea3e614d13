"""도메인 상태 및 분류 코드.

Domain status and classification codes. Stored as plain strings in the
database; the str mixin keeps comparisons with loaded column values working.
"""

from enum import Enum


class StaffRole(str, Enum):
    """직원 역할 (Staff roles)."""

    COMPANY_ADMIN = "company_admin"
    MANAGER = "manager"
    STORE_MANAGER = "store_manager"
    EMPLOYEE = "employee"


# 승인 및 알림 대상 관리자 역할 — Roles eligible to approve and receive manager alerts
MANAGER_ROLES: frozenset[str] = frozenset(
    {StaffRole.COMPANY_ADMIN.value, StaffRole.MANAGER.value, StaffRole.STORE_MANAGER.value}
)


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"


class ScheduleStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ScheduleSource(str, Enum):
    """스케줄 생성 출처 (Where a schedule entry came from)."""

    CONTRACT = "CONTRACT"
    MANUAL = "MANUAL"


class AttendanceStatus(str, Enum):
    WORKING = "WORKING"
    UNSCHEDULED = "UNSCHEDULED"
    EARLY_CHECK_IN = "EARLY_CHECK_IN"
    LATE = "LATE"
    NORMAL = "NORMAL"
    OVERTIME = "OVERTIME"
    EARLY_LEAVE = "EARLY_LEAVE"
    ABSENT = "ABSENT"
    VACATION = "VACATION"
    # 미배정 출근 승인 후 — Unscheduled check-in approved by a manager
    ADDITIONAL_WORK = "ADDITIONAL_WORK"


class CheckoutTiming(str, Enum):
    EARLY = "EARLY"
    ON_TIME = "ON_TIME"
    LATE = "LATE"


class CorrectionType(str, Enum):
    LATE_CHECKIN = "LATE_CHECKIN"
    EARLY_CHECKOUT = "EARLY_CHECKOUT"


class CorrectionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TradeStatus(str, Enum):
    """스케줄 교환 요청 상태 (Shift trade request states)."""

    PENDING = "PENDING"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    MANAGER_REJECTED = "MANAGER_REJECTED"


# 진행 중 교환 상태 — A shift may carry at most one request in these states
OPEN_TRADE_STATUSES: tuple[str, ...] = (TradeStatus.PENDING.value, TradeStatus.AWAITING_APPROVAL.value)


class ApprovalType(str, Enum):
    UNSCHEDULED_CHECKIN = "UNSCHEDULED_CHECKIN"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationCategory(str, Enum):
    ATTENDANCE = "ATTENDANCE"
    SCHEDULE = "SCHEDULE"
    APPROVAL = "APPROVAL"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
