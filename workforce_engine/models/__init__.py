"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for Alembic migrations.

Modules:
    user: 직원 디렉터리 (Staff directory)
    contract: 근로 계약 (Employment contracts with weekly work patterns)
    schedule: 근무 스케줄 및 교환 요청 (Schedule entries and shift trade requests)
    attendance: 근태 기록 및 수정 요청 (Attendance records and correction requests)
    approval: 관리자 승인 요청 (Manager approval requests)
    notification: 알림 (User notifications)
"""

from workforce_engine.models.user import StaffMember
from workforce_engine.models.contract import Contract
from workforce_engine.models.schedule import ScheduleEntry, ShiftTradeRequest
from workforce_engine.models.attendance import AttendanceRecord, AttendanceCorrectionRequest
from workforce_engine.models.approval import ApprovalRequest
from workforce_engine.models.notification import Notification

__all__ = [
    "StaffMember",
    "Contract",
    "ScheduleEntry", "ShiftTradeRequest",
    "AttendanceRecord", "AttendanceCorrectionRequest",
    "ApprovalRequest",
    "Notification",
]
