"""관리자 API 라우터 패키지 — 모든 관리자 엔드포인트 통합.

Admin API Router package — Aggregates all admin-facing endpoints
into a single router for inclusion in the FastAPI application.

Included routers:
    - contracts: 근로 계약 및 스케줄 생성 (Contracts and schedule generation)
    - attendances: 근태 기록, 일괄 퇴근 처리, 미배정 출근 결정
      (Attendance list, auto-checkout backfill, unscheduled check-in decisions)
    - corrections: 근태 수정 요청 검토 (Correction request review)
    - schedule_trades: 스케줄 교환 승인 (Shift trade approval)
"""

from fastapi import APIRouter

from workforce_engine.api.admin.attendances import router as attendances_router
from workforce_engine.api.admin.contracts import router as contracts_router
from workforce_engine.api.admin.corrections import router as corrections_router
from workforce_engine.api.admin.schedule_trades import router as schedule_trades_router

admin_router: APIRouter = APIRouter()

# 계약: /contracts 하위 (Contracts)
admin_router.include_router(contracts_router, prefix="/contracts", tags=["Contracts"])
# 근태: /attendances 하위 (Attendance records)
admin_router.include_router(attendances_router, prefix="/attendances", tags=["Attendances"])
# 수정 요청: /attendance-corrections 하위 (Correction requests)
admin_router.include_router(corrections_router, prefix="/attendance-corrections", tags=["Attendance Corrections"])
# 스케줄 교환: /schedule-trades 하위 (Shift trades)
admin_router.include_router(schedule_trades_router, prefix="/schedule-trades", tags=["Schedule Trades"])
