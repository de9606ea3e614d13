"""앱 API 라우터 패키지 — 모든 앱(직원용) 엔드포인트 통합.

App API Router package — Aggregates all app-facing (employee) endpoints
into a single router for inclusion in the FastAPI application.

Included routers:
    - attendances: 내 출퇴근 (My check-in/check-out, today, history)
    - corrections: 내 근태 수정 요청 (My correction requests)
    - schedule_trades: 내 스케줄 교환 (My shift trades)
"""

from fastapi import APIRouter

from workforce_engine.api.app.attendances import router as attendance_router
from workforce_engine.api.app.corrections import router as corrections_router
from workforce_engine.api.app.schedule_trades import router as schedule_trades_router

app_router: APIRouter = APIRouter()

# 내 근태: /my/attendance 하위 (My attendance: check-in, check-out, today, history)
app_router.include_router(attendance_router, prefix="/my/attendance", tags=["My Attendance"])
# 내 수정 요청: /my/attendance-corrections 하위 (My correction requests)
app_router.include_router(corrections_router, prefix="/my/attendance-corrections", tags=["My Corrections"])
# 내 스케줄 교환: /my/schedule-trades 하위 (My shift trades)
app_router.include_router(schedule_trades_router, prefix="/my/schedule-trades", tags=["My Schedule Trades"])
