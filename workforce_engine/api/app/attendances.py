"""앱 근태 라우터 — 내 출퇴근 API.

App Attendance Router — Check-in, check-out, today's record and history
for the calling employee.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import get_caller
from workforce_engine.database import get_db
from workforce_engine.schemas.attendance import AttendanceResponse, CheckInRequest
from workforce_engine.schemas.common import PaginatedResponse
from workforce_engine.services.attendance_service import attendance_service
from workforce_engine.services.org_context import CallerContext

router: APIRouter = APIRouter()


@router.post("/check-in", response_model=AttendanceResponse)
async def check_in(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
    data: CheckInRequest | None = None,
) -> dict:
    """출근을 기록합니다.

    Record today's check-in. Without a schedule the check-in is UNSCHEDULED
    and waits for a manager decision.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 직원 (Authenticated employee)
        data: 미배정 출근 사유, 선택 (Optional reason for an unscheduled check-in)

    Returns:
        dict: 출근 기록 (Attendance record)
    """
    record = await attendance_service.check_in(db, caller, reason=data.reason if data else None)
    await db.commit()
    return attendance_service.build_response(record)


@router.post("/check-out", response_model=AttendanceResponse)
async def check_out(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> dict:
    """퇴근을 기록합니다.

    Record the check-out and compute worked, overtime and night hours.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 직원 (Authenticated employee)

    Returns:
        dict: 퇴근 처리된 근태 기록 (Closed attendance record)
    """
    record = await attendance_service.check_out(db, caller)
    await db.commit()
    return attendance_service.build_response(record)


@router.get("/today", response_model=AttendanceResponse | None)
async def get_my_today_attendance(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> dict | None:
    """오늘 내 근태 기록을 조회합니다 (Today's record, or None)."""
    record = await attendance_service.get_today(db, caller)
    if record is None:
        return None
    return attendance_service.build_response(record)


@router.get("", response_model=PaginatedResponse)
async def list_my_attendances(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """내 근태 기록 목록을 조회합니다.

    List my attendance records, newest first.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 직원 (Authenticated employee)
        date_from: 시작일 필터, 선택 (Optional range start)
        date_to: 종료일 필터, 선택 (Optional range end)
        page: 페이지 번호 (Page number)
        per_page: 페이지당 항목 수 (Items per page)

    Returns:
        dict: 페이지네이션된 내 근태 목록 (Paginated attendance list)
    """
    records, total = await attendance_service.get_my_attendances(
        db, caller, date_from=date_from, date_to=date_to, page=page, per_page=per_page
    )
    return {
        "items": [attendance_service.build_response(r) for r in records],
        "total": total,
        "page": page,
        "per_page": per_page,
    }
