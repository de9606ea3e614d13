"""관리자 근태 라우터 — 근태 기록 관리 API.

Admin Attendance Router — Attendance list, the operator-triggered
auto-checkout backfill, and decisions on unscheduled check-ins.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import require_admin, require_manager
from workforce_engine.database import get_db
from workforce_engine.schemas.attendance import (
    AttendanceResponse,
    BackfillRequest,
    SweepResult,
    UnscheduledDecision,
)
from workforce_engine.schemas.common import PaginatedResponse
from workforce_engine.services.attendance_service import attendance_service
from workforce_engine.services.org_context import CallerContext
from workforce_engine.services.reconciliation_service import reconciliation_service

router: APIRouter = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def list_attendances(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
    store_id: Annotated[UUID | None, Query()] = None,
    staff_id: Annotated[UUID | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    status: Annotated[str | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """근태 기록 목록을 필터링하여 조회합니다.

    List the company's attendance records with optional filters.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 관리자 (Authenticated manager)
        store_id: 매장 UUID 필터, 선택 (Optional store filter)
        staff_id: 직원 UUID 필터, 선택 (Optional employee filter)
        date_from: 시작일 필터, 선택 (Optional range start)
        date_to: 종료일 필터, 선택 (Optional range end)
        status: 상태 필터, 선택 (Optional status filter)
        page: 페이지 번호 (Page number)
        per_page: 페이지당 항목 수 (Items per page)

    Returns:
        dict: 페이지네이션된 근태 목록 (Paginated attendance list)
    """
    records, total = await attendance_service.get_attendances(
        db,
        caller,
        store_id=store_id,
        staff_id=staff_id,
        date_from=date_from,
        date_to=date_to,
        status=status,
        page=page,
        per_page=per_page,
    )
    return {
        "items": [attendance_service.build_response(r) for r in records],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.post("/auto-checkout/backfill", response_model=SweepResult)
async def backfill_auto_checkout(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_admin)],
    data: BackfillRequest | None = None,
) -> SweepResult:
    """과거 미퇴근 기록을 일괄 퇴근 처리합니다.

    Close open records in a past date range (default: the last 30 days
    through yesterday).

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 회사 관리자 (Authenticated company admin)
        data: 처리 기간, 선택 (Optional date range)

    Returns:
        SweepResult: 처리 결과 (Processed/skipped counts and errors)
    """
    result = await reconciliation_service.run_backfill(
        db,
        start_date=data.start_date if data else None,
        end_date=data.end_date if data else None,
    )
    await db.commit()
    return result


@router.post("/{attendance_id}/unscheduled-decision", response_model=AttendanceResponse)
async def decide_unscheduled(
    attendance_id: UUID,
    data: UnscheduledDecision,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
) -> dict:
    """미배정 출근을 승인 또는 거절합니다.

    Approve (counted as additional work) or reject an unscheduled check-in.

    Args:
        attendance_id: 근태 기록 UUID (Attendance record UUID)
        data: 결정 (approve or reject, optional rejection reason)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 관리자 (Authenticated manager)

    Returns:
        dict: 갱신된 근태 기록 (Updated attendance record)
    """
    record = await attendance_service.decide_unscheduled(db, caller, attendance_id, data)
    await db.commit()
    return attendance_service.build_response(record)
