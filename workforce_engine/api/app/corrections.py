"""앱 근태 수정 요청 라우터 — 내 지각/조퇴 사유 입력 API.

App Correction Router — The employee lists their correction requests,
fills in the reason, or cancels a pending request.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import get_caller
from workforce_engine.database import get_db
from workforce_engine.schemas.attendance import CorrectionReasonSubmit, CorrectionResponse
from workforce_engine.schemas.common import PaginatedResponse
from workforce_engine.services.correction_service import correction_service
from workforce_engine.services.org_context import CallerContext

router: APIRouter = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def list_my_corrections(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
    status: Annotated[str | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """내 근태 수정 요청 목록 (My correction requests, newest first)."""
    requests, total = await correction_service.get_my_requests(db, caller, status, page, per_page)
    return {
        "items": [correction_service.build_response(r) for r in requests],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.put("/{request_id}/reason", response_model=CorrectionResponse)
async def submit_correction_reason(
    request_id: UUID,
    data: CorrectionReasonSubmit,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> dict:
    """수정 요청에 사유를 입력합니다.

    Fill in the reason for a pending correction request. Managers are
    notified that it needs review.

    Args:
        request_id: 수정 요청 UUID (Correction request UUID)
        data: 사유 및 요청 시각 (Reason and optional requested times)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 직원 (Authenticated employee)

    Returns:
        dict: 갱신된 수정 요청 (Updated correction request)
    """
    request = await correction_service.submit_reason(db, caller, request_id, data)
    await db.commit()
    return correction_service.build_response(request)


@router.post("/{request_id}/cancel", response_model=CorrectionResponse)
async def cancel_correction(
    request_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> dict:
    """대기 중인 내 수정 요청을 취소합니다 (Cancel my pending request)."""
    request = await correction_service.cancel(db, caller, request_id)
    await db.commit()
    return correction_service.build_response(request)
