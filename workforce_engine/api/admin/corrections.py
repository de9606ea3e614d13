"""관리자 근태 수정 요청 라우터 — 수정 요청 검토 API.

Admin Correction Router — Managers list and resolve correction requests.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import require_manager
from workforce_engine.database import get_db
from workforce_engine.schemas.attendance import CorrectionDecision, CorrectionResponse
from workforce_engine.schemas.common import PaginatedResponse
from workforce_engine.services.correction_service import correction_service
from workforce_engine.services.org_context import CallerContext

router: APIRouter = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def list_corrections(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
    status: Annotated[str | None, Query()] = None,
    store_id: Annotated[UUID | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict:
    """회사 근태 수정 요청 목록 (Company correction requests, newest first)."""
    requests, total = await correction_service.get_requests(db, caller, status, store_id, page, per_page)
    return {
        "items": [correction_service.build_response(r) for r in requests],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.post("/{request_id}/decision", response_model=CorrectionResponse)
async def decide_correction(
    request_id: UUID,
    data: CorrectionDecision,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
) -> dict:
    """수정 요청을 승인 또는 거절합니다.

    Approve (applying requested times) or reject (comment required) a
    correction request.

    Args:
        request_id: 수정 요청 UUID (Correction request UUID)
        data: 결정 (approve or reject, optional comment)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 관리자 (Authenticated manager)

    Returns:
        dict: 처리된 수정 요청 (Resolved correction request)
    """
    request = await correction_service.decide(db, caller, request_id, data)
    await db.commit()
    return correction_service.build_response(request)
