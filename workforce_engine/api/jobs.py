"""예약 작업 라우터 — 외부 크론이 호출하는 배치 API.

Jobs Router — Batch endpoints triggered by an external cron. Each job is
safe to run more than once; partial failures are returned in the result
rather than raised.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import verify_cron_secret
from workforce_engine.database import get_db
from workforce_engine.schemas.attendance import CorrectionScanResult, SweepResult
from workforce_engine.services.correction_service import correction_service
from workforce_engine.services.reconciliation_service import reconciliation_service

router: APIRouter = APIRouter(dependencies=[Depends(verify_cron_secret)])


@router.post("/auto-checkout", response_model=SweepResult)
async def run_auto_checkout(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SweepResult:
    """미퇴근 기록 자동 퇴근 처리 (Close overdue open attendance records)."""
    result = await reconciliation_service.run_sweeper(db)
    await db.commit()
    return result


@router.post("/attendance-correction-alert", response_model=CorrectionScanResult)
async def run_correction_alert(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CorrectionScanResult:
    """지각/조퇴 감지 및 연장근무 알림 (Detect late/early punches and prompt overtime)."""
    result = await correction_service.scan_corrections(db)
    await db.commit()
    return result
