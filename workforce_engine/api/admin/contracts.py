"""관리자 근로 계약 라우터 — 계약 생성 및 스케줄 생성 API.

Admin Contract Router — Create contracts (materializing their schedule)
and re-run schedule generation for an existing contract.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.deps import require_manager
from workforce_engine.database import get_db
from workforce_engine.schemas.contract import ContractCreate, ContractResponse
from workforce_engine.services.contract_service import contract_service
from workforce_engine.services.org_context import CallerContext

router: APIRouter = APIRouter()


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    data: ContractCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
) -> dict:
    """근로 계약을 생성하고 스케줄을 생성합니다.

    Create a contract and materialize its schedule. A scheduling failure is
    reported in schedule_result; the contract is created regardless.

    Args:
        data: 계약 생성 데이터 (Contract payload)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 관리자 (Authenticated manager)

    Returns:
        dict: 생성된 계약과 스케줄 생성 결과 (Created contract with the materialization outcome)
    """
    contract, result = await contract_service.create_contract(db, caller, data)
    await db.commit()
    return contract_service.build_response(contract, result)


@router.post("/{contract_id}/generate-schedules", response_model=ContractResponse)
async def generate_schedules(
    contract_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(require_manager)],
) -> dict:
    """기존 계약의 스케줄을 다시 생성합니다.

    Re-run schedule generation. Existing entries are updated in place.

    Args:
        contract_id: 계약 UUID (Contract UUID)
        db: 비동기 데이터베이스 세션 (Async database session)
        caller: 인증된 관리자 (Authenticated manager)

    Returns:
        dict: 계약과 스케줄 생성 결과 (Contract with the materialization outcome)
    """
    contract, result = await contract_service.generate_schedules(db, contract_id, caller)
    await db.commit()
    return contract_service.build_response(contract, result)
