"""근로 계약 서비스 — 계약 생성 및 스케줄 재생성.

Contract Service — Persists contracts and triggers schedule
materialization as a best-effort side effect: a scheduling failure is
logged and reported, never turned into a failed contract creation.
"""

import logging
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.config import settings
from workforce_engine.models.contract import Contract
from workforce_engine.models.enums import ContractStatus
from workforce_engine.repositories.contract_repository import contract_repository
from workforce_engine.repositories.staff_repository import staff_repository
from workforce_engine.schemas.contract import ContractCreate, MaterializeResult
from workforce_engine.services.org_context import CallerContext, resolve_contract_scope
from workforce_engine.services.schedule_service import contract_period, schedule_service
from workforce_engine.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _parse_uuid(value: str | None, field: str) -> UUID | None:
    if value is None:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError(f"잘못된 ID 형식입니다 (Invalid UUID for {field})")


class ContractService:
    """근로 계약 서비스."""

    async def create_contract(
        self,
        db: AsyncSession,
        caller: CallerContext,
        data: ContractCreate,
    ) -> tuple[Contract, MaterializeResult]:
        """계약을 생성하고 스케줄을 생성합니다.

        Create a contract, then materialize its schedule. The contract row is
        flushed before materialization starts, and materialization itself
        never raises, so the contract survives any scheduling failure.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            caller: 호출 관리자 (Calling manager)
            data: 계약 생성 데이터 (Contract payload)

        Returns:
            tuple[Contract, MaterializeResult]: (생성된 계약, 스케줄 생성 결과)

        Raises:
            ValidationError: 기간이 잘못되었거나 ID 형식 오류 (Inverted period or malformed id)
            NotFoundError: 직원이 회사에 없을 때 (Employee not in the caller's company)
        """
        staff_id: UUID = _parse_uuid(data.staff_id, "staff_id")
        if data.end_date is not None and data.end_date < data.start_date:
            raise ValidationError("계약 종료일이 시작일보다 빠릅니다 (end_date is before start_date)")

        staff = await staff_repository.get_by_id(db, staff_id, company_id=caller.company_id)
        if staff is None:
            raise NotFoundError("직원을 찾을 수 없습니다 (Staff member not found)")

        brand_id, store_id = resolve_contract_scope(
            _parse_uuid(data.brand_id, "brand_id"),
            _parse_uuid(data.store_id, "store_id"),
            staff,
            caller,
        )
        contract: Contract = await contract_repository.create(
            db,
            {
                "staff_id": staff_id,
                "company_id": caller.company_id,
                "brand_id": brand_id,
                "store_id": store_id,
                "position": data.position,
                "start_date": data.start_date,
                "end_date": data.end_date or data.start_date + relativedelta(months=settings.CONTRACT_DEFAULT_MONTHS),
                "work_schedules": [entry.model_dump(mode="json") for entry in data.work_schedules],
                "status": ContractStatus.ACTIVE.value,
            },
        )

        result: MaterializeResult = await schedule_service.materialize_contract(db, contract)
        if result.error or result.failures:
            logger.warning(
                "Contract %s created but schedule generation was incomplete: %s",
                contract.id, result.error or f"{len(result.failures)} failure(s)",
            )
        return contract, result

    async def generate_schedules(
        self,
        db: AsyncSession,
        contract_id: UUID,
        caller: CallerContext,
    ) -> tuple[Contract, MaterializeResult]:
        """기존 계약의 스케줄을 다시 생성합니다.

        Re-run materialization for an existing contract.

        Raises:
            NotFoundError: 계약이 없을 때 (Contract not found in the caller's company)
            ValidationError: 근무 패턴이 비어 있을 때 (Contract has no work pattern)
        """
        contract: Contract | None = await contract_repository.get_by_id(db, contract_id, company_id=caller.company_id)
        if contract is None:
            raise NotFoundError("계약을 찾을 수 없습니다 (Contract not found)")
        if not contract.work_schedules:
            raise ValidationError("근무 패턴이 없습니다 (Contract has no work pattern)")

        return contract, await schedule_service.materialize_contract(db, contract)

    def build_response(self, contract: Contract, result: MaterializeResult | None = None) -> dict:
        """계약 응답 딕셔너리 (Contract response dict)."""
        _, end = contract_period(contract)
        return {
            "id": str(contract.id),
            "staff_id": str(contract.staff_id),
            "company_id": str(contract.company_id),
            "brand_id": str(contract.brand_id) if contract.brand_id else None,
            "store_id": str(contract.store_id) if contract.store_id else None,
            "position": contract.position,
            "start_date": contract.start_date,
            "end_date": end,
            "work_schedules": contract.work_schedules,
            "status": contract.status,
            "created_at": contract.created_at,
            "schedule_result": result,
        }


# 싱글턴 인스턴스 — Singleton instance
contract_service: ContractService = ContractService()
