"""호출자 및 조직 범위 컨텍스트.

Caller and organizational-scope context.
The caller identity arrives already resolved (decoded from a trusted JWT);
the organizational scope stamped on an attendance record or a contract is
chosen by explicit precedence rules so they can be tested on their own.
"""

from dataclasses import dataclass
from uuid import UUID

from workforce_engine.models.contract import Contract
from workforce_engine.models.enums import MANAGER_ROLES, StaffRole
from workforce_engine.models.schedule import ScheduleEntry
from workforce_engine.models.user import StaffMember


@dataclass(frozen=True)
class CallerContext:
    """인증된 호출자 정보 (Resolved caller identity)."""

    user_id: UUID
    company_id: UUID
    role: str
    brand_id: UUID | None = None
    store_id: UUID | None = None

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == StaffRole.COMPANY_ADMIN.value


@dataclass(frozen=True)
class OrgContext:
    """근태 기록에 찍히는 조직 범위 (Scope stamped on an attendance record)."""

    company_id: UUID
    brand_id: UUID | None
    store_id: UUID | None


def resolve_org_context(
    schedule: ScheduleEntry | None,
    contract: Contract | None,
    caller: CallerContext,
) -> OrgContext:
    """조직 범위 결정 — 스케줄 → 계약 → 호출자 순.

    Pick the organizational scope for a check-in. The first source that
    knows a store wins as a whole (schedule, then contract, then caller),
    so brand and store always come from the same source. Company always
    comes from that source too, falling back to the caller's.

    Args:
        schedule: 오늘의 첫 스케줄, 선택 (Today's first schedule entry)
        contract: 유효 계약, 선택 (Covering contract)
        caller: 호출자 (Resolved caller)

    Returns:
        OrgContext: 결정된 범위 (Chosen scope)
    """
    for source in (schedule, contract):
        if source is not None and source.store_id is not None:
            return OrgContext(
                company_id=source.company_id or caller.company_id,
                brand_id=source.brand_id,
                store_id=source.store_id,
            )
    return OrgContext(
        company_id=caller.company_id,
        brand_id=caller.brand_id,
        store_id=caller.store_id,
    )


def resolve_contract_scope(
    brand_id: UUID | None,
    store_id: UUID | None,
    staff: StaffMember,
    caller: CallerContext,
) -> tuple[UUID | None, UUID | None]:
    """계약 조직 범위 결정 — 요청 값 → 직원 소속 → 호출자 순.

    Pick the brand and store stamped on a new contract. Each field takes
    the first value set among the request, the employee's own assignment
    and the caller's scope.

    Returns:
        tuple[UUID | None, UUID | None]: (brand_id, store_id)
    """
    return (
        brand_id or staff.brand_id or caller.brand_id,
        store_id or staff.store_id or caller.store_id,
    )
