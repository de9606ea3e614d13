"""스케줄 교환 상태 전이 규칙.

Shift trade state machine. transition() is the only place that decides
whether an event is legal in a state and what follows from it; the
workflow service only persists the outcome and performs the effects.

    PENDING --TARGET_REJECT--> REJECTED
    PENDING --TARGET_ACCEPT--> AWAITING_APPROVAL   (manager approval required)
    PENDING --TARGET_ACCEPT--> APPROVED            (no approval required)
    AWAITING_APPROVAL --MANAGER_ACCEPT--> APPROVED
    AWAITING_APPROVAL --MANAGER_REJECT--> MANAGER_REJECTED
"""

from dataclasses import dataclass
from enum import Enum

from workforce_engine.models.enums import TradeStatus
from workforce_engine.utils.exceptions import ConflictError


class TradeEvent(str, Enum):
    TARGET_ACCEPT = "TARGET_ACCEPT"
    TARGET_REJECT = "TARGET_REJECT"
    MANAGER_ACCEPT = "MANAGER_ACCEPT"
    MANAGER_REJECT = "MANAGER_REJECT"


class TradeEffect(str, Enum):
    """전이에 따르는 후속 작업 (Side effects the service performs after a transition)."""

    EXECUTE_SWAP = "EXECUTE_SWAP"
    NOTIFY_REQUESTER_REJECTED = "NOTIFY_REQUESTER_REJECTED"
    NOTIFY_MANAGERS = "NOTIFY_MANAGERS"
    NOTIFY_TRADE_COMPLETED = "NOTIFY_TRADE_COMPLETED"


@dataclass(frozen=True)
class TransitionResult:
    next_status: TradeStatus
    effects: tuple[TradeEffect, ...] = ()


def transition(
    status: TradeStatus | str,
    event: TradeEvent,
    requires_manager_approval: bool,
) -> TransitionResult:
    """현재 상태와 이벤트로 다음 상태와 후속 작업을 결정합니다.

    Args:
        status: 현재 상태 (Current trade status)
        event: 발생 이벤트 (Incoming event)
        requires_manager_approval: 관리자 승인 필요 여부 (Approval policy of the trade)

    Returns:
        TransitionResult: 다음 상태와 후속 작업 (Next status and effects)

    Raises:
        ConflictError: 현재 상태에서 허용되지 않는 이벤트 (Event not legal in the current state)
    """
    status = TradeStatus(status)

    if status == TradeStatus.PENDING:
        if event == TradeEvent.TARGET_REJECT:
            return TransitionResult(TradeStatus.REJECTED, (TradeEffect.NOTIFY_REQUESTER_REJECTED,))
        if event == TradeEvent.TARGET_ACCEPT:
            if requires_manager_approval:
                return TransitionResult(TradeStatus.AWAITING_APPROVAL, (TradeEffect.NOTIFY_MANAGERS,))
            return TransitionResult(
                TradeStatus.APPROVED, (TradeEffect.EXECUTE_SWAP, TradeEffect.NOTIFY_TRADE_COMPLETED)
            )

    if status == TradeStatus.AWAITING_APPROVAL:
        if event == TradeEvent.MANAGER_ACCEPT:
            return TransitionResult(
                TradeStatus.APPROVED, (TradeEffect.EXECUTE_SWAP, TradeEffect.NOTIFY_TRADE_COMPLETED)
            )
        if event == TradeEvent.MANAGER_REJECT:
            return TransitionResult(TradeStatus.MANAGER_REJECTED, (TradeEffect.NOTIFY_REQUESTER_REJECTED,))

    raise ConflictError(
        f"현재 상태에서 처리할 수 없는 요청입니다 (Cannot apply {event.value} to a {status.value} trade)"
    )
