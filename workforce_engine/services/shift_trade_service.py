"""스케줄 교환 서비스 — 직원 간 근무 교환 워크플로우.

Shift Trade Service — Lets an employee offer one of their schedule entries
in exchange for a colleague's. Legality of every step is decided by
trade_state_machine.transition; this service claims the state with a
guarded conditional update, then performs the resulting effects.
"""

import logging
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.config import settings
from workforce_engine.models.enums import (
    NotificationCategory,
    NotificationPriority,
    ScheduleStatus,
    TradeStatus,
)
from workforce_engine.models.schedule import ScheduleEntry, ShiftTradeRequest
from workforce_engine.models.types import utc_now
from workforce_engine.repositories.schedule_repository import schedule_repository
from workforce_engine.repositories.staff_repository import staff_repository
from workforce_engine.repositories.trade_repository import trade_repository
from workforce_engine.schemas.notification import NotificationAction, NotificationIntent
from workforce_engine.schemas.schedule_trade import TradeCreate, TradeDecision, TradeRespond
from workforce_engine.services.notification_service import notification_service
from workforce_engine.services.org_context import CallerContext
from workforce_engine.services.trade_state_machine import (
    TradeEffect,
    TradeEvent,
    TransitionResult,
    transition,
)
from workforce_engine.utils.datetime_utils import format_local_hhmm
from workforce_engine.utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _parse_uuid(value: str | None, field: str) -> UUID:
    if not value:
        raise ValidationError(f"{field} 값이 필요합니다 ({field} is required)")
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError(f"잘못된 ID 형식입니다 (Invalid UUID for {field})")


def _describe(entry: ScheduleEntry) -> str:
    return f"{entry.work_date.isoformat()} {format_local_hhmm(entry.start_time)}~{format_local_hhmm(entry.end_time)}"


class ShiftTradeService:
    """스케줄 교환 서비스."""

    async def create_trade(
        self,
        db: AsyncSession,
        caller: CallerContext,
        data: TradeCreate,
    ) -> ShiftTradeRequest:
        """스케줄 교환 요청을 생성합니다.

        Create a trade offering the caller's entry for the target entry.
        Manager approval is required when the global policy says so, and
        always when the two entries belong to different stores.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            caller: 요청 직원 (Requesting employee)
            data: 교환 요청 데이터 (Trade payload)

        Returns:
            ShiftTradeRequest: 생성된 요청 (Created trade request)

        Raises:
            ValidationError: ID 누락/형식 오류, 자기 자신과의 교환, 동일 슬롯, 취소된 스케줄
                             (Missing or malformed ids, self-trade, identical slot, cancelled entry)
            NotFoundError: 스케줄이 없는 경우 (Entry not found)
            ForbiddenError: 요청자가 스케줄 소유자가 아닌 경우 (Requester does not own the source)
            ConflictError: 진행 중인 요청이 이미 있는 경우 (Open request already exists)
        """
        source_id: UUID = _parse_uuid(data.requester_schedule_id, "requester_schedule_id")
        target_id: UUID = _parse_uuid(data.target_schedule_id, "target_schedule_id")
        if source_id == target_id:
            raise ValidationError("같은 스케줄끼리 교환할 수 없습니다 (Cannot trade an entry with itself)")

        source: ScheduleEntry | None = await schedule_repository.get_by_id(db, source_id, company_id=caller.company_id)
        target: ScheduleEntry | None = await schedule_repository.get_by_id(db, target_id, company_id=caller.company_id)
        if source is None or target is None:
            raise NotFoundError("스케줄을 찾을 수 없습니다 (Schedule entry not found)")
        if source.staff_id != caller.user_id:
            raise ForbiddenError("본인의 스케줄만 교환 요청할 수 있습니다 (You do not own this schedule entry)")
        if target.staff_id == caller.user_id:
            raise ValidationError("본인과는 교환할 수 없습니다 (Cannot trade with yourself)")
        if source.work_date == target.work_date and source.start_time == target.start_time:
            raise ValidationError("동일한 시간대의 스케줄은 교환할 수 없습니다 (Both entries occupy the same slot)")
        if ScheduleStatus.CANCELLED.value in (source.status, target.status):
            raise ValidationError("취소된 스케줄은 교환할 수 없습니다 (Cancelled entries cannot be traded)")

        if await trade_repository.get_open_for_schedule(db, source.id) is not None:
            raise ConflictError("이미 진행 중인 교환 요청이 있습니다 (An open trade already exists for this entry)")

        requires_approval: bool = (
            settings.SHIFT_TRADE_REQUIRES_MANAGER_APPROVAL or source.store_id != target.store_id
        )
        try:
            async with db.begin_nested():
                trade: ShiftTradeRequest = await trade_repository.create(
                    db,
                    {
                        "company_id": caller.company_id,
                        "requester_id": caller.user_id,
                        "requester_schedule_id": source.id,
                        "target_id": target.staff_id,
                        "target_schedule_id": target.id,
                        "reason": data.reason,
                        "status": TradeStatus.PENDING.value,
                        "requires_manager_approval": requires_approval,
                    },
                )
        except IntegrityError:
            raise ConflictError("이미 진행 중인 교환 요청이 있습니다 (An open trade already exists for this entry)")

        requester = await staff_repository.get_by_id(db, caller.user_id)
        name: str = requester.name if requester is not None else "동료"
        await notification_service.notify(
            db,
            trade.target_id,
            NotificationIntent(
                title="스케줄 교환 요청",
                body=f"{name}님이 {_describe(source)} 근무와 {_describe(target)} 근무의 교환을 요청했습니다.",
                category=NotificationCategory.SCHEDULE,
                priority=NotificationPriority.HIGH,
                deep_link=f"/schedules/trade/{trade.id}",
                actions=[
                    NotificationAction(id="ACCEPT", label="수락"),
                    NotificationAction(id="REJECT", label="거절"),
                ],
                data={"trade_id": str(trade.id)},
            ),
            company_id=trade.company_id,
        )
        logger.info("Trade %s opened: %s -> %s", trade.id, source.id, target.id)
        return trade

    async def respond_trade(
        self,
        db: AsyncSession,
        caller: CallerContext,
        trade_id: UUID,
        data: TradeRespond,
    ) -> ShiftTradeRequest:
        """대상 직원이 교환 요청에 응답합니다.

        Only the target may respond, and only while the trade is PENDING.

        Raises:
            NotFoundError: 요청이 없는 경우 (Trade not found)
            ForbiddenError: 대상자가 아닌 경우 (Caller is not the target)
            ConflictError: 대기 상태가 아니거나 동시 처리에 밀린 경우 (Not PENDING, or lost a race)
        """
        trade = await self._get_trade(db, caller, trade_id)
        if trade.target_id != caller.user_id:
            raise ForbiddenError("요청 대상자만 응답할 수 있습니다 (Only the target employee can respond)")

        event = TradeEvent.TARGET_ACCEPT if data.action == "ACCEPT" else TradeEvent.TARGET_REJECT
        outcome: TransitionResult = transition(trade.status, event, trade.requires_manager_approval)
        now: datetime = utc_now()
        return await self._apply(
            db,
            trade,
            outcome,
            {"response_comment": data.comment, "responded_at": now, "updated_at": now},
            actor_id=caller.user_id,
        )

    async def approve_trade(
        self,
        db: AsyncSession,
        caller: CallerContext,
        trade_id: UUID,
        data: TradeDecision,
    ) -> ShiftTradeRequest:
        """관리자가 수락된 교환 요청을 승인 또는 거절합니다.

        Only from AWAITING_APPROVAL.

        Raises:
            NotFoundError: 요청이 없는 경우 (Trade not found in the caller's company)
            ConflictError: 승인 대기 상태가 아닌 경우 (Not AWAITING_APPROVAL, or lost a race)
        """
        trade = await self._get_trade(db, caller, trade_id)
        event = TradeEvent.MANAGER_ACCEPT if data.action == "ACCEPT" else TradeEvent.MANAGER_REJECT
        outcome: TransitionResult = transition(trade.status, event, trade.requires_manager_approval)
        now: datetime = utc_now()
        return await self._apply(
            db,
            trade,
            outcome,
            {
                "manager_id": caller.user_id,
                "manager_comment": data.comment,
                "manager_responded_at": now,
                "updated_at": now,
            },
            actor_id=caller.user_id,
        )

    async def _get_trade(
        self,
        db: AsyncSession,
        caller: CallerContext,
        trade_id: UUID,
    ) -> ShiftTradeRequest:
        trade = await trade_repository.get_by_id(db, trade_id, company_id=caller.company_id)
        if trade is None:
            raise NotFoundError("교환 요청을 찾을 수 없습니다 (Trade request not found)")
        return trade

    async def _apply(
        self,
        db: AsyncSession,
        trade: ShiftTradeRequest,
        outcome: TransitionResult,
        values: dict[str, Any],
        actor_id: UUID,
    ) -> ShiftTradeRequest:
        # 상태 선점 — Claim the transition before any other mutation
        claimed: bool = await trade_repository.update_if_status(
            db, trade.id, trade.status, {**values, "status": outcome.next_status.value}
        )
        if not claimed:
            raise ConflictError("이미 처리된 교환 요청입니다 (Trade request was already processed)")

        trade = await trade_repository.get_fresh(db, trade.id)
        if TradeEffect.EXECUTE_SWAP in outcome.effects:
            await self._execute_swap(db, trade)

        for effect in outcome.effects:
            if effect == TradeEffect.NOTIFY_REQUESTER_REJECTED:
                await self._notify_rejected(db, trade)
            elif effect == TradeEffect.NOTIFY_MANAGERS:
                await self._notify_managers(db, trade, actor_id)
            elif effect == TradeEffect.NOTIFY_TRADE_COMPLETED:
                await self._notify_completed(db, trade)

        logger.info("Trade %s -> %s", trade.id, trade.status)
        return trade

    async def _execute_swap(
        self,
        db: AsyncSession,
        trade: ShiftTradeRequest,
    ) -> None:
        """두 스케줄의 담당 직원을 맞바꿉니다.

        Swap staff_id between the two entries, remembering where each came
        from. Entries that changed hands since the request was made abort
        the trade.
        """
        source = await schedule_repository.get_fresh(db, trade.requester_schedule_id)
        target = await schedule_repository.get_fresh(db, trade.target_schedule_id)
        if source is None or target is None:
            raise NotFoundError("스케줄을 찾을 수 없습니다 (Schedule entry not found)")
        if source.staff_id != trade.requester_id or target.staff_id != trade.target_id:
            raise ConflictError("스케줄 담당자가 변경되었습니다 (Schedule ownership changed since the request)")

        now: datetime = utc_now()
        try:
            async with db.begin_nested():
                await schedule_repository.update_fields(
                    db,
                    source,
                    {
                        "staff_id": trade.target_id,
                        "traded_from_id": target.id,
                        "original_staff_id": source.staff_id,
                        "updated_at": now,
                    },
                )
                await schedule_repository.update_fields(
                    db,
                    target,
                    {
                        "staff_id": trade.requester_id,
                        "traded_from_id": source.id,
                        "original_staff_id": target.staff_id,
                        "updated_at": now,
                    },
                )
        except IntegrityError:
            raise ConflictError(
                "교환 후 스케줄이 기존 스케줄과 겹칩니다 (Swapped entry collides with an existing schedule)"
            )

    async def _notify_rejected(self, db: AsyncSession, trade: ShiftTradeRequest) -> None:
        if trade.status == TradeStatus.MANAGER_REJECTED.value:
            body = "관리자가 스케줄 교환 요청을 거절했습니다."
            comment = trade.manager_comment
        else:
            target = await staff_repository.get_by_id(db, trade.target_id)
            body = f"{target.name if target else '상대방'}님이 스케줄 교환 요청을 거절했습니다."
            comment = trade.response_comment
        if comment:
            body += f" 사유: {comment}"

        await notification_service.notify(
            db,
            trade.requester_id,
            NotificationIntent(
                title="스케줄 교환 거절",
                body=body,
                category=NotificationCategory.SCHEDULE,
                deep_link=f"/schedules/trade/{trade.id}",
                data={"trade_id": str(trade.id)},
            ),
            company_id=trade.company_id,
        )

    async def _notify_managers(self, db: AsyncSession, trade: ShiftTradeRequest, actor_id: UUID) -> None:
        source = await schedule_repository.get_by_id(db, trade.requester_schedule_id)
        requester = await staff_repository.get_by_id(db, trade.requester_id)
        target = await staff_repository.get_by_id(db, trade.target_id)
        await notification_service.notify_managers(
            db,
            trade.company_id,
            NotificationIntent(
                title="스케줄 교환 승인 요청",
                body=(
                    f"{requester.name if requester else '직원'}님과 {target.name if target else '직원'}님의 "
                    "스케줄 교환이 합의되었습니다. 승인이 필요합니다."
                ),
                category=NotificationCategory.APPROVAL,
                priority=NotificationPriority.HIGH,
                deep_link=f"/schedule-trades/{trade.id}",
                actions=[
                    NotificationAction(id="ACCEPT", label="승인"),
                    NotificationAction(id="REJECT", label="거절"),
                ],
                data={"trade_id": str(trade.id)},
            ),
            store_id=source.store_id if source is not None else None,
            exclude=actor_id,
        )

    async def _notify_completed(self, db: AsyncSession, trade: ShiftTradeRequest) -> None:
        await notification_service.notify_many(
            db,
            [trade.requester_id, trade.target_id],
            NotificationIntent(
                title="스케줄 교환 완료",
                body="스케줄 교환이 완료되었습니다. 변경된 근무 일정을 확인해주세요.",
                category=NotificationCategory.SCHEDULE,
                deep_link=f"/schedules/trade/{trade.id}",
                data={"trade_id": str(trade.id)},
            ),
            company_id=trade.company_id,
        )

    async def get_my_trades(
        self,
        db: AsyncSession,
        caller: CallerContext,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[ShiftTradeRequest], int]:
        """내가 요청했거나 받은 교환 요청 (Trades involving the caller)."""
        return await trade_repository.get_user_trades(db, caller.user_id, status, page, per_page)

    async def get_trades(
        self,
        db: AsyncSession,
        caller: CallerContext,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[ShiftTradeRequest], int]:
        """회사 교환 요청 목록 (Company trades for managers)."""
        return await trade_repository.get_by_filters(db, caller.company_id, status, page, per_page)

    def build_response(self, trade: ShiftTradeRequest) -> dict:
        """교환 요청 응답 딕셔너리 (Trade response dict)."""
        return {
            "id": str(trade.id),
            "requester_id": str(trade.requester_id),
            "requester_schedule_id": str(trade.requester_schedule_id),
            "target_id": str(trade.target_id),
            "target_schedule_id": str(trade.target_schedule_id),
            "reason": trade.reason,
            "status": trade.status,
            "requires_manager_approval": trade.requires_manager_approval,
            "response_comment": trade.response_comment,
            "responded_at": trade.responded_at,
            "manager_id": str(trade.manager_id) if trade.manager_id else None,
            "manager_comment": trade.manager_comment,
            "manager_responded_at": trade.manager_responded_at,
            "created_at": trade.created_at,
        }


# 싱글턴 인스턴스 — Singleton instance
shift_trade_service: ShiftTradeService = ShiftTradeService()
