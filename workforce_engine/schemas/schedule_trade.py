"""스케줄 교환 Pydantic 스키마.

Shift trade request/response schemas.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class TradeCreate(BaseModel):
    """스케줄 교환 요청 생성.

    Attributes:
        requester_schedule_id: 내 스케줄 UUID (Entry the requester gives away)
        target_schedule_id: 상대 스케줄 UUID (Entry the requester wants)
        reason: 요청 사유, 선택 (Optional reason)
    """

    requester_schedule_id: str
    target_schedule_id: str
    reason: str | None = Field(default=None, max_length=500)


class TradeRespond(BaseModel):
    """대상 직원 응답 (Target employee accepts or rejects)."""

    action: Literal["ACCEPT", "REJECT"]
    comment: str | None = Field(default=None, max_length=500)


class TradeDecision(BaseModel):
    """관리자 결정 (Manager accepts or rejects an accepted trade)."""

    action: Literal["ACCEPT", "REJECT"]
    comment: str | None = Field(default=None, max_length=500)


class TradeResponse(BaseModel):
    id: str
    requester_id: str
    requester_schedule_id: str
    target_id: str
    target_schedule_id: str
    reason: str | None
    status: str
    requires_manager_approval: bool
    response_comment: str | None
    responded_at: datetime | None
    manager_id: str | None
    manager_comment: str | None
    manager_responded_at: datetime | None
    created_at: datetime
