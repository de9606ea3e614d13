"""직원 디렉터리 SQLAlchemy ORM 모델 정의.

Staff directory SQLAlchemy ORM model definition.
Identity and login are owned by the upstream identity service; this table
only mirrors what the engine needs to route approvals and notifications.

Tables:
    - users: 직원 디렉터리 (Staff members with company/store scope and role)
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.database import Base
from workforce_engine.models.types import TZDateTime, utc_now


class StaffMember(Base):
    """직원 모델 — 회사/매장 소속과 역할 정보.

    Staff member model — Company/store membership and role.
    Managers are staff whose role is one of MANAGER_ROLES.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier, same as the identity service user id)
        company_id: 소속 회사 (Company scope)
        brand_id: 소속 브랜드, 선택 (Optional brand scope)
        store_id: 소속 매장, 선택 (Home store; null for company-wide staff)
        name: 표시 이름 (Display name)
        role: 역할 (company_admin, manager, store_manager, employee)
        is_active: 활성 여부 (Inactive staff never receive manager alerts)
    """

    __tablename__ = "users"

    # 직원 고유 식별자 — Staff unique identifier
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 소속 회사 — Company scope for multi-tenant isolation
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # 소속 브랜드 — Optional brand scope
    brand_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 소속 매장 — Home store
    store_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 표시 이름 — Display name used in notification bodies
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # 역할 — Role name
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="employee")
    # 활성 상태 — Whether the staff member is active
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utc_now)

    __table_args__ = (
        Index("ix_users_company_role", "company_id", "role"),
    )
