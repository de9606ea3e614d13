"""테스트 인프라 — 인메모리 SQLite DB, 세션, httpx 클라이언트 픽스처.

Test infrastructure — In-memory SQLite DB, session, and httpx client fixtures.
Each test gets a fresh schema. SQLite is put into explicit-BEGIN mode so
SAVEPOINTs used by the services behave as they do on PostgreSQL.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from workforce_engine.database import Base, get_db
from workforce_engine.main import app
from workforce_engine.models import *  # noqa: F401,F403 — register all models with metadata
from workforce_engine.models.contract import Contract
from workforce_engine.models.schedule import ScheduleEntry
from workforce_engine.models.user import StaffMember
from workforce_engine.services.notification_service import notification_service
from workforce_engine.services.org_context import CallerContext
from workforce_engine.utils.datetime_utils import combine_local
from workforce_engine.utils.jwt import create_access_token

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 매 테스트마다 스키마를 새로 생성합니다."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite 트랜잭션 처리 비활성화 — let SQLAlchemy emit BEGIN so SAVEPOINT works
    @event.listens_for(eng.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션을 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
@pytest.fixture
def company_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def store_id() -> uuid.UUID:
    return uuid.uuid4()


async def add_staff(
    db: AsyncSession,
    company_id: uuid.UUID,
    name: str,
    role: str = "employee",
    store_id: uuid.UUID | None = None,
) -> StaffMember:
    """직원을 생성합니다."""
    staff = StaffMember(company_id=company_id, store_id=store_id, name=name, role=role)
    db.add(staff)
    await db.flush()
    await db.refresh(staff)
    return staff


@pytest_asyncio.fixture
async def employee(db: AsyncSession, company_id, store_id) -> StaffMember:
    """일반 직원을 생성합니다."""
    return await add_staff(db, company_id, "김직원", store_id=store_id)


@pytest_asyncio.fixture
async def coworker(db: AsyncSession, company_id, store_id) -> StaffMember:
    """교환 상대 직원을 생성합니다."""
    return await add_staff(db, company_id, "이동료", store_id=store_id)


@pytest_asyncio.fixture
async def manager(db: AsyncSession, company_id, store_id) -> StaffMember:
    """매장 관리자를 생성합니다."""
    return await add_staff(db, company_id, "박매니저", role="store_manager", store_id=store_id)


@pytest_asyncio.fixture
async def admin(db: AsyncSession, company_id) -> StaffMember:
    """회사 관리자를 생성합니다 (매장 소속 없음)."""
    return await add_staff(db, company_id, "최관리자", role="company_admin")


async def add_contract(
    db: AsyncSession,
    staff: StaffMember,
    work_schedules: list[dict[str, Any]],
    start_date: date = date(2024, 1, 1),
    end_date: date | None = date(2024, 1, 7),
) -> Contract:
    """근로 계약을 직접 생성합니다 (스케줄 생성 없음)."""
    contract = Contract(
        staff_id=staff.id,
        company_id=staff.company_id,
        store_id=staff.store_id,
        start_date=start_date,
        end_date=end_date,
        work_schedules=work_schedules,
        status="ACTIVE",
    )
    db.add(contract)
    await db.flush()
    await db.refresh(contract)
    return contract


async def add_schedule(
    db: AsyncSession,
    staff: StaffMember,
    work_date: date,
    start: str = "09:00",
    end: str = "18:00",
    break_minutes: int = 60,
    store_id: uuid.UUID | None = None,
) -> ScheduleEntry:
    """수동 스케줄을 생성합니다."""
    entry = ScheduleEntry(
        staff_id=staff.id,
        company_id=staff.company_id,
        store_id=store_id or staff.store_id,
        work_date=work_date,
        start_time=combine_local(work_date, start),
        end_time=combine_local(work_date, end),
        break_minutes=break_minutes,
        status="SCHEDULED",
        generated_by="MANUAL",
    )
    db.add(entry)
    await db.flush()
    await db.refresh(entry)
    return entry


def caller_for(staff: StaffMember) -> CallerContext:
    """직원의 호출자 컨텍스트를 만듭니다."""
    return CallerContext(
        user_id=staff.id,
        company_id=staff.company_id,
        role=staff.role,
        brand_id=staff.brand_id,
        store_id=staff.store_id,
    )


def make_token(staff: StaffMember) -> str:
    """테스트용 JWT 액세스 토큰을 생성합니다."""
    claims: dict[str, Any] = {
        "sub": str(staff.id),
        "company": str(staff.company_id),
        "role": staff.role,
    }
    if staff.store_id is not None:
        claims["store"] = str(staff.store_id)
    if staff.brand_id is not None:
        claims["brand"] = str(staff.brand_id)
    return create_access_token(claims)


@pytest.fixture
def employee_token(employee) -> str:
    return make_token(employee)


@pytest.fixture
def manager_token(manager) -> str:
    return make_token(manager)


@pytest.fixture
def admin_token(admin) -> str:
    return make_token(admin)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# 알림 게이트웨이 대체
# ---------------------------------------------------------------------------
class RecordingGateway:
    """발송된 알림을 기록만 하는 게이트웨이."""

    def __init__(self) -> None:
        self.sent: list[tuple[uuid.UUID, Any]] = []

    async def send(self, db, user_id, intent, company_id=None) -> None:
        self.sent.append((user_id, intent))

    def titles_for(self, user_id: uuid.UUID) -> list[str]:
        return [intent.title for recipient, intent in self.sent if recipient == user_id]


class FailingGateway:
    """항상 실패하는 게이트웨이."""

    async def send(self, db, user_id, intent, company_id=None) -> None:
        raise RuntimeError("push provider unavailable")


@pytest.fixture
def gateway(monkeypatch) -> RecordingGateway:
    """notification_service의 게이트웨이를 기록용으로 교체합니다."""
    recording = RecordingGateway()
    monkeypatch.setattr(notification_service, "gateway", recording)
    return recording
