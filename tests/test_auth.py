"""인증/권한 테스트.

Caller identification and role checks on the HTTP surface.
"""

from datetime import datetime, timedelta, timezone

import jwt
from httpx import AsyncClient

from tests.conftest import auth_header
from workforce_engine.config import settings
from workforce_engine.utils.jwt import create_access_token

APP = "/api/v1/app"
ADMIN = "/api/v1/admin"


class TestAuth:
    """토큰 검증 테스트."""

    async def test_missing_token_is_401(self, client: AsyncClient):
        res = await client.get(f"{APP}/my/attendance/today")
        assert res.status_code == 401

    async def test_garbage_token_is_401(self, client: AsyncClient):
        res = await client.get(f"{APP}/my/attendance/today", headers=auth_header("not-a-jwt"))
        assert res.status_code == 401

    async def test_expired_token_is_401(self, client: AsyncClient, employee):
        token = create_access_token(
            {"sub": str(employee.id), "company": str(employee.company_id), "role": "employee"},
            expires_minutes=-1,
        )
        res = await client.get(f"{APP}/my/attendance/today", headers=auth_header(token))
        assert res.status_code == 401

    async def test_non_access_token_is_401(self, client: AsyncClient, employee):
        """refresh 등 다른 유형의 토큰은 거부."""
        token = jwt.encode(
            {
                "sub": str(employee.id),
                "company": str(employee.company_id),
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
                "type": "refresh",
            },
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        res = await client.get(f"{APP}/my/attendance/today", headers=auth_header(token))
        assert res.status_code == 401

    async def test_token_without_company_is_401(self, client: AsyncClient, employee):
        token = create_access_token({"sub": str(employee.id), "role": "employee"})
        res = await client.get(f"{APP}/my/attendance/today", headers=auth_header(token))
        assert res.status_code == 401

    async def test_employee_blocked_from_admin_routes(self, client: AsyncClient, employee_token):
        res = await client.get(f"{ADMIN}/attendances", headers=auth_header(employee_token))
        assert res.status_code == 403

    async def test_manager_reaches_admin_routes(self, client: AsyncClient, manager_token):
        res = await client.get(f"{ADMIN}/attendances", headers=auth_header(manager_token))
        assert res.status_code == 200
