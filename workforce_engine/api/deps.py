"""FastAPI 의존성 주입 모듈 — 호출자 식별 및 권한 검사.

FastAPI dependency injection module — Caller identification and authorization.
The identity service issues JWTs that already carry the resolved caller
context, so no user lookup happens here.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. decode_token()이 JWT를 검증하고 페이로드를 반환
       (decode_token verifies JWT and returns payload)
    4. 페이로드의 클레임으로 CallerContext를 구성
       (Claims are turned into a CallerContext)

Cron Flow:
    CRON_SECRET이 설정된 경우 Authorization: Bearer <CRON_SECRET> 을 요구
    (When CRON_SECRET is set, job routes require it as the bearer value)
"""

import hmac
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from workforce_engine.config import settings
from workforce_engine.services.org_context import CallerContext
from workforce_engine.utils.exceptions import ForbiddenError, UnauthorizedError
from workforce_engine.utils.jwt import decode_token

# HTTP Bearer 토큰 추출기 — auto_error=False so a missing header becomes our 401
security: HTTPBearer = HTTPBearer(auto_error=False)


def _optional_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


async def get_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> CallerContext:
    """JWT 토큰에서 호출자 컨텍스트를 추출합니다.

    Decode the bearer token and return the caller context it carries.

    Args:
        credentials: HTTP Bearer 토큰 자격 증명 (Bearer token credentials from header)

    Returns:
        CallerContext: 호출자 정보 (Resolved caller)

    Raises:
        UnauthorizedError: 토큰이 없거나 유효하지 않거나 만료됨 (Missing, invalid or expired token)
    """
    if credentials is None:
        raise UnauthorizedError("인증이 필요합니다 (Authentication required)")
    try:
        payload: dict = decode_token(credentials.credentials)
        # 토큰 타입 검증 — Reject anything but access tokens
        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type")
        return CallerContext(
            user_id=UUID(payload["sub"]),
            company_id=UUID(payload["company"]),
            role=payload.get("role") or "employee",
            brand_id=_optional_uuid(payload.get("brand")),
            store_id=_optional_uuid(payload.get("store")),
        )
    except UnauthorizedError:
        raise
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError, KeyError, ValueError, TypeError):
        raise UnauthorizedError("Invalid or expired token")


async def require_manager(
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> CallerContext:
    """관리자 역할(company_admin, manager, store_manager)만 허용합니다 (Managers only)."""
    if not caller.is_manager:
        raise ForbiddenError("관리자 권한이 필요합니다 (Manager role required)")
    return caller


async def require_admin(
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> CallerContext:
    """회사 관리자만 허용합니다 (company_admin only)."""
    if not caller.is_admin:
        raise ForbiddenError("회사 관리자 권한이 필요합니다 (Company admin role required)")
    return caller


async def verify_cron_secret(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """크론 호출 비밀값을 검증합니다.

    Check Authorization: Bearer <CRON_SECRET> on job routes. Open when no
    secret is configured (local development).

    Raises:
        UnauthorizedError: 비밀값 불일치 (Missing or wrong secret)
    """
    if not settings.CRON_SECRET:
        return
    expected: str = f"Bearer {settings.CRON_SECRET}"
    if authorization is None or not hmac.compare_digest(authorization, expected):
        raise UnauthorizedError("Unauthorized")
