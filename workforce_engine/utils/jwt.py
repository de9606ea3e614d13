"""JWT 토큰 생성 및 검증 유틸리티 모듈.

JWT token creation and verification utility module.
Tokens are issued by the upstream identity service; this engine only needs
to verify them and read the already-resolved caller context.

JWT Payload Structure:
    {
        "sub": "user_uuid",          # 직원 ID (Employee identifier)
        "company": "company_uuid",   # 회사 ID (Company scope)
        "brand": "brand_uuid",       # 브랜드 ID, 선택 (Optional brand scope)
        "store": "store_uuid",       # 매장 ID, 선택 (Optional store scope)
        "role": "employee",          # 역할 이름 (Role name)
        "exp": 1234567890,           # 만료 시간 UNIX timestamp (Expiration)
        "type": "access"             # 토큰 유형 (Token type discriminator)
    }
"""

from datetime import datetime, timedelta, timezone
from typing import Any
import jwt

from workforce_engine.config import settings


def create_access_token(data: dict[str, Any], expires_minutes: int | None = None) -> str:
    """JWT 액세스 토큰을 생성합니다.

    Generate a JWT access token with the given caller claims. Used by tests
    and local tooling; production tokens come from the identity service.

    Args:
        data: 호출자 클레임 (Caller claims: sub, company, store, brand, role)
        expires_minutes: 만료 시간(분), 기본값은 설정값 (TTL override in minutes)

    Returns:
        str: 인코딩된 JWT 문자열 (Encoded JWT token string)
    """
    to_encode: dict[str, Any] = data.copy()
    ttl: int = expires_minutes if expires_minutes is not None else settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    expire: datetime = datetime.now(timezone.utc) + timedelta(minutes=ttl)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """JWT 토큰을 디코딩하고 검증합니다.

    Decode and verify a JWT token string.

    Args:
        token: JWT 토큰 문자열 (Encoded JWT token string)

    Returns:
        dict[str, Any]: 디코딩된 페이로드 딕셔너리 (Decoded payload dictionary)

    Raises:
        jwt.ExpiredSignatureError: 토큰 만료 시 (When token has expired)
        jwt.InvalidTokenError: 유효하지 않은 토큰 (When token is invalid)
    """
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
