"""요청 로깅 미들웨어 테스트.

Axiom request-logging middleware: masking, cron tagging and error capture.
"""

from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from workforce_engine.config import settings
from workforce_engine.middleware import axiom_logging
from workforce_engine.middleware.axiom_logging import AxiomLoggingMiddleware, _mask_dict, _truncate
from workforce_engine.utils.exceptions import ConflictError


class FakeAxiomClient:
    """수집 이벤트를 기록만 하는 Axiom 클라이언트."""

    events: list[dict[str, Any]] = []

    def __init__(self, token: str) -> None:
        self.token = token

    def ingest_events(self, dataset: str, events: list[dict[str, Any]]) -> None:
        FakeAxiomClient.events.extend(events)


@pytest.fixture
def axiom_events(monkeypatch) -> list[dict[str, Any]]:
    monkeypatch.setattr(settings, "AXIOM_API_TOKEN", "xaat-test")
    monkeypatch.setattr(settings, "AXIOM_DATASET", "workforce-api")
    monkeypatch.setattr(axiom_logging, "AxiomClient", FakeAxiomClient)
    FakeAxiomClient.events = []
    return FakeAxiomClient.events


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(AxiomLoggingMiddleware)

    @app.post("/api/v1/app/my/attendance/check-in")
    async def check_in(payload: dict) -> dict:
        raise ConflictError("이미 출근했습니다 (Already checked in)")

    @app.post("/api/v1/jobs/auto-checkout")
    async def auto_checkout() -> dict:
        return {"processed": 0}

    return app


class TestMasking:
    """민감 정보 마스킹 테스트."""

    def test_nested_sensitive_keys_are_masked(self):
        masked = _mask_dict({"access_token": "abc", "profile": {"Password": "pw", "name": "김직원"}})
        assert masked == {"access_token": "***", "profile": {"Password": "***", "name": "김직원"}}

    def test_long_lists_are_capped(self):
        assert len(_mask_dict(list(range(50)))) == 20

    def test_truncate(self):
        assert _truncate("x" * 10, max_len=4) == "xxxx...(truncated)"
        assert _truncate("short") == "short"


class TestAxiomLoggingMiddleware:
    """요청 이벤트 수집 테스트."""

    async def test_error_detail_is_captured(self, axiom_events):
        transport = ASGITransport(app=build_app())
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            res = await ac.post(
                "/api/v1/app/my/attendance/check-in", json={"store_id": "s1", "token": "secret-value"}
            )

        assert res.status_code == 409
        assert res.json()["detail"] == "이미 출근했습니다 (Already checked in)"
        [event] = axiom_events
        assert event["status_code"] == 409
        assert event["source"] == "api"
        assert event["request_body"] == {"store_id": "s1", "token": "***"}
        assert event["error"] == "이미 출근했습니다 (Already checked in)"
        assert event["duration_ms"] >= 0

    async def test_job_calls_are_tagged(self, axiom_events):
        transport = ASGITransport(app=build_app())
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            res = await ac.post("/api/v1/jobs/auto-checkout")

        assert res.status_code == 200
        [event] = axiom_events
        assert event["source"] == "cron"
        assert "error" not in event
