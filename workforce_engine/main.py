"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어 및 라우터 등록.

FastAPI application entry point — Logging, middleware and router registration.
Batch jobs are exposed as HTTP endpoints for an external cron; nothing is
scheduled in-process.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workforce_engine.config import settings
from workforce_engine.middleware.axiom_logging import AxiomLoggingMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Axiom API 로깅 미들웨어 — Axiom API request/response logging
# CORS보다 먼저 등록하여 모든 요청을 캡처 (Registered before CORS to capture all requests)
app.add_middleware(AxiomLoggingMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# 라우터 등록 — Router registration
# ---------------------------------------------------------------------------
# admin_router: 계약, 근태 관리, 수정 요청 검토, 교환 승인 (Manager-facing)
# app_router: 출퇴근, 수정 요청 사유, 스케줄 교환 (Employee-facing)
# jobs_router: 자동 퇴근, 근태 이상 감지 (Cron-triggered batches)
from workforce_engine.api.admin import admin_router  # noqa: E402
from workforce_engine.api.app import app_router  # noqa: E402
from workforce_engine.api.jobs import router as jobs_router  # noqa: E402

app.include_router(admin_router, prefix="/api/v1/admin")
app.include_router(app_router, prefix="/api/v1/app")
app.include_router(jobs_router, prefix="/api/v1/jobs", tags=["Jobs"])
