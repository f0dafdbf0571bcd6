"""
ProofOfTalent — FastAPI Backend
=================================

REST API for private skill assessments: randomized quiz sessions,
scoring over encrypted answers, behavior triage and badge certificates.

Endpoints:
    POST /session                          — Start an assessment
    GET  /session/{id}                     — Session status
    POST /session/{id}/answers             — Record answer telemetry
    POST /session/{id}/submit              — Submit encrypted answers
    POST /session/{id}/certificate         — Issue and mint the certificate
    GET  /session/{id}/certificate         — Fetch the certificate
    GET  /quizzes                          — Quiz categories
    GET  /public-key                       — Encryption parameters
    GET  /badges/{owner}                   — Badges held by an owner
    GET  /badges/token/{token_id}          — Badge metadata
    GET  /health                           — Service status

Run:
    uvicorn backend.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assessment_engine.errors import AssessmentError
from backend.config import API_VERSION, CORS_ORIGINS, SWEEP_INTERVAL_SECONDS, get_engine
from backend.routers import badges, catalog, sessions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("backend")


# ─────────────────────────────────────────────────────────────────────────────
# Background sweep
# ─────────────────────────────────────────────────────────────────────────────
def _resolve_engine(app: FastAPI):
    return app.dependency_overrides.get(get_engine, get_engine)()


async def _sweep_loop(app: FastAPI) -> None:
    """Expire stale sessions and evict old terminal ones, forever."""
    while True:
        await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
        try:
            engine = _resolve_engine(app)
            await asyncio.to_thread(engine.sweep)
        except Exception as exc:
            logger.error("Session sweep failed: %s", exc, exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # key generation can take seconds; do it before serving
    await asyncio.to_thread(_resolve_engine, app)
    task = asyncio.create_task(_sweep_loop(app))
    logger.info("ProofOfTalent API %s started", API_VERSION)
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


# ─────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    app = FastAPI(
        title="ProofOfTalent Assessment API",
        description="Private skill assessments scored over encrypted answers, certified on Algorand",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AssessmentError)
    async def assessment_error_handler(request: Request, exc: AssessmentError):
        if exc.status_code >= 500:
            logger.error("%s %s → %s: %s", request.method, request.url.path, exc.code, exc)
        else:
            logger.info("%s %s → %s: %s", request.method, request.url.path, exc.code, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/")
    async def root():
        return {
            "service": "ProofOfTalent Assessment API",
            "version": API_VERSION,
            "docs": "/docs",
        }

    app.include_router(catalog.router)
    app.include_router(sessions.router)
    app.include_router(badges.router)
    return app


app = create_app()
