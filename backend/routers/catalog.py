"""
Backend Router — Catalog
==========================

GET /quizzes    — Available quiz categories
GET /public-key — Encryption parameters for client-side answer encryption
GET /health     — Service status
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from assessment_engine.engine import AssessmentEngine
from assessment_engine.models import CategoryInfo
from backend.config import API_VERSION, LEDGER_BACKEND, get_engine

router = APIRouter(tags=["Catalog"])


class HealthResponse(BaseModel):
    status: str
    backend_version: str
    available_quizzes: list[str]
    active_sessions: int
    ledger: str


@router.get("/quizzes", response_model=list[CategoryInfo])
def list_quizzes(engine: AssessmentEngine = Depends(get_engine)):
    """List every quiz category with its size and pass fraction."""
    return engine.categories()


@router.get("/public-key")
def public_key(engine: AssessmentEngine = Depends(get_engine)) -> dict[str, Any]:
    """Public key the client encrypts its one-hot answers with."""
    return engine.evaluator.scheme.public_key_info()


@router.get("/health", response_model=HealthResponse)
def health(engine: AssessmentEngine = Depends(get_engine)):
    return HealthResponse(
        status="healthy",
        backend_version=API_VERSION,
        available_quizzes=[c.category for c in engine.categories()],
        active_sessions=engine.sessions.active_count(),
        ledger=LEDGER_BACKEND,
    )
