"""
Backend Router — Sessions
===========================

POST /session                          — Create a session and get its questions
GET  /session/{session_id}             — Session status
POST /session/{session_id}/answers     — Record timing / answer switches
POST /session/{session_id}/submit      — Submit encrypted answers for scoring
POST /session/{session_id}/certificate — Issue (or re-fetch) the certificate
GET  /session/{session_id}/certificate — Fetch the issued certificate
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from assessment_engine.engine import AssessmentEngine
from assessment_engine.models import (
    AnswerTelemetry,
    Certificate,
    CertificateRecord,
    Ciphertext,
    QuestionTelemetry,
    QuestionView,
    ScoreResult,
    SessionState,
    SubmissionResult,
)
from backend.config import get_engine

logger = logging.getLogger("backend.sessions")
router = APIRouter(prefix="/session", tags=["Sessions"])


# ─────────────────────────────────────────────────────────────────────────────
# Request / Response Models
# ─────────────────────────────────────────────────────────────────────────────
class CreateSessionRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="User or wallet identifier")
    category: str = Field(..., description="Quiz category (e.g. 'security')")


class CreateSessionResponse(BaseModel):
    session_id: str
    category: str
    state: SessionState
    created_at: float
    expires_at: float
    questions: list[QuestionView]


class SessionStatusResponse(BaseModel):
    session_id: str
    user_id: str
    category: str
    state: SessionState
    created_at: float
    expires_at: float
    question_count: int
    rejection_reason: Optional[str] = None
    score: Optional[ScoreResult] = None


class RecordAnswerRequest(BaseModel):
    question_index: int
    answer_time_seconds: float = Field(default=0.0, ge=0.0)
    switch_count: int = Field(default=0, ge=0)


class RecordAnswerResponse(BaseModel):
    session_id: str
    question_index: int
    answer_time_seconds: float
    switch_count: int


class SubmitRequest(BaseModel):
    ciphertexts: list[Ciphertext] = Field(..., description="One encrypted answer per question")
    telemetry: Optional[AnswerTelemetry] = Field(
        default=None, description="Omit to use the telemetry recorded via /answers",
    )


class IssueRequest(BaseModel):
    recipient: Optional[str] = Field(default=None, description="Badge owner; defaults to user_id")


class CertificateResponse(BaseModel):
    certificate: Certificate
    recipient: str
    minted: bool
    token_id: Optional[int] = None
    minted_at: Optional[int] = None
    last_error: Optional[str] = None


def _to_certificate_response(record: CertificateRecord) -> CertificateResponse:
    return CertificateResponse(
        certificate=record.certificate,
        recipient=record.recipient,
        minted=record.minted,
        token_id=record.token_id,
        minted_at=record.minted_at,
        last_error=record.last_error,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────
@router.post("", response_model=CreateSessionResponse)
def create_session(req: CreateSessionRequest, engine: AssessmentEngine = Depends(get_engine)):
    """Create an assessment session with a randomized question set."""
    session, questions = engine.create_session(req.user_id, req.category)
    return CreateSessionResponse(
        session_id=session.session_id,
        category=session.category,
        state=session.state,
        created_at=session.created_at,
        expires_at=session.created_at + engine.sessions.ttl_seconds,
        questions=questions,
    )


@router.get("/{session_id}", response_model=SessionStatusResponse)
def get_session(session_id: str, engine: AssessmentEngine = Depends(get_engine)):
    """Return the session's lifecycle state and, once scored, its result."""
    session = engine.get_session(session_id)
    return SessionStatusResponse(
        session_id=session.session_id,
        user_id=session.user_id,
        category=session.category,
        state=session.state,
        created_at=session.created_at,
        expires_at=session.created_at + engine.sessions.ttl_seconds,
        question_count=session.question_count,
        rejection_reason=session.rejection_reason,
        score=session.score_result,
    )


@router.post("/{session_id}/answers", response_model=RecordAnswerResponse)
def record_answer(
    session_id: str,
    req: RecordAnswerRequest,
    engine: AssessmentEngine = Depends(get_engine),
):
    """Add answer time and switch counts for one question."""
    totals = engine.record_answer(
        session_id,
        req.question_index,
        QuestionTelemetry(
            answer_time_seconds=req.answer_time_seconds,
            switch_count=req.switch_count,
        ),
    )
    return RecordAnswerResponse(
        session_id=session_id,
        question_index=req.question_index,
        answer_time_seconds=totals.answer_time_seconds,
        switch_count=totals.switch_count,
    )


@router.post("/{session_id}/submit", response_model=SubmissionResult)
def submit_answers(
    session_id: str,
    req: SubmitRequest,
    engine: AssessmentEngine = Depends(get_engine),
):
    """Score encrypted answers. A session can be submitted once."""
    return engine.submit(session_id, req.ciphertexts, req.telemetry)


@router.post("/{session_id}/certificate", response_model=CertificateResponse)
async def issue_certificate(
    session_id: str,
    req: Optional[IssueRequest] = None,
    engine: AssessmentEngine = Depends(get_engine),
):
    """Issue the session's certificate and mint it; safe to call again."""
    recipient = req.recipient if req else None
    record = await engine.issue_certificate(session_id, recipient)
    logger.info(
        "Certificate %s for %s — token #%s",
        record.certificate.certificate_id, record.recipient, record.token_id,
    )
    return _to_certificate_response(record)


@router.get("/{session_id}/certificate", response_model=CertificateResponse)
def get_certificate(session_id: str, engine: AssessmentEngine = Depends(get_engine)):
    """Fetch the certificate issued for a session."""
    record = engine.get_certificate(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No certificate issued for this session")
    return _to_certificate_response(record)
