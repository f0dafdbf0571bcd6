"""
Assessment Engine — Data Models
================================

Shared Pydantic models for sessions, telemetry, scoring and certificates.
These models define the data layer between the session manager, the
encrypted evaluator, the behavior analyzer and the certificate issuer.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import random
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────
class SessionState(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    SCORED = "scored"
    CERTIFIED = "certified"
    REJECTED = "rejected"


TERMINAL_STATES = frozenset({SessionState.CERTIFIED, SessionState.REJECTED})


# ─────────────────────────────────────────────────────────────────────────────
# Question Models
# ─────────────────────────────────────────────────────────────────────────────
class QuestionTemplate(BaseModel):
    """A single multiple-choice question. Immutable once loaded."""
    model_config = ConfigDict(frozen=True)

    id: str
    category: str
    prompt: str
    options: tuple[str, ...]
    correct_index: int = Field(ge=0)
    difficulty: float = Field(ge=0.0, le=1.0, default=0.5)
    expected_answer_seconds: int = Field(gt=0, default=30)

    @model_validator(mode="after")
    def _check_options(self) -> "QuestionTemplate":
        if len(self.options) < 2:
            raise ValueError(f"question {self.id} needs at least two options")
        if len(set(self.options)) != len(self.options):
            raise ValueError(f"question {self.id} has duplicate options")
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"question {self.id}: correct_index {self.correct_index} "
                f"out of range for {len(self.options)} options"
            )
        return self

    @property
    def option_count(self) -> int:
        return len(self.options)

    def shuffled(self, rng: random.Random) -> "QuestionTemplate":
        """Return a copy with options shuffled and correct_index remapped."""
        order = list(range(len(self.options)))
        rng.shuffle(order)
        options = tuple(self.options[i] for i in order)
        return self.model_copy(update={
            "options": options,
            "correct_index": order.index(self.correct_index),
        })

    def public_view(self) -> "QuestionView":
        return QuestionView(
            id=self.id,
            prompt=self.prompt,
            options=list(self.options),
            difficulty=self.difficulty,
            expected_answer_seconds=self.expected_answer_seconds,
        )


class QuestionView(BaseModel):
    """What a client is allowed to see of a question (no answer key)."""
    id: str
    prompt: str
    options: list[str]
    difficulty: float
    expected_answer_seconds: int


class CategoryInfo(BaseModel):
    """Public description of a quiz category."""
    category: str
    title: str
    question_count: int
    pool_size: int
    pass_fraction: float


# ─────────────────────────────────────────────────────────────────────────────
# Telemetry Models
# ─────────────────────────────────────────────────────────────────────────────
class QuestionTelemetry(BaseModel):
    """Timing and interaction data for one question."""
    answer_time_seconds: float = Field(ge=0.0, default=0.0)
    switch_count: int = Field(ge=0, default=0)


class AnswerTelemetry(BaseModel):
    """Behavior telemetry for a whole session, one entry per question."""
    per_question: list[QuestionTelemetry]
    session_start: Optional[float] = None
    session_end: Optional[float] = None

    @model_validator(mode="after")
    def _check_window(self) -> "AnswerTelemetry":
        if (
            self.session_start is not None
            and self.session_end is not None
            and self.session_end < self.session_start
        ):
            raise ValueError("session_end precedes session_start")
        return self

    @property
    def answer_times(self) -> list[float]:
        return [q.answer_time_seconds for q in self.per_question]

    @property
    def switch_counts(self) -> list[int]:
        return [q.switch_count for q in self.per_question]

    @property
    def question_count(self) -> int:
        return len(self.per_question)


# ─────────────────────────────────────────────────────────────────────────────
# Ciphertext
# ─────────────────────────────────────────────────────────────────────────────
class Ciphertext(BaseModel):
    """Opaque encrypted blob plus the tag of the scheme that produced it.

    ``data`` carries the raw bytes as standard base64 so the model can
    travel through JSON unchanged.
    """
    model_config = ConfigDict(frozen=True)

    scheme: str
    data: str

    @classmethod
    def from_bytes(cls, scheme: str, raw: bytes) -> "Ciphertext":
        return cls(scheme=scheme, data=base64.b64encode(raw).decode("ascii"))

    def to_bytes(self) -> bytes:
        """Decode the blob. Raises ValueError on invalid base64."""
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"ciphertext data is not valid base64: {exc}") from exc

    def digest(self) -> str:
        """SHA-256 of the raw blob, used where only a fixed-size handle fits."""
        return hashlib.sha256(self.scheme.encode() + b":" + self.to_bytes()).hexdigest()


# ─────────────────────────────────────────────────────────────────────────────
# Behavior & Scoring Models
# ─────────────────────────────────────────────────────────────────────────────
class BehaviorFactor(BaseModel):
    """One heuristic of the behavior analyzer and whether it fired."""
    factor: str
    weight: float
    triggered: bool
    detail: str


class BehaviorReport(BaseModel):
    """Heuristic anti-cheating triage for one session.

    A high likelihood is a signal for review, not proof of cheating.
    """
    model_config = ConfigDict(frozen=True)

    cheating_likelihood: float = Field(ge=0.0, le=1.0)
    is_flagged: bool
    average_time: float
    time_variance: float
    time_consistency: float
    switch_frequency: float
    pattern_deviation: float
    total_time: float
    factors: list[BehaviorFactor] = []


class ScoreResult(BaseModel):
    """Outcome of scoring one session. Exactly one per session."""
    model_config = ConfigDict(frozen=True)

    correct_count: int = Field(ge=0)
    total_questions: int = Field(gt=0)
    level: int = Field(ge=1, le=5)
    encrypted_score: Ciphertext
    cheating_likelihood: float = Field(ge=0.0, le=1.0)
    is_flagged: bool
    passed: bool

    @property
    def eligible(self) -> bool:
        return self.passed and not self.is_flagged


class SubmissionResult(BaseModel):
    """What a client gets back after submitting its encrypted answers."""
    session_id: str
    state: SessionState
    score: ScoreResult
    behavior: BehaviorReport
    pass_mark: int
    level_label: str
    eligible_for_certificate: bool


# ─────────────────────────────────────────────────────────────────────────────
# Session
# ─────────────────────────────────────────────────────────────────────────────
class Session(BaseModel):
    """A quiz attempt. Owned and mutated only by the SessionManager."""
    session_id: str
    user_id: str
    category: str
    question_set: list[QuestionTemplate]
    created_at: float
    state: SessionState = SessionState.CREATED
    started_at: Optional[float] = None
    submitted_at: Optional[float] = None
    finished_at: Optional[float] = None
    telemetry: list[QuestionTelemetry] = []
    submitted_telemetry: Optional[AnswerTelemetry] = None
    ciphertext_answers: list[Ciphertext] = []
    score_result: Optional[ScoreResult] = None
    behavior: Optional[BehaviorReport] = None
    rejection_reason: Optional[str] = None

    @property
    def question_count(self) -> int:
        return len(self.question_set)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def public_questions(self) -> list[QuestionView]:
        return [q.public_view() for q in self.question_set]


# ─────────────────────────────────────────────────────────────────────────────
# Certificate & Ledger Models
# ─────────────────────────────────────────────────────────────────────────────
class Certificate(BaseModel):
    """Immutable record of a completed, eligible assessment."""
    model_config = ConfigDict(frozen=True)

    certificate_id: str
    session_id: str
    skill_type: str
    encrypted_score: Ciphertext
    level: int = Field(ge=1, le=5)
    cheating_likelihood: float = Field(ge=0.0, le=1.0)
    behavior_flagged: bool
    total_questions: int
    correct_answers: int
    issued_at: int


class CertificateRecord(BaseModel):
    """Issuer bookkeeping: the certificate and its minting status."""
    certificate: Certificate
    recipient: str
    token_id: Optional[int] = None
    minted_at: Optional[int] = None
    mint_attempts: int = 0
    last_error: Optional[str] = None

    @property
    def minted(self) -> bool:
        return self.token_id is not None


class BadgeRecord(BaseModel):
    """Payload handed to the ledger's ``mint`` capability.

    Maps to the TalentBadge contract's BadgeRecord struct:
        skill_type          → category of the assessment
        encrypted_score     → SHA-256 of the encrypted score ciphertext
        level               → uint8, 1–5
        certificate_id      → unique per certificate, reused ids revert
        cheating_likelihood → uint8 percentage, 0–100
        behavior_flagged    → bool
        total_questions     → uint64
        correct_answers     → uint64
    """
    model_config = ConfigDict(frozen=True)

    skill_type: str
    encrypted_score: str
    level: int = Field(ge=1, le=5)
    certificate_id: str
    cheating_likelihood: int = Field(ge=0, le=100)
    behavior_flagged: bool
    total_questions: int
    correct_answers: int
    recipient: str
    timestamp: int = 0

    @classmethod
    def from_certificate(cls, cert: Certificate, recipient: str) -> "BadgeRecord":
        return cls(
            skill_type=cert.skill_type,
            encrypted_score=cert.encrypted_score.digest(),
            level=cert.level,
            certificate_id=cert.certificate_id,
            cheating_likelihood=int(round(cert.cheating_likelihood * 100)),
            behavior_flagged=cert.behavior_flagged,
            total_questions=cert.total_questions,
            correct_answers=cert.correct_answers,
            recipient=recipient,
            timestamp=cert.issued_at,
        )


class BadgeAttribute(BaseModel):
    trait_type: str
    value: Any
    display_type: Optional[str] = None


class BadgeMetadata(BaseModel):
    """NFT-style metadata describing a minted badge."""
    token_id: int
    name: str
    description: str
    image: str = ""
    attributes: list[BadgeAttribute] = []
