"""
Assessment Engine — Session Manager
=====================================

Owns every quiz session and applies lifecycle transitions:

    created → in_progress → submitted → scored → {certified | rejected}

Each transition runs under a per-session lock, so a session is never
submitted or scored twice concurrently. Sessions that are not submitted
within the TTL are moved to ``rejected`` lazily on next access or by
``sweep()``; terminal sessions are evicted after the retention period.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from assessment_engine.errors import (
    AlreadySubmitted,
    AnswerCountMismatch,
    InvalidState,
    InvalidTelemetry,
    QuestionOutOfRange,
    SessionExpired,
    SessionNotFound,
)
from assessment_engine.models import (
    AnswerTelemetry,
    BehaviorReport,
    Ciphertext,
    QuestionTelemetry,
    QuestionView,
    ScoreResult,
    Session,
    SessionState,
)
from assessment_engine.question_bank import QuestionBank
from assessment_engine.rules import (
    SESSION_RETENTION_SECONDS,
    SESSION_TOKEN_BYTES,
    SESSION_TTL_SECONDS,
)

logger = logging.getLogger("assessment_engine.sessions")

EXPIRED = "expired"

AnswerValidator = Callable[[Session, list[Ciphertext], AnswerTelemetry], None]


def _short(session_id: str) -> str:
    return session_id[:8] + "…"


class SessionManager:
    """In-memory, thread-safe session store with lifecycle transitions."""

    def __init__(
        self,
        bank: QuestionBank,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        retention_seconds: float = SESSION_RETENTION_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.bank = bank
        self.ttl_seconds = ttl_seconds
        self.retention_seconds = retention_seconds
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    # ── Internals ─────────────────────────────────────────────────────
    @contextmanager
    def _locked(self, session_id: str) -> Iterator[Session]:
        with self._guard:
            session = self._sessions.get(session_id)
            lock = self._locks.get(session_id)
        if session is None or lock is None:
            raise SessionNotFound(f"Session not found: {_short(session_id)}")
        with lock:
            self._expire_if_due(session, self._clock())
            yield session

    def _expire_if_due(self, session: Session, now: float) -> bool:
        if session.state not in (SessionState.CREATED, SessionState.IN_PROGRESS):
            return False
        if now - session.created_at < self.ttl_seconds:
            return False
        session.state = SessionState.REJECTED
        session.rejection_reason = EXPIRED
        session.finished_at = now
        logger.info("Session %s expired unsubmitted", _short(session.session_id))
        return True

    @staticmethod
    def _raise_if_expired(session: Session) -> None:
        if session.state == SessionState.REJECTED and session.rejection_reason == EXPIRED:
            raise SessionExpired(
                f"Session {_short(session.session_id)} expired before submission"
            )

    # ── Lifecycle ─────────────────────────────────────────────────────
    def create_session(self, user_id: str, category: str) -> Session:
        """Create a session with a freshly sampled question set."""
        questions = self.bank.sample(category)
        now = self._clock()

        with self._guard:
            session_id = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
            while session_id in self._sessions:
                session_id = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
            session = Session(
                session_id=session_id,
                user_id=user_id,
                category=category,
                question_set=questions,
                created_at=now,
            )
            self._sessions[session_id] = session
            self._locks[session_id] = threading.Lock()

        logger.info(
            "Created session %s — user: %s — category: %s — %d questions",
            _short(session_id), user_id, category, len(questions),
        )
        return session.model_copy(deep=True)

    def start(self, session_id: str) -> list[QuestionView]:
        """Hand out the questions and move ``created → in_progress``."""
        with self._locked(session_id) as session:
            self._raise_if_expired(session)
            if session.state == SessionState.CREATED:
                session.state = SessionState.IN_PROGRESS
                session.started_at = self._clock()
                session.telemetry = [QuestionTelemetry() for _ in session.question_set]
            elif session.state != SessionState.IN_PROGRESS:
                raise InvalidState(
                    f"Cannot start a session in state '{session.state.value}'",
                    state=session.state.value,
                )
            return session.public_questions()

    def record_answer(
        self,
        session_id: str,
        question_index: int,
        delta: QuestionTelemetry,
    ) -> QuestionTelemetry:
        """Accumulate time and answer switches for one question."""
        with self._locked(session_id) as session:
            self._raise_if_expired(session)
            if session.state != SessionState.IN_PROGRESS:
                raise InvalidState(
                    f"Cannot record answers in state '{session.state.value}'",
                    state=session.state.value,
                )
            if not 0 <= question_index < session.question_count:
                raise QuestionOutOfRange(
                    f"Question index {question_index} out of range "
                    f"(0–{session.question_count - 1})",
                    question_index=question_index,
                    question_count=session.question_count,
                )
            current = session.telemetry[question_index]
            updated = QuestionTelemetry(
                answer_time_seconds=current.answer_time_seconds + delta.answer_time_seconds,
                switch_count=current.switch_count + delta.switch_count,
            )
            session.telemetry[question_index] = updated
            return updated.model_copy()

    def submit(
        self,
        session_id: str,
        ciphertext_answers: list[Ciphertext],
        telemetry: Optional[AnswerTelemetry] = None,
        validate: Optional[AnswerValidator] = None,
    ) -> Session:
        """Accept the encrypted answers, at most once per session.

        ``validate`` runs under the session lock before the transition and
        receives the reconciled telemetry; if it raises, the session stays
        ``in_progress`` and nothing is stored.
        """
        with self._locked(session_id) as session:
            self._raise_if_expired(session)
            if session.submitted_at is not None:
                raise AlreadySubmitted(
                    f"Session {_short(session_id)} was already submitted",
                    state=session.state.value,
                )
            if session.state != SessionState.IN_PROGRESS:
                raise InvalidState(
                    f"Cannot submit a session in state '{session.state.value}'",
                    state=session.state.value,
                )

            expected = session.question_count
            if len(ciphertext_answers) != expected:
                raise AnswerCountMismatch(
                    f"Expected {expected} answers, received {len(ciphertext_answers)}",
                    expected=expected,
                    received=len(ciphertext_answers),
                )

            now = self._clock()
            telemetry = self._reconcile_telemetry(session, telemetry, now)

            if validate is not None:
                validate(session, ciphertext_answers, telemetry)

            session.state = SessionState.SUBMITTED
            session.submitted_at = now
            session.ciphertext_answers = list(ciphertext_answers)
            session.submitted_telemetry = telemetry

            logger.info("Session %s submitted", _short(session_id))
            return session.model_copy(deep=True)

    def _reconcile_telemetry(
        self,
        session: Session,
        telemetry: Optional[AnswerTelemetry],
        now: float,
    ) -> AnswerTelemetry:
        if telemetry is None:
            return AnswerTelemetry(
                per_question=[t.model_copy() for t in session.telemetry],
                session_start=session.started_at,
                session_end=now,
            )
        if telemetry.question_count != session.question_count:
            raise InvalidTelemetry(
                f"Telemetry covers {telemetry.question_count} questions, "
                f"session has {session.question_count}",
                expected=session.question_count,
                received=telemetry.question_count,
            )
        for i, (sent, recorded) in enumerate(zip(telemetry.per_question, session.telemetry)):
            if sent.switch_count < recorded.switch_count:
                raise InvalidTelemetry(
                    f"Question {i}: switch count went down from "
                    f"{recorded.switch_count} to {sent.switch_count}",
                    question_index=i,
                )
        return telemetry

    def record_score(
        self,
        session_id: str,
        score: ScoreResult,
        behavior: BehaviorReport,
    ) -> Session:
        """Move ``submitted → scored``, then to ``rejected`` if ineligible."""
        with self._locked(session_id) as session:
            if session.state != SessionState.SUBMITTED or session.score_result is not None:
                raise InvalidState(
                    f"Cannot score a session in state '{session.state.value}'",
                    state=session.state.value,
                )
            session.score_result = score
            session.behavior = behavior
            session.state = SessionState.SCORED

            if not score.eligible:
                session.state = SessionState.REJECTED
                session.rejection_reason = "flagged" if score.is_flagged else "below_pass_mark"
                session.finished_at = self._clock()

            logger.info(
                "Session %s scored %d/%d — level %d — state: %s",
                _short(session_id), score.correct_count, score.total_questions,
                score.level, session.state.value,
            )
            return session.model_copy(deep=True)

    def mark_certified(self, session_id: str) -> Session:
        with self._locked(session_id) as session:
            if session.state != SessionState.SCORED:
                raise InvalidState(
                    f"Cannot certify a session in state '{session.state.value}'",
                    state=session.state.value,
                )
            session.state = SessionState.CERTIFIED
            session.finished_at = self._clock()
            return session.model_copy(deep=True)

    # ── Queries & Housekeeping ────────────────────────────────────────
    def get(self, session_id: str) -> Session:
        """Return a snapshot of the session (expiry applied)."""
        with self._locked(session_id) as session:
            return session.model_copy(deep=True)

    def active_count(self) -> int:
        with self._guard:
            return sum(1 for s in self._sessions.values() if not s.is_terminal)

    def sweep(self) -> tuple[int, list[str]]:
        """Expire overdue sessions and evict old terminal ones.

        Returns the number expired and the ids evicted.
        """
        now = self._clock()
        with self._guard:
            entries = list(self._locks.items())

        expired = 0
        to_evict: list[str] = []
        for session_id, lock in entries:
            with lock:
                session = self._sessions.get(session_id)
                if session is None:
                    continue
                if self._expire_if_due(session, now):
                    expired += 1
                if (
                    session.is_terminal
                    and session.finished_at is not None
                    and now - session.finished_at >= self.retention_seconds
                ):
                    to_evict.append(session_id)

        if to_evict:
            with self._guard:
                for session_id in to_evict:
                    self._sessions.pop(session_id, None)
                    self._locks.pop(session_id, None)

        if expired or to_evict:
            logger.info("Sweep: %d expired, %d evicted", expired, len(to_evict))
        return expired, to_evict
