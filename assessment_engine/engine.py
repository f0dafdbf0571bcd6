"""
Assessment Engine — Pipeline Orchestrator
===========================================

Drives a session through the whole assessment pipeline:

    create → questions → record answers → submit
           → encrypted evaluation → behavior analysis → certificate

Design:
    • Components are injected; the engine owns no cryptography itself
    • Evaluation and behavior analysis run inside the submit transition,
      so a malformed ciphertext leaves the session untouched
    • Only aggregate results ever leave the evaluator
"""

from __future__ import annotations

import logging
from typing import Optional

from assessment_engine.models import (
    AnswerTelemetry,
    BehaviorReport,
    CategoryInfo,
    Ciphertext,
    CertificateRecord,
    QuestionTelemetry,
    QuestionView,
    ScoreResult,
    Session,
    SubmissionResult,
)
from assessment_engine.question_bank import QuestionBank
from assessment_engine.rules import level_for, level_label, pass_mark
from assessment_engine.session_manager import SessionManager
from behavior_engine.engine import BehaviorAnalyzer
from certification.issuer import CertificateIssuer
from fhe_evaluator.evaluator import EncryptedEvaluator

logger = logging.getLogger("assessment_engine.engine")


class AssessmentEngine:
    """Main assessment orchestrator.

    Usage:
        engine = AssessmentEngine(bank, sessions, evaluator, analyzer, issuer)
        session, questions = engine.create_session("alice", "security")
        result = engine.submit(session.session_id, ciphertexts, telemetry)
        record = await engine.issue_certificate(session.session_id)
    """

    def __init__(
        self,
        bank: QuestionBank,
        sessions: SessionManager,
        evaluator: EncryptedEvaluator,
        analyzer: BehaviorAnalyzer,
        issuer: CertificateIssuer,
    ) -> None:
        self.bank = bank
        self.sessions = sessions
        self.evaluator = evaluator
        self.analyzer = analyzer
        self.issuer = issuer

    # ── Catalog ───────────────────────────────────────────────────────
    def categories(self) -> list[CategoryInfo]:
        return self.bank.categories()

    # ── Session lifecycle ─────────────────────────────────────────────
    def create_session(self, user_id: str, category: str) -> tuple[Session, list[QuestionView]]:
        """Create a session and hand out its questions."""
        session = self.sessions.create_session(user_id, category)
        questions = self.sessions.start(session.session_id)
        return self.sessions.get(session.session_id), questions

    def get_session(self, session_id: str) -> Session:
        return self.sessions.get(session_id)

    def record_answer(
        self,
        session_id: str,
        question_index: int,
        delta: QuestionTelemetry,
    ) -> QuestionTelemetry:
        return self.sessions.record_answer(session_id, question_index, delta)

    def submit(
        self,
        session_id: str,
        ciphertext_answers: list[Ciphertext],
        telemetry: Optional[AnswerTelemetry] = None,
    ) -> SubmissionResult:
        """Score encrypted answers and triage behavior, exactly once.

        All scoring runs inside the submit transition; if any step raises,
        the session stays ``in_progress`` and can be submitted again.
        """
        outcome: dict[str, tuple[ScoreResult, BehaviorReport, int]] = {}

        def _evaluate(session: Session, answers: list[Ciphertext], reported: AnswerTelemetry) -> None:
            outcome["result"] = self._score(session, answers, reported)

        self.sessions.submit(session_id, ciphertext_answers, telemetry, validate=_evaluate)
        score, behavior, mark = outcome["result"]
        final = self.sessions.record_score(session_id, score, behavior)

        return SubmissionResult(
            session_id=session_id,
            state=final.state,
            score=score,
            behavior=behavior,
            pass_mark=mark,
            level_label=level_label(score.level),
            eligible_for_certificate=score.eligible,
        )

    def _score(
        self,
        session: Session,
        answers: list[Ciphertext],
        telemetry: AnswerTelemetry,
    ) -> tuple[ScoreResult, BehaviorReport, int]:
        correct_count, encrypted_score = self.evaluator.evaluate(session.question_set, answers)
        behavior = self.analyzer.analyze(telemetry)

        total = session.question_count
        mark = pass_mark(total, self.bank.pass_fraction(session.category))
        score = ScoreResult(
            correct_count=correct_count,
            total_questions=total,
            level=level_for(correct_count, total),
            encrypted_score=encrypted_score,
            cheating_likelihood=behavior.cheating_likelihood,
            is_flagged=behavior.is_flagged,
            passed=correct_count >= mark,
        )
        return score, behavior, mark

    # ── Certificates ──────────────────────────────────────────────────
    async def issue_certificate(
        self,
        session_id: str,
        recipient: Optional[str] = None,
    ) -> CertificateRecord:
        return await self.issuer.issue(session_id, recipient)

    def get_certificate(self, session_id: str) -> Optional[CertificateRecord]:
        return self.issuer.get(session_id)

    # ── Housekeeping ──────────────────────────────────────────────────
    def sweep(self) -> tuple[int, int]:
        """Expire and evict sessions, dropping their certificate records too.

        Returns (expired, evicted).
        """
        expired, evicted = self.sessions.sweep()
        self.issuer.evict(evicted)
        return expired, len(evicted)
