"""Shared fixtures for the assessment pipeline tests."""

from __future__ import annotations

import random
import threading

import pytest

from assessment_engine.catalog import CategoryConfig
from assessment_engine.engine import AssessmentEngine
from assessment_engine.models import (
    AnswerTelemetry,
    BadgeRecord,
    Ciphertext,
    QuestionTelemetry,
    QuestionTemplate,
)
from assessment_engine.question_bank import QuestionBank
from assessment_engine.session_manager import SessionManager
from behavior_engine.engine import BehaviorAnalyzer
from certification.issuer import CertificateIssuer
from certification.ledger import InMemoryLedger, LedgerError
from fhe_evaluator.evaluator import EncryptedEvaluator
from fhe_evaluator.scheme import AnswerEncryptor, PaillierScheme

TEST_KEY_BITS = 512


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedLedger(InMemoryLedger):
    """InMemoryLedger that counts mints and can fail or stall on demand."""

    def __init__(self) -> None:
        super().__init__(mint_fee=100_000)
        self.mint_calls = 0
        self.find_calls = 0
        self.fail_with: str | None = None
        self.stall_seconds = 0.0
        self.land_while_stalled = False
        self.release = threading.Event()

    def mint(self, record: BadgeRecord) -> int:
        self.mint_calls += 1
        if self.fail_with:
            raise LedgerError(self.fail_with)
        if self.stall_seconds:
            token_id = super().mint(record) if self.land_while_stalled else None
            self.release.wait(self.stall_seconds)
            if token_id is not None:
                return token_id
        return super().mint(record)

    def find_token(self, certificate_id: str):
        self.find_calls += 1
        return super().find_token(certificate_id)


def _question(qid: str, category: str, options: tuple[str, ...], correct: int) -> QuestionTemplate:
    return QuestionTemplate(
        id=qid, category=category, prompt=f"Prompt {qid}",
        options=options, correct_index=correct,
    )


@pytest.fixture(scope="session")
def scheme() -> PaillierScheme:
    """Small keypair; generating 2048-bit keys per test is too slow."""
    return PaillierScheme.generate(TEST_KEY_BITS)


@pytest.fixture
def encryptor(scheme) -> AnswerEncryptor:
    return AnswerEncryptor.from_public_info(scheme.public_key_info())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bank() -> QuestionBank:
    """Two categories: a single-question ``fhe`` quiz and a 3-of-4 ``security`` quiz."""
    catalog = {
        "fhe": (
            CategoryConfig(category="fhe", title="FHE", question_count=1),
            [_question("fhe-1", "fhe", ("Add", "Sort", "Hash"), 0)],
        ),
        "security": (
            CategoryConfig(category="security", title="Security", question_count=3, pass_fraction=0.6),
            [
                _question(f"sec-{i}", "security", ("A", "B", "C", "D"), i % 4)
                for i in range(1, 5)
            ],
        ),
    }
    return QuestionBank(catalog, default_pass_fraction=0.5, rng=random.Random(7))


@pytest.fixture
def sessions(bank, clock) -> SessionManager:
    return SessionManager(bank, ttl_seconds=600, retention_seconds=3600, clock=clock)


@pytest.fixture
def ledger() -> ScriptedLedger:
    ledger = ScriptedLedger()
    yield ledger
    ledger.release.set()


@pytest.fixture
def issuer(sessions, ledger, clock) -> CertificateIssuer:
    return CertificateIssuer(sessions, ledger, mint_timeout=0.5, clock=clock)


@pytest.fixture
def engine(bank, sessions, scheme, issuer) -> AssessmentEngine:
    return AssessmentEngine(
        bank=bank,
        sessions=sessions,
        evaluator=EncryptedEvaluator(scheme),
        analyzer=BehaviorAnalyzer(),
        issuer=issuer,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
def answers_for(engine: AssessmentEngine, encryptor: AnswerEncryptor, session_id: str,
                correct: int | None = None) -> list[Ciphertext]:
    """Encrypt answers for a session; the first ``correct`` are right, the rest wrong."""
    questions = engine.sessions.get(session_id).question_set
    if correct is None:
        correct = len(questions)
    choices = [
        q.correct_index if i < correct else (q.correct_index + 1) % q.option_count
        for i, q in enumerate(questions)
    ]
    return encryptor.encrypt_answers(choices, [q.option_count for q in questions])


def natural_telemetry(times: list[float], switches: list[int] | None = None) -> AnswerTelemetry:
    switches = switches or [0] * len(times)
    return AnswerTelemetry(per_question=[
        QuestionTelemetry(answer_time_seconds=t, switch_count=s)
        for t, s in zip(times, switches)
    ])
