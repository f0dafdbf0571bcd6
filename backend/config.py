"""
Backend — Shared Configuration
================================

Environment-driven settings, engine assembly and the shared engine accessor.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from assessment_engine import rules
from assessment_engine.engine import AssessmentEngine
from assessment_engine.question_bank import QuestionBank
from assessment_engine.session_manager import SessionManager
from behavior_engine.engine import BehaviorAnalyzer
from certification.issuer import MINT_TIMEOUT_SECONDS, CertificateIssuer
from certification.ledger import InMemoryLedger, LedgerClient
from fhe_evaluator.evaluator import EncryptedEvaluator
from fhe_evaluator.keys import DEFAULT_KEY_BITS, load_or_generate
from fhe_evaluator.scheme import EncryptionScheme

logger = logging.getLogger("backend.config")

# ─────────────────────────────────────────────────────────────────────────────
# Load .env
# ─────────────────────────────────────────────────────────────────────────────
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────
API_VERSION = "1.0.0"

SESSION_TTL_SECONDS = float(os.getenv("SESSION_TTL_SECONDS", rules.SESSION_TTL_SECONDS))
SESSION_RETENTION_SECONDS = float(
    os.getenv("SESSION_RETENTION_SECONDS", rules.SESSION_RETENTION_SECONDS)
)
SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", 60))

PASS_FRACTION = float(os.getenv("PASS_FRACTION", rules.PASS_FRACTION))
FLAG_THRESHOLD = float(os.getenv("FLAG_THRESHOLD", rules.FLAG_THRESHOLD))
VARIANCE_FLOOR = float(os.getenv("VARIANCE_FLOOR", rules.VARIANCE_FLOOR))
EXPECTED_SECONDS_PER_QUESTION = float(
    os.getenv("EXPECTED_SECONDS_PER_QUESTION", rules.EXPECTED_SECONDS_PER_QUESTION)
)

FHE_KEY_BITS = int(os.getenv("FHE_KEY_BITS", DEFAULT_KEY_BITS))
FHE_KEY_FILE = os.getenv("FHE_KEY_FILE") or None

LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "memory")
LEDGER_APP_ID = int(os.getenv("LEDGER_APP_ID") or 0)
LEDGER_APP_SPEC = os.getenv(
    "LEDGER_APP_SPEC",
    str(Path(__file__).resolve().parent.parent
        / "smart_contracts/artifacts/talent_badge/TalentBadge.arc56.json"),
)
MINT_FEE_MICROALGO = int(os.getenv("MINT_FEE_MICROALGO", 100_000))
MINT_TIMEOUT = float(os.getenv("MINT_TIMEOUT_SECONDS", MINT_TIMEOUT_SECONDS))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


# ─────────────────────────────────────────────────────────────────────────────
# Assembly
# ─────────────────────────────────────────────────────────────────────────────
def build_ledger() -> LedgerClient:
    """Ledger selected by LEDGER_BACKEND (memory | algorand)."""
    if LEDGER_BACKEND == "algorand":
        from certification.algorand_ledger import AlgorandLedger

        if not LEDGER_APP_ID:
            raise RuntimeError("LEDGER_APP_ID must be set for the algorand ledger")
        return AlgorandLedger(LEDGER_APP_ID, LEDGER_APP_SPEC, MINT_FEE_MICROALGO)
    if LEDGER_BACKEND != "memory":
        raise RuntimeError(f"Unknown LEDGER_BACKEND '{LEDGER_BACKEND}'")
    return InMemoryLedger(mint_fee=MINT_FEE_MICROALGO)


def build_engine(
    scheme: Optional[EncryptionScheme] = None,
    ledger: Optional[LedgerClient] = None,
    bank: Optional[QuestionBank] = None,
) -> AssessmentEngine:
    """Wire the pipeline from configuration; any part can be injected."""
    bank = bank or QuestionBank.default(default_pass_fraction=PASS_FRACTION)
    scheme = scheme or load_or_generate(FHE_KEY_FILE, FHE_KEY_BITS)
    ledger = ledger or build_ledger()

    sessions = SessionManager(
        bank,
        ttl_seconds=SESSION_TTL_SECONDS,
        retention_seconds=SESSION_RETENTION_SECONDS,
    )
    return AssessmentEngine(
        bank=bank,
        sessions=sessions,
        evaluator=EncryptedEvaluator(scheme),
        analyzer=BehaviorAnalyzer(
            variance_floor=VARIANCE_FLOOR,
            flag_threshold=FLAG_THRESHOLD,
            expected_seconds_per_question=EXPECTED_SECONDS_PER_QUESTION,
        ),
        issuer=CertificateIssuer(sessions, ledger, mint_timeout=MINT_TIMEOUT),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Singleton engine
# ─────────────────────────────────────────────────────────────────────────────
_engine: AssessmentEngine | None = None


def get_engine() -> AssessmentEngine:
    """Lazy-init the assessment engine."""
    global _engine

    if _engine is None:
        _engine = build_engine()
        logger.info(
            "Assessment engine initialized — ledger: %s — %d categories",
            LEDGER_BACKEND, len(_engine.categories()),
        )

    return _engine
