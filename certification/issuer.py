"""
Certification — Certificate Issuer
====================================

Turns a scored, eligible session into a Certificate and mints it.

Guarantees:
    • At most one certificate per session; repeated calls return it.
    • A successful mint is never repeated.
    • Ledger calls are bounded by a timeout. Failures leave the certificate
      stored but unminted; the caller decides when to call ``issue`` again.
      A retry first asks the ledger whether the earlier attempt landed.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
import time
from typing import Callable, Iterable, Optional

from assessment_engine.errors import LedgerTimeout, MintFailed, NotEligible
from assessment_engine.models import (
    BadgeRecord,
    Certificate,
    CertificateRecord,
    ScoreResult,
    Session,
    SessionState,
)
from assessment_engine.session_manager import SessionManager
from certification.ledger import LedgerClient, LedgerError

logger = logging.getLogger("certification.issuer")

MINT_TIMEOUT_SECONDS = 30.0


class CertificateIssuer:
    """Issues certificates and hands them to the ledger."""

    def __init__(
        self,
        sessions: SessionManager,
        ledger: LedgerClient,
        mint_timeout: float = MINT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sessions = sessions
        self.ledger = ledger
        self.mint_timeout = mint_timeout
        self._clock = clock
        self._records: dict[str, CertificateRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = asyncio.Lock()
            return lock

    def get(self, session_id: str) -> Optional[CertificateRecord]:
        record = self._records.get(session_id)
        return record.model_copy(deep=True) if record else None

    async def issue(self, session_id: str, recipient: Optional[str] = None) -> CertificateRecord:
        """Issue (or return) the session's certificate and make sure it is minted."""
        if session_id not in self._records:
            # unknown ids raise here, before a lock is created for them
            self.sessions.get(session_id)

        async with self._lock_for(session_id):
            record = self._records.get(session_id)
            if record is None:
                session = self.sessions.get(session_id)
                score = self._check_eligible(session)
                certificate = self._build(session, score)
                self.sessions.mark_certified(session_id)
                record = CertificateRecord(
                    certificate=certificate,
                    recipient=recipient or session.user_id,
                )
                self._records[session_id] = record
                logger.info(
                    "Issued %s for session %s…",
                    certificate.certificate_id, session_id[:8],
                )

            if not record.minted:
                await self._mint(record)
            return record.model_copy(deep=True)

    def evict(self, session_ids: Iterable[str]) -> int:
        """Forget records and locks of sessions the session store evicted."""
        dropped = 0
        with self._guard:
            for session_id in session_ids:
                self._locks.pop(session_id, None)
                if self._records.pop(session_id, None) is not None:
                    dropped += 1
        if dropped:
            logger.info("Evicted %d certificate record(s)", dropped)
        return dropped

    # ── Internals ─────────────────────────────────────────────────────
    @staticmethod
    def _check_eligible(session: Session) -> ScoreResult:
        score = session.score_result
        if session.state != SessionState.SCORED or score is None:
            raise NotEligible(
                f"Session is '{session.state.value}', only scored sessions can be certified",
                state=session.state.value,
            )
        if score.is_flagged:
            raise NotEligible(
                "Session was flagged by behavior analysis",
                cheating_likelihood=score.cheating_likelihood,
            )
        if not score.passed:
            raise NotEligible(
                f"Score {score.correct_count}/{score.total_questions} is below the pass mark",
            )
        return score

    def _build(self, session: Session, score: ScoreResult) -> Certificate:
        return Certificate(
            certificate_id=f"CERT_{session.category.upper()}_{secrets.token_hex(8)}",
            session_id=session.session_id,
            skill_type=session.category,
            encrypted_score=score.encrypted_score,
            level=score.level,
            cheating_likelihood=score.cheating_likelihood,
            behavior_flagged=score.is_flagged,
            total_questions=score.total_questions,
            correct_answers=score.correct_count,
            issued_at=int(self._clock()),
        )

    async def _mint(self, record: CertificateRecord) -> None:
        cert_id = record.certificate.certificate_id
        badge = BadgeRecord.from_certificate(record.certificate, record.recipient)

        try:
            if record.mint_attempts:
                existing = await asyncio.wait_for(
                    asyncio.to_thread(self.ledger.find_token, cert_id),
                    timeout=self.mint_timeout,
                )
                if existing is not None:
                    self._mark_minted(record, existing)
                    return
            record.mint_attempts += 1
            token_id = await asyncio.wait_for(
                asyncio.to_thread(self.ledger.mint, badge),
                timeout=self.mint_timeout,
            )
        except asyncio.TimeoutError:
            record.last_error = f"ledger did not answer within {self.mint_timeout:g}s"
            logger.warning("Mint of %s timed out", cert_id)
            raise LedgerTimeout(
                f"Ledger timed out minting {cert_id}; retry later",
                certificate_id=cert_id,
            ) from None
        except LedgerError as exc:
            record.last_error = exc.reason
            logger.error("Mint of %s failed: %s", cert_id, exc.reason)
            raise MintFailed(
                f"Minting {cert_id} failed: {exc.reason}",
                certificate_id=cert_id,
                reason=exc.reason,
            ) from exc

        self._mark_minted(record, token_id)

    def _mark_minted(self, record: CertificateRecord, token_id: int) -> None:
        record.token_id = token_id
        record.minted_at = int(self._clock())
        record.last_error = None
        logger.info("Certificate %s minted as token #%d", record.certificate.certificate_id, token_id)
