"""
Certification — Ledger Clients
================================

Single source of truth for talking to the badge ledger. Every caller goes
through the ``LedgerClient`` capability set:

    mint(record) → token_id
    find_token(certificate_id) → token_id | None
    get_badges(owner) → [token_id, …]
    get_record(token_id) → BadgeRecord
    get_metadata(token_id) → BadgeMetadata

``InMemoryLedger`` backs local development and tests; the Algorand
contract client lives in ``certification.algorand_ledger``.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from assessment_engine.models import BadgeAttribute, BadgeMetadata, BadgeRecord
from assessment_engine.rules import level_label

logger = logging.getLogger("certification.ledger")


class LedgerError(Exception):
    """The ledger rejected or failed a call; ``reason`` is the revert text."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TokenNotFound(LedgerError):
    """No badge with this token id."""


# ─────────────────────────────────────────────────────────────────────────────
# Metadata
# ─────────────────────────────────────────────────────────────────────────────
def build_metadata(token_id: int, record: BadgeRecord) -> BadgeMetadata:
    """NFT-style metadata for a minted badge."""
    skill = record.skill_type.title()
    return BadgeMetadata(
        token_id=token_id,
        name=f"ProofOfTalent {skill} Badge #{token_id}",
        description=(
            f"{level_label(record.level)} level in {skill}, scored privately "
            f"over encrypted answers ({record.correct_answers}/{record.total_questions} correct)."
        ),
        attributes=[
            BadgeAttribute(trait_type="Skill", value=record.skill_type),
            BadgeAttribute(trait_type="Level", value=record.level, display_type="number"),
            BadgeAttribute(trait_type="Certificate", value=record.certificate_id),
            BadgeAttribute(
                trait_type="Cheating Likelihood",
                value=record.cheating_likelihood,
                display_type="boost_percentage",
            ),
            BadgeAttribute(trait_type="Behavior Flagged", value=record.behavior_flagged),
            BadgeAttribute(trait_type="Total Questions", value=record.total_questions, display_type="number"),
            BadgeAttribute(trait_type="Correct Answers", value=record.correct_answers, display_type="number"),
            BadgeAttribute(trait_type="Encrypted Score", value=record.encrypted_score),
            BadgeAttribute(trait_type="Minted", value=record.timestamp, display_type="date"),
        ],
    )


# ─────────────────────────────────────────────────────────────────────────────
# Interface
# ─────────────────────────────────────────────────────────────────────────────
class LedgerClient(ABC):
    """Capability set of the badge ledger."""

    mint_fee: int = 0

    @abstractmethod
    def mint(self, record: BadgeRecord) -> int:
        """Mint a badge; raises LedgerError on any revert."""

    @abstractmethod
    def find_token(self, certificate_id: str) -> Optional[int]:
        """Token already minted for this certificate, if any."""

    @abstractmethod
    def get_badges(self, owner: str) -> list[int]:
        """Token ids held by ``owner``, oldest first."""

    @abstractmethod
    def get_record(self, token_id: int) -> BadgeRecord:
        """Stored record of a token; raises TokenNotFound."""

    def get_metadata(self, token_id: int) -> BadgeMetadata:
        return build_metadata(token_id, self.get_record(token_id))


# ─────────────────────────────────────────────────────────────────────────────
# In-memory ledger
# ─────────────────────────────────────────────────────────────────────────────
class InMemoryLedger(LedgerClient):
    """Process-local ledger with the same rules as the contract.

    Token ids start at 1; a certificate id can be minted only once.
    """

    def __init__(self, mint_fee: int = 0) -> None:
        self.mint_fee = mint_fee
        self._lock = threading.Lock()
        self._next_token = 1
        self._records: dict[int, BadgeRecord] = {}
        self._by_certificate: dict[str, int] = {}
        self._by_owner: dict[str, list[int]] = {}

    def mint(self, record: BadgeRecord) -> int:
        with self._lock:
            if record.certificate_id in self._by_certificate:
                raise LedgerError(f"certificate {record.certificate_id} already minted")
            token_id = self._next_token
            self._next_token += 1
            stored = record.model_copy(update={"timestamp": record.timestamp or int(time.time())})
            self._records[token_id] = stored
            self._by_certificate[record.certificate_id] = token_id
            self._by_owner.setdefault(record.recipient, []).append(token_id)

        logger.info("Minted badge #%d for %s (%s)", token_id, record.recipient, record.certificate_id)
        return token_id

    def find_token(self, certificate_id: str) -> Optional[int]:
        with self._lock:
            return self._by_certificate.get(certificate_id)

    def get_badges(self, owner: str) -> list[int]:
        with self._lock:
            return list(self._by_owner.get(owner, []))

    def get_record(self, token_id: int) -> BadgeRecord:
        with self._lock:
            record = self._records.get(token_id)
        if record is None:
            raise TokenNotFound(f"Token #{token_id} does not exist")
        return record
