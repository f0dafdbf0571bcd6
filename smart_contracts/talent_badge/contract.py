"""
ProofOfTalent — TalentBadge Smart Contract
============================================

Soulbound skill badges minted for certified assessments.

Architecture:
  • One Box per badge, keyed by token id, holding an ARC-4 BadgeRecord.
  • One Box per certificate id, pointing at its token; a certificate
    id can be minted once, reuse reverts.
  • One Box per owner with the list of token ids they hold.
  • Global state: next token id and the mint fee.

Only the application creator (the certificate issuer) may mint. Every
mint is grouped with a payment to the application covering the fee and
the Box MBR.
"""

from algopy import (
    ARC4Contract,
    BoxMap,
    Global,
    String,
    Txn,
    UInt64,
    arc4,
    gtxn,
)
from algopy.arc4 import abimethod

DEFAULT_MINT_FEE = 100_000
MAX_LEVEL = 5
MAX_LIKELIHOOD = 100


# ---------------------------------------------------------------------------
# ARC-4 Struct — BadgeRecord
# ---------------------------------------------------------------------------
class BadgeRecord(arc4.Struct, kw_only=True):
    """Immutable record behind a badge.

    Fields
    ------
    skill_type : arc4.String
        Assessment category (e.g. "security").
    encrypted_score : arc4.DynamicBytes
        SHA-256 of the encrypted score ciphertext.
    level : arc4.UInt8
        Skill level, 1–5.
    certificate_id : arc4.String
        Issuer certificate id, unique across the contract.
    cheating_likelihood : arc4.UInt8
        Behavior triage result as a percentage, 0–100.
    behavior_flagged : arc4.Bool
        Always false for minted badges; kept for auditability.
    total_questions : arc4.UInt64
    correct_answers : arc4.UInt64
    owner : arc4.Address
    timestamp : arc4.UInt64
        Block timestamp of the mint.
    """

    skill_type: arc4.String
    encrypted_score: arc4.DynamicBytes
    level: arc4.UInt8
    certificate_id: arc4.String
    cheating_likelihood: arc4.UInt8
    behavior_flagged: arc4.Bool
    total_questions: arc4.UInt64
    correct_answers: arc4.UInt64
    owner: arc4.Address
    timestamp: arc4.UInt64


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------
class TalentBadge(ARC4Contract):
    """Badge ledger for ProofOfTalent certificates.

    ABI Methods
    -----------
    mint_badge(payment, skill_type, encrypted_score, level, certificate_id,
               cheating_likelihood, behavior_flagged, total_questions,
               correct_answers, owner) → token_id
    find_token(certificate_id) → token_id (0 when absent)
    get_user_badges(owner) → [token_id, …]
    get_badge(token_id) → BadgeRecord
    get_mint_fee() → microAlgo
    set_mint_fee(fee)
    """

    def __init__(self) -> None:
        self.next_token_id = UInt64(1)
        self.mint_fee = UInt64(DEFAULT_MINT_FEE)
        self.badges = BoxMap(UInt64, BadgeRecord, key_prefix=b"b")
        self.certificates = BoxMap(String, UInt64, key_prefix=b"c")
        self.owned = BoxMap(arc4.Address, arc4.DynamicArray[arc4.UInt64], key_prefix=b"o")

    # ── Write ─────────────────────────────────────────────────────────
    @abimethod()
    def mint_badge(
        self,
        payment: gtxn.PaymentTransaction,
        skill_type: arc4.String,
        encrypted_score: arc4.DynamicBytes,
        level: arc4.UInt8,
        certificate_id: arc4.String,
        cheating_likelihood: arc4.UInt8,
        behavior_flagged: arc4.Bool,
        total_questions: arc4.UInt64,
        correct_answers: arc4.UInt64,
        owner: arc4.Address,
    ) -> UInt64:
        """Mint a badge for ``owner`` and return its token id."""
        assert Txn.sender == Global.creator_address, "only the issuer can mint"
        assert payment.receiver == Global.current_application_address, "fee must go to the app"
        assert payment.amount >= self.mint_fee, "mint fee not covered"

        assert level.native >= 1 and level.native <= MAX_LEVEL, "level out of range"
        assert cheating_likelihood.native <= MAX_LIKELIHOOD, "likelihood out of range"
        assert total_questions.native > 0, "no questions"
        assert correct_answers.native <= total_questions.native, "score exceeds questions"
        assert not behavior_flagged.native, "flagged sessions cannot be minted"

        cert_key = certificate_id.native
        assert cert_key not in self.certificates, "certificate already minted"

        token_id = self.next_token_id
        self.next_token_id = token_id + 1

        self.badges[token_id] = BadgeRecord(
            skill_type=skill_type,
            encrypted_score=encrypted_score.copy(),
            level=level,
            certificate_id=certificate_id,
            cheating_likelihood=cheating_likelihood,
            behavior_flagged=behavior_flagged,
            total_questions=total_questions,
            correct_answers=correct_answers,
            owner=owner,
            timestamp=arc4.UInt64(Global.latest_timestamp),
        )
        self.certificates[cert_key] = token_id

        if owner in self.owned:
            tokens = self.owned[owner].copy()
            tokens.append(arc4.UInt64(token_id))
            del self.owned[owner]
            self.owned[owner] = tokens.copy()
        else:
            self.owned[owner] = arc4.DynamicArray(arc4.UInt64(token_id))

        return token_id

    @abimethod()
    def set_mint_fee(self, fee: UInt64) -> None:
        assert Txn.sender == Global.creator_address, "only the issuer can change the fee"
        self.mint_fee = fee

    # ── Read ──────────────────────────────────────────────────────────
    @abimethod(readonly=True)
    def find_token(self, certificate_id: arc4.String) -> UInt64:
        """Token minted for a certificate id, or 0."""
        token_id, exists = self.certificates.maybe(certificate_id.native)
        if exists:
            return token_id
        return UInt64(0)

    @abimethod(readonly=True)
    def get_user_badges(self, owner: arc4.Address) -> arc4.DynamicArray[arc4.UInt64]:
        if owner in self.owned:
            return self.owned[owner].copy()
        return arc4.DynamicArray[arc4.UInt64]()

    @abimethod(readonly=True)
    def get_badge(self, token_id: UInt64) -> BadgeRecord:
        assert token_id in self.badges, "badge does not exist"
        return self.badges[token_id].copy()

    @abimethod(readonly=True)
    def get_mint_fee(self) -> UInt64:
        return self.mint_fee
