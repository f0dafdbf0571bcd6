"""
Certification — Algorand Ledger Client
========================================

LedgerClient backed by the TalentBadge contract on Algorand
(see smart_contracts/talent_badge/contract.py).

Environment:
    ALGOD_SERVER, ALGOD_PORT, ALGOD_TOKEN  — node connection
    DEPLOYER_MNEMONIC                       — account that pays the mint fee
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import algokit_utils
from algokit_utils.models.transaction import SendParams
from algosdk import encoding

from assessment_engine.models import BadgeRecord
from certification.ledger import LedgerClient, LedgerError, TokenNotFound

logger = logging.getLogger("certification.algorand")

_RECORD_FIELDS = (
    "skill_type",
    "encrypted_score",
    "level",
    "certificate_id",
    "cheating_likelihood",
    "behavior_flagged",
    "total_questions",
    "correct_answers",
    "recipient",
    "timestamp",
)


def _send_params() -> SendParams:
    return SendParams(max_rounds_to_wait=1000, populate_app_call_resources=True)


def _record_from_abi(value: Any) -> BadgeRecord:
    """Decode a BadgeRecord struct returned as a dict or a tuple."""
    if isinstance(value, dict):
        data = dict(value)
        data.setdefault("recipient", data.pop("owner", ""))
    else:
        data = dict(zip(_RECORD_FIELDS, value))
    score = data["encrypted_score"]
    if isinstance(score, (bytes, bytearray, list, tuple)):
        data["encrypted_score"] = bytes(score).hex()
    return BadgeRecord(**data)


class AlgorandLedger(LedgerClient):
    """Calls the TalentBadge application through algokit-utils."""

    def __init__(
        self,
        app_id: int,
        app_spec_path: str | Path,
        mint_fee: int,
        sender_env: str = "DEPLOYER",
    ) -> None:
        self.mint_fee = mint_fee
        self.algorand = algokit_utils.AlgorandClient.from_environment()
        self.algorand.set_default_validity_window(1000)
        self.sender = self.algorand.account.from_environment(sender_env).address
        self.app = self.algorand.client.get_app_client_by_id(
            app_spec=Path(app_spec_path).read_text(),
            app_id=app_id,
            default_sender=self.sender,
        )
        logger.info("Algorand ledger initialized — app %d — sender: %s", app_id, self.sender)

    def _call(self, method: str, args: list[Any]) -> Any:
        try:
            result = self.app.send.call(
                algokit_utils.AppClientMethodCallParams(method=method, args=args),
                send_params=_send_params(),
            )
        except Exception as exc:
            raise LedgerError(f"{method} failed: {exc}") from exc
        return result

    def mint(self, record: BadgeRecord) -> int:
        if not encoding.is_valid_address(record.recipient):
            raise LedgerError(f"recipient {record.recipient!r} is not an Algorand address")
        payment = self.algorand.create_transaction.payment(
            algokit_utils.PaymentParams(
                sender=self.sender,
                receiver=self.app.app_address,
                amount=algokit_utils.AlgoAmount(micro_algo=self.mint_fee),
            )
        )
        result = self._call("mint_badge", [
            payment,
            record.skill_type,
            bytes.fromhex(record.encrypted_score),
            record.level,
            record.certificate_id,
            record.cheating_likelihood,
            record.behavior_flagged,
            record.total_questions,
            record.correct_answers,
            record.recipient,
        ])
        token_id = int(result.abi_return)
        tx_id = result.tx_ids[0] if result.tx_ids else "N/A"
        logger.info("Minted badge #%d — tx: %s", token_id, tx_id)
        return token_id

    def find_token(self, certificate_id: str) -> Optional[int]:
        token_id = int(self._call("find_token", [certificate_id]).abi_return or 0)
        return token_id or None

    def get_badges(self, owner: str) -> list[int]:
        value = self._call("get_user_badges", [owner]).abi_return or []
        return [int(t) for t in value]

    def get_record(self, token_id: int) -> BadgeRecord:
        try:
            value = self._call("get_badge", [token_id]).abi_return
        except LedgerError as exc:
            if "assert failed" in str(exc).lower():
                raise TokenNotFound(f"Token #{token_id} does not exist") from exc
            raise
        return _record_from_abi(value)
