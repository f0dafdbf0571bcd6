"""
FHE Evaluator — Encryption Schemes
====================================

The evaluator only talks to an ``EncryptionScheme``; the concrete
primitive is swappable. The bundled scheme is Paillier (additively
homomorphic) over one-hot encoded answers:

    answer to a k-option question  →  k ciphertexts, E(1) at the chosen
                                       option and E(0) everywhere else

Each entry carries a proof that it encrypts 0 or 1 (see ``proofs``), so a
vector such as E(3), E(-2) cannot pass for a one-hot answer.

Wire format of one answer blob:
    k fixed-width big-endian integers, each ``width`` bytes long, where
    width = byte length of n² for the public key in use, followed by k
    bit proofs, one per entry and in the same order.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Sequence

from phe import paillier
from phe.paillier import EncryptedNumber, PaillierPrivateKey, PaillierPublicKey

from assessment_engine.errors import InvalidCiphertext
from assessment_engine.models import Ciphertext
from fhe_evaluator.proofs import decode_proof, encode_proof, proof_width, prove_bit, verify_bit

ONE_HOT_TAG = "paillier-onehot-v2"
SCORE_TAG = "paillier-sum-v1"


class EncryptionScheme(ABC):
    """Homomorphic operations the evaluator relies on."""

    answer_tag: str
    score_tag: str

    @abstractmethod
    def decode_answer(self, ct: Ciphertext, option_count: int) -> list[Any]:
        """Parse an answer blob into per-option encrypted values."""

    @abstractmethod
    def check_entries(self, ct: Ciphertext, vector: Sequence[Any]) -> None:
        """Raise ``InvalidCiphertext`` unless every entry provably encrypts 0 or 1."""

    @abstractmethod
    def dot(self, vector: Sequence[Any], weights: Sequence[int]) -> Any:
        """Encrypted inner product of an encrypted vector and plain weights."""

    @abstractmethod
    def add(self, values: Sequence[Any]) -> Any:
        """Homomorphic sum of encrypted values."""

    @abstractmethod
    def decrypt(self, value: Any) -> int:
        """Decrypt an aggregate. Never called on a single answer."""

    @abstractmethod
    def serialize(self, value: Any) -> Ciphertext:
        """Turn an encrypted value into a transportable score ciphertext."""

    @abstractmethod
    def public_key_info(self) -> dict[str, Any]:
        """What a client needs to encrypt its answers."""


# ─────────────────────────────────────────────────────────────────────────────
# Paillier
# ─────────────────────────────────────────────────────────────────────────────
def ciphertext_width(public_key: PaillierPublicKey) -> int:
    return (public_key.nsquare.bit_length() + 7) // 8


class PaillierScheme(EncryptionScheme):
    """Paillier scheme over one-hot answer vectors."""

    answer_tag = ONE_HOT_TAG
    score_tag = SCORE_TAG

    def __init__(
        self,
        public_key: PaillierPublicKey,
        private_key: PaillierPrivateKey | None = None,
    ) -> None:
        self.public_key = public_key
        self.private_key = private_key
        self.width = ciphertext_width(public_key)
        self.proof_width = proof_width(public_key)

    @classmethod
    def generate(cls, n_length: int = 2048) -> "PaillierScheme":
        public_key, private_key = paillier.generate_paillier_keypair(n_length=n_length)
        return cls(public_key, private_key)

    def _to_number(self, value: int) -> EncryptedNumber:
        pk = self.public_key
        if not 0 < value < pk.nsquare or math.gcd(value, pk.n) != 1:
            raise InvalidCiphertext("ciphertext integer outside the key's group")
        return EncryptedNumber(pk, value, 0)

    def _raw_answer(self, ct: Ciphertext, option_count: int) -> bytes:
        if ct.scheme != self.answer_tag:
            raise InvalidCiphertext(
                f"unsupported scheme '{ct.scheme}', expected '{self.answer_tag}'",
                scheme=ct.scheme,
            )
        try:
            raw = ct.to_bytes()
        except ValueError as exc:
            raise InvalidCiphertext(str(exc)) from exc

        expected = (self.width + self.proof_width) * option_count
        if len(raw) != expected:
            raise InvalidCiphertext(
                f"answer blob is {len(raw)} bytes, expected {expected}",
                received=len(raw),
                expected=expected,
            )
        return raw

    def decode_answer(self, ct: Ciphertext, option_count: int) -> list[EncryptedNumber]:
        raw = self._raw_answer(ct, option_count)
        return [
            self._to_number(int.from_bytes(raw[i : i + self.width], "big"))
            for i in range(0, self.width * option_count, self.width)
        ]

    def check_entries(self, ct: Ciphertext, vector: Sequence[EncryptedNumber]) -> None:
        raw = self._raw_answer(ct, len(vector))
        offset = self.width * len(vector)
        for j, enc in enumerate(vector):
            start = offset + j * self.proof_width
            proof = decode_proof(self.public_key, raw[start : start + self.proof_width])
            if not verify_bit(self.public_key, enc.ciphertext(be_secure=False), proof):
                raise InvalidCiphertext(
                    f"option {j} does not carry a valid 0/1 proof",
                    option_index=j,
                )

    def dot(self, vector: Sequence[EncryptedNumber], weights: Sequence[int]) -> EncryptedNumber:
        total = self.public_key.encrypt(0)
        for enc, w in zip(vector, weights):
            if w == 1:
                total = total + enc
            elif w:
                total = total + enc * w
        return total

    def add(self, values: Sequence[EncryptedNumber]) -> EncryptedNumber:
        total = self.public_key.encrypt(0)
        for enc in values:
            total = total + enc
        return total

    def decrypt(self, value: EncryptedNumber) -> int:
        if self.private_key is None:
            raise RuntimeError("this scheme instance holds no private key")
        return int(self.private_key.decrypt(value))

    def serialize(self, value: EncryptedNumber) -> Ciphertext:
        raw = value.ciphertext(be_secure=True).to_bytes(self.width, "big")
        return Ciphertext.from_bytes(self.score_tag, raw)

    def public_key_info(self) -> dict[str, Any]:
        return {
            "scheme": self.answer_tag,
            "n": str(self.public_key.n),
            "ciphertext_width": self.width,
            "proof_width": self.proof_width,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Client-side encryption
# ─────────────────────────────────────────────────────────────────────────────
class AnswerEncryptor:
    """Encrypts chosen option indices with only the public key.

    Usage:
        enc = AnswerEncryptor.from_public_info({"n": "..."})
        blobs = enc.encrypt_answers([0, 2, 1], option_counts=[3, 4, 3])
    """

    def __init__(self, public_key: PaillierPublicKey) -> None:
        self.public_key = public_key
        self.width = ciphertext_width(public_key)

    @classmethod
    def from_public_info(cls, info: dict[str, Any]) -> "AnswerEncryptor":
        return cls(PaillierPublicKey(int(info["n"])))

    def encrypt_bits(self, bits: Sequence[int]) -> Ciphertext:
        """Encrypt a 0/1 vector entry by entry, each with its bit proof."""
        pk = self.public_key
        values: list[bytes] = []
        proofs: list[bytes] = []
        for bit in bits:
            if bit not in (0, 1):
                raise ValueError(f"entries must be 0 or 1, got {bit}")
            r = pk.get_random_lt_n()
            while math.gcd(r, pk.n) != 1:
                r = pk.get_random_lt_n()
            c = pk.raw_encrypt(bit, r_value=r)
            values.append(c.to_bytes(self.width, "big"))
            proofs.append(encode_proof(pk, prove_bit(pk, c, bit, r)))
        return Ciphertext.from_bytes(ONE_HOT_TAG, b"".join(values) + b"".join(proofs))

    def encrypt_choice(self, choice: int, option_count: int) -> Ciphertext:
        if not 0 <= choice < option_count:
            raise ValueError(f"choice {choice} out of range for {option_count} options")
        return self.encrypt_bits([1 if i == choice else 0 for i in range(option_count)])

    def encrypt_answers(
        self,
        choices: Sequence[int],
        option_counts: Sequence[int],
    ) -> list[Ciphertext]:
        if len(choices) != len(option_counts):
            raise ValueError("one choice per question is required")
        return [self.encrypt_choice(c, k) for c, k in zip(choices, option_counts)]
