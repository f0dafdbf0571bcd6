"""
FHE Evaluator — Bit Proofs
============================

Non-interactive proof that a Paillier ciphertext encrypts 0 or 1, without
revealing which.

For c = (1 + n)^m · r^n mod n² the prover shows that one of

    u₀ = c            u₁ = c · (1 + n)⁻¹

is an n-th power modulo n². It runs the standard Σ-protocol for the branch
it knows (m) and simulates the other, then binds both with a Fiat–Shamir
challenge:

    e₀ + e₁ ≡ H(n, c, a₀, a₁)  (mod 2^CHALLENGE_BITS)
    z_k^n   ≡ a_k · u_k^e_k    (mod n²)   for k ∈ {0, 1}

Only (e₀, e₁, z₀, z₁) travel; the verifier recomputes a₀ and a₁.

Wire format of one proof:
    e₀ ‖ e₁ ‖ z₀ ‖ z₁ as big-endian integers, the challenges
    CHALLENGE_BYTES wide and the responses as wide as n.
"""

from __future__ import annotations

import hashlib
import math
import secrets
from typing import NamedTuple

from phe.paillier import PaillierPublicKey
from phe.util import invert, powmod

CHALLENGE_BITS = 128
CHALLENGE_BYTES = CHALLENGE_BITS // 8
_DOMAIN = b"proof-of-talent/paillier-bit/v1"


class BitProof(NamedTuple):
    e0: int
    e1: int
    z0: int
    z1: int


def modulus_width(public_key: PaillierPublicKey) -> int:
    return (public_key.n.bit_length() + 7) // 8


def proof_width(public_key: PaillierPublicKey) -> int:
    return 2 * CHALLENGE_BYTES + 2 * modulus_width(public_key)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
def _random_unit(n: int) -> int:
    while True:
        value = secrets.randbelow(n - 1) + 1
        if math.gcd(value, n) == 1:
            return value


def _branches(public_key: PaillierPublicKey, c: int) -> tuple[int, int]:
    """(u₀, u₁): the ciphertext with 0 resp. 1 removed from the plaintext."""
    n, nsq = public_key.n, public_key.nsquare
    # (1 + n)⁻¹ ≡ 1 - n (mod n²)
    return c % nsq, c * (nsq + 1 - n) % nsq


def _challenge(public_key: PaillierPublicKey, c: int, a0: int, a1: int) -> int:
    width = (public_key.nsquare.bit_length() + 7) // 8
    digest = hashlib.sha256(_DOMAIN)
    for value in (public_key.n, c, a0, a1):
        digest.update(value.to_bytes(width, "big"))
    return int.from_bytes(digest.digest()[:CHALLENGE_BYTES], "big")


def _commitment(public_key: PaillierPublicKey, u: int, e: int, z: int) -> int:
    """a = z^n · u^(-e) mod n²."""
    nsq = public_key.nsquare
    return powmod(z, public_key.n, nsq) * invert(powmod(u, e, nsq), nsq) % nsq


# ─────────────────────────────────────────────────────────────────────────────
# Prove / verify
# ─────────────────────────────────────────────────────────────────────────────
def prove_bit(public_key: PaillierPublicKey, c: int, bit: int, r: int) -> BitProof:
    """Prove that ``c`` encrypts ``bit`` ∈ {0, 1} under randomness ``r``."""
    if bit not in (0, 1):
        raise ValueError(f"bit must be 0 or 1, got {bit}")
    n, nsq = public_key.n, public_key.nsquare
    modulus = 1 << CHALLENGE_BITS
    u = _branches(public_key, c)
    fake = 1 - bit

    e = [0, 0]
    z = [0, 0]
    a = [0, 0]

    # simulated branch
    e[fake] = secrets.randbelow(modulus)
    z[fake] = _random_unit(n)
    a[fake] = _commitment(public_key, u[fake], e[fake], z[fake])

    # real branch
    rho = _random_unit(n)
    a[bit] = powmod(rho, n, nsq)

    challenge = _challenge(public_key, c, a[0], a[1])
    e[bit] = (challenge - e[fake]) % modulus
    z[bit] = rho * powmod(r, e[bit], n) % n
    return BitProof(e[0], e[1], z[0], z[1])


def verify_bit(public_key: PaillierPublicKey, c: int, proof: BitProof) -> bool:
    """True iff ``proof`` shows that ``c`` encrypts 0 or 1."""
    n = public_key.n
    modulus = 1 << CHALLENGE_BITS
    for e in (proof.e0, proof.e1):
        if not 0 <= e < modulus:
            return False
    for z in (proof.z0, proof.z1):
        if not 0 < z < n or math.gcd(z, n) != 1:
            return False
    if not 0 < c < public_key.nsquare or math.gcd(c, n) != 1:
        return False

    u0, u1 = _branches(public_key, c)
    a0 = _commitment(public_key, u0, proof.e0, proof.z0)
    a1 = _commitment(public_key, u1, proof.e1, proof.z1)
    return (proof.e0 + proof.e1) % modulus == _challenge(public_key, c, a0, a1)


# ─────────────────────────────────────────────────────────────────────────────
# Serialization
# ─────────────────────────────────────────────────────────────────────────────
def encode_proof(public_key: PaillierPublicKey, proof: BitProof) -> bytes:
    width = modulus_width(public_key)
    return (
        proof.e0.to_bytes(CHALLENGE_BYTES, "big")
        + proof.e1.to_bytes(CHALLENGE_BYTES, "big")
        + proof.z0.to_bytes(width, "big")
        + proof.z1.to_bytes(width, "big")
    )


def decode_proof(public_key: PaillierPublicKey, raw: bytes) -> BitProof:
    width = modulus_width(public_key)
    if len(raw) != proof_width(public_key):
        raise ValueError(f"proof is {len(raw)} bytes, expected {proof_width(public_key)}")
    e0 = int.from_bytes(raw[:CHALLENGE_BYTES], "big")
    e1 = int.from_bytes(raw[CHALLENGE_BYTES : 2 * CHALLENGE_BYTES], "big")
    offset = 2 * CHALLENGE_BYTES
    z0 = int.from_bytes(raw[offset : offset + width], "big")
    z1 = int.from_bytes(raw[offset + width :], "big")
    return BitProof(e0, e1, z0, z1)
