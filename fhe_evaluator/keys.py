"""
FHE Evaluator — Key Management
================================

Loads the evaluation authority's Paillier keypair from a JSON key file,
or generates a fresh one (optionally persisting it).

Key file layout:
    {"scheme": "paillier", "n": "<int>", "p": "<int>", "q": "<int>"}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from phe.paillier import PaillierPrivateKey, PaillierPublicKey

from fhe_evaluator.scheme import PaillierScheme

logger = logging.getLogger("fhe_evaluator.keys")

DEFAULT_KEY_BITS = 2048


def save_keypair(scheme: PaillierScheme, path: str | Path) -> None:
    """Write the keypair as JSON, readable by the owner only."""
    if scheme.private_key is None:
        raise ValueError("cannot save a scheme without its private key")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "scheme": "paillier",
        "n": str(scheme.public_key.n),
        "p": str(scheme.private_key.p),
        "q": str(scheme.private_key.q),
    }
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(payload, f)


def load_keypair(path: str | Path) -> PaillierScheme:
    data = json.loads(Path(path).read_text())
    if data.get("scheme") != "paillier":
        raise ValueError(f"unsupported key scheme in {path}: {data.get('scheme')!r}")
    public_key = PaillierPublicKey(int(data["n"]))
    private_key = PaillierPrivateKey(public_key, int(data["p"]), int(data["q"]))
    return PaillierScheme(public_key, private_key)


def load_or_generate(
    path: Optional[str | Path] = None,
    n_length: int = DEFAULT_KEY_BITS,
) -> PaillierScheme:
    """Load the keypair at ``path``; generate (and save) it if missing."""
    if path and Path(path).is_file():
        scheme = load_keypair(path)
        logger.info("Loaded Paillier keypair from %s", path)
        return scheme

    logger.info("Generating %d-bit Paillier keypair…", n_length)
    scheme = PaillierScheme.generate(n_length)
    if path:
        save_keypair(scheme, path)
        logger.info("Saved Paillier keypair to %s", path)
    return scheme
