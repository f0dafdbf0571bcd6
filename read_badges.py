"""
ProofOfTalent — Read Badges
=============================

Lists the badges held by a wallet together with their metadata, read
from the ledger configured in .env (LEDGER_BACKEND, LEDGER_APP_ID).

Usage:
    python read_badges.py <wallet_address>
    python read_badges.py <wallet_address> --pretty
    python read_badges.py --token 7
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from backend.config import build_ledger
from certification.ledger import LedgerClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("read_badges")


def read_badges(ledger: LedgerClient, wallet: str) -> list[dict]:
    """Metadata of every badge owned by ``wallet``, oldest first."""
    token_ids = ledger.get_badges(wallet)
    logger.info("Found %d badges for %s", len(token_ids), wallet)
    return [ledger.get_metadata(t).model_dump() for t in token_ids]


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────
def main() -> None:
    parser = argparse.ArgumentParser(
        prog="read_badges",
        description="Read ProofOfTalent badges for a wallet",
    )
    parser.add_argument("wallet", type=str, nargs="?", default=None,
                        help="Algorand wallet address (58-char base32)")
    parser.add_argument("--token", type=int, default=None,
                        help="Show a single badge by token id")
    parser.add_argument("--pretty", action="store_true",
                        help="Pretty-print the JSON output")
    parser.add_argument("--output", "-o", type=str, default=None,
                        help="Write JSON output to file instead of stdout")

    args = parser.parse_args()
    if args.wallet is None and args.token is None:
        parser.error("a wallet address or --token is required")

    try:
        ledger = build_ledger()
        if args.token is not None:
            result: object = ledger.get_metadata(args.token).model_dump()
        else:
            result = read_badges(ledger, args.wallet)

        indent = 2 if args.pretty else None
        json_str = json.dumps(result, indent=indent, ensure_ascii=False)

        if args.output:
            Path(args.output).write_text(json_str, encoding="utf-8")
            logger.info("Written badges to %s", args.output)
        else:
            print(json_str)

    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        logger.error("Fatal: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
