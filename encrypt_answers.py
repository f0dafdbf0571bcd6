"""
ProofOfTalent — Encrypt Quiz Answers
======================================

Encrypts chosen option indices with the server's public key and prints
the JSON body for ``POST /session/{id}/submit``. With ``--submit`` the
payload is sent directly and the scoring result is printed instead.

Usage:
    python encrypt_answers.py --choices 2,0,1 --option-counts 4,4,3
    python encrypt_answers.py --choices 2,0,1 --option-counts 4,4,3 \\
        --times 12.5,20,9 --submit <session_id>
    python encrypt_answers.py --key-file public_key.json --choices 1 --option-counts 3
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import httpx

from assessment_engine.models import AnswerTelemetry, QuestionTelemetry
from fhe_evaluator.scheme import AnswerEncryptor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("encrypt_answers")

DEFAULT_API = "http://localhost:8000"
REQUEST_TIMEOUT = 30.0


def _int_list(value: str) -> list[int]:
    return [int(v) for v in value.split(",") if v.strip()]


def _float_list(value: str) -> list[float]:
    return [float(v) for v in value.split(",") if v.strip()]


def fetch_public_key(api: str) -> dict[str, Any]:
    response = httpx.get(f"{api}/public-key", timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    return response.json()


def build_payload(
    public_info: dict[str, Any],
    choices: list[int],
    option_counts: list[int],
    times: Optional[list[float]] = None,
    switches: Optional[list[int]] = None,
) -> dict[str, Any]:
    """Submit request body with encrypted answers and optional telemetry."""
    encryptor = AnswerEncryptor.from_public_info(public_info)
    payload: dict[str, Any] = {
        "ciphertexts": [
            ct.model_dump() for ct in encryptor.encrypt_answers(choices, option_counts)
        ],
    }
    if times is not None:
        switches = switches or [0] * len(times)
        if len(times) != len(choices) or len(switches) != len(choices):
            raise ValueError("telemetry needs one entry per question")
        telemetry = AnswerTelemetry(per_question=[
            QuestionTelemetry(answer_time_seconds=t, switch_count=s)
            for t, s in zip(times, switches)
        ])
        payload["telemetry"] = telemetry.model_dump(exclude_none=True)
    return payload


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────
def main() -> None:
    parser = argparse.ArgumentParser(
        prog="encrypt_answers",
        description="Encrypt quiz answers for submission",
    )
    parser.add_argument("--choices", type=_int_list, required=True,
                        help="Comma-separated chosen option index per question")
    parser.add_argument("--option-counts", type=_int_list, required=True,
                        help="Comma-separated number of options per question")
    parser.add_argument("--times", type=_float_list, default=None,
                        help="Comma-separated answer time in seconds per question")
    parser.add_argument("--switches", type=_int_list, default=None,
                        help="Comma-separated answer switch count per question")
    parser.add_argument("--api", type=str, default=DEFAULT_API,
                        help=f"Backend base URL (default: {DEFAULT_API})")
    parser.add_argument("--key-file", type=str, default=None,
                        help="Read the public key JSON from a file instead of the API")
    parser.add_argument("--submit", metavar="SESSION_ID", default=None,
                        help="POST the payload to this session and print the result")
    parser.add_argument("--output", "-o", type=str, default=None,
                        help="Write JSON output to file instead of stdout")

    args = parser.parse_args()

    try:
        if args.key_file:
            public_info = json.loads(Path(args.key_file).read_text(encoding="utf-8"))
        else:
            public_info = fetch_public_key(args.api)

        payload = build_payload(
            public_info, args.choices, args.option_counts, args.times, args.switches,
        )
        logger.info("Encrypted %d answers", len(payload["ciphertexts"]))

        output: Any = payload
        if args.submit:
            response = httpx.post(
                f"{args.api}/session/{args.submit}/submit",
                json=payload,
                timeout=REQUEST_TIMEOUT,
            )
            output = response.json()
            if response.is_error:
                logger.error("Submit rejected (%d): %s", response.status_code, output)

        json_str = json.dumps(output, indent=2)
        if args.output:
            Path(args.output).write_text(json_str, encoding="utf-8")
            logger.info("Written payload to %s", args.output)
        else:
            print(json_str)

    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        logger.error("Fatal: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
