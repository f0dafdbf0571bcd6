"""Error taxonomy for the assessment pipeline.

Every error carries a stable ``code`` so clients can tell "you did something
invalid" from "try again later" from "the chain rejected this".
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UNKNOWN_CATEGORY = "unknown_category"
    SESSION_NOT_FOUND = "session_not_found"
    INVALID_STATE = "invalid_state"
    ALREADY_SUBMITTED = "already_submitted"
    ANSWER_COUNT_MISMATCH = "answer_count_mismatch"
    INVALID_TELEMETRY = "invalid_telemetry"
    QUESTION_OUT_OF_RANGE = "question_out_of_range"
    INVALID_CIPHERTEXT = "invalid_ciphertext"
    NOT_ELIGIBLE = "not_eligible"
    SESSION_EXPIRED = "session_expired"
    MINT_FAILED = "mint_failed"
    LEDGER_TIMEOUT = "ledger_timeout"


class AssessmentError(Exception):
    """Base exception for all assessment pipeline errors."""

    kind: ErrorKind
    status_code = 400
    retryable = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def code(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "detail": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class UnknownCategory(AssessmentError):
    """Requested quiz category does not exist."""
    kind = ErrorKind.UNKNOWN_CATEGORY
    status_code = 404


class SessionNotFound(AssessmentError):
    """No session with this id (never existed or already evicted)."""
    kind = ErrorKind.SESSION_NOT_FOUND
    status_code = 404


class InvalidState(AssessmentError):
    """Operation not allowed in the session's current lifecycle stage."""
    kind = ErrorKind.INVALID_STATE
    status_code = 409


class AlreadySubmitted(AssessmentError):
    """Answers for this session were already submitted."""
    kind = ErrorKind.ALREADY_SUBMITTED
    status_code = 409


class AnswerCountMismatch(AssessmentError):
    """Number of answers differs from the number of questions."""
    kind = ErrorKind.ANSWER_COUNT_MISMATCH
    status_code = 422


class InvalidTelemetry(AssessmentError):
    """Telemetry is malformed or inconsistent with what was recorded."""
    kind = ErrorKind.INVALID_TELEMETRY
    status_code = 422


class QuestionOutOfRange(AssessmentError):
    """Question index outside the session's question set."""
    kind = ErrorKind.QUESTION_OUT_OF_RANGE
    status_code = 422


class InvalidCiphertext(AssessmentError):
    """Ciphertext has the wrong scheme, the wrong length or bad content."""
    kind = ErrorKind.INVALID_CIPHERTEXT
    status_code = 422


class NotEligible(AssessmentError):
    """Session does not meet the preconditions for a certificate."""
    kind = ErrorKind.NOT_ELIGIBLE
    status_code = 403


class SessionExpired(AssessmentError):
    """Session passed its TTL before submission."""
    kind = ErrorKind.SESSION_EXPIRED
    status_code = 410


class MintFailed(AssessmentError):
    """The ledger rejected the mint (revert, funds, duplicate, gas)."""
    kind = ErrorKind.MINT_FAILED
    status_code = 502


class LedgerTimeout(AssessmentError):
    """The ledger did not answer in time. Safe to retry later."""
    kind = ErrorKind.LEDGER_TIMEOUT
    status_code = 503
    retryable = True
