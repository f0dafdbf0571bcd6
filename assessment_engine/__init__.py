"""Assessment Engine — Package."""

from assessment_engine.models import (
    AnswerTelemetry,
    Certificate,
    Ciphertext,
    QuestionTemplate,
    ScoreResult,
    Session,
    SessionState,
    SubmissionResult,
)

__all__ = [
    "AnswerTelemetry",
    "Certificate",
    "Ciphertext",
    "QuestionTemplate",
    "ScoreResult",
    "Session",
    "SessionState",
    "SubmissionResult",
]
