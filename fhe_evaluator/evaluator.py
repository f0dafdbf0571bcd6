"""
FHE Evaluator — Encrypted Answer Evaluation
=============================================

Scores encrypted answers without decrypting any single answer.

For every question the encrypted one-hot answer vector is multiplied with
the plaintext indicator of the correct option (an encrypted inner
product), yielding E(1) for a correct answer and E(0) otherwise. The
indicators are summed homomorphically into the encrypted score, and only
that aggregate is ever decrypted.

Checks performed before scoring (any failure aborts the whole session):
    • scheme tag and blob length of every answer
    • every integer lies in the key's ciphertext group
    • every entry carries a valid proof that it encrypts 0 or 1
    • every answer vector sums to E(1), i.e. exactly one option chosen

The last two together make the vector one-hot; the sum alone would accept
entries such as 3 and -2.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from assessment_engine.errors import AnswerCountMismatch, InvalidCiphertext
from assessment_engine.models import Ciphertext, QuestionTemplate
from fhe_evaluator.scheme import EncryptionScheme

logger = logging.getLogger("fhe_evaluator.evaluator")


class EncryptedEvaluator:
    """Encrypted scoring over a pluggable homomorphic scheme."""

    def __init__(self, scheme: EncryptionScheme) -> None:
        self.scheme = scheme

    def validate(
        self,
        question_set: Sequence[QuestionTemplate],
        ciphertext_answers: Sequence[Ciphertext],
    ) -> list[list[Any]]:
        """Decode and check every answer; return the encrypted vectors."""
        if len(ciphertext_answers) != len(question_set):
            raise AnswerCountMismatch(
                f"Expected {len(question_set)} answers, received {len(ciphertext_answers)}",
                expected=len(question_set),
                received=len(ciphertext_answers),
            )

        vectors: list[list[Any]] = []
        for i, (question, ct) in enumerate(zip(question_set, ciphertext_answers)):
            try:
                vector = self.scheme.decode_answer(ct, question.option_count)
                self.scheme.check_entries(ct, vector)
            except InvalidCiphertext as exc:
                exc.details.setdefault("question_index", i)
                raise
            # Reveals only that one option was picked, never which one.
            if self.scheme.decrypt(self.scheme.add(vector)) != 1:
                raise InvalidCiphertext(
                    f"Answer {i} is not a one-hot encoding",
                    question_index=i,
                )
            vectors.append(vector)
        return vectors

    def evaluate(
        self,
        question_set: Sequence[QuestionTemplate],
        ciphertext_answers: Sequence[Ciphertext],
    ) -> tuple[int, Ciphertext]:
        """Return (correct_count, encrypted_score) for a whole session."""
        vectors = self.validate(question_set, ciphertext_answers)

        indicators = []
        for question, vector in zip(question_set, vectors):
            key = [1 if j == question.correct_index else 0 for j in range(question.option_count)]
            indicators.append(self.scheme.dot(vector, key))

        encrypted_total = self.scheme.add(indicators)
        correct_count = self.scheme.decrypt(encrypted_total)
        if not 0 <= correct_count <= len(question_set):
            raise InvalidCiphertext(
                "Aggregate score out of range; answers were not well-formed",
            )

        logger.info(
            "Evaluated %d encrypted answers — %d correct",
            len(question_set), correct_count,
        )
        return correct_count, self.scheme.serialize(encrypted_total)
