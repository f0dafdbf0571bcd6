"""
Quiz Client — Progress Tracking
=================================

Client-side quiz state as an immutable value. Every transition returns a
new ``QuizProgress``; nothing is mutated in place.

    progress = begin([4, 4, 3], now=t0)
    progress = select_option(progress, 2)
    progress = advance(progress, now=t1)
    ...
    telemetry = to_telemetry(progress)

Switches are counted when a question that already has an answer gets a
different one. Answer time is measured from the moment a question is
shown until the client advances past it.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from assessment_engine.models import AnswerTelemetry, QuestionTelemetry


class QuizProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    option_counts: tuple[int, ...]
    current: int = 0
    selections: tuple[Optional[int], ...]
    switch_counts: tuple[int, ...]
    answer_times: tuple[float, ...]
    started_at: float
    question_shown_at: float
    finished_at: Optional[float] = None

    @property
    def question_count(self) -> int:
        return len(self.option_counts)

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    @property
    def choices(self) -> list[int]:
        """Selected option per question; only valid once finished."""
        if any(s is None for s in self.selections):
            raise ValueError("not every question has an answer")
        return [s for s in self.selections if s is not None]


def _replace(seq: tuple, index: int, value) -> tuple:
    return seq[:index] + (value,) + seq[index + 1:]


def begin(option_counts: Sequence[int], now: float) -> QuizProgress:
    if not option_counts:
        raise ValueError("a quiz needs at least one question")
    if any(c < 2 for c in option_counts):
        raise ValueError("every question needs at least two options")
    n = len(option_counts)
    return QuizProgress(
        option_counts=tuple(option_counts),
        selections=(None,) * n,
        switch_counts=(0,) * n,
        answer_times=(0.0,) * n,
        started_at=now,
        question_shown_at=now,
    )


def select_option(progress: QuizProgress, option: int) -> QuizProgress:
    """Answer the current question, counting a switch if it changes."""
    if progress.is_finished:
        raise ValueError("quiz already finished")
    i = progress.current
    if not 0 <= option < progress.option_counts[i]:
        raise ValueError(f"option {option} out of range for question {i}")

    previous = progress.selections[i]
    switches = progress.switch_counts
    if previous is not None and previous != option:
        switches = _replace(switches, i, switches[i] + 1)

    return progress.model_copy(update={
        "selections": _replace(progress.selections, i, option),
        "switch_counts": switches,
    })


def advance(progress: QuizProgress, now: float) -> QuizProgress:
    """Close the current question and show the next, or finish the quiz."""
    if progress.is_finished:
        raise ValueError("quiz already finished")
    i = progress.current
    if progress.selections[i] is None:
        raise ValueError(f"question {i} has no answer yet")

    spent = max(0.0, now - progress.question_shown_at)
    update: dict = {"answer_times": _replace(progress.answer_times, i, spent)}
    if i + 1 < progress.question_count:
        update.update(current=i + 1, question_shown_at=now)
    else:
        update["finished_at"] = now
    return progress.model_copy(update=update)


def to_telemetry(progress: QuizProgress) -> AnswerTelemetry:
    """Telemetry for the submit call of a finished quiz."""
    if not progress.is_finished:
        raise ValueError("quiz is not finished")
    return AnswerTelemetry(
        per_question=[
            QuestionTelemetry(answer_time_seconds=t, switch_count=s)
            for t, s in zip(progress.answer_times, progress.switch_counts)
        ],
        session_start=progress.started_at,
        session_end=progress.finished_at,
    )
