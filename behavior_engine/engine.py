"""
Behavior Engine — Anti-Cheating Triage
========================================

Computes a suspicion score from answer telemetry using fixed, additive
heuristics:

    • Uniform timing     — time variance below the floor       (+0.3)
    • Excessive switching — switches > 0.5 × question count     (+0.4)
    • Fast completion    — total time < 0.3 × N × expected time (+0.3)

The result is a triage signal for review, not proof of cheating or of
honest behavior. The analyzer holds no state and is safe to share.
"""

from __future__ import annotations

import logging

from assessment_engine.errors import InvalidTelemetry
from assessment_engine.models import AnswerTelemetry, BehaviorFactor, BehaviorReport
from assessment_engine.rules import (
    EXPECTED_SECONDS_PER_QUESTION,
    FAST_COMPLETION_RATIO,
    FLAG_THRESHOLD,
    SWITCH_RATIO_LIMIT,
    VARIANCE_FLOOR,
    SuspicionWeights,
)

logger = logging.getLogger("behavior_engine")


class BehaviorAnalyzer:
    """Scores answer telemetry for suspicious patterns."""

    def __init__(
        self,
        variance_floor: float = VARIANCE_FLOOR,
        flag_threshold: float = FLAG_THRESHOLD,
        expected_seconds_per_question: float = EXPECTED_SECONDS_PER_QUESTION,
    ) -> None:
        self.variance_floor = variance_floor
        self.flag_threshold = flag_threshold
        self.expected_seconds_per_question = expected_seconds_per_question

    def analyze(self, telemetry: AnswerTelemetry) -> BehaviorReport:
        """Build a BehaviorReport from per-question timing and switches."""
        n = telemetry.question_count
        if n == 0:
            raise InvalidTelemetry("Telemetry contains no questions")

        times = telemetry.answer_times
        switches = telemetry.switch_counts

        total_time = sum(times)
        avg_time = total_time / n
        variance = sum((t - avg_time) ** 2 for t in times) / n
        total_switches = sum(switches)

        # ── Heuristics ───────────────────────────────────────────────
        factors: list[BehaviorFactor] = []

        uniform = variance < self.variance_floor
        factors.append(BehaviorFactor(
            factor="uniform_timing",
            weight=SuspicionWeights.UNIFORM_TIMING,
            triggered=uniform,
            detail=f"Time variance {variance:.2f}s² (floor {self.variance_floor:.2f})",
        ))

        switch_limit = SWITCH_RATIO_LIMIT * n
        switching = total_switches > switch_limit
        factors.append(BehaviorFactor(
            factor="excessive_switching",
            weight=SuspicionWeights.EXCESSIVE_SWITCHING,
            triggered=switching,
            detail=f"{total_switches} answer changes (limit {switch_limit:g})",
        ))

        min_total = FAST_COMPLETION_RATIO * n * self.expected_seconds_per_question
        fast = total_time < min_total
        factors.append(BehaviorFactor(
            factor="fast_completion",
            weight=SuspicionWeights.FAST_COMPLETION,
            triggered=fast,
            detail=f"Completed in {total_time:.1f}s (minimum plausible {min_total:.1f}s)",
        ))

        suspicion = sum(f.weight for f in factors if f.triggered)
        likelihood = round(max(0.0, min(1.0, suspicion)), 4)
        flagged = likelihood >= self.flag_threshold

        # ── Summary metrics ──────────────────────────────────────────
        if n > 1 and avg_time > 0:
            deviation = (max(times) - min(times)) / avg_time
        else:
            deviation = 0.0

        report = BehaviorReport(
            cheating_likelihood=likelihood,
            is_flagged=flagged,
            average_time=round(avg_time, 4),
            time_variance=round(variance, 4),
            time_consistency=round(1.0 / (1.0 + variance), 4),
            switch_frequency=round(total_switches / n, 4),
            pattern_deviation=round(deviation, 4),
            total_time=round(total_time, 4),
            factors=factors,
        )

        logger.info(
            "Behavior: likelihood %.2f — flagged: %s — triggered: %s",
            likelihood, flagged,
            ", ".join(f.factor for f in factors if f.triggered) or "none",
        )
        return report
