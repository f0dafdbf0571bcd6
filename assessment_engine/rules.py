"""
Assessment Engine — Scoring Rules & Thresholds
================================================

Default thresholds for scoring, anti-cheating triage and session lifetime.
All weights, thresholds and level bands are defined here.
No magic numbers elsewhere; backend/config.py may override them from .env.
"""

from __future__ import annotations

import math

# ─────────────────────────────────────────────────────────────────────────────
# Session Lifecycle
# ─────────────────────────────────────────────────────────────────────────────
SESSION_TTL_SECONDS = 1800          # unsubmitted sessions expire after 30 min
SESSION_RETENTION_SECONDS = 86400   # terminal sessions kept for a day
SESSION_TOKEN_BYTES = 32            # entropy of the session token
DEFAULT_QUESTION_COUNT = 3


# ─────────────────────────────────────────────────────────────────────────────
# Scoring
# ─────────────────────────────────────────────────────────────────────────────
PASS_FRACTION = 0.5                 # pass iff correct >= ceil(fraction * total)
MAX_LEVEL = 5
MIN_LEVEL = 1


# ─────────────────────────────────────────────────────────────────────────────
# Behavior Analysis
# ─────────────────────────────────────────────────────────────────────────────
class SuspicionWeights:
    """Additive contributions of each behavior heuristic."""

    UNIFORM_TIMING = 0.3        # time variance below the floor
    EXCESSIVE_SWITCHING = 0.4   # too many answer changes
    FAST_COMPLETION = 0.3       # whole quiz finished implausibly fast


VARIANCE_FLOOR = 1.0                    # seconds², below = bot-like timing
SWITCH_RATIO_LIMIT = 0.5                # switches per question
FAST_COMPLETION_RATIO = 0.3             # fraction of expected total time
EXPECTED_SECONDS_PER_QUESTION = 30
FLAG_THRESHOLD = 0.5


# ─────────────────────────────────────────────────────────────────────────────
# Derived Values
# ─────────────────────────────────────────────────────────────────────────────
def pass_mark(total_questions: int, fraction: float = PASS_FRACTION) -> int:
    """Minimum number of correct answers needed to pass."""
    # round() first so 0.7 * 10 does not become 8 through float noise
    return math.ceil(round(fraction * total_questions, 9))


def level_for(correct_count: int, total_questions: int) -> int:
    """Map a correct/total ratio onto levels 1–5 (round half up)."""
    if total_questions <= 0:
        return MIN_LEVEL
    raw = math.floor(correct_count / total_questions * MAX_LEVEL + 0.5)
    return max(MIN_LEVEL, min(MAX_LEVEL, raw))


def level_label(level: int) -> str:
    """Return human-readable level label."""
    if level >= 5:
        return "Expert"
    if level == 4:
        return "Advanced"
    if level == 3:
        return "Intermediate"
    if level == 2:
        return "Beginner"
    return "Novice"
