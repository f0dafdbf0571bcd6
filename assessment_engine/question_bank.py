"""
Assessment Engine — Question Bank
===================================

Holds the question pool of every category and draws randomized,
per-session question sets: sampling without replacement, then shuffling
each question's options so answer positions differ between sessions.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from assessment_engine.catalog import CategoryConfig, build_catalog
from assessment_engine.errors import UnknownCategory
from assessment_engine.models import CategoryInfo, QuestionTemplate
from assessment_engine.rules import PASS_FRACTION

logger = logging.getLogger("assessment_engine.question_bank")


class QuestionBank:
    """Read-only question pools keyed by category.

    Usage:
        bank = QuestionBank.default()
        questions = bank.sample("security")
    """

    def __init__(
        self,
        catalog: dict[str, tuple[CategoryConfig, list[QuestionTemplate]]],
        default_pass_fraction: float = PASS_FRACTION,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._configs: dict[str, CategoryConfig] = {}
        self._pools: dict[str, tuple[QuestionTemplate, ...]] = {}
        self.default_pass_fraction = default_pass_fraction
        self._rng = rng or random.SystemRandom()

        for name, (config, pool) in catalog.items():
            ids = [q.id for q in pool]
            if len(set(ids)) != len(ids):
                raise ValueError(f"category '{name}' has duplicate question ids")
            if len(pool) < config.question_count:
                raise ValueError(
                    f"category '{name}' needs {config.question_count} questions, "
                    f"pool has {len(pool)}"
                )
            self._configs[name] = config
            self._pools[name] = tuple(pool)

        logger.info(
            "Question bank loaded — %d categories, %d questions",
            len(self._pools), sum(len(p) for p in self._pools.values()),
        )

    @classmethod
    def default(
        cls,
        seed: Optional[int] = None,
        default_pass_fraction: float = PASS_FRACTION,
    ) -> "QuestionBank":
        """Bank built from the bundled catalog."""
        return cls(build_catalog(seed), default_pass_fraction=default_pass_fraction)

    # ── Lookup ────────────────────────────────────────────────────────
    def has_category(self, category: str) -> bool:
        return category in self._configs

    def config(self, category: str) -> CategoryConfig:
        try:
            return self._configs[category]
        except KeyError:
            raise UnknownCategory(
                f"Unknown quiz category '{category}'",
                category=category,
                available=sorted(self._configs),
            ) from None

    def get_questions(self, category: str) -> list[QuestionTemplate]:
        """Return the full pool for a category, in catalog order."""
        self.config(category)
        return list(self._pools[category])

    def pass_fraction(self, category: str) -> float:
        config = self.config(category)
        if config.pass_fraction is not None:
            return config.pass_fraction
        return self.default_pass_fraction

    def categories(self) -> list[CategoryInfo]:
        return [
            CategoryInfo(
                category=name,
                title=config.title,
                question_count=config.question_count,
                pool_size=len(self._pools[name]),
                pass_fraction=self.pass_fraction(name),
            )
            for name, config in sorted(self._configs.items())
        ]

    # ── Sampling ──────────────────────────────────────────────────────
    def sample(self, category: str) -> list[QuestionTemplate]:
        """Draw a session's question set: no repeats, options shuffled."""
        config = self.config(category)
        picked = self._rng.sample(self._pools[category], config.question_count)
        return [q.shuffled(self._rng) for q in picked]
