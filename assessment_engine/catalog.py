"""
Assessment Engine — Question Catalog
======================================

Category definitions and question pools loaded at startup.

Static categories ship fixed question lists. ``math`` and ``programming``
are parameterized families that are expanded into a pool of concrete
questions when the catalog is built; per-session randomization (sampling
and option shuffling) happens in the QuestionBank.
"""

from __future__ import annotations

import random
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from assessment_engine.models import QuestionTemplate
from assessment_engine.rules import DEFAULT_QUESTION_COUNT


class CategoryConfig(BaseModel):
    """Static configuration of one quiz category."""
    model_config = ConfigDict(frozen=True)

    category: str
    title: str
    question_count: int = Field(gt=0, default=DEFAULT_QUESTION_COUNT)
    pass_fraction: Optional[float] = Field(default=None, gt=0.0, le=1.0)
    expected_answer_seconds: int = 30


CATEGORIES: dict[str, CategoryConfig] = {
    "programming": CategoryConfig(
        category="programming", title="Programming Fundamentals",
        pass_fraction=0.6, expected_answer_seconds=45,
    ),
    "math": CategoryConfig(
        category="math", title="Mental Arithmetic",
        pass_fraction=0.7, expected_answer_seconds=30,
    ),
    "blockchain": CategoryConfig(
        category="blockchain", title="Blockchain Basics",
        pass_fraction=0.6, expected_answer_seconds=40,
    ),
    "security": CategoryConfig(
        category="security", title="Security Awareness",
        pass_fraction=0.8, expected_answer_seconds=35,
    ),
    "fhe": CategoryConfig(
        category="fhe", title="Privacy-Preserving Computation",
        expected_answer_seconds=30,
    ),
}

MATH_INSTANCES_PER_OPERATION = 10
PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29)

# (prompt, correct option, distractors)
_STATIC_QUESTIONS: dict[str, list[tuple[str, str, tuple[str, ...]]]] = {
    "blockchain": [
        ("What is a smart contract?",
         "Self-executing contract with code",
         ("Legal document on blockchain", "Cryptocurrency wallet", "Network node")),
        ("Which consensus mechanism does Ethereum use today?",
         "Proof of Stake",
         ("Proof of Work", "Delegated Proof of Stake", "Proof of Authority")),
        ("What is gas in Ethereum?",
         "The cost of executing a transaction",
         ("A mining reward", "A network subscription", "A token standard")),
        ("What is a blockchain fork?",
         "A divergence of the chain into two histories",
         ("A wallet backup", "A smart contract upgrade tool", "A type of token")),
        ("What is the role of validators?",
         "Propose and attest to new blocks",
         ("Store user passwords", "Issue fiat currency", "Host web frontends")),
    ],
    "security": [
        ("What is phishing?",
         "Fraudulent attempt to obtain sensitive information",
         ("Type of encryption", "Blockchain attack", "Password hashing scheme")),
        ("What is 2FA?",
         "Two-Factor Authentication",
         ("Two-File Archive", "Two-Function Algorithm", "Two-Frame Animation")),
        ("What's a common password best practice?",
         "Use long, complex, unique passwords",
         ("Use the same password everywhere", "Use personal information",
          "Write passwords on a sticky note")),
        ("What is the primary goal of encryption?",
         "Protect data confidentiality",
         ("Increase data size", "Speed up data transfer", "Make data public")),
        ("Why should passwords be stored hashed?",
         "So a database leak does not reveal them",
         ("To make logins faster", "To save disk space", "So admins can read them")),
        ("What is social engineering?",
         "Manipulating people into revealing information",
         ("Designing social networks", "Refactoring legacy code", "Load balancing")),
    ],
    "fhe": [
        ("What does FHE stand for?",
         "Fully Homomorphic Encryption",
         ("Federated Hardware Encryption", "Fast Hash Encryption")),
        ("What is a Zero-Knowledge Proof?",
         "Proving something without revealing details",
         ("A type of encryption", "A blockchain consensus")),
        ("What does homomorphic encryption allow?",
         "Computing on data while it stays encrypted",
         ("Compressing encrypted data", "Decrypting without a key")),
        ("Which operation is the Paillier scheme homomorphic for?",
         "Addition",
         ("Sorting", "String concatenation")),
        ("Who can decrypt an aggregate computed under encryption?",
         "Only the holder of the private key",
         ("Anyone who knows the public key", "The party that did the computation")),
    ],
}


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
def _numeric_question(
    qid: str,
    category: str,
    prompt: str,
    answer: int,
    distractors: list[int],
    difficulty: float,
    expected_seconds: int,
) -> QuestionTemplate:
    """Build a question whose options are distinct integers, answer first."""
    values = [answer]
    for d in distractors:
        while d in values:
            d += 1
        values.append(d)
    return QuestionTemplate(
        id=qid,
        category=category,
        prompt=prompt,
        options=tuple(str(v) for v in values),
        correct_index=0,
        difficulty=difficulty,
        expected_answer_seconds=expected_seconds,
    )


def _fibonacci(n: int) -> int:
    a, b = 0, 1
    for _ in range(n):
        a, b = b, a + b
    return a


def _factorial(n: int) -> int:
    result = 1
    for i in range(2, n + 1):
        result *= i
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Pool Builders
# ─────────────────────────────────────────────────────────────────────────────
def build_math_pool(rng: random.Random, config: CategoryConfig) -> list[QuestionTemplate]:
    """Expand the four arithmetic families into concrete questions."""
    seconds = config.expected_answer_seconds
    pool: dict[str, QuestionTemplate] = {}

    def add(q: QuestionTemplate) -> None:
        pool.setdefault(q.id, q)

    for _ in range(MATH_INSTANCES_PER_OPERATION):
        a, b = rng.randint(1, 99), rng.randint(1, 99)
        ans = a + b
        add(_numeric_question(
            f"math-add-{a}-{b}", "math", f"What is {a} + {b}?", ans,
            [ans + rng.randint(5, 14), ans - rng.randint(5, 14), ans + 1],
            0.3, seconds,
        ))

        a = rng.randint(50, 199)
        b = rng.randint(1, a - 1)
        ans = a - b
        add(_numeric_question(
            f"math-sub-{a}-{b}", "math", f"What is {a} - {b}?", ans,
            [ans + rng.randint(5, 14), ans - rng.randint(5, 14), a + b],
            0.4, seconds,
        ))

        a, b = rng.randint(2, 19), rng.randint(2, 11)
        ans = a * b
        add(_numeric_question(
            f"math-mul-{a}-{b}", "math", f"What is {a} × {b}?", ans,
            [ans + rng.randint(5, 14), ans - rng.randint(5, 14), (a + 1) * b],
            0.5, seconds,
        ))

        b, ans = rng.randint(2, 11), rng.randint(2, 19)
        a = ans * b
        add(_numeric_question(
            f"math-div-{a}-{b}", "math", f"What is {a} ÷ {b}?", ans,
            [ans + 1, ans - 1, max(a // (b + 1), 1)],
            0.6, seconds,
        ))

    return list(pool.values())


def build_programming_pool(config: CategoryConfig) -> list[QuestionTemplate]:
    seconds = config.expected_answer_seconds
    pool: list[QuestionTemplate] = []

    for n in range(5, 15):
        ans = _fibonacci(n)
        pool.append(_numeric_question(
            f"prog-fib-{n}", "programming",
            f"What is the {n}th number in the Fibonacci sequence? (Start: 0, 1)",
            ans, [ans + 1, ans - 1, ans * 2], 0.5, seconds,
        ))

    for n in range(4, 8):
        ans = _factorial(n)
        pool.append(_numeric_question(
            f"prog-fact-{n}", "programming", f"What is {n}! (factorial)?",
            ans, [ans + 1, ans - 1, ans * 2], 0.4, seconds,
        ))

    for i, prime in enumerate(PRIMES, start=1):
        pool.append(_numeric_question(
            f"prog-prime-{i}", "programming", f"What is prime number #{i}?",
            prime, [prime + 1, prime - 1, prime * 2], 0.3, seconds,
        ))

    return pool


def build_static_pool(config: CategoryConfig) -> list[QuestionTemplate]:
    pool: list[QuestionTemplate] = []
    entries = _STATIC_QUESTIONS.get(config.category, [])
    for i, (prompt, correct, distractors) in enumerate(entries, start=1):
        pool.append(QuestionTemplate(
            id=f"{config.category}-{i}",
            category=config.category,
            prompt=prompt,
            options=(correct, *distractors),
            correct_index=0,
            difficulty=min(1.0, 0.3 + 0.1 * i),
            expected_answer_seconds=config.expected_answer_seconds,
        ))
    return pool


def build_catalog(
    seed: Optional[int] = None,
) -> dict[str, tuple[CategoryConfig, list[QuestionTemplate]]]:
    """Build every category's question pool."""
    rng = random.Random(seed)
    catalog: dict[str, tuple[CategoryConfig, list[QuestionTemplate]]] = {}
    for name, config in CATEGORIES.items():
        if name == "math":
            pool = build_math_pool(rng, config)
        elif name == "programming":
            pool = build_programming_pool(config)
        else:
            pool = build_static_pool(config)
        catalog[name] = (config, pool)
    return catalog
