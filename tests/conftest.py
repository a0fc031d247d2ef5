"""Shared fixtures and fakes for the trivia generator tests."""

from __future__ import annotations

import dataclasses
import itertools
import random
from typing import List, Optional, Sequence, Union
from unittest.mock import MagicMock

import pytest

from trivia_generator.config import APP_CONFIG, GenerationConfig
from trivia_generator.question_agent.question_models import (
    CandidateQuestion,
    Category,
    Difficulty,
    GenerationResult,
)
from trivia_generator.question_agent.question_pipeline import QuestionGenerationPipeline
from trivia_generator.question_agent.question_store import InMemoryQuestionWriter

# ── Helpers ───────────────────────────────────────────────────────────


def make_candidate(
    content: str = "This beer company created a famous book of records to settle pub disputes.",
    correct: str = "Guinness",
    incorrect: Sequence[str] = ("Heineken", "Carlsberg", "Budweiser"),
    category: Category = Category.HISTORY,
    difficulty: Difficulty = Difficulty.EASY,
) -> CandidateQuestion:
    """Build a valid candidate with sensible defaults."""
    return CandidateQuestion(
        content=content,
        category=category,
        difficulty=difficulty,
        correct_answer=correct,
        incorrect_answers=list(incorrect),
    )


def unique_candidate(n: int) -> CandidateQuestion:
    """Candidate number n; distinct fingerprints, no answer leakage."""
    return make_candidate(
        content=f"Question {n}: which code word opens the vault?",
        correct=f"Alpha{n}",
        incorrect=(f"Beta{n}", f"Gamma{n}", f"Delta{n}"),
    )


class FakeClock:
    """Monotonic clock that advances ``step`` seconds per call."""

    def __init__(self, step: float = 1.0) -> None:
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class FakeFactSource:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls: List[str] = []

    def fetch_facts(self, category: str) -> List[str]:
        self.calls.append(category)
        return [f"fact about {category}"]


ScriptItem = Union[GenerationResult, Exception, None]


class FakeGenerator:
    """
    Replays scripted results, then produces unique valid candidates.

    A script entry of None means "next unique candidate"; an exception is
    raised from generate().
    """

    def __init__(self, script: Optional[Sequence[ScriptItem]] = None, start: int = 1) -> None:
        self.script = list(script or [])
        self.counter = itertools.count(start)
        self.calls: List[tuple] = []

    def _next(self) -> GenerationResult:
        item = self.script.pop(0) if self.script else None
        if isinstance(item, Exception):
            raise item
        if item is None:
            return GenerationResult.ok(unique_candidate(next(self.counter)))
        return item

    def generate(self, *args) -> GenerationResult:
        self.calls.append(args)
        return self._next()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def gen_config() -> GenerationConfig:
    """Generation config with stats off and default pacing constants."""
    return dataclasses.replace(
        APP_CONFIG.generation,
        batch_size=5,
        warmup_items=20,
        item_delay_min_ms=2000,
        item_delay_max_ms=5000,
        item_delay_factor=0.5,
        item_error_cooldown_ms=8000,
        batch_delay_min_ms=3000,
        batch_delay_per_failure_ms=1000,
        batch_error_cooldown_ms=15000,
        checkpoint_every_batches=5,
        track_stats=False,
        seed_from_store=False,
        cost_per_question=0.04,
    )


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def make_pipeline(gen_config, sleeps):
    """Factory building a pipeline from fakes; keyword overrides allowed."""

    def _make(
        fact_source=None,
        generator=None,
        direct_generator=None,
        writer=None,
        config=None,
        clock=None,
        stats_writer=None,
        seed: int = 42,
    ) -> QuestionGenerationPipeline:
        return QuestionGenerationPipeline(
            fact_source=fact_source or FakeFactSource(),
            generator=generator or FakeGenerator(),
            direct_generator=direct_generator or FakeGenerator(start=10_000),
            writer=writer if writer is not None else InMemoryQuestionWriter(),
            config=config or gen_config,
            rng=random.Random(seed),
            sleep=sleeps.append,
            clock=clock or FakeClock(),
            stats_writer=stats_writer or MagicMock(),
        )

    return _make
