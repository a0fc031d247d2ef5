# trivia_generator/question_agent/run_state.py
# Purpose: Run-scoped counters, batch records and statistics snapshots

"""
Run State - everything one generation run mutates, owned by the pipeline
instance (never module scope), so several runs can coexist.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from trivia_generator.question_agent.question_models import (
    CandidateQuestion,
    RejectionReason,
    TargetDistribution,
)
from trivia_generator.question_agent.question_validator import DuplicateDetector


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def estimate_completion(elapsed_s: float, done: int, total: int) -> str:
    """Rough time remaining, e.g. '~12 minutes' or '~1.5 hours'."""
    if done <= 0:
        return "Calculating..."

    remaining_s = (elapsed_s / done) * max(0, total - done)
    if remaining_s < 3600:
        minutes = math.ceil(remaining_s / 60)
        return f"~{minutes} minute{'' if minutes == 1 else 's'}"

    hours = f"{remaining_s / 3600:.1f}"
    return f"~{hours} hour{'' if hours == '1.0' else 's'}"


@dataclass
class RunCounters:
    """Cumulative counts; every processed candidate lands in exactly one bucket."""

    category_counts: Dict[str, int] = field(default_factory=dict)
    difficulty_counts: Dict[str, int] = field(default_factory=dict)

    total_attempted: int = 0
    total_accepted: int = 0
    total_rejected: int = 0
    total_duplicates: int = 0
    rejection_reasons: Dict[str, int] = field(default_factory=dict)
    persist_failures: int = 0

    question_lengths: List[int] = field(default_factory=list)
    answer_lengths: List[int] = field(default_factory=list)
    generation_times_ms: List[float] = field(default_factory=list)

    @classmethod
    def for_distribution(cls, distribution: TargetDistribution) -> "RunCounters":
        return cls(
            category_counts={key: 0 for key in distribution.categories},
            difficulty_counts={key: 0 for key in distribution.difficulties},
        )

    def _count_reason(self, reason: RejectionReason) -> None:
        self.rejection_reasons[reason.value] = self.rejection_reasons.get(reason.value, 0) + 1

    def record_accepted(self, candidate: CandidateQuestion, category: str, difficulty: str) -> None:
        self.total_attempted += 1
        self.total_accepted += 1
        self.category_counts[category] = self.category_counts.get(category, 0) + 1
        self.difficulty_counts[difficulty] = self.difficulty_counts.get(difficulty, 0) + 1
        self.question_lengths.append(len(candidate.content))
        self.answer_lengths.append(len(candidate.correct_answer))

    def record_rejected(self, reason: RejectionReason) -> None:
        self.total_attempted += 1
        if reason == RejectionReason.DUPLICATE:
            self.total_duplicates += 1
        else:
            self.total_rejected += 1
        self._count_reason(reason)

    def record_generation_time(self, elapsed_ms: float) -> None:
        self.generation_times_ms.append(elapsed_ms)

    @property
    def is_conserved(self) -> bool:
        return self.total_accepted + self.total_rejected + self.total_duplicates == self.total_attempted


@dataclass(frozen=True)
class BatchRecord:
    """Summary of one finished batch; never mutated after creation."""

    batch_number: int
    success_count: int
    failure_count: int
    duplicate_count: int
    category_counts: Dict[str, int]
    difficulty_counts: Dict[str, int]
    duration_s: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batchNumber": self.batch_number,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "duplicateCount": self.duplicate_count,
            "categoryDistribution": dict(self.category_counts),
            "difficultyDistribution": dict(self.difficulty_counts),
            "duration": round(self.duration_s, 2),
        }


@dataclass
class RunState:
    """Counters, batch log and uniqueness set for a single run."""

    target: int
    distribution: TargetDistribution
    counters: RunCounters
    detector: DuplicateDetector = field(default_factory=DuplicateDetector)
    batches: List[BatchRecord] = field(default_factory=list)

    @classmethod
    def start(cls, target: int, distribution: TargetDistribution) -> "RunState":
        return cls(
            target=target,
            distribution=distribution,
            counters=RunCounters.for_distribution(distribution),
        )

    @property
    def remaining(self) -> int:
        return max(0, self.target - self.counters.total_accepted)

    @property
    def done(self) -> bool:
        return self.counters.total_accepted >= self.target

    def to_stats(self, elapsed_s: float, cost_per_question: float) -> Dict[str, Any]:
        """Statistics artifact payload."""
        c = self.counters
        return {
            "summary": {
                "totalSuccess": c.total_accepted,
                "totalFailed": c.total_rejected,
                "totalDuplicates": c.total_duplicates,
                "totalAttempted": c.total_attempted,
                "persistFailures": c.persist_failures,
                "timeElapsed": f"{elapsed_s / 60:.1f} minutes",
                "avgGenerationTime": f"{_mean(c.generation_times_ms) / 1000:.2f}",
                "avgQuestionLength": f"{_mean(c.question_lengths):.1f}",
                "avgAnswerLength": f"{_mean(c.answer_lengths):.1f}",
                "estimatedCost": f"{c.total_accepted * cost_per_question:.2f}",
            },
            "categoryDistribution": dict(c.category_counts),
            "difficultyDistribution": dict(c.difficulty_counts),
            "rejectionReasons": dict(c.rejection_reasons),
            "batchStats": [b.to_dict() for b in self.batches],
        }
