# trivia_generator/question_agent/question_pipeline.py
# Purpose: Batch orchestration of trivia question generation

"""
Question Generation Pipeline - Orchestrates sampling, generation,
validation, persistence, pacing and statistics.

Layer 4: Pipeline orchestration.

Single-threaded: one candidate is generated, checked and persisted at a
time. ``stop()`` sets an event checked at the top of every batch; an
in-flight call is allowed to finish.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from trivia_generator.config import APP_CONFIG, GenerationConfig
from trivia_generator.question_agent.fact_source import BraveFactSource
from trivia_generator.question_agent.generation_utils import StatsWriter, debug_print
from trivia_generator.question_agent.question_generator import (
    DirectQuestionGenerator,
    SearchQuestionGenerator,
)
from trivia_generator.question_agent.question_models import (
    CandidateQuestion,
    DEFAULT_CATEGORY_DISTRIBUTION,
    DEFAULT_DIFFICULTY_DISTRIBUTION,
    GenerationResult,
    RejectionReason,
    TargetDistribution,
    ValidationStatus,
)
from trivia_generator.question_agent.question_store import QuestionWriter
from trivia_generator.question_agent.question_validator import check_candidate
from trivia_generator.question_agent.run_state import BatchRecord, RunState, estimate_completion
from trivia_generator.question_agent.sampler import DistributionSampler


logger = logging.getLogger(__name__)


# Search failures that justify the direct (no facts) path
TRANSPORT_REASONS = (RejectionReason.API_ERROR, RejectionReason.TIMEOUT)


@dataclass
class RunSummary:
    """Outcome of one run."""

    target: int
    total_attempted: int
    total_accepted: int
    total_rejected: int
    total_duplicates: int
    persist_failures: int
    rejection_reasons: Dict[str, int]
    category_counts: Dict[str, int]
    difficulty_counts: Dict[str, int]
    batches: int
    elapsed_s: float
    stopped: bool
    approved_in_store: Optional[int] = None
    stats: Dict[str, Any] = field(default_factory=dict)


class QuestionGenerationPipeline:
    """Pipeline for generating, validating and persisting trivia questions."""

    def __init__(
        self,
        fact_source: BraveFactSource,
        generator: SearchQuestionGenerator,
        direct_generator: DirectQuestionGenerator,
        writer: QuestionWriter,
        config: Optional[GenerationConfig] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        stats_writer: Optional[StatsWriter] = None,
    ) -> None:
        self.fact_source = fact_source
        self.generator = generator
        self.direct_generator = direct_generator
        self.writer = writer
        self.config = config or APP_CONFIG.generation
        self.rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self.stats_writer = stats_writer or StatsWriter(Path(self.config.stats_path))
        self._stop = threading.Event()
        self.state: Optional[RunState] = None

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Request a graceful stop before the next batch starts.

        Applies to the run in progress; the next call to run() starts fresh.
        """
        logger.info("Stopping question generation gracefully...")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def run(
        self,
        total_questions: int,
        category_distribution: Optional[Mapping[str, float]] = None,
        difficulty_distribution: Optional[Mapping[str, float]] = None,
        batch_size: Optional[int] = None,
        track_stats: Optional[bool] = None,
        progress: Optional[Callable[[int], None]] = None,
        seed_from_store: Optional[bool] = None,
    ) -> RunSummary:
        if total_questions <= 0:
            raise ValueError("total_questions must be positive")

        batch_size = batch_size or self.config.batch_size
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        distribution = TargetDistribution(
            categories=category_distribution or DEFAULT_CATEGORY_DISTRIBUTION,
            difficulties=difficulty_distribution or DEFAULT_DIFFICULTY_DISTRIBUTION,
        )
        track_stats = self.config.track_stats if track_stats is None else track_stats
        if seed_from_store is None:
            seed_from_store = self.config.seed_from_store

        state = RunState.start(total_questions, distribution)
        self.state = state
        sampler = DistributionSampler(distribution, rng=self.rng, warmup=self.config.warmup_items)

        if seed_from_store:
            self._seed_detector(state)

        logger.info("Starting question generation...")
        logger.info(f"Target: {total_questions} questions")
        logger.info(f"Category Distribution: {distribution.categories}")
        logger.info(f"Difficulty Distribution: {distribution.difficulties}")

        self._stop.clear()
        start = self._clock()
        batch_number = 0

        while not self._stop.is_set() and not state.done:
            current_size = min(batch_size, state.remaining)
            batch_number += 1
            logger.info(f"Starting batch {batch_number} ({current_size} questions)")

            try:
                record = self._run_batch(state, sampler, current_size, batch_number)
            except Exception as e:
                logger.error(f"Batch generation error: {e}", exc_info=True)
                self._sleep_ms(self.config.batch_error_cooldown_ms)
                continue

            state.batches.append(record)
            if progress is not None and record.success_count:
                progress(record.success_count)
            self._log_batch(state, record, start)

            every = max(1, self.config.checkpoint_every_batches)
            if track_stats and len(state.batches) % every == 0:
                self._write_stats(state, start)

            if not state.done and not self._stop.is_set():
                delay_ms = max(
                    self.config.batch_delay_min_ms,
                    record.failure_count * self.config.batch_delay_per_failure_ms,
                )
                self._sleep_ms(delay_ms)

        elapsed = self._clock() - start
        stats = state.to_stats(elapsed, self.config.cost_per_question)
        if track_stats:
            self._write_stats(state, start)

        summary = self._build_summary(state, elapsed, stats)
        self._log_final_summary(state, summary)
        return summary

    def _seed_detector(self, state: RunState) -> None:
        try:
            state.detector.seed_from_records(self.writer.iter_existing())
        except Exception as e:
            logger.error(f"Failed to seed duplicate detector from store, continuing run-scoped: {e}")

    # ------------------------------------------------------------------
    # Batch / item
    # ------------------------------------------------------------------

    def _run_batch(
        self,
        state: RunState,
        sampler: DistributionSampler,
        size: int,
        batch_number: int,
    ) -> BatchRecord:
        counters = state.counters
        batch_start = self._clock()
        success = failure = duplicates = 0
        category_counts: Dict[str, int] = {}
        difficulty_counts: Dict[str, int] = {}

        for _ in range(size):
            category, difficulty = sampler.pick(counters.category_counts, counters.difficulty_counts)

            try:
                reason, candidate, generation_ms = self._process_item(state, category, difficulty)
            except Exception as e:
                logger.error(f"Error generating question: {e}", exc_info=True)
                counters.record_rejected(RejectionReason.UNEXPECTED_ERROR)
                failure += 1
                self._sleep_ms(self.config.item_error_cooldown_ms)
                continue

            if reason is None:
                success += 1
                category_counts[category] = category_counts.get(category, 0) + 1
                difficulty_counts[difficulty] = difficulty_counts.get(difficulty, 0) + 1
                self._print_question(candidate, category, difficulty, counters.total_accepted)
                self._sleep_ms(self._item_delay_ms(generation_ms))
            elif reason == RejectionReason.DUPLICATE:
                duplicates += 1
            else:
                failure += 1

        return BatchRecord(
            batch_number=batch_number,
            success_count=success,
            failure_count=failure,
            duplicate_count=duplicates,
            category_counts=category_counts,
            difficulty_counts=difficulty_counts,
            duration_s=self._clock() - batch_start,
        )

    def _process_item(
        self,
        state: RunState,
        category: str,
        difficulty: str,
    ) -> Tuple[Optional[RejectionReason], Optional[CandidateQuestion], float]:
        """Generate and classify one candidate; updates counters exactly once."""
        counters = state.counters

        generation_start = self._clock()
        result = self._generate(category, difficulty)
        generation_ms = (self._clock() - generation_start) * 1000
        counters.record_generation_time(generation_ms)

        if not result.success:
            reason = result.error.reason
            logger.warning(f"Failed to generate question: {reason.value} - {result.error.message}")
            counters.record_rejected(reason)
            return reason, None, generation_ms

        candidate = result.candidate
        rejection = check_candidate(candidate, state.detector)
        if rejection is not None:
            reason, message = rejection
            logger.info(f"{message}, skipping...")
            counters.record_rejected(reason)
            return reason, candidate, generation_ms

        state.detector.record(candidate)
        counters.record_accepted(candidate, category, difficulty)
        self._persist(state, candidate)
        return None, candidate, generation_ms

    def _generate(self, category: str, difficulty: str) -> GenerationResult:
        """Search-augmented generation, falling back to direct generation."""
        if self.fact_source.available:
            facts = self.fact_source.fetch_facts(category)
            result = self.generator.generate(facts, category, difficulty)
            if result.success or result.error.reason not in TRANSPORT_REASONS:
                return result
            logger.warning(
                f"Search-based generation failed ({result.error.reason.value}), "
                f"falling back to direct generation"
            )

        logger.info("Using direct question generation")
        return self.direct_generator.generate(category, difficulty)

    def _persist(self, state: RunState, candidate: CandidateQuestion) -> None:
        try:
            question_id = self.writer.insert(candidate)
            logger.info(f"Saved to database with ID: {question_id}")
        except Exception as e:
            # Store errors never abort the run; the question still counts
            state.counters.persist_failures += 1
            logger.error(f"Database error while saving question: {e}")

    # ------------------------------------------------------------------
    # Pacing
    # ------------------------------------------------------------------

    def _item_delay_ms(self, generation_ms: float) -> float:
        scaled = int(generation_ms * self.config.item_delay_factor)
        return max(self.config.item_delay_min_ms, min(self.config.item_delay_max_ms, scaled))

    def _sleep_ms(self, delay_ms: float) -> None:
        if delay_ms > 0:
            self._sleep(delay_ms / 1000.0)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _write_stats(self, state: RunState, start: float) -> None:
        if not state.counters.is_conserved:
            logger.error("Run counters out of balance: accepted + rejected + duplicates != attempted")
        try:
            path = self.stats_writer.save(state.to_stats(self._clock() - start, self.config.cost_per_question))
            logger.debug(f"Wrote generation stats to {path}")
        except OSError as e:
            logger.error(f"Error writing stats to file: {e}")

    def _print_question(self, candidate: CandidateQuestion, category: str, difficulty: str, number: int) -> None:
        if not APP_CONFIG.debug_mode:
            return
        debug_print(f"Question {number}: [{category}][{difficulty}] {candidate.content}")
        options = list(candidate.all_answers)
        self.rng.shuffle(options)
        debug_print(f"  options: {', '.join(options)}")
        debug_print(f"  ✓ {candidate.correct_answer}")
        if candidate.validation_status == ValidationStatus.REVIEWING:
            for feedback in candidate.validation_feedback:
                debug_print(f"  - [{feedback.type}] {feedback.message}")

    def _log_batch(self, state: RunState, record: BatchRecord, start: float) -> None:
        counters = state.counters
        elapsed = self._clock() - start
        size = record.success_count + record.failure_count + record.duplicate_count
        logger.info(
            f"Batch {record.batch_number} summary: generated {record.success_count}/{size}, "
            f"failed {record.failure_count}, duplicates prevented {record.duplicate_count}, "
            f"duration {record.duration_s:.2f}s"
        )
        logger.info(f"Batch categories: {record.category_counts} difficulties: {record.difficulty_counts}")
        logger.info(
            f"Progress: {counters.total_accepted}/{state.target} "
            f"({counters.total_accepted / state.target * 100:.1f}%), "
            f"estimated cost ${counters.total_accepted * self.config.cost_per_question:.2f}, "
            f"elapsed {elapsed / 60:.1f} minutes, "
            f"est. completion {estimate_completion(elapsed, counters.total_accepted, state.target)}"
        )

    def _build_summary(self, state: RunState, elapsed: float, stats: Dict[str, Any]) -> RunSummary:
        counters = state.counters

        approved = None
        try:
            approved = self.writer.count_approved(ai_generated=True)
        except Exception as e:
            logger.error(f"Failed to retrieve database stats: {e}")

        return RunSummary(
            target=state.target,
            total_attempted=counters.total_attempted,
            total_accepted=counters.total_accepted,
            total_rejected=counters.total_rejected,
            total_duplicates=counters.total_duplicates,
            persist_failures=counters.persist_failures,
            rejection_reasons=dict(counters.rejection_reasons),
            category_counts=dict(counters.category_counts),
            difficulty_counts=dict(counters.difficulty_counts),
            batches=len(state.batches),
            elapsed_s=elapsed,
            stopped=self._stop.is_set(),
            approved_in_store=approved,
            stats=stats,
        )

    def _log_final_summary(self, state: RunState, summary: RunSummary) -> None:
        s = summary.stats.get("summary", {})
        logger.info("===== FINAL GENERATION SUMMARY =====")
        logger.info(f"Total Questions Generated: {summary.total_accepted}")
        logger.info(f"Failed Attempts: {summary.total_rejected}")
        logger.info(f"Duplicates Prevented: {summary.total_duplicates}")
        logger.info(f"Time Elapsed: {s.get('timeElapsed')}")
        logger.info(f"Estimated Cost: ${s.get('estimatedCost')}")
        logger.info(f"Average Generation Time: {s.get('avgGenerationTime')} seconds")
        logger.info(f"Average Question Length: {s.get('avgQuestionLength')} characters")
        logger.info(f"Average Answer Length: {s.get('avgAnswerLength')} characters")
        if summary.persist_failures:
            logger.warning(f"Questions not saved to database: {summary.persist_failures}")

        total = summary.total_accepted
        for title, counts in (("Category", summary.category_counts), ("Difficulty", summary.difficulty_counts)):
            logger.info(f"{title} Distribution:")
            for key in sorted(counts):
                pct = counts[key] / total * 100 if total else 0.0
                logger.info(f"  {key:<12}: {counts[key]:>4} ({pct:.1f}%)")

        if summary.rejection_reasons:
            logger.info("Rejection Reasons:")
            for reason, count in sorted(summary.rejection_reasons.items(), key=lambda item: item[1], reverse=True):
                logger.info(f"  {reason:<20}: {count}")

        if summary.approved_in_store is not None:
            logger.info(f"Total AI-generated questions in database: {summary.approved_in_store}")
