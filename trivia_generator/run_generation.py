#!/usr/bin/env python3
# trivia_generator/run_generation.py
# Purpose: Command-line entry point for a question generation run

"""
Run trivia question generation.

Examples:
    trivia-generate --total 5000 --track-stats
    trivia-generate --total 20 --dry-run --seed 7
    trivia-generate --total 500 --category-distribution '{"science": 0.5, "history": 0.5}'
"""

import argparse
import json
import logging
import random
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from trivia_generator.config import APP_CONFIG, AppConfig
from trivia_generator.database_setup import get_client, get_db, initialize_questions_collection
from trivia_generator.llm_abstraction import LLMClient
from trivia_generator.llm_layer import ProviderRouter
from trivia_generator.question_agent.fact_source import BraveFactSource
from trivia_generator.question_agent.generation_utils import StatsWriter
from trivia_generator.question_agent.question_generator import (
    DirectQuestionGenerator,
    SearchQuestionGenerator,
)
from trivia_generator.question_agent.question_pipeline import QuestionGenerationPipeline
from trivia_generator.question_agent.question_store import InMemoryQuestionWriter, MongoQuestionWriter


logger = logging.getLogger(__name__)


# -------------------------
# Logging
# -------------------------
def setup_logging(
    log_file: Optional[str],
    log_level: str,
    max_bytes: int = 1048576,
    backup_count: int = 5,
    noisy_libs: bool = False,
) -> logging.Logger:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if not noisy_libs:
        for lib in ["pymongo", "urllib3", "requests"]:
            logging.getLogger(lib).setLevel(logging.WARNING)

    return logging.getLogger(__name__)


# -------------------------
# Arguments
# -------------------------
def _distribution(value: str) -> Dict[str, float]:
    try:
        data = json.loads(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not valid JSON: {e}")
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("distribution must be a JSON object of key -> proportion")
    return data


def parse_args(argv: Optional[List[str]] = None, config: AppConfig = APP_CONFIG) -> argparse.Namespace:
    gen = config.generation
    parser = argparse.ArgumentParser(description="Generate and curate trivia questions")

    parser.add_argument("--total", type=int, required=True, help="Number of accepted questions to produce")
    parser.add_argument("--batch-size", type=int, default=gen.batch_size, help="Questions per batch")

    parser.add_argument("--category-distribution", type=_distribution, default=None,
                        help="JSON object category -> proportion (sums to 1.0)")
    parser.add_argument("--difficulty-distribution", type=_distribution, default=None,
                        help="JSON object difficulty -> proportion (sums to 1.0)")

    parser.add_argument("--track-stats", dest="track_stats", action="store_true", default=gen.track_stats,
                        help="Write the statistics file every few batches and at the end")
    parser.add_argument("--no-track-stats", dest="track_stats", action="store_false",
                        help="Do not write the statistics file")
    parser.add_argument("--stats-path", default=gen.stats_path, help="Statistics JSON path")

    parser.add_argument("--dry-run", action="store_true", help="Keep accepted questions in memory, skip MongoDB")
    parser.add_argument("--seed-from-store", dest="seed_from_store", action="store_true", default=gen.seed_from_store,
                        help="Seed duplicate detection from questions already in the store")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for category/difficulty sampling")
    parser.add_argument("--profile", default=gen.llm_profile, help="LLM profile name")

    # Logging
    parser.add_argument("--log-file", default=config.logging.log_file, help="Log file path")
    parser.add_argument("--log-level", default=config.logging.level, help="Log level, e.g. DEBUG, INFO")
    parser.add_argument("--noisy-libs", action="store_true", help="Allow third-party libs to log more")

    args = parser.parse_args(argv)

    if args.total <= 0:
        parser.error("--total must be positive")
    if args.batch_size <= 0:
        parser.error("--batch-size must be positive")

    return args


# -------------------------
# Wiring
# -------------------------
def build_pipeline(args: argparse.Namespace, config: AppConfig = APP_CONFIG) -> QuestionGenerationPipeline:
    """Compose the pipeline from configuration."""
    llm = LLMClient(ProviderRouter(config.providers), config.llm_profiles, debug_mode=config.debug_mode)
    rng = random.Random(args.seed)

    if args.dry_run:
        writer = InMemoryQuestionWriter()
        logger.info("Dry run: accepted questions are kept in memory")
    else:
        client = get_client()
        collection = initialize_questions_collection(get_db(client))
        writer = MongoQuestionWriter(collection)

    return QuestionGenerationPipeline(
        fact_source=BraveFactSource(config.search, rng=random.Random(rng.random())),
        generator=SearchQuestionGenerator(llm, profile=args.profile, fact_chars=config.generation.fact_chars),
        direct_generator=DirectQuestionGenerator(llm, profile=args.profile),
        writer=writer,
        config=config.generation,
        rng=rng,
        stats_writer=StatsWriter(Path(args.stats_path)),
    )


def install_stop_handler(pipeline: QuestionGenerationPipeline) -> None:
    """First Ctrl+C stops after the current batch; a second one exits."""

    def _handler(sig, frame):
        if pipeline.stopped:
            logger.warning("Second interrupt, exiting immediately")
            raise KeyboardInterrupt
        logger.warning(f"Received signal {sig}, finishing current batch")
        pipeline.stop()

    for s in (signal.SIGTERM, signal.SIGINT):
        signal.signal(s, _handler)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(
        log_file=args.log_file,
        log_level=args.log_level,
        max_bytes=APP_CONFIG.logging.max_bytes,
        backup_count=APP_CONFIG.logging.backup_count,
        noisy_libs=args.noisy_libs,
    )

    logger.info("Starting generation with parameters:")
    logger.info(f"  Total: {args.total}")
    logger.info(f"  Batch size: {args.batch_size}")
    logger.info(f"  Profile: {args.profile}")
    logger.info(f"  Track stats: {args.track_stats} ({args.stats_path})")
    logger.info(f"  Dry run: {args.dry_run}")
    logger.info(f"  Seed from store: {args.seed_from_store}")

    try:
        pipeline = build_pipeline(args)
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}", exc_info=True)
        return 1

    install_stop_handler(pipeline)

    try:
        with tqdm(total=args.total, desc="Generating questions", unit="q", disable=not sys.stderr.isatty()) as pbar:
            summary = pipeline.run(
                total_questions=args.total,
                category_distribution=args.category_distribution,
                difficulty_distribution=args.difficulty_distribution,
                batch_size=args.batch_size,
                track_stats=args.track_stats,
                progress=pbar.update,
                seed_from_store=args.seed_from_store,
            )
    except ValueError as e:
        logger.error(f"Invalid run parameters: {e}")
        return 2
    except KeyboardInterrupt:
        logger.warning("Generation interrupted by user (Ctrl+C)")
        return 130

    if summary.stopped:
        logger.info(f"Stopped early with {summary.total_accepted}/{summary.target} questions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
