"""Tests for the command-line entry point."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from trivia_generator import run_generation
from trivia_generator.question_agent.question_pipeline import QuestionGenerationPipeline
from trivia_generator.question_agent.question_store import InMemoryQuestionWriter
from trivia_generator.run_generation import build_pipeline, main, parse_args


class TestParseArgs:
    def test_defaults_from_config(self) -> None:
        args = parse_args(["--total", "50"])
        assert args.total == 50
        assert args.batch_size == run_generation.APP_CONFIG.generation.batch_size
        assert args.category_distribution is None
        assert args.dry_run is False

    def test_distribution_json(self) -> None:
        args = parse_args([
            "--total", "10",
            "--category-distribution", '{"science": 0.5, "history": 0.5}',
            "--no-track-stats",
            "--dry-run",
            "--seed", "7",
        ])
        assert args.category_distribution == {"science": 0.5, "history": 0.5}
        assert args.track_stats is False
        assert args.seed == 7

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["--total", "0"],
            ["--total", "5", "--batch-size", "0"],
            ["--total", "5", "--category-distribution", "{not json"],
            ["--total", "5", "--difficulty-distribution", "[0.5, 0.5]"],
        ],
    )
    def test_invalid_arguments_exit(self, argv) -> None:
        with pytest.raises(SystemExit):
            parse_args(argv)


class TestBuildPipeline:
    def test_dry_run_keeps_questions_in_memory(self) -> None:
        args = parse_args(["--total", "3", "--dry-run", "--seed", "1"])
        with patch.object(run_generation, "get_client") as get_client:
            pipeline = build_pipeline(args)

        get_client.assert_not_called()
        assert isinstance(pipeline, QuestionGenerationPipeline)
        assert isinstance(pipeline.writer, InMemoryQuestionWriter)
        assert pipeline.generator.profile == args.profile

    def test_mongo_writer_when_not_dry_run(self) -> None:
        args = parse_args(["--total", "3"])
        collection = MagicMock()
        with patch.object(run_generation, "get_client") as get_client, \
                patch.object(run_generation, "initialize_questions_collection", return_value=collection):
            pipeline = build_pipeline(args)

        get_client.assert_called_once()
        assert pipeline.writer.collection is collection


class TestMain:
    @pytest.fixture(autouse=True)
    def _quiet(self):
        with patch.object(run_generation, "setup_logging"), \
                patch.object(run_generation, "install_stop_handler"):
            yield

    def test_dry_run_completes(self) -> None:
        pipeline = MagicMock()
        pipeline.run.return_value.stopped = False
        with patch.object(run_generation, "build_pipeline", return_value=pipeline):
            assert main(["--total", "2", "--dry-run"]) == 0

        kwargs = pipeline.run.call_args.kwargs
        assert kwargs["total_questions"] == 2
        assert callable(kwargs["progress"])

    def test_invalid_distribution_returns_2(self) -> None:
        pipeline = MagicMock()
        pipeline.run.side_effect = ValueError("category distribution must sum to 1.0")
        with patch.object(run_generation, "build_pipeline", return_value=pipeline):
            assert main(["--total", "2", "--category-distribution", '{"science": 0.4}']) == 2

    def test_init_failure_returns_1(self) -> None:
        with patch.object(run_generation, "build_pipeline", side_effect=RuntimeError("mongo down")):
            assert main(["--total", "2"]) == 1

    def test_interrupt_returns_130(self) -> None:
        pipeline = MagicMock()
        pipeline.run.side_effect = KeyboardInterrupt
        with patch.object(run_generation, "build_pipeline", return_value=pipeline):
            assert main(["--total", "2"]) == 130


def test_stop_handler_stops_then_interrupts() -> None:
    pipeline = MagicMock()
    pipeline.stopped = False
    handlers = {}

    with patch.object(run_generation.signal, "signal", side_effect=lambda sig, h: handlers.setdefault(sig, h)):
        run_generation.install_stop_handler(pipeline)

    handler = handlers[run_generation.signal.SIGINT]
    handler(run_generation.signal.SIGINT, None)
    pipeline.stop.assert_called_once()

    pipeline.stopped = True
    with pytest.raises(KeyboardInterrupt):
        handler(run_generation.signal.SIGINT, None)
