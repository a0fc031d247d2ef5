"""Tests for question models, label mapping and target distributions."""

from __future__ import annotations

import pytest

from trivia_generator.question_agent.question_models import (
    Category,
    CandidateQuestion,
    Difficulty,
    TargetDistribution,
    ValidationFeedback,
    ValidationStatus,
    map_category,
    map_difficulty,
)

from tests.conftest import make_candidate


class TestLabelMapping:
    def test_known_values_case_insensitive(self) -> None:
        assert map_category(" Science ") == Category.SCIENCE
        assert map_difficulty("HARD") == Difficulty.HARD

    def test_aliases(self) -> None:
        assert map_category("general_knowledge") == Category.POP_CULTURE
        assert map_category("pop culture") == Category.POP_CULTURE

    def test_unknown_values_get_defaults(self) -> None:
        assert map_category("astrology") == Category.POP_CULTURE
        assert map_difficulty("expert") == Difficulty.MEDIUM
        assert map_difficulty(None) == Difficulty.MEDIUM


class TestCandidateQuestion:
    def test_from_dict_normalizes(self) -> None:
        candidate = CandidateQuestion.from_dict(
            {
                "content": "  Which planet has the most moons?  ",
                "category": "science",
                "difficulty": "medium",
                "correct_answer": " Saturn ",
                "incorrect_answers": ["Jupiter", "Uranus", "Neptune"],
            },
            generation_method="direct",
        )
        assert candidate.content == "Which planet has the most moons?"
        assert candidate.correct_answer == "Saturn"
        assert candidate.category == Category.SCIENCE
        assert candidate.generation_method == "direct"
        assert candidate.validation_status == ValidationStatus.APPROVED

    def test_single_string_incorrect_answer_wrapped(self) -> None:
        candidate = CandidateQuestion.from_dict({"incorrect_answers": "Jupiter"})
        assert candidate.incorrect_answers == ["Jupiter"]

    def test_all_answers_correct_first(self) -> None:
        assert make_candidate().all_answers == ["Guinness", "Heineken", "Carlsberg", "Budweiser"]

    def test_to_record_schema(self) -> None:
        record = make_candidate().to_record()
        assert record["category"] == "history"
        assert record["difficulty"] == "easy"
        assert record["validation_status"] == "approved"
        assert record["validation_feedback"] is None
        assert record["ai_generated"] is True
        assert record["usage_count"] == 0
        assert record["last_used"] is None
        assert record["created_at"].tzinfo is not None
        assert record["generation_method"] == "search"
        assert set(record) == {
            "content", "category", "difficulty", "correct_answer", "incorrect_answers",
            "validation_status", "validation_feedback", "ai_generated", "usage_count",
            "last_used", "created_at", "generation_method",
        }

    def test_to_record_feedback(self) -> None:
        candidate = make_candidate()
        candidate.validation_status = ValidationStatus.REVIEWING
        candidate.validation_feedback = [ValidationFeedback("warning", "Answer too long")]
        record = candidate.to_record()
        assert record["validation_status"] == "reviewing"
        assert record["validation_feedback"] == [{"type": "warning", "message": "Answer too long"}]


class TestTargetDistribution:
    def test_default_is_valid(self) -> None:
        distribution = TargetDistribution.default()
        assert len(distribution.categories) == 11
        assert list(distribution.difficulties) == ["easy", "medium", "hard"]

    def test_enum_keys_accepted(self) -> None:
        distribution = TargetDistribution(
            categories={Category.SCIENCE: 1.0},
            difficulties={Difficulty.EASY: 0.5, Difficulty.HARD: 0.5},
        )
        assert distribution.to_dict() == {
            "categories": {"science": 1.0},
            "difficulties": {"easy": 0.5, "hard": 0.5},
        }

    def test_within_tolerance(self) -> None:
        TargetDistribution(categories={"science": 0.505, "history": 0.5}, difficulties={"easy": 1.0})

    @pytest.mark.parametrize(
        "categories, difficulties",
        [
            ({}, {"easy": 1.0}),
            ({"astrology": 1.0}, {"easy": 1.0}),
            ({"science": 0.5, "history": 0.3}, {"easy": 1.0}),
            ({"science": 1.2, "history": -0.2}, {"easy": 1.0}),
            ({"science": 1.0}, {"expert": 1.0}),
            ({"science": "lots"}, {"easy": 1.0}),
        ],
    )
    def test_invalid_rejected(self, categories, difficulties) -> None:
        with pytest.raises(ValueError):
            TargetDistribution(categories=categories, difficulties=difficulties)
