# trivia_generator/question_agent/question_models.py
# Purpose: Data models for trivia question generation and validation

"""
Question Models - Type-safe internal representations with dict serialization.

Pattern: "Enums internally, strings externally"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Optional, Mapping

from trivia_generator.question_agent.generation_utils import extract_json, looks_like_json


logger = logging.getLogger(__name__)


# ============================================================================
# Enums
# ============================================================================

class Category(Enum):
    """Fixed trivia category set (store enum)."""
    TECHNOLOGY = "technology"
    SCIENCE = "science"
    LITERATURE = "literature"
    POP_CULTURE = "pop_culture"
    HISTORY = "history"
    GEOGRAPHY = "geography"
    SPORTS = "sports"
    GAMING = "gaming"
    INTERNET = "internet"
    MOVIES = "movies"
    MUSIC = "music"


class Difficulty(Enum):
    """Question difficulty."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ValidationStatus(Enum):
    """Question validation status."""
    APPROVED = "approved"
    REVIEWING = "reviewing"
    DRAFT = "draft"
    # In-flight only; never persisted
    REJECTED = "rejected"


class RejectionReason(Enum):
    """Why a candidate was discarded instead of persisted."""
    PARSE_ERROR = "PARSE_ERROR"
    NO_JSON_FOUND = "NO_JSON_FOUND"
    INVALID_STRUCTURE = "INVALID_STRUCTURE"
    MISSING_FIELDS = "MISSING_FIELDS"
    API_ERROR = "API_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_ANSWERS = "INVALID_ANSWERS"
    ANSWER_IN_QUESTION = "ANSWER_IN_QUESTION"
    DUPLICATE = "DUPLICATE"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


# Category aliases the LLM tends to return
CATEGORY_ALIASES = {
    "general_knowledge": Category.POP_CULTURE,
    "pop culture": Category.POP_CULTURE,
    "popculture": Category.POP_CULTURE,
}

DEFAULT_CATEGORY_DISTRIBUTION: Dict[str, float] = {
    "technology": 0.10,
    "science": 0.09,
    "literature": 0.08,
    "pop_culture": 0.12,
    "history": 0.09,
    "geography": 0.08,
    "sports": 0.10,
    "gaming": 0.09,
    "internet": 0.07,
    "movies": 0.10,
    "music": 0.08,
}

DEFAULT_DIFFICULTY_DISTRIBUTION: Dict[str, float] = {
    "easy": 0.45,
    "medium": 0.45,
    "hard": 0.10,
}

REQUIRED_FIELDS = ("content", "category", "difficulty", "correct_answer", "incorrect_answers")


def map_category(value: Any) -> Category:
    """Map free-text category to the enum; unknown values become pop_culture."""
    if isinstance(value, Category):
        return value
    normalized = str(value or "").strip().lower()
    try:
        return Category(normalized)
    except ValueError:
        pass
    if normalized in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[normalized]
    logger.warning(f"Unknown category: {value}, defaulting to pop_culture")
    return Category.POP_CULTURE


def map_difficulty(value: Any) -> Difficulty:
    """Map free-text difficulty to the enum; unknown values become medium."""
    if isinstance(value, Difficulty):
        return value
    normalized = str(value or "").strip().lower()
    try:
        return Difficulty(normalized)
    except ValueError:
        logger.warning(f"Unknown difficulty: {value}, defaulting to medium")
        return Difficulty.MEDIUM


# ============================================================================
# Data Models
# ============================================================================

@dataclass
class ValidationFeedback:
    """Single structured validation note ({type, message})."""

    type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "message": self.message}


@dataclass
class CandidateQuestion:
    """Generated, not-yet-persisted trivia question."""

    content: str
    category: Category
    difficulty: Difficulty
    correct_answer: str
    incorrect_answers: List[str] = field(default_factory=list)

    validation_status: ValidationStatus = ValidationStatus.APPROVED
    validation_feedback: List[ValidationFeedback] = field(default_factory=list)

    ai_generated: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    generation_method: str = "search"

    @property
    def all_answers(self) -> List[str]:
        return [self.correct_answer] + list(self.incorrect_answers)

    def to_record(self) -> Dict[str, Any]:
        """Map onto the persisted question schema."""
        return {
            "content": self.content,
            "category": self.category.value,
            "difficulty": self.difficulty.value,
            "correct_answer": self.correct_answer,
            "incorrect_answers": list(self.incorrect_answers),
            "validation_status": self.validation_status.value,
            "validation_feedback": [f.to_dict() for f in self.validation_feedback] or None,
            "ai_generated": True,
            "usage_count": 0,
            "last_used": None,
            "created_at": self.created_at,
            "generation_method": self.generation_method,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], generation_method: str = "search") -> "CandidateQuestion":
        incorrect = data.get("incorrect_answers") or []
        if isinstance(incorrect, str):
            incorrect = [incorrect]

        return cls(
            content=str(data.get("content", "")).strip(),
            category=map_category(data.get("category")),
            difficulty=map_difficulty(data.get("difficulty")),
            correct_answer=str(data.get("correct_answer", "")).strip(),
            incorrect_answers=[str(a).strip() for a in incorrect],
            generation_method=generation_method,
        )


@dataclass
class GenerationError:
    """Classified generation failure."""

    reason: RejectionReason
    message: str


@dataclass
class GenerationResult:
    """Result of one generation call: a candidate or a classified error."""

    candidate: Optional[CandidateQuestion] = None
    error: Optional[GenerationError] = None

    @property
    def success(self) -> bool:
        return self.candidate is not None and self.error is None

    @classmethod
    def ok(cls, candidate: CandidateQuestion) -> "GenerationResult":
        return cls(candidate=candidate)

    @classmethod
    def fail(cls, reason: RejectionReason, message: str) -> "GenerationResult":
        return cls(error=GenerationError(reason=reason, message=message))


@dataclass(frozen=True)
class TargetDistribution:
    """
    Category and difficulty proportions for one run.

    Keys are enum values (strings); enumeration order is preserved and
    drives the weighted draw.
    """

    categories: Mapping[str, float]
    difficulties: Mapping[str, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", self._validated("category", self.categories, Category))
        object.__setattr__(self, "difficulties", self._validated("difficulty", self.difficulties, Difficulty))

    @staticmethod
    def _validated(label: str, weights: Mapping[Any, float], enum_cls: type) -> Dict[str, float]:
        if not weights:
            raise ValueError(f"{label} distribution cannot be empty")

        cleaned: Dict[str, float] = {}
        for key, weight in weights.items():
            name = key.value if isinstance(key, Enum) else str(key)
            try:
                enum_cls(name)
            except ValueError:
                raise ValueError(f"Unknown {label} in distribution: {name!r}")
            try:
                weight = float(weight)
            except (TypeError, ValueError):
                raise ValueError(f"{label} weight for {name!r} is not a number: {weight!r}")
            if weight <= 0:
                raise ValueError(f"{label} weight for {name!r} must be positive")
            cleaned[name] = weight

        total = sum(cleaned.values())
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"{label} distribution must sum to 1.0 (got {total:.3f})")

        return cleaned

    @classmethod
    def default(cls) -> "TargetDistribution":
        return cls(
            categories=dict(DEFAULT_CATEGORY_DISTRIBUTION),
            difficulties=dict(DEFAULT_DIFFICULTY_DISTRIBUTION),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": dict(self.categories),
            "difficulties": dict(self.difficulties),
        }


# ============================================================================
# Helper Functions
# ============================================================================


def parse_question_response(response_text: str, generation_method: str = "search") -> GenerationResult:
    """
    Parse an LLM response into a candidate or a classified error.

    Expected shape: {"success": true, "data": {content, category, difficulty,
    correct_answer, incorrect_answers, ...}}
    """
    payload = extract_json(response_text)
    if payload is None:
        if looks_like_json(response_text):
            return GenerationResult.fail(
                RejectionReason.PARSE_ERROR,
                "Failed to parse JSON from LLM response",
            )
        return GenerationResult.fail(
            RejectionReason.NO_JSON_FOUND,
            "No JSON found in LLM response",
        )

    data = payload.get("data")
    if not payload.get("success") or not isinstance(data, dict):
        return GenerationResult.fail(
            RejectionReason.INVALID_STRUCTURE,
            "JSON response missing required fields: success, data",
        )

    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        return GenerationResult.fail(
            RejectionReason.MISSING_FIELDS,
            f"JSON response missing required fields: {', '.join(missing)}",
        )

    mistyped = [name for name in ("content", "correct_answer") if not isinstance(data[name], str)]
    if not isinstance(data["incorrect_answers"], (list, str)):
        mistyped.append("incorrect_answers")
    if mistyped:
        return GenerationResult.fail(
            RejectionReason.INVALID_STRUCTURE,
            f"JSON response has fields of the wrong type: {', '.join(mistyped)}",
        )

    return GenerationResult.ok(CandidateQuestion.from_dict(data, generation_method=generation_method))
