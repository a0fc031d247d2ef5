# trivia_generator/question_agent/question_validator.py
# Purpose: Answer checks and duplicate detection for candidate questions

"""
Question Validator - Layer 3: structural answer checks, answer leakage,
and run-scoped duplicate detection.

All checks are pure functions of the candidate (and, for duplicates, the
current fingerprint set), so re-running them yields the same verdict.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from trivia_generator.question_agent.question_models import (
    CandidateQuestion,
    RejectionReason,
    ValidationFeedback,
    ValidationStatus,
)


logger = logging.getLogger(__name__)


COMMON_WORDS = frozenset({
    "the", "and", "that", "have", "for", "not", "with", "this", "but",
    "from", "they", "will", "would", "there", "their", "what", "about",
    "which", "when", "were", "some", "into", "other", "your", "more",
})

MAX_ANSWER_WORDS = 5
MIN_CONTENT_CHARS = 10
MAX_CONTENT_CHARS = 300
INCORRECT_ANSWER_COUNT = 3


# ============================================================================
# Answer Leakage
# ============================================================================


def _word_pattern(word: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


def leaks_answer(content: str, answer: str) -> bool:
    """True if the correct answer can be read off the question text."""
    if not content or not answer or not content.strip() or not answer.strip():
        return False

    content_lower = content.lower()
    answer_lower = answer.lower()

    if answer_lower in content_lower:
        return True

    if _word_pattern(answer_lower).search(content_lower):
        return True

    parts = answer_lower.split()
    if len(parts) > 1:
        for part in parts:
            if len(part) > 3 and part not in COMMON_WORDS:
                if _word_pattern(part).search(content_lower):
                    return True

    return False


# ============================================================================
# Structural Answer Checks
# ============================================================================


def validate_answers(candidate: CandidateQuestion) -> List[ValidationFeedback]:
    """Return error/warning feedback for the candidate's answers and text."""
    feedback: List[ValidationFeedback] = []

    if len(candidate.incorrect_answers) != INCORRECT_ANSWER_COUNT:
        feedback.append(ValidationFeedback(
            "error",
            f"Expected {INCORRECT_ANSWER_COUNT} incorrect answers, got {len(candidate.incorrect_answers)}",
        ))

    answers = candidate.all_answers
    if any(not a.strip() for a in answers):
        feedback.append(ValidationFeedback("error", "Answers cannot be empty"))

    normalized = [a.strip().lower() for a in answers]
    if len(set(normalized)) != len(normalized):
        feedback.append(ValidationFeedback("error", "Duplicate answers detected"))

    long_answers = [a for a in answers if len(a.split()) > MAX_ANSWER_WORDS]
    if long_answers:
        feedback.append(ValidationFeedback(
            "warning",
            f"Answers longer than {MAX_ANSWER_WORDS} words: {', '.join(long_answers)}",
        ))

    length = len(candidate.content)
    if length < MIN_CONTENT_CHARS or length > MAX_CONTENT_CHARS:
        feedback.append(ValidationFeedback(
            "warning",
            f"Question length {length} outside {MIN_CONTENT_CHARS}-{MAX_CONTENT_CHARS} characters",
        ))

    return feedback


def apply_answer_validation(candidate: CandidateQuestion) -> Optional[str]:
    """
    Set validation status from the structural checks.

    Returns an error message when the candidate must be rejected as
    INVALID_ANSWERS, otherwise None (status is approved or reviewing).
    """
    feedback = validate_answers(candidate)
    errors = [f.message for f in feedback if f.type == "error"]
    if errors:
        candidate.validation_status = ValidationStatus.REJECTED
        candidate.validation_feedback = feedback
        return "; ".join(errors)

    candidate.validation_feedback = feedback
    candidate.validation_status = ValidationStatus.REVIEWING if feedback else ValidationStatus.APPROVED
    return None


# ============================================================================
# Duplicate Detection
# ============================================================================


def _norm(value: Any) -> str:
    return str(value or "").strip().lower()


def question_fingerprint(content: str, correct_answer: str) -> str:
    return f"{_norm(content)}-{_norm(correct_answer)}"


def answer_set_fingerprint(answers: Iterable[str]) -> str:
    return "|".join(sorted({_norm(a) for a in answers}))


class DuplicateDetector:
    """Run-scoped uniqueness set of question and answer-set fingerprints."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()

    def __len__(self) -> int:
        return len(self._seen)

    @staticmethod
    def fingerprints(candidate: CandidateQuestion) -> Tuple[str, str]:
        return (
            question_fingerprint(candidate.content, candidate.correct_answer),
            answer_set_fingerprint(candidate.all_answers),
        )

    def is_duplicate(self, candidate: CandidateQuestion) -> bool:
        question_key, answer_key = self.fingerprints(candidate)
        return question_key in self._seen or answer_key in self._seen

    def record(self, candidate: CandidateQuestion) -> None:
        # Both keys computed before either is stored
        keys = self.fingerprints(candidate)
        self._seen.update(keys)

    def seed_from_records(self, records: Iterable[Dict[str, Any]]) -> int:
        """Load fingerprints from persisted question records."""
        seeded = 0
        for record in records:
            content = record.get("content")
            correct = record.get("correct_answer")
            if not content or not correct:
                continue
            answers = [correct] + list(record.get("incorrect_answers") or [])
            self._seen.update((
                question_fingerprint(content, correct),
                answer_set_fingerprint(answers),
            ))
            seeded += 1
        logger.info(f"Seeded duplicate detector with {seeded} stored questions")
        return seeded


def check_candidate(candidate: CandidateQuestion, detector: DuplicateDetector) -> Optional[Tuple[RejectionReason, str]]:
    """
    Run the acceptance checks in order (cheapest first).

    Returns (reason, message) for a rejection, or None when the candidate
    may be accepted.
    """
    error = apply_answer_validation(candidate)
    if error:
        return RejectionReason.INVALID_ANSWERS, error

    if leaks_answer(candidate.content, candidate.correct_answer):
        return RejectionReason.ANSWER_IN_QUESTION, "Answer found in question text"

    if detector.is_duplicate(candidate):
        return RejectionReason.DUPLICATE, "Duplicate question or answer set"

    return None
