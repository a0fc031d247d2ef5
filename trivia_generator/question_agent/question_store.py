# trivia_generator/question_agent/question_store.py
# Purpose: Persistence writers for accepted questions

"""
Question Store

Narrow persistence boundary: insert a record, count approved AI questions,
and iterate stored questions (for optional cross-run duplicate seeding).
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, Iterator, List, Protocol

from pymongo.collection import Collection

from trivia_generator.question_agent.question_models import CandidateQuestion, ValidationStatus


logger = logging.getLogger(__name__)


EXISTING_PROJECTION = {"content": 1, "correct_answer": 1, "incorrect_answers": 1, "_id": 0}


class QuestionWriter(Protocol):
    """Persistence interface consumed by the pipeline."""

    def insert(self, candidate: CandidateQuestion) -> str: ...

    def count_approved(self, ai_generated: bool = True) -> int: ...

    def iter_existing(self) -> Iterator[Dict[str, Any]]: ...


class MongoQuestionWriter:
    """Writes accepted questions to the MongoDB questions collection."""

    def __init__(self, collection: Collection) -> None:
        self.collection = collection

    def insert(self, candidate: CandidateQuestion) -> str:
        result = self.collection.insert_one(candidate.to_record())
        logger.debug(f"Inserted question {result.inserted_id}")
        return str(result.inserted_id)

    def count_approved(self, ai_generated: bool = True) -> int:
        return self.collection.count_documents({
            "ai_generated": ai_generated,
            "validation_status": ValidationStatus.APPROVED.value,
        })

    def iter_existing(self) -> Iterator[Dict[str, Any]]:
        return iter(self.collection.find({}, EXISTING_PROJECTION))


class InMemoryQuestionWriter:
    """List-backed writer for dry runs and tests."""

    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    def insert(self, candidate: CandidateQuestion) -> str:
        record = candidate.to_record()
        record["_id"] = str(next(self._ids))
        self.records.append(record)
        return record["_id"]

    def count_approved(self, ai_generated: bool = True) -> int:
        return sum(
            1 for r in self.records
            if r["ai_generated"] == ai_generated
            and r["validation_status"] == ValidationStatus.APPROVED.value
        )

    def iter_existing(self) -> Iterator[Dict[str, Any]]:
        return iter(list(self.records))
