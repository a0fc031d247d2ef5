# trivia_generator/question_agent/__init__.py
# Purpose: Question generation components (sampling, generation, validation, orchestration)

"""
Question Agent

Layer 1: models and parsing helpers
Layer 2: fact source and LLM question generators
Layer 3: sampler, duplicate detection, answer checks
Layer 4: batch orchestration
"""

from trivia_generator.question_agent.question_models import (
    Category,
    Difficulty,
    ValidationStatus,
    RejectionReason,
    ValidationFeedback,
    CandidateQuestion,
    GenerationResult,
    TargetDistribution,
)
from trivia_generator.question_agent.question_pipeline import (
    QuestionGenerationPipeline,
    RunSummary,
)

__all__ = [
    "Category",
    "Difficulty",
    "ValidationStatus",
    "RejectionReason",
    "ValidationFeedback",
    "CandidateQuestion",
    "GenerationResult",
    "TargetDistribution",
    "QuestionGenerationPipeline",
    "RunSummary",
]
