# trivia_generator/question_agent/question_generator.py
# Purpose: LLM question generation (search-augmented and direct)

"""
Question Generators - Layer 2: prompt building and response classification.

Both generators share one output contract and one parser, so the direct
path produces exactly the same result shape as the search-augmented path.
Each call makes one LLM request; retries belong to the orchestrator.
"""

from __future__ import annotations

import logging
from typing import List

from trivia_generator.llm_abstraction import LLMClient
from trivia_generator.question_agent.question_models import (
    GenerationResult,
    RejectionReason,
    map_category,
    map_difficulty,
    parse_question_response,
)


logger = logging.getLogger(__name__)


OUTPUT_CONTRACT = """Your response MUST be in valid JSON format with this EXACT structure:

{{
  "success": true,
  "data": {{
    "content": "Question text here (1-2 sentences)",
    "category": "{category}",
    "difficulty": "{difficulty}",
    "correct_answer": "Correct answer here (keep brief, 1-5 words)",
    "incorrect_answers": ["Wrong answer 1", "Wrong answer 2", "Wrong answer 3"],
    "validation_status": "approved"
  }}
}}"""

LEAKAGE_EXAMPLE = """For example, this is a BAD question:
"The Guinness Book of World Records was originally created by the Guinness beer company to settle bar disputes."
with the answer "Guinness" - because the answer is in the question.

A better version would be:
"This beer company created a famous book of records originally intended to settle pub disputes."
with the answer "Guinness\""""

SEARCH_PROMPT = """Generate a {difficulty} trivia question about {category} based on the following search results.
{contract}

Requirements:
- Questions must be 1-2 sentences
- Answers must be 1-5 words maximum
- Make the question interesting and suitable for a trivia game
- All answers must be distinct from each other
- Focus on verified facts, avoid subjective or debatable answers
- CRITICAL: The correct answer must NOT appear in the question text

{leakage_example}

Here are the search results to base your question on:
{facts}

IMPORTANT: Return ONLY valid JSON with NO extra text or explanation."""

DIRECT_PROMPT = """Generate a {difficulty} trivia question about {category}.
You are a witty trivia host who knows your topics deeply but keeps questions punchy and interesting.

Category Context:
{focus}

Question Requirements:
- Questions must be 1-2 sentences maximum
- Answers must be 1-5 words maximum
- Focus on surprising facts and "didn't know that!" moments
- Easy: Test recognition of interesting basics (90% of players should know)
- Medium: Test knowledge of cool relationships or impacts (50% should know)
- Hard: Test specialist knowledge of fascinating details (only 20% should know)
- Favor specific facts over general knowledge
- Make wrong answers plausible but clearly incorrect
- Ensure answers are distinct from each other
- Avoid subjective or debatable answers
- CRITICAL: The correct answer must NOT appear in the question text

{leakage_example}

{contract}

IMPORTANT: Return ONLY valid JSON with NO extra text or explanation."""


FOCUS_AREAS = {
    "technology": [
        "Tech fails and unexpected consequences",
        "Quirky startup stories and founder anecdotes",
        "AI doing surprising things",
        "Tech that seemed futuristic but flopped",
        "Hidden features in everyday devices",
        "Easter eggs in popular software",
        "Strange patents and weird innovations",
        "Behind-the-scenes tech industry drama",
        "Tech predictions that were hilariously wrong",
    ],
    "science": [
        "Weird scientific discoveries",
        "Animals with unexpected abilities",
        "Space exploration surprises",
        "Failed experiments that led to breakthroughs",
        "Scientists who were ahead of their time",
        "Nature's oddities and mysteries",
        "Accidental discoveries",
        "Mind-bending quantum facts",
        "\"Wait, that's actually true?\" science facts",
    ],
    "pop_culture": [
        "Viral moments and their aftermath",
        "Celebrity tech ventures",
        "Social media milestones",
        "Influencer impact stories",
        "Unexpected brand collaborations",
        "Platform wars and drama",
        "Reality TV tech moments",
        "Cultural phenomena origins",
        "Brand marketing campaigns that went viral",
    ],
    "history": [
        "Historical figures with surprising connections to modern life",
        "History facts that sound fake but are real",
        "Origin stories of everyday objects and customs",
        "Historical coincidences that seem impossible",
        "Surprising historical firsts that most don't know",
        "Weird laws that actually existed",
        "Unexpected historical friendships and rivalries",
        "History behind common phrases we still use",
    ],
    "geography": [
        "Strange borders and geographical oddities",
        "Amazing natural wonders most haven't heard of",
        "Surprising facts about famous landmarks",
        "Countries with unexpected features or laws",
        "Cities with surprising sister cities",
        "Geography behind popular vacation destinations",
        "Islands with unique characteristics",
        "Geographical name origins with surprising stories",
    ],
    "sports": [
        "Weird sports rules most fans don't know",
        "Surprising athlete career changes",
        "Sports traditions with unexpected origins",
        "Record-breaking sports moments everyone remembers",
        "Sports team name origins and meanings",
        "Athlete superstitions and pre-game rituals",
        "Surprising sports facts from the Olympics",
        "Unusual sports played around the world",
    ],
    "gaming": [
        "Easter eggs in popular games everyone's played",
        "Hidden features in classic video games",
        "Gaming world records anyone can appreciate",
        "Origin stories of iconic game characters",
        "Mobile gaming surprising facts and milestones",
        "Gaming references in movies and TV shows",
        "Failed gaming products with interesting stories",
        "Gaming industry statistics that surprise non-gamers",
    ],
    "internet": [
        "Popular website origin stories",
        "Internet meme origins and evolutions",
        "Social media features' surprising origins",
        "Viral video backstories",
        "Early internet culture everyone remembers",
        "Email and messaging platform evolution",
        "Internet trends that disappeared suddenly",
        "Domain name battles and interesting sales",
    ],
    "movies": [
        "Movie mistakes in blockbusters everyone's seen",
        "Famous movie quotes most people misremember",
        "Surprising cameos in popular films",
        "Movie sequel facts that surprise most viewers",
        "Alternate endings to famous movies",
        "Surprising behind-the-scenes movie facts",
        "Movies based on surprising true stories",
        "Actors who nearly played iconic roles",
    ],
    "music": [
        "Hidden messages in popular songs",
        "One-hit wonder surprising facts",
        "Band name origins with unexpected stories",
        "Songs with misunderstood lyrics everyone gets wrong",
        "Surprising artist collaborations",
        "Music video secrets and interesting facts",
        "Songs that went viral for unexpected reasons",
        "Music streaming records and milestones",
    ],
    "literature": [
        "Famous books with surprising origins",
        "Bestseller facts that surprise casual readers",
        "Children's books with unexpected messages",
        "Book-to-movie adaptation differences",
        "Author pseudonyms and their reasons",
        "Rejected manuscripts that became classics",
        "Surprising connections between famous books",
        "Books banned for unexpected reasons",
    ],
}

DEFAULT_FOCUS = "Focus on verified facts and surprising connections within this topic area."

# Human-readable labels used in the focus header
FOCUS_LABELS = {
    "technology": "tech",
    "pop_culture": "pop culture",
    "movies": "movie",
}


def focus_context(category: str) -> str:
    """Themed guidance used by direct generation in place of search facts."""
    areas = FOCUS_AREAS.get(category)
    if not areas:
        return DEFAULT_FOCUS
    label = FOCUS_LABELS.get(category, category)
    lines = [f"Focus areas for engaging {label} questions:"]
    lines.extend(f"- {area}" for area in areas)
    return "\n".join(lines)


class LLMQuestionGenerator:
    """Shared LLM call and response classification."""

    generation_method = "llm"

    def __init__(self, llm: LLMClient, profile: str = "generator") -> None:
        self.llm = llm
        self.profile = profile

    def _complete(self, prompt: str, category: str, difficulty: str) -> GenerationResult:
        response = self.llm.generate_simple(prompt=prompt, profile=self.profile)

        if not response.success:
            reason = RejectionReason.TIMEOUT if response.timed_out else RejectionReason.API_ERROR
            return GenerationResult.fail(reason, response.error_message)

        result = parse_question_response(response.content, generation_method=self.generation_method)
        if not result.success:
            logger.warning(f"{result.error.reason.value}: {result.error.message}")
            return result

        # Requested keys win so run counts and stored rows agree
        candidate = result.candidate
        requested_category = map_category(category)
        requested_difficulty = map_difficulty(difficulty)
        if candidate.category != requested_category or candidate.difficulty != requested_difficulty:
            logger.debug(
                f"Model labelled question {candidate.category.value}/{candidate.difficulty.value}, "
                f"keeping requested {requested_category.value}/{requested_difficulty.value}"
            )
        candidate.category = requested_category
        candidate.difficulty = requested_difficulty
        return result


class SearchQuestionGenerator(LLMQuestionGenerator):
    """Question from search facts plus category and difficulty."""

    generation_method = "search"

    def __init__(self, llm: LLMClient, profile: str = "generator", fact_chars: int = 1500) -> None:
        super().__init__(llm, profile)
        self.fact_chars = fact_chars

    def build_prompt(self, facts: List[str], category: str, difficulty: str) -> str:
        return SEARCH_PROMPT.format(
            category=category,
            difficulty=difficulty,
            contract=OUTPUT_CONTRACT.format(category=category, difficulty=difficulty),
            leakage_example=LEAKAGE_EXAMPLE,
            facts="\n".join(facts)[: self.fact_chars],
        )

    def generate(self, facts: List[str], category: str, difficulty: str) -> GenerationResult:
        return self._complete(self.build_prompt(facts, category, difficulty), category, difficulty)


class DirectQuestionGenerator(LLMQuestionGenerator):
    """Degraded-context path: focus-area guidance instead of search facts."""

    generation_method = "direct"

    def build_prompt(self, category: str, difficulty: str) -> str:
        return DIRECT_PROMPT.format(
            category=category,
            difficulty=difficulty,
            focus=focus_context(category),
            leakage_example=LEAKAGE_EXAMPLE,
            contract=OUTPUT_CONTRACT.format(category=category, difficulty=difficulty),
        )

    def generate(self, category: str, difficulty: str) -> GenerationResult:
        return self._complete(self.build_prompt(category, difficulty), category, difficulty)
