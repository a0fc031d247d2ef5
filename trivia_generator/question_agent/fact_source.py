# trivia_generator/question_agent/fact_source.py
# Purpose: Category facts from Brave Search with a static fallback

"""
Fact Source - Brave Search web results flattened into short text fragments.

Never raises: provider errors, missing keys and empty results all degrade
to a three-line fallback built from the category name.
"""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional

import requests

from trivia_generator.config import SearchConfig


logger = logging.getLogger(__name__)


CATEGORY_QUERIES: Dict[str, List[str]] = {
    "technology": [
        "fascinating technology facts",
        "surprising computer history",
        "tech invention stories",
        "tech history milestones",
        "interesting tech trivia",
    ],
    "science": [
        "surprising science discoveries",
        "amazing science facts",
        "unusual scientific breakthroughs",
        "mind-blowing science trivia",
        "unexpected science history",
    ],
    "literature": [
        "surprising facts about famous books",
        "interesting author trivia",
        "unexpected literature history",
        "famous book secrets",
        "literary world trivia",
    ],
    "pop_culture": [
        "surprising celebrity facts",
        "pop culture trivia secrets",
        "unexpected entertainment history",
        "fascinating celebrity trivia",
        "interesting entertainment facts",
    ],
    "history": [
        "surprising historical facts",
        "unusual history trivia",
        "lesser-known historical events",
        "amazing history discoveries",
        "strange but true history",
    ],
    "geography": [
        "surprising country facts",
        "unusual geographical features",
        "unexpected place names origins",
        "amazing geography trivia",
        "strange places in the world",
    ],
    "sports": [
        "unusual sports facts",
        "surprising sports history",
        "sports world records trivia",
        "unexpected sports rules",
        "interesting athlete facts",
    ],
    "gaming": [
        "surprising video game facts",
        "interesting gaming history",
        "unexpected facts about famous games",
        "video game development secrets",
        "gaming easter eggs trivia",
    ],
    "internet": [
        "surprising internet history",
        "interesting social media facts",
        "unexpected web development stories",
        "internet meme origins",
        "website history trivia",
    ],
    "movies": [
        "surprising movie production facts",
        "interesting film history",
        "unexpected movie trivia",
        "film production secrets",
        "famous actor trivia",
    ],
    "music": [
        "surprising music history facts",
        "interesting musician trivia",
        "unexpected recording facts",
        "famous song backstories",
        "music industry secrets",
    ],
}

DEFAULT_QUERIES = [
    "interesting trivia facts",
    "surprising facts trivia",
    "amazing trivia questions",
    "unexpected trivia answers",
    "fascinating facts quiz",
]


class SearchProviderError(Exception):
    """Search provider failed or returned nothing usable."""
    pass


def fallback_facts(category: str) -> List[str]:
    return [
        f"Looking for interesting facts about {category}",
        f"Amazing trivia about {category}",
        f"Surprising {category} knowledge",
    ]


class BraveFactSource:
    """Fetch category facts from the Brave Search web endpoint."""

    def __init__(
        self,
        config: SearchConfig,
        rng: Optional[random.Random] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self.session = session or requests.Session()

    @property
    def available(self) -> bool:
        return bool(self.config.api_key)

    def pick_query(self, category: str) -> str:
        queries = CATEGORY_QUERIES.get(category, DEFAULT_QUERIES)
        return self.rng.choice(queries)

    def fetch_facts(self, category: str) -> List[str]:
        """Return flattened titles/descriptions, or the fallback list."""
        if not self.available:
            logger.debug("BRAVE_API_KEY not set, using fallback facts")
            return fallback_facts(category)

        query = self.pick_query(category)
        logger.info(f"Searching Brave for: \"{query}\"")

        try:
            facts = self._search(query)
        except SearchProviderError as e:
            logger.warning(f"Brave search failed for {category}: {e}")
            return fallback_facts(category)

        logger.info(f"Found {len(facts)} search results to use as source material")
        return facts

    def _search(self, query: str) -> List[str]:
        headers = {
            "X-Subscription-Token": self.config.api_key,
            "Accept": "application/json",
        }
        try:
            response = self.session.get(
                self.config.base_url,
                params={"q": query},
                headers=headers,
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            raise SearchProviderError(f"timed out after {self.config.timeout}s")
        except requests.exceptions.RequestException as e:
            raise SearchProviderError(str(e))
        except ValueError as e:
            raise SearchProviderError(f"invalid JSON: {e}")

        if not isinstance(data, dict):
            raise SearchProviderError(f"unexpected response body: {type(data).__name__}")
        web = data.get("web") or {}
        if not isinstance(web, dict):
            raise SearchProviderError(f"unexpected 'web' section: {type(web).__name__}")
        results = web.get("results") or []
        if not isinstance(results, list):
            raise SearchProviderError(f"unexpected 'results' section: {type(results).__name__}")
        if self.config.max_results:
            results = results[: self.config.max_results]

        facts: List[str] = []
        for result in results:
            if not isinstance(result, dict):
                continue
            if result.get("title"):
                facts.append(str(result["title"]))
            if result.get("description"):
                facts.append(str(result["description"]))

        if not facts:
            raise SearchProviderError("no search results found")

        return facts
