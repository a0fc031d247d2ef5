"""Tests for the Brave Search fact source."""

from __future__ import annotations

import random
from unittest.mock import MagicMock

import pytest
import requests

from trivia_generator.config import SearchConfig
from trivia_generator.question_agent.fact_source import (
    CATEGORY_QUERIES,
    DEFAULT_QUERIES,
    BraveFactSource,
    fallback_facts,
)


def _config(api_key: str = "test-key", max_results=None) -> SearchConfig:
    return SearchConfig(
        api_key=api_key,
        base_url="https://search.example.test/web",
        timeout=5.0,
        max_results=max_results,
    )


def _session(payload=None, exc: Exception = None) -> MagicMock:
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        response = MagicMock()
        response.json.return_value = payload
        session.get.return_value = response
    return session


RESULTS = {
    "web": {
        "results": [
            {"title": "Saturn has 146 moons", "description": "More than any other planet."},
            {"title": "Venus spins backwards", "description": ""},
            {"title": "", "description": "A day on Mercury lasts 176 Earth days."},
        ]
    }
}


class TestFallback:
    def test_fallback_lines(self) -> None:
        assert fallback_facts("science") == [
            "Looking for interesting facts about science",
            "Amazing trivia about science",
            "Surprising science knowledge",
        ]

    def test_no_key_skips_network(self) -> None:
        session = _session(RESULTS)
        source = BraveFactSource(_config(api_key=""), session=session)

        assert source.available is False
        assert source.fetch_facts("science") == fallback_facts("science")
        session.get.assert_not_called()


class TestSearch:
    def test_flattens_titles_and_descriptions(self) -> None:
        session = _session(RESULTS)
        source = BraveFactSource(_config(), rng=random.Random(3), session=session)

        facts = source.fetch_facts("science")

        assert facts == [
            "Saturn has 146 moons",
            "More than any other planet.",
            "Venus spins backwards",
            "A day on Mercury lasts 176 Earth days.",
        ]
        kwargs = session.get.call_args.kwargs
        assert kwargs["headers"]["X-Subscription-Token"] == "test-key"
        assert kwargs["headers"]["Accept"] == "application/json"
        assert kwargs["params"]["q"] in CATEGORY_QUERIES["science"]
        assert kwargs["timeout"] == 5.0

    def test_max_results_limits_results(self) -> None:
        source = BraveFactSource(_config(max_results=1), session=_session(RESULTS))
        assert source.fetch_facts("science") == ["Saturn has 146 moons", "More than any other planet."]

    def test_unknown_category_uses_generic_queries(self) -> None:
        source = BraveFactSource(_config(), rng=random.Random(0))
        assert source.pick_query("astrology") in DEFAULT_QUERIES

    @pytest.mark.parametrize(
        "session",
        [
            _session(exc=requests.exceptions.Timeout("slow")),
            _session(exc=requests.exceptions.ConnectionError("refused")),
            _session({"web": {"results": []}}),
            _session({}),
        ],
    )
    def test_failures_degrade_to_fallback(self, session) -> None:
        source = BraveFactSource(_config(), session=session)
        assert source.fetch_facts("history") == fallback_facts("history")

    @pytest.mark.parametrize(
        "payload",
        [
            [{"title": "Saturn has 146 moons"}],
            {"web": ["Saturn has 146 moons"]},
            {"web": {"results": {"title": "Saturn has 146 moons"}}},
            "plain text body",
        ],
    )
    def test_unexpected_body_shape_degrades_to_fallback(self, payload) -> None:
        source = BraveFactSource(_config(), session=_session(payload))
        assert source.fetch_facts("science") == fallback_facts("science")

    def test_non_string_fields_coerced(self) -> None:
        payload = {"web": {"results": [{"title": 1969, "description": ["moon", "landing"]}]}}
        source = BraveFactSource(_config(), session=_session(payload))
        facts = source.fetch_facts("history")
        assert facts == ["1969", "['moon', 'landing']"]
        assert all(isinstance(f, str) for f in facts)

    def test_http_error_degrades_to_fallback(self) -> None:
        session = _session(RESULTS)
        session.get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("429")
        source = BraveFactSource(_config(), session=session)
        assert source.fetch_facts("music") == fallback_facts("music")

    def test_invalid_json_degrades_to_fallback(self) -> None:
        session = _session()
        session.get.return_value.json.side_effect = ValueError("Expecting value")
        source = BraveFactSource(_config(), session=session)
        assert source.fetch_facts("music") == fallback_facts("music")
