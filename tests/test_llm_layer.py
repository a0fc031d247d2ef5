"""Tests for the LLM provider layer and the provider-agnostic client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from trivia_generator.config import ProviderConfig
from trivia_generator.llm_abstraction import LLMClient
from trivia_generator.llm_layer import (
    AnthropicProvider,
    LLMProviderError,
    OllamaProvider,
    OpenAIProvider,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderModelError,
    ProviderRateLimitError,
    ProviderRouter,
    ProviderTimeoutError,
)

POST = "trivia_generator.llm_layer.requests.post"

MESSAGES = [
    {"role": "system", "content": "You are a trivia host."},
    {"role": "user", "content": "Write a question."},
]


def _http_response(json_data=None, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = "body"
    response.json.return_value = json_data
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(str(status))
    return response


def _anthropic() -> AnthropicProvider:
    return AnthropicProvider(ProviderConfig(base_url="https://llm.example.test/v1", api_key="sk-test", timeout=30.0))


class TestAnthropicProvider:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ProviderAuthError):
            AnthropicProvider(ProviderConfig(api_key=""))

    def test_call_lifts_system_and_joins_blocks(self) -> None:
        data = {
            "content": [{"type": "text", "text": "{\"success\": "}, {"type": "text", "text": "true}"}],
            "usage": {"input_tokens": 12, "output_tokens": 5},
        }
        with patch(POST, return_value=_http_response(data)) as post:
            result = _anthropic().call(MESSAGES, "claude-test", 0.7, None, None)

        assert result["content"] == "{\"success\": true}"
        assert result["tokens"] == {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17}

        url = post.call_args.args[0]
        kwargs = post.call_args.kwargs
        assert url == "https://llm.example.test/v1/messages"
        assert kwargs["timeout"] == 30.0
        assert kwargs["headers"]["x-api-key"] == "sk-test"
        assert kwargs["json"]["system"] == "You are a trivia host."
        assert kwargs["json"]["messages"] == [MESSAGES[1]]
        assert kwargs["json"]["max_tokens"] == 1000

    @pytest.mark.parametrize(
        "status, error",
        [
            (401, ProviderAuthError),
            (403, ProviderAuthError),
            (429, ProviderRateLimitError),
            (404, ProviderModelError),
            (500, LLMProviderError),
        ],
    )
    def test_http_status_mapping(self, status, error) -> None:
        with patch(POST, return_value=_http_response(status=status)):
            with pytest.raises(error):
                _anthropic().call(MESSAGES, "claude-test", 0.7, 100, None)

    def test_timeout_mapping(self) -> None:
        with patch(POST, side_effect=requests.exceptions.Timeout()):
            with pytest.raises(ProviderTimeoutError):
                _anthropic().call(MESSAGES, "claude-test", 0.7, 100, 5.0)

    def test_timeout_is_a_connection_error(self) -> None:
        assert issubclass(ProviderTimeoutError, ProviderConnectionError)

    def test_connection_error_mapping(self) -> None:
        with patch(POST, side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(ProviderConnectionError):
                _anthropic().call(MESSAGES, "claude-test", 0.7, 100, None)


class TestOtherProviders:
    def test_openai_parses_choices(self) -> None:
        data = {
            "choices": [{"message": {"content": "hello"}}],
            "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
        }
        provider = OpenAIProvider(ProviderConfig(api_key="sk-test"))
        with patch(POST, return_value=_http_response(data)):
            result = provider.call(MESSAGES, "gpt-test", 0.2, 50, None)
        assert result["content"] == "hello"
        assert result["tokens"]["total_tokens"] == 4

    def test_openai_unexpected_format(self) -> None:
        provider = OpenAIProvider(ProviderConfig(api_key="sk-test"))
        with patch(POST, return_value=_http_response({"error": "nope"})):
            with pytest.raises(LLMProviderError):
                provider.call(MESSAGES, "gpt-test", 0.2, 50, None)

    def test_ollama_chat_payload(self) -> None:
        provider = OllamaProvider(ProviderConfig(base_url="http://ollama:11434", options={"num_ctx": 4096}))
        data = {"message": {"content": "hi"}, "prompt_eval_count": 7, "eval_count": 2}
        with patch(POST, return_value=_http_response(data)) as post:
            result = provider.call(MESSAGES, "mistral", 0.7, 200, None)

        assert result["content"] == "hi"
        assert result["tokens"]["total_tokens"] == 9
        payload = post.call_args.kwargs["json"]
        assert post.call_args.args[0] == "http://ollama:11434/api/chat"
        assert payload["options"]["num_predict"] == 200
        assert payload["options"]["num_ctx"] == 4096


class TestProviderRouter:
    def test_skips_hosted_providers_without_keys(self) -> None:
        router = ProviderRouter({
            "anthropic": ProviderConfig(api_key=""),
            "openai": ProviderConfig(api_key=""),
            "ollama": ProviderConfig(base_url="http://localhost:11434"),
        })
        assert set(router.providers) == {"ollama"}

    def test_missing_key_surfaces_as_provider_error(self) -> None:
        router = ProviderRouter({"anthropic": ProviderConfig(api_key="")})
        with pytest.raises(ProviderAuthError):
            router.call("anthropic", MESSAGES, "claude-test", 0.7, 100, None)

    def test_unknown_provider(self) -> None:
        with pytest.raises(LLMProviderError):
            ProviderRouter({}).call("mystery", MESSAGES, "m", 0.7, 100, None)


class TestLLMClient:
    PROFILES = {"generator": {"provider": "anthropic", "model": "claude-test", "temperature": 0.5, "timeout": 20.0}}

    def test_generate_simple_uses_profile(self) -> None:
        router = MagicMock()
        router.call.return_value = {"content": "ok", "tokens": {"total_tokens": 3}}
        client = LLMClient(router, self.PROFILES)

        response = client.generate_simple(prompt="Write a question.", system="Be brief.", profile="generator")

        assert response.success and response.content == "ok"
        router.call.assert_called_once()
        kwargs = router.call.call_args.kwargs
        assert kwargs["provider"] == "anthropic"
        assert kwargs["model"] == "claude-test"
        assert kwargs["temperature"] == 0.5
        assert kwargs["timeout"] == 20.0
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Write a question."},
        ]

    def test_timeout_returns_failed_response(self) -> None:
        router = MagicMock()
        router.call.side_effect = ProviderTimeoutError("timed out")
        response = LLMClient(router, self.PROFILES).generate_simple(prompt="x")

        assert response.success is False
        assert response.timed_out is True
        assert response.error_message == "timed out"
        assert response.content == ""

    def test_other_provider_error_is_not_timeout(self) -> None:
        router = MagicMock()
        router.call.side_effect = ProviderRateLimitError("slow down")
        response = LLMClient(router, self.PROFILES).generate_simple(prompt="x")

        assert response.success is False
        assert response.timed_out is False
        router.call.assert_called_once()

    def test_unknown_profile(self) -> None:
        with pytest.raises(ValueError):
            LLMClient(MagicMock(), self.PROFILES).generate_simple(prompt="x", profile="missing")

    def test_profile_without_model(self) -> None:
        client = LLMClient(MagicMock(), {"generator": {"provider": "anthropic"}})
        with pytest.raises(ValueError):
            client.generate_simple(prompt="x")
