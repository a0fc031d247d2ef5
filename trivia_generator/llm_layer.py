# trivia_generator/llm_layer.py
# Provider-specific LLM implementations and routing

"""
LLM Provider Layer

This is the BOTTOM layer that handles provider-specific details.
Each provider has its own class with specific HTTP calls and error handling.

Responsibilities:
- Provider-specific HTTP calls
- Format conversion (OpenAI messages <-> provider format)
- Provider-specific error handling
- Provider-specific configuration

Does NOT:
- Retry or cool down after failures (the question pipeline does this)
- Resolve named profiles (llm_abstraction does this)
- Know about question generation (llm_abstraction is the interface)
"""

import requests
import logging
from typing import List, Dict, Any, Optional
from abc import ABC, abstractmethod

from trivia_generator.config import ProviderConfig


logger = logging.getLogger(__name__)


# ============================================================================
# Exceptions
# ============================================================================

class LLMProviderError(Exception):
    """Base exception for provider errors."""
    pass


class ProviderConnectionError(LLMProviderError):
    """Provider is unreachable."""
    pass


class ProviderTimeoutError(ProviderConnectionError):
    """Provider did not answer within the request timeout."""
    pass


class ProviderAuthError(LLMProviderError):
    """Authentication failed (API key, etc.)."""
    pass


class ProviderRateLimitError(LLMProviderError):
    """Rate limit exceeded."""
    pass


class ProviderModelError(LLMProviderError):
    """Model not available or invalid."""
    pass


# ============================================================================
# Base Provider Interface
# ============================================================================

class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    All providers must implement the call() method.
    """

    default_base_url = ""
    default_timeout = 120.0

    def __init__(self, config: Optional[ProviderConfig] = None):
        """
        Initialize provider with configuration.

        Args:
            config: ProviderConfig for this provider (None uses defaults)
        """
        self.config = config or ProviderConfig()
        self.base_url = (self.config.base_url or self.default_base_url).rstrip("/")
        self.api_key = self.config.api_key
        self.timeout = self.config.timeout or self.default_timeout
        self.options = self.config.options or {}

    @abstractmethod
    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make provider-specific call.

        Returns:
            Dict with:
                - content: Generated text
                - tokens: Dict with prompt_tokens, completion_tokens, total_tokens
                - raw: Raw provider response

        Raises:
            LLMProviderError: On provider-specific errors
        """
        pass

    def _post(self, name: str, url: str, timeout: Optional[float], **request_kwargs) -> requests.Response:
        """POST with the shared timeout/connection error mapping."""
        effective_timeout = timeout or self.timeout
        try:
            response = requests.post(url, timeout=effective_timeout, **request_kwargs)
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout:
            raise ProviderTimeoutError(
                f"{name} request timed out after {effective_timeout}s"
            )

        except requests.exceptions.ConnectionError as e:
            raise ProviderConnectionError(
                f"Cannot connect to {name} at {self.base_url}: {str(e)}"
            )

        except requests.exceptions.HTTPError:
            status = response.status_code
            if status == 401 or status == 403:
                raise ProviderAuthError(f"{name} rejected the API key (HTTP {status})")
            elif status == 429:
                raise ProviderRateLimitError(f"{name} rate limit exceeded")
            elif status == 404:
                raise ProviderModelError(f"{name} endpoint or model not found: {response.text}")
            else:
                raise LLMProviderError(f"{name} HTTP error {status}: {response.text}")

    @staticmethod
    def _json(name: str, response: requests.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise LLMProviderError(f"Invalid JSON from {name}: {str(e)}")


# ============================================================================
# Anthropic Provider
# ============================================================================

class AnthropicProvider(LLMProvider):
    """
    Anthropic Messages API provider.

    System messages are lifted into the top-level ``system`` field.
    """

    default_base_url = "https://api.anthropic.com/v1"
    default_timeout = 60.0

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config)
        if not self.api_key:
            raise ProviderAuthError("Anthropic API key not configured")
        self.version = self.options.get("anthropic_version", "2023-06-01")

    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        **kwargs
    ) -> Dict[str, Any]:
        """Call Anthropic /messages."""
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        chat = [m for m in messages if m["role"] != "system"]

        payload = {
            "model": model,
            "max_tokens": max_tokens or 1000,
            "temperature": temperature,
            "messages": chat,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)

        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.version,
        }

        response = self._post("Anthropic", f"{self.base_url}/messages", timeout, headers=headers, json=payload)
        data = self._json("Anthropic", response)

        blocks = data.get("content") or []
        content = "".join(b.get("text", "") for b in blocks if isinstance(b, dict))

        tokens = {}
        usage = data.get("usage") or {}
        if usage:
            tokens = {
                "prompt_tokens": usage.get("input_tokens", 0),
                "completion_tokens": usage.get("output_tokens", 0),
            }
            tokens["total_tokens"] = tokens["prompt_tokens"] + tokens["completion_tokens"]

        return {
            "content": content,
            "tokens": tokens,
            "raw": data
        }


# ============================================================================
# OpenAI Provider
# ============================================================================

class OpenAIProvider(LLMProvider):
    """
    OpenAI provider implementation.

    Direct HTTP to /v1/chat/completions.
    """

    default_base_url = "https://api.openai.com/v1"
    default_timeout = 30.0

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config)
        if not self.api_key:
            raise ProviderAuthError("OpenAI API key not configured")

    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        **kwargs
    ) -> Dict[str, Any]:
        """Call OpenAI API."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature
        }

        if max_tokens:
            payload["max_tokens"] = max_tokens

        payload.update(kwargs)

        response = self._post("OpenAI", f"{self.base_url}/chat/completions", timeout, headers=headers, json=payload)
        data = self._json("OpenAI", response)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise LLMProviderError(f"Unexpected OpenAI response format: {list(data.keys())}")

        tokens = {}
        if "usage" in data:
            tokens = {
                "prompt_tokens": data["usage"].get("prompt_tokens", 0),
                "completion_tokens": data["usage"].get("completion_tokens", 0),
                "total_tokens": data["usage"].get("total_tokens", 0)
            }

        return {
            "content": content,
            "tokens": tokens,
            "raw": data
        }


# ============================================================================
# Ollama Provider
# ============================================================================

class OllamaProvider(LLMProvider):
    """
    Ollama provider implementation.

    Uses Ollama's /api/chat endpoint with OpenAI-compatible format.
    """

    default_base_url = "http://localhost:11434"
    default_timeout = 120.0

    def call(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        **kwargs
    ) -> Dict[str, Any]:
        """Call Ollama API."""
        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": temperature,
            }
        }

        if max_tokens and max_tokens > 0:
            payload["options"]["num_predict"] = max_tokens

        num_ctx = kwargs.get("num_ctx") or self.options.get("num_ctx")
        repeat_penalty = kwargs.get("repeat_penalty") or self.options.get("repeat_penalty")
        if num_ctx:
            payload["options"]["num_ctx"] = num_ctx
        if repeat_penalty:
            payload["options"]["repeat_penalty"] = repeat_penalty

        response = self._post("Ollama", f"{self.base_url}/api/chat", timeout, json=payload)
        data = self._json("Ollama", response)

        if "message" in data and "content" in data["message"]:
            content = data["message"]["content"]
        elif "response" in data:
            # /api/generate format
            content = data["response"]
        else:
            raise LLMProviderError(f"Unexpected Ollama response format: {list(data.keys())}")

        tokens = {}
        if "prompt_eval_count" in data:
            tokens["prompt_tokens"] = data["prompt_eval_count"]
        if "eval_count" in data:
            tokens["completion_tokens"] = data["eval_count"]
        if tokens:
            tokens["total_tokens"] = tokens.get("prompt_tokens", 0) + tokens.get("completion_tokens", 0)

        return {
            "content": content,
            "tokens": tokens,
            "raw": data
        }


# ============================================================================
# Provider Router
# ============================================================================

PROVIDER_CLASSES = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "ollama": OllamaProvider,
}


class ProviderRouter:
    """
    Routes calls to appropriate provider based on provider name.

    Manages provider instances and configuration.
    """

    def __init__(self, provider_configs: Optional[Dict[str, ProviderConfig]] = None):
        """Initialize router with provider configs (name -> ProviderConfig)."""
        self.provider_configs = dict(provider_configs or {})
        self.providers: Dict[str, LLMProvider] = {}
        self._init_providers()

    def _init_providers(self) -> None:
        """Initialize providers from configuration."""
        for name, config in self.provider_configs.items():
            # Hosted providers are skipped until a key is configured.
            if name in ("anthropic", "openai") and not config.api_key:
                logger.info(f"Skipping provider {name}: API key not configured")
                continue
            try:
                provider_class = self._get_provider_class(name)
                self.providers[name] = provider_class(config)
                logger.info(f"Initialized provider: {name}")
            except (LLMProviderError, ValueError) as e:
                logger.error(f"Failed to initialize provider {name}: {e}")

    def _get_provider_class(self, name: str) -> type:
        """Get provider class by name."""
        if name not in PROVIDER_CLASSES:
            raise ValueError(
                f"Unknown provider '{name}'. "
                f"Available: {list(PROVIDER_CLASSES.keys())}"
            )

        return PROVIDER_CLASSES[name]

    def call(
        self,
        provider: str,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        timeout: Optional[float],
        **kwargs
    ) -> Dict[str, Any]:
        """
        Route call to appropriate provider.

        Raises:
            LLMProviderError: Provider-specific errors
        """
        if provider not in self.providers:
            logger.warning(f"Provider '{provider}' not pre-configured, initializing with defaults")
            try:
                provider_class = self._get_provider_class(provider)
                self.providers[provider] = provider_class(self.provider_configs.get(provider))
            except ValueError as e:
                raise LLMProviderError(f"Cannot initialize provider '{provider}': {e}")

        return self.providers[provider].call(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs
        )


__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderAuthError",
    "ProviderRateLimitError",
    "ProviderModelError",
    "ProviderRouter",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
]
