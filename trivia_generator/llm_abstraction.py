# trivia_generator/llm_abstraction.py
# Provider-agnostic single-prompt LLM interface for the question generators

"""
LLM Abstraction Layer

TOP layer the question generators talk to. One call is one attempt:
retries and cooldowns belong to the batch orchestrator, not here.

Responsibilities:
- Resolve a named profile (provider, model, temperature, max_tokens, timeout)
- Build OpenAI-format messages from prompt/system text
- Turn provider errors into a failed LLMResponse the caller can classify

Does NOT:
- Know about specific providers (llm_layer does this)
- Make HTTP calls directly (llm_layer does this)
- Parse question JSON (question_models does this)
"""

import time
import uuid
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from trivia_generator.llm_layer import ProviderRouter, LLMProviderError, ProviderTimeoutError


logger = logging.getLogger(__name__)


# ============================================================================
# Response Objects
# ============================================================================

@dataclass
class LLMResponse:
    """Result of one completion attempt."""
    content: str

    provider_used: str
    model_name: str
    request_id: str

    latency: float  # Seconds
    tokens: Dict[str, int] = field(default_factory=dict)

    success: bool = True
    error: Optional[Exception] = None

    @property
    def timed_out(self) -> bool:
        """Failed because the provider did not answer in time."""
        return isinstance(self.error, ProviderTimeoutError)

    @property
    def error_message(self) -> str:
        return str(self.error) if self.error else "Unknown error"

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        tokens_str = f"{self.tokens.get('total_tokens', 0)} tokens" if self.tokens else "unknown tokens"
        return (
            f"LLMResponse({status} {self.provider_used}/{self.model_name}, "
            f"{self.latency:.2f}s, {tokens_str})"
        )


# ============================================================================
# Client
# ============================================================================

class LLMClient:
    """
    Profile-driven prompt/response client.

    Usage:
        llm = LLMClient(ProviderRouter(APP_CONFIG.providers), APP_CONFIG.llm_profiles)
        response = llm.generate_simple(prompt="...", profile="generator")
        if not response.success:
            reason = "TIMEOUT" if response.timed_out else "API_ERROR"
    """

    def __init__(
        self,
        router: ProviderRouter,
        profiles: Optional[Dict[str, Dict[str, Any]]] = None,
        debug_mode: bool = False,
    ):
        self.router = router
        self.profiles = dict(profiles or {})
        self.debug_mode = debug_mode

    def generate_simple(self, prompt: str, system: str = "", profile: str = "generator") -> LLMResponse:
        """
        Single-turn completion using a named profile.

        Raises:
            ValueError: Unknown profile, or a profile without provider/model

        Provider failures never raise; they come back as ``success=False``
        with the exception in ``error``.
        """
        settings = self._get_profile(profile)
        provider = settings.get("provider")
        model = settings.get("model")
        if not provider or not model:
            raise ValueError(f"Profile '{profile}' must name a provider and a model")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        if self.debug_mode:
            logger.debug(f"LLM request: {provider}/{model}, profile={profile}, chars={len(system) + len(prompt)}")

        request_id = f"llm_{int(time.time())}_{uuid.uuid4().hex[:8]}"
        start_time = time.time()

        try:
            result = self.router.call(
                provider=provider,
                messages=messages,
                model=model,
                temperature=settings.get("temperature", 0.7),
                max_tokens=settings.get("max_tokens"),
                timeout=settings.get("timeout"),
            )
        except LLMProviderError as e:
            logger.error(f"LLM call failed: {provider}/{model} - {str(e)}")
            return LLMResponse(
                content="",
                provider_used=provider,
                model_name=model,
                request_id=request_id,
                latency=time.time() - start_time,
                success=False,
                error=e,
            )

        response = LLMResponse(
            content=result["content"],
            provider_used=provider,
            model_name=model,
            request_id=request_id,
            latency=time.time() - start_time,
            tokens=result.get("tokens", {}),
        )
        logger.info(f"LLM call succeeded: {response}")
        return response

    def _get_profile(self, profile_name: str) -> Dict[str, Any]:
        if profile_name not in self.profiles:
            raise ValueError(
                f"Profile '{profile_name}' not found. "
                f"Available profiles: {list(self.profiles.keys())}"
            )
        return self.profiles[profile_name]


__all__ = [
    "LLMClient",
    "LLMResponse",
]
