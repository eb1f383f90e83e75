"""LLM client for Ollama / LM Studio / cloud providers.

Provides a single chat-completion interface over any OpenAI-compatible
server. The tutor talks to a local Ollama server by default.

Supported providers:
- ollama: Local Ollama server (OpenAI-compatible /v1 API)
- lmstudio: Local LM Studio server
- openai: OpenAI API
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
from openai import APIConnectionError, OpenAI

from aicademy.config.app_config import AppConfig, load_app_config

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

Provider = Literal["ollama", "lmstudio", "openai"]

# Used when a provider has no entry in the app config
PROVIDER_DEFAULTS: dict[str, dict[str, Any]] = {
    "ollama": {
        "base_url": "http://localhost:11434/v1",
        "api_key": "ollama",  # Ollama ignores the key but the SDK needs one
    },
    "lmstudio": {
        "base_url": "http://localhost:1234/v1",
        "api_key": "lm-studio",
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
    },
}


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: str = "ollama"
    base_url: str = "http://localhost:11434/v1"
    model: str = "llama3"
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: int = 60
    api_key: str | None = None

    @classmethod
    def from_app_config(
        cls, app_config: AppConfig | None = None, provider: str | None = None
    ) -> LLMConfig:
        """Build the client configuration from the tutor/providers sections."""
        if app_config is None:
            app_config = load_app_config()

        tutor = app_config.tutor
        provider = provider or tutor.default_provider
        defaults = PROVIDER_DEFAULTS.get(provider, {})
        provider_config = app_config.providers.get(provider)

        if provider_config is None:
            logger.warning("llm.provider_not_configured", provider=provider)
            base_url = defaults.get("base_url", cls.base_url)
            model = cls.model
            api_key = defaults.get("api_key")
        else:
            base_url = provider_config.base_url or defaults.get("base_url", cls.base_url)
            model = provider_config.default_model
            api_key = provider_config.get_api_key() or defaults.get("api_key")

        return cls(
            provider=provider,
            base_url=base_url,
            model=model,
            temperature=tutor.temperature,
            max_tokens=tutor.max_tokens,
            timeout=tutor.timeout,
            api_key=api_key,
        )


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for API call."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """Error during LLM interaction."""

    pass


class LLMConnectionError(LLMError):
    """Error connecting to LLM server."""

    pass


class LLMResponseError(LLMError):
    """Error in LLM response."""

    pass


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Chat-completion client over an OpenAI-compatible API."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        provider: str | None = None,
        model: str | None = None,
    ):
        """Initialize LLM client.

        Args:
            config: LLM configuration (built from the app config if not provided)
            provider: Provider to use instead of the tutor default
            model: Override model from config
        """
        if config is None:
            config = LLMConfig.from_app_config(provider=provider)

        self.config = config

        if model is not None:
            self.config.model = model

        self._client = OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key or "not-needed",
            timeout=self.config.timeout,
        )

        logger.info(
            "llm_client_initialized",
            provider=self.config.provider,
            model=self.config.model,
            base_url=self.config.base_url,
        )

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Send chat completion request.

        Args:
            messages: List of messages in conversation
            temperature: Override default temperature
            max_tokens: Override default max tokens

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMConnectionError: If cannot connect to server
            LLMResponseError: If response is empty
            LLMError: Any other failure of the call
        """
        if temperature is None:
            temperature = self.config.temperature
        if max_tokens is None:
            max_tokens = self.config.max_tokens

        request_kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        start_time = time.time()

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except APIConnectionError as e:
            raise LLMConnectionError(
                f"Could not connect to {self.config.provider} at {self.config.base_url}: {e}"
            ) from e
        except Exception as e:
            error_msg = str(e)
            if "Connection" in error_msg or "connect" in error_msg.lower():
                raise LLMConnectionError(
                    f"Could not connect to {self.config.provider} at {self.config.base_url}: {e}"
                ) from e
            raise LLMError(f"LLM call failed: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise LLMResponseError("Empty response from LLM")

        content = response.choices[0].message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(
            "llm_response",
            provider=self.config.provider,
            model=response.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=latency_ms,
        )

    def is_available(self) -> bool:
        """Check if LLM server is available.

        Returns:
            True if server responds, False otherwise
        """
        try:
            self._client.models.list()
            return True
        except Exception as e:
            logger.debug("llm.unavailable", provider=self.config.provider, error=str(e))
            return False
