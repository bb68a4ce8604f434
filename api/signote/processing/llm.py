"""LLM service with provider abstraction for structured (JSON) generation."""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import ollama
    import openai


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OLLAMA = "ollama"
    OPENAI = "openai"


@dataclass
class LLMResult:
    """Metadata about one LLM call."""

    content: str
    model: str
    provider: LLMProvider


def _messages(prompt: str, system_prompt: str | None) -> list[dict[str, str]]:
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


def _parse_json_object(content: str) -> dict[str, Any]:
    """Parse a JSON object, raising ValueError for anything else."""
    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON response: {e}") from e
    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
    return result


class LLMProviderBase(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """Generate a JSON object from a prompt."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model name used by this provider."""
        ...


class OllamaLLMProvider(LLMProviderBase):
    """LLM provider using local Ollama."""

    def __init__(self, model: str = "llama3.2", host: str | None = None):
        self.model = model
        self.host = host or os.getenv("OLLAMA_HOST", "http://localhost:11434")
        self._client: ollama.AsyncClient | None = None

    def _get_client(self) -> ollama.AsyncClient:
        if self._client is None:
            import ollama

            self._client = ollama.AsyncClient(host=self.host)
        return self._client

    async def generate_json(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """Generate JSON using Ollama's format enforcement."""
        client = self._get_client()

        try:
            response = await client.chat(
                model=self.model,
                messages=_messages(prompt, system_prompt),  # type: ignore[arg-type]
                options={"temperature": temperature},
                format="json",
            )
        except Exception as e:
            raise ConnectionError(f"Failed to connect to Ollama at {self.host}: {e}") from e

        return _parse_json_object(str(response["message"]["content"]))  # type: ignore[index]

    @property
    def model_name(self) -> str:
        return self.model


class OpenAILLMProvider(LLMProviderBase):
    """LLM provider using OpenAI API."""

    def __init__(self, model: str = "gpt-4o", api_key: str | None = None):
        self.model = model
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._client: openai.AsyncOpenAI | None = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ValueError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            import openai

            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate_json(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """Generate JSON using OpenAI's json_object response format."""
        import openai

        client = self._get_client()

        try:
            response = await client.chat.completions.create(  # type: ignore[call-overload]
                model=self.model,
                messages=_messages(prompt, system_prompt),
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.APIError as e:
            raise ConnectionError(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content
        if not content:
            raise ValueError("No content in OpenAI response")
        return _parse_json_object(content)

    @property
    def model_name(self) -> str:
        return self.model


class LLMService:
    """Main LLM service with provider abstraction."""

    def __init__(
        self,
        provider: LLMProvider | None = None,
        model: str | None = None,
    ):
        provider_str = provider.value if provider else os.getenv("LLM_PROVIDER", "openai")
        self.provider_type = LLMProvider(provider_str.lower())

        default_model = "llama3.2" if self.provider_type == LLMProvider.OLLAMA else "gpt-4o"
        self.model = model or os.getenv("LLM_MODEL", default_model)
        self._provider: LLMProviderBase | None = None

    def _get_provider(self) -> LLMProviderBase:
        if self._provider is None:
            if self.provider_type == LLMProvider.OLLAMA:
                self._provider = OllamaLLMProvider(model=self.model)
            else:
                self._provider = OpenAILLMProvider(model=self.model)
        return self._provider

    async def generate_json(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.0,
    ) -> tuple[dict[str, Any], LLMResult]:
        """Generate JSON output from a prompt.

        Returns a tuple of (parsed_json, llm_result).
        """
        provider = self._get_provider()

        json_result = await provider.generate_json(
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
        )

        return json_result, LLMResult(
            content=json.dumps(json_result),
            model=provider.model_name,
            provider=self.provider_type,
        )


# Global service instance
_llm_service: LLMService | None = None


def get_llm_service(
    provider: LLMProvider | None = None,
    model: str | None = None,
) -> LLMService:
    """Get or create the global LLM service."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService(provider=provider, model=model)
    return _llm_service


def reset_llm_service() -> None:
    """Reset the global LLM service (useful for testing)."""
    global _llm_service
    _llm_service = None
