"""
Provider LLM clients

Thin streaming wrappers over the provider SDKs. ``LLMClientAgent`` consumes
``stream()`` on worker threads, so implementations may block.
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Literal, Optional

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "ollama": "qwen2.5:7b",
}

MAX_TOKENS = 2048


class LLMClient(ABC):
    """A chat model that streams its reply as text fragments."""

    model: str

    @abstractmethod
    def stream(self, system: str, user: str, temperature: float = 0.7) -> Iterator[str]:
        """Yield response text as it is generated."""
        pass


class OpenAIClient(LLMClient):
    """OpenAI chat completions, streamed."""

    def __init__(self, model: str = DEFAULT_MODELS["openai"], api_key: Optional[str] = None):
        try:
            from openai import OpenAI
        except ImportError:
            raise ImportError("Install with: pip install flowpatterns[openai]")

        self.model = model
        self.client = OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))

    def stream(self, system: str, user: str, temperature: float = 0.7) -> Iterator[str]:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            stream=True,
        )
        for chunk in completion:
            delta = chunk.choices[0].delta.content if chunk.choices else None
            if delta:
                yield delta


class AnthropicClient(LLMClient):
    """Anthropic messages API, streamed."""

    def __init__(self, model: str = DEFAULT_MODELS["anthropic"], api_key: Optional[str] = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError("Install with: pip install flowpatterns[anthropic]")

        self.model = model
        self.client = Anthropic(api_key=api_key or os.getenv("ANTHROPIC_API_KEY"))

    def stream(self, system: str, user: str, temperature: float = 0.7) -> Iterator[str]:
        with self.client.messages.stream(
            model=self.model,
            system=system,
            messages=[{"role": "user", "content": user}],
            temperature=temperature,
            max_tokens=MAX_TOKENS,
        ) as reply:
            yield from reply.text_stream


class OllamaClient(LLMClient):
    """Local Ollama server, streamed through ``generate``."""

    def __init__(self, model: str = DEFAULT_MODELS["ollama"], base_url: str = "http://localhost:11434"):
        try:
            from ollama import Client
        except ImportError:
            raise ImportError("Install with: pip install flowpatterns[ollama]")

        self.model = model
        self.client = Client(host=base_url)

    def stream(self, system: str, user: str, temperature: float = 0.7) -> Iterator[str]:
        # Sampling parameters go through 'options'
        for chunk in self.client.generate(
            model=self.model,
            system=system,
            prompt=user,
            options={"temperature": temperature},
            stream=True,
        ):
            yield chunk["response"]


_PROVIDERS = {
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
    "ollama": OllamaClient,
}


def create_llm_client(
    provider: Literal["openai", "anthropic", "ollama"] = "ollama",
    model: Optional[str] = None,
    **kwargs,
) -> LLMClient:
    """
    Create the streaming client for a provider.

    Args:
        provider: "openai", "anthropic" or "ollama"
        model: Model name (provider default when None)
        **kwargs: Passed to the client (``api_key``, ``base_url``)

    Raises:
        ValueError: On an unknown provider

    Usage:
        llm = create_llm_client(provider="ollama", model="qwen2.5:7b")
        for chunk in llm.stream(system="You plan trips", user="Paris, rainy"):
            print(chunk, end="")
    """
    provider = provider.lower()
    client_cls = _PROVIDERS.get(provider)
    if client_cls is None:
        raise ValueError(f"Unknown provider: {provider}. Available: {sorted(_PROVIDERS)}")
    return client_cls(model=model or DEFAULT_MODELS[provider], **kwargs)
