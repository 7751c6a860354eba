"""
Generation backend interface.

Every backend exposes a single :meth:`GenerationBackend.generate` method
that turns a prompt into text or raises one of the errors from
:mod:`zing.errors`. Backends are chosen by :func:`create_backend` from the
``[ai]`` configuration table.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from zing.config.loader import AIConfig
from zing.errors import GenerationTimeout


class Deadline:
    """Point in time after which a generation attempt must give up."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def request_timeout(self) -> float:
        """Seconds left for a network call, raising once nothing is left."""
        remaining = self.remaining()
        if remaining <= 0.0:
            raise GenerationTimeout(f"deadline of {self.seconds:g}s exceeded")
        return remaining


@dataclass(frozen=True)
class GenerationRequest:
    """Parameters of one generation attempt."""

    prompt: str
    model: str
    max_tokens: int
    temperature: float

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0 and 2")


class GenerationBackend(ABC):
    """Abstract text-generation backend."""

    def __init__(self, model: str, max_tokens: int, temperature: float) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(
            prompt=prompt,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    @abstractmethod
    def generate(self, prompt: str, deadline: Optional[Deadline] = None) -> str:
        """Return generated text for ``prompt``.

        Raises
        ------
        MissingCredential
            If the backend needs a credential that is not available.
        GenerationTimeout
            If ``deadline`` passes before a response arrives.
        BackendError
            On any other transport, status or parse failure.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        pass


def create_backend(ai: AIConfig) -> GenerationBackend:
    """Instantiate the backend selected by ``ai.provider``.

    ``"ollama"`` is accepted as an alias of ``"local"``.
    """
    # Imported here so each backend module can import this one
    from zing.llm.local_backend import LocalModelBackend
    from zing.llm.openai_backend import OpenAIBackend

    if ai.provider == "openai":
        return OpenAIBackend(model=ai.model, max_tokens=ai.max_tokens, temperature=ai.temperature)
    if ai.provider in ("local", "ollama"):
        return LocalModelBackend(
            url=ai.local_url,
            model=ai.model,
            max_tokens=ai.max_tokens,
            temperature=ai.temperature,
        )
    raise ValueError(f"unsupported provider: {ai.provider}")
