"""
Client for the hosted OpenAI chat completion API.

The API key is read from ``OPENAI_API_KEY``. Its absence raises
:class:`MissingCredential` when the backend is created, before any network
traffic. Each call sends one streamed chat completion request carrying the
prompt as a single user message; the stream is abandoned as soon as the
attempt deadline has passed.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, List, Optional

import httpx
import openai
from openai import OpenAI

from zing.errors import BackendError, GenerationTimeout, MissingCredential
from zing.llm.base import Deadline, GenerationBackend


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


API_KEY_ENV = "OPENAI_API_KEY"


class OpenAIBackend(GenerationBackend):
    """Backend for the hosted chat completion API.

    ``base_url`` points the client at another OpenAI-compatible server; by
    default the SDK's own endpoint is used.
    """

    def __init__(
        self,
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, max_tokens=max_tokens, temperature=temperature)
        self.api_key = api_key or os.environ.get(API_KEY_ENV)
        if not self.api_key:
            raise MissingCredential(API_KEY_ENV)
        # Retries are owned by the orchestrator, never by the SDK
        self._client = OpenAI(api_key=self.api_key, base_url=base_url, max_retries=0)

    @property
    def name(self) -> str:
        return f"OpenAI ({self.model})"

    def generate(self, prompt: str, deadline: Optional[Deadline] = None) -> str:
        request = self.build_request(prompt)
        client = self._client
        if deadline is not None:
            client = client.with_options(timeout=deadline.request_timeout())
        logger.debug("Sending chat completion request for model %s", request.model)
        try:
            stream = client.chat.completions.create(
                model=request.model,
                messages=[{"role": "user", "content": request.prompt}],
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                stream=True,
            )
            with stream:
                return self._collect(stream, deadline)
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise GenerationTimeout("chat completion request timed out") from exc
        except (openai.OpenAIError, httpx.HTTPError) as exc:
            if deadline is not None and deadline.expired():
                raise GenerationTimeout("chat completion request timed out") from exc
            raise BackendError(f"error generating with OpenAI: {exc}") from exc

    def _collect(self, stream: Iterable, deadline: Optional[Deadline]) -> str:
        """Join the streamed content deltas into the message text."""
        parts: List[str] = []
        received = False
        for chunk in stream:
            if deadline is not None and deadline.expired():
                raise GenerationTimeout(f"chat completion exceeded the {deadline.seconds:g}s deadline")
            # the final usage chunk carries no choices
            if not chunk.choices:
                continue
            received = True
            content = chunk.choices[0].delta.content
            if content:
                parts.append(content)

        if not received:
            raise BackendError("OpenAI returned no choices")
        if not parts:
            raise BackendError("OpenAI returned an empty message")
        return "".join(parts)
