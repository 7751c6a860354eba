"""
Client for a local Ollama-style chat endpoint.

The request body is ``{"model", "messages": [{"role": "user",
"content"}], "temperature"}`` posted as JSON; the reply is expected to be
``{"message": {"content": "..."}}``. Transport errors, non-2xx replies and
malformed bodies raise :class:`BackendError`; running past the attempt
deadline raises :class:`GenerationTimeout`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from zing.errors import BackendError, GenerationTimeout
from zing.llm.base import Deadline, GenerationBackend


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class LocalModelBackend(GenerationBackend):
    """Backend for a model served on the local network interface.

    Parameters
    ----------
    url : str
        Full chat endpoint, e.g. ``"http://localhost:11434/api/chat"``.
    model : str
        Name of the model to use, e.g. ``"llama2"``.
    max_tokens : int
        Kept for parity with the hosted backend; the local request body
        does not carry it.
    temperature : float
        Sampling temperature sent with every request.
    """

    def __init__(self, url: str, model: str, max_tokens: int = 500, temperature: float = 0.7) -> None:
        super().__init__(model=model, max_tokens=max_tokens, temperature=temperature)
        self.url = url

    @property
    def name(self) -> str:
        return f"Local ({self.model})"

    def _payload(self, prompt: str) -> Dict[str, Any]:
        request = self.build_request(prompt)
        return {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": request.temperature,
        }

    def generate(self, prompt: str, deadline: Optional[Deadline] = None) -> str:
        payload = self._payload(prompt)
        timeout = deadline.request_timeout() if deadline is not None else None
        logger.debug("Sending request to local model at %s", self.url)
        try:
            with requests.post(self.url, json=payload, timeout=timeout, stream=True) as response:
                if not 200 <= response.status_code < 300:
                    raise BackendError(f"local model returned status {response.status_code}: {response.text}")
                body = self._read_body(response, deadline)
        except requests.Timeout as exc:
            raise GenerationTimeout(f"request to {self.url} timed out") from exc
        except requests.RequestException as exc:
            if deadline is not None and deadline.expired():
                raise GenerationTimeout(f"request to {self.url} timed out") from exc
            raise BackendError(f"error making request to local model: {exc}") from exc

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise BackendError("failed to parse local model response") from exc

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise BackendError("unexpected response structure from local model")
        return content

    def _read_body(self, response: requests.Response, deadline: Optional[Deadline]) -> bytes:
        """Read the response body, giving up once ``deadline`` has passed.

        The socket timeout only bounds each read, so a server that keeps
        trickling bytes is caught by checking the deadline between chunks.
        Leaving the ``with`` block in :meth:`generate` closes the connection.
        """
        chunks: List[bytes] = []
        for chunk in response.iter_content():
            if deadline is not None and deadline.expired():
                raise GenerationTimeout(f"response from {self.url} exceeded the {deadline.seconds:g}s deadline")
            chunks.append(chunk)
        return b"".join(chunks)
