"""
Driver-side generators that answer the host's reverse sampling requests.

    operator  the prompt is shown on the console and the operator types
              the reply (the default; needs no model)
    ollama    the prompt is sent to a local Ollama server
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import requests

from .errors import SamplingError
from .models import SampleRequest, SamplingBackend, SamplingConfig

if TYPE_CHECKING:
    from .interactive import Operator

logger = logging.getLogger("userhub.sampling")

EXPIRED_NOTICE = "Request expired; the server stopped waiting. Press Enter to continue."


def render_messages(request: SampleRequest) -> str:
    """Flatten sampling messages into one prompt string."""
    return "\n\n".join(m.text for m in request.messages)


class Sampler(ABC):
    """Produces text for a reverse sampling request."""

    model_name: str = "unknown"

    @abstractmethod
    async def generate(self, request: SampleRequest) -> str:
        """Return generated text.

        Raises:
            SamplingError: If no text can be produced.
        """


class OperatorSampler(Sampler):
    """Lets the person at the console play the model."""

    model_name = "operator"

    def __init__(self, operator: Operator) -> None:
        self.operator = operator

    async def generate(self, request: SampleRequest) -> str:
        self.operator.show_request(render_messages(request), request.max_tokens)
        try:
            text = await self.operator.ask("Response")
        except asyncio.CancelledError:
            self.operator.notice(EXPIRED_NOTICE)
            raise
        if not text.strip():
            raise SamplingError("Operator declined to answer")
        return text


class OllamaSampler(Sampler):
    """Generates text with a local Ollama model.

    Args:
        base_url: Ollama server root, e.g. ``http://localhost:11434``.
        model: Model tag to run.
        timeout: HTTP timeout in seconds.
    """

    def __init__(self, base_url: str, model: str, timeout: float = 60.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.model_name = model
        self.timeout = timeout

    def _post(self, request: SampleRequest) -> str:
        resp = requests.post(
            f"{self.base_url}/api/generate",
            json={
                "model": self.model_name,
                "prompt": render_messages(request),
                "stream": False,
                "options": {"num_predict": request.max_tokens},
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json().get("response", "")

    async def generate(self, request: SampleRequest) -> str:
        try:
            text = await asyncio.to_thread(self._post, request)
        except (requests.RequestException, ValueError) as exc:
            raise SamplingError(f"Ollama request failed: {exc}") from exc
        logger.debug("Ollama %s produced %d chars", self.model_name, len(text))
        return text


def build_sampler(config: SamplingConfig, operator: Operator) -> Sampler:
    """Pick the sampler named by the configuration."""
    if config.backend == SamplingBackend.OLLAMA:
        return OllamaSampler(config.ollama_url, config.model, timeout=config.timeout_seconds)
    return OperatorSampler(operator)
