"""
Exchange channel contract between the capability host and its driver.

Forward requests (discovery, tool calls, resource reads, prompt
fetches) go from driver to host. One reverse request,
``sampling/createMessage``, goes from host to driver while a tool call
is still outstanding: the host suspends its handler, the driver answers
with generated text, and the handler resumes. Correlation of the
nested request with its response is done by the SDK's request ids.

Framing and serialization belong to the ``mcp`` SDK; this module pins
down the method names and converts between SDK types and the hub's own
:class:`~userhub.models.SampleRequest` / :class:`~userhub.models.SampleResult`.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from mcp import types
from mcp.shared.exceptions import McpError

from .errors import SamplingError, SamplingTimeoutError
from .models import SampleMessage, SampleRequest, SampleResult

if TYPE_CHECKING:
    from mcp.server.session import ServerSession

    from .sampling import Sampler

logger = logging.getLogger("userhub.channel")


class Method(str, Enum):
    """Wire method names used by the hub."""

    LIST_TOOLS = "tools/list"
    LIST_RESOURCES = "resources/list"
    LIST_RESOURCE_TEMPLATES = "resources/templates/list"
    LIST_PROMPTS = "prompts/list"
    CALL_TOOL = "tools/call"
    READ_RESOURCE = "resources/read"
    GET_PROMPT = "prompts/get"
    CREATE_MESSAGE = "sampling/createMessage"
    CANCELLED = "notifications/cancelled"


def _first_block(content: Any) -> Any:
    if isinstance(content, list):
        return content[0] if content else None
    return content


def text_of(content: Any) -> str | None:
    """Text of a content block, or None if it is not text."""
    block = _first_block(content)
    if block is not None and getattr(block, "type", None) == "text":
        return block.text
    return None


class ReverseChannel(ABC):
    """Host-side handle for asking the peer to generate content."""

    @abstractmethod
    async def request_sample(self, request: SampleRequest) -> SampleResult:
        """Send a reverse sampling request and wait for the answer.

        Raises:
            SamplingError: If the peer rejects or cannot answer.
            SamplingTimeoutError: If no answer arrives in time.
        """


CANCEL_GRACE_SECONDS = 2.0


class SessionReverseChannel(ReverseChannel):
    """Reverse requests over the MCP session serving the current call.

    The driver gives up on a request after ``timeout`` seconds and
    answers with an error. The host waits ``grace`` seconds longer so
    that answer normally arrives first; if it still does not, the host
    sends ``notifications/cancelled`` for the request and stops waiting.

    Args:
        session_provider: Returns the live ``ServerSession``. Looked up
            per request since it is only valid inside a request context.
        timeout: Seconds the driver is allowed to spend generating.
        grace: Extra seconds the host waits beyond *timeout*.
    """

    def __init__(
        self,
        session_provider: Callable[[], ServerSession],
        timeout: float = 60.0,
        grace: float = CANCEL_GRACE_SECONDS,
    ) -> None:
        self._session_provider = session_provider
        self.timeout = timeout
        self.grace = grace

    async def request_sample(self, request: SampleRequest) -> SampleResult:
        session = self._session_provider()
        messages = [
            types.SamplingMessage(
                role=m.role,
                content=types.TextContent(type="text", text=m.text),
            )
            for m in request.messages
        ]
        logger.debug("%s: %d message(s), max %d tokens",
                     Method.CREATE_MESSAGE.value, len(messages), request.max_tokens)

        sent: list[types.RequestId] = []

        async def exchange() -> types.CreateMessageResult:
            # send_request takes the next id before its first await
            sent.append(session._request_id)
            return await session.create_message(
                messages=messages, max_tokens=request.max_tokens
            )

        try:
            result = await asyncio.wait_for(exchange(), timeout=self.timeout + self.grace)
        except asyncio.TimeoutError as exc:
            if sent:
                await self._cancel(session, sent[0])
            raise SamplingTimeoutError(
                f"No sampling response within {self.timeout:g}s"
            ) from exc
        except McpError as exc:
            raise SamplingError(exc.error.message) from exc

        block = _first_block(result.content)
        return SampleResult(
            content_type=getattr(block, "type", "unknown"),
            text=text_of(block),
            model=result.model,
        )

    async def _cancel(self, session: ServerSession, request_id: types.RequestId) -> None:
        """Tell the peer to stop working on an abandoned request."""
        notification = types.ServerNotification(
            types.CancelledNotification(
                method=Method.CANCELLED.value,
                params=types.CancelledNotificationParams(
                    requestId=request_id,
                    reason="Sampling deadline expired",
                ),
            )
        )
        try:
            await session.send_notification(notification)
        except Exception as exc:
            logger.warning("Could not cancel sampling request %s: %s", request_id, exc)
        else:
            logger.info("Cancelled sampling request %s", request_id)


def to_sample_request(params: types.CreateMessageRequestParams) -> SampleRequest:
    """Convert an inbound SDK sampling request to the hub's model."""
    return SampleRequest(
        messages=[
            SampleMessage(role=m.role, text=text_of(m.content) or "")
            for m in params.messages
        ],
        max_tokens=params.maxTokens,
    )


def make_sampling_callback(sampler: Sampler, timeout: float = 60.0):
    """Build the driver-side answer to ``sampling/createMessage``.

    A sampler failure, or a sampler still running after *timeout*
    seconds, is reported to the host as a JSON-RPC error; the host turns
    that into a content-level failure of its tool. An expired sampler is
    cancelled, so no late answer is ever sent.
    """

    async def sampling_callback(
        context: Any,
        params: types.CreateMessageRequestParams,
    ) -> types.CreateMessageResult | types.ErrorData:
        request = to_sample_request(params)
        try:
            text = await asyncio.wait_for(sampler.generate(request), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Sampling request expired after %gs", timeout)
            return types.ErrorData(
                code=types.INTERNAL_ERROR,
                message=f"Sampling request expired after {timeout:g}s",
            )
        except SamplingError as exc:
            logger.warning("Sampling failed: %s", exc)
            return types.ErrorData(code=types.INTERNAL_ERROR, message=str(exc))
        return types.CreateMessageResult(
            role="assistant",
            content=types.TextContent(type="text", text=text),
            model=sampler.model_name,
            stopReason="endTurn",
        )

    return sampling_callback
