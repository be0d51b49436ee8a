"""ToolEvalClient — the external process's side of the event protocol.

Emits ``eval-tool-request`` events and waits for the ``eval-tool-response``
with the matching ``requestId``.  A FIFO limiter caps how many evaluations
are outstanding at once (one by default).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from toolrc.bridge.models import (
    EVAL_TOOL_REQUEST,
    EVAL_TOOL_RESPONSE,
    EvaluationRequest,
    EvaluationResponse,
)
from toolrc.errors import ToolEvaluationError, ToolEvaluationTimeoutError

if TYPE_CHECKING:
    from toolrc.bridge.channel import EventChannel

logger = logging.getLogger(__name__)


class ToolEvalClient:
    """Request/response wrapper over an :class:`EventChannel`.

    Usage::

        async with ToolEvalClient(channel, timeout=30.0) as client:
            tool = await client.evaluate_tool(source, '{"a": 1}')
    """

    def __init__(
        self,
        channel: EventChannel,
        *,
        timeout: float = 30.0,
        max_concurrent: int = 1,
    ) -> None:
        if max_concurrent < 1:
            msg = "max_concurrent must be at least 1"
            raise ValueError(msg)
        self._channel = channel
        self._timeout = timeout
        self._limiter = asyncio.Semaphore(max_concurrent)
        self._pending: dict[str, asyncio.Future[EvaluationResponse]] = {}
        self._unsubscribe: Callable[[], None] | None = None

    async def __aenter__(self) -> ToolEvalClient:
        self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        self.close()

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._channel.on(EVAL_TOOL_RESPONSE, self._on_response)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def evaluate_tool(self, code: str, parameters: str) -> Any:
        """Evaluate plugin *code* remotely and return the tool it built.

        Raises :class:`ToolEvaluationError` if the sandbox reports a failure
        and :class:`ToolEvaluationTimeoutError` if no response arrives.
        """
        self.start()
        async with self._limiter:
            request = EvaluationRequest(
                request_id=str(uuid.uuid4()),
                code=code,
                parameters=parameters,
            )
            future: asyncio.Future[EvaluationResponse] = asyncio.get_running_loop().create_future()
            self._pending[request.request_id] = future
            try:
                await self._channel.emit(EVAL_TOOL_REQUEST, request.model_dump(by_alias=True))
                try:
                    async with asyncio.timeout(self._timeout):
                        response = await future
                except TimeoutError:
                    raise ToolEvaluationTimeoutError(self._timeout) from None
            finally:
                self._pending.pop(request.request_id, None)

        if not response.success:
            raise ToolEvaluationError(response.error or "")
        return response.tool

    def _on_response(self, payload: Any) -> None:
        try:
            response = EvaluationResponse.model_validate(payload)
        except ValidationError as exc:
            logger.warning("ignoring malformed %s: %s", EVAL_TOOL_RESPONSE, exc)
            return
        future = self._pending.get(response.request_id)
        if future is None:
            logger.debug("ignoring %s for unknown request %s", EVAL_TOOL_RESPONSE, response.request_id)
            return
        if not future.done():
            future.set_result(response)
