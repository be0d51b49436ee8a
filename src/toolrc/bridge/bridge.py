"""ToolEvalBridge — answers ``eval-tool-request`` events with the sandbox.

Every inbound request gets exactly one ``eval-tool-response`` carrying the
same ``requestId``, whatever happens in between.  Requests are handled as
independent tasks, so several can be in flight at once; they are told apart
only by ``requestId``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable

from toolrc.bridge.models import (
    EVAL_TOOL_REQUEST,
    EVAL_TOOL_RESPONSE,
    EvaluationRequest,
    EvaluationResponse,
)
from toolrc.utils.telemetry import ATTR_REQUEST_ID, ATTR_SUCCESS, get_tracer

if TYPE_CHECKING:
    from toolrc.bridge.channel import EventChannel
    from toolrc.sandbox.evaluator import ToolEvaluator

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ToolEvalBridge:
    """Relays evaluation requests from an :class:`EventChannel` to a sandbox."""

    def __init__(self, channel: EventChannel, evaluator: ToolEvaluator) -> None:
        self._channel = channel
        self._evaluator = evaluator
        self._unsubscribe: Callable[[], None] | None = None
        self._in_flight: set[asyncio.Task[EvaluationResponse]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(self) -> None:
        """Subscribe to ``eval-tool-request``.  Calling it twice is a no-op."""
        if self._unsubscribe is None:
            self._unsubscribe = self._channel.on(EVAL_TOOL_REQUEST, self._on_request)
            logger.info("tool eval bridge listening for %s", EVAL_TOOL_REQUEST)

    async def stop(self) -> None:
        """Unsubscribe and let in-flight requests finish."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def handle(self, payload: Any) -> EvaluationResponse:
        """Evaluate one request payload and emit its response."""
        request_id = _request_id_of(payload)
        with _tracer.start_as_current_span("toolrc.bridge.request") as span:
            span.set_attribute(ATTR_REQUEST_ID, request_id)
            try:
                request = EvaluationRequest.model_validate(payload)
                logger.info("received %s %s", EVAL_TOOL_REQUEST, request.request_id)
                result = await self._evaluator.evaluate(request.code, request.parameters)
                response = EvaluationResponse.from_result(request.request_id, result)
            except Exception as exc:
                logger.exception("error evaluating tool for request %s", request_id)
                response = EvaluationResponse.failure(request_id, str(exc) or type(exc).__name__)

            span.set_attribute(ATTR_SUCCESS, response.success)
            try:
                await self._channel.emit(EVAL_TOOL_RESPONSE, response.to_event())
            except Exception:
                logger.exception("could not emit %s for request %s", EVAL_TOOL_RESPONSE, request_id)
            else:
                logger.info("sent %s %s (success=%s)", EVAL_TOOL_RESPONSE, request_id, response.success)
            return response

    def _on_request(self, payload: Any) -> None:
        task = asyncio.create_task(self.handle(payload))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)


def _request_id_of(payload: Any) -> str:
    if isinstance(payload, dict):
        value = payload.get("requestId", payload.get("request_id"))
        if value is not None:
            return str(value)
    return ""
