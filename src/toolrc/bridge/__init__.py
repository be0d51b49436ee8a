"""Event bridge between the sandbox and an external caller."""

from toolrc.bridge.bridge import ToolEvalBridge
from toolrc.bridge.channel import EventBus, EventChannel, StdioEventChannel
from toolrc.bridge.client import ToolEvalClient
from toolrc.bridge.models import EVAL_TOOL_REQUEST, EVAL_TOOL_RESPONSE, EvaluationRequest, EvaluationResponse

__all__ = [
    "EVAL_TOOL_REQUEST",
    "EVAL_TOOL_RESPONSE",
    "EvaluationRequest",
    "EvaluationResponse",
    "EventBus",
    "EventChannel",
    "StdioEventChannel",
    "ToolEvalBridge",
    "ToolEvalClient",
]
