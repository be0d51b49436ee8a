"""Data models for the sandbox subsystem.

Covers the manager configuration, the result handed back to callers, and the
newline-delimited JSON messages exchanged with the worker process.
"""

from __future__ import annotations

import sys
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, model_validator

EVAL_TOOL = "eval-tool"
EVAL_TOOL_RESULT = "eval-tool-result"
READY = "ready"


class SandboxConfig(BaseModel):
    """Configuration for a :class:`~toolrc.sandbox.manager.SandboxManager`."""

    python_executable: str = Field(
        default_factory=lambda: sys.executable,
        description="Interpreter used to launch the worker process.",
    )
    startup_timeout: float = Field(default=10.0, description="Max seconds to wait for the worker's ready signal.")
    eval_timeout: float = Field(default=30.0, description="Max seconds to wait for a single evaluation.")
    shutdown_timeout: float = Field(default=5.0, description="Grace period before the worker is killed.")
    env: dict[str, str] = Field(default_factory=dict, description="Extra environment variables for the worker.")


class EvaluationResult(BaseModel):
    """Outcome of one plugin evaluation.

    ``tool`` is only meaningful on success; ``error`` (and optionally
    ``stack``) only on failure.
    """

    success: bool
    tool: Any = None
    error: str | None = None
    stack: str | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> EvaluationResult:
        if self.success and (self.error is not None or self.stack is not None):
            msg = "successful result cannot carry an error"
            raise ValueError(msg)
        if not self.success:
            if not self.error:
                msg = "failed result requires an error message"
                raise ValueError(msg)
            if self.tool is not None:
                msg = "failed result cannot carry a tool"
                raise ValueError(msg)
        return self

    @classmethod
    def ok(cls, tool: Any) -> EvaluationResult:
        return cls(success=True, tool=tool)

    @classmethod
    def fail(cls, error: str, stack: str | None = None) -> EvaluationResult:
        return cls(success=False, error=error or "Unknown error", stack=stack)


# ---------------------------------------------------------------------------
# Worker protocol
# ---------------------------------------------------------------------------


class EvalToolMessage(BaseModel):
    """Request posted to the worker."""

    type: Literal["eval-tool"] = EVAL_TOOL
    id: str
    code: str
    parameters: str


class EvalToolResultMessage(BaseModel):
    """Result posted back by the worker, echoing the request ``id``."""

    type: Literal["eval-tool-result"] = EVAL_TOOL_RESULT
    id: str | None = None
    success: bool
    tool: Any = None
    error: str | None = None
    stack: str | None = None

    def to_result(self) -> EvaluationResult:
        if self.success:
            return EvaluationResult.ok(self.tool)
        return EvaluationResult.fail(self.error or "Unknown error", self.stack)


class ReadyMessage(BaseModel):
    """Emitted once by the worker after bootstrapping."""

    model_config = {"populate_by_name": True}

    type: Literal["ready"] = READY
    bundle_version: str = Field(default="", alias="bundleVersion")


WorkerMessage = Annotated[
    EvalToolResultMessage | ReadyMessage,
    Field(discriminator="type"),
]

_worker_message_adapter: TypeAdapter[EvalToolResultMessage | ReadyMessage] = TypeAdapter(WorkerMessage)


def parse_worker_message(raw: dict[str, Any]) -> EvalToolResultMessage | ReadyMessage:
    """Validate a decoded line from the worker's output stream."""
    return _worker_message_adapter.validate_python(raw)
