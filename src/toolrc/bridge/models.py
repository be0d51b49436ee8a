"""Event payloads exchanged with the external process.

Field names follow the wire format (``requestId``); Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from toolrc.sandbox.models import EvaluationResult

EVAL_TOOL_REQUEST = "eval-tool-request"
EVAL_TOOL_RESPONSE = "eval-tool-response"


class EvaluationRequest(BaseModel):
    """Payload of an ``eval-tool-request`` event."""

    model_config = {"populate_by_name": True}

    request_id: str = Field(..., alias="requestId", description="Caller-assigned correlation id.")
    code: str = Field(..., description="Plugin source.")
    parameters: str = Field(..., description="JSON-encoded tool parameters.")


class EvaluationResponse(BaseModel):
    """Payload of an ``eval-tool-response`` event."""

    model_config = {"populate_by_name": True}

    request_id: str = Field(..., alias="requestId")
    success: bool
    tool: Any = None
    error: str | None = None
    stack: str | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> EvaluationResponse:
        if not self.success and not self.error:
            msg = "failed response requires an error message"
            raise ValueError(msg)
        if not self.success and self.tool is not None:
            msg = "failed response cannot carry a tool"
            raise ValueError(msg)
        return self

    @classmethod
    def from_result(cls, request_id: str, result: EvaluationResult) -> EvaluationResponse:
        return cls(request_id=request_id, **result.model_dump())

    @classmethod
    def failure(cls, request_id: str, error: str) -> EvaluationResponse:
        return cls(request_id=request_id, success=False, error=error or "Unknown error")

    def to_event(self) -> dict[str, Any]:
        """Wire form: ``tool`` only on success, ``error``/``stack`` only on failure."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        if self.success:
            payload["tool"] = self.tool
        return payload
