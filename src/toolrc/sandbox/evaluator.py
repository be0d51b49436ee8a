"""ToolEvaluator protocol — what the event bridge needs from a sandbox."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from toolrc.sandbox.models import EvaluationResult


@runtime_checkable
class ToolEvaluator(Protocol):
    """Evaluates plugin source in an isolated context.

    ``evaluate()`` must never raise; failures come back as a result with
    ``success=False``.  ``destroy()`` releases the context and is idempotent.
    """

    async def evaluate(self, code: str, parameters: str) -> EvaluationResult:
        """Compile *code*, build the tool from JSON *parameters*, report it."""
        ...

    async def destroy(self) -> None:
        """Tear down the isolated context."""
        ...
