"""Shared error types for the sandbox and the event bridge."""


class ToolrcError(Exception):
    """Base error for all toolrc failures."""


class SandboxError(ToolrcError):
    """A sandbox operation failed (spawn, messaging, or teardown)."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or "Sandbox error")


class SandboxTimeoutError(SandboxError):
    """A sandbox call exceeded its configured timeout."""

    def __init__(self, timeout: float, what: str = "Tool evaluation") -> None:
        self.timeout = timeout
        super().__init__(f"{what} timed out after {timeout}s")


class SandboxExitedError(SandboxError):
    """The worker process went away while calls were waiting on it."""

    def __init__(self, returncode: int | None = None) -> None:
        self.returncode = returncode
        super().__init__(f"Sandbox process exited (code {returncode})")


class PluginError(ToolrcError):
    """Plugin source did not honour the ToolPlugin contract.

    ``phase`` names the pipeline step that failed: ``compile``, ``define``,
    ``parse`` or ``create``.
    """

    def __init__(self, phase: str, detail: str) -> None:
        self.phase = phase
        self.detail = detail
        super().__init__(detail)


class ToolEvaluationError(ToolrcError):
    """The sandbox reported a failed evaluation back to the caller."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"tool evaluation failed: {detail}")


class ToolEvaluationTimeoutError(ToolEvaluationError):
    """No eval-tool-response arrived in time."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"no response after {timeout}s")
