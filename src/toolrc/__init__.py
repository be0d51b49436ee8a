"""toolrc — evaluate tool plugins in an isolated worker process."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from toolrc.bridge.bridge import ToolEvalBridge as ToolEvalBridge
    from toolrc.bridge.client import ToolEvalClient as ToolEvalClient
    from toolrc.sandbox.manager import SandboxManager as SandboxManager

_LAZY_EXPORTS = {
    "SandboxManager": "toolrc.sandbox.manager",
    "ToolEvalBridge": "toolrc.bridge.bridge",
    "ToolEvalClient": "toolrc.bridge.client",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'toolrc' has no attribute {name!r}")
