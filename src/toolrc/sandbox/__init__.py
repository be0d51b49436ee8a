"""Sandbox subsystem — isolated evaluation of tool plugins."""

from toolrc.sandbox.deps import BUNDLE_VERSION, DependencyBundle
from toolrc.sandbox.evaluator import ToolEvaluator
from toolrc.sandbox.manager import SandboxManager, get_sandbox_manager
from toolrc.sandbox.models import EvaluationResult, SandboxConfig
from toolrc.sandbox.readiness import Readiness, ReadinessState

__all__ = [
    "BUNDLE_VERSION",
    "DependencyBundle",
    "EvaluationResult",
    "Readiness",
    "ReadinessState",
    "SandboxConfig",
    "SandboxManager",
    "ToolEvaluator",
    "get_sandbox_manager",
]
