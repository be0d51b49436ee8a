"""Sandbox executor — the code that runs inside the worker process.

Launched by :class:`~toolrc.sandbox.manager.SandboxManager` as
``python -m toolrc.sandbox.worker``.  Speaks newline-delimited JSON: one
``eval-tool`` request per stdin line, one ``eval-tool-result`` per output
line, plus a single ``ready`` line once the dependency bundle is loaded.

The protocol stream is a private duplicate of the original stdout; fd 1 is
pointed at stderr before any plugin runs, so a stray ``print`` in plugin code
ends up in the log instead of corrupting the protocol.

Evaluation pipeline (each phase fails into a result, never out of the loop):

1. compile + exec the source, resolve ``ToolPlugin``
2. ``ToolPlugin.define_tool(deps)`` -> factory
3. ``json.loads(parameters)``
4. ``factory.create_tool(params)`` -> JSON-serialisable tool instance
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from collections.abc import Mapping
from typing import IO, Any

import click
from pydantic import ValidationError

from toolrc.errors import PluginError
from toolrc.sandbox.deps import DependencyBundle, default_bundle
from toolrc.sandbox.models import (
    EVAL_TOOL,
    EvalToolMessage,
    EvalToolResultMessage,
    EvaluationResult,
    ReadyMessage,
)

logger = logging.getLogger(__name__)

ENTRY_SYMBOL = "ToolPlugin"
PLUGIN_FILENAME = "<plugin>"

_DEFINE_NAMES = ("define_tool", "defineTool")
_CREATE_NAMES = ("create_tool", "createTool")


def load_plugin(code: str) -> Any:
    """Compile and run *code* in a fresh namespace and return ``ToolPlugin``."""
    compiled = compile(code, PLUGIN_FILENAME, "exec")
    namespace: dict[str, Any] = {"__name__": "toolrc_plugin"}
    exec(compiled, namespace)  # noqa: S102
    if ENTRY_SYMBOL not in namespace:
        raise PluginError("compile", f"Plugin source must define {ENTRY_SYMBOL}")
    return namespace[ENTRY_SYMBOL]


def evaluate_plugin(
    code: str,
    parameters: str,
    deps: DependencyBundle | None = None,
) -> EvaluationResult:
    """Run the full pipeline in-process and describe the outcome."""
    deps = deps or default_bundle()
    try:
        plugin = load_plugin(code)
        factory = _call_member(plugin, _DEFINE_NAMES, "define", deps)

        try:
            params = json.loads(parameters)
        except json.JSONDecodeError as exc:
            # create_tool is never reached with malformed input
            return EvaluationResult.fail(str(exc))

        tool = _call_member(factory, _CREATE_NAMES, "create", params)
        _check_transferable(tool)
    except (Exception, SystemExit) as exc:
        # sys.exit() in plugin code must not end the worker
        return EvaluationResult.fail(_describe(exc), traceback.format_exc())
    return EvaluationResult.ok(tool)


def handle_line(line: str, deps: DependencyBundle | None = None) -> dict[str, Any]:
    """Turn one inbound protocol line into the result message to post."""
    try:
        raw = json.loads(line)
    except json.JSONDecodeError as exc:
        return _result_message(None, EvaluationResult.fail(f"Invalid message: {exc}"))

    call_id = raw.get("id") if isinstance(raw, dict) else None
    if not isinstance(raw, dict) or raw.get("type") != EVAL_TOOL:
        return _result_message(call_id, EvaluationResult.fail("Invalid request type"))

    try:
        request = EvalToolMessage.model_validate(raw)
    except ValidationError as exc:
        return _result_message(call_id, EvaluationResult.fail(f"Invalid request: {exc}"))

    logger.debug("evaluating plugin for call %s", request.id)
    return _result_message(request.id, evaluate_plugin(request.code, request.parameters, deps))


def serve(stdin: IO[str], channel: IO[str], deps: DependencyBundle | None = None) -> None:
    """Announce readiness, then answer requests until *stdin* closes."""
    deps = deps or default_bundle()
    _post(channel, ReadyMessage(bundle_version=deps.version).model_dump(by_alias=True))
    for line in stdin:
        line = line.strip()
        if not line:
            continue
        _post(channel, handle_line(line, deps))
    logger.debug("stdin closed, worker exiting")


def _call_member(target: Any, names: tuple[str, ...], phase: str, argument: Any) -> Any:
    member = None
    for name in names:
        if isinstance(target, Mapping):
            member = target.get(name)
        else:
            member = getattr(target, name, None)
        if member is not None:
            break
    if not callable(member):
        owner = ENTRY_SYMBOL if phase == "define" else "tool factory"
        raise PluginError(phase, f"{owner} must provide a callable {names[0]}()")
    return member(argument)


def _check_transferable(tool: Any) -> None:
    try:
        json.dumps(tool)
    except (TypeError, ValueError) as exc:
        raise PluginError("create", f"Tool instance is not JSON serialisable: {exc}") from exc


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _result_message(call_id: Any, result: EvaluationResult) -> dict[str, Any]:
    message = EvalToolResultMessage(
        id=None if call_id is None else str(call_id),
        **result.model_dump(),
    )
    return message.model_dump(exclude_none=True)


def _post(channel: IO[str], message: dict[str, Any]) -> None:
    channel.write(json.dumps(message) + "\n")
    channel.flush()


@click.command()
@click.option("--log-level", default="WARNING", show_default=True, help="Worker log level (logs go to stderr).")
def main(log_level: str) -> None:
    """Run the sandbox worker on stdin/stdout."""
    logging.basicConfig(
        stream=sys.stderr,
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s [worker %(process)d] %(name)s: %(message)s",
    )
    channel = os.fdopen(os.dup(sys.stdout.fileno()), "w", encoding="utf-8")
    sys.stdout.flush()
    os.dup2(sys.stderr.fileno(), sys.stdout.fileno())
    try:
        serve(sys.stdin, channel)
    finally:
        channel.close()


if __name__ == "__main__":
    main()
