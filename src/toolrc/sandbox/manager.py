"""SandboxManager — owns the worker process that evaluates plugins.

The worker is a ``python -m toolrc.sandbox.worker`` subprocess talking
newline-delimited JSON over its stdio, the same subprocess pattern as a stdio
tool transport.  The manager:

* spawns the worker lazily and keeps at most one alive at a time;
* gates every call behind the worker's one-shot ``ready`` message
  (see :class:`~toolrc.sandbox.readiness.Readiness`);
* tags every ``eval-tool`` request with a fresh call id and resolves only the
  future registered under the id echoed back in ``eval-tool-result``, so
  concurrent calls never pick up each other's results;
* never raises from :meth:`SandboxManager.evaluate`; spawn failures, worker
  crashes and timeouts all come back as ``success=False`` results.

Timeout policy: a call that gets no result within ``eval_timeout`` is
answered with a timeout error and the worker is destroyed, because a hung
plugin blocks every later request.  Other calls in flight at that moment fail
with ``Sandbox destroyed``; the next call starts a fresh worker.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path

from pydantic import ValidationError

from toolrc.errors import SandboxError, SandboxExitedError, SandboxTimeoutError
from toolrc.sandbox.models import (
    EvalToolMessage,
    EvalToolResultMessage,
    EvaluationResult,
    ReadyMessage,
    SandboxConfig,
    parse_worker_message,
)
from toolrc.sandbox.readiness import Readiness
from toolrc.utils.telemetry import ATTR_CALL_ID, ATTR_ERROR, ATTR_SUCCESS, ATTR_WORKER_PID, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

WORKER_MODULE = "toolrc.sandbox.worker"
_STREAM_LIMIT = 16 * 1024 * 1024
# Directory holding the toolrc package, so the worker imports the same copy.
_IMPORT_ROOT = str(Path(__file__).resolve().parents[2])


class SandboxManager:
    """Lifecycle manager for the plugin worker.

    Satisfies the :class:`~toolrc.sandbox.evaluator.ToolEvaluator` protocol.

    Usage::

        async with SandboxManager() as sandbox:
            result = await sandbox.evaluate(source, '{"a": 2, "b": 3}')
    """

    def __init__(self, config: SandboxConfig | None = None) -> None:
        self._config = config or SandboxConfig()
        self._process: asyncio.subprocess.Process | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._readiness = Readiness()
        self._pending: dict[str, asyncio.Future[EvaluationResult]] = {}
        self._start_lock = asyncio.Lock()

    async def __aenter__(self) -> SandboxManager:
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.destroy()

    @property
    def config(self) -> SandboxConfig:
        return self._config

    @property
    def is_ready(self) -> bool:
        return self._readiness.is_ready

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        """Spawn the worker unless one is already running."""
        async with self._start_lock:
            if self._process is not None:
                return
            cmd = [
                self._config.python_executable,
                "-m",
                WORKER_MODULE,
                "--log-level",
                logging.getLevelName(logger.getEffectiveLevel()),
            ]
            env = {**os.environ, **self._config.env}
            env["PYTHONPATH"] = os.pathsep.join(p for p in (_IMPORT_ROOT, env.get("PYTHONPATH")) if p)
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=env,
                    limit=_STREAM_LIMIT,
                )
            except OSError as exc:
                raise SandboxError(f"Failed to start sandbox worker: {exc}") from exc

            self._process = process
            self._tasks = [
                asyncio.create_task(self._read_results(process)),
                asyncio.create_task(self._forward_stderr(process)),
            ]
            logger.debug("sandbox worker started (pid %s)", process.pid)

    async def evaluate(self, code: str, parameters: str) -> EvaluationResult:
        """Evaluate plugin *code* with JSON *parameters* in the worker."""
        call_id = uuid.uuid4().hex
        with _tracer.start_as_current_span("toolrc.sandbox.evaluate") as span:
            span.set_attribute(ATTR_CALL_ID, call_id)
            try:
                result = await self._evaluate(call_id, code, parameters)
            except SandboxTimeoutError as exc:
                logger.warning("call %s: %s; destroying sandbox", call_id, exc)
                await self.destroy()
                result = EvaluationResult.fail(str(exc))
            except SandboxError as exc:
                logger.warning("call %s failed: %s", call_id, exc)
                result = EvaluationResult.fail(str(exc))
            except Exception as exc:
                logger.exception("call %s: unexpected sandbox failure", call_id)
                result = EvaluationResult.fail(f"Unexpected sandbox failure: {exc}")

            if self.pid is not None:
                span.set_attribute(ATTR_WORKER_PID, self.pid)
            span.set_attribute(ATTR_SUCCESS, result.success)
            if result.error:
                span.set_attribute(ATTR_ERROR, result.error)
            return result

    async def destroy(self) -> None:
        """Terminate the worker and fail anything still waiting on it.

        Safe to call repeatedly, and before the worker was ever started.
        """
        process, self._process = self._process, None
        tasks, self._tasks = self._tasks, []
        self._readiness.reset()

        gone = SandboxError("Sandbox destroyed")
        self._readiness.fail(gone)
        self._fail_pending(gone)

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if process is None:
            return
        await self._terminate(process)
        logger.debug("sandbox worker %s destroyed", process.pid)

    async def _evaluate(self, call_id: str, code: str, parameters: str) -> EvaluationResult:
        await self.start()
        await self._wait_ready()

        process = self._process
        if process is None or process.stdin is None:
            msg = "Sandbox worker is not running"
            raise SandboxError(msg)

        future: asyncio.Future[EvaluationResult] = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future
        try:
            request = EvalToolMessage(id=call_id, code=code, parameters=parameters)
            try:
                process.stdin.write((request.model_dump_json() + "\n").encode())
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as exc:
                raise SandboxError(f"Sandbox pipe closed: {exc}") from exc

            try:
                async with asyncio.timeout(self._config.eval_timeout):
                    return await future
            except TimeoutError:
                raise SandboxTimeoutError(self._config.eval_timeout) from None
        finally:
            self._pending.pop(call_id, None)

    async def _wait_ready(self) -> None:
        if self._readiness.is_ready:
            return
        try:
            async with asyncio.timeout(self._config.startup_timeout):
                await self._readiness.wait()
        except TimeoutError:
            raise SandboxTimeoutError(self._config.startup_timeout, "Sandbox startup") from None

    async def _read_results(self, process: asyncio.subprocess.Process) -> None:
        """Dispatch worker messages until its stdout closes."""
        assert process.stdout is not None
        while True:
            try:
                line = await process.stdout.readline()
            except ValueError as exc:
                logger.error("sandbox worker sent an oversized message: %s", exc)
                process.kill()
                break
            if not line:
                break
            try:
                message = parse_worker_message(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.warning("ignoring malformed worker message: %s", exc)
                continue
            self._dispatch(message)

        returncode = await process.wait()
        if self._process is process:
            logger.warning("sandbox worker %s exited with code %s", process.pid, returncode)
            self._process = None
            self._tasks = []
            self._readiness.reset()
            exited = SandboxExitedError(returncode)
            self._readiness.fail(exited)
            self._fail_pending(exited)

    async def _forward_stderr(self, process: asyncio.subprocess.Process) -> None:
        assert process.stderr is not None
        async for raw in process.stderr:
            text = raw.decode(errors="replace").rstrip()
            if text:
                logger.info("worker %s: %s", process.pid, text)

    def _dispatch(self, message: EvalToolResultMessage | ReadyMessage) -> None:
        if isinstance(message, ReadyMessage):
            if self._readiness.set():
                logger.debug("sandbox ready (bundle version %s)", message.bundle_version)
            else:
                logger.warning("duplicate ready signal from sandbox worker")
            return

        future = self._pending.pop(message.id, None) if message.id else None
        if future is None:
            logger.warning("dropping result for unknown call %r: %s", message.id, message.error or "ok")
            return
        if not future.done():
            future.set_result(message.to_result())

    def _fail_pending(self, exc: SandboxError) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(exc)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        if process.stdin is not None:
            process.stdin.close()
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            async with asyncio.timeout(self._config.shutdown_timeout):
                await process.wait()
        except TimeoutError:
            logger.warning("sandbox worker %s ignored SIGTERM; killing", process.pid)
            process.kill()
            await process.wait()


_default_manager: SandboxManager | None = None


def get_sandbox_manager(config: SandboxConfig | None = None) -> SandboxManager:
    """Return the process-wide manager, creating it on first use."""
    global _default_manager
    if _default_manager is None:
        _default_manager = SandboxManager(config)
    return _default_manager
