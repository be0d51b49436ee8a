"""Client, bridge and a real sandbox worker wired over one event bus."""

from __future__ import annotations

import asyncio

import pytest

from toolrc.bridge.bridge import ToolEvalBridge
from toolrc.bridge.channel import EventBus
from toolrc.bridge.client import ToolEvalClient
from toolrc.errors import ToolEvaluationError
from toolrc.sandbox.manager import SandboxManager
from toolrc.sandbox.models import SandboxConfig


@pytest.fixture
async def client():
    bus = EventBus()
    sandbox = SandboxManager(SandboxConfig(startup_timeout=60.0, eval_timeout=60.0))
    bridge = ToolEvalBridge(bus, sandbox)
    bridge.start()
    async with ToolEvalClient(bus, timeout=60.0, max_concurrent=4) as tool_client:
        yield tool_client
    await bridge.stop()
    await sandbox.destroy()


async def test_sum_tool(client: ToolEvalClient, sum_plugin: str) -> None:
    assert await client.evaluate_tool(sum_plugin, '{"a":2,"b":3}') == {"sum": 5}


async def test_failure_surfaces_as_error(client: ToolEvalClient, bad_define_plugin: str) -> None:
    with pytest.raises(ToolEvaluationError, match="bad"):
        await client.evaluate_tool(bad_define_plugin, "{}")


async def test_overlapping_calls(client: ToolEvalClient, sleepy_plugin: str) -> None:
    slow, fast = await asyncio.gather(
        client.evaluate_tool(sleepy_plugin, '{"label": "slow", "delay": 0.2}'),
        client.evaluate_tool(sleepy_plugin, '{"label": "fast"}'),
    )
    assert slow == {"label": "slow"}
    assert fast == {"label": "fast"}
