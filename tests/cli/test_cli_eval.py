"""Tests for ``toolrc eval`` CLI command."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from toolrc.cli import main
from toolrc.sandbox.models import EvaluationResult


@pytest.fixture
def plugin_file(tmp_path: Path, sum_plugin: str) -> Path:
    path = tmp_path / "sum_plugin.py"
    path.write_text(sum_plugin)
    return path


def _mock_sandbox(result: EvaluationResult):
    patcher = patch("toolrc.sandbox.manager.SandboxManager")
    mock_cls = patcher.start()
    instance = mock_cls.return_value
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    instance.evaluate = AsyncMock(return_value=result)
    return patcher, mock_cls


class TestEvalMocked:
    def test_success(self, plugin_file: Path) -> None:
        patcher, mock_cls = _mock_sandbox(EvaluationResult.ok({"sum": 5}))
        try:
            result = CliRunner().invoke(main, ["eval", str(plugin_file), "--params", '{"a":2,"b":3}'])
        finally:
            patcher.stop()

        assert result.exit_code == 0
        assert "Tool created." in result.output
        assert '"sum": 5' in result.output
        mock_cls.return_value.evaluate.assert_awaited_once_with(plugin_file.read_text(), '{"a":2,"b":3}')

    def test_default_parameters(self, plugin_file: Path) -> None:
        patcher, mock_cls = _mock_sandbox(EvaluationResult.ok(None))
        try:
            result = CliRunner().invoke(main, ["eval", str(plugin_file)])
        finally:
            patcher.stop()

        assert result.exit_code == 0
        assert mock_cls.return_value.evaluate.await_args.args[1] == "{}"

    def test_timeout_option_reaches_config(self, plugin_file: Path) -> None:
        patcher, mock_cls = _mock_sandbox(EvaluationResult.ok(1))
        try:
            CliRunner().invoke(main, ["eval", str(plugin_file), "--timeout", "2.5"])
        finally:
            patcher.stop()

        config = mock_cls.call_args.args[0]
        assert config.eval_timeout == 2.5

    def test_params_file(self, plugin_file: Path, tmp_path: Path) -> None:
        params = tmp_path / "params.json"
        params.write_text('{"a": 1, "b": 1}')
        patcher, mock_cls = _mock_sandbox(EvaluationResult.ok({"sum": 2}))
        try:
            result = CliRunner().invoke(main, ["eval", str(plugin_file), "--params-file", str(params)])
        finally:
            patcher.stop()

        assert result.exit_code == 0
        assert mock_cls.return_value.evaluate.await_args.args[1] == '{"a": 1, "b": 1}'

    def test_failure_exits_nonzero(self, plugin_file: Path) -> None:
        patcher, _ = _mock_sandbox(EvaluationResult.fail("bad", "Traceback (most recent call last):"))
        try:
            result = CliRunner().invoke(main, ["eval", str(plugin_file), "--stack"])
        finally:
            patcher.stop()

        assert result.exit_code == 1
        assert "Evaluation failed:" in result.output
        assert "bad" in result.output
        assert "Traceback" in result.output

    def test_json_output(self, plugin_file: Path) -> None:
        patcher, _ = _mock_sandbox(EvaluationResult.fail("bad"))
        try:
            result = CliRunner().invoke(main, ["eval", str(plugin_file), "--json"])
        finally:
            patcher.stop()

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"success": False, "error": "bad"}

    def test_sandbox_exception(self, plugin_file: Path) -> None:
        patcher, mock_cls = _mock_sandbox(EvaluationResult.ok(1))
        mock_cls.return_value.__aenter__ = AsyncMock(side_effect=RuntimeError("no interpreter"))
        try:
            result = CliRunner().invoke(main, ["eval", str(plugin_file)])
        finally:
            patcher.stop()

        assert result.exit_code == 1
        assert "Sandbox error:" in result.output
        assert "no interpreter" in result.output

    def test_params_and_params_file_conflict(self, plugin_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["eval", str(plugin_file), "--params", "{}", "--params-file", str(plugin_file)]
        )
        assert result.exit_code == 2
        assert "not both" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(main, ["eval", str(tmp_path / "nope.py")])
        assert result.exit_code != 0


class TestEvalReal:
    def test_evaluates_in_worker(self, plugin_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["eval", str(plugin_file), "--params", '{"a":2,"b":3}', "--json", "--timeout", "60"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"success": True, "tool": {"sum": 5}}
