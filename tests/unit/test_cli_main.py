"""Tests for object_atlas.cli.main — CLI commands via Click test runner."""
from __future__ import annotations

import json
import uuid
from pathlib import Path

import pytest
from click.testing import CliRunner

from object_atlas.cli.main import cli
from object_atlas.telemetry.operation_log import OperationLog, OperationRecord


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def operations_file(tmp_path: Path) -> Path:
    path = tmp_path / "operations.jsonl"
    log = OperationLog(path)
    log.record(OperationRecord("spawn_wave", {"count": 3}))
    log.record(OperationRecord("open_door", {"door": "front"}))
    return path


# ---------------------------------------------------------------------------
# Root CLI
# ---------------------------------------------------------------------------


class TestRootCLI:
    def test_help_exits_zero(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0

    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "object-atlas" in result.output.lower()


# ---------------------------------------------------------------------------
# uuid
# ---------------------------------------------------------------------------


class TestUuidCommand:
    def test_single_uuid(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["uuid"])
        assert result.exit_code == 0
        assert uuid.UUID(result.output.strip()).version == 4

    def test_count(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["uuid", "--count", "3"])
        assert result.exit_code == 0
        assert len(set(result.output.split())) == 3

    def test_zero_count_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["uuid", "-n", "0"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# operations
# ---------------------------------------------------------------------------


class TestOperationsCommand:
    def test_table_output(self, runner: CliRunner, operations_file: Path) -> None:
        result = runner.invoke(cli, ["operations", str(operations_file)])
        assert result.exit_code == 0
        assert "spawn_wave" in result.output
        assert "open_door" in result.output

    def test_json_tail(self, runner: CliRunner, operations_file: Path) -> None:
        result = runner.invoke(cli, ["operations", str(operations_file), "--json", "--tail", "1"])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["operation"] == "open_door"

    def test_empty_file(self, runner: CliRunner, tmp_path: Path) -> None:
        empty = tmp_path / "empty.jsonl"
        empty.write_text("", encoding="utf-8")
        result = runner.invoke(cli, ["operations", str(empty)])
        assert result.exit_code == 0
        assert "No operation records" in result.output

    def test_missing_file_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["operations", str(tmp_path / "missing.jsonl")])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# demo
# ---------------------------------------------------------------------------


class TestDemoCommand:
    def test_demo_runs(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["demo", "--timeout", "0.2"])
        assert result.exit_code == 0
        assert "Retrieve 'door': found" in result.output
        assert "Subscription deliveries: 6" in result.output
