"""CLI tests — ``pxp-agent agent start``."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from pxp_agent.cli.main import app
from pxp_agent.exceptions import FatalError

runner = CliRunner()


@pytest.fixture
def broker_config(tmp_path: Path) -> Path:
    lines = ["broker:", "  url: wss://b/pcp/"]
    for name in ("ca", "crt", "key"):
        path = tmp_path / f"{name}.pem"
        path.write_text("-----BEGIN TEST-----\n", encoding="utf-8")
        lines.append(f"  {name}: {path}")
    config = tmp_path / "config.yaml"
    config.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return config


def _start(config: Path, modules_dir: Path):
    return runner.invoke(
        app,
        ["agent", "start", "--config", str(config), "--modules-dir", str(modules_dir)],
    )


@pytest.mark.unit
class TestAgentStart:
    def test_missing_broker_url(self, tmp_path: Path, modules_dir: Path, no_user_config) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("logging:\n  level: warning\n", encoding="utf-8")
        result = _start(config, modules_dir)
        assert result.exit_code == 1
        assert "Fatal error: broker url is not set" in result.output

    def test_missing_config_file(self, tmp_path: Path, modules_dir: Path, no_user_config) -> None:
        result = _start(tmp_path / "absent.yaml", modules_dir)
        assert result.exit_code == 1
        assert "config file not found" in result.output

    def test_starts_agent(
        self, broker_config: Path, modules_dir: Path, no_user_config, monkeypatch
    ) -> None:
        start = AsyncMock(return_value=None)
        monkeypatch.setattr("pxp_agent.agent.Agent.start", start)

        result = _start(broker_config, modules_dir)

        assert result.exit_code == 0, result.output
        assert "Starting PXP agent for wss://b/pcp/" in result.output
        start.assert_awaited_once()

    def test_connection_failure_exits_nonzero(
        self, broker_config: Path, modules_dir: Path, no_user_config, monkeypatch
    ) -> None:
        monkeypatch.setattr(
            "pxp_agent.agent.Agent.start", AsyncMock(side_effect=FatalError("failed to connect"))
        )
        result = _start(broker_config, modules_dir)
        assert result.exit_code == 1
        assert "Fatal error: failed to connect" in result.output

    def test_invalid_config_value_exits_cleanly(
        self, tmp_path: Path, modules_dir: Path, no_user_config
    ) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("modules:\n  timeout: -5\n", encoding="utf-8")
        result = _start(config, modules_dir)
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "invalid configuration" in result.output

    def test_unknown_log_level_rejected(self, broker_config: Path, modules_dir: Path, no_user_config) -> None:
        result = runner.invoke(
            app,
            ["agent", "start", "--config", str(broker_config), "--log-level", "verbose"],
        )
        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)

    def test_log_level_override(
        self, broker_config: Path, modules_dir: Path, no_user_config, monkeypatch
    ) -> None:
        monkeypatch.setattr("pxp_agent.agent.Agent.start", AsyncMock(return_value=None))
        result = runner.invoke(
            app,
            [
                "agent", "start",
                "--config", str(broker_config),
                "--modules-dir", str(modules_dir),
                "--log-level", "debug",
            ],
        )
        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.DEBUG
