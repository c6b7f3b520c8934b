"""Shared pytest fixtures for the pxp-agent test suite."""

from __future__ import annotations

import logging
import stat
import sys
import textwrap
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import structlog

from pxp_agent.config import Settings, override_settings
from pxp_agent.modules.loader import build_registry
from pxp_agent.modules.registry import ModuleRegistry
from pxp_agent.protocol.models import InboundMessage
from pxp_agent.transport.loopback import LoopbackConnector


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """CLI commands reconfigure logging onto streams that die with the test."""
    yield
    logging.getLogger().handlers = []
    structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def modules_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "modules"
    directory.mkdir()
    return directory


@pytest.fixture
def test_settings(tmp_path: Path, modules_dir: Path) -> Settings:
    settings = Settings(
        modules={"directory": str(modules_dir), "timeout": 2, "discovery_timeout": 5},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


@pytest.fixture
def no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point ``~`` at an empty directory so no real user config is read."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)


# ---------------------------------------------------------------------------
# Transport / registry
# ---------------------------------------------------------------------------


@pytest.fixture
def connector() -> LoopbackConnector:
    return LoopbackConnector()


@pytest.fixture
def internal_registry() -> ModuleRegistry:
    return build_registry(None)


@pytest.fixture
def make_message() -> Callable[..., InboundMessage]:
    def _make(data: Any = None, **overrides: Any) -> InboundMessage:
        fields: dict[str, Any] = {"id": "req-1", "sender": "pcp://client/ctl", "data": data}
        fields.update(overrides)
        return InboundMessage(**fields)

    return _make


# ---------------------------------------------------------------------------
# External module executables
# ---------------------------------------------------------------------------

_TEMPLATE = """\
#!{python}
import json
import os
import subprocess
import sys
import time

METADATA = {metadata!r}

if len(sys.argv) == 1:
{discovery}
    sys.exit(0)

request = json.load(sys.stdin)
params = request["params"]
{body}
"""

DISCOVERY = {
    "ok": "    print(json.dumps(METADATA))",
    "fail": "    sys.stderr.write('cannot describe myself\\n')\n    sys.exit(1)",
    "silent": "    pass",
    "garbage": "    print('this is not json')",
    "hang": "    time.sleep(30)",
}

BODIES = {
    # Reflect what the agent sent, so tests can check the stdin/argv contract.
    "reflect": (
        "print(json.dumps({'argv': sys.argv[1:], 'action': request['action'], "
        "'params': params}))"
    ),
    "fail": "sys.stderr.write('boom\\n')\nsys.exit(3)",
    "garbage": "print('definitely not json')",
    "silent": "pass",
    "list": "print(json.dumps([1, 2, 3]))",
    # Records its own pid and a grandchild's pid, then outlives any deadline.
    "hang": (
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "with open(params['pid_file'], 'w') as f:\n"
        "    f.write(f'{os.getpid()} {child.pid}')\n"
        "time.sleep(30)"
    ),
    # Starts a grandchild in a new session that inherits stdout/stderr and
    # survives the group kill, then outlives any deadline.
    "escape": (
        "child = subprocess.Popen(\n"
        "    [sys.executable, '-c', 'import time; time.sleep(8)'], start_new_session=True\n"
        ")\n"
        "with open(params['pid_file'], 'w') as f:\n"
        "    f.write(str(child.pid))\n"
        "time.sleep(30)"
    ),
    # Leaves a child running in its own process group, then succeeds.
    "background": (
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "with open(params['pid_file'], 'w') as f:\n"
        "    f.write(str(child.pid))\n"
        "print(json.dumps({'child': child.pid}))"
    ),
}


@pytest.fixture
def write_module(modules_dir: Path) -> Callable[..., Path]:
    """Write an executable external module into ``modules_dir``.

    Usage::

        path = write_module("reverse", name="reverse", actions=["string"])
    """

    def _write(
        filename: str,
        name: str | None = None,
        actions: list[Any] | None = None,
        discovery: str = "ok",
        body: str = "reflect",
        metadata: dict[str, Any] | None = None,
        directory: Path | None = None,
        executable: bool = True,
    ) -> Path:
        if metadata is None:
            metadata = {"name": name or filename, "actions": actions or ["run"]}
        source = _TEMPLATE.format(
            python=sys.executable,
            metadata=metadata,
            discovery=DISCOVERY[discovery],
            body=textwrap.dedent(BODIES[body]),
        )
        path = (directory or modules_dir) / filename
        path.write_text(source, encoding="utf-8")
        if executable:
            path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _write
