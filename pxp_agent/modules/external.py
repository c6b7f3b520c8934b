"""External module — an on-disk executable adapted to the module contract.

Process boundary contract (JSON on both sides):

  Discovery, once at load time::

      $ ./module                       # no arguments, empty stdin
      {"name": "reverse", "actions": ["string", {"name": "list"}]}

  Invocation, once per request::

      $ ./module string                # action name as the only argument
      < {"action": "string", "params": {"argument": "abc"}}
      > {"output": "cba"}

A non-zero exit code always means failure, whatever was printed.  Diagnostics
go to stderr and are only logged.

Every call spawns a fresh process in its own session.  When the call ends,
by exit or by timeout, the whole process group is killed and the process
reaped before the call returns, so nothing outlives the invocation that
created it.
"""

from __future__ import annotations

import asyncio
import json
import os
import signal
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError

from pxp_agent.exceptions import (
    ActionExecutionError,
    ActionNotFoundError,
    ActionTimeoutError,
    ModuleLoadError,
)
from pxp_agent.logging import get_logger
from pxp_agent.modules.base import BaseModule, ExecutionContext
from pxp_agent.modules.manifest import ActionSpec, ModuleManifest
from pxp_agent.protocol.models import ExternalActionInput, ExternalModuleDescription

log = get_logger(__name__)

_POSIX = sys.platform != "win32"


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one subprocess run.  Never reused across calls."""

    exit_code: int | None
    stdout: str
    stderr: str
    duration_seconds: float
    timed_out: bool = False


def _kill_group(proc: subprocess.Popen[bytes] | asyncio.subprocess.Process) -> None:
    """Kill *proc* and everything it spawned in its process group."""
    try:
        if _POSIX:
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except (ProcessLookupError, PermissionError):
        # Group already empty; the caller still reaps the leader.
        pass


def _read(capture: IO[bytes]) -> str:
    capture.seek(0)
    return capture.read().decode(errors="replace")


# stdout and stderr go to temporary files rather than pipes: a descendant
# that escaped the process group may keep its copies open indefinitely, and
# reaping the process must not depend on it.


def run_process(argv: list[str], stdin: bytes, timeout: float) -> ProcessResult:
    """Run *argv* to completion (or kill it at *timeout*), blocking."""
    start = time.monotonic()
    with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=out,
            stderr=err,
            start_new_session=_POSIX,
        )
        timed_out = False
        try:
            proc.communicate(input=stdin, timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
        finally:
            if proc.stdin is not None:
                proc.stdin.close()
            _kill_group(proc)
            proc.wait()
        return ProcessResult(
            exit_code=proc.returncode,
            stdout=_read(out),
            stderr=_read(err),
            duration_seconds=time.monotonic() - start,
            timed_out=timed_out,
        )


async def _feed_and_wait(proc: asyncio.subprocess.Process, data: bytes) -> int:
    assert proc.stdin is not None
    try:
        proc.stdin.write(data)
        await proc.stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        # The process exited without reading its input; its exit code decides.
        pass
    proc.stdin.close()
    return await proc.wait()


async def run_process_async(argv: list[str], stdin: bytes, timeout: float) -> ProcessResult:
    """Coroutine version of :func:`run_process` for the request path."""
    start = time.monotonic()
    with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=out,
            stderr=err,
            start_new_session=_POSIX,
        )
        timed_out = False
        try:
            await asyncio.wait_for(_feed_and_wait(proc, stdin), timeout=timeout)
        except asyncio.TimeoutError:
            timed_out = True
        finally:
            # With stdin closed no pipe is left open, so wait() only needs
            # the process itself to exit.
            if proc.stdin is not None:
                proc.stdin.close()
            _kill_group(proc)
            await proc.wait()
        return ProcessResult(
            exit_code=proc.returncode,
            stdout=_read(out),
            stderr=_read(err),
            duration_seconds=time.monotonic() - start,
            timed_out=timed_out,
        )


class ExternalModule(BaseModule):
    """Module whose actions are performed by spawning *path*.

    The executable is queried for its self-description in ``__init__``;
    construction fails with ``ModuleLoadError`` if that does not work, so an
    ``ExternalModule`` instance always has a valid name and at least one
    action.
    """

    VERSION = "0.0.0"

    def __init__(
        self,
        path: str | Path,
        timeout: float = 60.0,
        discovery_timeout: float = 10.0,
    ) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._manifest = self._discover(discovery_timeout)
        self.MODULE_ID = self._manifest.module_id
        self.VERSION = self._manifest.version

    def get_manifest(self) -> ModuleManifest:
        return self._manifest

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _discover(self, timeout: float) -> ModuleManifest:
        label = self.path.name
        if not self.path.is_file():
            raise ModuleLoadError(label, "not a regular file")
        if not os.access(self.path, os.X_OK):
            raise ModuleLoadError(label, "file is not executable")

        try:
            result = run_process([str(self.path)], stdin=b"", timeout=timeout)
        except OSError as exc:
            raise ModuleLoadError(label, f"cannot execute: {exc}") from exc

        if result.timed_out:
            raise ModuleLoadError(label, f"metadata query timed out after {timeout:g}s")
        if result.exit_code != 0:
            raise ModuleLoadError(
                label,
                f"metadata query exited with code {result.exit_code}: "
                f"{result.stderr.strip() or 'no error output'}",
            )
        if not result.stdout.strip():
            raise ModuleLoadError(label, "metadata query produced no output")

        try:
            description = ExternalModuleDescription.model_validate_json(result.stdout)
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(p) for p in first["loc"]) or "metadata"
            raise ModuleLoadError(
                label, f"invalid metadata: {location}: {first['msg']}"
            ) from exc

        return ModuleManifest(
            module_id=description.name,
            version=description.version,
            description=description.description,
            actions=tuple(
                ActionSpec(name=a.name, description=a.description)
                for a in description.actions
            ),
            source="external",
            path=str(self.path),
        )

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def execute(
        self,
        action: str,
        params: dict[str, Any],
        context: ExecutionContext,
    ) -> dict[str, Any]:
        """Spawn the executable to perform *action*.

        Raises:
            ActionNotFoundError:  *action* is not in the self-description.
            ActionTimeoutError:   The process ran past ``timeout`` and was killed.
            ActionExecutionError: Spawn failure, non-zero exit, or bad output.
        """
        if not self.has_action(action):
            raise ActionNotFoundError(module_id=self.name, action=action)

        payload = ExternalActionInput(action=action, params=params).model_dump_json()
        log.debug(
            "external_action_started",
            module_id=self.name,
            action=action,
            path=str(self.path),
        )

        try:
            result = await run_process_async(
                [str(self.path), action], stdin=payload.encode(), timeout=self.timeout
            )
        except OSError as exc:
            raise ActionExecutionError(self.name, action, exc) from exc

        if result.timed_out:
            log.warning(
                "external_action_timed_out",
                module_id=self.name,
                action=action,
                timeout=self.timeout,
                stderr=result.stderr,
            )
            raise ActionTimeoutError(self.name, action, self.timeout)

        log.debug(
            "external_action_finished",
            module_id=self.name,
            action=action,
            exit_code=result.exit_code,
            duration_seconds=round(result.duration_seconds, 3),
        )

        if result.exit_code != 0:
            raise ActionExecutionError(
                self.name,
                action,
                f"exited with code {result.exit_code}",
                stderr=result.stderr,
            )
        return self._parse_output(action, result)

    def _parse_output(self, action: str, result: ProcessResult) -> dict[str, Any]:
        if not result.stdout.strip():
            raise ActionExecutionError(self.name, action, "no output", stderr=result.stderr)
        try:
            output = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise ActionExecutionError(
                self.name, action, f"output is not valid JSON ({exc.msg})", stderr=result.stderr
            ) from exc
        if not isinstance(output, dict):
            raise ActionExecutionError(
                self.name, action, "output is not a JSON object", stderr=result.stderr
            )
        return output
