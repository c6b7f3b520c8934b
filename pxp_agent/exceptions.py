"""PXP Agent — Exception hierarchy.

All exceptions raised by the agent inherit from AgentError so that callers
can catch the full family with a single except clause when needed.

Hierarchy:
    AgentError
    ├── ConfigurationError
    │   └── FatalError
    ├── TransportError
    │   ├── ConnectionConfigError
    │   └── ConnectionFatalError
    ├── RequestError
    │   └── RequestValidationError
    └── ModuleError
        ├── ModuleNotFoundError
        ├── ModuleLoadError
        ├── ActionNotFoundError
        ├── ActionTimeoutError
        └── ActionExecutionError

Only ConfigurationError (and FatalError) may terminate the process.  Every
other member of the family is caught by the dispatcher and turned into an
error response.
"""

from __future__ import annotations

from typing import Any


class AgentError(Exception):
    """Base exception for all PXP Agent errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class ConfigurationError(AgentError):
    """The agent cannot be configured; it must not start serving."""


class FatalError(ConfigurationError):
    """The transport could not connect, or lost the connection for good."""


# ---------------------------------------------------------------------------
# Transport layer
# ---------------------------------------------------------------------------


class TransportError(AgentError):
    """A message could not be delivered.  Recoverable; logged by the caller."""


class ConnectionConfigError(TransportError):
    """The transport rejected its configuration (bad URL, certificates...)."""


class ConnectionFatalError(TransportError):
    """The transport gave up connecting or reconnecting."""


# ---------------------------------------------------------------------------
# Request layer
# ---------------------------------------------------------------------------


class RequestError(AgentError):
    """Base for errors reported back to the requester."""


class RequestValidationError(RequestError):
    """The inbound request envelope or data section is invalid."""


# ---------------------------------------------------------------------------
# Module layer
# ---------------------------------------------------------------------------


class ModuleError(AgentError):
    """Base for all module errors."""


class ModuleNotFoundError(ModuleError):
    """No module with the given name is registered."""

    def __init__(self, module_id: str) -> None:
        super().__init__(
            f"unknown module: {module_id}",
            context={"module_id": module_id},
        )
        self.module_id = module_id


class ModuleLoadError(ModuleError):
    """An external module could not be loaded (bad metadata, not executable...)."""

    def __init__(self, module_id: str, reason: str) -> None:
        super().__init__(
            f"Module '{module_id}' failed to load: {reason}",
            context={"module_id": module_id, "reason": reason},
        )
        self.module_id = module_id
        self.reason = reason


class ActionNotFoundError(ModuleError):
    """The module does not expose the requested action."""

    def __init__(self, module_id: str, action: str) -> None:
        super().__init__(
            f"unknown action '{action}' for module '{module_id}'",
            context={"module_id": module_id, "action": action},
        )
        self.module_id = module_id
        self.action = action


class ActionTimeoutError(ModuleError):
    """An external action did not finish before its deadline and was killed."""

    def __init__(self, module_id: str, action: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Action '{module_id}.{action}' timed out after {timeout_seconds:g}s",
            context={
                "module_id": module_id,
                "action": action,
                "timeout_seconds": timeout_seconds,
            },
        )
        self.module_id = module_id
        self.action = action
        self.timeout_seconds = timeout_seconds


class ActionExecutionError(ModuleError):
    """An action failed: it raised, exited non-zero, or produced bad output."""

    def __init__(
        self,
        module_id: str,
        action: str,
        cause: Exception | str,
        stderr: str = "",
    ) -> None:
        super().__init__(
            f"Action '{module_id}.{action}' failed: {cause}",
            context={
                "module_id": module_id,
                "action": action,
                "cause": str(cause),
                "stderr": stderr,
            },
        )
        self.module_id = module_id
        self.action = action
        self.cause = cause
        self.stderr = stderr
