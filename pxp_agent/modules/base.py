"""Module layer — BaseModule interface.

Every module, built-in or external, is a ``BaseModule``: a named provider of
one or more actions, described by a :class:`ModuleManifest`.

Design principles:
  - Modules hold no per-request state; everything a call needs arrives in
    ``params`` and the :class:`ExecutionContext`.
  - Unknown actions raise ``ActionNotFoundError``.
  - Every other failure surfaces as ``ActionExecutionError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pxp_agent.exceptions import ActionExecutionError, ActionNotFoundError, ModuleError
from pxp_agent.modules.manifest import ModuleManifest


@dataclass(frozen=True)
class ExecutionContext:
    """Contextual information passed to every module action call."""

    request_id: str
    sender: str
    debug: tuple[str, ...] = field(default_factory=tuple)


class BaseModule(ABC):
    """Abstract base class for all agent modules.

    Subclasses must:
      1. Set ``MODULE_ID`` (the name requests use to address the module)
      2. Set ``VERSION``
      3. Implement :meth:`get_manifest`
      4. Implement one ``_action_<name>(params, context)`` coroutine per
         declared action, or override :meth:`execute`
    """

    MODULE_ID: str = ""
    VERSION: str = "0.0.0"

    @property
    def name(self) -> str:
        return self.MODULE_ID

    @abstractmethod
    def get_manifest(self) -> ModuleManifest:
        """Return the manifest describing this module and its actions."""
        ...

    def has_action(self, action: str) -> bool:
        return self.get_manifest().get_action(action) is not None

    def _get_handler(self, action: str) -> Any:
        """Look up an action handler method by name.

        Convention: action ``"echo"`` maps to method ``_action_echo``.
        """
        if not self.has_action(action):
            raise ActionNotFoundError(module_id=self.name, action=action)
        handler = getattr(self, f"_action_{action}", None)
        if handler is None:
            raise ActionNotFoundError(module_id=self.name, action=action)
        return handler

    async def execute(
        self,
        action: str,
        params: dict[str, Any],
        context: ExecutionContext,
    ) -> dict[str, Any]:
        """Dispatch *action* to the corresponding ``_action_<action>`` method.

        Returns:
            The JSON-serialisable result object.

        Raises:
            ActionNotFoundError: The action is not declared by this module.
            ActionExecutionError: The handler raised any unexpected exception.
        """
        handler = self._get_handler(action)
        try:
            return await handler(params, context)
        except ModuleError:
            raise
        except Exception as exc:
            raise ActionExecutionError(
                module_id=self.name, action=action, cause=exc
            ) from exc
