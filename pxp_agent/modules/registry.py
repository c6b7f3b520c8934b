"""Module layer — Module registry.

The registry is the single point of truth for the modules the agent serves.
It is built once at startup by :class:`~pxp_agent.modules.loader.ModuleLoader`
and is read-only afterwards: there is no register/unregister.  Concurrent
lookups therefore need no locking.

A future reload would build a brand-new registry and swap the reference
held by the agent, never mutate this one in place.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pxp_agent.exceptions import ModuleNotFoundError

if TYPE_CHECKING:
    from pxp_agent.modules.base import BaseModule
    from pxp_agent.modules.manifest import ModuleManifest


class ModuleRegistry:
    """Immutable name → module mapping.

    Usage::

        registry = ModuleRegistry({"echo": EchoModule()})
        module = registry.lookup("echo")
        result = await module.execute("echo", {"msg": "hi"}, context)
    """

    def __init__(
        self,
        modules: Mapping[str, "BaseModule"],
        failed: Mapping[str, str] | None = None,
    ) -> None:
        self._modules: Mapping[str, "BaseModule"] = MappingProxyType(dict(modules))
        # Files that failed to load → reason, reported by status_report().
        self._failed: Mapping[str, str] = MappingProxyType(dict(failed or {}))

    def lookup(self, name: str) -> "BaseModule":
        """Return the module registered as *name*.

        Raises:
            ModuleNotFoundError: No module with this name is registered.
        """
        try:
            return self._modules[name]
        except KeyError:
            raise ModuleNotFoundError(module_id=name) from None

    def get(self, name: str) -> "BaseModule | None":
        return self._modules.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._modules))

    def list_modules(self) -> list[str]:
        """Return the names of all registered modules, sorted."""
        return sorted(self._modules)

    def list_failed(self) -> dict[str, str]:
        """Return file → reason for external modules that failed to load."""
        return dict(self._failed)

    def all_manifests(self) -> list["ModuleManifest"]:
        return [self._modules[name].get_manifest() for name in self.list_modules()]

    def status_report(self) -> dict[str, Any]:
        """Return a structured status report.

        Schema::

            {
                "available": {"echo": ["echo"], "reverse": ["string"]},
                "failed": {"/opt/modules/broken": "exited with code 1"}
            }
        """
        return {
            "available": {
                name: self._modules[name].get_manifest().action_names()
                for name in self.list_modules()
            },
            "failed": self.list_failed(),
        }
