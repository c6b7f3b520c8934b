"""Module layer — Module loader.

Collects the built-in modules and the external executables found in the
modules directory, then freezes them into a :class:`ModuleRegistry`.

Loading external modules is best effort: every file is tried on its own, a
failure is logged and recorded, and the scan carries on.  When two modules
declare the same name, the one loaded later (files are scanned in name
order) replaces the earlier one.
"""

from __future__ import annotations

from pathlib import Path

from pxp_agent.exceptions import ModuleLoadError
from pxp_agent.logging import get_logger
from pxp_agent.modules.base import BaseModule
from pxp_agent.modules.echo import EchoModule
from pxp_agent.modules.external import ExternalModule
from pxp_agent.modules.inventory import InventoryModule
from pxp_agent.modules.ping import PingModule
from pxp_agent.modules.registry import ModuleRegistry
from pxp_agent.modules.status import StatusModule

log = get_logger(__name__)

INTERNAL_MODULES: tuple[type[BaseModule], ...] = (
    EchoModule,
    InventoryModule,
    PingModule,
    StatusModule,
)


class ModuleLoader:
    """Builder for the agent's :class:`ModuleRegistry`.

    Usage::

        loader = ModuleLoader(timeout=settings.modules.timeout)
        loader.load_internal()
        loader.load_external(settings.modules.directory)
        registry = loader.build()
    """

    def __init__(self, timeout: float = 60.0, discovery_timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._discovery_timeout = discovery_timeout
        self._modules: dict[str, BaseModule] = {}
        self._failed: dict[str, str] = {}

    def load_internal(self) -> None:
        """Insert the built-in modules."""
        for module_class in INTERNAL_MODULES:
            self._add(module_class())

    def load_external(self, directory: str | Path) -> list[str]:
        """Load every executable directly inside *directory*.

        Returns the names of the modules that loaded.  Never raises for a
        single bad file.
        """
        dir_path = Path(directory)
        log.info("external_modules_loading", directory=str(dir_path))

        if not dir_path.is_dir():
            log.warning(
                "modules_dir_missing",
                directory=str(dir_path),
                detail="external modules will not be loaded",
            )
            return []

        loaded: list[str] = []
        for entry in sorted(dir_path.iterdir()):
            if entry.is_dir():
                continue
            try:
                module = ExternalModule(
                    entry,
                    timeout=self._timeout,
                    discovery_timeout=self._discovery_timeout,
                )
            except ModuleLoadError as exc:
                self._failed[str(entry)] = exc.reason
                log.error("external_module_load_failed", path=str(entry), reason=exc.reason)
                continue
            except Exception as exc:
                self._failed[str(entry)] = str(exc)
                log.error(
                    "external_module_load_unexpected_error",
                    path=str(entry),
                    error=str(exc),
                    exc_info=True,
                )
                continue
            self._add(module)
            loaded.append(module.name)
        return loaded

    def build(self) -> ModuleRegistry:
        """Freeze the collected modules into a registry and report them."""
        registry = ModuleRegistry(self._modules, failed=self._failed)
        for manifest in registry.all_manifests():
            actions = manifest.action_names()
            log.info(
                "module_loaded",
                module_id=manifest.module_id,
                source=manifest.source,
                action_count=len(actions),
                actions=actions or "found no action",
            )
        return registry

    def _add(self, module: BaseModule) -> None:
        previous = self._modules.get(module.name)
        if previous is not None:
            log.warning(
                "module_replaced",
                module_id=module.name,
                previous=previous.get_manifest().path or "internal",
                replacement=module.get_manifest().path or "internal",
            )
        self._modules[module.name] = module


def build_registry(
    modules_dir: str | Path | None,
    timeout: float = 60.0,
    discovery_timeout: float = 10.0,
) -> ModuleRegistry:
    """Load the built-in modules plus those in *modules_dir* (if any)."""
    loader = ModuleLoader(timeout=timeout, discovery_timeout=discovery_timeout)
    loader.load_internal()
    if modules_dir is not None:
        loader.load_external(modules_dir)
    return loader.build()
