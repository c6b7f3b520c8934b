"""Module layer — BaseModule interface, built-in and external modules, registry."""

from pxp_agent.modules.base import BaseModule, ExecutionContext
from pxp_agent.modules.external import ExternalModule
from pxp_agent.modules.loader import ModuleLoader, build_registry
from pxp_agent.modules.manifest import ActionSpec, ModuleManifest
from pxp_agent.modules.registry import ModuleRegistry

__all__ = [
    "BaseModule",
    "ExecutionContext",
    "ExternalModule",
    "ModuleLoader",
    "ModuleManifest",
    "ActionSpec",
    "ModuleRegistry",
    "build_registry",
]
