"""Inventory module — facts about the host the agent runs on."""

from __future__ import annotations

import platform
import socket
from typing import Any

import psutil

from pxp_agent.modules.base import BaseModule, ExecutionContext
from pxp_agent.modules.manifest import ActionSpec, ModuleManifest


class InventoryModule(BaseModule):
    MODULE_ID = "inventory"
    VERSION = "1.0.0"

    async def _action_inventory(
        self, params: dict[str, Any], context: ExecutionContext
    ) -> dict[str, Any]:
        return {
            "hostname": socket.gethostname(),
            "os": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
            "python_version": platform.python_version(),
            "cpu_count": psutil.cpu_count(),
            "memory_total_mb": round(psutil.virtual_memory().total / 1024 / 1024),
        }

    def get_manifest(self) -> ModuleManifest:
        return ModuleManifest(
            module_id=self.MODULE_ID,
            version=self.VERSION,
            description="Host inventory: OS, CPU and memory facts.",
            actions=(ActionSpec("inventory", "Return host facts."),),
        )
