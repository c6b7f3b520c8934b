"""Status module — agent diagnostics."""

from __future__ import annotations

import os
import time
from typing import Any

from pxp_agent.modules.base import BaseModule, ExecutionContext
from pxp_agent.modules.manifest import ActionSpec, ModuleManifest


class StatusModule(BaseModule):
    MODULE_ID = "status"
    VERSION = "1.0.0"

    def __init__(self) -> None:
        self._started = time.monotonic()

    async def _action_query(
        self, params: dict[str, Any], context: ExecutionContext
    ) -> dict[str, Any]:
        return {
            "status": "running",
            "pid": os.getpid(),
            "uptime_seconds": round(time.monotonic() - self._started, 3),
        }

    def get_manifest(self) -> ModuleManifest:
        return ModuleManifest(
            module_id=self.MODULE_ID,
            version=self.VERSION,
            description="Report the agent process status.",
            actions=(ActionSpec("query", "Return status, pid and uptime."),),
        )
