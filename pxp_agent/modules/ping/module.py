"""Ping module — liveness check.

The result lists the debug entries that travelled with the request, which
the broker fills with the hops the message went through.
"""

from __future__ import annotations

from typing import Any

from pxp_agent.modules.base import BaseModule, ExecutionContext
from pxp_agent.modules.manifest import ActionSpec, ModuleManifest


class PingModule(BaseModule):
    MODULE_ID = "ping"
    VERSION = "1.0.0"

    async def _action_ping(
        self, params: dict[str, Any], context: ExecutionContext
    ) -> dict[str, Any]:
        return {"status": "ok", "request_hops": list(context.debug)}

    def get_manifest(self) -> ModuleManifest:
        return ModuleManifest(
            module_id=self.MODULE_ID,
            version=self.VERSION,
            description="Liveness check.",
            actions=(ActionSpec("ping", "Reply with a constant status and the request hops."),),
        )
