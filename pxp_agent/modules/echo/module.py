"""Echo module — returns the request params unchanged."""

from __future__ import annotations

from typing import Any

from pxp_agent.modules.base import BaseModule, ExecutionContext
from pxp_agent.modules.manifest import ActionSpec, ModuleManifest


class EchoModule(BaseModule):
    MODULE_ID = "echo"
    VERSION = "1.0.0"

    async def _action_echo(
        self, params: dict[str, Any], context: ExecutionContext
    ) -> dict[str, Any]:
        return dict(params)

    def get_manifest(self) -> ModuleManifest:
        return ModuleManifest(
            module_id=self.MODULE_ID,
            version=self.VERSION,
            description="Return the request parameters as the result.",
            actions=(ActionSpec("echo", "Return params unchanged."),),
        )
