"""Unit tests — built-in modules (echo, inventory, ping, status)."""

from __future__ import annotations

import os

import pytest

from pxp_agent.exceptions import ActionNotFoundError
from pxp_agent.modules.base import ExecutionContext
from pxp_agent.modules.echo import EchoModule
from pxp_agent.modules.inventory import InventoryModule
from pxp_agent.modules.ping import PingModule
from pxp_agent.modules.status import StatusModule


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(request_id="req-1", sender="pcp://client/ctl", debug=("hop-a",))


@pytest.mark.unit
class TestEchoModule:
    async def test_echo_returns_params(self, context: ExecutionContext) -> None:
        result = await EchoModule().execute("echo", {"msg": "hi", "n": [1, 2]}, context)
        assert result == {"msg": "hi", "n": [1, 2]}

    async def test_echo_returns_a_copy(self, context: ExecutionContext) -> None:
        params = {"msg": "hi"}
        result = await EchoModule().execute("echo", params, context)
        result["msg"] = "changed"
        assert params == {"msg": "hi"}

    async def test_unknown_action(self, context: ExecutionContext) -> None:
        with pytest.raises(ActionNotFoundError):
            await EchoModule().execute("shout", {}, context)

    async def test_private_method_not_reachable_as_action(self, context: ExecutionContext) -> None:
        with pytest.raises(ActionNotFoundError):
            await EchoModule().execute("get_manifest", {}, context)


@pytest.mark.unit
class TestPingModule:
    async def test_ping(self, context: ExecutionContext) -> None:
        result = await PingModule().execute("ping", {}, context)
        assert result == {"status": "ok", "request_hops": ["hop-a"]}


@pytest.mark.unit
class TestStatusModule:
    async def test_query(self, context: ExecutionContext) -> None:
        result = await StatusModule().execute("query", {}, context)
        assert result["status"] == "running"
        assert result["pid"] == os.getpid()
        assert result["uptime_seconds"] >= 0


@pytest.mark.unit
class TestInventoryModule:
    async def test_inventory_keys(self, context: ExecutionContext) -> None:
        result = await InventoryModule().execute("inventory", {}, context)
        assert set(result) == {
            "hostname",
            "os",
            "release",
            "machine",
            "python_version",
            "cpu_count",
            "memory_total_mb",
        }
        assert result["memory_total_mb"] > 0


@pytest.mark.unit
class TestManifests:
    @pytest.mark.parametrize(
        "module_cls, actions",
        [
            (EchoModule, ["echo"]),
            (InventoryModule, ["inventory"]),
            (PingModule, ["ping"]),
            (StatusModule, ["query"]),
        ],
    )
    def test_declared_actions(self, module_cls, actions) -> None:
        manifest = module_cls().get_manifest()
        assert manifest.module_id == module_cls.MODULE_ID
        assert manifest.action_names() == actions
        assert manifest.source == "internal"
        assert manifest.to_dict()["actions"][0]["name"] == actions[0]
