"""Unit tests — Agent startup wiring and connector loading."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pxp_agent.agent import Agent, create_connector, load_connector_class
from pxp_agent.config import Settings
from pxp_agent.exceptions import (
    ConfigurationError,
    ConnectionConfigError,
    ConnectionFatalError,
    FatalError,
)
from pxp_agent.protocol.models import REQUEST_SCHEMA_NAME
from pxp_agent.transport.loopback import LoopbackConnector


class RefusingConnector(LoopbackConnector):
    """Raises the configured exception from connect()."""

    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    async def connect(self) -> None:
        raise self.error


class DroppingConnector(LoopbackConnector):
    """Connects, then the monitor gives up."""

    async def monitor_connection(self) -> None:
        raise ConnectionFatalError("broker unreachable after 5 attempts")


class PickyConnector(LoopbackConnector):
    def __init__(self, **options: Any) -> None:
        raise ConnectionConfigError("invalid broker url")


async def _wait_connected(connector: LoopbackConnector) -> None:
    for _ in range(100):
        if connector.connected:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("connector never connected")


@pytest.mark.unit
class TestAgentStart:
    async def test_serves_requests_until_closed(
        self, test_settings: Settings, connector, internal_registry, make_message
    ) -> None:
        agent = Agent(test_settings, connector=connector, registry=internal_registry)
        task = asyncio.create_task(agent.start())
        await _wait_connected(connector)

        response = await connector.deliver(
            make_message({"module": "echo", "action": "echo", "params": {"a": 1}}),
            REQUEST_SCHEMA_NAME,
        )
        assert response.data == {"a": 1}
        connector.close()
        await asyncio.wait_for(task, timeout=5)

        assert [m.data for m in connector.sent] == [{"a": 1}]
        assert connector.sent[0].timeout == test_settings.broker.send_timeout

    async def test_registry_built_from_settings(self, test_settings: Settings, connector) -> None:
        agent = Agent(test_settings, connector=connector)
        assert agent.registry.list_modules() == ["echo", "inventory", "ping", "status"]

    async def test_connect_config_failure_is_fatal(self, test_settings, internal_registry) -> None:
        agent = Agent(
            test_settings,
            connector=RefusingConnector(ConnectionConfigError("bad certificate")),
            registry=internal_registry,
        )
        with pytest.raises(FatalError, match="failed to configure the underlying communications layer"):
            await agent.start()

    async def test_connect_failure_is_fatal(self, test_settings, internal_registry) -> None:
        agent = Agent(
            test_settings,
            connector=RefusingConnector(ConnectionFatalError("refused")),
            registry=internal_registry,
        )
        with pytest.raises(FatalError, match="failed to connect"):
            await agent.start()

    async def test_monitor_failure_is_fatal(self, test_settings, internal_registry) -> None:
        agent = Agent(test_settings, connector=DroppingConnector(), registry=internal_registry)
        with pytest.raises(FatalError, match="failed to reconnect"):
            await agent.start()


@pytest.mark.unit
class TestConnectorLoading:
    def test_default_connector(self) -> None:
        assert load_connector_class(Settings().broker.connector) is LoopbackConnector

    @pytest.mark.parametrize(
        "class_path",
        ["LoopbackConnector", "pxp_agent.transport.nowhere.Connector", "pxp_agent.transport.loopback.Nope"],
    )
    def test_unloadable(self, class_path: str) -> None:
        with pytest.raises(ConfigurationError):
            load_connector_class(class_path)

    def test_not_a_connector(self) -> None:
        with pytest.raises(ConfigurationError, match="not a Connector subclass"):
            load_connector_class("pxp_agent.config.Settings")

    def test_create_connector_default(self) -> None:
        assert isinstance(create_connector(Settings()), LoopbackConnector)

    def test_create_connector_config_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("pxp_agent.agent.load_connector_class", lambda _path: PickyConnector)
        with pytest.raises(ConfigurationError, match="failed to configure the agent: invalid broker url"):
            create_connector(Settings())
