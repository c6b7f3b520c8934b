"""Agent — startup wiring.

Construction loads the modules and instantiates the connector; ``start()``
registers the request callback, connects and then blocks on the connection
monitor.  Configuration and connection failures surface as
``ConfigurationError`` / ``FatalError``; nothing raised while serving a
request ever reaches this level.
"""

from __future__ import annotations

import importlib

from pxp_agent.config import Settings
from pxp_agent.dispatcher import RequestDispatcher
from pxp_agent.exceptions import (
    ConfigurationError,
    ConnectionConfigError,
    ConnectionFatalError,
    FatalError,
)
from pxp_agent.logging import get_logger
from pxp_agent.modules.loader import build_registry
from pxp_agent.modules.registry import ModuleRegistry
from pxp_agent.protocol.models import REQUEST_SCHEMA
from pxp_agent.transport.base import Connector

log = get_logger(__name__)


def load_connector_class(class_path: str) -> type[Connector]:
    """Import ``package.module.ClassName`` and check it is a Connector."""
    module_path, _, class_name = class_path.rpartition(".")
    if not module_path:
        raise ConfigurationError(f"invalid connector class path: '{class_path}'")
    try:
        module = importlib.import_module(module_path)
        connector_cls = getattr(module, class_name)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(
            f"cannot load connector '{class_path}': {exc}",
            context={"connector": class_path},
        ) from exc
    if not (isinstance(connector_cls, type) and issubclass(connector_cls, Connector)):
        raise ConfigurationError(f"'{class_path}' is not a Connector subclass")
    return connector_cls


def create_connector(settings: Settings) -> Connector:
    broker = settings.broker
    connector_cls = load_connector_class(broker.connector)
    try:
        return connector_cls(url=broker.url, ca=broker.ca, crt=broker.crt, key=broker.key)
    except ConnectionConfigError as exc:
        raise ConfigurationError(f"failed to configure the agent: {exc.message}") from exc


class Agent:
    """The running agent: one registry, one connector, one dispatcher."""

    def __init__(
        self,
        settings: Settings,
        connector: Connector | None = None,
        registry: ModuleRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.connector = connector if connector is not None else create_connector(settings)
        self.registry = registry if registry is not None else build_registry(
            settings.modules.directory,
            timeout=settings.modules.timeout,
            discovery_timeout=settings.modules.discovery_timeout,
        )
        self.dispatcher = RequestDispatcher(
            self.registry,
            self.connector,
            send_timeout=settings.broker.send_timeout,
        )

    async def start(self) -> None:
        """Connect and serve until the connection is lost for good.

        Raises:
            FatalError: Connecting failed or the monitor gave up.
        """
        self.connector.register_callback(REQUEST_SCHEMA, self.dispatcher.handle)

        try:
            await self.connector.connect()
        except ConnectionConfigError as exc:
            log.error("connector_config_failed", error=exc.message)
            raise FatalError(
                "failed to configure the underlying communications layer"
            ) from exc
        except ConnectionFatalError as exc:
            log.error("connect_failed", error=exc.message)
            raise FatalError("failed to connect") from exc

        log.info(
            "agent_connected",
            broker=self.settings.broker.url,
            modules=self.registry.list_modules(),
        )

        # Blocks; the connector keeps reconnecting on its own.
        try:
            await self.connector.monitor_connection()
        except ConnectionFatalError as exc:
            log.error("connection_lost", error=exc.message)
            raise FatalError("failed to reconnect") from exc
