"""Transport — Connector interface.

The connector owns everything about the broker: connection lifecycle,
reconnection, framing, encryption and wire-level schema checks.  The agent
only registers a callback, connects, blocks on ``monitor_connection`` and
calls ``send``.

Swap the backend by naming a different class in ``broker.connector``:
  - LoopbackConnector → in-process, no network (default; tests and CLI)
  - any third-party class implementing this interface
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from pxp_agent.protocol.models import InboundMessage

MessageCallback = Callable[[InboundMessage], Awaitable[Any]]


class Connector(ABC):
    """Abstract broker connector.

    Implementations are constructed with the broker settings::

        connector = MyConnector(url=..., ca=..., crt=..., key=...)
    """

    @abstractmethod
    def register_callback(self, schema: dict[str, Any], callback: MessageCallback) -> None:
        """Route inbound messages whose data matches *schema* to *callback*."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection.

        Raises:
            ConnectionConfigError: The configuration is unusable.
            ConnectionFatalError:  The broker cannot be reached.
        """
        ...

    @abstractmethod
    async def monitor_connection(self) -> None:
        """Block while the connection is alive, reconnecting as needed.

        Raises:
            ConnectionFatalError: The connection is lost for good.
        """
        ...

    @abstractmethod
    async def send(
        self,
        recipients: list[str],
        schema: str,
        timeout: int,
        data: dict[str, Any],
        debug: list[dict[str, str]] | None = None,
    ) -> None:
        """Deliver *data* to *recipients*.

        Raises:
            TransportError: The message could not be sent.  Not retried.
        """
        ...
