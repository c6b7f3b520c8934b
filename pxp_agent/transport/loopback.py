"""Transport — In-process loopback connector.

No network at all: inbound messages are injected with :meth:`deliver`, and
everything the agent sends is appended to :attr:`sent`.  Used by the test
suite and by ``pxp-agent modules invoke``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from pxp_agent.exceptions import ConnectionFatalError, TransportError
from pxp_agent.protocol.models import InboundMessage
from pxp_agent.transport.base import Connector, MessageCallback


@dataclass
class SentMessage:
    recipients: list[str]
    schema: str
    timeout: int
    data: dict[str, Any]
    debug: list[dict[str, str]] = field(default_factory=list)


class LoopbackConnector(Connector):
    """Connector that never leaves the process.

    Set ``fail_sends`` to make every :meth:`send` raise ``TransportError``.
    """

    def __init__(self, **_broker_options: Any) -> None:
        self.sent: list[SentMessage] = []
        self.fail_sends = False
        self._callbacks: dict[str, MessageCallback] = {}
        self._connected = False
        self._closed = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._connected

    def register_callback(self, schema: dict[str, Any], callback: MessageCallback) -> None:
        self._callbacks[schema["name"]] = callback

    async def connect(self) -> None:
        self._connected = True

    async def monitor_connection(self) -> None:
        if not self._connected:
            raise ConnectionFatalError("not connected")
        await self._closed.wait()

    def close(self) -> None:
        """Make :meth:`monitor_connection` return."""
        self._closed.set()

    async def send(
        self,
        recipients: list[str],
        schema: str,
        timeout: int,
        data: dict[str, Any],
        debug: list[dict[str, str]] | None = None,
    ) -> None:
        if self.fail_sends:
            raise TransportError(f"cannot deliver to {', '.join(recipients)}")
        self.sent.append(SentMessage(recipients, schema, timeout, data, list(debug or [])))

    async def deliver(self, message: InboundMessage, schema: str) -> Any:
        """Hand *message* to the callback registered for *schema*.

        Returns whatever the callback returns.
        """
        callback = self._callbacks.get(schema)
        if callback is None:
            raise TransportError(f"no callback registered for schema '{schema}'")
        return await callback(message)
