"""Transport — broker connector interface and the loopback implementation."""

from pxp_agent.transport.base import Connector, MessageCallback
from pxp_agent.transport.loopback import LoopbackConnector, SentMessage

__all__ = ["Connector", "MessageCallback", "LoopbackConnector", "SentMessage"]
