"""Agent protocol — message models and request validation."""

from pxp_agent.protocol.models import (
    REQUEST_SCHEMA,
    REQUEST_SCHEMA_NAME,
    RESPONSE_SCHEMA_NAME,
    ContentType,
    InboundMessage,
    RequestData,
    Response,
)
from pxp_agent.protocol.validator import RequestValidator

__all__ = [
    "REQUEST_SCHEMA",
    "REQUEST_SCHEMA_NAME",
    "RESPONSE_SCHEMA_NAME",
    "ContentType",
    "InboundMessage",
    "RequestData",
    "Response",
    "RequestValidator",
]
