"""Agent protocol — Canonical data models.

Three families of shapes live here, all validated through Pydantic v2:

  - the inbound message as handed over by the transport (``InboundMessage``)
    and its validated data section (``RequestData``);
  - the outbound ``Response``;
  - the external module contract: the self-description an executable prints
    at load time (``ExternalModuleDescription``) and the input it receives on
    stdin for each action (``ExternalActionInput``).

Do not add business logic here, only data shapes and their invariants.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

REQUEST_SCHEMA_NAME = "cnc_request"
RESPONSE_SCHEMA_NAME = "cnc_response"

# Data-section schema the agent registers its callback for.  Enforcement at
# the wire level belongs to the transport; RequestValidator re-checks it.
REQUEST_SCHEMA: dict[str, Any] = {
    "name": REQUEST_SCHEMA_NAME,
    "content_type": "json",
    "properties": {
        "module": {"type": "string", "required": True},
        "action": {"type": "string", "required": True},
        "params": {"type": "object", "required": False},
    },
}


class ContentType(str, Enum):
    JSON = "json"
    BINARY = "binary"


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


class InboundMessage(BaseModel):
    """A message received from the broker, already parsed into chunks."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Correlation id of the request.")
    sender: str = Field(description="Endpoint the response is addressed to.")
    has_data: bool = True
    data_type: ContentType = ContentType.JSON
    data: Any = None
    debug: tuple[str, ...] = ()


class RequestData(BaseModel):
    """The validated data section of a request."""

    model_config = ConfigDict(frozen=True)

    module: str = Field(min_length=1)
    action: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("module", "action", mode="before")
    @classmethod
    def must_be_string(cls, v: object) -> object:
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v

    @field_validator("params", mode="before")
    @classmethod
    def none_means_empty(cls, v: object) -> object:
        return {} if v is None else v


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


class Response(BaseModel):
    """Exactly one of these is produced per accepted request."""

    request_id: str
    recipient: str
    data: dict[str, Any]
    debug: list[dict[str, str]] = Field(default_factory=list)
    is_error: bool = False

    @classmethod
    def success(
        cls, message: InboundMessage, result: dict[str, Any]
    ) -> "Response":
        return cls(
            request_id=message.id,
            recipient=message.sender,
            data=result,
            debug=[{"debug_data": entry} for entry in message.debug],
        )

    @classmethod
    def failure(cls, message: InboundMessage, error: str) -> "Response":
        return cls(
            request_id=message.id,
            recipient=message.sender,
            data={"error": error},
            is_error=True,
        )


# ---------------------------------------------------------------------------
# External module contract
# ---------------------------------------------------------------------------


class ExternalActionDescription(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""


class ExternalModuleDescription(BaseModel):
    """Self-description printed by an external module invoked with no arguments.

    Example::

        {"name": "reverse", "version": "1.0.0",
         "actions": ["string", {"name": "list", "description": "..."}]}
    """

    name: str = Field(min_length=1)
    version: str = "0.0.0"
    description: str = ""
    actions: list[ExternalActionDescription] = Field(min_length=1)

    @field_validator("actions", mode="before")
    @classmethod
    def accept_bare_names(cls, v: object) -> object:
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @field_validator("actions")
    @classmethod
    def unique_names(
        cls, v: list[ExternalActionDescription]
    ) -> list[ExternalActionDescription]:
        names = [a.name for a in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate action names: {', '.join(duplicates)}")
        return v


class ExternalActionInput(BaseModel):
    """JSON document written to an external module's stdin for one action."""

    action: str
    params: dict[str, Any] = Field(default_factory=dict)
