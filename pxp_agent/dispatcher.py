"""Request dispatcher — one inbound message in, exactly one response out.

Pipeline for every message:
  1. validate the envelope and data section   (RequestValidator)
  2. look up the module                       (ModuleRegistry)
  3. execute the action                       (BaseModule.execute)
  4. assemble a success or error Response
  5. hand it to the connector; delivery failures are logged, not retried

Every failure below this layer ends as an error response.  Neither
:meth:`RequestDispatcher.dispatch` nor :meth:`RequestDispatcher.handle`
raises.
"""

from __future__ import annotations

from typing import Any

from pxp_agent.exceptions import AgentError, TransportError
from pxp_agent.logging import bind_request_context, clear_request_context, get_logger
from pxp_agent.modules.base import ExecutionContext
from pxp_agent.modules.registry import ModuleRegistry
from pxp_agent.protocol.models import RESPONSE_SCHEMA_NAME, InboundMessage, Response
from pxp_agent.protocol.validator import RequestValidator
from pxp_agent.transport.base import Connector

log = get_logger(__name__)

DEFAULT_SEND_TIMEOUT = 10


class RequestDispatcher:
    """Validates, routes and answers inbound requests.

    Usage::

        dispatcher = RequestDispatcher(registry, connector)
        connector.register_callback(REQUEST_SCHEMA, dispatcher.handle)
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        connector: Connector | None = None,
        send_timeout: int = DEFAULT_SEND_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._connector = connector
        self._send_timeout = send_timeout
        self._validator = RequestValidator()

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    async def handle(self, message: InboundMessage) -> Response:
        """Dispatch *message* and send the response to its sender."""
        bind_request_context(request_id=message.id, sender=message.sender)
        try:
            log.info("request_received", request_id=message.id, sender=message.sender)
            log.debug("request_content", data=message.data, debug=list(message.debug))
            response = await self.dispatch(message)
            await self._send(response)
            return response
        finally:
            clear_request_context()

    async def dispatch(self, message: InboundMessage) -> Response:
        """Build the response for *message* without sending it."""
        try:
            result = await self._process(message)
            return Response.success(message, result)
        except AgentError as exc:
            log.error(
                "request_failed",
                request_id=message.id,
                sender=message.sender,
                error=exc.message,
                error_type=type(exc).__name__,
                stderr=exc.context.get("stderr") or None,
            )
            return Response.failure(message, exc.message)
        except Exception as exc:
            log.error(
                "request_failed_unexpectedly",
                request_id=message.id,
                sender=message.sender,
                error=str(exc),
                exc_info=True,
            )
            return Response.failure(message, f"unexpected error: {exc}")

    async def _process(self, message: InboundMessage) -> dict[str, Any]:
        data = self._validator.validate(message)
        module = self._registry.lookup(data.module)
        context = ExecutionContext(
            request_id=message.id,
            sender=message.sender,
            debug=tuple(message.debug),
        )
        result = await module.execute(data.action, data.params, context)
        log.info(
            "request_processed",
            request_id=message.id,
            module=data.module,
            action=data.action,
        )
        return result

    async def _send(self, response: Response) -> None:
        if self._connector is None:
            return
        try:
            await self._connector.send(
                [response.recipient],
                RESPONSE_SCHEMA_NAME,
                self._send_timeout,
                response.data,
                response.debug or None,
            )
        except TransportError as exc:
            # No retry here; the requester may ask again.
            log.error(
                "response_send_failed",
                request_id=response.request_id,
                recipient=response.recipient,
                is_error=response.is_error,
                error=exc.message,
            )
        except Exception as exc:
            log.error(
                "response_send_failed",
                request_id=response.request_id,
                recipient=response.recipient,
                is_error=response.is_error,
                error=str(exc),
                exc_info=True,
            )
