"""Agent protocol — Request validator.

Checks an inbound message before any module is touched:
  - the message carries a data section
  - the data section is JSON (structured), not raw text
  - the data declares non-empty ``module`` and ``action`` strings
  - ``params``, when present, is an object

Structural checks are delegated to :class:`RequestData`; this class turns
Pydantic's errors into a single readable ``RequestValidationError``.
"""

from __future__ import annotations

from pydantic import ValidationError

from pxp_agent.exceptions import RequestValidationError
from pxp_agent.protocol.models import ContentType, InboundMessage, RequestData


class RequestValidator:
    """Envelope and data-section validator.

    Usage::

        validator = RequestValidator()
        data = validator.validate(message)   # raises on error
    """

    def validate(self, message: InboundMessage) -> RequestData:
        """Return the validated data section of *message*.

        Raises:
            RequestValidationError: The request cannot be routed.
        """
        if not message.has_data or message.data is None:
            raise RequestValidationError("no data")
        if message.data_type != ContentType.JSON or not isinstance(message.data, dict):
            raise RequestValidationError("data is not in JSON format")

        try:
            return RequestData.model_validate(message.data)
        except ValidationError as exc:
            raise RequestValidationError(
                f"invalid request data: {self._summarise(exc)}",
                context={"validation_errors": exc.errors(include_url=False)},
            ) from exc

    @staticmethod
    def _summarise(exc: ValidationError) -> str:
        parts = []
        for error in exc.errors():
            location = ".".join(str(p) for p in error["loc"]) or "data"
            parts.append(f"{location}: {error['msg']}")
        return "; ".join(parts)
