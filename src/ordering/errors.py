"""Typed failures raised by the ordering core.

Client-input problems extend protean's ``ValidationError`` so they carry a
field-level ``messages`` dict and flow through the same handlers as any
other validation failure. Caller identity problems and backing-store
outages are separate exception types: they are not the caller's input.
"""

from contextlib import contextmanager

import structlog
from protean.exceptions import ValidationError

logger = structlog.get_logger(__name__)


class EmptyCartError(ValidationError):
    def __init__(self, message="Cannot place an order without items"):
        super().__init__({"items": [message]})


class ItemUnavailableError(ValidationError):
    """A line references a product or stall that is missing or inactive."""

    def __init__(self, product_id, reason="is no longer available"):
        self.product_id = str(product_id)
        super().__init__({"items": [f"Product {self.product_id} {reason}"]})


class InvalidScheduleError(ValidationError):
    def __init__(self, message="Scheduled time must be in the future"):
        super().__init__({"scheduled_for": [message]})


class MissingAddressError(ValidationError):
    def __init__(self, message="A delivery address is required for delivery orders"):
        super().__init__({"delivery_address": [message]})


class InvalidTransitionError(ValidationError):
    """A status change that the lifecycle table does not allow.

    ``current`` and ``requested`` are kept as plain status strings so
    the HTTP layer can echo them back to the client.
    """

    def __init__(self, current, requested, reason=None):
        self.current = getattr(current, "value", current)
        self.requested = getattr(requested, "value", requested)
        message = reason or f"Cannot transition order from {self.current} to {self.requested}"
        super().__init__({"status": [message]})


class Unauthorized(Exception):
    """The caller could not be identified."""


class Forbidden(Exception):
    """The caller is identified but may not act on this resource."""


class ServiceUnavailable(Exception):
    """The backing store (or a service behind it) is temporarily unreachable.

    Always retryable. Clients keep their local state when they see it.
    """

    def __init__(self, message="Service is temporarily unavailable", operation=None):
        self.operation = operation
        super().__init__(message)


@contextmanager
def backing_store(operation: str):
    """Report persistence and network failures as ``ServiceUnavailable``."""
    try:
        yield
    except (ConnectionError, TimeoutError, OSError) as exc:
        logger.error(
            "Backing store unavailable",
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise ServiceUnavailable(operation=operation) from exc
