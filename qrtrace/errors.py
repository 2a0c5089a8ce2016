"""Exceptions raised by the traceability engine.

Parsing an unknown or garbled code is *not* an error: the parser answers
``None``/``False`` for those. Exceptions here are reserved for requests that
must be rejected before any batch is built.
"""


class TraceError(Exception):
    """Base class for engine errors."""


class InvalidConfiguration(TraceError, ValueError):
    """Batch request rejected before generation (bad capacity, buffer, quantity or token)."""


class OrderNotEligible(TraceError):
    """Order is the wrong type or not yet approved for code generation."""

    def __init__(self, message: str, order_type: str = "", status: str = "") -> None:
        super().__init__(message)
        self.order_type = order_type
        self.status = status


class BatchAlreadyExists(TraceError):
    """A QR batch has already been generated for the order."""
