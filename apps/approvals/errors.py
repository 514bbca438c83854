"""Exception hierarchy for the approval desk."""

from __future__ import annotations

from typing import Optional


class ApprovalsError(Exception):
    """Base exception for all approval desk errors."""


class MissingIdentifier(ApprovalsError):
    """Raised when a payload has neither a valid row number nor a lookup key.

    This is a client-side precondition failure: it is never retried and the
    payload is never sent.
    """


class UnknownContentType(ApprovalsError, ValueError):
    """Raised when a content-type tag is not one of the known queues."""


class DeliveryError(ApprovalsError):
    """Base for failures delivering a payload to the automation endpoint."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        attempts: int = 0,
        response_body: str = "",
    ):
        self.status_code = status_code
        self.attempts = attempts
        self.response_body = response_body
        super().__init__(message)


class TransientDeliveryFailure(DeliveryError):
    """A single attempt failed (non-2xx, timeout or network error)."""


class PermanentDeliveryFailure(DeliveryError):
    """Every attempt in the retry budget failed."""


class SheetFetchError(ApprovalsError):
    """Raised when a GViz sheet or the timeline feed cannot be fetched or parsed."""
