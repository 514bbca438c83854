"""Webhook dispatch subsystem for the approval desk."""

from .dispatcher import (
    DISPATCH_BASE_DELAY,
    DISPATCH_MAX_ATTEMPTS,
    DISPATCH_TIMEOUT,
    DispatchClient,
    DispatchResult,
    backoff_delay,
    canonical_json,
    request_key,
)

__all__ = [
    "DISPATCH_BASE_DELAY",
    "DISPATCH_MAX_ATTEMPTS",
    "DISPATCH_TIMEOUT",
    "DispatchClient",
    "DispatchResult",
    "backoff_delay",
    "canonical_json",
    "request_key",
]
