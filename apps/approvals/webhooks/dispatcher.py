"""Action delivery to the automation webhook with retries and in-flight dedup.

One endpoint receives every action; the automation flow branches on the
``action``/``contentType``/``route`` fields. Delivery is an async HTTP POST
with a hard per-attempt timeout and exponential backoff: 1 s, 2 s, 4 s ...
Concurrent sends of an identical payload share a single delivery.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from apps.approvals.errors import PermanentDeliveryFailure, TransientDeliveryFailure
from apps.approvals.models import ActionPayload

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------
# Delivery constants
# -----------------------------------------------------------------------

DISPATCH_MAX_ATTEMPTS = 3
DISPATCH_BASE_DELAY = 1.0      # seconds; doubled after each failed attempt
DISPATCH_TIMEOUT = 30.0        # seconds, caps each whole attempt

PayloadLike = Union[ActionPayload, Mapping[str, Any]]


@dataclass
class DispatchResult:
    """Outcome of a successful delivery."""

    status_code: int
    data: str
    attempts: int
    duration_ms: int


# -----------------------------------------------------------------------
# Signature helpers
# -----------------------------------------------------------------------

def canonical_json(payload: PayloadLike) -> str:
    """Serialize *payload* deterministically (sorted keys, compact separators)."""
    if isinstance(payload, ActionPayload):
        payload = payload.to_wire()
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def request_key(url: str, body: str) -> str:
    """Dispatch signature: SHA-256 over destination and canonical body."""
    return hashlib.sha256(f"{url}\n{body}".encode()).hexdigest()


def backoff_delay(attempt: int, base_delay: float = DISPATCH_BASE_DELAY) -> float:
    """Delay after failed *attempt* (1-based): ``base_delay * 2 ** (attempt - 1)``."""
    return base_delay * (2 ** (attempt - 1))


# -----------------------------------------------------------------------
# DispatchClient
# -----------------------------------------------------------------------

class DispatchClient:
    """Delivers action payloads to a single automation endpoint.

    Parameters
    ----------
    endpoint:
        Destination URL, fixed for the lifetime of the client.
    timeout:
        Per-attempt timeout in seconds.
    max_attempts:
        Total attempts before a delivery is reported as failed.
    base_delay:
        Backoff base in seconds.
    transport:
        Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DISPATCH_TIMEOUT,
        max_attempts: int = DISPATCH_MAX_ATTEMPTS,
        base_delay: float = DISPATCH_BASE_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._transport = transport
        # signature -> pending delivery task; owned by this instance only
        self._in_flight: Dict[str, asyncio.Task] = {}

    # -- Public API -------------------------------------------------------

    async def send(self, payload: PayloadLike, label: Optional[str] = None) -> DispatchResult:
        """Deliver *payload*, joining an identical in-flight delivery if one exists.

        Raises :class:`PermanentDeliveryFailure` once every attempt has failed.
        """
        body = canonical_json(payload)
        label = label or _default_label(payload)
        key = request_key(self.endpoint, body)

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.info(f"{label.upper()} duplicate request in flight, waiting for it")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._run(key, body, label))
        self._in_flight[key] = task
        return await asyncio.shield(task)

    async def send_action(
        self,
        action: str,
        content_type: str,
        fields: Optional[Mapping[str, Any]] = None,
        label: Optional[str] = None,
    ) -> DispatchResult:
        """Send ``{action, contentType, **fields}`` to the endpoint."""
        body: Dict[str, Any] = {"action": action, "contentType": content_type}
        body.update(fields or {})
        return await self.send(body, label or f"{content_type}:{action}")

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    # -- Internal ---------------------------------------------------------

    async def _run(self, key: str, body: str, label: str) -> DispatchResult:
        try:
            return await self._post(body, label)
        finally:
            self._in_flight.pop(key, None)

    async def _post(self, body: str, label: str) -> DispatchResult:
        headers = {"Content-Type": "application/json"}
        started = time.monotonic()
        logger.info(f"{label.upper()} -> {self.endpoint}")
        logger.info(f"Payload: {body}")

        last_error: Optional[TransientDeliveryFailure] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    resp = await asyncio.wait_for(
                        client.post(self.endpoint, content=body.encode(), headers=headers),
                        self.timeout,
                    )
                text = resp.text
                duration_ms = int((time.monotonic() - started) * 1000)
                logger.info(
                    f"{label.upper()} attempt {attempt}: status={resp.status_code} "
                    f"duration={duration_ms}ms"
                )
                if text:
                    logger.info(f"Response: {text}")
                if resp.is_success:
                    logger.info(f"{label.upper()} OK")
                    return DispatchResult(
                        status_code=resp.status_code,
                        data=text,
                        attempts=attempt,
                        duration_ms=duration_ms,
                    )
                last_error = TransientDeliveryFailure(
                    f"HTTP {resp.status_code}: {resp.reason_phrase}",
                    status_code=resp.status_code,
                    attempts=attempt,
                    response_body=text,
                )
            except asyncio.TimeoutError:
                last_error = TransientDeliveryFailure(
                    f"Request timed out after {self.timeout}s",
                    attempts=attempt,
                )
            except httpx.TimeoutException as exc:
                last_error = TransientDeliveryFailure(
                    f"Request timed out after {self.timeout}s: {exc}",
                    attempts=attempt,
                )
            except httpx.HTTPError as exc:
                last_error = TransientDeliveryFailure(
                    f"Request failed: {exc}",
                    attempts=attempt,
                )

            logger.warning(f"{label.upper()} attempt {attempt} failed: {last_error}")
            if attempt < self.max_attempts:
                delay = backoff_delay(attempt, self.base_delay)
                logger.info(f"Retrying in {delay}s")
                await asyncio.sleep(delay)

        logger.error(f"{label.upper()} failed after {self.max_attempts} attempts: {last_error}")
        raise PermanentDeliveryFailure(
            f"Delivery failed after {self.max_attempts} attempts: {last_error}",
            status_code=last_error.status_code if last_error else None,
            attempts=self.max_attempts,
            response_body=last_error.response_body if last_error else "",
        ) from last_error


def _default_label(payload: PayloadLike) -> str:
    if isinstance(payload, ActionPayload):
        return f"{payload.content_type.value}:{payload.action.value}"
    return f"{payload.get('contentType', 'content')}:{payload.get('action', 'submit')}"
