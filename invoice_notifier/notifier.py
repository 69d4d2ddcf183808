"""Reminder endpoint client.

Posts the whole eligible set to the notification endpoint in one request
and reports a single aggregate ``SendResult``.  The endpoint does the
actual emailing (and caps each request at 100 items); this client never
retries and never truncates.

Only one send may be in flight per client.  A second call made while a
send is outstanding returns a failed result without touching the network.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

import httpx

from .config import NotifierSettings
from .models import InvoiceRecord, SendResult
from .payload import build_payload

logger = logging.getLogger(__name__)

SEND_IN_PROGRESS = "A send is already in progress"


class ReminderClient:
    """Delivers reminder batches to the notification endpoint.

    Supports both async and synchronous sending.  Tests inject an
    ``httpx.MockTransport`` through ``transport``.
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        timeout: float | None = None,
        *,
        settings: NotifierSettings | None = None,
        transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or NotifierSettings()
        self.endpoint_url = endpoint_url or settings.endpoint_url
        self.timeout = timeout if timeout is not None else settings.timeout_seconds
        self.max_items_hint = settings.max_items_hint
        self._transport = transport
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        """True while a send is outstanding."""
        return self._lock.locked()

    # --- public API ---

    def send(
        self,
        records: Iterable[InvoiceRecord],
        template: Optional[str] = None,
    ) -> SendResult:
        """Send one batch synchronously."""
        payload = build_payload(records, template)
        requested = len(payload["items"])

        if not self._lock.acquire(blocking=False):
            logger.warning("Send refused: %s", SEND_IN_PROGRESS)
            return SendResult(success=False, error=SEND_IN_PROGRESS, requested=requested)

        try:
            self._warn_if_oversized(requested)
            try:
                with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
                    response = client.post(self.endpoint_url, json=payload)
            except httpx.RequestError as e:
                logger.error("Reminder endpoint request error: %s", e)
                return SendResult(success=False, error=f"Network error: {e}", requested=requested)
            return self._parse_response(response, requested)
        finally:
            self._lock.release()

    async def send_async(
        self,
        records: Iterable[InvoiceRecord],
        template: Optional[str] = None,
    ) -> SendResult:
        """Send one batch from async code."""
        payload = build_payload(records, template)
        requested = len(payload["items"])

        if not self._lock.acquire(blocking=False):
            logger.warning("Send refused: %s", SEND_IN_PROGRESS)
            return SendResult(success=False, error=SEND_IN_PROGRESS, requested=requested)

        try:
            self._warn_if_oversized(requested)
            try:
                async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                    response = await client.post(self.endpoint_url, json=payload)
            except httpx.RequestError as e:
                logger.error("Reminder endpoint request error: %s", e)
                return SendResult(success=False, error=f"Network error: {e}", requested=requested)
            return self._parse_response(response, requested)
        finally:
            self._lock.release()

    # --- internals ---

    def _warn_if_oversized(self, requested: int) -> None:
        if requested > self.max_items_hint:
            logger.warning(
                "Sending %d items; the endpoint only processes the first %d",
                requested, self.max_items_hint,
            )

    def _parse_response(self, response: httpx.Response, requested: int) -> SendResult:
        """Map the endpoint's ``{success, sent, error}`` reply to a SendResult."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            error = f"HTTP {response.status_code}: unexpected response from endpoint"
            logger.error("Reminder endpoint returned a non-JSON body (%s)", response.status_code)
            return SendResult(success=False, error=error, requested=requested)

        server_error = body.get("error")

        if response.is_error:
            error = str(server_error) if server_error else (
                f"HTTP {response.status_code} {response.reason_phrase}".strip()
            )
            logger.error("Reminder endpoint HTTP error: %s", error)
            return SendResult(success=False, error=error, requested=requested)

        sent = _as_int(body.get("sent"))
        # Some endpoints reply with only {"sent": n}.  A present flag must
        # be the JSON literal true; "false" or 1 do not count.
        if "success" in body:
            success = body["success"] is True
        else:
            success = server_error is None

        if not success:
            error = str(server_error) if server_error else "unknown"
            logger.error("Reminder endpoint reported failure: %s", error)
            return SendResult(success=False, sent_count=sent, error=error, requested=requested)

        logger.info("Reminder endpoint accepted %d/%d items", sent, requested)
        return SendResult(success=True, sent_count=sent, requested=requested)


def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
