"""Revenue webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from cepa_fees.config import settings
from cepa_fees.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)


class RevenueClient:
    """Client notifying the revenue unit of issued permit fee invoices"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.revenue_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

        if self.max_retries < 1:
            raise ValueError("webhook_max_retries must allow at least one attempt")

    async def send_invoice_event(self, payload: Dict[str, Any]) -> None:
        """
        Send INVOICE_ISSUED event to the revenue webhook with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1), i.e. 1s, 2s, 4s, 8s with base 1
        - Retries on HTTP status errors and network failures
        - Tracks latency histogram and failure counter

        Raises:
            httpx.HTTPStatusError / httpx.RequestError: after the final attempt
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            f"Revenue webhook failed after {attempt} attempts: {e}",
                            extra={"invoice_number": payload.get("invoice_number")},
                        )
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
