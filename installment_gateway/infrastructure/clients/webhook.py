"""Plan event webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict

import httpx

from installment_gateway.config import settings
from installment_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)


class EventWebhookClient:
    """Client for publishing plan/payment events to an external subscriber"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = settings.event_webhook_url if webhook_url is None else webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^(attempt-1))
        - Retries on HTTP error statuses and network failures
        - Gives up after max_retries; the plan write is already committed,
          so a lost event is logged and counted, never raised to the request

        Args:
            payload: Event data, must include an "event" name
        """
        if not self.enabled:
            logger.debug("Event webhook disabled, dropping %s", payload.get("event"))
            return

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            f"Event delivery failed after {attempt} attempts: {e}",
                            extra={"event": payload.get("event"), "plan_id": payload.get("plan_id")},
                        )
                        return

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
