"""Change webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Any
from payables_gateway.config import settings
from payables_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


def build_change_event(tenant_id: str, event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Envelope for a tenant data change; consumers re-query rather than apply deltas"""
    return {
        "event": "tenant.changed",
        "change": event,
        "tenant_id": tenant_id,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        **payload,
    }


class ChangeNotifier:
    """Client that tells dashboard consumers a tenant's records changed"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.change_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def send_change_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a tenant change event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter
        - Logs the last error and returns once retries are exhausted

        Args:
            payload: Event built by build_change_event
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=settings.http_timeout_seconds,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        # Background task: the final failure is logged, not raised
                        logging.error(
                            f"Change webhook failed after {attempt} attempts: {e}",
                            extra={"tenant_id": payload.get("tenant_id"), "change": payload.get("change")},
                        )
                        return

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
