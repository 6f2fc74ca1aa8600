"""Webhook delivery of notification events."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
import jwt
import structlog

from fulfillment.config import settings
from fulfillment.models.base import utc_now
from fulfillment.services.notifications.events import FulfillmentCompletedEvent, LowStockEvent
from fulfillment.utils.request_retry import RequestRetryConfig, get_request_retrying

logger = structlog.get_logger(__name__)

WEBHOOK_RETRY_CONFIG = RequestRetryConfig(max_attempts=3, min_wait=0.5, max_wait=4.0)
TOKEN_LIFETIME = timedelta(minutes=5)


class WebhookNotificationService:
    """POSTs events as JSON to the configured notification webhook.

    Requests carry a short-lived HS256 bearer token when a signing key is
    configured. Network errors and 5xx responses are retried; anything still
    failing afterwards is logged and swallowed.

    Usage:
        webhook = WebhookNotificationService()
        await webhook.deliver(LowStockEvent(...))
    """

    def __init__(self, url: str | None = None, jwt_key: str | None = None, timeout: float | None = None):
        self.url = url if url is not None else settings.notification_webhook_url
        self.jwt_key = jwt_key if jwt_key is not None else settings.notification_webhook_jwt_key
        self.timeout = timeout if timeout is not None else settings.notification_timeout

    def _create_jwt(self) -> str:
        now = utc_now()
        return jwt.encode(
            {"iss": "fulfillment-engine", "iat": now, "exp": now + TOKEN_LIFETIME},
            self.jwt_key,
            algorithm="HS256",
        )

    def _headers(self) -> dict[str, str]:
        if not self.jwt_key:
            return {}
        return {"Authorization": f"Bearer {self._create_jwt()}"}

    async def deliver(
        self,
        event: LowStockEvent | FulfillmentCompletedEvent,
        client: httpx.AsyncClient | None = None,
    ) -> bool:
        """Deliver one event. Returns True on a 2xx response."""
        if not self.url:
            logger.warning("Notification webhook URL not configured, skipping delivery", category=event.category)
            return False

        async def make_request(http: httpx.AsyncClient) -> None:
            response = await http.post(
                self.url,
                content=event.model_dump_json(),
                headers={"Content-Type": "application/json", **self._headers()},
                timeout=self.timeout,
            )
            if response.status_code >= 500:
                response.raise_for_status()
            if response.status_code >= 400:
                # Client errors will not succeed on retry
                raise WebhookRejected(response.status_code, response.text)

        try:
            async with _client_scope(client) as http:
                async for attempt in get_request_retrying(
                    WEBHOOK_RETRY_CONFIG,
                    retry_on=(httpx.RequestError, httpx.HTTPStatusError),
                ):
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.warning(
                                "Retrying notification delivery",
                                category=event.category,
                                attempt=attempt.retry_state.attempt_number,
                            )
                        await make_request(http)

            logger.info("Delivered notification", category=event.category)
            return True
        except Exception as e:
            # Log and swallow - a lost notification must not affect committed work
            logger.error("Failed to deliver notification", category=event.category, error=str(e))
            return False


class WebhookRejected(Exception):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        super().__init__(f"Webhook rejected notification with HTTP {status_code}: {body[:200]}")


@asynccontextmanager
async def _client_scope(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    """Use the given client as-is, or open (and close) a fresh one."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient() as owned:
        yield owned
