"""Shared HTTP request retry utilities using tenacity."""

from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


@dataclass
class RequestRetryConfig:
    """Exponential backoff settings for outbound HTTP calls."""

    max_attempts: int = 3
    min_wait: float = 1.0
    max_wait: float = 10.0
    multiplier: float = 1.0


def get_request_retrying(
    config: RequestRetryConfig | None = None,
    retry_on: tuple[type[BaseException], ...] = (httpx.RequestError,),
) -> AsyncRetrying:
    """Build an AsyncRetrying that retries on transport errors.

    Usage:
        async for attempt in get_request_retrying():
            with attempt:
                response = await client.post(url, json=body)

    Args:
        config: Backoff settings, defaults if omitted.
        retry_on: Exception types that trigger another attempt. The last
            exception is re-raised once attempts are exhausted.
    """
    cfg = config or RequestRetryConfig()
    return AsyncRetrying(
        retry=retry_if_exception_type(retry_on),
        stop=stop_after_attempt(cfg.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.multiplier,
            min=cfg.min_wait,
            max=cfg.max_wait,
        ),
        reraise=True,
    )
