"""Resilience utilities for upstream API calls.

Provides the shared retry client every agent uses, upstream status
classification, and input sanitization for free text.
"""

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from cepi.errors import (
    UpstreamAuthError,
    UpstreamResponseError,
    UpstreamTransportError,
)
from cepi.models import RetryAttempt, RetryOutcome

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


def classify_status(status_code: int) -> RetryOutcome:
    """Map an HTTP status to the retry outcome it represents."""
    if status_code == 429:
        return RetryOutcome.RATE_LIMITED
    if status_code >= 500:
        return RetryOutcome.SERVER_ERROR
    if status_code >= 400:
        return RetryOutcome.CLIENT_ERROR
    return RetryOutcome.SUCCESS


def backoff_delay_ms(
    attempt_number: int,
    base_ms: int = 1000,
    jitter_ms: int = 1000,
    rng: Optional[random.Random] = None,
) -> float:
    """Delay after attempt n: 2^n * base plus up to jitter_ms of random jitter."""
    jitter = (rng or random).uniform(0, jitter_ms) if jitter_ms > 0 else 0.0
    return (2 ** attempt_number) * base_ms + jitter


async def fetch_with_retry(
    url: str,
    max_attempts: int = 3,
    timeout_ms: int = 8000,
    *,
    method: str = "GET",
    service: str = "upstream",
    client: Optional[httpx.AsyncClient] = None,
    backoff_base_ms: int = 1000,
    jitter_ms: int = 1000,
    sleep: SleepFn = asyncio.sleep,
    rng: Optional[random.Random] = None,
    attempts: Optional[list[RetryAttempt]] = None,
    **request_options: Any,
) -> httpx.Response:
    """Issue an HTTP request with bounded retries and exponential backoff.

    Each attempt is raced against ``timeout_ms`` and cancelled when the
    deadline passes. Transport failures, timeouts, 5xx and 429 are retried;
    any other 4xx response is returned at once so the caller can interpret
    it. Stateless across calls.

    Args:
        url: Target URL.
        max_attempts: Total attempts including the first.
        timeout_ms: Per-attempt deadline.
        method: HTTP verb.
        service: Name used in logs and raised errors.
        client: Optional shared AsyncClient (a private one is opened otherwise).
        backoff_base_ms: Base for the 2^n backoff.
        jitter_ms: Upper bound of random jitter added to each delay.
        sleep: Awaitable sleep, injectable for tests.
        rng: Optional random source for jitter.
        attempts: Optional list that receives one RetryAttempt per attempt.
        **request_options: Passed to ``AsyncClient.request`` (headers, json, params...).

    Returns:
        The first non-retryable response (2xx/3xx or non-429 4xx).

    Raises:
        UpstreamTransportError: All attempts failed with a retryable outcome.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    log = attempts if attempts is not None else []
    owns_client = client is None
    http = client or httpx.AsyncClient()
    timeout_s = timeout_ms / 1000
    last_error: Optional[str] = None
    last_exception: Optional[BaseException] = None
    last_status: Optional[int] = None

    try:
        for attempt in range(1, max_attempts + 1):
            start = time.monotonic()
            response: Optional[httpx.Response] = None
            try:
                response = await asyncio.wait_for(
                    http.request(method, url, timeout=timeout_s, **request_options),
                    timeout=timeout_s,
                )
                outcome = classify_status(response.status_code)
                last_status = response.status_code
                last_error = f"HTTP {response.status_code}"
                last_exception = None
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                outcome = RetryOutcome.TIMEOUT
                last_status = None
                last_error = f"timed out after {timeout_ms}ms"
                last_exception = e
            except httpx.TransportError as e:
                outcome = RetryOutcome.TRANSPORT_ERROR
                last_status = None
                last_error = f"{type(e).__name__}: {e}"
                last_exception = e

            elapsed_ms = int((time.monotonic() - start) * 1000)
            record = RetryAttempt(
                attempt_number=attempt,
                elapsed_ms=elapsed_ms,
                outcome=outcome,
                status_code=last_status,
                error=None if outcome == RetryOutcome.SUCCESS else last_error,
            )
            log.append(record)

            if not outcome.retryable:
                return response

            if attempt == max_attempts:
                break

            delay_ms = backoff_delay_ms(attempt, backoff_base_ms, jitter_ms, rng)
            record.delay_ms = int(delay_ms)
            logger.warning(
                f"Retry {attempt}/{max_attempts} for {service} after {outcome.value} "
                f"({last_error}). Waiting {int(delay_ms)}ms"
            )
            await sleep(delay_ms / 1000)
    finally:
        if owns_client:
            await http.aclose()

    logger.error(f"All {max_attempts} attempts exhausted for {service}: {last_error}")
    error = UpstreamTransportError(
        f"{service} request failed after {max_attempts} attempts: {last_error}",
        service=service,
        status_code=last_status,
    )
    error.attempts = list(log)
    if last_exception is not None:
        raise error from last_exception
    raise error


def raise_for_upstream_status(response: httpx.Response, service: str) -> httpx.Response:
    """Turn a non-retryable error response into the matching upstream error.

    Raises:
        UpstreamAuthError: 401 or 403.
        UpstreamResponseError: Any other 4xx.
    """
    status = response.status_code
    if status in (401, 403):
        raise UpstreamAuthError(
            f"{service} rejected the configured credentials (HTTP {status})",
            service=service,
            status_code=status,
        )
    if status >= 400:
        raise UpstreamResponseError(
            f"{service} returned HTTP {status}",
            service=service,
            status_code=status,
        )
    return response


# ============================================================================
# Input Sanitization
# ============================================================================

def sanitize_text_input(
    text: str,
    max_length: int = 2000,
    strip_control_chars: bool = True,
) -> str:
    """Sanitize free text before it is interpolated into a prompt.

    Args:
        text: Raw user text
        max_length: Maximum allowed length
        strip_control_chars: Remove control characters

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    result = text[:max_length]

    if strip_control_chars:
        result = "".join(
            char for char in result
            if char.isprintable() or char in (" ", "\t", "\n")
        )

    # Collapse runs of spaces but keep line structure
    lines = [" ".join(line.split()) for line in result.splitlines()]
    return "\n".join(lines).strip()
