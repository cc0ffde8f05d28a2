"""
Bounded-timeout calls with retry for external collaborators.

Every call is wrapped in ``asyncio.wait_for``. Only the exception types listed
in ``retry_on`` (timeouts and connection errors by default) are retried, with
exponential backoff starting at ``retry_delay``.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Tuple, Type

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (asyncio.TimeoutError, ConnectionError)


async def call_with_retry(
    func: Callable[[], Awaitable[Any]],
    *,
    timeout: float,
    retries: int = 0,
    retry_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
    label: str = "external call",
) -> Any:
    """
    Await ``func()`` with a timeout, retrying transient failures.

    Args:
        func: Zero-argument coroutine factory (called once per attempt)
        timeout: Seconds allowed per attempt
        retries: Extra attempts after the first one
        retry_delay: Base backoff delay in seconds
        retry_on: Exception types considered transient
        label: Name used in log lines

    Raises:
        The last exception when attempts are exhausted or the error is not transient
    """
    attempts = retries + 1

    for attempt in range(attempts):
        try:
            return await asyncio.wait_for(func(), timeout=timeout)
        except retry_on as e:
            if attempt < attempts - 1:
                delay = retry_delay * (2 ** attempt)
                logger.warning(
                    f"⚠️ {label} failed with {type(e).__name__} "
                    f"(attempt {attempt + 1}/{attempts}), retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                continue
            logger.error(f"❌ {label} failed after {attempts} attempt(s): {type(e).__name__}: {e}")
            raise
