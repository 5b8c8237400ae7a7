"""Bounded retries for transient store failures."""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from survey_backend.config import get_settings
from survey_backend.utils.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_error(exc: BaseException) -> bool:
    """Return True for connection drops, lock timeouts and statement timeouts."""
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, OperationalError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return False


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    timeout: float | None = None,
    jitter: bool = True,
    operation_name: str = "operation",
    on_retry: Callable[[], Awaitable[Any]] | None = None,
) -> T:
    """
    Run an async store operation with a timeout and exponential backoff.

    Transient failures are retried ``max_retries`` times and then surfaced as
    :class:`TransientStoreError`. Any other exception propagates immediately.

    Args:
        func: Zero-argument coroutine factory performing the whole operation
        max_retries: Maximum number of retry attempts (default from settings)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        timeout: Per-attempt timeout in seconds
        jitter: Add random jitter to delays to prevent thundering herd
        operation_name: Name for logging purposes
        on_retry: Optional coroutine run before each retry (e.g. session rollback)

    Returns:
        Result of the function call
    """
    settings = get_settings()
    max_retries = settings.store_retry_attempts if max_retries is None else max_retries
    base_delay = settings.store_retry_base_delay_seconds if base_delay is None else base_delay
    max_delay = settings.store_retry_max_delay_seconds if max_delay is None else max_delay
    timeout = settings.store_timeout_seconds if timeout is None else timeout

    for attempt in range(max_retries + 1):
        try:
            return await asyncio.wait_for(func(), timeout=timeout)
        except Exception as e:
            if not is_transient_error(e):
                raise

            if attempt >= max_retries:
                logger.error(
                    f"[RETRY] {operation_name} failed after {max_retries + 1} attempts. Giving up. Error: {e!r}"
                )
                raise TransientStoreError(f"{operation_name} failed: {e!r}") from e

            delay = min(base_delay * (2 ** attempt), max_delay)
            if jitter:
                delay = delay * (0.5 + random.random())

            logger.warning(
                f"[RETRY] {operation_name} failed with transient error "
                f"(attempt {attempt + 1}/{max_retries + 1}). Retrying in {delay:.2f}s... Error: {e!r}"
            )
            if on_retry is not None:
                await on_retry()
            await asyncio.sleep(delay)

    raise TransientStoreError(f"{operation_name} failed")  # pragma: no cover
