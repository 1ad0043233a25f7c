"""
TrialDoc Backend - Data-Store Retry Wrapper
=============================================

What:  Re-executes a data-store operation with bounded exponential backoff.
How:   Tenacity's AsyncRetrying drives the attempts; a prepared-statement
       conflict triggers a best-effort statement-cache reset before the
       next attempt.
Who:   Owned by the ConnectionManager (`manager.retry`) and used by the
       AuthService for every read and write.

Policy:
    attempt 1 fails → wait base_delay        (1s)
    attempt 2 fails → wait base_delay * 2    (2s)
    attempt 3 fails → re-raise the last error unchanged

    A success is returned immediately. The attempt count never exceeds
    max_attempts and a terminal failure is never suppressed.

Prepared statement conflicts:
    Pooled PostgreSQL connections (pgbouncer in transaction mode in
    particular) can surface `prepared statement "..." already exists`.
    Clearing the server-side statement cache (DEALLOCATE ALL) makes the next
    attempt succeed. The reset itself is allowed to fail: it is logged and
    ignored, never escalated.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
CacheReset = Callable[[], Awaitable[None]]


def is_prepared_statement_conflict(exc: BaseException) -> bool:
    """True when the error reports a duplicate prepared statement."""
    message = str(exc).lower()
    return "prepared statement" in message and "already exists" in message


class DatabaseRetry:
    """
    Retry strategy for no-argument async data-store operations.

    Args:
        max_attempts: Total attempts including the first one (default 3).
        base_delay: Wait after the first failure in seconds; doubles per attempt.
        reset_statement_cache: Coroutine function issuing DEALLOCATE ALL.
            When None, prepared-statement conflicts are retried without a reset.
        sleep: Awaitable sleep used between attempts (injectable for tests).

    Usage:
        user = await retry(lambda: fetch_user(username))
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        reset_statement_cache: Optional[CacheReset] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._reset_statement_cache = reset_statement_cache
        self._sleep = sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            # base_delay * 2^(attempt - 1)
            wait=wait_exponential(multiplier=self.base_delay, min=0),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _recover(self, exc: Exception) -> None:
        if self._reset_statement_cache is None or not is_prepared_statement_conflict(exc):
            return
        logger.warning("Prepared statement conflict detected, resetting statement cache")
        try:
            await self._reset_statement_cache()
        except Exception as cleanup_error:
            logger.warning("Prepared statement cleanup failed: %s", cleanup_error)

    async def __call__(self, operation: Operation) -> T:
        async for attempt in self._retrying():
            with attempt:
                try:
                    return await operation()
                except Exception as exc:
                    await self._recover(exc)
                    raise
        raise AssertionError("retry loop exited without a result")  # pragma: no cover


async def run_with_retry(
    operation: Operation,
    max_retries: int = 3,
    *,
    base_delay: float = 1.0,
    reset_statement_cache: Optional[CacheReset] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Functional form of DatabaseRetry for one-off calls."""
    retry = DatabaseRetry(
        max_attempts=max_retries,
        base_delay=base_delay,
        reset_statement_cache=reset_statement_cache,
        sleep=sleep,
    )
    return await retry(operation)
