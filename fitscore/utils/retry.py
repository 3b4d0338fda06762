"""
Retry helper with linear backoff for transient failures.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type


async def retry_async(
    func: Callable[[], Awaitable],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_exhausted: Optional[Callable[[Exception, int], Exception]] = None,
    logger=None,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
):
    """
    Await ``func()`` up to ``max_attempts`` times.

    Between attempts the delay grows linearly: ``attempt * base_delay``.
    ``should_retry`` can veto a retry for a caught exception, in which case it is
    raised immediately. When attempts run out, ``on_exhausted(exc, attempts)`` may
    build the exception to raise instead of the last one.

    Args:
        func: Zero-argument coroutine function to call
        max_attempts: Total number of attempts (at least 1)
        base_delay: Delay unit in seconds
        exceptions: Exception types that are caught at all
        should_retry: Predicate deciding whether a caught exception is transient
        on_exhausted: Factory for the exception raised after the last attempt
        logger: Optional logger for attempt warnings
        sleep: Awaitable sleep function (injectable for tests)
    """
    max_attempts = max(1, max_attempts)

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except exceptions as e:
            if should_retry is not None and not should_retry(e):
                raise

            if logger:
                logger.warning(f"Attempt {attempt}/{max_attempts} failed: {str(e)}")

            if attempt < max_attempts:
                await sleep(attempt * base_delay)
                continue

            if logger:
                logger.error(f"All {max_attempts} attempts failed")
            if on_exhausted is not None:
                raise on_exhausted(e, attempt) from e
            raise
