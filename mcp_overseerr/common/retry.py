"""Retry and batch fan-out helpers for Overseerr API calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import httpx

from .errors import UpstreamError
from .validation import require_positive

logger = logging.getLogger(__name__)

T = TypeVar("T")
ItemT = TypeVar("ItemT")

DEFAULT_BACKOFF: tuple[float, ...] = (0.1, 0.5, 1.0)


def is_retryable_error(error: BaseException) -> bool:
    """Return ``True`` for timeouts, dropped connections and 5xx responses."""

    if isinstance(error, UpstreamError):
        return error.retryable
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(error, (ConnectionResetError, TimeoutError)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff schedule for a single operation."""

    max_attempts: int = 3
    backoff: Sequence[float] = DEFAULT_BACKOFF
    should_retry: Callable[[BaseException], bool] = is_retryable_error

    def __post_init__(self) -> None:
        require_positive(self.max_attempts, name="max_attempts")
        if not self.backoff:
            raise ValueError("backoff must contain at least one delay")
        if any(delay < 0 for delay in self.backoff):
            raise ValueError("backoff delays must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Return the delay after the zero-based *attempt*."""

        if attempt < len(self.backoff):
            return self.backoff[attempt]
        return self.backoff[-1]


@dataclass
class BatchItemResult(Generic[ItemT, T]):
    """Outcome of one batch input; ``error`` is set when ``success`` is false."""

    item: ItemT
    success: bool
    result: T | None = None
    error: BaseException | None = field(default=None, repr=False)

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
) -> T:
    """Await *operation*, retrying transient failures per *policy*.

    The last error is re-raised once the attempts are exhausted or the
    policy declines to retry it.
    """

    policy = policy or RetryPolicy()
    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except Exception as exc:
            final_attempt = attempt == policy.max_attempts - 1
            if not policy.should_retry(exc):
                raise
            if final_attempt:
                logger.warning(
                    "Giving up after %d attempts: %s", policy.max_attempts, exc
                )
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt + 1,
                policy.max_attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)
    raise RuntimeError("retry loop exited without a result")  # pragma: no cover


async def batch_with_retry(
    items: Sequence[ItemT],
    processor: Callable[[ItemT], Awaitable[T]],
    policy: RetryPolicy | None = None,
) -> list[BatchItemResult[ItemT, T]]:
    """Run *processor* for every item concurrently with per-item retries.

    Failures are captured on the matching result instead of aborting the
    batch; results keep the order of *items*.
    """

    async def _run(item: ItemT) -> BatchItemResult[ItemT, T]:
        try:
            result = await with_retry(lambda: processor(item), policy)
        except Exception as exc:  # noqa: BLE001 - recorded on the item result
            return BatchItemResult(item=item, success=False, error=exc)
        return BatchItemResult(item=item, success=True, result=result)

    results = list(await asyncio.gather(*(_run(item) for item in items)))
    failed = sum(1 for result in results if not result.success)
    logger.info(
        "Processed batch of %d items (%d succeeded, %d failed)",
        len(results),
        len(results) - failed,
        failed,
    )
    return results


__all__ = [
    "BatchItemResult",
    "DEFAULT_BACKOFF",
    "RetryPolicy",
    "batch_with_retry",
    "is_retryable_error",
    "with_retry",
]
