from __future__ import annotations
import random, asyncio
from dataclasses import dataclass
from typing import Callable, Awaitable, TypeVar
from .errors import LLMError

T = TypeVar("T")

@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_s: float = 0.2
    max_delay_s: float = 2.0
    jitter: float = 0.2  # 20%

def _sleep_for(attempt: int, policy: RetryPolicy) -> float:
    # exponential backoff with jitter
    delay = min(policy.max_delay_s, policy.base_delay_s * (2 ** (attempt - 1)))
    jitter = delay * policy.jitter * (random.random() * 2 - 1)
    return max(0.0, delay + jitter)

async def with_retries(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    on_retry: Callable[[int, LLMError], None] | None = None,
) -> T:
    """Call `fn` until it succeeds, retrying only errors flagged as retryable."""
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except LLMError as e:
            if not e.retryable or attempt == policy.max_attempts:
                raise
            if on_retry is not None:
                on_retry(attempt, e)
            await asyncio.sleep(_sleep_for(attempt, policy))
    raise AssertionError("retry loop exited without a result")  # pragma: no cover
