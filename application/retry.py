"""Bounded retries for transient store failures"""
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import Settings
from domain.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def store_retrying(settings: Settings) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(settings.store_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.store_retry_min_wait,
            min=settings.store_retry_min_wait,
            max=settings.store_retry_max_wait,
        ),
        retry=retry_if_exception_type(TransientStoreError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def call_with_retry(settings: Settings, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    """Await func, retrying only on TransientStoreError.

    Use for reads and for writes guarded by the store's conflict check or
    compare-and-swap; anything else may not be safe to repeat.
    """
    async for attempt in store_retrying(settings):
        with attempt:
            result = await func(*args, **kwargs)
    return result
