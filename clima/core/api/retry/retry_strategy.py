"""Retry strategies using Strategy Pattern."""
import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from ..config import RetryConfig


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, status: Optional[int], retry_count: int) -> bool:
        """Determines if a request should be retried.

        ``status`` is None when the request failed before any HTTP answer.
        """
        pass

    @abstractmethod
    async def wait_async(self, retry_count: int):
        """Waits before retry."""
        pass


class ExponentialBackoffStrategy(RetryStrategy):
    """Exponential backoff on transport failures and transient statuses."""

    def __init__(self, config: Optional[RetryConfig] = None):
        self._config = config or RetryConfig()

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    def should_retry(self, status: Optional[int], retry_count: int) -> bool:
        """Retries network failures and the configured statuses."""
        if retry_count >= self._config.max_retries:
            return False
        return status is None or status in self._config.retry_on_status

    async def wait_async(self, retry_count: int):
        """Waits with exponential backoff."""
        await asyncio.sleep(self._config.calculate_delay(retry_count))
