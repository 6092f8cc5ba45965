"""
Async il manifesto API client.

Thin aiohttp wrapper: bearer authentication, bounded retries with
exponential backoff, JSON and raw byte payloads.
"""
import json
import asyncio
import logging
from typing import Dict, Optional, Any, Tuple
import aiohttp

from .config import APIConfig
from .errors import APIError, NetworkError, ResponseFormatError
from .retry import RetryStrategy, ExponentialBackoffStrategy
from ..logging import get_logger


class AsyncAPIClient:
    """
    Asynchronous il manifesto API client.

    Features:
    - Full async/await support
    - Configurable timeouts and connection pool
    - Automatic retry with exponential backoff
    - Cookie jar shared by every request of the client

    Example:
        >>> async with AsyncAPIClient() as client:
        ...     edition = await client.get_json('wp/editions/latest')
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        retry_strategy: Optional[RetryStrategy] = None
    ):
        """
        Initialize async API client.

        Args:
            config: API configuration (uses defaults if not provided)
            retry_strategy: Retry policy (exponential backoff from config.retry by default)
        """
        self._config = config or APIConfig.default()
        self._retry = retry_strategy or ExponentialBackoffStrategy(self._config.retry)
        self._session: Optional[aiohttp.ClientSession] = None
        self._connector: Optional[aiohttp.TCPConnector] = None
        self._closed = False

        self._logger = get_logger('clima.api')
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            self._logger.setLevel(self._config.log_level)

    @property
    def config(self) -> APIConfig:
        """Get current configuration."""
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> 'AsyncAPIClient':
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._session is None or self._session.closed:
            self._connector = aiohttp.TCPConnector(
                **self._config.get_connector_kwargs()
            )
            self._session = aiohttp.ClientSession(
                connector=self._connector,
                **self._config.get_session_kwargs()
            )
        return self._session

    async def close(self):
        """Close client and release resources."""
        self._closed = True

        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

        if self._connector and not self._connector.closed:
            await self._connector.close()
        self._connector = None

    @staticmethod
    def _build_headers(token: Optional[str]) -> Dict[str, str]:
        if token:
            return {'Authorization': f"Bearer {token}"}
        return {}

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        payload: Optional[Any] = None
    ) -> Tuple[int, bytes]:
        """Perform one HTTP exchange and return (status, body)."""
        session = await self._ensure_session()
        async with session.request(
            method,
            url,
            json=payload,
            headers=headers,
        ) as response:
            body = await response.read()
            return response.status, body

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Any] = None,
        token: Optional[str] = None
    ) -> bytes:
        """
        Make a request, retrying transient failures.

        Request bodies are never logged: they may carry passwords or tokens.

        Args:
            method: HTTP method
            path: API path relative to the base URL, or absolute URL
            payload: JSON body
            token: Bearer token for authenticated endpoints

        Returns:
            Raw response body

        Raises:
            APIError: Non-retryable status, or retry budget exhausted
            NetworkError: Transport failure after the retry budget
        """
        if self._closed:
            raise NetworkError("Client is closed")

        url = self._config.url(path)
        headers = self._build_headers(token)
        retry_count = 0

        while True:
            self._logger.debug(f"{method} {url} (attempt {retry_count + 1})")
            try:
                status, body = await self._send(method, url, headers, payload)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self._logger.warning(f"Network error on {method} {url}: {e!r}")
                if self._retry.should_retry(None, retry_count):
                    await self._retry.wait_async(retry_count)
                    retry_count += 1
                    continue
                raise NetworkError(f"Network error: {e!r}", url) from e

            self._logger.debug(f"{method} {url} -> {status} ({len(body)} bytes)")

            if status < 400:
                return body

            if self._retry.should_retry(status, retry_count):
                self._logger.warning(
                    f"Retrying {method} {url} after HTTP {status}, attempt {retry_count + 1}"
                )
                await self._retry.wait_async(retry_count)
                retry_count += 1
                continue

            raise APIError(status, url=url)

    def _parse_json(self, body: bytes, url: str) -> Any:
        """Parse a JSON response body."""
        try:
            return json.loads(body.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ResponseFormatError(200, f"Invalid JSON from {url}: {e}", url) from e

    # Convenience methods

    async def get_json(self, path: str, token: Optional[str] = None) -> Any:
        """GET a JSON document."""
        body = await self.request('GET', path, token=token)
        return self._parse_json(body, self._config.url(path))

    async def post_json(self, path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Any:
        """POST a JSON body and decode the JSON answer."""
        body = await self.request('POST', path, payload=payload, token=token)
        return self._parse_json(body, self._config.url(path))

    async def get_bytes(self, path: str, token: Optional[str] = None) -> bytes:
        """GET a binary document (PDF, ePub, image)."""
        return await self.request('GET', path, token=token)
