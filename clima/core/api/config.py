"""
API configuration module.

Timeouts, retry budget and connection pool of the il manifesto API client.
"""
from dataclasses import dataclass, field
from typing import Dict, Any

BASE_URL = 'https://api.ilmanifesto.it/api/v1'


@dataclass
class TimeoutConfig:
    """Timeout configuration, in seconds."""
    total: float = 120.0  # Whole request, body included
    connect: float = 20.0
    sock_read: float = 60.0

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read
        )


@dataclass
class RetryConfig:
    """
    Retry configuration.

    Controls the bounded retry budget of every request.
    """
    max_retries: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    exponential_base: float = 2.0
    retry_on_status: tuple = (429, 500, 502, 503, 504)

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class APIConfig:
    """
    Complete API configuration.

    Centralizes all configuration options for the API client.
    """
    base_url: str = BASE_URL

    user_agent: str = 'clima/1.0.0'

    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    extra_headers: Dict[str, str] = field(default_factory=dict)

    log_level: int = 20  # logging.INFO

    # Connection pool settings
    limit_per_host: int = 8
    limit: int = 32

    # Parallel article downloads
    max_concurrency: int = 4

    @classmethod
    def default(cls) -> 'APIConfig':
        """Create default configuration."""
        return cls()

    def url(self, path: str) -> str:
        """Absolute URL for an API path; absolute URLs pass through."""
        if path.startswith('http://') or path.startswith('https://'):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            'Accept': 'application/json, */*',
            **self.extra_headers
        }

        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
