"""il manifesto API module."""
from .errors import APIError, NetworkError, ResponseFormatError, HTTPErrorMessages
from .config import APIConfig, TimeoutConfig, RetryConfig, BASE_URL
from .retry import RetryStrategy, ExponentialBackoffStrategy
from .async_client import AsyncAPIClient
from .async_auth import AsyncAuthService

__all__ = [
    # Client
    'AsyncAPIClient',
    'AsyncAuthService',

    # Configuration
    'APIConfig',
    'TimeoutConfig',
    'RetryConfig',
    'BASE_URL',

    # Retry
    'RetryStrategy',
    'ExponentialBackoffStrategy',

    # Errors
    'APIError',
    'NetworkError',
    'ResponseFormatError',
    'HTTPErrorMessages',
]
