"""Transport-level errors raised by the API client."""
from .api_errors import APIError, NetworkError, ResponseFormatError, HTTPErrorMessages

__all__ = [
    'APIError',
    'NetworkError',
    'ResponseFormatError',
    'HTTPErrorMessages',
]
