"""API error messages and exceptions."""
from typing import Dict, Optional

from ...exceptions import ClimaException


class HTTPErrorMessages:
    """Human readable explanation of the statuses the site returns."""

    MESSAGES: Dict[int, str] = {
        400: 'Bad request: the site refused the request payload.',
        401: 'Unauthorized: missing, wrong or expired credentials.',
        403: 'Forbidden: the account cannot access this resource.',
        404: 'Not found: the resource does not exist (yet).',
        422: 'Unprocessable entity: the site rejected the submitted fields.',
        429: 'Too many requests: rate limited, slow down.',
        500: 'Internal server error.',
        502: 'Bad gateway.',
        503: 'Service unavailable.',
        504: 'Gateway timeout.',
    }

    @classmethod
    def get_message(cls, status: int) -> str:
        """Gets the message for an HTTP status."""
        return cls.MESSAGES.get(status, f"Unexpected HTTP status: {status}")


class APIError(ClimaException):
    """The site answered a request with an error status."""

    def __init__(self, status: Optional[int], message: Optional[str] = None, url: Optional[str] = None):
        self.status = status
        self.url = url
        self.message = message or (HTTPErrorMessages.get_message(status) if status else 'API error')
        super().__init__(self.message, status)

    @property
    def is_auth_failure(self) -> bool:
        """True when the site rejected the credentials or token."""
        return self.status in (401, 403)


class NetworkError(APIError):
    """The request never got an HTTP answer (connection, DNS, timeout)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(None, message, url)


class ResponseFormatError(APIError):
    """The answer arrived but its body could not be decoded."""
    pass
