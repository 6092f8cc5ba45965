"""
Async authentication service.

Handles il manifesto login and token refresh asynchronously.
"""
from datetime import datetime
from typing import Any, Optional

from .async_client import AsyncAPIClient
from .errors import APIError, NetworkError, ResponseFormatError
from ..exceptions import (
    InvalidCredentialsError,
    AuthUnreachableError,
    UnexpectedResponseError,
)
from ..logging import get_logger, redact
from ..session.models import Credentials, SessionData, SessionState, UserInfo

# Statuses meaning "these credentials are wrong"
REJECTED_STATUSES = (400, 401, 403, 422)


class AsyncAuthService:
    """
    Asynchronous authentication service.

    Turns credentials (or a refresh token) into a SessionData. The
    password only lives in the request body of the login call.
    """

    LOGIN_PATH = 'auth/login'
    REFRESH_PATH = 'auth/token'

    def __init__(self, client: AsyncAPIClient):
        """
        Initialize auth service.

        Args:
            client: Async API client
        """
        self._client = client
        self._logger = get_logger('clima.auth')

    async def login(self, credentials: Credentials) -> SessionData:
        """
        Login to il manifesto.

        Args:
            credentials: Email and password

        Returns:
            Fresh SessionData

        Raises:
            InvalidCredentialsError: The site rejected the credentials
            AuthUnreachableError: Network failure after retries
            UnexpectedResponseError: The answer could not be understood
        """
        self._logger.info(f"Logging in as {credentials.email}")
        data = await self._post(self.LOGIN_PATH, credentials.to_payload(), 'login')

        try:
            user = data['user']
            if not isinstance(user, dict):
                raise TypeError('user is not an object')
            session = self._session_from_token(data['token'], UserInfo.from_dict(user))
        except (KeyError, TypeError, ValueError) as e:
            raise UnexpectedResponseError(f"Unexpected login response: {e!r}") from e

        self._logger.info(f"Logged in as {session.user.display_name}, token {redact(session.access_token)}")
        return session

    async def refresh(self, session: SessionData) -> SessionData:
        """
        Exchange the refresh token for a new token pair.

        Args:
            session: Stored session

        Returns:
            Fresh SessionData with the same user details

        Raises:
            InvalidCredentialsError: The site rejected the refresh token
            AuthUnreachableError: Network failure after retries
            UnexpectedResponseError: The answer could not be understood
        """
        self._logger.info(f"Refreshing token {redact(session.refresh_token)}")
        data = await self._post(
            self.REFRESH_PATH, {'refreshToken': session.refresh_token}, 'token refresh'
        )

        try:
            # The endpoint answers with the bare token object
            token = data.get('token', data)
            refreshed = self._session_from_token(token, session.user)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UnexpectedResponseError(f"Unexpected token refresh response: {e!r}") from e

        self._logger.debug(f"Token refreshed, new token {redact(refreshed.access_token)}")
        return refreshed

    async def _post(self, path: str, payload: dict, action: str) -> Any:
        try:
            data = await self._client.post_json(path, payload)
        except ResponseFormatError as e:
            raise UnexpectedResponseError(f"Unreadable {action} response", e.status) from e
        except NetworkError as e:
            raise AuthUnreachableError(f"Cannot reach the {action} endpoint: {e.message}") from e
        except APIError as e:
            if e.status in REJECTED_STATUSES:
                raise InvalidCredentialsError(f"The site rejected the {action}", e.status) from e
            if e.status == 429 or (e.status is not None and e.status >= 500):
                raise AuthUnreachableError(
                    f"The {action} endpoint is failing (HTTP {e.status})", e.status
                ) from e
            raise UnexpectedResponseError(
                f"The {action} endpoint answered HTTP {e.status}", e.status
            ) from e

        if not isinstance(data, dict):
            raise UnexpectedResponseError(f"Unexpected {action} response type: {type(data).__name__}")
        return data

    @staticmethod
    def _session_from_token(token: dict, user: Optional[UserInfo]) -> SessionData:
        access_token = token['accessToken']
        refresh_token = token['refreshToken']
        if not access_token or not refresh_token:
            raise ValueError('empty token')
        now = datetime.now()
        return SessionData(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(token.get('expiresIn') or 0),
            user=user or UserInfo(),
            created_at=now,
            updated_at=now,
            state=SessionState.FRESH,
        )
