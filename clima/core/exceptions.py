"""
Custom exceptions for clima operations.

Three families mirror the three stages of a run: authentication, edition
fetching and ePub merging. Each family has one subclass per remediation
path so callers can handle them with plain ``except`` clauses.
"""
from typing import Optional


class ClimaException(Exception):
    """Base exception for all clima errors."""

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: HTTP status or other numeric code (if available)
        """
        self.error_code = error_code
        super().__init__(message)


# Authentication

class AuthError(ClimaException):
    """Exception raised for authentication-related errors."""
    pass


class InvalidCredentialsError(AuthError):
    """The site rejected the email/password or the refresh token."""
    pass


class AuthUnreachableError(AuthError):
    """The login endpoint could not be reached."""
    pass


class UnexpectedResponseError(AuthError):
    """The login endpoint answered with something we cannot read."""
    pass


class MissingCredentialsError(AuthError):
    """No usable session is stored and no credentials were supplied."""
    pass


# Edition fetching

class FetchError(ClimaException):
    """Exception raised while retrieving the edition."""
    pass


class SessionExpiredError(FetchError):
    """The site rejected the session token during an authenticated call."""
    pass


class ArticleUnavailableError(FetchError):
    """An article could not be downloaded."""

    def __init__(
        self,
        message: str,
        slug: Optional[str] = None,
        error_code: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            slug: Slug of the article that failed
            error_code: HTTP status (if available)
        """
        self.slug = slug
        super().__init__(message, error_code)


class FetchUnreachableError(FetchError):
    """The edition endpoints could not be reached."""
    pass


class FetchUnexpectedResponseError(FetchError):
    """An edition listing did not have the expected shape."""
    pass


# ePub merging

class MergeError(ClimaException):
    """Exception raised while merging article fragments."""
    pass


class MalformedFragmentError(MergeError):
    """An article fragment is not a readable ePub container."""

    def __init__(self, message: str, identifier: Optional[str] = None) -> None:
        self.identifier = identifier
        super().__init__(message)


class CollisionDetectedError(MergeError):
    """Two merged resources were given the same path or id."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message)
