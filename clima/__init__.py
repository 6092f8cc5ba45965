"""
clima - Async client for the il manifesto web edition.

Usage:
    >>> from clima import ClimaClient, OutputMode
    >>>
    >>> async with ClimaClient("login.json", credentials=credentials) as clima:
    ...     await clima.download(OutputMode.SINGLE_EPUB)
"""
import logging
from .client import ClimaClient

# Configuration
from .core.api import (
    APIConfig,
    TimeoutConfig,
    RetryConfig,
    AsyncAPIClient,
    AsyncAuthService
)

# Session management
from .core.session import (
    SessionStorage,
    SessionData,
    SessionState,
    Credentials,
    JSONSession,
    MemorySession,
    load_credentials
)

# Edition and ePub
from .core.edition import Article, ContentKind, Edition, EditionFetcher, OutputMode
from .core.epub import EpubMerger

from .core.exceptions import (
    ClimaException,
    AuthError,
    InvalidCredentialsError,
    AuthUnreachableError,
    UnexpectedResponseError,
    MissingCredentialsError,
    FetchError,
    SessionExpiredError,
    ArticleUnavailableError,
    FetchUnreachableError,
    FetchUnexpectedResponseError,
    MergeError,
    MalformedFragmentError,
    CollisionDetectedError,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for clima modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'clima',
        'clima.api',
        'clima.auth',
        'clima.session',
        'clima.edition',
        'clima.epub',
        'clima.client',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'ClimaClient',
    'APIConfig',
    'TimeoutConfig',
    'RetryConfig',
    'AsyncAPIClient',
    'AsyncAuthService',
    'SessionStorage',
    'SessionData',
    'SessionState',
    'Credentials',
    'JSONSession',
    'MemorySession',
    'load_credentials',
    'Article',
    'ContentKind',
    'Edition',
    'EditionFetcher',
    'OutputMode',
    'EpubMerger',
    'ClimaException',
    'AuthError',
    'InvalidCredentialsError',
    'AuthUnreachableError',
    'UnexpectedResponseError',
    'MissingCredentialsError',
    'FetchError',
    'SessionExpiredError',
    'ArticleUnavailableError',
    'FetchUnreachableError',
    'FetchUnexpectedResponseError',
    'MergeError',
    'MalformedFragmentError',
    'CollisionDetectedError',
    'setup_logging',
]
