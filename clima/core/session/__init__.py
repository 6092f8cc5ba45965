"""
Session management module.

Provides persistent session storage for il manifesto authentication.
"""
from .protocols import SessionStorage
from .models import SessionData, SessionState, Credentials, UserInfo
from .json_session import JSONSession
from .memory_session import MemorySession
from .credentials import load_credentials, resolve_credentials, DEFAULT_CREDENTIALS_FILE

__all__ = [
    'SessionStorage',
    'SessionData',
    'SessionState',
    'Credentials',
    'UserInfo',
    'JSONSession',
    'MemorySession',
    'load_credentials',
    'resolve_credentials',
    'DEFAULT_CREDENTIALS_FILE',
]
