"""Bootstrap credentials record (``credentials.json``)."""
import json
from pathlib import Path
from typing import Optional, Union

from .models import Credentials
from ..logging import get_logger

logger = get_logger('clima.session')

DEFAULT_CREDENTIALS_FILE = 'credentials.json'


def load_credentials(path: Union[str, Path] = DEFAULT_CREDENTIALS_FILE) -> Optional[Credentials]:
    """
    Read ``{"email": ..., "password": ...}`` from disk.

    The file is only needed until the first successful login; once a
    session is stored it can be deleted.

    Returns:
        Credentials, or None when the file is absent or malformed
    """
    path = Path(path)
    if not path.is_file():
        return None

    try:
        data = json.loads(path.read_text(encoding='utf-8'))
        credentials = Credentials(email=data['email'], password=data['password'])
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring unreadable credentials file {path}: {type(e).__name__}")
        return None

    if not credentials.is_complete():
        logger.warning(f"Ignoring incomplete credentials file {path}")
        return None
    return credentials


def resolve_credentials(
    email: Optional[str] = None,
    password: Optional[str] = None,
    path: Union[str, Path] = DEFAULT_CREDENTIALS_FILE
) -> Optional[Credentials]:
    """Explicit email/password win over the credentials file."""
    if email and password:
        return Credentials(email=email, password=password)
    return load_credentials(path)
