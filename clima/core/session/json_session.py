"""
JSON file session storage implementation.

Persists the login record (``login.json``) next to the working directory,
the same file the site's token answers are written to.
"""
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from .protocols import SessionStorage
from .models import SessionData
from ..logging import get_logger

logger = get_logger('clima.session')


class JSONSession(SessionStorage):
    """
    JSON file session storage.

    Writes are atomic: the record is written to a temporary file in the
    same directory and moved over the previous one, so a crash never leaves
    a half-written record behind. A record that cannot be read is treated
    as "not logged in".

    Example:
        >>> session = JSONSession("login.json")
        >>> session.save(session_data)
        >>> loaded = session.load()
    """

    DEFAULT_NAME = 'login.json'

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        base_path: Optional[Path] = None
    ):
        """
        Initialize JSON session storage.

        Args:
            path: Record file name or full path (default login.json)
            base_path: Optional base directory for relative names
        """
        self._lock = threading.Lock()
        path = Path(path or self.DEFAULT_NAME)
        if base_path and not path.is_absolute():
            path = Path(base_path) / path
        self._path = path

    @property
    def path(self) -> Path:
        """Get session file path."""
        return self._path

    def load(self) -> Optional[SessionData]:
        """
        Load session data from the record file.

        Returns:
            SessionData if the record exists and is readable, None otherwise
        """
        with self._lock:
            if not self._path.is_file():
                return None
            try:
                raw = self._path.read_text(encoding='utf-8')
                return SessionData.from_json(raw)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError,
                    KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable session record {self._path}: {e!r}")
                return None

    def save(self, data: SessionData) -> None:
        """
        Atomically replace the record with ``data``.

        Args:
            data: Session data to save
        """
        data.update_timestamp()
        payload = data.to_json(indent=2)

        with self._lock:
            directory = self._path.parent
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix='.tmp', dir=str(directory)
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

        logger.debug(f"Session saved to {self._path}")

    def delete(self) -> None:
        """Delete the record file."""
        with self._lock:
            if self._path.exists():
                self._path.unlink()

    def exists(self) -> bool:
        return self._path.is_file()

    def close(self) -> None:
        """Nothing to release: every call opens and closes the file."""
        pass

    def __enter__(self) -> 'JSONSession':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"JSONSession({str(self._path)!r})"
