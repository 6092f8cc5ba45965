"""
Session storage protocols.

Defines the interface for session storage implementations.
"""
from typing import Protocol, Optional, runtime_checkable
from .models import SessionData


@runtime_checkable
class SessionStorage(Protocol):
    """
    Protocol for session storage implementations.

    Implementations can use a JSON file, memory, or any other backend.
    """

    def load(self) -> Optional[SessionData]:
        """
        Load session data from storage.

        Returns:
            SessionData if a readable session exists, None otherwise
        """
        ...

    def save(self, data: SessionData) -> None:
        """
        Save session data to storage, replacing any previous record.

        Args:
            data: Session data to save
        """
        ...

    def delete(self) -> None:
        """
        Delete session data from storage.
        """
        ...

    def exists(self) -> bool:
        """
        Check if a session record exists in storage.

        Returns:
            True if session exists
        """
        ...

    def close(self) -> None:
        """
        Release resources held by the storage.
        """
        ...
