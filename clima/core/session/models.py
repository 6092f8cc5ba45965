"""
Session data models.

Contains data classes for credentials and the persisted login record.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
import json


class SessionState(Enum):
    """Run-time state of a session; never persisted."""
    FRESH = 'fresh'
    VERIFIED = 'verified'
    INVALID = 'invalid'


@dataclass
class Credentials:
    """Email and password, used once to obtain a session."""
    email: str
    password: str = field(repr=False)

    def is_complete(self) -> bool:
        return bool(self.email and self.password)

    def to_payload(self) -> dict:
        """Login request body."""
        return {'email': self.email, 'password': self.password}


@dataclass
class UserInfo:
    """Account details returned by the login endpoint."""
    user_id: int = 0
    email: str = ''
    membership_code: str = ''
    first_name: str = ''
    last_name: str = ''

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    def to_dict(self) -> dict:
        return {
            'userId': self.user_id,
            'email': self.email,
            'membershipCode': self.membership_code,
            'firstName': self.first_name,
            'lastName': self.last_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'UserInfo':
        return cls(
            user_id=data.get('userId', 0),
            email=data.get('email', ''),
            membership_code=data.get('membershipCode', ''),
            first_name=data.get('firstName', ''),
            last_name=data.get('lastName', ''),
        )


@dataclass
class SessionData:
    """
    Complete session data for il manifesto authentication.

    Contains everything needed to make authenticated requests
    without re-entering credentials.

    Attributes:
        access_token: Bearer token for authenticated endpoints
        refresh_token: Token exchanged for a new access token
        expires_in: Access token lifetime in seconds
        user: Account details
        created_at: When the token pair was issued
        updated_at: Last time the record was saved
        state: Run-time state (fresh, verified or invalid)
    """
    access_token: str
    refresh_token: str
    expires_in: int = 0
    user: UserInfo = field(default_factory=UserInfo)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    state: SessionState = field(default=SessionState.FRESH, compare=False)

    def to_dict(self) -> dict:
        """
        Convert to the login record layout.

        Returns:
            Dictionary representation with the site's camelCase keys
        """
        return {
            'user': self.user.to_dict(),
            'token': {
                'expiresIn': self.expires_in,
                'accessToken': self.access_token,
                'refreshToken': self.refresh_token,
            },
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionData':
        """
        Create from a login record.

        Accepts both records written by this package and the raw
        ``{"user", "token"}`` answer of the login endpoint.

        Args:
            data: Dictionary with session data

        Returns:
            SessionData instance

        Raises:
            KeyError, TypeError, ValueError: On a malformed record
        """
        token = data['token']
        return cls(
            access_token=token['accessToken'],
            refresh_token=token['refreshToken'],
            expires_in=int(token.get('expiresIn') or 0),
            user=UserInfo.from_dict(data.get('user') or {}),
            created_at=datetime.fromisoformat(data['createdAt']) if data.get('createdAt') else datetime.now(),
            updated_at=datetime.fromisoformat(data['updatedAt']) if data.get('updatedAt') else datetime.now(),
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'SessionData':
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    def is_usable(self) -> bool:
        """
        Cheap local check: both tokens are present.

        Says nothing about whether the site still accepts them.
        """
        return bool(self.access_token and self.refresh_token)

    @property
    def expires_at(self) -> Optional[datetime]:
        """Expiry hint, None when the site gave no lifetime."""
        if self.expires_in <= 0:
            return None
        return self.created_at + timedelta(seconds=self.expires_in)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True when the expiry hint has passed."""
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return (now or datetime.now()) >= expires_at

    def mark_verified(self) -> None:
        self.state = SessionState.VERIFIED

    def mark_invalid(self) -> None:
        self.state = SessionState.INVALID

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp to now."""
        self.updated_at = datetime.now()
