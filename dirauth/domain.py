"""Defines user and session concepts for the authentication gateway."""

from typing import Any, Optional, NamedTuple
from datetime import datetime
from enum import Enum
import logging

from pytz import UTC

logger = logging.getLogger(__name__)


class UserType(Enum):
    """Classification of a user, as reported by the directory."""

    GENERAL_USER = 0
    ADMIN_USER = 1


class UserState(Enum):
    """Whether a local user account may be used."""

    DISABLED = 0
    ACTIVE = 1


class NotExistAction(Enum):
    """
    What to do with a directory identity that has no local user.

    ``CREATE`` provisions a local user on first login, ``DENY`` rejects the
    login as if the credentials were wrong.
    """

    CREATE = 'CREATE'
    DENY = 'DENY'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'NotExistAction':
        """
        Get the action named by a configuration value.

        A blank value falls back to :attr:`CREATE`.

        Raises
        ------
        :class:`ValueError`
            If ``value`` names no known action.

        """
        if isinstance(value, cls):
            return value
        if value is None or not str(value).strip():
            logger.info('Not-exist action is not configured, using CREATE')
            return cls.CREATE
        try:
            return cls[str(value).strip().upper()]
        except KeyError as e:
            raise ValueError(f'Unknown not-exist action: {value}') from e


class DirectoryLoginResult(NamedTuple):
    """Outcome of a credential check against the directory."""

    success: bool
    """Whether the directory accepted the credentials."""

    email: str = ''
    """E-mail address resolved by the directory."""

    user_type: UserType = UserType.GENERAL_USER
    """Classification of the identity."""

    username: str = ''
    """The identity that was checked."""


class User(NamedTuple):
    """Represents a local user account."""

    username: str
    """Unique login name, shared with the directory."""

    email: str
    """The user's e-mail address."""

    user_type: UserType = UserType.GENERAL_USER
    """Classification of the user."""

    state: UserState = UserState.ACTIVE
    """Whether the account is enabled."""

    user_id: Optional[int] = None
    """Unique identifier for the user. If ``None``, the user does not exist."""

    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None


class Session(NamedTuple):
    """Represents an authenticated session bound to a local user."""

    session_id: str
    """Unique, opaque session token."""

    user_id: int
    """The user for which the session was created."""

    ip_address: str
    """The IP address of the client that last logged in."""

    last_login_time: datetime
    """The datetime of the most recent login on this session."""

    end_time: Optional[datetime] = None
    """The datetime when the session ends."""

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.end_time`."""
        return bool(self.end_time is not None
                    and datetime.now(tz=UTC) >= self.end_time)

    @property
    def expires(self) -> Optional[int]:
        """
        Number of seconds until the session expires.

        If the session is already expired, returns 0.
        """
        if self.end_time is None:
            return None
        duration = (self.end_time - datetime.now(tz=UTC)).total_seconds()
        return int(max(duration, 0))


# Helpers and private functions.


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Nested NamedTuples are cast recursively, enums are reduced to their
    names and datetimes to ISO-8601 strings.

    Parameters
    ----------
    obj : tuple
        A NamedTuple instance.

    Returns
    -------
    dict

    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, Enum):
            return value.name
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}
