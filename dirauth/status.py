"""Outcome codes for login attempts."""

from typing import Dict, NamedTuple, Optional, Any
from enum import Enum

SESSION_ID = 'sessionId'
"""Key of the session token in a successful login payload."""


class Status(Enum):
    """Login outcomes, each with a stable numeric code."""

    SUCCESS = (0, 'login success')
    USER_NAME_PASSWD_ERROR = (10013, 'user name or password error')
    LOGIN_SESSION_FAILED = (10014, 'create session failed!')

    @property
    def code(self) -> int:
        """The numeric code exposed to callers."""
        return int(self.value[0])

    @property
    def msg(self) -> str:
        """Human-readable description of the outcome."""
        return str(self.value[1])


class Result(NamedTuple):
    """The result of an authentication attempt."""

    status: Status
    data: Optional[Dict[str, str]] = None

    @classmethod
    def login_success(cls, session_id: str) -> 'Result':
        """Build a :attr:`Status.SUCCESS` result for a session token."""
        if not session_id:
            raise ValueError('A successful login requires a session token')
        return cls(Status.SUCCESS, {SESSION_ID: session_id})

    @classmethod
    def error(cls, status: Status) -> 'Result':
        """Build a failed result."""
        if status is Status.SUCCESS:
            raise ValueError('Use login_success() for successful logins')
        return cls(status)

    @property
    def code(self) -> int:
        return self.status.code

    @property
    def msg(self) -> str:
        return self.status.msg

    @property
    def is_success(self) -> bool:
        return self.status is Status.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Render the result for a response body."""
        return {'code': self.code, 'msg': self.msg, 'data': self.data}
