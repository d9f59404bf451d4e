"""
Login against an external directory.

The directory is authoritative for credentials: if it rejects a login, the
local user store is never consulted. A directory identity with no local user
is either provisioned or rejected, depending on the not-exist policy. A
rejection is reported the same way as bad credentials, so that callers cannot
tell which identities exist locally.
"""

from typing import Optional, Protocol
import logging

from .. import domain
from ..exceptions import UserExists
from ..status import Result, Status

logger = logging.getLogger(__name__)


class DirectoryService(Protocol):
    """Verifies credentials and reports the not-exist policy."""

    def login(self, username: str,
              password: str) -> domain.DirectoryLoginResult: ...

    def get_not_exist_policy(self) -> domain.NotExistAction: ...

    def can_create_if_absent(self) -> bool: ...


class UserStore(Protocol):
    """Reads and creates local users."""

    def find_by_username(self, username: str) -> Optional[domain.User]: ...

    def find_by_id(self, user_id: int) -> Optional[domain.User]: ...

    def create(self, user: domain.User) -> domain.User: ...


class SessionStore(Protocol):
    """Issues and loads sessions."""

    def create_if_absent(self, user: domain.User,
                         ip_address: str) -> Optional[domain.Session]: ...

    def find_by_token(self, token: str) -> Optional[domain.Session]: ...


class Authenticator(object):
    """
    Authenticates users against a directory and issues sessions.

    Parameters
    ----------
    directory : :class:`DirectoryService`
    users : :class:`UserStore`
    sessions : :class:`SessionStore`

    """

    def __init__(self, directory: DirectoryService, users: UserStore,
                 sessions: SessionStore) -> None:
        self.directory = directory
        self.users = users
        self.sessions = sessions

    def authenticate(self, username: str, password: str,
                     ip_address: str) -> Result:
        """
        Log a user in and issue a session.

        Parameters
        ----------
        username : str
        password : str
            Password (as entered). Never logged.
        ip_address : str
            Address of the client, recorded on the session.

        Returns
        -------
        :class:`.Result`
            :attr:`.Status.SUCCESS` with the session token, or
            :attr:`.Status.USER_NAME_PASSWD_ERROR` if the directory rejects
            the credentials or the user may not be provisioned, or
            :attr:`.Status.LOGIN_SESSION_FAILED` if no session was issued.

        Raises
        ------
        :class:`.DirectoryUnavailable`, :class:`.Unavailable`, \
        :class:`.SessionCreationFailed`
            Failures of the directory or the stores are not handled here.

        """
        user = self.login(username, password)
        if user is None:
            return Result.error(Status.USER_NAME_PASSWD_ERROR)

        session = self.sessions.create_if_absent(user, ip_address)
        if session is None:
            logger.info('Could not create a session for %s', user.username)
            return Result.error(Status.LOGIN_SESSION_FAILED)

        logger.info('Login for %s from %s, session %s', user.username,
                    ip_address, session.session_id)
        return Result.login_success(session.session_id)

    def login(self, username: str, password: str) -> Optional[domain.User]:
        """
        Check credentials and get (or provision) the local user.

        Returns
        -------
        :class:`.domain.User` or None
            ``None`` if the directory rejects the credentials, or if the
            user is not known locally and may not be created.

        """
        result = self.directory.login(username, password)
        if not result.success:
            logger.info('Directory rejected credentials for %s', username)
            return None

        identity = result.username or username
        user = self.users.find_by_username(identity)
        if user is not None:
            return user

        if not self.directory.can_create_if_absent():
            logger.info('Login failed, user %s does not exist (policy %s)',
                        identity, self.directory.get_not_exist_policy())
            return None
        return self._provision(identity, result)

    def _provision(self, username: str,
                   result: domain.DirectoryLoginResult) -> domain.User:
        """Create a local user from the directory's view of the identity."""
        new_user = domain.User(
            username=username,
            email=result.email,
            user_type=result.user_type,
            state=domain.UserState.ACTIVE
        )
        try:
            return self.users.create(new_user)
        except UserExists:
            # A concurrent login created the user first.
            logger.debug('User %s was created concurrently', username)
            user = self.users.find_by_username(username)
            if user is None:
                raise
            return user
