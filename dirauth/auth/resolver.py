"""Resolve the authenticated user behind a request."""

from typing import Any, Optional
import logging

from .. import domain
from .authenticator import SessionStore, UserStore

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_NAME = 'sessionId'


class SessionResolver(object):
    """
    Looks up the user that owns the session token on a request.

    Parameters
    ----------
    sessions : :class:`.SessionStore`
    users : :class:`.UserStore`
    token_name : str
        Header and cookie that carry the session token.

    """

    def __init__(self, sessions: SessionStore, users: UserStore,
                 token_name: str = DEFAULT_TOKEN_NAME) -> None:
        self.sessions = sessions
        self.users = users
        self.token_name = token_name

    def token_from_request(self, request: Any) -> Optional[str]:
        """
        Get the session token from ``request``.

        The header is checked first, then the cookie. ``request`` may also be
        the token itself.
        """
        if request is None:
            return None
        if isinstance(request, str):
            return request or None
        headers = getattr(request, 'headers', None) or {}
        token = headers.get(self.token_name)
        if not token:
            cookies = getattr(request, 'cookies', None) or {}
            token = cookies.get(self.token_name)
        return token or None

    def get_auth_user(self, request: Any) -> Optional[domain.User]:
        """
        Get the user whose session is presented on ``request``.

        Returns
        -------
        :class:`.domain.User` or None
            ``None`` if there is no token, no live session for it, or the
            session's user no longer exists.

        """
        token = self.token_from_request(request)
        if token is None:
            logger.debug('No session token on request')
            return None

        session = self.sessions.find_by_token(token)
        if session is None:
            logger.info('session info is null')
            return None

        user = self.users.find_by_id(session.user_id)
        if user is None:
            logger.warning('Session %s refers to missing user %s',
                           session.session_id, session.user_id)
        return user
