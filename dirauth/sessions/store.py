"""
Internal service API for the distributed session store.

Sessions are kept in redis under their token, signed as JWTs so that a
record written by anything but this store is rejected on load. Each user has
an index key pointing at their current session, so that a new login reuses
a live session instead of minting another one.
"""

from datetime import datetime, timedelta
from typing import Optional, Union
import logging
import os
import uuid

import dateutil.parser
from flask import Flask
from pytz import UTC
import fakeredis
import jwt
import redis
from redis.cluster import RedisCluster

from .. import domain
from .. import config as defaults
from ..exceptions import SessionCreationFailed, SessionDeletionFailed, \
    InvalidToken, Unavailable
from ..globals import get_application_config, get_application_global

logger = logging.getLogger(__name__)


class SessionStore(object):
    """
    Manages a connection to Redis.

    In fact, the StrictRedis instance is thread safe and connections are
    attached at the time a command is executed. This class simply provides a
    container for configuration.
    """

    def __init__(self, host: str, port: int, db: int, secret: str,
                 duration: int = 7200, token: Optional[str] = None,
                 cluster: bool = False, fake: bool = False,
                 fake_server: Optional[fakeredis.FakeServer] = None) -> None:
        """Open the connection to Redis."""
        if fake:
            logger.debug('Using a fake redis server')
            self.r = fakeredis.FakeStrictRedis(
                server=fake_server or fakeredis.FakeServer()
            )
        elif cluster:
            logger.debug('New Redis cluster connection at %s, port %s',
                         host, port)
            self.r = RedisCluster(host=host, port=port, password=token)
        else:
            logger.debug('New Redis connection at %s, port %s', host, port)
            self.r = redis.StrictRedis(host=host, port=port, db=db,
                                       password=token)
        self._secret = secret
        self._duration = duration

    def create_if_absent(self, user: domain.User,
                         ip_address: str) -> Optional[domain.Session]:
        """
        Get a live session for ``user``, creating one if there is none.

        A live session is refreshed with ``ip_address`` and a new login
        time, and its lifetime is extended.

        Parameters
        ----------
        user : :class:`domain.User`
        ip_address : str

        Returns
        -------
        :class:`domain.Session` or None
            ``None`` if the user has not been stored yet, or if the new token
            collided with an existing one.

        Raises
        ------
        :class:`SessionCreationFailed`
            Redis could not be reached.

        """
        if user.user_id is None:
            logger.error('Cannot create a session for unsaved user %s',
                         user.username)
            return None
        now = datetime.now(tz=UTC)
        end_time = now + timedelta(seconds=self._duration)
        try:
            existing = self._current_for_user(user.user_id)
            if existing is not None:
                session = existing._replace(ip_address=ip_address,
                                            last_login_time=now,
                                            end_time=end_time)
                self.r.set(session.session_id, self._encode(session),
                           ex=self._duration)
                self.r.expire(self._user_key(user.user_id), self._duration)
                logger.debug('Reused session %s for user %s',
                             session.session_id, user.user_id)
                return session

            session = domain.Session(
                session_id=str(uuid.uuid4()),
                user_id=user.user_id,
                ip_address=ip_address,
                last_login_time=now,
                end_time=end_time
            )
            if not self.r.set(session.session_id, self._encode(session),
                              ex=self._duration, nx=True):
                logger.error('Session %s already exists', session.session_id)
                return None
            self.r.set(self._user_key(user.user_id), session.session_id,
                       ex=self._duration)
        except redis.exceptions.ConnectionError as e:
            raise SessionCreationFailed(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionCreationFailed(f'Failed to create: {e}') from e
        logger.debug('Created session %s for user %s', session.session_id,
                     user.user_id)
        return session

    def find_by_token(self, token: str) -> Optional[domain.Session]:
        """
        Load a live session by its token.

        Returns
        -------
        :class:`domain.Session` or None
            ``None`` if there is no such session, or if it is expired or
            has been tampered with.

        Raises
        ------
        :class:`Unavailable`
            Redis could not be reached.

        """
        try:
            return self._load(token)
        except redis.exceptions.RedisError as e:
            raise Unavailable(f'Session store unavailable: {e}') from e

    def delete_by_id(self, session_id: str) -> None:
        """
        Delete a session in the key-value store by ID.

        Parameters
        ----------
        session_id : str
        """
        try:
            self.r.delete(session_id)
        except redis.exceptions.ConnectionError as e:
            raise SessionDeletionFailed(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e

    def expire_for_user(self, user_id: int) -> None:
        """End the current session of a user, if there is one."""
        try:
            session_id = self.r.get(self._user_key(user_id))
            if session_id:
                self.r.delete(session_id)
            self.r.delete(self._user_key(user_id))
        except redis.exceptions.ConnectionError as e:
            raise SessionDeletionFailed(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e

    def _current_for_user(self, user_id: int) -> Optional[domain.Session]:
        session_id = self.r.get(self._user_key(user_id))
        if not session_id:
            return None
        if isinstance(session_id, bytes):
            session_id = session_id.decode('utf-8')
        session = self._load(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    def _load(self, session_id: str) -> Optional[domain.Session]:
        if not session_id:
            return None
        session_jwt: Union[str, bytes, None] = self.r.get(session_id)
        if not session_jwt:
            logger.debug('No such session: %s', session_id)
            return None
        try:
            session = self._decode(session_jwt)
        except InvalidToken as e:
            logger.warning('Rejected session %s: %s', session_id, e)
            return None
        if session.session_id != session_id:
            logger.warning('Session %s is stored under another key',
                           session.session_id)
            return None
        if session.expired:
            logger.debug('Session has expired: %s', session_id)
            return None
        return session

    @staticmethod
    def _user_key(user_id: int) -> str:
        return f'user-session:{user_id}'

    def _encode(self, session: domain.Session) -> str:
        return jwt.encode(domain.to_dict(session), self._secret,
                          algorithm='HS256')

    def _decode(self, session_jwt: Union[str, bytes]) -> domain.Session:
        if isinstance(session_jwt, bytes):
            session_jwt = session_jwt.decode('utf-8')
        try:
            data = jwt.decode(session_jwt, self._secret, algorithms=['HS256'])
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Invalid or corrupted session token') from e
        try:
            end_time = data.get('end_time')
            return domain.Session(
                session_id=data['session_id'],
                user_id=int(data['user_id']),
                ip_address=data['ip_address'],
                last_login_time=dateutil.parser.parse(data['last_login_time']),
                end_time=dateutil.parser.parse(end_time) if end_time else None
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken('Session payload malformed') from e


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    config = app.config
    config.setdefault('REDIS_HOST', defaults.REDIS_HOST)
    config.setdefault('REDIS_PORT', defaults.REDIS_PORT)
    config.setdefault('REDIS_DATABASE', defaults.REDIS_DATABASE)
    config.setdefault('REDIS_TOKEN', defaults.REDIS_TOKEN)
    config.setdefault('REDIS_CLUSTER', defaults.REDIS_CLUSTER)
    config.setdefault('REDIS_FAKE', defaults.REDIS_FAKE)
    config.setdefault('JWT_SECRET', defaults.JWT_SECRET)
    if config['JWT_SECRET'] == defaults.JWT_SECRET \
            and 'JWT_SECRET' not in os.environ:
        logger.warning('JWT_SECRET is not set, using a secret that is '
                       'private to this process')
    config.setdefault('SESSION_DURATION', defaults.SESSION_DURATION)


_fake_server: Optional[fakeredis.FakeServer] = None


def _shared_fake_server() -> fakeredis.FakeServer:
    global _fake_server
    if _fake_server is None:
        _fake_server = fakeredis.FakeServer()
    return _fake_server


def _flag(value: object) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def get_redis_session(app: Optional[object] = None) -> SessionStore:
    """Get a new session store for the configured redis."""
    config = get_application_config(app)
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    token = config.get('REDIS_TOKEN', None)
    cluster = _flag(config.get('REDIS_CLUSTER', '0'))
    fake = _flag(config.get('REDIS_FAKE', '0'))
    secret = config['JWT_SECRET']
    duration = int(config.get('SESSION_DURATION', '7200'))
    return SessionStore(host, port, db, secret, duration, token=token,
                        cluster=cluster, fake=fake,
                        fake_server=_shared_fake_server() if fake else None)


def current_session() -> SessionStore:
    """Get/create :class:`.SessionStore` for this context."""
    g = get_application_global()
    if g is None:
        return get_redis_session()
    if 'redis' not in g:
        g.redis = get_redis_session()
    return g.redis      # type: ignore
