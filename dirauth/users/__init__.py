"""
Local user store.

Users are created here the first time a directory identity logs in (if the
not-exist policy allows it), and are read back on later logins and when a
session is resolved to a user.
"""

from typing import Generator, Optional
from contextlib import contextmanager
from datetime import datetime
import logging

from flask import Flask, current_app, has_app_context
from pytz import UTC
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session
from sqlalchemy.pool import StaticPool

from .. import domain
from .. import config as defaults
from ..exceptions import Unavailable, UserExists
from ..globals import get_application_config
from .models import Base, DBUser

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'dirauth.users'


def _now() -> datetime:
    return datetime.now(tz=UTC).replace(tzinfo=None)


class UserStore(object):
    """
    Reads and creates local users in a SQL database.

    Parameters
    ----------
    uri : str
        SQLAlchemy database URI.

    """

    def __init__(self, uri: str) -> None:
        kwargs = {}
        if uri.startswith('sqlite'):
            kwargs['connect_args'] = {'check_same_thread': False}
            if ':memory:' in uri or uri in ('sqlite://', 'sqlite:///'):
                kwargs['poolclass'] = StaticPool
        self.engine: Engine = create_engine(uri, **kwargs)
        self._sessionmaker = sessionmaker(bind=self.engine,
                                          expire_on_commit=False)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Context manager for database transaction."""
        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except Exception as e:
            logger.warning('Commit failed, rolling back: %s', str(e))
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        """Drop all tables in the database."""
        Base.metadata.drop_all(self.engine)

    def find_by_username(self, username: str) -> Optional[domain.User]:
        """
        Get the user with ``username``, or ``None``.

        Raises
        ------
        :class:`.Unavailable`
            The database cannot be reached.

        """
        try:
            with self.transaction() as session:
                db_user: Optional[DBUser] = session.query(DBUser) \
                    .filter(DBUser.username == username) \
                    .first()
                user = db_user.to_domain() if db_user is not None else None
        except OperationalError as e:
            raise Unavailable('Database is temporarily unavailable') from e
        if user is None:
            logger.debug('No such user: %s', username)
        return user

    def find_by_id(self, user_id: int) -> Optional[domain.User]:
        """Get the user with ``user_id``, or ``None``."""
        try:
            with self.transaction() as session:
                db_user: Optional[DBUser] = session.get(DBUser, int(user_id))
                user = db_user.to_domain() if db_user is not None else None
        except OperationalError as e:
            raise Unavailable('Database is temporarily unavailable') from e
        if user is None:
            logger.debug('No user with id %s', user_id)
        return user

    def create(self, user: domain.User) -> domain.User:
        """
        Add a new user to the database.

        Parameters
        ----------
        user : :class:`.domain.User`
            Data for the new account. ``user_id`` is ignored.

        Returns
        -------
        :class:`.domain.User`
            The stored user, with ``user_id`` set.

        Raises
        ------
        :class:`.UserExists`
            A user with the same username already exists.
        :class:`.Unavailable`
            The database cannot be reached.

        """
        now = _now()
        try:
            with self.transaction() as session:
                db_user = DBUser(
                    username=user.username,
                    email=user.email,
                    user_type=user.user_type,
                    state=user.state,
                    create_time=now,
                    update_time=now
                )
                session.add(db_user)
                session.flush()
                created = db_user.to_domain()
        except IntegrityError as e:
            raise UserExists(f'User {user.username} already exists') from e
        except OperationalError as e:
            raise Unavailable('Database is temporarily unavailable') from e
        logger.info('Created user %s with id %s', created.username,
                    created.user_id)
        return created


def init_app(app: Flask) -> None:
    """Configure the application's user store."""
    app.config.setdefault('USER_DATABASE_URI', defaults.USER_DATABASE_URI)
    app.extensions[EXTENSION_KEY] = get_user_store(app)


def get_user_store(app: Optional[object] = None) -> UserStore:
    """Get a new user store for the configured database."""
    config = get_application_config(app)
    uri = config.get('USER_DATABASE_URI', defaults.USER_DATABASE_URI)
    return UserStore(uri)


def current_store() -> UserStore:
    """
    Get the :class:`.UserStore` of the current application.

    The store, and its engine, is shared by every context of an app. Outside
    of an application context a new store is built from ``os.environ``.
    """
    if not has_app_context():
        return get_user_store()
    store: Optional[UserStore] = current_app.extensions.get(EXTENSION_KEY)
    if store is None:
        store = get_user_store()
        current_app.extensions[EXTENSION_KEY] = store
    return store
