"""Provides tools for logging users in and resolving their sessions."""

from typing import Optional
import logging
import os

from flask import Flask, request, Response

from .. import directory, sessions, users
from ..globals import get_application_config
from .authenticator import Authenticator
from .resolver import SessionResolver, DEFAULT_TOKEN_NAME
from . import authenticator as authenticator_module, resolver as \
    resolver_module

logger = logging.getLogger(__name__)


def create_authenticator(app: Optional[Flask] = None) -> Authenticator:
    """Build an :class:`.Authenticator` from the application configuration."""
    if app is not None:
        with app.app_context():
            return create_authenticator()
    return Authenticator(directory.current_directory(),
                         users.current_store(),
                         sessions.current_session())


def create_resolver(app: Optional[Flask] = None) -> SessionResolver:
    """Build a :class:`.SessionResolver` from the application configuration."""
    if app is not None:
        with app.app_context():
            return create_resolver()
    config = get_application_config()
    return SessionResolver(sessions.current_session(),
                           users.current_store(),
                           config.get('SESSION_TOKEN_NAME',
                                      DEFAULT_TOKEN_NAME))


class Auth(object):
    """
    Attaches the authenticated user to the request.

    Set env var or `Flask.config` `DIRAUTH_DEBUG` to True to get additional
    debugging in the logs.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from dirauth.auth import Auth
       from someapp import routes


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_object('dirauth.config')
          Auth(app)   # Registers the before_request auth check
          app.register_blueprint(routes.blueprint)    # Your blueprint.
          return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        """
        Initialize ``app`` with `Auth`.

        Parameters
        ----------
        app : :class:`Flask`

        """
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Attach :meth:`.load_user` to the Flask app.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        app.config['dirauth.Auth'] = self
        directory.init_app(app)
        sessions.init_app(app)
        users.init_app(app)
        app.config.setdefault('SESSION_TOKEN_NAME', DEFAULT_TOKEN_NAME)
        self.app.before_request(self.load_user)

        if app.config.get('DIRAUTH_DEBUG') or os.getenv('DIRAUTH_DEBUG'):
            self.auth_debug()
            logger.debug('DIRAUTH_DEBUG is set, auth debug logging is on')

    def load_user(self) -> Optional[Response]:
        """
        Look for an active session, and attach its user to the request.

        ``request.auth`` is the :class:`.domain.User`, or ``None`` for an
        anonymous request.
        """
        request.auth = create_resolver().get_auth_user(request)
        return None

    def auth_debug(self) -> None:
        """Sets the auth loggers to DEBUG."""
        for module in (authenticator_module, resolver_module, users,
                       sessions.store, directory.ldap):
            module.logger.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
