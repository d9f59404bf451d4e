"""Tests for :class:`dirauth.auth.Auth`."""
from logging import DEBUG

import pytest
from flask import request

from ... import auth, domain, factory, users
from ...directory import ldap
from ...sessions import store
from ...status import Status


def test_anonymous_request(app):
    """No token on the request, so no user is attached."""
    with app.test_request_context():
        app.preprocess_request()
        assert request.auth is None


def test_session_header(app, user_store):
    """A valid session token in the header resolves to its user."""
    user = user_store.create(
        domain.User(username='test', email='test@example.com')
    )
    session = store.current_session().create_if_absent(user, '10.0.0.1')

    with app.test_request_context(headers={'sessionId': session.session_id}):
        app.preprocess_request()
        assert request.auth == user


def test_unknown_session(app):
    """An unknown token resolves to no one."""
    with app.test_request_context(headers={'sessionId': 'nosuchsession'}):
        app.preprocess_request()
        assert request.auth is None


def test_login_then_resolve(app, mocker):
    """A session issued at login is accepted on the next request."""
    authenticator = auth.create_authenticator(app)
    mocker.patch.object(
        authenticator.directory, 'login',
        return_value=domain.DirectoryLoginResult(
            True, 'test@example.com', domain.UserType.GENERAL_USER, 'test'
        )
    )
    with app.app_context():
        result = authenticator.authenticate('test', 'password', '127.0.0.1')
    assert result.status is Status.SUCCESS

    token = result.data['sessionId']
    with app.test_request_context(headers={'Cookie': f'sessionId={token}'}):
        app.preprocess_request()
        assert request.auth is not None
        assert request.auth.username == 'test'


def test_registered_on_app(app):
    """The extension registers itself and sets config defaults."""
    assert isinstance(app.config['dirauth.Auth'], auth.Auth)
    assert app.config['SESSION_TOKEN_NAME'] == 'sessionId'
    assert 'LDAP_NOT_EXIST_ACTION' in app.config


@pytest.fixture()
def auth_loggers():
    """Restore the auth log levels after a test changes them."""
    loggers = [auth.logger, auth.authenticator_module.logger,
               auth.resolver_module.logger, users.logger, store.logger,
               ldap.logger]
    levels = [logger.level for logger in loggers]
    yield loggers
    for logger, level in zip(loggers, levels):
        logger.setLevel(level)


def test_auth_debug(tmp_path, auth_loggers):
    """DIRAUTH_DEBUG turns on debug logging for the auth modules."""
    factory.create_web_app(
        USER_DATABASE_URI=f'sqlite:///{tmp_path}/users.db',
        REDIS_FAKE='1',
        JWT_SECRET='foosecret',
        DIRAUTH_DEBUG='1',
    )
    for logger in auth_loggers:
        assert logger.level == DEBUG
