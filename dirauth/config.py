"""
Configuration defaults for the gateway.

Load into a Flask app with ``app.config.from_object('dirauth.config')``.
Outside of Flask the same keys are read from ``os.environ``.
"""
import secrets
import os

#################### Directory (LDAP) ####################
LDAP_URLS = os.environ.get('LDAP_URLS', 'ldap://localhost:389/')
"""One or more directory URLs, comma or whitespace separated."""

LDAP_BASE_DN = os.environ.get('LDAP_BASE_DN', 'dc=example,dc=com')
"""Search base for user entries."""

LDAP_USERNAME = os.environ.get('LDAP_USERNAME', '')
"""DN of the service account used to search the directory."""

LDAP_PASSWORD = os.environ.get('LDAP_PASSWORD', '')

LDAP_USER_ADMIN = os.environ.get('LDAP_USER_ADMIN', '')
"""Identity that is classified as an admin user on login."""

LDAP_IDENTITY_ATTRIBUTE = os.environ.get('LDAP_IDENTITY_ATTRIBUTE', 'uid')
LDAP_EMAIL_ATTRIBUTE = os.environ.get('LDAP_EMAIL_ATTRIBUTE', 'mail')

LDAP_NOT_EXIST_ACTION = os.environ.get('LDAP_NOT_EXIST_ACTION', 'CREATE')
"""``CREATE`` or ``DENY`` users that pass the directory but are not local.

Blank means ``CREATE``."""

LDAP_SSL_ENABLE = os.environ.get('LDAP_SSL_ENABLE', '0')
LDAP_SSL_TRUST_STORE = os.environ.get('LDAP_SSL_TRUST_STORE', '')
"""Path to a PEM bundle of CA certificates trusted for LDAPS."""


#################### Sessions ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TOKEN = os.environ.get('REDIS_TOKEN', None)
"""This is the token used in the AUTH procedure."""
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')

REDIS_FAKE = os.environ.get('REDIS_FAKE', '0')
"""Use the FakeRedis library instead of a redis service.

Useful for testing, dev, beta."""

JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign the session records kept in redis.

If unset, a random secret is generated for this process only. Sessions are
then rejected by other workers and lost on restart, so set this in any
deployment with more than one process."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '7200')
"""Session lifetime in seconds."""

SESSION_TOKEN_NAME = os.environ.get('SESSION_TOKEN_NAME', 'sessionId')
"""Header and cookie name that carry the session token."""


#################### User store ####################
USER_DATABASE_URI = os.environ.get('USER_DATABASE_URI', 'sqlite:///dirauth.db')
"""SQLAlchemy URI of the local user database."""


#################### Logging ####################
LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')

DIRAUTH_DEBUG = os.environ.get('DIRAUTH_DEBUG', '')
"""Turns on debug logging for the auth modules. Short term use only."""
