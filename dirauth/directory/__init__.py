"""
Directory services that verify credentials for the gateway.

A directory service provides ``login(username, password)``, which returns a
:class:`.DirectoryLoginResult`, and exposes the configured
:class:`.NotExistAction` through ``get_not_exist_policy()`` and
``can_create_if_absent()``.
"""

from typing import Optional

from flask import Flask

from .ldap import LdapConfig, LdapService
from .. import config as defaults
from ..globals import get_application_global


def init_app(app: Flask) -> None:
    """Set default directory configuration for an application instance."""
    for key in ('LDAP_URLS', 'LDAP_BASE_DN', 'LDAP_USERNAME',
                'LDAP_PASSWORD', 'LDAP_USER_ADMIN', 'LDAP_IDENTITY_ATTRIBUTE',
                'LDAP_EMAIL_ATTRIBUTE', 'LDAP_NOT_EXIST_ACTION',
                'LDAP_SSL_ENABLE', 'LDAP_SSL_TRUST_STORE'):
        app.config.setdefault(key, getattr(defaults, key))


def get_directory(app: Optional[object] = None) -> LdapService:
    """Get a new directory service configured for ``app``."""
    return LdapService(LdapConfig.from_app(app))


def current_directory() -> LdapService:
    """Get/create :class:`.LdapService` for this context."""
    g = get_application_global()
    if g is None:
        return get_directory()
    if 'directory' not in g:
        g.directory = get_directory()
    return g.directory      # type: ignore
