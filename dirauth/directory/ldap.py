"""
Directory service backed by LDAP.

A login is checked in two binds. The service account first searches the
directory for the entry whose identity attribute matches the username, then
the found DN is bound with the password that was submitted.
"""

from typing import Any, List, Mapping, NamedTuple, Optional, Union
import logging
import re
import ssl

from ldap3 import Server, ServerPool, Connection, Tls, SUBTREE, SYNC, \
    FIRST, NONE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.uri import parse_uri

from ..domain import DirectoryLoginResult, NotExistAction, UserType
from ..exceptions import DirectoryUnavailable
from ..globals import get_application_config

logger = logging.getLogger(__name__)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class LdapConfig(NamedTuple):
    """Connection and policy settings for :class:`.LdapService`."""

    urls: str
    """One or more server URLs, comma or whitespace separated."""

    base_dn: str
    """Search base for user entries."""

    username: str
    """DN of the service account that searches the directory."""

    password: str

    admin_user: str = ''
    """Identity classified as :attr:`.UserType.ADMIN_USER`."""

    identity_attribute: str = 'uid'
    email_attribute: str = 'mail'

    not_exist_action: NotExistAction = NotExistAction.CREATE

    ssl_enable: bool = False
    trust_store: str = ''
    """PEM bundle of trusted CA certificates, used when ``ssl_enable``."""

    @property
    def server_urls(self) -> List[str]:
        return [url for url in re.split(r'[,\s]+', self.urls) if url]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'LdapConfig':
        """Build settings from ``LDAP_*`` configuration keys."""
        return cls(
            urls=config.get('LDAP_URLS', 'ldap://localhost:389/'),
            base_dn=config.get('LDAP_BASE_DN', ''),
            username=config.get('LDAP_USERNAME', ''),
            password=config.get('LDAP_PASSWORD', ''),
            admin_user=config.get('LDAP_USER_ADMIN', '') or '',
            identity_attribute=config.get('LDAP_IDENTITY_ATTRIBUTE') or 'uid',
            email_attribute=config.get('LDAP_EMAIL_ATTRIBUTE') or 'mail',
            not_exist_action=NotExistAction.parse(
                config.get('LDAP_NOT_EXIST_ACTION')
            ),
            ssl_enable=_flag(config.get('LDAP_SSL_ENABLE', False)),
            trust_store=config.get('LDAP_SSL_TRUST_STORE', '') or ''
        )

    @classmethod
    def from_app(cls, app: Optional[object] = None) -> 'LdapConfig':
        """Build settings from the application configuration."""
        return cls.from_config(get_application_config(app))


class LdapService(object):
    """
    Checks credentials against an LDAP directory.

    Parameters
    ----------
    config : :class:`.LdapConfig`
    server : :class:`ldap3.Server` or :class:`ldap3.ServerPool`
        Overrides the server(s) built from ``config.urls``.
    client_strategy : str
        An ``ldap3`` client strategy. Defaults to ``SYNC``.

    """

    def __init__(self, config: LdapConfig,
                 server: Optional[Union[Server, ServerPool]] = None,
                 client_strategy: str = SYNC) -> None:
        self.config = config
        self._strategy = client_strategy
        self._server = server if server is not None else self._make_server()

    def _make_server(self) -> Union[Server, ServerPool]:
        tls = None
        if self.config.ssl_enable:
            tls = Tls(validate=ssl.CERT_REQUIRED,
                      ca_certs_file=self.config.trust_store or None)
        servers = [self._server_for(url, tls)
                   for url in self.config.server_urls]
        if not servers:
            raise ValueError('At least one LDAP url is required')
        if len(servers) == 1:
            return servers[0]
        return ServerPool(servers, FIRST, active=True, exhaust=True)

    def _server_for(self, url: str, tls: Optional[Tls]) -> Server:
        """Build a server from an ``ldap://host:port/`` URL or a bare host."""
        parts = parse_uri(url)
        if parts is None:
            return Server(url, use_ssl=self.config.ssl_enable, tls=tls,
                          get_info=NONE)
        use_ssl = self.config.ssl_enable or bool(parts['ssl'])
        return Server(parts['host'], port=parts['port'], use_ssl=use_ssl,
                      tls=tls, get_info=NONE)

    def _connection(self, user: str, password: str) -> Connection:
        return Connection(self._server, user=user, password=password,
                          client_strategy=self._strategy,
                          raise_exceptions=False)

    def login(self, username: str, password: str) -> DirectoryLoginResult:
        """
        Verify a username/password pair.

        Parameters
        ----------
        username : str
            Value of the identity attribute.
        password : str

        Returns
        -------
        :class:`.DirectoryLoginResult`

        Raises
        ------
        :class:`.DirectoryUnavailable`
            The directory could not be reached, or rejected the service
            account.

        """
        failed = DirectoryLoginResult(success=False, username=username)
        # An LDAP simple bind with an empty password is an anonymous bind,
        # which most servers accept.
        if not username or not password:
            logger.debug('Username or password missing, not asking LDAP')
            return failed

        entry = self._find_entry(username)
        if entry is None:
            logger.info('No LDAP entry for %s', username)
            return failed
        dn, email = entry

        try:
            conn = self._connection(dn, password)
            try:
                bound = conn.bind()
            finally:
                conn.unbind()
        except LDAPException as e:
            logger.error('LDAP error while binding as %s: %s', dn, e)
            raise DirectoryUnavailable(f'LDAP bind failed: {e}') from e
        if not bound:
            logger.info('Invalid LDAP credentials for %s', username)
            return failed

        return DirectoryLoginResult(
            success=True,
            email=email,
            user_type=self.get_user_type(username),
            username=username
        )

    def _find_entry(self, username: str) -> Optional[tuple]:
        """Get the DN and e-mail of the entry for ``username``."""
        search_filter = '({}={})'.format(self.config.identity_attribute,
                                         escape_filter_chars(username))
        try:
            conn = self._connection(self.config.username,
                                    self.config.password)
            try:
                if not conn.bind():
                    raise DirectoryUnavailable(
                        f'Service account bind rejected: {conn.result}'
                    )
                conn.search(self.config.base_dn, search_filter,
                            search_scope=SUBTREE,
                            attributes=[self.config.email_attribute])
                response = list(conn.response or [])
            finally:
                conn.unbind()
        except LDAPException as e:
            logger.error('LDAP search failed for %s: %s', username, e)
            raise DirectoryUnavailable(f'LDAP search failed: {e}') from e

        for item in response:
            if item.get('type', 'searchResEntry') != 'searchResEntry':
                continue    # Referrals.
            attributes = item.get('attributes') or {}
            email = attributes.get(self.config.email_attribute, '')
            if isinstance(email, (list, tuple)):
                email = email[0] if email else ''
            return item['dn'], str(email)
        return None

    def get_user_type(self, username: str) -> UserType:
        """Classify ``username``; the configured admin is an admin user."""
        admin = self.config.admin_user
        if admin and admin.lower() == username.lower():
            return UserType.ADMIN_USER
        return UserType.GENERAL_USER

    def get_not_exist_policy(self) -> NotExistAction:
        return self.config.not_exist_action

    def can_create_if_absent(self) -> bool:
        """Whether unknown directory users may be provisioned locally."""
        return self.get_not_exist_policy() is NotExistAction.CREATE
