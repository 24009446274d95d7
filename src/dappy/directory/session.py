"""
Dappy Authentication Session

Authenticate-by-proxy against an LDAP directory:

1. Admin bind: bind as the configured read-only admin
2. Locate user: subtree search for (<user_filter_attribute>=<username>)
3. User bind: bind as the located DN with the supplied password

Every top-level call opens its own session and closes it before
returning, so a connection left bound as the end user is never reused.
Nothing is retried; each failure is terminal for that call.

Error Classification:
- Empty username / no matching entry -> UserNotFound
- Empty password / user bind rejected as bad credentials -> InvalidPassword
- Host unreachable -> DirectoryConnectionError
- Admin bind, search and any other bind failure -> DirectoryError
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import attrs
import structlog
from ldap3.utils.conv import escape_filter_chars
from returns.result import Failure, Result, Success

from dappy.core.exceptions import (
    BindError,
    DappyError,
    DirectoryError,
    InvalidPassword,
    UserNotFound,
)
from dappy.core.types import (
    DEFAULT_USER_FILTER_ATTRIBUTE,
    AdminIdentity,
    Credential,
    DirectoryConfig,
    DirectoryEntry,
)
from dappy.transport.connector import Connector, DirectorySession


INVALID_CREDENTIALS_SIGNATURE = "invalidcredentials"


def is_invalid_credentials(error: Optional[BaseException]) -> bool:
    """
    Check whether a bind error means bad credentials.

    Prefers the LDAP result code; falls back to matching the
    "Invalid Credentials" text for collaborators that only report a message.
    Wrapped errors are matched on the collaborator's own message only.
    """
    if error is None:
        return False
    if isinstance(error, BindError) and error.code == BindError.INVALID_CREDENTIALS:
        return True
    normalized = "".join(str(error.__cause__ or error).split()).lower()
    return INVALID_CREDENTIALS_SIGNATURE in normalized


def user_filter(attribute: str, username: str) -> str:
    """Equality filter for a username, escaped per RFC 4515."""
    return f"({attribute}={escape_filter_chars(username)})"


# =============================================================================
# AUTH SESSION
# =============================================================================


@attrs.define
class AuthSession:
    """
    Directory authentication client.

    Holds only the immutable configuration and a connector; safe to
    share between threads.

    Example:
        config = DirectoryConfig(
            host="ldap.example.com:389",
            admin=AdminIdentity("cn=read-only-admin,dc=example,dc=com", "password"),
            base_dn="dc=example,dc=com",
        )
        auth = AuthSession(config)

        try:
            auth.authenticate("tesla", "password")
        except UserNotFound:
            ...
        except InvalidPassword:
            ...
    """

    config: DirectoryConfig = attrs.field(
        validator=attrs.validators.instance_of(DirectoryConfig)
    )
    connector: Connector = attrs.Factory(Connector)

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> None:
        """
        Verify a username and password.

        Returns None on success.

        Raises:
            UserNotFound: empty username or no matching entry
            InvalidPassword: empty password or user bind rejected
            DirectoryConnectionError: host unreachable
            DirectoryError: admin bind, search or other bind failure
        """
        result = self.try_authenticate(Credential(username=username, password=password))
        if isinstance(result, Failure):
            raise result.failure()

    def try_authenticate(self, credential: Credential) -> Result[str, DappyError]:
        """
        Run the bind-search-bind protocol.

        Returns:
            Success(user_dn) or Failure(error) with the same classification
            authenticate() raises
        """
        username = credential.username
        if not username:
            return Failure(UserNotFound("username is empty"))
        if not credential.password:
            return Failure(InvalidPassword("password is empty"))

        self._logger.info("auth_start", username=username, host=self.config.host)

        try:
            with self._admin_session() as session:
                user_dn = self._find_user(session, username).dn
                self._bind_user(session, user_dn, credential.password)
        except DappyError as e:
            return Failure(e)

        self._logger.info("auth_success", username=username, dn=user_dn)
        return Success(user_dn)

    def validate_credentials(self, username: str, password: str) -> bool:
        """
        True if the credentials are valid.

        Credential failures return False; connection and directory
        errors still propagate.
        """
        result = self.try_authenticate(Credential(username=username, password=password))
        if isinstance(result, Success):
            return True
        error = result.failure()
        if isinstance(error, (UserNotFound, InvalidPassword)):
            return False
        raise error

    # -------------------------------------------------------------------------
    # Attribute search
    # -------------------------------------------------------------------------

    def search_attributes(self, search_filter: str, *attributes: str) -> List[DirectoryEntry]:
        """
        Search below base_dn with an arbitrary filter.

        A filter that matches nothing yields an empty list.

        Raises:
            DirectoryError: empty or malformed filter, admin bind failure
            DirectoryConnectionError: host unreachable
        """
        if not search_filter:
            raise DirectoryError("search filter is empty")

        with self._admin_session() as session:
            entries = session.search(self.config.base_dn, search_filter, attributes)

        self._logger.debug("search_complete", filter=search_filter, count=len(entries))
        return entries

    def get_user_entry(self, username: str, *attributes: str) -> DirectoryEntry:
        """
        Entry of a single user.

        If several entries match, the first one returned by the directory
        wins.

        Raises:
            UserNotFound: empty username or no matching entry
            DirectoryError: admin bind or search failure
            DirectoryConnectionError: host unreachable
        """
        if not username:
            raise UserNotFound("username is empty")

        with self._admin_session() as session:
            return self._find_user(session, username, attributes)

    def get_attributes(self, username: str, *attributes: str) -> Dict[str, List[str]]:
        """Attributes of a single user; see get_user_entry."""
        return self.get_user_entry(username, *attributes).attributes

    # -------------------------------------------------------------------------
    # Protocol steps
    # -------------------------------------------------------------------------

    @contextmanager
    def _admin_session(self) -> Iterator[DirectorySession]:
        """Connect and bind as the admin; the session is always closed."""
        result = self.connector.connect(self.config.host)
        if isinstance(result, Failure):
            raise result.failure()

        with result.unwrap() as session:
            admin = self.config.admin
            try:
                session.bind(admin.name, admin.secret)
            except DirectoryError:
                self._logger.error("admin_bind_failed", admin_dn=admin.name)
                raise
            yield session

    def _find_user(
        self,
        session: DirectorySession,
        username: str,
        attributes: tuple = (),
    ) -> DirectoryEntry:
        search_filter = user_filter(self.config.user_filter_attribute, username)
        entries = session.search(self.config.base_dn, search_filter, attributes)
        if not entries:
            self._logger.info("user_not_found", username=username)
            raise UserNotFound()
        if len(entries) > 1:
            self._logger.warning(
                "user_not_unique",
                username=username,
                matches=len(entries),
                selected=entries[0].dn,
            )
        return entries[0]

    def _bind_user(self, session: DirectorySession, user_dn: str, password: str) -> None:
        try:
            session.bind(user_dn, password)
        except BindError as e:
            if is_invalid_credentials(e):
                self._logger.info("user_bind_rejected", dn=user_dn)
                raise InvalidPassword(code=e.code) from e
            raise


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_auth_session(
    host: str,
    admin_dn: str,
    admin_password: str,
    base_dn: str,
    user_filter_attribute: str = DEFAULT_USER_FILTER_ATTRIBUTE,
    **connector_options: Any,
) -> AuthSession:
    """
    Create an authentication session.

    Args:
        host: Directory address, e.g. "ldap.example.com:389"
        admin_dn: DN of the read-only admin
        admin_password: Admin password
        base_dn: Search root
        user_filter_attribute: Attribute matched against usernames
        **connector_options: Passed to Connector (timeout, use_ssl, ...)

    Raises:
        ConfigurationError: a required value is empty

    Example:
        auth = create_auth_session(
            "ldap.forumsys.com:389",
            "cn=read-only-admin,dc=example,dc=com",
            "password",
            "dc=example,dc=com",
        )
        auth.authenticate("tesla", "password")
    """
    config = DirectoryConfig(
        host=host,
        admin=AdminIdentity(name=admin_dn, secret=admin_password),
        base_dn=base_dn,
        user_filter_attribute=user_filter_attribute,
    )
    return AuthSession(config=config, connector=Connector(**connector_options))
