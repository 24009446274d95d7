"""
Dappy Directory Transport Layer

Network connection to an LDAP directory, wrapped as a protocol session.

Supports:
- "host:port" addresses (389 by default, 636 with SSL)
- ldap:// and ldaps:// URLs
- Bounded connect timeout (8 seconds by default)

Protocol operations are delegated to ldap3. Its exceptions never leave
this module; they are wrapped as DirectoryConnectionError, BindError or
SearchError.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import attrs
import structlog
from ldap3 import (
    DEREF_NEVER,
    NO_ATTRIBUTES,
    NONE,
    SIMPLE,
    SUBTREE,
    SYNC,
    Connection,
    Server,
)
from ldap3.core.exceptions import LDAPException
from returns.result import Failure, Result, Success

from dappy.core.exceptions import BindError, DirectoryConnectionError, SearchError
from dappy.core.types import DirectoryEntry


DEFAULT_CONNECT_TIMEOUT = 8.0


def split_host(host: str) -> Tuple[str, Optional[int]]:
    """
    Split a "name:port" address.

    URLs and bare names are returned unchanged with no port, leaving the
    default to ldap3.
    """
    if "://" in host:
        return host, None
    name, sep, port = host.rpartition(":")
    if sep and name and ":" not in name and port.isdigit():
        return name, int(port)
    return host, None


def _describe(result: Mapping[str, Any]) -> str:
    """Render an ldap3 result dict the way LDAP tools print them."""
    return 'LDAP Result Code {} "{}": {}'.format(
        result.get("result"),
        result.get("description", ""),
        result.get("message", ""),
    )


# =============================================================================
# SESSION
# =============================================================================


@attrs.define
class DirectorySession:
    """
    One live protocol session.

    Owned exclusively by the caller that opened it and closed exactly
    once, normally via the context manager protocol.
    """

    connection: Connection
    host: str = ""

    _closed: bool = attrs.field(default=False, init=False)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def closed(self) -> bool:
        return self._closed

    def bind(self, dn: str, secret: str) -> None:
        """
        Bind the session as dn.

        Raises:
            BindError: bind rejected (code carries the LDAP result code)
                or the connection failed during the exchange
        """
        self.connection.authentication = SIMPLE
        self.connection.user = dn
        self.connection.password = secret
        try:
            bound = self.connection.bind()
        except LDAPException as e:
            raise BindError(f"bind failed: {e}") from e

        if not bound:
            result = self.connection.result or {}
            raise BindError(_describe(result), code=result.get("result"))

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Sequence[str] = (),
    ) -> List[DirectoryEntry]:
        """
        Subtree search, never dereferencing aliases, with no size or time limit.

        An empty attribute list requests no attributes, only DNs.

        Raises:
            SearchError: malformed filter, non-success result code or
                connection failure
        """
        try:
            self.connection.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                dereference_aliases=DEREF_NEVER,
                attributes=list(attributes) if attributes else NO_ATTRIBUTES,
                size_limit=0,
                time_limit=0,
                types_only=False,
            )
        except LDAPException as e:
            raise SearchError(f"search {search_filter!r} failed: {e}") from e

        result = self.connection.result or {}
        code = result.get("result", 0)
        if code != 0:
            raise SearchError(_describe(result), code=code)

        return [
            DirectoryEntry.from_ldap3(item)
            for item in (self.connection.response or [])
            if item.get("type", "searchResEntry") == "searchResEntry"
        ]

    def close(self) -> None:
        """Unbind and release the connection. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self.connection.unbind()
        except LDAPException as e:
            self._logger.warning("ldap_unbind_failed", host=self.host, error=str(e))
        self._logger.debug("ldap_session_closed", host=self.host)

    def __enter__(self) -> DirectorySession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# =============================================================================
# CONNECTOR
# =============================================================================


@attrs.define
class Connector:
    """
    Opens sessions to a directory host.

    Attributes:
        timeout: Connect timeout in seconds
        use_ssl: Use LDAPS for "host:port" addresses
        receive_timeout: Optional read timeout for bind/search
        client_strategy: ldap3 client strategy (SYNC, or MOCK_SYNC in tests)
        servers: Pre-built ldap3 servers keyed by host, used instead of
            building one from the address

    Example:
        connector = Connector()
        result = connector.connect("ldap.example.com:389")
        if isinstance(result, Success):
            with result.unwrap() as session:
                session.bind(admin_dn, admin_password)
    """

    timeout: float = DEFAULT_CONNECT_TIMEOUT
    use_ssl: bool = False
    receive_timeout: Optional[float] = None
    client_strategy: str = SYNC
    servers: Dict[str, Server] = attrs.Factory(dict)

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def server_for(self, host: str) -> Server:
        """ldap3 Server for an address."""
        if host in self.servers:
            return self.servers[host]
        name, port = split_host(host)
        return Server(
            name,
            port=port,
            use_ssl=self.use_ssl,
            get_info=NONE,
            connect_timeout=self.timeout,
        )

    def connect(self, host: str) -> Result[DirectorySession, DirectoryConnectionError]:
        """
        Dial host and wrap the connection as a session.

        The caller owns the returned session and must close it.

        Returns:
            Success(DirectorySession) or Failure(DirectoryConnectionError)
        """
        try:
            connection = Connection(
                self.server_for(host),
                client_strategy=self.client_strategy,
                receive_timeout=self.receive_timeout,
                read_only=True,
                raise_exceptions=False,
            )
            connection.open()
        except (LDAPException, OSError) as e:
            self._logger.error("ldap_connect_failed", host=host, error=str(e))
            error = DirectoryConnectionError(f"failed to connect to {host}: {e}")
            error.__cause__ = e
            return Failure(error)

        self._logger.debug("ldap_connected", host=host)
        return Success(DirectorySession(connection=connection, host=host))
