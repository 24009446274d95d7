"""
Pytest configuration and shared fixtures for Dappy tests.
"""

import re
from typing import Dict, List, Optional, Sequence

import attrs
import pytest
from ldap3 import MOCK_SYNC, NONE, Connection, Server
from returns.result import Failure, Success

from dappy.core.exceptions import BindError, DirectoryConnectionError, SearchError
from dappy.core.types import AdminIdentity, DirectoryConfig, DirectoryEntry
from dappy.directory.session import AuthSession
from dappy.transport.connector import Connector


HOST = "directory.example.com:389"
BASE_DN = "dc=example,dc=com"
ADMIN_DN = "cn=read-only-admin,dc=example,dc=com"
ADMIN_PASSWORD = "password"
TESLA_DN = "uid=tesla,dc=example,dc=com"
TESLA_PASSWORD = "password"

_EQUALITY = re.compile(r"^\(([A-Za-z][\w-]*)=([^()]*)\)$")
_ESCAPE = re.compile(r"\\([0-9a-fA-F]{2})")


# =============================================================================
# IN-MEMORY DIRECTORY
# =============================================================================


@attrs.define
class FakeDirectory:
    """
    In-memory directory with session bookkeeping.

    entries maps DN -> attributes; "userPassword" holds the bind secret.
    """

    entries: Dict[str, Dict[str, List[str]]] = attrs.Factory(dict)
    reachable: bool = True
    bind_error_message: str = 'LDAP Result Code 49 "Invalid Credentials": '
    bind_error_code: Optional[int] = 49
    drop_on_bind: Optional[str] = None
    opened: int = 0
    closed: int = 0
    binds: List[str] = attrs.Factory(list)
    searches: List[str] = attrs.Factory(list)

    def add(self, dn: str, **attributes: str) -> None:
        self.entries[dn] = {
            name: list(value) if isinstance(value, (list, tuple)) else [value]
            for name, value in attributes.items()
        }

    @property
    def open_sessions(self) -> int:
        return self.opened - self.closed


@attrs.define
class FakeSession:
    """Stand-in for DirectorySession backed by a FakeDirectory."""

    directory: FakeDirectory
    _closed: bool = False

    def bind(self, dn: str, secret: str) -> None:
        self.directory.binds.append(dn)
        if dn == self.directory.drop_on_bind:
            try:
                raise ConnectionResetError("connection reset by peer")
            except ConnectionResetError as e:
                raise BindError("bind failed: connection reset by peer") from e
        entry = self.directory.entries.get(dn)
        if entry is None or entry.get("userPassword") != [secret]:
            raise BindError(
                self.directory.bind_error_message,
                code=self.directory.bind_error_code,
            )

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Sequence[str] = (),
    ) -> List[DirectoryEntry]:
        self.directory.searches.append(search_filter)
        match = _EQUALITY.match(search_filter)
        if match is None:
            raise SearchError(
                'LDAP Result Code 201 "Filter Compile Error": ldap: unexpected end of filter',
                code=201,
            )
        name, raw_value = match.group(1).lower(), match.group(2)
        presence = raw_value == "*"
        value = _ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), raw_value)

        results = []
        for dn, entry in self.directory.entries.items():
            if not dn.lower().endswith(base_dn.lower()):
                continue
            values = {k.lower(): v for k, v in entry.items()}.get(name, [])
            if (presence and values) or (not presence and value in values):
                selected = {k: v for k, v in entry.items() if k in attributes}
                results.append(DirectoryEntry(dn=dn, attributes=selected))
        return results

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.directory.closed += 1

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@attrs.define
class FakeConnector:
    """Stand-in for Connector; counts every session it opens."""

    directory: FakeDirectory

    def connect(self, host: str):
        if not self.directory.reachable:
            return Failure(DirectoryConnectionError(f"failed to connect to {host}: refused"))
        self.directory.opened += 1
        return Success(FakeSession(directory=self.directory))


def make_directory() -> FakeDirectory:
    """Directory with the admin, tesla and two users sharing a mail address."""
    directory = FakeDirectory()
    directory.add(ADMIN_DN, cn="read-only-admin", userPassword=ADMIN_PASSWORD)
    directory.add(
        TESLA_DN,
        uid="tesla",
        cn="Nikola Tesla",
        mail="tesla@ldap.forumsys.com",
        userPassword=TESLA_PASSWORD,
    )
    directory.add(
        "uid=euler,dc=example,dc=com",
        uid="euler",
        cn="Leonhard Euler",
        mail="math@ldap.forumsys.com",
        userPassword="password",
    )
    directory.add(
        "uid=gauss,dc=example,dc=com",
        uid="gauss",
        cn="Carl Friedrich Gauss",
        mail="math@ldap.forumsys.com",
        userPassword="password",
    )
    return directory


def make_config(**overrides) -> DirectoryConfig:
    """Helper to create a config pointing at the test directory."""
    values = dict(
        host=HOST,
        admin=AdminIdentity(name=ADMIN_DN, secret=ADMIN_PASSWORD),
        base_dn=BASE_DN,
    )
    values.update(overrides)
    return DirectoryConfig(**values)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def directory_config() -> DirectoryConfig:
    """Valid directory configuration."""
    return make_config()


@pytest.fixture
def fake_directory() -> FakeDirectory:
    """In-memory directory."""
    return make_directory()


@pytest.fixture
def auth_session(directory_config: DirectoryConfig, fake_directory: FakeDirectory) -> AuthSession:
    """AuthSession wired to the in-memory directory."""
    return AuthSession(config=directory_config, connector=FakeConnector(fake_directory))


@pytest.fixture
def mock_server() -> Server:
    """ldap3 server populated for the MOCK_SYNC strategy."""
    server = Server("directory.example.com", get_info=NONE)
    connection = Connection(server, client_strategy=MOCK_SYNC)
    connection.strategy.add_entry(BASE_DN, {"objectClass": ["domain"], "dc": "example"})
    connection.strategy.add_entry(
        ADMIN_DN,
        {"objectClass": ["person"], "cn": "read-only-admin", "userPassword": ADMIN_PASSWORD},
    )
    connection.strategy.add_entry(
        TESLA_DN,
        {
            "objectClass": ["inetOrgPerson"],
            "uid": "tesla",
            "cn": "Nikola Tesla",
            "mail": "tesla@ldap.forumsys.com",
            "userPassword": TESLA_PASSWORD,
        },
    )
    return server


@pytest.fixture
def mock_connector(mock_server: Server) -> Connector:
    """Connector using ldap3's in-memory mock strategy."""
    return Connector(client_strategy=MOCK_SYNC, servers={HOST: mock_server})


@pytest.fixture
def ldap3_auth_session(directory_config: DirectoryConfig, mock_connector: Connector) -> AuthSession:
    """AuthSession running against the ldap3 mock server."""
    return AuthSession(config=directory_config, connector=mock_connector)


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "network: marks tests that open local sockets"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests requiring a real directory server"
    )
