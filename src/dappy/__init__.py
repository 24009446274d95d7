"""
Dappy - Simple LDAP Authentication

Verifies a username and password against an LDAP directory using a
read-only admin identity to locate the user, then a second bind to
check the password.

Example Usage:
    from dappy import AuthSession, AdminIdentity, DirectoryConfig

    config = DirectoryConfig(
        host="ldap.forumsys.com:389",
        admin=AdminIdentity("cn=read-only-admin,dc=example,dc=com", "password"),
        base_dn="dc=example,dc=com",
    )
    auth = AuthSession(config)

    auth.authenticate("tesla", "password")
    print(auth.get_user_entry("tesla", "mail", "cn").pretty())
"""

from dappy.core.types import AdminIdentity, Credential, DirectoryConfig, DirectoryEntry
from dappy.core.exceptions import (
    DappyError,
    ConfigurationError,
    AuthenticationError,
    UserNotFound,
    InvalidPassword,
    DirectoryConnectionError,
    DirectoryError,
)
from dappy.transport.connector import Connector
from dappy.directory.session import AuthSession, create_auth_session

__version__ = "0.1.0"
__author__ = "Keith Ramphal"

__all__ = [
    # Main API
    "AuthSession",
    "create_auth_session",
    "Connector",
    # Types
    "AdminIdentity",
    "Credential",
    "DirectoryConfig",
    "DirectoryEntry",
    # Errors
    "DappyError",
    "ConfigurationError",
    "AuthenticationError",
    "UserNotFound",
    "InvalidPassword",
    "DirectoryConnectionError",
    "DirectoryError",
    # Metadata
    "__version__",
]
