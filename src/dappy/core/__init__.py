"""
Dappy Core Module

Foundational types and the error taxonomy shared by the transport
and directory layers.

Components:
- types: Configuration, credentials and search results
- exceptions: Custom exception types
"""

from dappy.core.types import (
    DEFAULT_USER_FILTER_ATTRIBUTE,
    AdminIdentity,
    Credential,
    DirectoryConfig,
    DirectoryEntry,
)
from dappy.core.exceptions import (
    DappyError,
    ConfigurationError,
    AuthenticationError,
    UserNotFound,
    InvalidPassword,
    DirectoryConnectionError,
    DirectoryError,
    BindError,
    SearchError,
)

__all__ = [
    # Types
    "DEFAULT_USER_FILTER_ATTRIBUTE",
    "AdminIdentity",
    "Credential",
    "DirectoryConfig",
    "DirectoryEntry",
    # Exceptions
    "DappyError",
    "ConfigurationError",
    "AuthenticationError",
    "UserNotFound",
    "InvalidPassword",
    "DirectoryConnectionError",
    "DirectoryError",
    "BindError",
    "SearchError",
]
