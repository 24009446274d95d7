"""
Dappy Exception Types

Error taxonomy for directory authentication.

Callers authenticating end users see exactly one of:
- UserNotFound: no entry matches the username
- InvalidPassword: the user's bind was rejected
- DirectoryConnectionError: the directory host could not be reached
- DirectoryError: admin bind, search or protocol failure
"""

from typing import Optional


class DappyError(Exception):
    """Base exception for all Dappy errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(DappyError, ValueError):
    """
    Invalid configuration.

    Raised once, when a DirectoryConfig or AdminIdentity is constructed.
    """

    pass


class AuthenticationError(DappyError):
    """
    Authentication failed.

    The protocol ran to completion but the supplied credentials were
    rejected. Only end-user mistakes land here, never infrastructure faults.
    """

    pass


class UserNotFound(AuthenticationError):
    """No directory entry matches the supplied username."""

    def __init__(self, message: str = "user not found") -> None:
        super().__init__(message)


class InvalidPassword(AuthenticationError):
    """The user's bind was rejected as bad credentials."""

    def __init__(self, message: str = "invalid password", code: Optional[int] = None) -> None:
        super().__init__(message, code=code)


class DirectoryConnectionError(DappyError, ConnectionError):
    """
    The network connection to the directory host failed or timed out.

    Also a builtin ConnectionError so generic network handlers catch it.
    """

    pass


class DirectoryError(DappyError):
    """
    Directory-level failure.

    Misconfigured admin credentials, malformed filters, non-success
    result codes and connections dropped mid-sequence.
    """

    pass


class BindError(DirectoryError):
    """
    A bind operation was rejected.

    Carries the LDAP result code (49 = invalidCredentials) when known.
    """

    INVALID_CREDENTIALS = 49


class SearchError(DirectoryError):
    """A search operation failed."""

    pass
