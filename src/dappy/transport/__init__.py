"""
Dappy Transport Layer

Network connection to the directory and the protocol session wrapper.

Components:
- connector: Connector (dial with timeout) and DirectorySession (bind/search/close)
"""

from dappy.transport.connector import (
    DEFAULT_CONNECT_TIMEOUT,
    Connector,
    DirectorySession,
    split_host,
)

__all__ = [
    "DEFAULT_CONNECT_TIMEOUT",
    "Connector",
    "DirectorySession",
    "split_host",
]
