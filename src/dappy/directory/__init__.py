"""
Dappy Directory Module

High-level interface for directory authentication.

Components:
- session: AuthSession (authenticate, attribute search) and its factory
"""

from dappy.directory.session import (
    AuthSession,
    create_auth_session,
    is_invalid_credentials,
    user_filter,
)

__all__ = [
    "AuthSession",
    "create_auth_session",
    "is_invalid_credentials",
    "user_filter",
]
