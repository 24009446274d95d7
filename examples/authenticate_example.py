#!/usr/bin/env python3
"""
Directory Authentication Example

Demonstrates how to use Dappy's AuthSession against a public test
directory (ldap.forumsys.com), or any directory configured through
DAPPY_* environment variables.

Features:
1. Authenticate a user (admin bind, user search, user bind)
2. Distinguish "user not found" from "wrong password"
3. Fetch a user's entry and attributes
4. Search with an arbitrary filter

Author: Keith Ramphal
"""

import os

from returns.result import Failure

from dappy import (
    AdminIdentity,
    AuthSession,
    Credential,
    DirectoryConfig,
    DirectoryConnectionError,
    DirectoryError,
    InvalidPassword,
    UserNotFound,
)


def load_config() -> DirectoryConfig:
    """Config from DAPPY_* variables, else the public forumsys directory."""
    if os.environ.get("DAPPY_HOST"):
        return DirectoryConfig.from_env()
    return DirectoryConfig(
        host="ldap.forumsys.com:389",
        admin=AdminIdentity(
            name="cn=read-only-admin,dc=example,dc=com",
            secret="password",
        ),
        base_dn="dc=example,dc=com",
    )


def main():
    """Demonstrate directory authentication."""

    print("=" * 70)
    print("Dappy - Directory Authentication")
    print("=" * 70)
    print()

    auth = AuthSession(load_config())
    print(f"   Host: {auth.config.host}")
    print(f"   Base DN: {auth.config.base_dn}")
    print(f"   Filter Attribute: {auth.config.user_filter_attribute}")
    print()

    # ==========================================================================
    # EXAMPLE 1: Authenticate
    # ==========================================================================
    print("1. Authenticate")
    print("-" * 40)

    attempts = [
        ("tesla", "password"),
        ("tesla", "wrongpassword"),
        ("daddy", "password"),
    ]
    for username, password in attempts:
        try:
            auth.authenticate(username, password)
            print(f"   {username}: authenticated")
        except UserNotFound:
            print(f"   {username}: user not found")
        except InvalidPassword:
            print(f"   {username}: wrong password")
        except DirectoryConnectionError as e:
            print(f"   {username}: directory unavailable ({e})")
            return
        except DirectoryError as e:
            print(f"   {username}: directory error ({e})")
            return
    print()

    # ==========================================================================
    # EXAMPLE 2: Result-based authentication
    # ==========================================================================
    print("2. Result-based Authentication")
    print("-" * 40)

    result = auth.try_authenticate(Credential(username="tesla", password="password"))
    if isinstance(result, Failure):
        print(f"   Failed: {result.failure()}")
    else:
        print(f"   Authenticated as: {result.unwrap()}")
    print()

    # ==========================================================================
    # EXAMPLE 3: User entry
    # ==========================================================================
    print("3. User Entry")
    print("-" * 40)

    try:
        entry = auth.get_user_entry("tesla", "cn", "mail")
        for line in entry.pretty(indent=2).splitlines():
            print(f"   {line}")
    except UserNotFound:
        print("   tesla not found")
    print()

    # ==========================================================================
    # EXAMPLE 4: Filter search
    # ==========================================================================
    print("4. Filter Search")
    print("-" * 40)

    entries = auth.search_attributes("(objectClass=inetOrgPerson)", "uid", "mail")
    print(f"   Matches: {len(entries)}")
    for entry in entries[:5]:
        print(f"   {entry.get('uid')}: {entry.get('mail', '-')}")
    if len(entries) > 5:
        print(f"   ... and {len(entries) - 5} more")
    print()


if __name__ == "__main__":
    main()
