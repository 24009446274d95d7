"""
Dappy Core Types

Value types for directory authentication.

Design Principles:
- Immutable: configuration and credentials use frozen attrs
- Validated: configuration constraints enforced at construction
- Transient: credentials and entries are never cached or persisted
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional

import attrs
from attrs import field, validators

from dappy.core.exceptions import ConfigurationError


DEFAULT_USER_FILTER_ATTRIBUTE = "uid"


def _non_empty(instance: Any, attribute: attrs.Attribute, value: Any) -> None:
    """attrs validator: value must be a non-empty string."""
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{type(instance).__name__}.{attribute.name} is empty")


def _default_filter_attribute(value: Optional[str]) -> str:
    return value or DEFAULT_USER_FILTER_ATTRIBUTE


# =============================================================================
# CONFIGURATION
# =============================================================================


@attrs.define(frozen=True, slots=True)
class AdminIdentity:
    """
    Privileged read-only identity used for the initial bind.

    INVARIANT: name and secret are non-empty
    """

    name: str = field(validator=_non_empty)
    secret: str = field(validator=_non_empty, repr=False)


@attrs.define(frozen=True, slots=True)
class DirectoryConfig:
    """
    Directory authentication configuration.

    Attributes:
        host: Directory host and port (e.g., "ldap.example.com:389")
            or an ldap:// / ldaps:// URL
        admin: Read-only admin identity for the initial bind
        base_dn: Search root (e.g., "ou=People,dc=example,dc=com")
        user_filter_attribute: Attribute matched against the username,
            defaults to "uid"

    INVARIANT: host and base_dn are non-empty
    """

    host: str = field(validator=_non_empty)
    admin: AdminIdentity = field()
    base_dn: str = field(validator=_non_empty)
    user_filter_attribute: str = field(
        default=DEFAULT_USER_FILTER_ATTRIBUTE,
        converter=_default_filter_attribute,
    )

    @admin.validator
    def _check_admin(self, attribute: attrs.Attribute, value: Any) -> None:
        if not isinstance(value, AdminIdentity):
            raise ConfigurationError("DirectoryConfig.admin must be an AdminIdentity")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = "DAPPY_",
    ) -> DirectoryConfig:
        """
        Build config from environment variables.

        Reads {prefix}HOST, {prefix}ADMIN_DN, {prefix}ADMIN_PASSWORD,
        {prefix}BASE_DN and the optional {prefix}USER_FILTER.
        """
        env = os.environ if environ is None else environ
        return cls(
            host=env.get(f"{prefix}HOST", ""),
            admin=AdminIdentity(
                name=env.get(f"{prefix}ADMIN_DN", ""),
                secret=env.get(f"{prefix}ADMIN_PASSWORD", ""),
            ),
            base_dn=env.get(f"{prefix}BASE_DN", ""),
            user_filter_attribute=env.get(f"{prefix}USER_FILTER", ""),
        )


# =============================================================================
# CREDENTIALS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Credential:
    """Username and password supplied for a single authentication call."""

    username: str = field(validator=validators.instance_of(str))
    password: str = field(validator=validators.instance_of(str), repr=False)


# =============================================================================
# SEARCH RESULTS
# =============================================================================


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


@attrs.define(frozen=True, slots=True)
class DirectoryEntry:
    """
    A single search result.

    Attributes:
        dn: Distinguished name of the entry
        attributes: Attribute name -> list of string values
    """

    dn: str = field(validator=validators.instance_of(str))
    attributes: Dict[str, List[str]] = field(factory=dict)

    @classmethod
    def from_ldap3(cls, item: Mapping[str, Any]) -> DirectoryEntry:
        """
        Build an entry from an ldap3 search response item.

        ldap3 returns single values, lists or bytes depending on the
        schema it knows about; all are normalized to List[str].
        """
        attributes: Dict[str, List[str]] = {}
        for name, value in (item.get("attributes") or {}).items():
            if isinstance(value, (list, tuple)):
                attributes[name] = [_as_text(v) for v in value]
            elif value is None:
                attributes[name] = []
            else:
                attributes[name] = [_as_text(value)]
        return cls(dn=item.get("dn", ""), attributes=attributes)

    def get_all(self, name: str) -> List[str]:
        """All values of an attribute (name matched case-insensitively)."""
        wanted = name.lower()
        for key, values in self.attributes.items():
            if key.lower() == wanted:
                return list(values)
        return []

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of an attribute, or default."""
        values = self.get_all(name)
        return values[0] if values else default

    def pretty(self, indent: int = 2) -> str:
        """Human-readable rendering, one attribute value per line."""
        pad = " " * indent
        lines = [f"DN: {self.dn}"]
        for name, values in self.attributes.items():
            for value in values:
                lines.append(f"{pad}{name}: {value}")
        return "\n".join(lines)
