"""Account identities and the association view returned to callers."""

from __future__ import annotations

from dataclasses import dataclass

PRIMARY_DOMAIN = "PRIMARY"
DOMAIN_SEPARATOR = "/"


@dataclass(frozen=True, slots=True)
class AccountIdentity:
    """One user account: a username inside a user-store domain of a tenant."""

    tenant_id: int
    domain: str
    username: str

    @classmethod
    def from_qualified_name(cls, tenant_id: int, qualified_name: str) -> "AccountIdentity":
        """Build an identity from a possibly domain-prefixed username such as ``SECONDARY/bob``."""
        return cls(
            tenant_id=tenant_id,
            domain=extract_domain_from_name(qualified_name),
            username=username_without_domain(qualified_name),
        )


@dataclass(frozen=True, slots=True)
class UserAccountAssociation:
    """Another member of an association group, as seen by one of its members."""

    username: str
    domain: str
    tenant_domain: str


def extract_domain_from_name(name: str) -> str:
    """Return the upper-cased user-store domain of ``name``, or ``PRIMARY`` when unqualified."""
    index = name.find(DOMAIN_SEPARATOR)
    if index > 0:
        return name[:index].upper()
    return PRIMARY_DOMAIN


def username_without_domain(name: str) -> str:
    """Strip a leading ``DOMAIN/`` qualifier from ``name``."""
    index = name.find(DOMAIN_SEPARATOR)
    if index > 0:
        return name[index + 1 :]
    return name
