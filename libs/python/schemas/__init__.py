"""Shared schema exports."""

from .association import AccountIdentity, UserAccountAssociation

__all__ = [
    "AccountIdentity",
    "UserAccountAssociation",
]
