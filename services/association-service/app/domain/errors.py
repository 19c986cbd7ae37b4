"""Failures raised by the association repository and tenant directory.

Absence is never reported through these types: a missing association key is
``None`` and an identity without associations lists as ``[]``.
"""

from __future__ import annotations

from enum import Enum


class ErrorMessage(str, Enum):
    """Human-readable descriptions for each failing operation."""

    CONN_CREATE_DB_ERROR = "Error occurred while creating the user account association"
    CONN_DELETE_DB_ERROR = "Error occurred while deleting the user account association"
    CONN_UPDATE_DB_ERROR = "Error occurred while updating the association key"
    ERROR_WHILE_RETRIEVING_ASSOC_KEY = "Error occurred while retrieving the association key of the user"
    ERROR_WHILE_RETRIEVING_ASSOC_OF_USER = "Error occurred while retrieving associations of user {username}"
    ERROR_WHILE_GETTING_TENANT_NAME = "Error occurred while resolving the domain of tenant {tenant_id}"
    UNKNOWN_TENANT = "No tenant is registered with id {tenant_id}"
    CHECK_ASSOCIATION_DB_ERROR = "Error occurred while checking the validity of the user account association"
    ASSOCIATIONS_DELETE_DB_ERROR = "Error occurred while deleting the associations of tenant {tenant_id}"
    ERROR_UPDATE_DOMAIN_NAME = "Error occurred while renaming user store domain {domain} of tenant {tenant_id}"
    ERROR_DELETE_ASSOC_FROM_DOMAIN_NAME = (
        "Error occurred while deleting associations of user store domain {domain} of tenant {tenant_id}"
    )

    def describe(self, **values: object) -> str:
        return self.value.format(**values)


class AssociationError(Exception):
    """Base class for account association failures."""


class PersistenceError(AssociationError):
    """A database statement failed while performing ``operation``.

    The underlying driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, description: str) -> None:
        super().__init__(description)
        self.operation = operation
        self.description = description


class DirectoryError(AssociationError):
    """A tenant id could not be resolved to a tenant domain."""

    def __init__(self, tenant_id: int, description: str, operation: str = "resolve_domain_name") -> None:
        super().__init__(description)
        self.tenant_id = tenant_id
        self.operation = operation
        self.description = description
