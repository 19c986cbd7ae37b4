"""Database repository for user account associations."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from . import queries
from .directory import TenantDirectory
from .domain.errors import ErrorMessage, PersistenceError
from .domain.identity import AccountIdentity, UserAccountAssociation

logger = logging.getLogger(__name__)


class AssociationRepository:
    """Postgres-backed store of association keys shared by linked accounts.

    Every public method borrows one pooled connection, runs its statement and
    hands the connection back before returning, on success or failure.
    """

    def __init__(self, pool: ConnectionPool, directory: TenantDirectory) -> None:
        """Store the connection pool and the directory used to name tenants."""
        self._pool = pool
        self._directory = directory

    def create_user_association(
        self, association_key: str, domain: str, tenant_id: int, username: str
    ) -> None:
        """Link an account to the group identified by ``association_key``."""
        self._execute_update(
            "create_user_association",
            queries.ADD_USER_ACCOUNT_ASSOCIATION,
            (association_key, tenant_id, domain, username),
            ErrorMessage.CONN_CREATE_DB_ERROR.describe(),
        )

    def delete_user_association(self, domain: str, tenant_id: int, username: str) -> None:
        """Remove the account from its group; a missing row is not an error."""
        self._execute_update(
            "delete_user_association",
            queries.DELETE_CONNECTION,
            (tenant_id, domain, username),
            ErrorMessage.CONN_DELETE_DB_ERROR.describe(),
        )

    def get_association_key_of_user(self, domain: str, tenant_id: int, username: str) -> str | None:
        """Return the account's association key, or ``None`` when it has no associations."""
        row = self._fetch_one(
            "get_association_key_of_user",
            queries.GET_ASSOCIATION_KEY_OF_USER,
            (tenant_id, domain, username),
            ErrorMessage.ERROR_WHILE_RETRIEVING_ASSOC_KEY.describe(),
        )
        if not row:
            return None
        return row[0]

    def get_associations_of_user(
        self, domain: str, tenant_id: int, username: str
    ) -> list[UserAccountAssociation]:
        """List the other members of the account's group.

        The account itself is excluded by exact, case-sensitive comparison of
        tenant id, domain and username. Results follow the database's row order.

        Raises
        ------
        PersistenceError
            When either query fails.
        DirectoryError
            When a member's tenant id cannot be resolved to a tenant domain.
        """
        association_key = self.get_association_key_of_user(domain, tenant_id, username)
        if association_key is None:
            return []

        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(queries.LIST_USER_ACCOUNT_ASSOCIATIONS, (association_key,))
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            logger.error("get_associations_of_user failed for %s: %s", username, exc)
            raise PersistenceError(
                "get_associations_of_user",
                ErrorMessage.ERROR_WHILE_RETRIEVING_ASSOC_OF_USER.describe(username=username),
            ) from exc

        associations: list[UserAccountAssociation] = []
        for member_tenant_id, member_domain, member_username in rows:
            if member_domain == domain and member_tenant_id == tenant_id and member_username == username:
                continue
            associations.append(
                UserAccountAssociation(
                    username=member_username,
                    domain=member_domain,
                    tenant_domain=self._directory.resolve_domain_name(member_tenant_id),
                )
            )
        return associations

    def update_user_association_key(self, old_association_key: str, new_association_key: str) -> None:
        """Move every member of ``old_association_key`` to ``new_association_key``."""
        self._execute_update(
            "update_user_association_key",
            queries.UPDATE_ASSOCIATION_KEY,
            (new_association_key, old_association_key),
            ErrorMessage.CONN_UPDATE_DB_ERROR.describe(),
        )

    def is_valid_user_association(
        self, domain: str, tenant_id: int, username: str, caller: AccountIdentity
    ) -> bool:
        """Return ``True`` when ``caller`` is linked to the given account."""
        return self.is_valid_association(
            domain, tenant_id, username, caller.domain, caller.tenant_id, caller.username
        )

    def is_valid_association(
        self,
        domain1: str,
        tenant_id1: int,
        username1: str,
        domain2: str,
        tenant_id2: int,
        username2: str,
    ) -> bool:
        """Return ``True`` when both accounts belong to the same association group."""
        row = self._fetch_one(
            "is_valid_association",
            queries.IS_VALID_ASSOCIATION,
            (tenant_id1, domain1, username1, tenant_id2, domain2, username2),
            ErrorMessage.CHECK_ASSOCIATION_DB_ERROR.describe(),
        )
        if not row:
            return False
        return int(row[0]) > 0

    def delete_user_associations_from_tenant_id(self, tenant_id: int) -> None:
        """Drop every association row of a tenant that is being removed."""
        self._execute_update(
            "delete_user_associations_from_tenant_id",
            queries.DELETE_CONNECTION_FROM_TENANT_ID,
            (tenant_id,),
            ErrorMessage.ASSOCIATIONS_DELETE_DB_ERROR.describe(tenant_id=tenant_id),
        )

    def update_domain_name_of_associations(
        self, tenant_id: int, current_domain: str, new_domain: str
    ) -> None:
        """Follow a user-store domain rename within a tenant."""
        self._execute_update(
            "update_domain_name_of_associations",
            queries.UPDATE_USER_DOMAIN_NAME,
            (new_domain, current_domain, tenant_id),
            ErrorMessage.ERROR_UPDATE_DOMAIN_NAME.describe(domain=current_domain, tenant_id=tenant_id),
        )

    def delete_associations_from_domain(self, tenant_id: int, domain: str) -> None:
        """Drop every association row of a user-store domain that is being removed."""
        self._execute_update(
            "delete_associations_from_domain",
            queries.DELETE_USER_ASSOCIATION_FROM_DOMAIN,
            (tenant_id, domain),
            ErrorMessage.ERROR_DELETE_ASSOC_FROM_DOMAIN_NAME.describe(domain=domain, tenant_id=tenant_id),
        )

    def _execute_update(
        self, operation: str, query: str, params: Sequence[Any], description: str
    ) -> None:
        """Run a data-modifying statement, committing unless the connection autocommits."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    affected = cur.rowcount
                if not conn.autocommit:
                    conn.commit()
        except psycopg.Error as exc:
            logger.error("%s failed: %s", operation, exc)
            raise PersistenceError(operation, description) from exc
        logger.debug("%s affected %s row(s)", operation, affected)

    def _fetch_one(
        self, operation: str, query: str, params: Sequence[Any], description: str
    ) -> tuple | None:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, params)
                    return cur.fetchone()
        except psycopg.Error as exc:
            logger.error("%s failed: %s", operation, exc)
            raise PersistenceError(operation, description) from exc
