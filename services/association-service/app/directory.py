"""Tenant directory lookups used to name the tenants of associated accounts."""

from __future__ import annotations

import logging
from typing import Protocol

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from . import queries
from .domain.errors import DirectoryError, ErrorMessage

logger = logging.getLogger(__name__)


class TenantDirectory(Protocol):
    """Resolves numeric tenant ids to tenant domain names."""

    def resolve_domain_name(self, tenant_id: int) -> str:
        """Return the tenant's domain name or raise ``DirectoryError``."""
        ...


class PostgresTenantDirectory:
    """Tenant directory backed by the ``tenants`` table.

    The super tenant is not stored in the table; it always resolves to the
    configured super-tenant domain.
    """

    def __init__(self, pool: ConnectionPool, *, super_tenant_id: int, super_tenant_domain: str) -> None:
        self._pool = pool
        self._super_tenant_id = super_tenant_id
        self._super_tenant_domain = super_tenant_domain

    def resolve_domain_name(self, tenant_id: int) -> str:
        if tenant_id == self._super_tenant_id:
            return self._super_tenant_domain
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(queries.GET_TENANT_DOMAIN, (tenant_id,))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            logger.error("tenant lookup failed for %s: %s", tenant_id, exc)
            raise DirectoryError(
                tenant_id, ErrorMessage.ERROR_WHILE_GETTING_TENANT_NAME.describe(tenant_id=tenant_id)
            ) from exc
        if not row:
            raise DirectoryError(tenant_id, ErrorMessage.UNKNOWN_TENANT.describe(tenant_id=tenant_id))
        return row[0]
