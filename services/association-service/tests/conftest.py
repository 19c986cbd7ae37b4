from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable

import psycopg
import pytest

from app import queries
from app.directory import PostgresTenantDirectory
from app.repository import AssociationRepository

SUPER_TENANT_ID = -1234
SUPER_TENANT_DOMAIN = "carbon.super"


@dataclass
class FakeDatabase:
    """In-memory stand-in for the association and tenant tables."""

    # [association_key, tenant_id, domain_name, user_name]
    rows: list[list[Any]] = field(default_factory=list)
    tenants: dict[int, str] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    executed: list[str] = field(default_factory=list)
    commits: int = 0
    open_connections: int = 0

    def fail(self, query: str, exc: Exception | None = None) -> None:
        self.failures[query] = exc or psycopg.OperationalError("connection lost")

    def keys_of(self, tenant_id: int, domain: str, username: str) -> list[str]:
        return [row[0] for row in self.rows if row[1:] == [tenant_id, domain, username]]


def _add(db: FakeDatabase, association_key, tenant_id, domain_name, user_name):
    if db.keys_of(tenant_id, domain_name, user_name):
        raise psycopg.errors.UniqueViolation("duplicate association")
    db.rows.append([association_key, tenant_id, domain_name, user_name])
    return [], 1


def _delete_one(db: FakeDatabase, tenant_id, domain_name, user_name):
    before = len(db.rows)
    db.rows = [row for row in db.rows if row[1:] != [tenant_id, domain_name, user_name]]
    return [], before - len(db.rows)


def _list(db: FakeDatabase, association_key):
    return [(row[1], row[2], row[3]) for row in db.rows if row[0] == association_key], -1


def _get_key(db: FakeDatabase, tenant_id, domain_name, user_name):
    return [(key,) for key in db.keys_of(tenant_id, domain_name, user_name)], -1


def _update_key(db: FakeDatabase, new_association_key, old_association_key):
    changed = 0
    for row in db.rows:
        if row[0] == old_association_key:
            row[0] = new_association_key
            changed += 1
    return [], changed


def _is_valid(
    db: FakeDatabase, tenant_id, domain_name, user_name, other_tenant_id, other_domain_name, other_user_name
):
    keys = db.keys_of(tenant_id, domain_name, user_name)
    if not keys:
        return [(0,)], -1
    count = sum(1 for row in db.rows if row == [keys[0], other_tenant_id, other_domain_name, other_user_name])
    return [(count,)], -1


def _delete_tenant(db: FakeDatabase, tenant_id):
    before = len(db.rows)
    db.rows = [row for row in db.rows if row[1] != tenant_id]
    return [], before - len(db.rows)


def _rename_domain(db: FakeDatabase, new_domain_name, current_domain_name, tenant_id):
    changed = 0
    for row in db.rows:
        if row[1] == tenant_id and row[2] == current_domain_name:
            row[2] = new_domain_name
            changed += 1
    return [], changed


def _delete_domain(db: FakeDatabase, tenant_id, domain_name):
    before = len(db.rows)
    db.rows = [row for row in db.rows if not (row[1] == tenant_id and row[2] == domain_name)]
    return [], before - len(db.rows)


def _tenant_domain(db: FakeDatabase, tenant_id):
    if tenant_id in db.tenants:
        return [(db.tenants[tenant_id],)], -1
    return [], -1


HANDLERS: dict[str, Callable[..., tuple[list[tuple], int]]] = {
    queries.ADD_USER_ACCOUNT_ASSOCIATION: _add,
    queries.DELETE_CONNECTION: _delete_one,
    queries.LIST_USER_ACCOUNT_ASSOCIATIONS: _list,
    queries.GET_ASSOCIATION_KEY_OF_USER: _get_key,
    queries.UPDATE_ASSOCIATION_KEY: _update_key,
    queries.IS_VALID_ASSOCIATION: _is_valid,
    queries.DELETE_CONNECTION_FROM_TENANT_ID: _delete_tenant,
    queries.UPDATE_USER_DOMAIN_NAME: _rename_domain,
    queries.DELETE_USER_ASSOCIATION_FROM_DOMAIN: _delete_domain,
    queries.GET_TENANT_DOMAIN: _tenant_domain,
}


class FakeCursor:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db
        self._result: list[tuple] = []
        self.rowcount = -1

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def execute(self, query: str, params=()) -> None:
        self._db.executed.append(query)
        if query in self._db.failures:
            raise self._db.failures[query]
        self._result, self.rowcount = HANDLERS[query](self._db, *params)

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)


class FakeConnection:
    def __init__(self, db: FakeDatabase, autocommit: bool) -> None:
        self._db = db
        self.autocommit = autocommit

    def cursor(self, row_factory=None) -> FakeCursor:
        return FakeCursor(self._db)

    def commit(self) -> None:
        self._db.commits += 1


class FakePool:
    """Mimics ``psycopg_pool.ConnectionPool.connection()`` over a FakeDatabase."""

    def __init__(self, db: FakeDatabase, autocommit: bool = False) -> None:
        self.db = db
        self.autocommit = autocommit

    @contextmanager
    def connection(self):
        self.db.open_connections += 1
        try:
            yield FakeConnection(self.db, self.autocommit)
        finally:
            self.db.open_connections -= 1


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase(tenants={1: "acme.com", 2: "globex.com"})


@pytest.fixture
def pool(database: FakeDatabase) -> FakePool:
    return FakePool(database)


@pytest.fixture
def directory(pool: FakePool) -> PostgresTenantDirectory:
    return PostgresTenantDirectory(
        pool, super_tenant_id=SUPER_TENANT_ID, super_tenant_domain=SUPER_TENANT_DOMAIN
    )


@pytest.fixture
def repository(pool: FakePool, directory: PostgresTenantDirectory) -> AssociationRepository:
    return AssociationRepository(pool, directory)


@pytest.fixture
def query_handlers() -> dict[str, Callable[..., tuple[list[tuple], int]]]:
    return HANDLERS
