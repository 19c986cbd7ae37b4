"""Parameterised SQL statements used by the association repository.

Column order in each SELECT is relied upon by the repository's row mapping.
"""

from __future__ import annotations

from typing import Final

ADD_USER_ACCOUNT_ASSOCIATION: Final[str] = """
    INSERT INTO user_account_associations (association_key, tenant_id, domain_name, user_name)
    VALUES (%s, %s, %s, %s)
"""

DELETE_CONNECTION: Final[str] = """
    DELETE FROM user_account_associations
    WHERE tenant_id = %s AND domain_name = %s AND user_name = %s
"""

LIST_USER_ACCOUNT_ASSOCIATIONS: Final[str] = """
    SELECT tenant_id, domain_name, user_name
    FROM user_account_associations
    WHERE association_key = %s
"""

GET_ASSOCIATION_KEY_OF_USER: Final[str] = """
    SELECT association_key
    FROM user_account_associations
    WHERE tenant_id = %s AND domain_name = %s AND user_name = %s
"""

UPDATE_ASSOCIATION_KEY: Final[str] = """
    UPDATE user_account_associations
    SET association_key = %s
    WHERE association_key = %s
"""

# Counts rows of the second identity that share the first identity's key.
IS_VALID_ASSOCIATION: Final[str] = """
    SELECT COUNT(1)
    FROM user_account_associations
    WHERE association_key = (
        SELECT association_key
        FROM user_account_associations
        WHERE tenant_id = %s AND domain_name = %s AND user_name = %s
    )
    AND tenant_id = %s AND domain_name = %s AND user_name = %s
"""

DELETE_CONNECTION_FROM_TENANT_ID: Final[str] = """
    DELETE FROM user_account_associations
    WHERE tenant_id = %s
"""

UPDATE_USER_DOMAIN_NAME: Final[str] = """
    UPDATE user_account_associations
    SET domain_name = %s
    WHERE domain_name = %s AND tenant_id = %s
"""

DELETE_USER_ASSOCIATION_FROM_DOMAIN: Final[str] = """
    DELETE FROM user_account_associations
    WHERE tenant_id = %s AND domain_name = %s
"""

GET_TENANT_DOMAIN: Final[str] = """
    SELECT domain_name
    FROM tenants
    WHERE tenant_id = %s
"""
