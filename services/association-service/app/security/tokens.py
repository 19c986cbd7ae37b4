"""Bearer token decoding used to identify the calling account."""

from __future__ import annotations

from typing import Any

import jwt

from ..config import get_settings
from ..domain.identity import AccountIdentity


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT returning its payload.

    Parameters
    ----------
    token:
        Encoded HS256 JWT issued by the identity provider.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, or signed by another issuer.
    """

    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "tenant_id"]},
    )


def caller_from_token(token: str) -> AccountIdentity:
    """Return the account a bearer token was issued to.

    The ``sub`` claim holds the raw username, optionally prefixed by its
    user-store domain (``SECONDARY/bob``); ``tenant_id`` holds the tenant id.

    Raises
    ------
    jwt.PyJWTError
        When the token fails verification or its tenant id is not an integer.
    """
    claims = decode_access_token(token)
    try:
        tenant_id = int(claims["tenant_id"])
    except (TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError("tenant_id claim must be an integer") from exc
    return AccountIdentity.from_qualified_name(tenant_id, str(claims["sub"]))
