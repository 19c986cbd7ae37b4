"""Account association DTOs shared across services."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AccountIdentity(BaseModel):
    tenant_id: int
    domain: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)


class UserAccountAssociation(BaseModel):
    """Another account linked to the requesting account."""

    username: str
    domain: str
    tenant_domain: str
