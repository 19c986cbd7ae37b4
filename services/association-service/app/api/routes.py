"""HTTP route definitions for the association service."""

from __future__ import annotations

import logging

import jwt
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from pydantic import BaseModel, Field

import schemas

from ..config import get_settings
from ..domain.errors import DirectoryError, PersistenceError
from ..domain.identity import AccountIdentity
from ..repository import AssociationRepository
from ..security.rate_limiter import build_rate_limiter
from ..security.tokens import caller_from_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

ASSOCIATION_FAILURES = Counter(
    "association_failures_total",
    "Association operations that failed with a persistence or directory error.",
    ["kind", "operation"],
)


class CreateAssociationRequest(BaseModel):
    """Payload linking an account to an existing association key."""

    association_key: str = Field(..., min_length=1)
    tenant_id: int
    domain: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)


class AssociationKeyResponse(BaseModel):
    association_key: str | None = None


class AssociationListResponse(BaseModel):
    """Other members of the requested account's association group."""

    items: list[schemas.UserAccountAssociation]


class UpdateAssociationKeyRequest(BaseModel):
    new_key: str = Field(..., min_length=1)


class ValidateAssociationRequest(BaseModel):
    """The two accounts whose link is being checked."""

    first: schemas.AccountIdentity
    second: schemas.AccountIdentity


class ValidityResponse(BaseModel):
    valid: bool


class RenameDomainRequest(BaseModel):
    new_domain: str = Field(..., min_length=1)


settings = get_settings()

rate_limiter = build_rate_limiter(settings)


def get_repository(request: Request) -> AssociationRepository:
    """Resolve the `AssociationRepository` stored on the FastAPI application state."""
    repository: AssociationRepository = request.app.state.association_repository
    return repository


def get_caller(authorization: str | None = Header(default=None)) -> AccountIdentity:
    """Identify the calling account from its bearer token."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    try:
        return caller_from_token(token.strip())
    except jwt.PyJWTError as exc:
        logger.info("rejected bearer token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid bearer token") from exc


def _enforce_rate_limit(key: str) -> None:
    if not rate_limiter.allow(key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate limited")


@router.post("/associations", status_code=status.HTTP_201_CREATED)
def create_association(
    payload: CreateAssociationRequest,
    repository: AssociationRepository = Depends(get_repository),
) -> Response:
    """Link an account to the group behind ``association_key``."""
    _enforce_rate_limit(f"create:{payload.tenant_id}")
    repository.create_user_association(
        payload.association_key, payload.domain, payload.tenant_id, payload.username
    )
    return Response(status_code=status.HTTP_201_CREATED)


@router.delete(
    "/tenants/{tenant_id}/domains/{domain}/users/{username}/association",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_association(
    tenant_id: int,
    domain: str,
    username: str,
    repository: AssociationRepository = Depends(get_repository),
) -> Response:
    repository.delete_user_association(domain, tenant_id, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/tenants/{tenant_id}/domains/{domain}/users/{username}/association-key",
    response_model=AssociationKeyResponse,
)
def get_association_key(
    tenant_id: int,
    domain: str,
    username: str,
    repository: AssociationRepository = Depends(get_repository),
) -> AssociationKeyResponse:
    """Return the account's association key; ``null`` when it is not linked."""
    return AssociationKeyResponse(
        association_key=repository.get_association_key_of_user(domain, tenant_id, username)
    )


@router.get(
    "/tenants/{tenant_id}/domains/{domain}/users/{username}/associations",
    response_model=AssociationListResponse,
)
def list_associations(
    tenant_id: int,
    domain: str,
    username: str,
    repository: AssociationRepository = Depends(get_repository),
) -> AssociationListResponse:
    """List every other account linked to the given account."""
    associations = repository.get_associations_of_user(domain, tenant_id, username)
    return AssociationListResponse(
        items=[
            schemas.UserAccountAssociation(
                username=association.username,
                domain=association.domain,
                tenant_domain=association.tenant_domain,
            )
            for association in associations
        ]
    )


@router.put("/association-keys/{old_key}", status_code=status.HTTP_204_NO_CONTENT)
def update_association_key(
    old_key: str,
    payload: UpdateAssociationKeyRequest,
    repository: AssociationRepository = Depends(get_repository),
) -> Response:
    """Merge the group behind ``old_key`` into ``new_key``."""
    _enforce_rate_limit("rekey")
    repository.update_user_association_key(old_key, payload.new_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/associations/validate", response_model=ValidityResponse)
def validate_association(
    payload: ValidateAssociationRequest,
    repository: AssociationRepository = Depends(get_repository),
) -> ValidityResponse:
    first, second = payload.first, payload.second
    valid = repository.is_valid_association(
        first.domain, first.tenant_id, first.username, second.domain, second.tenant_id, second.username
    )
    return ValidityResponse(valid=valid)


@router.get("/me/associations/validate", response_model=ValidityResponse)
def validate_caller_association(
    tenant_id: int = Query(...),
    domain: str = Query(..., min_length=1),
    username: str = Query(..., min_length=1),
    caller: AccountIdentity = Depends(get_caller),
    repository: AssociationRepository = Depends(get_repository),
) -> ValidityResponse:
    """Check whether the bearer of the token is linked to the given account."""
    return ValidityResponse(
        valid=repository.is_valid_user_association(domain, tenant_id, username, caller)
    )


@router.delete("/tenants/{tenant_id}/associations", status_code=status.HTTP_204_NO_CONTENT)
def delete_tenant_associations(
    tenant_id: int,
    repository: AssociationRepository = Depends(get_repository),
) -> Response:
    _enforce_rate_limit(f"tenant:{tenant_id}")
    repository.delete_user_associations_from_tenant_id(tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/tenants/{tenant_id}/domains/{domain}/associations",
    status_code=status.HTTP_204_NO_CONTENT,
)
def rename_domain_of_associations(
    tenant_id: int,
    domain: str,
    payload: RenameDomainRequest,
    repository: AssociationRepository = Depends(get_repository),
) -> Response:
    _enforce_rate_limit(f"tenant:{tenant_id}")
    repository.update_domain_name_of_associations(tenant_id, domain, payload.new_domain)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/tenants/{tenant_id}/domains/{domain}/associations",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_domain_associations(
    tenant_id: int,
    domain: str,
    repository: AssociationRepository = Depends(get_repository),
) -> Response:
    _enforce_rate_limit(f"tenant:{tenant_id}")
    repository.delete_associations_from_domain(tenant_id, domain)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _persistence_error_response(request: Request, exc: PersistenceError) -> JSONResponse:
    ASSOCIATION_FAILURES.labels(kind="persistence", operation=exc.operation).inc()
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": exc.description})


def _directory_error_response(request: Request, exc: DirectoryError) -> JSONResponse:
    ASSOCIATION_FAILURES.labels(kind="directory", operation=exc.operation).inc()
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": exc.description})


def register_error_handlers(app: FastAPI) -> None:
    """Translate repository and directory failures into HTTP responses."""
    app.add_exception_handler(PersistenceError, _persistence_error_response)
    app.add_exception_handler(DirectoryError, _directory_error_response)
