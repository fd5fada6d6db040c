"""
api/routes/v1/common.py -- Helpers shared by the principal routers.

Employees, seekers and users expose the same record-keeping operations over
different principal kinds. The per-kind routers stay thin and call these
helpers with their PrincipalKind; all status-code decisions live here.

No `from __future__ import annotations` in this module: Pagination is a class
dependency and FastAPI reads its __init__ annotations at runtime.
"""

import logging
from typing import Optional

from fastapi import Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.models import LoginRequest, LoginResponse, PrincipalPage, PrincipalResponse
from auth.models import Principal, PrincipalKind
from auth.store import MAX_ROW_ID, PrincipalStore
from auth.tokens import authenticate
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("staffdesk.api")


class Pagination:
    """page/limit/skip query parameters. skip, when given, overrides page."""

    def __init__(
        self,
        page: int = Query(1, ge=1, le=MAX_ROW_ID // 100),
        limit: int = Query(10, ge=1, le=100),
        skip: Optional[int] = Query(None, ge=0, le=MAX_ROW_ID),
    ) -> None:
        self.limit = limit
        self.offset = skip if skip is not None else (page - 1) * limit


def principal_store(request: Request) -> PrincipalStore:
    return request.app.state.principal_store


def acting_id(claims: Optional[dict]) -> Optional[int]:
    """Return the store id of the caller from gate claims (None in setup mode)."""
    if not claims:
        return None
    return int(claims["sub"])


def not_found(kind: PrincipalKind) -> NotFoundError:
    return NotFoundError(f"{kind.value.capitalize()} not found.")


def list_page(
    request: Request,
    kind: PrincipalKind,
    filters: dict,
    pagination: Pagination,
) -> PrincipalPage:
    store = principal_store(request)
    items = store.list_principals(kind, filters, offset=pagination.offset, limit=pagination.limit)
    return PrincipalPage(
        items=[PrincipalResponse.from_principal(p) for p in items],
        total=store.count_principals(kind, filters),
    )


def get_or_404(request: Request, kind: PrincipalKind, principal_id: int) -> Principal:
    principal = principal_store(request).get_by_id(kind, principal_id)
    if principal is None:
        raise not_found(kind)
    return principal


def find_by_cnic(request: Request, kind: PrincipalKind, cnic: Optional[str]) -> Principal:
    """Look up by national ID. Missing cnic -> 400, unknown cnic -> 404."""
    if not cnic or not cnic.strip():
        raise ValidationError("Correct CNIC number required.")
    principal = principal_store(request).get_by_natural_key(kind, "cnic", cnic.strip())
    if principal is None:
        raise not_found(kind)
    return principal


def apply_patch(request: Request, kind: PrincipalKind, principal_id: int, body: BaseModel) -> Principal:
    """Write the non-null fields of a PATCH body. Empty body -> 400, unknown id -> 404."""
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise ValidationError("No fields to update.", code="no_changes")
    updated = principal_store(request).update_principal(kind, principal_id, **fields)
    if updated is None:
        raise not_found(kind)
    logger.info("Updated %s id=%s fields=%s", kind.value, principal_id, sorted(fields))
    return updated


def delete_or_404(request: Request, kind: PrincipalKind, principal_id: int) -> Principal:
    """Delete a principal. Deleting an absent principal is a 404, not an error."""
    deleted = principal_store(request).delete_principal(kind, principal_id)
    if deleted is None:
        raise not_found(kind)
    return deleted


def login(request: Request, kind: PrincipalKind, body: LoginRequest) -> JSONResponse:
    """Password login for kind. Returns the token and the scrubbed record.

    Unknown email and wrong password produce the same 401 body so the
    response does not reveal which accounts exist.
    """
    state = request.app.state
    principal = authenticate(state.principal_store, state.password_hasher, kind, body.email, body.password)
    if principal is None:
        logger.warning("Failed %s login", kind.value)
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password.", "detail": None}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = state.token_issuer.issue(principal)
    logger.info("%s id=%s logged in", kind.value.capitalize(), principal.id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=state.token_issuer.expire_seconds,
            principal=PrincipalResponse.from_principal(principal),
        ).model_dump(by_alias=True, mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
