"""
api/routes/v1/users.py -- Generic user signup, login and admin management.

Routes:
  POST   /api/v1/users/signup    -- public for role "user"; role "admin" passes the user setup gate
  POST   /api/v1/users/login     -- public; returns a bearer token
  GET    /api/v1/users           -- user admin; ?email= / ?cnic= filters + pagination
  GET    /api/v1/users/me        -- any user role; freshly read record
  GET    /api/v1/users/single    -- user admin; lookup by ?cnic=
  PATCH  /api/v1/users/{id}      -- user admin
  DELETE /api/v1/users/{id}      -- user admin; 404 if already absent

Users are a separate principal kind from employees: an employee token does
not open these routes and a user token does not open employee routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, PrincipalPage, PrincipalResponse, UserPatch
from api.routes.v1.common import (
    Pagination,
    acting_id,
    apply_patch,
    delete_or_404,
    find_by_cnic,
    get_or_404,
    list_page,
    login,
)
from auth.dependencies import require_user, require_user_admin, user_setup_gate
from auth.models import PrincipalKind
from auth.registration import Registrar
from auth.validation import UserRegistration
from core.errors import ValidationError

router = APIRouter()

_KIND = PrincipalKind.user


@router.post("/users/signup", response_model=PrincipalResponse, status_code=201)
def signup_user(request: Request, body: UserRegistration) -> PrincipalResponse:
    """Create a user account. Email, mobile number and CNIC must all be unused.

    Self-signup as admin is only possible before the first user admin exists;
    after that, creating another admin requires a user-admin token.
    """
    if body.role == "admin":
        user_setup_gate(request)
    registrar: Registrar = request.app.state.registrar
    return PrincipalResponse.from_principal(registrar.register(_KIND, body))


@router.post("/users/login", response_model=LoginResponse)
def login_user(request: Request, body: LoginRequest) -> JSONResponse:
    return login(request, _KIND, body)


@router.get("/users", response_model=PrincipalPage)
def list_users(
    request: Request,
    email: Optional[str] = None,
    cnic: Optional[str] = None,
    pagination: Pagination = Depends(),
    claims: dict = Depends(require_user_admin),
) -> PrincipalPage:
    filters = {"email": email.lower() if email else None, "cnic": cnic}
    return list_page(request, _KIND, filters, pagination)


@router.get("/users/me", response_model=PrincipalResponse)
def current_user(request: Request, claims: dict = Depends(require_user)) -> PrincipalResponse:
    return PrincipalResponse.from_principal(get_or_404(request, _KIND, acting_id(claims)))


@router.get("/users/single", response_model=PrincipalResponse)
def single_user(
    request: Request,
    cnic: Optional[str] = None,
    claims: dict = Depends(require_user_admin),
) -> PrincipalResponse:
    return PrincipalResponse.from_principal(find_by_cnic(request, _KIND, cnic))


@router.patch("/users/{user_id}", response_model=PrincipalResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    claims: dict = Depends(require_user_admin),
) -> PrincipalResponse:
    if user_id == acting_id(claims) and body.role is not None and body.role != "admin":
        raise ValidationError("You cannot remove your own admin role.", code="self_demotion")
    return PrincipalResponse.from_principal(apply_patch(request, _KIND, user_id, body))


@router.delete("/users/{user_id}", response_model=PrincipalResponse)
def delete_user(
    request: Request,
    user_id: int,
    claims: dict = Depends(require_user_admin),
) -> PrincipalResponse:
    if user_id == acting_id(claims):
        raise ValidationError("You cannot delete your own account.", code="self_deletion")
    return PrincipalResponse.from_principal(delete_or_404(request, _KIND, user_id))
