"""
api/routes/v1/employees.py -- Employee registration, login and record management.

Routes:
  POST   /api/v1/employees/register   -- setup gate: open until an admin exists, then admin only
  POST   /api/v1/employees/login      -- public; returns a bearer token
  GET    /api/v1/employees            -- any employee role; filters + pagination
  GET    /api/v1/employees/me         -- any employee role; freshly read record
  GET    /api/v1/employees/single     -- any employee role; lookup by ?cnic=
  PUT    /api/v1/employees/password   -- admin; re-hash password by CNIC
  PATCH  /api/v1/employees/{id}       -- admin; profile and role changes
  DELETE /api/v1/employees/{id}       -- admin; 404 if already absent

Guards:
  An admin cannot demote or delete their own account -- with a single admin
  that would leave nobody able to manage employees.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.models import EmployeePatch, LoginRequest, LoginResponse, PasswordChange, PrincipalPage, PrincipalResponse
from api.routes.v1.common import (
    Pagination,
    acting_id,
    apply_patch,
    delete_or_404,
    find_by_cnic,
    get_or_404,
    list_page,
    login,
    not_found,
    principal_store,
)
from auth.dependencies import employee_setup_gate, require_admin, require_employee
from auth.models import PrincipalKind
from auth.registration import Registrar
from auth.tokens import PasswordHasher
from auth.validation import EmployeeRegistration
from core.errors import ValidationError

router = APIRouter()

_KIND = PrincipalKind.employee


@router.post("/employees/register", response_model=PrincipalResponse, status_code=201)
def register_employee(
    request: Request,
    body: EmployeeRegistration,
    admin: Optional[dict] = Depends(employee_setup_gate),
) -> PrincipalResponse:
    """Register an employee and allocate the next EMP-NNNNNN business id.

    A duplicate CNIC or email is a 400 already_exists. The response never
    contains the password or its hash.
    """
    registrar: Registrar = request.app.state.registrar
    employee = registrar.register(_KIND, body)
    return PrincipalResponse.from_principal(employee)


@router.post("/employees/login", response_model=LoginResponse)
def login_employee(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password. Any failure is the same 401."""
    return login(request, _KIND, body)


@router.get("/employees", response_model=PrincipalPage)
def list_employees(
    request: Request,
    cnic: Optional[str] = None,
    emp_no: Optional[str] = Query(None, alias="empNo"),
    email: Optional[str] = None,
    mobile_no: Optional[str] = Query(None, alias="mobileNo"),
    pagination: Pagination = Depends(),
    claims: dict = Depends(require_employee),
) -> PrincipalPage:
    filters = {
        "cnic": cnic,
        "business_id": emp_no,
        "email": email.lower() if email else None,
        "mobile_no": mobile_no,
    }
    return list_page(request, _KIND, filters, pagination)


@router.get("/employees/me", response_model=PrincipalResponse)
def current_employee(request: Request, claims: dict = Depends(require_employee)) -> PrincipalResponse:
    """Return the caller's own record as currently stored (not as in the token)."""
    return PrincipalResponse.from_principal(get_or_404(request, _KIND, acting_id(claims)))


@router.get("/employees/single", response_model=PrincipalResponse)
def single_employee(
    request: Request,
    cnic: Optional[str] = None,
    claims: dict = Depends(require_employee),
) -> PrincipalResponse:
    return PrincipalResponse.from_principal(find_by_cnic(request, _KIND, cnic))


@router.put("/employees/password", response_model=PrincipalResponse)
def change_employee_password(
    request: Request,
    body: PasswordChange,
    claims: dict = Depends(require_admin),
) -> PrincipalResponse:
    """Set a new password for the employee with the given CNIC."""
    employee = find_by_cnic(request, _KIND, body.cnic)
    hasher: PasswordHasher = request.app.state.password_hasher
    updated = principal_store(request).update_principal(_KIND, employee.id, password_hash=hasher.hash(body.password))
    if updated is None:
        raise not_found(_KIND)
    return PrincipalResponse.from_principal(updated)


@router.patch("/employees/{employee_id}", response_model=PrincipalResponse)
def update_employee(
    request: Request,
    employee_id: int,
    body: EmployeePatch,
    claims: dict = Depends(require_admin),
) -> PrincipalResponse:
    if employee_id == acting_id(claims) and body.role is not None and body.role != "admin":
        raise ValidationError("You cannot remove your own admin role.", code="self_demotion")
    return PrincipalResponse.from_principal(apply_patch(request, _KIND, employee_id, body))


@router.delete("/employees/{employee_id}", response_model=PrincipalResponse)
def delete_employee(
    request: Request,
    employee_id: int,
    claims: dict = Depends(require_admin),
) -> PrincipalResponse:
    if employee_id == acting_id(claims):
        raise ValidationError("You cannot delete your own account.", code="self_deletion")
    return PrincipalResponse.from_principal(delete_or_404(request, _KIND, employee_id))
