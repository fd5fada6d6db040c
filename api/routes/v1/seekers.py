"""
api/routes/v1/seekers.py -- Job seeker registration and front-desk management.

Routes:
  POST   /api/v1/seekers/register   -- public; seekers have no password
  GET    /api/v1/seekers            -- any employee role; ?cnic= filter + pagination
  GET    /api/v1/seekers/single     -- any employee role; lookup by ?cnic=
  PATCH  /api/v1/seekers/{id}       -- admin or receptionist
  DELETE /api/v1/seekers/{id}       -- admin or receptionist; 404 if already absent
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import PrincipalPage, PrincipalResponse, SeekerPatch
from api.routes.v1.common import Pagination, apply_patch, delete_or_404, find_by_cnic, list_page
from auth.dependencies import require_employee, require_front_desk
from auth.models import PrincipalKind
from auth.registration import Registrar
from auth.validation import SeekerRegistration

router = APIRouter()

_KIND = PrincipalKind.seeker


@router.post("/seekers/register", response_model=PrincipalResponse, status_code=201)
def register_seeker(request: Request, body: SeekerRegistration) -> PrincipalResponse:
    """Register a job seeker. A CNIC already on file is a 400 already_exists."""
    registrar: Registrar = request.app.state.registrar
    return PrincipalResponse.from_principal(registrar.register(_KIND, body))


@router.get("/seekers", response_model=PrincipalPage)
def list_seekers(
    request: Request,
    cnic: Optional[str] = None,
    pagination: Pagination = Depends(),
    claims: dict = Depends(require_employee),
) -> PrincipalPage:
    return list_page(request, _KIND, {"cnic": cnic}, pagination)


@router.get("/seekers/single", response_model=PrincipalResponse)
def single_seeker(
    request: Request,
    cnic: Optional[str] = None,
    claims: dict = Depends(require_employee),
) -> PrincipalResponse:
    return PrincipalResponse.from_principal(find_by_cnic(request, _KIND, cnic))


@router.patch("/seekers/{seeker_id}", response_model=PrincipalResponse)
def update_seeker(
    request: Request,
    seeker_id: int,
    body: SeekerPatch,
    claims: dict = Depends(require_front_desk),
) -> PrincipalResponse:
    return PrincipalResponse.from_principal(apply_patch(request, _KIND, seeker_id, body))


@router.delete("/seekers/{seeker_id}", response_model=PrincipalResponse)
def delete_seeker(
    request: Request,
    seeker_id: int,
    claims: dict = Depends(require_front_desk),
) -> PrincipalResponse:
    return PrincipalResponse.from_principal(delete_or_404(request, _KIND, seeker_id))
