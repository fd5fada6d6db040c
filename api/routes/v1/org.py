"""
api/routes/v1/org.py -- Cities, branches and departments.

Routes (reads are public, writes need an employee admin):
  GET    /api/v1/cities               GET    /api/v1/branches
  GET    /api/v1/cities/{id}          GET    /api/v1/branches/count
  POST   /api/v1/cities               GET    /api/v1/branches/{id}
  PATCH  /api/v1/cities/{id}          POST   /api/v1/branches
  DELETE /api/v1/cities/{id}          PATCH  /api/v1/branches/{id}
                                      DELETE /api/v1/branches/{id}
  GET    /api/v1/departments
  GET    /api/v1/departments/count
  GET    /api/v1/departments/{id}
  POST   /api/v1/departments
  PATCH  /api/v1/departments/{id}
  DELETE /api/v1/departments/{id}

Every PATCH appends {updatedAt, updatedBy} to the entity's update history;
updatedBy and createdBy are the acting admin's employee number.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.models import (
    BranchCreate,
    BranchPatch,
    BranchResponse,
    CityCreate,
    CityPatch,
    CityResponse,
    CountResponse,
    DepartmentCreate,
    DepartmentPatch,
    DepartmentResponse,
)
from auth.dependencies import require_admin
from core.errors import NotFoundError, ValidationError
from org.models import Branch, City, Department, OrgEntity, OrgKind
from org.store import OrgStore

router = APIRouter()


def _store(request: Request) -> OrgStore:
    return request.app.state.org_store


def _actor(claims: dict) -> Optional[str]:
    """Employee number of the acting admin, falling back to the store id."""
    principal = claims.get("principal") or {}
    return principal.get("business_id") or str(claims.get("sub"))


def _get_or_404(request: Request, kind: OrgKind, entity_id: int) -> OrgEntity:
    entity = _store(request).get(kind, entity_id)
    if entity is None:
        raise NotFoundError(f"{kind.value.capitalize()} not found.")
    return entity


def _patch(request: Request, kind: OrgKind, entity_id: int, body: BaseModel, claims: dict) -> OrgEntity:
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise ValidationError("No fields to update.", code="no_changes")
    entity = _store(request).update(kind, entity_id, updated_by=_actor(claims), **fields)
    if entity is None:
        raise NotFoundError(f"{kind.value.capitalize()} not found.")
    return entity


def _delete(request: Request, kind: OrgKind, entity_id: int) -> OrgEntity:
    entity = _store(request).delete(kind, entity_id)
    if entity is None:
        raise NotFoundError(f"{kind.value.capitalize()} not found.")
    return entity


# ---------------------------------------------------------------------------
# Cities
# ---------------------------------------------------------------------------


@router.get("/cities", response_model=list[CityResponse])
def list_cities(request: Request) -> list[CityResponse]:
    return [CityResponse.from_entity(c) for c in _store(request).list_entities(OrgKind.city)]


@router.get("/cities/{city_id}", response_model=CityResponse)
def get_city(request: Request, city_id: int) -> CityResponse:
    return CityResponse.from_entity(_get_or_404(request, OrgKind.city, city_id))


@router.post("/cities", response_model=CityResponse, status_code=201)
def create_city(request: Request, body: CityCreate, claims: dict = Depends(require_admin)) -> CityResponse:
    city = _store(request).create(City(city=body.city, country=body.country, created_by=_actor(claims)))
    return CityResponse.from_entity(city)


@router.patch("/cities/{city_id}", response_model=CityResponse)
def update_city(
    request: Request,
    city_id: int,
    body: CityPatch,
    claims: dict = Depends(require_admin),
) -> CityResponse:
    return CityResponse.from_entity(_patch(request, OrgKind.city, city_id, body, claims))


@router.delete("/cities/{city_id}", response_model=CityResponse)
def delete_city(request: Request, city_id: int, claims: dict = Depends(require_admin)) -> CityResponse:
    return CityResponse.from_entity(_delete(request, OrgKind.city, city_id))


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------


@router.get("/branches", response_model=list[BranchResponse])
def list_branches(request: Request) -> list[BranchResponse]:
    return [BranchResponse.from_entity(b) for b in _store(request).list_entities(OrgKind.branch)]


# Declared before /branches/{branch_id} so "count" is not parsed as an id.
@router.get("/branches/count", response_model=CountResponse)
def count_branches(request: Request) -> CountResponse:
    return CountResponse(count=_store(request).count(OrgKind.branch))


@router.get("/branches/{branch_id}", response_model=BranchResponse)
def get_branch(request: Request, branch_id: int) -> BranchResponse:
    return BranchResponse.from_entity(_get_or_404(request, OrgKind.branch, branch_id))


@router.post("/branches", response_model=BranchResponse, status_code=201)
def create_branch(request: Request, body: BranchCreate, claims: dict = Depends(require_admin)) -> BranchResponse:
    branch = _store(request).create(Branch(**body.model_dump(), created_by=_actor(claims)))
    return BranchResponse.from_entity(branch)


@router.patch("/branches/{branch_id}", response_model=BranchResponse)
def update_branch(
    request: Request,
    branch_id: int,
    body: BranchPatch,
    claims: dict = Depends(require_admin),
) -> BranchResponse:
    return BranchResponse.from_entity(_patch(request, OrgKind.branch, branch_id, body, claims))


@router.delete("/branches/{branch_id}", response_model=BranchResponse)
def delete_branch(request: Request, branch_id: int, claims: dict = Depends(require_admin)) -> BranchResponse:
    return BranchResponse.from_entity(_delete(request, OrgKind.branch, branch_id))


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


@router.get("/departments", response_model=list[DepartmentResponse])
def list_departments(request: Request) -> list[DepartmentResponse]:
    return [DepartmentResponse.from_entity(d) for d in _store(request).list_entities(OrgKind.department)]


# Declared before /departments/{department_id} for the same reason.
@router.get("/departments/count", response_model=CountResponse)
def count_departments(request: Request) -> CountResponse:
    return CountResponse(count=_store(request).count(OrgKind.department))


@router.get("/departments/{department_id}", response_model=DepartmentResponse)
def get_department(request: Request, department_id: int) -> DepartmentResponse:
    return DepartmentResponse.from_entity(_get_or_404(request, OrgKind.department, department_id))


@router.post("/departments", response_model=DepartmentResponse, status_code=201)
def create_department(
    request: Request,
    body: DepartmentCreate,
    claims: dict = Depends(require_admin),
) -> DepartmentResponse:
    department = _store(request).create(Department(**body.model_dump(), created_by=_actor(claims)))
    return DepartmentResponse.from_entity(department)


@router.patch("/departments/{department_id}", response_model=DepartmentResponse)
def update_department(
    request: Request,
    department_id: int,
    body: DepartmentPatch,
    claims: dict = Depends(require_admin),
) -> DepartmentResponse:
    return DepartmentResponse.from_entity(_patch(request, OrgKind.department, department_id, body, claims))


@router.delete("/departments/{department_id}", response_model=DepartmentResponse)
def delete_department(
    request: Request,
    department_id: int,
    claims: dict = Depends(require_admin),
) -> DepartmentResponse:
    return DepartmentResponse.from_entity(_delete(request, OrgKind.department, department_id))
