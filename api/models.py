"""
API request and response models for StaffDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
org/models.py, which own the internal domain representation. Route handlers
map between the two.

Registration bodies are not defined here: routes use the schemas from
auth/validation.py so the HTTP layer and Registrar validate against exactly
the same rules. The field types below reuse the same rules for PATCH bodies.

Wire format is camelCase throughout. Response models never carry a password
or password hash field.
"""

from datetime import date
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import Principal
from auth.validation import Cnic, Email, MobileNumber, Name, Password, Reference, SeekerCnic
from org.models import Branch, City, Department, UpdateRecord

# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------

_Contact = Annotated[str, Field(pattern=r"^\d{11}$")]
_Address = Annotated[str, Field(min_length=1, max_length=500)]


class _Request(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class _Response(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Principals -- requests
# ---------------------------------------------------------------------------


class LoginRequest(_Request):
    email: Annotated[str, Field(min_length=3, max_length=255)]
    password: Annotated[str, Field(min_length=1, max_length=255)]


class PasswordChange(_Request):
    """Request body for PUT /api/v1/employees/password."""

    cnic: Cnic
    password: Password


class EmployeePatch(_Request):
    """Request body for PATCH /api/v1/employees/{id}.

    Omitted or null fields are left unchanged.
    """

    full_name: Optional[Name] = None
    father_name: Optional[Name] = None
    email: Optional[Email] = None
    mobile_no: Optional[MobileNumber] = None
    cnic: Optional[Cnic] = None
    dob: Optional[date] = None
    gender: Optional[Literal["Male", "Female"]] = None
    address: Optional[_Address] = None
    city_id: Optional[Reference] = None
    branch_id: Optional[Reference] = None
    department_id: Optional[Reference] = None
    role: Optional[Literal["admin", "receptionist", "staff"]] = None
    image_url: Optional[str] = Field(default=None, max_length=2048)


class SeekerPatch(_Request):
    full_name: Optional[Name] = None
    mobile_no: Optional[MobileNumber] = None
    cnic: Optional[SeekerCnic] = None
    gender: Optional[Literal["Male", "Female"]] = None
    address: Optional[_Address] = None
    city_id: Optional[Reference] = None
    branch_id: Optional[Reference] = None
    department_id: Optional[Reference] = None


class UserPatch(_Request):
    full_name: Optional[Name] = None
    father_name: Optional[Name] = None
    email: Optional[Email] = None
    mobile_no: Optional[MobileNumber] = None
    cnic: Optional[Cnic] = None
    dob: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    role: Optional[Literal["admin", "user"]] = None
    address: Optional[_Address] = None
    city_id: Optional[Reference] = None
    image_url: Optional[str] = Field(default=None, max_length=2048)


# ---------------------------------------------------------------------------
# Principals -- responses
# ---------------------------------------------------------------------------


class PrincipalResponse(_Response):
    """Public view of a principal. There is deliberately no password field."""

    id: int
    kind: str
    full_name: str
    role: str
    father_name: Optional[str] = None
    email: Optional[str] = None
    mobile_no: Optional[str] = None
    cnic: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    city_id: Optional[str] = None
    branch_id: Optional[str] = None
    department_id: Optional[str] = None
    business_id: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        """Build from the scrubbed projection, never from the raw dataclass."""
        return cls.model_validate(principal.public_dict())


class PrincipalPage(_Response):
    items: list[PrincipalResponse]
    total: int


class LoginResponse(_Response):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    principal: PrincipalResponse


# ---------------------------------------------------------------------------
# Organization -- requests
# ---------------------------------------------------------------------------


class CityCreate(_Request):
    city: Annotated[str, Field(min_length=3, max_length=50)]
    country: Annotated[str, Field(min_length=3, max_length=50)]


class CityPatch(_Request):
    city: Optional[Annotated[str, Field(min_length=3, max_length=50)]] = None
    country: Optional[Annotated[str, Field(min_length=3, max_length=50)]] = None


class BranchCreate(_Request):
    title: Annotated[str, Field(min_length=5, max_length=50)]
    address: Annotated[str, Field(min_length=10, max_length=200)]
    city_id: int
    contact: _Contact
    email: Email


class BranchPatch(_Request):
    title: Optional[Annotated[str, Field(min_length=5, max_length=50)]] = None
    address: Optional[Annotated[str, Field(min_length=10, max_length=200)]] = None
    city_id: Optional[int] = None
    contact: Optional[_Contact] = None
    email: Optional[Email] = None


class DepartmentCreate(_Request):
    title: Annotated[str, Field(min_length=3, max_length=100)]
    city_id: int
    branch_id: int
    contact: _Contact
    email: Email


class DepartmentPatch(_Request):
    title: Optional[Annotated[str, Field(min_length=3, max_length=100)]] = None
    city_id: Optional[int] = None
    branch_id: Optional[int] = None
    contact: Optional[_Contact] = None
    email: Optional[Email] = None


# ---------------------------------------------------------------------------
# Organization -- responses
# ---------------------------------------------------------------------------


class UpdateRecordResponse(_Response):
    updated_at: str
    updated_by: Optional[str] = None


def _updates(records: list[UpdateRecord]) -> list[UpdateRecordResponse]:
    return [UpdateRecordResponse(updated_at=r.updated_at, updated_by=r.updated_by) for r in records]


class CityResponse(_Response):
    id: int
    city: str
    country: str
    created_by: Optional[str] = None
    created_at: str
    updates: list[UpdateRecordResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, city: City) -> "CityResponse":
        return cls(
            id=city.id,
            city=city.city,
            country=city.country,
            created_by=city.created_by,
            created_at=city.created_at,
            updates=_updates(city.updates),
        )


class BranchResponse(_Response):
    id: int
    title: str
    address: str
    city_id: int
    contact: str
    email: str
    created_by: Optional[str] = None
    created_at: str
    updates: list[UpdateRecordResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, branch: Branch) -> "BranchResponse":
        return cls(
            id=branch.id,
            title=branch.title,
            address=branch.address,
            city_id=branch.city_id,
            contact=branch.contact,
            email=branch.email,
            created_by=branch.created_by,
            created_at=branch.created_at,
            updates=_updates(branch.updates),
        )


class DepartmentResponse(_Response):
    id: int
    title: str
    city_id: int
    branch_id: int
    contact: str
    email: str
    created_by: Optional[str] = None
    created_at: str
    updates: list[UpdateRecordResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, department: Department) -> "DepartmentResponse":
        return cls(
            id=department.id,
            title=department.title,
            city_id=department.city_id,
            branch_id=department.branch_id,
            contact=department.contact,
            email=department.email,
            created_by=department.created_by,
            created_at=department.created_at,
            updates=_updates(department.updates),
        )


class CountResponse(_Response):
    count: int


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
