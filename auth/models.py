"""
auth/models.py -- Domain dataclasses and fixed vocabularies for principals.

Pattern: Data class (pure data container). Stores and routes do the work.
The per-kind tables below (roles, natural keys, business id prefixes) are the
single source of truth for the rest of the auth package.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PrincipalKind(str, Enum):
    employee = "employee"
    seeker = "seeker"
    user = "user"


ROLES: dict[PrincipalKind, tuple[str, ...]] = {
    PrincipalKind.employee: ("admin", "receptionist", "staff"),
    PrincipalKind.seeker: ("student",),
    PrincipalKind.user: ("admin", "user"),
}

DEFAULT_ROLE: dict[PrincipalKind, str] = {
    PrincipalKind.employee: "staff",
    PrincipalKind.seeker: "student",
    PrincipalKind.user: "user",
}

# Natural keys that must be unique among principals of the same kind. Any one
# collision fails registration. Enforced by unique indexes in auth/store.py.
NATURAL_KEYS: dict[PrincipalKind, tuple[str, ...]] = {
    PrincipalKind.employee: ("cnic", "email"),
    PrincipalKind.seeker: ("cnic",),
    PrincipalKind.user: ("email", "mobile_no", "cnic"),
}

# Only kinds listed here get a sequential business identifier.
BUSINESS_ID_PREFIX: dict[PrincipalKind, str] = {
    PrincipalKind.employee: "EMP",
}

# Human-readable names for conflict messages.
NATURAL_KEY_LABELS: dict[str, str] = {
    "cnic": "CNIC",
    "email": "email",
    "mobile_no": "mobile number",
    "business_id": "business identifier",
}


@dataclass
class Principal:
    """A registered actor: employee, job seeker, or generic user.

    password_hash is None for kinds that never authenticate (seekers) and for
    employees registered without a password. It never leaves the process:
    public_dict() is the only projection used for tokens and responses.

    business_id is allocated once at registration (e.g. "EMP-000123") and
    never renumbered. city_id / branch_id / department_id are opaque foreign
    identifiers; they are not checked against org/.
    """

    kind: PrincipalKind
    full_name: str
    role: str
    id: int | None = None
    father_name: str | None = None
    email: str | None = None
    mobile_no: str | None = None
    cnic: str | None = None
    dob: date | None = None
    gender: str | None = None
    address: str | None = None
    city_id: str | None = None
    branch_id: str | None = None
    department_id: str | None = None
    business_id: str | None = None
    password_hash: str | None = None
    image_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def public_dict(self) -> dict:
        """Return a JSON-safe projection without the password hash."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "full_name": self.full_name,
            "father_name": self.father_name,
            "email": self.email,
            "mobile_no": self.mobile_no,
            "cnic": self.cnic,
            "dob": self.dob.isoformat() if self.dob else None,
            "gender": self.gender,
            "address": self.address,
            "city_id": self.city_id,
            "branch_id": self.branch_id,
            "department_id": self.department_id,
            "business_id": self.business_id,
            "role": self.role,
            "image_url": self.image_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
