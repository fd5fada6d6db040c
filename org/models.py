"""
org/models.py -- Domain dataclasses for organizational entities.

Pure data containers. All persistence logic lives in org/store.py.

Every entity keeps an append-only list of UpdateRecord entries: one per
PATCH, stamped with who made the change. created_by is set once on insert.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OrgKind(str, Enum):
    city = "city"
    branch = "branch"
    department = "department"


@dataclass
class UpdateRecord:
    updated_at: str  # ISO 8601
    updated_by: Optional[str] = None


@dataclass
class City:
    city: str
    country: str
    id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: str = ""
    updates: list[UpdateRecord] = field(default_factory=list)


@dataclass
class Branch:
    """A branch office. city_id is not checked against the cities table."""

    title: str
    address: str
    city_id: int
    contact: str
    email: str
    id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: str = ""
    updates: list[UpdateRecord] = field(default_factory=list)


@dataclass
class Department:
    title: str
    city_id: int
    branch_id: int
    contact: str
    email: str
    id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: str = ""
    updates: list[UpdateRecord] = field(default_factory=list)


OrgEntity = City | Branch | Department

ENTITY_TYPES: dict[OrgKind, type] = {
    OrgKind.city: City,
    OrgKind.branch: Branch,
    OrgKind.department: Department,
}
