"""
org/store.py -- SQLAlchemy-backed persistence for cities, branches, departments.

Uses SQLAlchemy Core (not ORM) so the dataclasses in org/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. OrgStore is the repository; each entity
table is paired with its dataclass in _TABLES, and _row_to_entity maps rows
back. Update history lives in one org_updates table keyed by
(entity_kind, entity_id) and is appended in the same transaction as the
field update.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = OrgStore("sqlite:///:memory:")
    city = store.create(City(city="Lahore", country="Pakistan"))
    store.update(OrgKind.city, city.id, updated_by="EMP-000001", country="PK")
    store.close()
"""

import logging
from dataclasses import fields as dataclass_fields
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Connection, Engine

from org.models import ENTITY_TYPES, Branch, City, Department, OrgEntity, OrgKind, UpdateRecord

logger = logging.getLogger("staffdesk.org")

# SQLite INTEGER is signed 64-bit; no row can carry a larger id.
_MAX_ROW_ID = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_cities = Table(
    "cities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("city", String(50), nullable=False),
    Column("country", String(50), nullable=False),
    Column("created_by", String(64)),
    Column("created_at", String(32), nullable=False),
)

_branches = Table(
    "branches",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(50), nullable=False),
    Column("address", String(200), nullable=False),
    Column("city_id", Integer, nullable=False),  # not a FK: references are not enforced
    Column("contact", String(11), nullable=False),
    Column("email", String(255), nullable=False),
    Column("created_by", String(64)),
    Column("created_at", String(32), nullable=False),
)

_departments = Table(
    "departments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(100), nullable=False),
    Column("city_id", Integer, nullable=False),
    Column("branch_id", Integer, nullable=False),
    Column("contact", String(11), nullable=False),
    Column("email", String(255), nullable=False),
    Column("created_by", String(64)),
    Column("created_at", String(32), nullable=False),
)

_org_updates = Table(
    "org_updates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_kind", String(20), nullable=False),
    Column("entity_id", Integer, nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("updated_by", Text),
)

_TABLES: dict[OrgKind, Table] = {
    OrgKind.city: _cities,
    OrgKind.branch: _branches,
    OrgKind.department: _departments,
}


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _kind_of(entity: OrgEntity) -> OrgKind:
    for kind, entity_type in ENTITY_TYPES.items():
        if isinstance(entity, entity_type):
            return kind
    raise TypeError(f"Not an org entity: {type(entity).__name__}")


class OrgStore:
    """Repository for City, Branch and Department entities."""

    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout
        else:
            engine_kwargs["pool_timeout"] = timeout
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create(self, entity: OrgEntity) -> OrgEntity:
        """Insert entity and return the stored copy (id and created_at set)."""
        kind = _kind_of(entity)
        table = _TABLES[kind]
        values = {
            f.name: getattr(entity, f.name)
            for f in dataclass_fields(entity)
            if f.name not in ("id", "created_at", "updates")
        }
        values["created_at"] = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(table.insert().values(**values))
            new_id = result.inserted_primary_key[0]
        logger.info("Created %s id=%s", kind.value, new_id)
        return self.get(kind, new_id)

    def get(self, kind: OrgKind, entity_id: int) -> Optional[OrgEntity]:
        if not 0 < entity_id <= _MAX_ROW_ID:
            return None
        table = _TABLES[kind]
        with self.engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.id == entity_id)).fetchone()
            if row is None:
                return None
            return _row_to_entity(kind, row, self._updates(conn, kind, entity_id))

    def list_entities(self, kind: OrgKind) -> list[OrgEntity]:
        """Return every entity of kind, oldest first, with update history."""
        table = _TABLES[kind]
        with self.engine.connect() as conn:
            rows = conn.execute(table.select().order_by(table.c.id)).fetchall()
            return [_row_to_entity(kind, row, self._updates(conn, kind, row.id)) for row in rows]

    def count(self, kind: OrgKind) -> int:
        table = _TABLES[kind]
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def update(self, kind: OrgKind, entity_id: int, updated_by: Optional[str] = None, **fields) -> Optional[OrgEntity]:
        """Apply field changes and append an UpdateRecord. Returns None if absent.

        Unknown field names raise ValueError -- column names never come from
        raw user input.
        """
        table = _TABLES[kind]
        allowed = {c.name for c in table.columns} - {"id", "created_at", "created_by"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown {kind.value} fields: {sorted(unknown)!r}")
        if not 0 < entity_id <= _MAX_ROW_ID:
            return None
        with self.engine.begin() as conn:
            exists = conn.execute(select(table.c.id).where(table.c.id == entity_id)).first()
            if exists is None:
                return None
            if fields:
                conn.execute(table.update().where(table.c.id == entity_id).values(**fields))
            conn.execute(
                _org_updates.insert().values(
                    entity_kind=kind.value,
                    entity_id=entity_id,
                    updated_at=_now_iso(),
                    updated_by=updated_by,
                )
            )
        logger.info("Updated %s id=%s by %s", kind.value, entity_id, updated_by)
        return self.get(kind, entity_id)

    def delete(self, kind: OrgKind, entity_id: int) -> Optional[OrgEntity]:
        """Delete an entity and its history. Returns the deleted entity, or None."""
        entity = self.get(kind, entity_id)
        if entity is None:
            return None
        table = _TABLES[kind]
        with self.engine.begin() as conn:
            conn.execute(table.delete().where(table.c.id == entity_id))
            conn.execute(
                _org_updates.delete().where(
                    (_org_updates.c.entity_kind == kind.value) & (_org_updates.c.entity_id == entity_id)
                )
            )
        logger.info("Deleted %s id=%s", kind.value, entity_id)
        return entity

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _updates(conn: Connection, kind: OrgKind, entity_id: int) -> list[UpdateRecord]:
        rows = conn.execute(
            _org_updates.select()
            .where((_org_updates.c.entity_kind == kind.value) & (_org_updates.c.entity_id == entity_id))
            .order_by(_org_updates.c.id)
        ).fetchall()
        return [UpdateRecord(updated_at=r.updated_at, updated_by=r.updated_by) for r in rows]


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_entity(kind: OrgKind, row, updates: list[UpdateRecord]) -> OrgEntity:
    common = {"id": row.id, "created_by": row.created_by, "created_at": row.created_at, "updates": updates}
    if kind is OrgKind.city:
        return City(city=row.city, country=row.country, **common)
    if kind is OrgKind.branch:
        return Branch(
            title=row.title,
            address=row.address,
            city_id=row.city_id,
            contact=row.contact,
            email=row.email,
            **common,
        )
    return Department(
        title=row.title,
        city_id=row.city_id,
        branch_id=row.branch_id,
        contact=row.contact,
        email=row.email,
        **common,
    )
