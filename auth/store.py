"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper (same as org/store.py).
PrincipalStore is the repository; _row_to_principal is the mapper.
Route and dependency code never touches SQL directly.

Integrity is enforced here, not by read-then-write checks in callers:

  Natural keys: one partial unique index per natural key, scoped to the kinds
  that treat that field as unique (see auth.models.NATURAL_KEYS). A second
  registration with a taken key fails inside the INSERT and surfaces as
  ConflictError naming the key, no matter how many requests race.

  Business identifiers: the sequences table holds one counter per sequenced
  kind. create_principal() increments the counter, reads it back, and inserts
  the principal in one transaction. The UPDATE takes the write lock first, so
  concurrent registrations serialize on it; a failed INSERT rolls the counter
  back and the sequence stays gap-free.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging
from dataclasses import fields as dataclass_fields
from datetime import date, datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import BUSINESS_ID_PREFIX, NATURAL_KEY_LABELS, NATURAL_KEYS, Principal, PrincipalKind
from auth.sequence import format_business_id, parse_business_id
from core.errors import ConflictError

logger = logging.getLogger("staffdesk.store")

# SQLite INTEGER is signed 64-bit; no row can carry a larger id.
MAX_ROW_ID = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_principals = Table(
    "principals",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("kind", String(20), nullable=False),
    Column("full_name", String(255), nullable=False),
    Column("father_name", String(255)),
    Column("email", String(255)),
    Column("mobile_no", String(20)),
    Column("cnic", String(20)),
    Column("dob", Date),
    Column("gender", String(10)),
    Column("address", Text),
    Column("city_id", String(64)),  # opaque, not a foreign key
    Column("branch_id", String(64)),
    Column("department_id", String(64)),
    Column("business_id", String(32)),
    Column("role", String(30), nullable=False),
    Column("password_hash", Text),  # NULL for principals that never log in
    Column("image_url", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_sequences = Table(
    "sequences",
    _metadata,
    Column("name", String(30), primary_key=True),  # PrincipalKind value
    Column("value", Integer, nullable=False),
)


def _natural_key_indexes() -> None:
    """Attach one partial unique index per natural key to the principals table.

    NULLs are distinct in unique indexes on both SQLite and PostgreSQL, so an
    optional natural key (e.g. an employee without a CNIC) never collides.
    """
    kinds_by_key: dict[str, list[str]] = {}
    for kind, keys in NATURAL_KEYS.items():
        for key in keys:
            kinds_by_key.setdefault(key, []).append(kind.value)
    for key, kinds in kinds_by_key.items():
        where = _principals.c.kind.in_(kinds)
        Index(
            f"uq_principals_{key}",
            _principals.c.kind,
            _principals.c[key],
            unique=True,
            sqlite_where=where,
            postgresql_where=where,
        )


_natural_key_indexes()
Index("uq_principals_business_id", _principals.c.business_id, unique=True)

_MUTABLE_FIELDS = frozenset(
    {
        "full_name",
        "father_name",
        "email",
        "mobile_no",
        "cnic",
        "dob",
        "gender",
        "address",
        "city_id",
        "branch_id",
        "department_id",
        "role",
        "password_hash",
        "image_url",
    }
)
_LOOKUP_FIELDS = frozenset({"email", "cnic", "mobile_no", "business_id", "role"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block on the single writer."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_fields(names, allowed: frozenset, what: str) -> None:
    unknown = set(names) - allowed
    if unknown:
        raise ValueError(f"Unknown {what} fields: {sorted(unknown)!r}")


def _conflict_from(exc: IntegrityError, kind: PrincipalKind) -> ConflictError:
    """Translate a unique-index violation into a ConflictError naming the key.

    SQLite reports the violated columns ("principals.cnic"); PostgreSQL reports
    the index name ("uq_principals_cnic"). Both are checked.
    """
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for key in NATURAL_KEYS[kind] + ("business_id",):
        if f"principals.{key}" in message or f"uq_principals_{key}" in message:
            label = NATURAL_KEY_LABELS[key]
            return ConflictError(f"{kind.value.capitalize()} already exists with this {label}.", field=key)
    return ConflictError(f"{kind.value.capitalize()} already exists.")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PrincipalStore:
    """Repository for Principal records of every kind.

    Usage:
        store = PrincipalStore("sqlite:///:memory:")
        saved = store.create_principal(Principal(kind=PrincipalKind.employee, full_name="A", role="staff"))
        saved.business_id  # "EMP-000001"
        store.close()

    timeout bounds every store call: it is SQLite's busy timeout (how long a
    writer waits for the lock) or the pool checkout timeout elsewhere.
    """

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
        _metadata.create_all(self.engine)
        self._seed_sequences()

    def _seed_sequences(self) -> None:
        """Create the counter row for each sequenced kind if it does not exist.

        The seed is the greatest numeric suffix among stored business ids of
        that kind, so a database populated before the counter existed
        continues from its highest identifier. Unparsable ids count as 0.
        """
        for kind, prefix in BUSINESS_ID_PREFIX.items():
            try:
                with self.engine.begin() as conn:
                    exists = conn.execute(select(_sequences.c.name).where(_sequences.c.name == kind.value)).first()
                    if exists is not None:
                        continue
                    stored = conn.execute(
                        select(_principals.c.business_id).where(
                            (_principals.c.kind == kind.value) & _principals.c.business_id.is_not(None)
                        )
                    ).scalars()
                    seed = max((parse_business_id(value, prefix) for value in stored), default=0)
                    conn.execute(_sequences.insert().values(name=kind.value, value=seed))
                    logger.info("Seeded %s sequence at %d", kind.value, seed)
            except IntegrityError:
                # Another process seeded the same counter first.
                logger.info("Sequence %s already seeded", kind.value)

    def _next_sequence_value(self, conn: Connection, kind: PrincipalKind) -> int:
        """Increment and return the counter for kind inside the caller's transaction."""
        conn.execute(
            _sequences.update().where(_sequences.c.name == kind.value).values(value=_sequences.c.value + 1)
        )
        return conn.execute(select(_sequences.c.value).where(_sequences.c.name == kind.value)).scalar_one()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_principal(self, principal: Principal) -> Principal:
        """Insert a principal, allocating its business id if its kind has one.

        Raises ConflictError if any natural key of that kind is already taken.
        Returns the stored record (with id, business_id and created_at set).
        """
        values = _principal_to_row(principal)
        values["created_at"] = _now_iso()
        prefix = BUSINESS_ID_PREFIX.get(principal.kind)
        try:
            with self.engine.begin() as conn:
                if prefix is not None:
                    values["business_id"] = format_business_id(prefix, self._next_sequence_value(conn, principal.kind))
                result = conn.execute(_principals.insert().values(**values))
                new_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            conflict = _conflict_from(exc, principal.kind)
            logger.info("Rejected %s registration: %s", principal.kind.value, conflict.message)
            raise conflict from exc
        logger.info("Created %s id=%s business_id=%s", principal.kind.value, new_id, values.get("business_id"))
        return self.get_by_id(principal.kind, new_id)

    def update_principal(self, kind: PrincipalKind, principal_id: int, **fields) -> Principal | None:
        """Update mutable fields. Returns the updated record, or None if absent.

        Raises ConflictError if the update would duplicate a natural key.
        business_id and kind are not mutable.
        """
        _check_fields(fields, _MUTABLE_FIELDS, "principal")
        if not 0 < principal_id <= MAX_ROW_ID:
            return None
        if not fields:
            return self.get_by_id(kind, principal_id)
        fields["updated_at"] = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _principals.update()
                    .where((_principals.c.id == principal_id) & (_principals.c.kind == kind.value))
                    .values(**fields)
                )
        except IntegrityError as exc:
            raise _conflict_from(exc, kind) from exc
        if result.rowcount == 0:
            return None
        return self.get_by_id(kind, principal_id)

    def delete_principal(self, kind: PrincipalKind, principal_id: int) -> Principal | None:
        """Delete a principal. Returns the deleted record, or None if it was absent."""
        if not 0 < principal_id <= MAX_ROW_ID:
            return None
        with self.engine.begin() as conn:
            row = conn.execute(
                _principals.select().where((_principals.c.id == principal_id) & (_principals.c.kind == kind.value))
            ).fetchone()
            if row is None:
                return None
            conn.execute(_principals.delete().where(_principals.c.id == principal_id))
        logger.info("Deleted %s id=%s", kind.value, principal_id)
        return _row_to_principal(row)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, kind: PrincipalKind, principal_id: int) -> Principal | None:
        """Look up a principal of the given kind by primary key."""
        if not 0 < principal_id <= MAX_ROW_ID:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(
                _principals.select().where((_principals.c.id == principal_id) & (_principals.c.kind == kind.value))
            ).fetchone()
        return _row_to_principal(row) if row is not None else None

    def get_by_natural_key(self, kind: PrincipalKind, field: str, value: str) -> Principal | None:
        """Look up a principal by email, cnic, mobile_no or business_id."""
        _check_fields([field], _LOOKUP_FIELDS, "lookup")
        with self.engine.connect() as conn:
            row = conn.execute(
                _principals.select()
                .where((_principals.c.kind == kind.value) & (_principals.c[field] == value))
                .order_by(_principals.c.id)
                .limit(1)
            ).fetchone()
        return _row_to_principal(row) if row is not None else None

    def list_principals(
        self,
        kind: PrincipalKind,
        filters: dict | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[Principal]:
        """Return principals of a kind matching all exact-match filters, oldest first."""
        query = _principals.select().where(self._where(kind, filters)).order_by(_principals.c.id)
        with self.engine.connect() as conn:
            rows = conn.execute(query.offset(offset).limit(limit)).fetchall()
        return [_row_to_principal(r) for r in rows]

    def count_principals(self, kind: PrincipalKind, filters: dict | None = None) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_principals).where(self._where(kind, filters)))
            return result.scalar_one()

    def has_role(self, kind: PrincipalKind, role: str) -> bool:
        """Return True if at least one principal of kind holds role."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_principals.c.id)
                .where((_principals.c.kind == kind.value) & (_principals.c.role == role))
                .limit(1)
            ).first()
        return row is not None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("Principal store ping failed")
            return False

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _where(kind: PrincipalKind, filters: dict | None):
        filters = {k: v for k, v in (filters or {}).items() if v is not None}
        _check_fields(filters, _LOOKUP_FIELDS, "filter")
        clause = _principals.c.kind == kind.value
        for name, value in filters.items():
            clause = clause & (_principals.c[name] == value)
        return clause


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------

_ROW_FIELDS = tuple(f.name for f in dataclass_fields(Principal) if f.name not in ("id", "created_at", "updated_at"))


def _principal_to_row(principal: Principal) -> dict:
    values = {name: getattr(principal, name) for name in _ROW_FIELDS}
    values["kind"] = principal.kind.value
    return values


def _row_to_principal(row) -> Principal:
    dob = row.dob
    if isinstance(dob, str):
        dob = date.fromisoformat(dob)
    return Principal(
        id=row.id,
        kind=PrincipalKind(row.kind),
        full_name=row.full_name,
        father_name=row.father_name,
        email=row.email,
        mobile_no=row.mobile_no,
        cnic=row.cnic,
        dob=dob,
        gender=row.gender,
        address=row.address,
        city_id=row.city_id,
        branch_id=row.branch_id,
        department_id=row.department_id,
        business_id=row.business_id,
        role=row.role,
        password_hash=row.password_hash,
        image_url=row.image_url,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
