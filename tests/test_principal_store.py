"""Unit tests for auth/store.py -- PrincipalStore.

Covers:
- business ids are allocated per sequenced kind, contiguously from EMP-000001
- seekers and users get no business id
- natural-key conflicts raise ConflictError naming the key, per kind
- the same CNIC may exist under two different kinds
- a rejected insert does not consume a sequence number
- update: conflict, unknown id, immutable fields
- delete returns the record once and None afterwards
- lookups, filters, pagination and counts
- the counter is seeded from the highest parsable stored id
"""

from datetime import date

import pytest
from sqlalchemy import update

from auth.models import Principal, PrincipalKind
from auth.store import PrincipalStore, _principals, _sequences
from core.errors import ConflictError


def _employee(**overrides) -> Principal:
    fields = {"kind": PrincipalKind.employee, "full_name": "Store Tester", "role": "staff"}
    fields.update(overrides)
    return Principal(**fields)


class TestCreate:
    def test_allocates_contiguous_business_ids(self, store):
        first = store.create_principal(_employee(cnic="1000000000001"))
        second = store.create_principal(_employee(cnic="1000000000002"))
        assert first.business_id == "EMP-000001"
        assert second.business_id == "EMP-000002"
        assert first.created_at

    def test_round_trips_fields(self, store):
        saved = store.create_principal(_employee(cnic="1000000000001", dob=date(1990, 1, 2), city_id="7"))
        loaded = store.get_by_id(PrincipalKind.employee, saved.id)
        assert loaded.dob == date(1990, 1, 2)
        assert loaded.city_id == "7"
        assert loaded.kind is PrincipalKind.employee

    def test_unsequenced_kinds_have_no_business_id(self, store):
        seeker = store.create_principal(
            Principal(kind=PrincipalKind.seeker, full_name="Seeker", role="student", cnic="35202-1234567-1")
        )
        assert seeker.business_id is None

    def test_duplicate_cnic_conflicts(self, store):
        store.create_principal(_employee(cnic="1234567890123"))
        with pytest.raises(ConflictError) as exc_info:
            store.create_principal(_employee(cnic="1234567890123"))
        assert exc_info.value.field == "cnic"
        assert exc_info.value.message == "Employee already exists with this CNIC."
        assert exc_info.value.status_code == 400

    def test_duplicate_employee_email_conflicts(self, store):
        store.create_principal(_employee(email="dup@example.com"))
        with pytest.raises(ConflictError) as exc_info:
            store.create_principal(_employee(email="dup@example.com"))
        assert exc_info.value.field == "email"

    def test_duplicate_user_mobile_conflicts(self, store):
        store.create_principal(Principal(kind=PrincipalKind.user, full_name="U1", role="user", mobile_no="03001112223"))
        with pytest.raises(ConflictError) as exc_info:
            store.create_principal(
                Principal(kind=PrincipalKind.user, full_name="U2", role="user", mobile_no="03001112223")
            )
        assert exc_info.value.field == "mobile_no"

    def test_employee_mobile_is_not_a_natural_key(self, store):
        store.create_principal(_employee(mobile_no="03001112223"))
        store.create_principal(_employee(mobile_no="03001112223"))
        assert store.count_principals(PrincipalKind.employee) == 2

    def test_same_cnic_under_different_kinds(self, store):
        store.create_principal(_employee(cnic="1234567890123"))
        user = store.create_principal(
            Principal(kind=PrincipalKind.user, full_name="User", role="user", cnic="1234567890123")
        )
        assert user.id is not None

    def test_missing_optional_keys_do_not_collide(self, store):
        store.create_principal(_employee())
        store.create_principal(_employee())
        assert store.count_principals(PrincipalKind.employee) == 2

    def test_rejected_insert_leaves_no_gap(self, store):
        store.create_principal(_employee(cnic="1234567890123"))
        with pytest.raises(ConflictError):
            store.create_principal(_employee(cnic="1234567890123"))
        nxt = store.create_principal(_employee(cnic="1234567890124"))
        assert nxt.business_id == "EMP-000002"


class TestUpdateDelete:
    def test_update_fields(self, store):
        saved = store.create_principal(_employee(cnic="1000000000001"))
        updated = store.update_principal(PrincipalKind.employee, saved.id, role="receptionist", address="New")
        assert updated.role == "receptionist"
        assert updated.address == "New"
        assert updated.updated_at is not None
        assert updated.business_id == saved.business_id

    def test_update_unknown_id_returns_none(self, store):
        assert store.update_principal(PrincipalKind.employee, 404, role="admin") is None

    def test_update_into_taken_key_conflicts(self, store):
        store.create_principal(_employee(cnic="1000000000001"))
        other = store.create_principal(_employee(cnic="1000000000002"))
        with pytest.raises(ConflictError):
            store.update_principal(PrincipalKind.employee, other.id, cnic="1000000000001")

    def test_business_id_is_immutable(self, store):
        saved = store.create_principal(_employee())
        with pytest.raises(ValueError):
            store.update_principal(PrincipalKind.employee, saved.id, business_id="EMP-999999")

    def test_ids_beyond_integer_range_are_absent(self, store):
        huge = 2**63
        assert store.get_by_id(PrincipalKind.employee, huge) is None
        assert store.update_principal(PrincipalKind.employee, huge, role="admin") is None
        assert store.delete_principal(PrincipalKind.employee, huge) is None

    def test_update_respects_kind(self, store):
        saved = store.create_principal(_employee())
        assert store.update_principal(PrincipalKind.user, saved.id, role="admin") is None

    def test_delete_once(self, store):
        saved = store.create_principal(_employee(cnic="1000000000001"))
        deleted = store.delete_principal(PrincipalKind.employee, saved.id)
        assert deleted.id == saved.id
        assert store.delete_principal(PrincipalKind.employee, saved.id) is None
        assert store.get_by_id(PrincipalKind.employee, saved.id) is None


class TestReads:
    def test_lookup_by_natural_key(self, store):
        saved = store.create_principal(_employee(cnic="1000000000001", email="find@example.com"))
        assert store.get_by_natural_key(PrincipalKind.employee, "email", "find@example.com").id == saved.id
        assert store.get_by_natural_key(PrincipalKind.employee, "business_id", "EMP-000001").id == saved.id
        assert store.get_by_natural_key(PrincipalKind.seeker, "cnic", "1000000000001") is None

    def test_lookup_rejects_arbitrary_columns(self, store):
        with pytest.raises(ValueError):
            store.get_by_natural_key(PrincipalKind.employee, "password_hash", "x")

    def test_list_filters_and_pagination(self, store):
        for n in range(5):
            store.create_principal(_employee(cnic=f"100000000000{n}", role="staff" if n % 2 else "receptionist"))
        assert store.count_principals(PrincipalKind.employee) == 5
        page = store.list_principals(PrincipalKind.employee, offset=2, limit=2)
        assert [p.business_id for p in page] == ["EMP-000003", "EMP-000004"]
        staff = store.list_principals(PrincipalKind.employee, {"role": "staff", "cnic": None})
        assert len(staff) == 2
        assert store.count_principals(PrincipalKind.employee, {"role": "staff"}) == 2

    def test_has_role(self, store):
        assert store.has_role(PrincipalKind.employee, "admin") is False
        store.create_principal(_employee(role="admin"))
        assert store.has_role(PrincipalKind.employee, "admin") is True
        assert store.has_role(PrincipalKind.user, "admin") is False

    def test_ping(self, store):
        assert store.ping() is True


class TestSeeding:
    def test_counter_seeded_from_highest_stored_id(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'seed.db'}"
        first = PrincipalStore(url)
        a = first.create_principal(_employee())
        b = first.create_principal(_employee())
        with first.engine.begin() as conn:
            conn.execute(update(_principals).where(_principals.c.id == a.id).values(business_id="EMP-000040"))
            conn.execute(update(_principals).where(_principals.c.id == b.id).values(business_id="EMP-12ab"))
            conn.execute(_sequences.delete())
        first.close()

        reopened = PrincipalStore(url)
        try:
            nxt = reopened.create_principal(_employee())
            assert nxt.business_id == "EMP-000041"
        finally:
            reopened.close()

    def test_existing_counter_is_kept(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'keep.db'}"
        first = PrincipalStore(url)
        first.create_principal(_employee())
        first.close()

        reopened = PrincipalStore(url)
        try:
            assert reopened.create_principal(_employee()).business_id == "EMP-000002"
        finally:
            reopened.close()
