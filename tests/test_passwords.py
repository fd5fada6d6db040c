"""Unit tests for auth/tokens.PasswordHasher and authenticate().

Covers:
- hash/verify round trip and rejection of a different password
- two hashes of the same password differ (per-hash salt)
- malformed digests never verify
- an invalid cost factor fails at construction with InternalError
- authenticate(): unknown email, wrong password and password-less accounts
  all return None; the right pair returns the principal
"""

import pytest

from auth.models import Principal, PrincipalKind
from auth.tokens import PasswordHasher, authenticate
from core.errors import InternalError


def test_verify_accepts_original_password(hasher):
    digest = hasher.hash("correct horse battery")
    assert hasher.verify("correct horse battery", digest) is True


def test_verify_rejects_other_password(hasher):
    digest = hasher.hash("correct horse battery")
    assert hasher.verify("correct horse battery!", digest) is False
    assert hasher.verify("", digest) is False


def test_hash_is_salted(hasher):
    assert hasher.hash("same-password") != hasher.hash("same-password")


def test_digest_is_not_the_plaintext(hasher):
    digest = hasher.hash("plaintext-password")
    assert "plaintext-password" not in digest
    assert digest.startswith("$2")


def test_malformed_digest_never_verifies(hasher):
    assert hasher.verify("anything", "not-a-bcrypt-digest") is False


def test_invalid_rounds_raise_internal_error():
    with pytest.raises(InternalError):
        PasswordHasher(rounds=2)


class TestAuthenticate:
    @pytest.fixture
    def account(self, store, hasher):
        return store.create_principal(
            Principal(
                kind=PrincipalKind.employee,
                full_name="Login Tester",
                role="staff",
                email="login@example.com",
                password_hash=hasher.hash("rightpass123"),
            )
        )

    def test_correct_credentials(self, store, hasher, account):
        found = authenticate(store, hasher, PrincipalKind.employee, "login@example.com", "rightpass123")
        assert found is not None
        assert found.id == account.id

    def test_email_is_case_insensitive(self, store, hasher, account):
        found = authenticate(store, hasher, PrincipalKind.employee, "  LOGIN@Example.com ", "rightpass123")
        assert found is not None

    def test_wrong_password(self, store, hasher, account):
        assert authenticate(store, hasher, PrincipalKind.employee, "login@example.com", "wrongpass123") is None

    def test_unknown_email(self, store, hasher, account):
        assert authenticate(store, hasher, PrincipalKind.employee, "nobody@example.com", "rightpass123") is None

    def test_other_kind_does_not_match(self, store, hasher, account):
        assert authenticate(store, hasher, PrincipalKind.user, "login@example.com", "rightpass123") is None

    def test_account_without_password(self, store, hasher):
        store.create_principal(
            Principal(kind=PrincipalKind.employee, full_name="No Pass", role="staff", email="nopass@example.com")
        )
        assert authenticate(store, hasher, PrincipalKind.employee, "nopass@example.com", "") is None
