"""
auth/tokens.py -- Password hashing, JWT issue/verify, and credential checks.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). The cost factor is
       configurable (BCRYPT_ROUNDS) so brute-force cost scales with hardware.
       bcrypt.checkpw compares in constant time. A bad cost factor is a hard
       InternalError -- there is no fallback to a cheaper cost.

  Timing equalization: PasswordHasher pre-computes a dummy digest at startup.
       authenticate() always runs one bcrypt verification, even when the email
       is unknown, so response time does not reveal whether an account exists.

  JWT: python-jose with HS256. TokenIssuer receives the signing secret at
       construction (loaded once from core.config by the app lifespan); no code
       here reads the environment. Claims carry the principal's id, kind, role
       and the scrubbed public projection -- never the password hash. Every
       token has an exp claim. verify() returns None on any failure and the
       role gate turns that into "decode failed".

Layer rule: no imports from api/ or org/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.errors import InternalError

if TYPE_CHECKING:
    from auth.models import Principal, PrincipalKind
    from auth.store import PrincipalStore

logger = logging.getLogger("staffdesk.auth")

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("sub", "kind", "role")

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class PasswordHasher:
    """bcrypt hashing with a fixed, validated cost factor.

    Passwords longer than 72 bytes are truncated by bcrypt. The registration
    schemas cap passwords at 72 characters so that never happens silently for
    ASCII input.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Also validates the cost factor at startup rather than on first use.
        self._dummy_hash = self.hash("staffdesk_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt digest of plain. Raises InternalError on failure."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")
        except (ValueError, TypeError) as exc:
            logger.error("Password hashing failed (rounds=%r): %s", self.rounds, exc)
            raise InternalError("Password hashing failed.") from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches the bcrypt digest. Malformed digests never match."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def burn(self, plain: str) -> None:
        """Spend one verification's worth of time against the dummy digest."""
        self.verify(plain, self._dummy_hash)


# ---------------------------------------------------------------------------
# JWT issue / verify
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies bearer tokens with one process-wide secret."""

    def __init__(self, secret_key: str, expire_seconds: int = 3600) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a signing secret.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, principal: Principal) -> str:
        """Encode a signed JWT for principal, expiring after expire_seconds."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(principal.id),
            "kind": principal.kind.value,
            "role": principal.role,
            "principal": principal.public_dict(),
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> dict | None:
        """Decode and verify a JWT. Returns the claims dict or None on any failure.

        Failure covers a bad signature, a wrong algorithm, expiry, a malformed
        token, and missing identity claims.
        """
        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if any(name not in claims for name in _REQUIRED_CLAIMS):
            return None
        return claims


# ---------------------------------------------------------------------------
# Credential check (constant-time)
# ---------------------------------------------------------------------------


def authenticate(
    store: PrincipalStore,
    hasher: PasswordHasher,
    kind: PrincipalKind,
    email: str,
    password: str,
) -> Principal | None:
    """Return the principal for a correct email/password pair, else None.

    Always runs bcrypt whether or not the account exists:
    - Unknown email or no password set: verify against the dummy digest
    - Wrong password: verify against the real digest
    Callers must report both failures identically.
    """
    principal = store.get_by_natural_key(kind, "email", email.strip().lower())
    if principal is None or principal.password_hash is None:
        # Equalize timing -- do NOT return before running bcrypt.
        hasher.burn(password)
        return None
    if not hasher.verify(password, principal.password_hash):
        return None
    return principal
