"""
auth/registration.py -- Registration pipeline for every principal kind.

Order: schema validation -> password hashing -> store insert. The store
insert allocates the business identifier and enforces natural-key uniqueness
atomically (see auth/store.py), so there is no separate read-then-write
uniqueness check here that concurrent requests could race past.

Cross-reference fields (city, branch, department) pass through unchecked.
"""

from __future__ import annotations

import logging
from typing import Union

from pydantic import BaseModel

from auth.models import DEFAULT_ROLE, Principal, PrincipalKind
from auth.store import PrincipalStore
from auth.tokens import PasswordHasher
from auth.validation import REGISTRATION_SCHEMAS, validate_registration

logger = logging.getLogger("staffdesk.auth")


class Registrar:
    """Runs the registration pipeline against one store and one hasher."""

    def __init__(self, store: PrincipalStore, hasher: PasswordHasher) -> None:
        self._store = store
        self._hasher = hasher

    def register(self, kind: PrincipalKind, fields: Union[dict, BaseModel]) -> Principal:
        """Validate, hash, and persist a new principal of kind.

        fields may be a raw dict or an already-parsed registration schema
        instance for that kind. Raises ValidationError (bad input),
        ConflictError (natural key taken) or InternalError (hashing failure).
        Nothing is written unless validation passes.
        """
        if isinstance(fields, REGISTRATION_SCHEMAS[kind]):
            registration = fields
        else:
            raw = fields.model_dump(by_alias=True, exclude_unset=True) if isinstance(fields, BaseModel) else fields
            registration = validate_registration(kind, raw)

        data = registration.model_dump(exclude={"password"})
        password = getattr(registration, "password", None)
        password_hash = self._hasher.hash(password) if password else None

        data.setdefault("role", DEFAULT_ROLE[kind])
        principal = Principal(kind=kind, password_hash=password_hash, **data)
        saved = self._store.create_principal(principal)
        logger.info("Registered %s id=%s role=%s", kind.value, saved.id, saved.role)
        return saved
