"""
auth/dependencies.py -- FastAPI Depends() guards for role-gated routes.

RoleGate is one parameterized guard; the module-level instances at the bottom
are what routes use. Every request runs the same steps:

  1. Authorization: Bearer <token> header       missing  -> 403
  2. TokenIssuer.verify(token)                   fails    -> 400
  3. re-fetch the principal by (kind, sub)       absent   -> 403
  4. compare the FRESH role to the allowed set   mismatch -> 401
  5. attach the claims to request.state.<role> and return them

Step 4 uses the role read from the store, not the one inside the token, so a
role change takes effect without a new login. Step 1 happens before any store
access.

SetupGate opens a route while no admin of a kind exists yet (first-run
bootstrap) and otherwise behaves as an admin RoleGate. The admin check hits
the store on every request. Setup mode is first-come and not serialized:
anonymous registrations racing before the first admin is committed may all
be let through.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system. No imports from api/ or org/.
"""

import logging

from fastapi import Request

from auth.models import PrincipalKind
from auth.store import PrincipalStore
from auth.tokens import TokenIssuer
from core.errors import AppError, AuthError, InternalError

logger = logging.getLogger("staffdesk.auth")


def get_bearer_token(request: Request) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header, if any."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class RoleGate:
    """Authorize a request for principals of one kind holding one of roles.

    Use as a FastAPI dependency:
        require_admin = RoleGate("admin")

        @router.delete("/employees/{id}")
        def route(claims: dict = Depends(require_admin)): ...
    """

    def __init__(self, *roles: str, kind: PrincipalKind = PrincipalKind.employee) -> None:
        if not roles:
            raise ValueError("RoleGate needs at least one role")
        self.roles = frozenset(roles)
        self.kind = kind

    def __call__(self, request: Request) -> dict:
        try:
            return self._authorize(request)
        except AppError:
            raise
        except Exception as exc:
            logger.exception("Role gate failed unexpectedly on %s %s", request.method, request.url.path)
            raise InternalError() from exc

    def _authorize(self, request: Request) -> dict:
        token = get_bearer_token(request)
        if token is None:
            raise AuthError("Token not provided.", status_code=403, code="token_missing")

        issuer: TokenIssuer = request.app.state.token_issuer
        claims = issuer.verify(token)
        if claims is None:
            raise AuthError("Token could not be decoded.", status_code=400, code="token_invalid")

        principal = None
        if claims["kind"] == self.kind.value and str(claims["sub"]).isdigit():
            store: PrincipalStore = request.app.state.principal_store
            principal = store.get_by_id(self.kind, int(claims["sub"]))
        if principal is None:
            logger.warning("Gate rejected token: %s %s not found", claims["kind"], claims["sub"])
            raise AuthError(f"{self.kind.value.capitalize()} not found.", status_code=403, code="principal_not_found")

        if principal.role not in self.roles:
            logger.warning(
                "Gate rejected %s id=%s: role %r not in %s",
                self.kind.value,
                principal.id,
                principal.role,
                sorted(self.roles),
            )
            raise AuthError(f"Unauthorized {self.kind.value}.", status_code=401, code="unauthorized")

        setattr(request.state, principal.role, claims)
        return claims


class SetupGate:
    """Open while no admin of kind exists; an admin RoleGate afterwards.

    Returns the admin's claims, or None while in setup mode.
    """

    def __init__(self, kind: PrincipalKind = PrincipalKind.employee) -> None:
        self.kind = kind
        self._admin_gate = RoleGate("admin", kind=kind)

    def __call__(self, request: Request) -> dict | None:
        store: PrincipalStore = request.app.state.principal_store
        if not store.has_role(self.kind, "admin"):
            logger.info("Setup mode: no %s admin yet, %s is open", self.kind.value, request.url.path)
            return None
        return self._admin_gate(request)


# ---------------------------------------------------------------------------
# Gate instances used by the routers
# ---------------------------------------------------------------------------

require_admin = RoleGate("admin")
require_front_desk = RoleGate("admin", "receptionist")
require_employee = RoleGate("admin", "receptionist", "staff")
require_user_admin = RoleGate("admin", kind=PrincipalKind.user)
require_user = RoleGate("admin", "user", kind=PrincipalKind.user)
employee_setup_gate = SetupGate(PrincipalKind.employee)
user_setup_gate = SetupGate(PrincipalKind.user)
