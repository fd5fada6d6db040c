"""
auth/validation.py -- Declarative registration schemas per principal kind.

Pydantic v2 models define what a registration must contain. They are shared
by the API layer (as request bodies) and by Registrar.register() for callers
that hand in a plain dict (the CLI, tests).

Wire format is camelCase (fullName, mobileNo, cityId, ...). Unknown fields
are rejected. Format rules raise PydanticCustomError so the caller sees the
exact human-readable sentence, not pydantic's generic pattern message.

first_error_message() is the single formatter for validation failures: the
first failing rule becomes the message, every failure goes into the detail.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from auth.models import PrincipalKind
from core.errors import ValidationError

# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

MOBILE_PATTERN = re.compile(r"^03[0-9]{9}$")
CNIC_PATTERN = re.compile(r"^[0-9]{13}$")
SEEKER_CNIC_PATTERN = re.compile(r"^[0-9]{5}-[0-9]{7}-[0-9]$")
EMAIL_PATTERN = re.compile(r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$")

_BCRYPT_MAX_BYTES = 72


def _mobile(value: str) -> str:
    if not MOBILE_PATTERN.match(value):
        raise PydanticCustomError("mobile_format", "Mobile number must start with '03' and contain exactly 11 digits.")
    return value


def _cnic(value: str) -> str:
    if not CNIC_PATTERN.match(value):
        raise PydanticCustomError("cnic_format", "CNIC must be a 13-digit number format 00000-0000000-0.")
    return value


def _seeker_cnic(value: str) -> str:
    if not SEEKER_CNIC_PATTERN.match(value):
        raise PydanticCustomError("cnic_format", "CNIC must be a 13-digit number format 00000-0000000-0.")
    return value


def _email(value: str) -> str:
    value = value.lower()
    if not EMAIL_PATTERN.match(value):
        raise PydanticCustomError("email_format", "{value} is not a valid email!", {"value": value})
    return value


def _password(value: str) -> str:
    if len(value) < 8:
        raise PydanticCustomError("password_length", "Password must be at least 8 characters long.")
    if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        raise PydanticCustomError("password_length", "Password must be at most 72 bytes long.")
    return value


MobileNumber = Annotated[str, AfterValidator(_mobile)]
Cnic = Annotated[str, AfterValidator(_cnic)]
SeekerCnic = Annotated[str, AfterValidator(_seeker_cnic)]
Email = Annotated[str, Field(max_length=255), AfterValidator(_email)]
Password = Annotated[str, AfterValidator(_password)]
Name = Annotated[str, Field(min_length=1, max_length=255)]
Reference = Annotated[str, Field(min_length=1, max_length=64)]


class _Schema(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Registration schemas
# ---------------------------------------------------------------------------


class EmployeeRegistration(_Schema):
    full_name: Name
    father_name: Name
    email: Optional[Email] = None
    mobile_no: MobileNumber
    cnic: Optional[Cnic] = None
    dob: date
    gender: Literal["Male", "Female"]
    address: Annotated[str, Field(min_length=1, max_length=500)]
    city_id: Reference
    branch_id: Reference
    department_id: Reference
    role: Literal["admin", "receptionist", "staff"] = "staff"
    password: Optional[Password] = None
    image_url: Optional[str] = Field(default=None, max_length=2048)


class SeekerRegistration(_Schema):
    """Seekers never log in: there is no password or role field."""

    full_name: Name
    mobile_no: MobileNumber
    cnic: Optional[SeekerCnic] = None
    gender: Literal["Male", "Female"]
    address: Annotated[str, Field(min_length=1, max_length=500)]
    city_id: Reference
    branch_id: Reference
    department_id: Reference


class UserRegistration(_Schema):
    full_name: Name
    father_name: Name
    email: Email
    mobile_no: MobileNumber
    cnic: Optional[Cnic] = None
    dob: date
    gender: Literal["male", "female", "other"]
    role: Literal["admin", "user"] = "user"
    address: Annotated[str, Field(min_length=1, max_length=500)]
    city_id: Reference
    password: Password
    image_url: Optional[str] = Field(default=None, max_length=2048)


Registration = Union[EmployeeRegistration, SeekerRegistration, UserRegistration]

REGISTRATION_SCHEMAS: dict[PrincipalKind, type[_Schema]] = {
    PrincipalKind.employee: EmployeeRegistration,
    PrincipalKind.seeker: SeekerRegistration,
    PrincipalKind.user: UserRegistration,
}


# ---------------------------------------------------------------------------
# Error formatting
# ---------------------------------------------------------------------------


def _format_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    msg = error.get("msg", "Invalid value.")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


def first_error_message(errors: list[dict]) -> tuple[str, str]:
    """Return (message, detail) for a list of pydantic error dicts.

    message is the first failure; detail joins all of them with "; ".
    """
    if not errors:
        return "Request validation failed.", ""
    formatted = [_format_error(e) for e in errors]
    return formatted[0], "; ".join(formatted)


def validate_registration(kind: PrincipalKind, fields: dict) -> Registration:
    """Validate raw registration fields for kind. Raises ValidationError (400)."""
    schema = REGISTRATION_SCHEMAS[kind]
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as exc:
        message, detail = first_error_message(exc.errors())
        raise ValidationError(message, detail=detail) from exc
