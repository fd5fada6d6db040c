#!/usr/bin/env python3
"""
StaffDesk -- operator command line.

Bootstraps the first admin employee without going through the HTTP API. The
record goes through the same Registrar pipeline as POST /employees/register:
field validation, password hashing, business id allocation and uniqueness.

Usage:
  python main.py create-admin --full-name "Ayesha Khan" --father-name "Imran Khan" \\
      --email ayesha@example.com --mobile 03001234567 --cnic 3520212345671 \\
      --dob 1990-04-12 --gender Female --address "12 Mall Road, Lahore" \\
      --city 1 --branch 1 --department 1 --password 'a-long-password'

Environment variables:
  DATABASE_URL   Store location (same as the API server).
  SECRET_KEY     Required unless DEBUG=true, as for the API server.
  BCRYPT_ROUNDS  Hash cost factor.
"""

import argparse
import sys

from auth.models import PrincipalKind
from auth.registration import Registrar
from auth.store import PrincipalStore
from auth.tokens import PasswordHasher
from core.config import get_settings
from core.errors import ConflictError, ValidationError


def create_admin(args: argparse.Namespace) -> int:
    """Register one admin employee. Returns the process exit code."""
    settings = get_settings()
    store = PrincipalStore(settings.database_url, timeout=settings.store_timeout_seconds)
    registrar = Registrar(store, PasswordHasher(rounds=settings.bcrypt_rounds))
    fields = {
        "full_name": args.full_name,
        "father_name": args.father_name,
        "email": args.email,
        "mobile_no": args.mobile,
        "cnic": args.cnic,
        "dob": args.dob,
        "gender": args.gender,
        "address": args.address,
        "city_id": args.city,
        "branch_id": args.branch,
        "department_id": args.department,
        "role": "admin",
        "password": args.password,
    }
    try:
        admin = registrar.register(PrincipalKind.employee, fields)
    except (ValidationError, ConflictError) as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        if exc.detail:
            print(f"      {exc.detail}", file=sys.stderr)
        return 1
    finally:
        store.close()

    print(f"  Created admin {admin.full_name} ({admin.business_id}).")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="staffdesk",
        description="StaffDesk operator commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    admin = commands.add_parser("create-admin", help="Register an admin employee")
    admin.add_argument("--full-name", required=True)
    admin.add_argument("--father-name", required=True)
    admin.add_argument("--email", required=True, help="Login email")
    admin.add_argument("--mobile", required=True, help="11 digits starting with 03")
    admin.add_argument("--cnic", required=True, help="13-digit national id, no dashes")
    admin.add_argument("--dob", required=True, metavar="YYYY-MM-DD")
    admin.add_argument("--gender", required=True, choices=["Male", "Female"])
    admin.add_argument("--address", required=True)
    admin.add_argument("--city", required=True, metavar="ID")
    admin.add_argument("--branch", required=True, metavar="ID")
    admin.add_argument("--department", required=True, metavar="ID")
    admin.add_argument("--password", required=True, help="8 to 72 bytes")

    args = parser.parse_args()
    if args.command != "create-admin":
        parser.print_help()
        return
    sys.exit(create_admin(args))


if __name__ == "__main__":
    main()
