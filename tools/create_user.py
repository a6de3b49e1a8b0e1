#!/usr/bin/env python3
"""Bootstrap a user, typically the first administrator.

Prints the new user id, which is what clients send as ``X-User-ID``.
"""

from __future__ import annotations

import argparse
import sys

import sqlalchemy as sa
from pydantic import ValidationError

from monetaris.apps.users.models import CreateUserRequest
from monetaris.apps.users.service import UserService
from monetaris.core.config import settings
from monetaris.core.enums import UserRole
from monetaris.core.errors import ServiceError
from monetaris.core.observability.logging import get_logger, init_logging

init_logging()
logger = get_logger("tools.create_user")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a Monetaris user")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument(
        "--role",
        default=UserRole.ADMIN.value,
        choices=[r.value for r in UserRole],
    )
    parser.add_argument("--kreditor-id", default=None, help="Required for CLIENT users")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    engine = sa.create_engine(args.database_url or settings.database_url, future=True)
    try:
        body = CreateUserRequest(
            name=args.name, email=args.email, role=UserRole(args.role), kreditor_id=args.kreditor_id
        )
        user = UserService(engine).create_user(body)
    except ValidationError as exc:
        print(f"Invalid input: {exc.errors()[0]['msg']}", file=sys.stderr)
        return 2
    except ServiceError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    print(user.id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
