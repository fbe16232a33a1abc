#!/usr/bin/env python3
"""
Identity Core -- administrative command line.

Operates directly on the configured database (DATABASE_URL) through the same
services the HTTP API uses, so every directory rule (unique usernames, the
inactive-account freeze, sort allow-list) applies here too.

Usage:
  python main.py create-user jdoe_01 --first-name Jane --last-name Doe
  python main.py create-user jdoe_01 --first-name Jane --last-name Doe --status inactive
  python main.py list-users
  python main.py list-users --page 2 --limit 20 --sort username --asc
  python main.py set-status <user-id> inactive
  python main.py reset-password <user-id>
  python main.py delete-user <user-id>
  python main.py serve --host 0.0.0.0 --port 8000

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the identity database (default: ./identity.db)
  BCRYPT_ROUNDS bcrypt cost factor for new digests (default: 12)
"""

from __future__ import annotations

import argparse
import getpass
import sys
from typing import Optional

from auth.db import create_db_engine, init_schema
from auth.directory import UserDirectoryService
from auth.models import (
    MIN_PASSWORD_LENGTH,
    MIN_USERNAME_LENGTH,
    SORTABLE_FIELDS,
    NewUser,
    SortDirection,
    UserPatch,
    UserStatus,
)
from auth.passwords import MAX_PASSWORD_BYTES
from auth.store import UserStore
from core.config import get_settings
from core.errors import IdentityError, ValidationFailedError


def _read_password(given: Optional[str]) -> str:
    """Return the --password value, or prompt twice without echo."""
    password = given
    if not password:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Repeat password: ") != password:
            raise ValidationFailedError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailedError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationFailedError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def _build_directory(engine) -> UserDirectoryService:
    settings = get_settings()
    init_schema(engine)
    return UserDirectoryService(
        UserStore(engine),
        default_limit=settings.default_page_size,
        max_limit=settings.max_page_size,
    )


def _print_users(page) -> None:
    print(f"{'ID':<36}  {'USERNAME':<20}  {'NAME':<28}  {'STATUS':<8}  {'LOGINS':>6}  CREATED")
    for u in page.items:
        name = f"{u.first_name} {u.last_name}"
        print(f"{u.id:<36}  {u.username:<20}  {name:<28}  {u.status.value:<8}  {u.logins_counter:>6}  {u.created_at}")
    print(f"\n  Page {page.current_page} of {max(page.last_page, 1)} ({page.total_count} users)")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="identity-core",
        description="Manage Identity Core users and run the API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-user", help="Create a user")
    create.add_argument("username")
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", required=True)
    create.add_argument("--password", help="Plaintext password (prompted if omitted)")
    create.add_argument("--status", choices=[s.value for s in UserStatus], default=UserStatus.ACTIVE.value)

    listing = sub.add_parser("list-users", help="List users, one page at a time")
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=None)
    listing.add_argument("--sort", choices=SORTABLE_FIELDS, default="createdAt", metavar="FIELD")
    listing.add_argument("--asc", action="store_true", help="Ascending order (default: descending)")

    status = sub.add_parser("set-status", help="Activate or deactivate a user")
    status.add_argument("user_id")
    status.add_argument("status", choices=[s.value for s in UserStatus])

    reset = sub.add_parser("reset-password", help="Set a new password for a user")
    reset.add_argument("user_id")
    reset.add_argument("--password", help="Plaintext password (prompted if omitted)")

    delete = sub.add_parser("delete-user", help="Delete a user and all of its sessions")
    delete.add_argument("user_id")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        import uvicorn

        uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    engine = create_db_engine(get_settings().database_url)
    try:
        directory = _build_directory(engine)

        if args.command == "create-user":
            if len(args.username) < MIN_USERNAME_LENGTH:
                raise ValidationFailedError(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")
            user = directory.create(
                NewUser(
                    username=args.username,
                    first_name=args.first_name,
                    last_name=args.last_name,
                    password=_read_password(args.password),
                    status=UserStatus(args.status),
                )
            )
            print(f"  Created {user.username} ({user.id})")

        elif args.command == "list-users":
            direction = SortDirection.ASC if args.asc else SortDirection.DESC
            _print_users(directory.list(page=args.page, limit=args.limit, sort_field=args.sort, sort_direction=direction))

        elif args.command == "set-status":
            user = directory.update(args.user_id, UserPatch(status=UserStatus(args.status)))
            print(f"  {user.username} is now {user.status.value}")

        elif args.command == "reset-password":
            user = directory.update(args.user_id, UserPatch(password=_read_password(args.password)))
            print(f"  Password updated for {user.username}")

        elif args.command == "delete-user":
            directory.delete(args.user_id)
            print(f"  Deleted {args.user_id}")

    except IdentityError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
