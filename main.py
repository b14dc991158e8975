#!/usr/bin/env python3
"""
SSO ops CLI -- schema migrations and client app / admin management.

Usage:
  python main.py migrate
  python main.py --storage-url sqlite:///./storage/sso.db migrate --migrations-path ./migrations
  python main.py migrate --migrations-table migrations_test
  python main.py add-app --name web --secret "$WEB_APP_SECRET"
  python main.py add-app --name mobile --secret "$MOBILE_SECRET" --id 10
  python main.py set-admin --user-id 1
  python main.py set-admin --user-id 1 --revoke

Every flag defaults to the matching setting (STORAGE_URL, MIGRATIONS_PATH,
MIGRATIONS_TABLE) from the environment or .env file.

Exit status is 0 on success and 1 on any failure.
"""

import argparse
import sys
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from auth.context import RequestContext
from auth.errors import StorageError
from auth.store import Storage
from core.config import get_settings
from core.logging import setup_logging
from core.migrations import MigrationError, apply_migrations


def _cmd_migrate(args: argparse.Namespace) -> int:
    if not args.storage_url:
        print("  [!] storage url is empty")
        return 1
    if not args.migrations_path:
        print("  [!] migrations path is empty")
        return 1
    try:
        applied = apply_migrations(args.storage_url, args.migrations_path, args.migrations_table)
    except (MigrationError, SQLAlchemyError) as e:
        print(f"  [!] Migration failed: {e}")
        return 1
    if not applied:
        print("no migrations to apply")
    else:
        print("migrations applied successfully")
    return 0


def _cmd_add_app(args: argparse.Namespace) -> int:
    if not args.secret:
        print("  [!] app secret is empty")
        return 1
    store = Storage(args.storage_url)
    try:
        app_id = store.save_app(RequestContext.background(), args.name, args.secret, app_id=args.id)
    except StorageError as e:
        print(f"  [!] Could not add app '{args.name}': {e}")
        return 1
    finally:
        store.close()
    print(f"app '{args.name}' registered with id {app_id}")
    return 0


def _cmd_set_admin(args: argparse.Namespace) -> int:
    store = Storage(args.storage_url)
    try:
        store.set_admin(RequestContext.background(), args.user_id, not args.revoke)
    except StorageError as e:
        print(f"  [!] Could not update user {args.user_id}: {e}")
        return 1
    finally:
        store.close()
    print(f"user {args.user_id} admin={'no' if args.revoke else 'yes'}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="sso",
        description="SSO service maintenance commands.",
    )
    parser.add_argument(
        "--storage-url",
        default=settings.storage_url,
        help="SQLAlchemy database URL (default: STORAGE_URL)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", help="Apply pending schema migrations")
    migrate.add_argument("--migrations-path", default=settings.migrations_path, help="Directory of *.up.sql files")
    migrate.add_argument("--migrations-table", default=settings.migrations_table, help="Name of the tracking table")
    migrate.set_defaults(func=_cmd_migrate)

    add_app = sub.add_parser("add-app", help="Register a client app")
    add_app.add_argument("--name", required=True, help="Unique app name")
    add_app.add_argument("--secret", required=True, help="Token signing secret for this app")
    add_app.add_argument("--id", type=int, default=None, help="Pin the app ID (default: auto-assigned)")
    add_app.set_defaults(func=_cmd_add_app)

    set_admin = sub.add_parser("set-admin", help="Grant or revoke admin for a user")
    set_admin.add_argument("--user-id", type=int, required=True)
    set_admin.add_argument("--revoke", action="store_true", help="Revoke instead of grant")
    set_admin.set_defaults(func=_cmd_set_admin)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    setup_logging(get_settings().log_level)
    args = _build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
