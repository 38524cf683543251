#!/usr/bin/env python3
"""
passgate -- User registration, password login and bearer-token authentication.

Usage:
  python main.py serve
  python main.py serve --port 8080 --reload
  python main.py init-db
  python main.py check-config

Environment variables (or .env):
  JWT_SECRET       Required. Token signing secret, at least 32 characters.
  JWT_EXPIRES_IN   Token lifetime, e.g. 7d, 12h, 3600 (default: 7d).
  DATABASE_URL     SQLAlchemy URL (default: SQLite file under auth/).
  PORT             Listening port for `serve` (default: 3000).
"""

import argparse
import json
import sys
from typing import Optional

from pydantic import ValidationError as SettingsError

from auth.errors import StorageError
from auth.store import UserStore
from core.config import Settings, get_settings


def _load_settings() -> Optional[Settings]:
    """Return Settings, or print the validation problem and return None."""
    try:
        return get_settings()
    except SettingsError as e:
        for err in e.errors():
            print(f"  [!] Invalid configuration: {err['msg']}")
        return None


def _cmd_serve(args: argparse.Namespace) -> int:
    settings = _load_settings()
    if settings is None:
        return 1

    import uvicorn

    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def _cmd_init_db(args: argparse.Namespace) -> int:
    settings = _load_settings()
    if settings is None:
        return 1
    store = UserStore(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)
    try:
        store.check_connection()
        store.create_table()
    except StorageError:
        print(f"  [!] Could not initialise the database at {store.engine.url!r}.")
        return 1
    finally:
        store.close()
    print("  Users table ready.")
    return 0


def _cmd_check_config(args: argparse.Namespace) -> int:
    settings = _load_settings()
    if settings is None:
        return 1
    print(json.dumps(settings.public_view(), indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="passgate",
        description="User registration, password login and bearer-token authentication service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  JWT_SECRET=... python main.py serve
  python main.py serve --host 127.0.0.1 --port 8080 --reload
  DATABASE_URL=sqlite:///users.db python main.py init-db
  python main.py check-config
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Listening port (default: PORT or 3000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(handler=_cmd_serve)

    init_db = sub.add_parser("init-db", help="Create the users table if it does not exist")
    init_db.set_defaults(handler=_cmd_init_db)

    check = sub.add_parser("check-config", help="Validate configuration and print it with secrets masked")
    check.set_defaults(handler=_cmd_check_config)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
