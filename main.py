#!/usr/bin/env python3
"""
ExpenseTracker -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py serve --reload
  python main.py create-user --email alice@example.com --name Alice

Environment variables (see core/config.py for the full list):
  SECRET_KEY            Token signing key, at least 32 characters. Required
                        unless DEBUG=true.
  DEBUG                 true to auto-generate SECRET_KEY for local development.
  TOKEN_EXPIRE_SECONDS  Bearer token lifetime (default 86400).
"""

import argparse
import getpass
import sys

from auth.credentials import CredentialStore
from auth.errors import EmailAlreadyRegistered, PasswordTooLong
from auth.passwords import MAX_PASSWORD_BYTES, BcryptHasher
from auth.store import UserStore
from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Register an account from the terminal without going through HTTP.

    The password is read with getpass so it never lands in shell history.
    """
    password = getpass.getpass("Password: ")
    if len(password) < 6:
        print("  [!] Password must be at least 6 characters.")
        return 1
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1

    settings = get_settings()
    store = UserStore(settings.auth_database_url)
    try:
        credentials = CredentialStore(store, BcryptHasher(settings.bcrypt_rounds))
        user = credentials.register(args.email, password, name=args.name)
    except EmailAlreadyRegistered:
        print(f"  [!] {args.email} is already registered.")
        return 1
    except PasswordTooLong:
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return 1
    finally:
        store.close()

    print(f"  Created user {user.id} ({user.email}).")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="expense-tracker",
        description="Personal expense tracking API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  SECRET_KEY=... python main.py serve --host 0.0.0.0
  python main.py create-user --email alice@example.com --name Alice
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Register an account from the terminal")
    create.add_argument("--email", required=True)
    create.add_argument("--name", required=True)
    create.set_defaults(func=_create_user)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
