"""Command-line interface for the user account service."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

from accounts_service.accounts import AccountService
from accounts_service.application import build_account_service
from accounts_service.config import Settings, load_settings
from accounts_service.errors import AccountServiceError, ValidationFailure
from accounts_service.models import NewUser

logger = logging.getLogger("accounts.main")

_MIN_PASSWORD_LENGTH = 12


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User account service utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML configuration file (default: ACCOUNTS_CONFIG or config/accounts.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-store", help="Create the user store file if it does not exist")
    subparsers.add_parser("list-users", help="Print every registered user")

    create_parser = subparsers.add_parser("create-user", help="Register a new user interactively")
    create_parser.add_argument("email", help="Unique email address for login")
    create_parser.add_argument("--first-name", default=None, help="Optional first name")
    create_parser.add_argument("--last-name", default=None, help="Optional last name")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP account service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port for the HTTP API (default: 8080)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-store", "list-users", "create-user"}

    leading: list[str] = []
    rest = list(args_list)
    if rest and rest[0].startswith("--config="):
        leading, rest = rest[:1], rest[1:]
    elif len(rest) >= 2 and rest[0] == "--config":
        leading, rest = rest[:2], rest[2:]

    if not rest:
        rest = ["serve"]
    else:
        first = rest[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*leading, *rest])
        if first not in known_commands:
            if any(flag in rest for flag in ("-h", "--help")):
                return parser.parse_args([*leading, *rest])
            rest = ["serve", *rest]

    return parser.parse_args([*leading, *rest])


def _load_settings(config: str | None) -> Settings:
    try:
        return load_settings(Path(config).expanduser() if config else None)
    except (TypeError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc


def _serve(*, settings: Settings, host: str, port: int) -> None:
    from accounts_service.application import create_application
    import uvicorn

    logger.info("Starting account service on http://%s:%s", host, port)
    app = create_application(settings=settings)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _list_users(accounts: AccountService) -> None:
    users = accounts.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Email':<32}  Name")
    print("-" * 64)
    for user in users:
        name = " ".join(part for part in (user.first_name, user.last_name) if part) or "<no name>"
        print(f"{user.id:>4}  {user.email:<32}  {name}")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {_MIN_PASSWORD_LENGTH} characters): ")
        if len(password) < _MIN_PASSWORD_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Try again.")
            continue
        return password
    return None


def _create_user(accounts: AccountService, args: argparse.Namespace) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Failed to set password after three attempts.", file=sys.stderr)
        return 1

    try:
        user = accounts.create_user(
            NewUser(
                email=args.email,
                password=password,
                first_name=args.first_name,
                last_name=args.last_name,
            )
        )
    except ValidationFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: <{user.email}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _load_settings(args.config)

    if args.command == "serve":
        _serve(settings=settings, host=args.host, port=args.port)
        return 0

    try:
        accounts = build_account_service(settings)
    except AccountServiceError as exc:
        logger.error("Unable to open user store: %s", exc)
        return 1
    logger.info("User store ready at %s", settings.store_path)

    if args.command == "init-store":
        print("User store initialisation complete.")
        return 0
    if args.command == "list-users":
        try:
            _list_users(accounts)
        except AccountServiceError as exc:
            logger.error("Unable to list users: %s", exc)
            return 1
        return 0
    if args.command == "create-user":
        try:
            return _create_user(accounts, args)
        except AccountServiceError as exc:
            logger.error("Unable to create user: %s", exc)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
