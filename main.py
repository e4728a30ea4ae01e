"""Command-line interface for the userboard service."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Sequence

import anyio

from userboard.actions import UserActions
from userboard.client import RemoteUserActions
from userboard.config import Settings, load_settings
from userboard.console import UserListView, run_console
from userboard.database import Database
from userboard.models import User

logger = logging.getLogger("userboard.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Userboard management utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML configuration file (default: USERBOARD_CONFIG or config/userboard.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the userboard database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the service")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP service (default: 8000)",
    )

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    admin_parser.add_argument(
        "--service-url",
        default=None,
        help=(
            "Base URL of a running userboard API (for example http://localhost:8000/api). "
            "When unset the console works directly on the local database."
        ),
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    # Global options come before the subcommand; skip past them.
    index = 0
    while index < len(args_list):
        if args_list[index] == "--config":
            index += 2
        elif args_list[index].startswith("--config="):
            index += 1
        else:
            break

    remaining = args_list[index:]
    if not remaining:
        args_list = [*args_list, "serve"]
    else:
        first = remaining[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in remaining for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = [*args_list[:index], "serve", *remaining]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, settings: Settings, database: Database, host: str, port: int) -> None:
    from userboard.application import create_application
    import uvicorn

    logger.info("Starting userboard on http://%s:%s", host, port)

    app = create_application(settings=settings, database=database)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        proxy_headers=True,
    )


def _build_console_view(database: Database, service_url: str | None) -> UserListView:
    if service_url:
        remote = RemoteUserActions(service_url)
        return UserListView(remote, remote.fetch_users)

    async def load_local() -> List[User]:
        return await anyio.to_thread.run_sync(database.list_users)

    return UserListView(UserActions(database), load_local)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    config_path = Path(args.config).expanduser() if args.config else None
    try:
        settings = load_settings(config_path)
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(settings=settings, database=database, host=args.host, port=args.port)
    elif args.command == "admin":
        service_url = args.service_url or settings.service_url
        run_console(_build_console_view(database, service_url))
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
