import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userboard.database import Database, resolve_database_path
from userboard.schema import InsertUserParams, safe_parse


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a userboard user")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument("--paid", action="store_true", help="Mark the user as paid")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USERBOARD_DB_PATH or data/userboard.sqlite3)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    parsed = safe_parse(
        InsertUserParams,
        {"email": args.email, "name": args.name, "isPaid": args.paid},
    )
    if not parsed.success or parsed.data is None:
        for field, messages in (parsed.errors or {}).items():
            print(f"Error: {field}: {messages[0]}", file=sys.stderr)
        return 1

    db_env = args.db_path or os.getenv("USERBOARD_DB_PATH")
    db_path = resolve_database_path(db_env)

    database = Database(db_path)
    database.initialize()

    try:
        user = database.create_user(**parsed.data.to_values())
    except ValueError as exc:  # duplicates, etc.
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    paid = "paid" if user.is_paid else "free"
    print(f"Created user {user.id}: {user.name} <{user.email}> ({paid})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
