"""Marketplace management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py sweep      # Release expired bookings once
"""

import argparse
import sys
from datetime import UTC, datetime

from marketplace.domain import marketplace
from marketplace.utils.db import drop_db, setup_db
from marketplace.utils.logging import configure_logging


def setup_database():
    print("Initializing marketplace domain...")
    marketplace.init()
    print("Creating marketplace database schema...")
    providers = setup_db(marketplace)
    print(f"  Schema ready on {', '.join(providers) or 'no SQL providers'}.")


def drop_database():
    print("Initializing marketplace domain...")
    marketplace.init()
    print("Dropping marketplace database schema...")
    providers = drop_db(marketplace)
    print(f"  Schema dropped on {', '.join(providers) or 'no SQL providers'}.")


def sweep(as_of=None):
    from marketplace.sweeper.sweeper import sweep_stale_bookings

    marketplace.init()
    with marketplace.domain_context():
        released = sweep_stale_bookings(as_of=as_of)
    print(f"Released {released} booking(s).")


def main():
    parser = argparse.ArgumentParser(description="Marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    sweep_parser = subparsers.add_parser("sweep", help="Release expired bookings and abandoned carts")
    sweep_parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="Sweep as of this ISO timestamp (default: now, UTC)",
    )

    args = parser.parse_args()
    configure_logging()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep":
        sweep(args.as_of or datetime.now(UTC))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
