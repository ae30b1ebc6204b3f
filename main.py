#!/usr/bin/env python3
"""
Main entry point for Identity Reconciliation.

Provides a command-line interface for the contact database:
    init-db    create the schema
    identify   reconcile one observation and print the summary as JSON
    show       print the cluster summary of a stored contact
    validate   audit the stored clusters
    serve      run the HTTP API
"""
from typing import List, Optional
import argparse
import json
import logging
import sqlite3
import sys

from identity_reconciliation.config import Config, set_config
from identity_reconciliation.database import DatabaseConnection
from identity_reconciliation.errors import InvalidInput, ReconciliationError
from identity_reconciliation.linkage.reconciler import identify, lookup
from identity_reconciliation.linkage.schema import create_schema, verify_schema
from identity_reconciliation.linkage.validation import validate_store
from identity_reconciliation.logger_config import get_log_level, setup_logging
from identity_reconciliation.utils import Colors, colorize


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve email/phone observations into contact identities."
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="Path to the contact database (defaults to $IDENTITY_DB_PATH or "
        "~/.identity_reconciliation/contacts.db).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to $LOG_LEVEL or INFO.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this rotating file (defaults to $IDENTITY_LOG_FILE).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the contact database schema.")

    identify_parser = sub.add_parser("identify", help="Reconcile one observation.")
    identify_parser.add_argument("--email", default=None)
    identify_parser.add_argument("--phone", default=None, help="Phone number.")

    show_parser = sub.add_parser("show", help="Print the cluster a contact belongs to.")
    show_parser.add_argument("contact_id", type=int)

    sub.add_parser("validate", help="Audit stored clusters for invariant violations.")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    return parser.parse_args(argv)


def _cmd_init_db(config: Config) -> int:
    create_schema(config.db_path)
    print(colorize(f"Schema ready: {config.db_path_str}", Colors.OKGREEN))
    return 0


def _cmd_identify(config: Config, args: argparse.Namespace) -> int:
    try:
        result = identify(email=args.email, phone_number=args.phone, config=config)
    except InvalidInput as e:
        print(colorize(f"Error: {e}", Colors.FAIL))
        return 2
    except ReconciliationError as e:
        print(colorize(f"Error: {e}", Colors.FAIL))
        logging.exception("Reconciliation failed")
        return 1
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def _cmd_show(config: Config, contact_id: int) -> int:
    try:
        with DatabaseConnection(config) as db:
            result = lookup(db, contact_id)
    except (ReconciliationError, sqlite3.Error) as e:
        print(colorize(f"Error: {e}", Colors.FAIL))
        return 1
    if result is None:
        print(colorize(f"No contact with id {contact_id}", Colors.WARNING))
        return 1
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def _cmd_validate(config: Config) -> int:
    with DatabaseConnection(config) as db:
        result = validate_store(db.connection)
    print(colorize(f"Contact store audit: {config.db_path_str}", Colors.BOLD))
    print(result)
    if not result.passed:
        print(colorize("Run `identify` traffic only after repairing the store.", Colors.WARNING))
    return 0 if result.passed else 1


def _cmd_serve(config: Config, args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "identity_reconciliation.api:app",
        host=args.host or config.host,
        port=args.port if args.port is not None else config.port,
        log_config=None,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    config = Config(db_path=args.db_path, log_file=args.log_file)
    set_config(config)
    setup_logging(level=get_log_level(args.log_level), log_file=config.log_file)

    if args.command == "init-db":
        return _cmd_init_db(config)

    if not config.validate() or not verify_schema(config.db_path):
        print(colorize("Error: contact database not initialized.", Colors.FAIL))
        print(f"Run `identity-reconciliation --db-path {config.db_path_str} init-db` first.")
        return 1

    if args.command == "identify":
        return _cmd_identify(config, args)
    if args.command == "show":
        return _cmd_show(config, args.contact_id)
    if args.command == "validate":
        return _cmd_validate(config)
    return _cmd_serve(config, args)


if __name__ == "__main__":
    sys.exit(main())
