"""Conduit CLI — run provider operations against a SQLite file.

Entry point registered as ``conduit`` in ``pyproject.toml``::

    [project.scripts]
    conduit = "conduit.cli:main"
"""

import argparse
import sys

DEFAULT_CONTRACT = "conduit.contract:TASK_CONTRACT"


def _add_selection(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--where", default=None, help="SQL selection with ? placeholders")
    parser.add_argument(
        "--arg",
        dest="args",
        action="append",
        default=[],
        help="Selection argument (repeatable, bound in order)",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``conduit`` command."""
    parser = argparse.ArgumentParser(
        prog="conduit",
        description="Conduit — identifier-routed CRUD over SQLite.",
    )
    parser.add_argument("--db", default="tasks.db", help="SQLite database file")
    parser.add_argument(
        "--contract",
        default=DEFAULT_CONTRACT,
        help="Contract import string (module:attribute)",
    )
    parser.add_argument("--echo", action="store_true", help="Print SQL statements to stderr")
    subparsers = parser.add_subparsers(dest="command")

    # -- conduit insert ---------------------------------------------------
    insert_parser = subparsers.add_parser("insert", help="Insert a row into a collection")
    insert_parser.add_argument("uri", help="Collection identifier (e.g. tasks)")
    insert_parser.add_argument("values", nargs="+", help="column=value pairs")

    # -- conduit query ----------------------------------------------------
    query_parser = subparsers.add_parser("query", help="List rows of a collection or item")
    query_parser.add_argument("uri", help="Collection or item identifier")
    query_parser.add_argument("--columns", default=None, help="Comma-separated projection")
    query_parser.add_argument("--order", default=None, help="Sort order (e.g. 'priority DESC')")
    query_parser.add_argument("--json", action="store_true", help="Emit one JSON object per row")
    _add_selection(query_parser)

    # -- conduit update ---------------------------------------------------
    update_parser = subparsers.add_parser("update", help="Update rows of a collection or item")
    update_parser.add_argument("uri", help="Collection or item identifier")
    update_parser.add_argument("values", nargs="+", help="column=value pairs")
    _add_selection(update_parser)

    # -- conduit delete ---------------------------------------------------
    delete_parser = subparsers.add_parser("delete", help="Delete rows of a collection or item")
    delete_parser.add_argument("uri", help="Collection or item identifier")
    _add_selection(delete_parser)

    # -- conduit type -----------------------------------------------------
    type_parser = subparsers.add_parser("type", help="Print the MIME type of an identifier")
    type_parser.add_argument("uri", help="Collection or item identifier")

    # -- conduit routes ---------------------------------------------------
    subparsers.add_parser("routes", help="List the routing table")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from conduit.cli._commands import run_routes

        run_routes(args)
    else:
        from conduit.cli._commands import run_operation

        run_operation(args)
