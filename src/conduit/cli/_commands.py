"""``conduit insert|query|update|delete|type|routes`` implementations.

Each command builds a ``SQLiteProvider`` for the selected contract and
database file, runs one operation, and prints the result. Any
``ConduitError`` is printed to stderr and exits with code 1.
"""

import argparse
import json
import sys
from typing import Any

from conduit.cli._resolve import resolve_contract
from conduit.config import ProviderConfig
from conduit.contract import Contract
from conduit.errors import ConduitError
from conduit.provider import SQLiteProvider
from conduit.routing.matcher import build_uri_matcher
from conduit.uri import ResourceUri


def _load_contract(args: argparse.Namespace) -> Contract:
    try:
        return resolve_contract(args.contract)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def absolute_uri(contract: Contract, text: str) -> ResourceUri:
    """Resolve *text* against *contract*'s authority.

    ``tasks/3`` becomes ``<authority>/tasks/3``; identifiers that already
    start with the authority (or carry a scheme) are parsed as given.
    """
    if "://" in text or text == contract.authority or text.startswith(f"{contract.authority}/"):
        return ResourceUri.parse(text)
    return ResourceUri.parse(f"{contract.authority}/{text.strip('/')}")


def parse_value(raw: str) -> Any:
    """Parse a command-line value: JSON scalars as themselves, anything else as text."""
    try:
        value = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(value, (dict, list)):
        return raw
    return value


def parse_assignments(pairs: list[str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for pair in pairs:
        column, sep, raw = pair.partition("=")
        if not sep or not column:
            print(f"Error: expected column=value, got {pair!r}", file=sys.stderr)
            raise SystemExit(2)
        values[column] = parse_value(raw)
    return values


def _print_rows(rows: list[dict[str, Any]], as_json: bool) -> None:
    if as_json:
        for row in rows:
            print(json.dumps(row, default=str))
        return
    if not rows:
        print("No rows.")
        return

    headers = list(rows[0])
    cells = [[str(row.get(h, "")) for h in headers] for row in rows]
    widths = [max(len(h), *(len(c[i]) for c in cells)) for i, h in enumerate(headers)]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    print(fmt.format(*headers))
    print("-" * min(sum(widths) + 2 * (len(widths) - 1), 80))
    for row_cells in cells:
        print(fmt.format(*row_cells))


def run_operation(args: argparse.Namespace) -> None:
    """Run one provider operation and print its result."""
    contract = _load_contract(args)
    config = ProviderConfig(database_url=f"sqlite:///{args.db}", echo=args.echo)

    try:
        with SQLiteProvider(contract, config) as provider:
            uri = absolute_uri(contract, args.uri)
            if args.command == "insert":
                print(provider.insert(uri, parse_assignments(args.values)))
            elif args.command == "query":
                columns = [c.strip() for c in args.columns.split(",")] if args.columns else None
                rows = provider.query(
                    uri, columns, args.where, [parse_value(a) for a in args.args], args.order
                )
                _print_rows(rows, args.json)
            elif args.command == "update":
                count = provider.update(
                    uri,
                    parse_assignments(args.values),
                    args.where,
                    [parse_value(a) for a in args.args],
                )
                print(f"Updated {count} row(s)")
            elif args.command == "delete":
                count = provider.delete(uri, args.where, [parse_value(a) for a in args.args])
                print(f"Deleted {count} row(s)")
            elif args.command == "type":
                print(provider.get_type(uri))
    except (ConduitError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def run_routes(args: argparse.Namespace) -> None:
    """Print the routing table for the selected contract."""
    contract = _load_contract(args)
    routes = build_uri_matcher(contract).routes
    if not routes:
        print("No routes registered.")
        return

    rows = [(str(route.code), f"{route.authority}/{route.pattern}", route.name or "") for route in routes]
    max_code = max(4, *(len(r[0]) for r in rows))
    max_pattern = max(7, *(len(r[1]) for r in rows))
    fmt = f"{{:<{max_code}}}  {{:<{max_pattern}}}  {{}}"
    print(fmt.format("CODE", "PATTERN", "COLLECTION"))
    print("-" * min(max_code + max_pattern + 14, 80))
    for code, pattern, name in rows:
        print(fmt.format(code, pattern, name))
