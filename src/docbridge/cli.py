"""CLI entry point for inspecting a collection through its adapter."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docbridge.adapters.base.adapter import CollectionAdapter
    from docbridge.config.settings import Settings


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    from docbridge.config.settings import Settings
    from docbridge.observability.logging import setup_logging

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings()

    # Apply CLI overrides
    if args.project:
        settings.firestore.project_id = args.project
    if args.log_level:
        settings.observability.log_level = args.log_level

    setup_logging(settings.observability)

    from google.api_core.exceptions import GoogleAPIError

    from docbridge.adapters.base.exceptions import AdapterError

    try:
        result = asyncio.run(_run(args, settings))
    except (AdapterError, GoogleAPIError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docbridge",
        description="docbridge — Inspect document-store collections",
    )
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to YAML configuration file")
    parser.add_argument("--project", type=str, default=None, help="Google Cloud project id (overrides config)")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument("--version", action="version", version=f"docbridge {_get_version()}")

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List documents, one page at a time when ordered")
    list_cmd.add_argument("collection", help="Collection name")
    list_cmd.add_argument("--limit", "-n", type=int, default=None, help="Page size")
    list_cmd.add_argument("--order-by", type=str, default=None, help="Sort field")
    list_cmd.add_argument("--cursor", type=str, default=None, help="Continuation token from a previous page")

    get_cmd = commands.add_parser("get", help="Fetch documents by id")
    get_cmd.add_argument("collection", help="Collection name")
    get_cmd.add_argument("ids", nargs="+", help="Document ids")

    find_cmd = commands.add_parser("find", help="Find documents by filters")
    find_cmd.add_argument("collection", help="Collection name")
    find_cmd.add_argument(
        "--where",
        "-w",
        nargs=3,
        action="append",
        default=[],
        metavar=("FIELD", "OP", "VALUE"),
        help="Filter; VALUE is parsed as JSON when possible (repeatable)",
    )
    find_cmd.add_argument("--limit", "-n", type=int, default=None, help="Maximum number of documents")
    find_cmd.add_argument("--order-by", action="append", default=[], help="Sort field (repeatable)")

    health_cmd = commands.add_parser("health", help="Check connectivity to a collection")
    health_cmd.add_argument("collection", help="Collection name")

    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> Any:
    adapter = await _connect(args.collection, settings)
    try:
        if args.command == "list":
            limit = args.limit or settings.default_page_size
            result = await adapter.list(limit, args.order_by, args.cursor)
            data = result.model_dump()
            if result.kind == "page":
                data["next"] = result.next.encode() if result.next else None
            return data
        if args.command == "get":
            if len(args.ids) == 1:
                return await adapter.find_by_id(args.ids[0])
            return await adapter.find_by_ids(args.ids)
        if args.command == "find":
            conditions = [(field, op, _parse_value(value)) for field, op, value in args.where]
            return await adapter.find(conditions, args.limit, args.order_by)
        if args.command == "health":
            return (await adapter.health_check()).model_dump()
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await adapter.disconnect()


async def _connect(collection: str, settings: Settings) -> CollectionAdapter:
    from docbridge.adapters.base.registry import create_default_registry
    from docbridge.models.service import Service

    registry = create_default_registry()
    service = Service.from_schema(f"cli.{collection}", collection=collection)
    return await registry.connect_adapter("firestore", None, service, **settings.firestore.model_dump())


def _parse_value(raw: str) -> Any:
    """Parse a filter value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _get_version() -> str:
    """Get the package version."""
    try:
        from docbridge import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
