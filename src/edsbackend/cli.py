"""CLI entry point for edsbackend."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edsbackend",
        description="edsbackend — Query the EBSCO Discovery Service from the command line",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"edsbackend {_get_version()}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Run a search")
    search.add_argument("terms", type=str, help="Query terms")
    search.add_argument("--field", type=str, default=None, help="Field code to search in (e.g. TI, AU)")
    search.add_argument("--offset", type=int, default=0, help="Index of the first record")
    search.add_argument("--limit", "-n", type=int, default=20, help="Page size")
    search.add_argument("--filter", action="append", default=[], help="Facet filter, e.g. '1,SubjectEDS:energy'")
    search.add_argument("--limiter", action="append", default=[], help="Limiter, e.g. 'FT:y'")
    search.add_argument("--sort", type=str, default=None, help="Sort order (relevance, date, ...)")

    retrieve = commands.add_parser("retrieve", help="Retrieve one record")
    retrieve.add_argument("id", type=str, help="Record id as '<dbId>,<accessionNumber>'")
    retrieve.add_argument("--profile", type=str, default=None, help="Profile override for this call")

    commands.add_parser("info", help="Show the search criteria of the configured profile")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    from edsbackend.config.settings import Settings
    from edsbackend.observability.logging import setup_logging

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings()

    if args.log_level:
        settings.observability.log_level = args.log_level
    setup_logging(settings.observability)

    from edsbackend.backend.exceptions import EdsError

    try:
        result = asyncio.run(_run(args, settings))
    except EdsError as e:
        code = f" [{e.kind.value}, code {e.code}]" if e.code is not None else f" [{e.kind.value}]"
        print(f"Error: {e}{code}", file=sys.stderr)
        sys.exit(1)

    json.dump(result, sys.stdout, indent=2, ensure_ascii=False, default=str)
    sys.stdout.write("\n")


async def _run(args: argparse.Namespace, settings: Any) -> Any:
    from edsbackend.backend.eds.factory import EdsBackendFactory
    from edsbackend.models.query import ParamBag, Query

    factory = EdsBackendFactory(settings)
    await factory.initialize()
    try:
        backend = factory.create()
        if args.command == "search":
            params = ParamBag()
            for value in args.filter:
                params.add("filters", value)
            for value in args.limiter:
                params.add("limiters", value)
            if args.sort:
                params.set("sort", args.sort)
            collection = await backend.search(
                Query(terms=args.terms, handler=args.field),
                offset=args.offset,
                limit=args.limit,
                params=params,
            )
            return collection.model_dump(mode="json")
        if args.command == "retrieve":
            params = ParamBag({"profile": args.profile}) if args.profile else None
            collection = await backend.retrieve(args.id, params)
            return collection.model_dump(mode="json")
        return await backend.get_info()
    finally:
        await factory.shutdown()


def _get_version() -> str:
    """Get the package version."""
    from edsbackend import __version__

    return __version__


if __name__ == "__main__":
    main()
