# src/main.py - v1
"""CLI entry point: add, cache and workspace commands.

Usage:
    compforge add <names or ./definition.json...> [--overwrite] [--path DIR] [--dry-run] [--root DIR]
    compforge cache stats|clear
    compforge workspace [--root DIR]

Exit status: 0 on success, 1 when any component failed, 2 when the batch
could not be resolved (unknown component, unreachable registry, bad config).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from compforge.config.settings import Settings, load_settings
from compforge.core.errors import CompforgeError
from compforge.core.models import InstallOptions, InstallOutcome
from compforge.logging.logger import setup_logging
from compforge.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_RESOLUTION = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FAILED

    try:
        overrides = {}
        if getattr(args, "registry", None) is not None:
            overrides["registry_file"] = args.registry
        settings = load_settings(**overrides)
    except (CompforgeError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_RESOLUTION

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FAILED


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="compforge",
        description=f"compforge v{__version__} - UI component installer",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- add ---
    p_add = subparsers.add_parser(
        "add", help="Install components and their dependencies",
    )
    p_add.add_argument(
        "names", nargs="+",
        help="Component names, or paths to local component definition files",
    )
    p_add.add_argument(
        "--overwrite", action="store_true",
        help="Replace files that already exist",
    )
    p_add.add_argument(
        "--path", type=Path, default=None,
        help="Install into this directory instead of the detected one",
    )
    p_add.add_argument(
        "--dry-run", action="store_true",
        help="Show the files that would be written without writing them",
    )
    p_add.add_argument(
        "--root", type=Path, default=Path("."),
        help="Project directory (default: current directory)",
    )
    p_add.add_argument(
        "--registry", type=Path, default=None,
        help="Registry JSON document (overrides REGISTRY_FILE)",
    )
    p_add.set_defaults(func=_cmd_add)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or clear the cache")
    p_cache.add_argument("action", choices=["stats", "clear"])
    p_cache.set_defaults(func=_cmd_cache)

    # --- workspace ---
    p_ws = subparsers.add_parser("workspace", help="Show the detected workspace")
    p_ws.add_argument(
        "--root", type=Path, default=Path("."),
        help="Project directory (default: current directory)",
    )
    p_ws.set_defaults(func=_cmd_workspace)

    return parser


async def _cmd_add(args: argparse.Namespace, settings: Settings) -> int:
    """Resolve and install components."""
    from compforge.api.facade import add_components
    from compforge.registry.local import is_local_definition, load_local_definition

    try:
        options = InstallOptions(
            overwrite=args.overwrite, path=args.path, dry_run=args.dry_run,
        )
        names = [n for n in args.names if not is_local_definition(n)]
        definitions = [
            load_local_definition(n) for n in args.names if is_local_definition(n)
        ]
        outcome = await add_components(
            names, options, root=args.root, settings=settings,
            definitions=definitions or None,
        )
    except (CompforgeError, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_RESOLUTION

    _print_outcome(outcome)
    return outcome.exit_code


async def _cmd_cache(args: argparse.Namespace, settings: Settings) -> int:
    """Show cache statistics or clear the cache."""
    from compforge.cache.cache_factory import create_cache_store

    store = create_cache_store(settings)
    if args.action == "clear":
        await store.clear()
        print(f"Cache cleared: {settings.cache_root_path}")
        return EXIT_OK

    stats = store.stats()
    print(f"\nCache statistics ({settings.cache_root_path}):")
    print(f"  Entries:    {stats.entries}")
    print(f"  Hits:       {stats.hits}")
    print(f"  Misses:     {stats.misses}")
    print(f"  Writes:     {stats.writes}")
    print(f"  Evictions:  {stats.evictions}")
    print(f"  Hit rate:   {stats.hit_rate:.1%}")
    return EXIT_OK


async def _cmd_workspace(args: argparse.Namespace, settings: Settings) -> int:
    """Print the detected workspace layout."""
    from compforge.workspace.detector import WorkspaceDetector

    info = WorkspaceDetector().detect(args.root)
    print(f"\nWorkspace:")
    print(f"  Type:      {info.type.value}")
    print(f"  Root:      {info.root}")
    print(f"  Packages:  {', '.join(info.package_patterns) or '-'}")
    if info.current_package is not None:
        pkg = info.current_package
        print(f"  Current:   {pkg.name} ({pkg.kind.value}) at {pkg.path}")
    return EXIT_OK


def _print_outcome(outcome: InstallOutcome) -> None:
    """Print a human-readable summary of an InstallOutcome."""
    if outcome.dry_run:
        print(f"\nDry run: {len(outcome.planned_files)} file(s) would be written:")
        for pf in outcome.planned_files:
            marker = " (exists)" if pf.exists else ""
            print(f"  {pf.component}: {pf.target_path}{marker}")
    else:
        print(f"\nInstall complete:")
    print(f"  Succeeded:  {', '.join(outcome.succeeded) or '-'}")
    for failure in outcome.failed:
        print(f"  Failed:     {failure.name} [{failure.code}] {failure.error}")
    print(f"  Duration:   {outcome.duration_s:.2f}s")
    if outcome.npm_dependencies:
        print("\nInstall required dependencies:")
        print(f"  npm install {' '.join(outcome.npm_dependencies)}")


if __name__ == "__main__":
    sys.exit(main())
