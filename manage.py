#!/usr/bin/env python3
"""
Catalog management CLI.

Usage:
    python manage.py migrate                 Apply pending database migrations
    python manage.py import FILE             Import a CSV/XLSX price list
    python manage.py import FILE --no-confirm
                                             Resolve conflicts automatically
    python manage.py import FILE --yes       Skip the final yes/no question
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.config import configure_logging
from src.core.exceptions import CatalogImportError


async def _migrate() -> int:
    from src.infrastructure.storage.sqlite.migrations import initialize_database

    results = await initialize_database()
    for result in results:
        status = "ok" if result.success else f"FAILED ({result.error})"
        print(f"v{result.version}_{result.name}: {status}")
    if not results:
        print("Database is up to date.")
    return 0 if all(r.success for r in results) else 1


async def _import(path: Path, ask_confirm: bool, assume_yes: bool) -> int:
    from src.application import ImportMaterialsRequest, ImportMaterialsResponse
    from src.application.use_cases import ImportMaterialsUseCase
    from src.infrastructure.console_channel import ConsoleOperatorChannel
    from src.infrastructure.storage.sqlite import close_pool
    from src.infrastructure.storage.sqlite.migrations import initialize_database

    await initialize_database(create_backup_before=False)

    def show_progress(percent: int) -> None:
        print(f"\r{percent:3d}%", end="" if percent < 100 else "\n", file=sys.stderr)

    use_case = ImportMaterialsUseCase(channel=ConsoleOperatorChannel(assume_yes=assume_yes))
    request = ImportMaterialsRequest(
        content=path.read_bytes(),
        filename=path.name,
        ask_confirm=ask_confirm,
    )
    try:
        outcome = await use_case.execute(request, progress=show_progress)
    finally:
        await close_pool()

    response = ImportMaterialsResponse.from_outcome(outcome)
    print(json.dumps(response.model_dump(mode="json"), indent=2))
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    """Apply pending migrations."""
    return asyncio.run(_migrate())


def cmd_import(args: argparse.Namespace) -> int:
    """Import a supplier price list."""
    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2
    try:
        return asyncio.run(_import(path, ask_confirm=not args.no_confirm, assume_yes=args.yes))
    except CatalogImportError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Catalog management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # migrate
    p_migrate = sub.add_parser("migrate", help="Apply pending database migrations")
    p_migrate.set_defaults(func=cmd_migrate)

    # import
    p_import = sub.add_parser("import", help="Import a CSV/XLSX price list")
    p_import.add_argument("file", help="Path to the price list")
    p_import.add_argument(
        "--no-confirm",
        action="store_true",
        help="Create new categories/suppliers and keep incoming values without asking",
    )
    p_import.add_argument("--yes", action="store_true", help="Answer yes to confirmations")
    p_import.set_defaults(func=cmd_import)

    args = parser.parse_args()
    configure_logging()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
