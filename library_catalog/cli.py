from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty

from library_catalog.config import load_config
from library_catalog.config.loader import env_snapshot
from library_catalog.library import ENTITY_CODES, JOIN_CODES, Library, LibraryInitError, open_library
from library_catalog.render.table import RichTableRenderer
from library_catalog.storage.db import init_db_service, shutdown_db_service
from library_catalog.storage.descriptors import DESCRIPTORS
from library_catalog.utils.logging import setup_logging

console = Console()

Ask = Callable[[str], str]

SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    descriptor.name: (*descriptor.searchable, "id") for descriptor in DESCRIPTORS.values()
}
FILTER_FIELDS: dict[str, tuple[str, ...]] = {
    descriptor.name: descriptor.searchable for descriptor in DESCRIPTORS.values()
}
DIRECTIONS: dict[str, str] = {"1": "up", "2": "down"}
EXPORT_FORMATS: dict[str, str] = {"1": "json", "2": "csv"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="library-catalog")
    parser.add_argument("--config", type=Path, default=None, help="Path to custom config YAML")
    parser.add_argument("--profile", type=str, default=None, help="Config profile name")
    parser.add_argument("--data-dir", type=Path, default=None, help="Base directory for relative import paths")
    parser.add_argument("--export-dir", type=Path, default=None, help="Directory receiving export files")
    parser.add_argument("--db-path", type=Path, default=None, help="SQLite database file")
    parser.add_argument("--log-level", type=str, default=None, help="Console log level")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("menu", help="Run the interactive catalog menu (default)")
    subparsers.add_parser("config", help="Validate and print effective config")
    return parser


def _build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    app_overrides: dict[str, Any] = {}
    if args.data_dir:
        app_overrides["data_dir"] = str(args.data_dir)
    if args.export_dir:
        app_overrides["export_dir"] = str(args.export_dir)
    if args.log_level:
        app_overrides["log_level"] = args.log_level
    if app_overrides:
        overrides["app"] = app_overrides
    if args.db_path:
        overrides["storage"] = {"sqlite_path": str(args.db_path)}
    return overrides


def _print_config(config) -> None:
    console.print(Panel(Pretty(config.model_dump(mode="json")), title="Effective Config"))
    console.print(Panel(Pretty(env_snapshot()), title="Env Snapshot"))


def _numbered(options: Sequence[str]) -> dict[str, str]:
    return {str(index): option for index, option in enumerate(options, start=1)}


async def _prompt(ask: Ask, text: str) -> str:
    # Blocking reads run in a worker thread.
    return await asyncio.to_thread(ask, text)


async def _choose(ask: Ask, title: str, options: dict[str, str], prompt: str) -> str | None:
    """Print a numbered menu and return the chosen key, or None for back/invalid."""
    console.print(f"\n{title}:")
    for key, label in options.items():
        console.print(f"{key}. {label}")
    console.print("0. back")
    choice = (await _prompt(ask, prompt)).strip()
    if choice == "0":
        return None
    if choice not in options:
        logger.warning("Invalid choice {!r} in '{}'", choice, title)
        console.print("[red]Invalid choice[/]")
        return None
    return choice


async def _choose_entity(ask: Ask, title: str) -> str | None:
    return await _choose(ask, title, ENTITY_CODES, "Select entity: ")


async def import_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Import Data for")
    if code is None:
        return
    path = (await _prompt(ask, "Enter path to CSV/JSON file: ")).strip()
    if not path:
        logger.warning("Path not provided")
        console.print("[red]Path not provided[/]")
        return
    await library.load(path, code)


async def display_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Display Records for")
    if code is None:
        return
    await library.display_all(code)


async def add_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Add Record for")
    if code is None:
        return
    descriptor = DESCRIPTORS[code]
    console.print(f"\nAdding new {descriptor.name}")
    record = {field: await _prompt(ask, f"Enter {field}: ") for field in descriptor.editable}
    result = await library.add_record(code, record)
    if result:
        console.print(f"{descriptor.name} added successfully (ID {result.id})")
    else:
        console.print(f"Error adding the {descriptor.name}")


async def update_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Update Record for")
    if code is None:
        return
    descriptor = DESCRIPTORS[code]
    console.print(f"\nAvailable fields for {descriptor.name}: {', '.join(descriptor.editable)}")
    field = (await _prompt(ask, "Enter the field to update: ")).strip()
    if field not in descriptor.editable:
        logger.warning("Invalid field: {!r}", field)
        console.print("[red]Invalid field[/]")
        return
    new_value = await _prompt(ask, "Enter the new value: ")
    raw_id = (await _prompt(ask, f"Enter the id of the {descriptor.name}: ")).strip()
    try:
        record_id = int(raw_id)
    except ValueError:
        console.print("[red]Invalid id[/]")
        return
    result = await library.update_record(code, field, new_value, record_id)
    if result:
        console.print("Successfully updated!")
    else:
        console.print("No records found to update or error occurred.")


async def delete_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Delete Record for")
    if code is None:
        return
    descriptor = DESCRIPTORS[code]
    console.print(f"\nDeleting {descriptor.name} by field\nAvailable fields: {', '.join(descriptor.columns)}")
    field = (await _prompt(ask, "Enter the field: ")).strip()
    if field not in descriptor.columns:
        logger.warning("Invalid field: {!r}", field)
        console.print("[red]Invalid field![/]")
        return
    value = await _prompt(ask, "Enter the value of this field: ")
    result = await library.delete_record(code, field, value)
    if result:
        console.print(f"Successfully deleted {result.count} record(s)!")
    else:
        console.print("No records found to delete.")


async def search_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Search Records for")
    if code is None:
        return
    entity = ENTITY_CODES[code]
    fields = _numbered(SEARCH_FIELDS[entity])
    field_choice = await _choose(ask, f"Search {entity} by", fields, "Select field: ")
    if field_choice is None:
        return
    field = fields[field_choice]
    value = await _prompt(ask, f"Enter {field}: ")
    await library.search(code, field, value)


async def filter_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Filter by Entity")
    if code is None:
        return
    entity = ENTITY_CODES[code]
    fields = _numbered(FILTER_FIELDS[entity])
    field_choice = await _choose(ask, f"Filter {entity} by", fields, "Select field: ")
    if field_choice is None:
        return
    console.print("Choose direction:\n1. Ascending\n2. Descending")
    direction = DIRECTIONS.get((await _prompt(ask, "Select direction: ")).strip())
    if direction is None:
        logger.warning("Invalid direction choice")
        console.print("[red]Invalid direction choice[/]")
        return
    await library.filter(code, fields[field_choice], direction)


async def join_menu(library: Library, ask: Ask) -> None:
    code = await _choose(ask, "You want to know more information about", JOIN_CODES, "Select entity: ")
    if code is None:
        return
    await library.join(code)


async def export_menu(library: Library, ask: Ask) -> None:
    code = await _choose_entity(ask, "Export data for")
    if code is None:
        return
    format_choice = await _choose(ask, "File format", EXPORT_FORMATS, "Select format: ")
    if format_choice is None:
        return
    await library.export_data(code, EXPORT_FORMATS[format_choice])


MAIN_MENU: dict[str, tuple[str, Callable[[Library, Ask], Awaitable[None]]]] = {
    "1": ("Import data", import_menu),
    "2": ("Display All Records", display_menu),
    "3": ("Add Record", add_menu),
    "4": ("Update Record", update_menu),
    "5": ("Delete Record", delete_menu),
    "6": ("Search Records", search_menu),
    "7": ("Filter Records", filter_menu),
    "8": ("Get more information", join_menu),
    "9": ("Export data", export_menu),
}


async def run_menu(library: Library, ask: Ask) -> None:
    while True:
        console.print("\n[bold]Library Management System:[/]")
        for key, (label, _) in MAIN_MENU.items():
            console.print(f"{key}. {label}")
        console.print("0. Exit")
        try:
            choice = (await _prompt(ask, "Select an option: ")).strip()
            if choice == "0":
                break
            entry = MAIN_MENU.get(choice)
            if entry is None:
                logger.warning("Invalid choice: {!r}", choice)
                console.print("[red]Invalid choice[/]")
                continue
            await entry[1](library, ask)
        except EOFError:
            break
    logger.info("User chose to exit")
    console.print("Goodbye!")


async def _main_async(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_config(
        config_path=args.config,
        profile=args.profile,
        overrides=_build_overrides(args),
    )

    setup_logging(config.app.log_level, config.app.log_file, config.app.log_file_level)
    logger.info("Loaded configuration")

    if args.command == "config":
        _print_config(config)
        return 0

    db = init_db_service(config.storage.sqlite_path)
    try:
        try:
            library = await open_library(
                db,
                RichTableRenderer(console),
                export_dir=config.app.export_dir,
                import_dir=config.app.data_dir,
                console=console,
            )
        except LibraryInitError as exc:
            console.print(Panel(str(exc), title="Program terminated with error", style="red"))
            return 1

        console.print("Welcome to the Library Management System")
        logger.info("Program started")
        await run_menu(library, console.input)
        return 0
    finally:
        await shutdown_db_service()


def main() -> None:
    raise SystemExit(asyncio.run(_main_async()))


if __name__ == "__main__":
    main()
