from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import typer
from rich.console import Console

from titledraft.config import get_settings
from titledraft.deeds.manager import DeedCollectionManager
from titledraft.domain.models import TABLE_TYPES, Draft
from titledraft.exceptions import DraftingError
from titledraft.infrastructure import create_store
from titledraft.merge import MergeEngine, MergeInput, render_console, render_text
from titledraft.notifications import ConsoleNotifier
from titledraft.templates import TemplateCatalog, format_label, load_template_text, template_placeholders
from titledraft.utils.logging import configure_logging

app = typer.Typer(help="Title draft CLI.")

catalog_option = typer.Option(..., "--catalog", "-c", help="Template catalog JSON file.")


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _fail(exc: Exception) -> None:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"store={settings.store_backend} "
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"debounce={settings.debounce_ms}ms editing_release={settings.editing_release_ms}ms "
        f"insert_suppression={settings.insert_suppression_ms}ms "
        f"copy_suppression={settings.copy_suppression_ms}ms | state_dir={settings.local_state_dir}"
    )


@app.command()
def placeholders(template: Path = typer.Argument(..., help="Template file (.docx or text).")) -> None:
    """
    List the placeholders a template asks for.
    """
    _setup_logging()
    try:
        names = template_placeholders(load_template_text(template))
    except DraftingError as exc:
        _fail(exc)
    for name in names:
        typer.echo(f"{name}\t{format_label(name)}")


@app.command("dynamic-fields")
def dynamic_fields(
    deed_type: str = typer.Argument(..., help="Deed type as named in the catalog."),
    catalog: Path = catalog_option,
) -> None:
    """
    List the extra inputs a deed of the given type needs.
    """
    _setup_logging()
    try:
        names = TemplateCatalog.from_file(catalog).dynamic_placeholders(deed_type)
    except DraftingError as exc:
        _fail(exc)
    for name in names:
        typer.echo(f"{name}\t{format_label(name)}")


@app.command()
def preview(
    template: Path = typer.Argument(..., help="Template file (.docx or text)."),
    draft: Path = typer.Option(..., "--draft", "-d", help="Draft JSON with placeholders, documents and deeds."),
    catalog: Path = catalog_option,
    plain: bool = typer.Option(False, "--plain", help="Print plain text instead of rich tables."),
) -> None:
    """
    Merge a draft into a template and print the preview.
    """
    _setup_logging()
    try:
        draft_data = Draft.model_validate(json.loads(draft.read_text(encoding="utf-8")))
        engine = MergeEngine(TemplateCatalog.from_file(catalog))
        blocks = engine.render(MergeInput.from_draft(draft_data, load_template_text(template)))
    except (DraftingError, OSError, ValueError) as exc:
        _fail(exc)

    if plain:
        typer.echo(render_text(blocks))
    else:
        render_console(blocks, Console())


async def _copy_table(source: str, destination: str) -> int:
    store = await create_store()
    try:
        catalog = await TemplateCatalog.load(store)
        notifier = ConsoleNotifier()
        async with DeedCollectionManager(store, catalog, destination, notifier=notifier) as manager:
            copied = await manager.copy_from_table(source)
        return len(copied)
    finally:
        await store.close()


@app.command("copy-table")
def copy_table(
    source: str = typer.Argument(..., help=f"Source table type ({', '.join(TABLE_TYPES)})."),
    destination: str = typer.Argument(..., help="Destination table type."),
) -> None:
    """
    Copy deeds not yet present from one deed table to another.
    """
    _setup_logging()
    for table_type in (source, destination):
        if table_type not in TABLE_TYPES:
            _fail(ValueError(f"Unknown table type '{table_type}'. Available: {', '.join(TABLE_TYPES)}"))
    try:
        copied = asyncio.run(_copy_table(source, destination))
    except (DraftingError, OSError) as exc:
        _fail(exc)
    typer.echo(f"Copied {copied} deed(s) from '{source}' to '{destination}'.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
