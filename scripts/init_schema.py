"""
Schema setup and catalog seeding for the PostgreSQL record store.

Creates the deeds and catalog tables plus the change-notification trigger,
then optionally upserts a template catalog JSON file.
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

import typer
from psycopg.types.json import Jsonb

from titledraft.infrastructure.db_factory import get_sync_connection
from titledraft.infrastructure.pg_store import SCHEMA_SQL
from titledraft.templates.catalog import TemplateCatalog

app = typer.Typer(help="Create the titledraft schema and seed template catalogs.")


def _seed_catalog(dsn: str | None, catalog: TemplateCatalog) -> int:
    data = catalog.to_mapping()
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            for entry in data["deed_templates"]:
                cur.execute(
                    """
                    INSERT INTO deed_templates (deed_type, preview_template, custom_placeholders)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (deed_type) DO UPDATE
                    SET preview_template = EXCLUDED.preview_template,
                        custom_placeholders = EXCLUDED.custom_placeholders
                    """,
                    (entry["deed_type"], entry["preview_template"], Jsonb(entry["custom_placeholders"])),
                )
            for entry in data["history_templates"]:
                cur.execute(
                    """
                    INSERT INTO history_of_title_templates (deed_type, template_content)
                    VALUES (%s, %s)
                    ON CONFLICT (deed_type) DO UPDATE
                    SET template_content = EXCLUDED.template_content
                    """,
                    (entry["deed_type"], entry["template_content"]),
                )
        conn.commit()
    return len(data["deed_templates"]) + len(data["history_templates"])


@app.command()
def main(
    seed: Path | None = typer.Option(
        None,
        "--seed",
        "-s",
        help="Template catalog JSON to upsert after creating the schema.",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
) -> None:
    """
    Create tables and trigger, then optionally seed the template catalogs.
    """
    start = time.perf_counter()
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
    typer.echo(f"Schema ready in {time.perf_counter() - start:.2f}s")

    if seed:
        count = _seed_catalog(dsn, TemplateCatalog.from_file(seed))
        typer.echo(f"Seeded {count} catalog entries from {seed}")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
