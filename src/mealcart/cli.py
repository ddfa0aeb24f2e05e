"""Command-line interface for Mealcart."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Optional

import typer

from mealcart.config import get_settings
from mealcart.logging_utils import configure_logging
from mealcart.shopping.aggregate import format_shopping_list_as_text
from mealcart.shopping.backfill import (
    backfill_base_ingredients,
    backfill_embeddings,
    build_normaliser,
)
from mealcart.shopping.embeddings import EmbeddingError, build_embedding_client
from mealcart.shopping.reconciler import build_reconciler
from mealcart.weeks import monday_of, normalize_week_start

app = typer.Typer(help="Mealcart shopping list automation commands.")

WEEK_OPTION_HELP = "Week start (YYYY-MM-DD). Defaults to this week's Monday."


def _week(value: Optional[datetime]) -> date:
    return normalize_week_start(value) if value is not None else monday_of(date.today())


@app.callback()
def _setup() -> None:
    settings = get_settings()
    secrets = [
        settings.api_token or "",
        settings.embedding_api_key or "",
        settings.llm_api_key or "",
    ]
    configure_logging(settings.log_level, settings.log_format, secrets)


@app.command()
def sync(
    week: Optional[datetime] = typer.Option(
        None, "--week", formats=["%Y-%m-%d"], help=WEEK_OPTION_HELP
    ),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print output JSON."),
) -> None:
    """
    Rebuild the meal ingredients of a week's shopping list from its meal plan.
    """

    result = build_reconciler().sync_meal_ingredients(_week(week))
    payload = result.model_dump(mode="json")
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))


@app.command()
def export(
    week: Optional[datetime] = typer.Option(
        None, "--week", formats=["%Y-%m-%d"], help=WEEK_OPTION_HELP
    ),
) -> None:
    """Print the week's unchecked items as a shareable bullet list."""

    shopping_list = build_reconciler().ensure_exists(_week(week))
    typer.echo(format_shopping_list_as_text(shopping_list.items))


@app.command("backfill-base-ingredients")
def backfill_base_ingredients_command(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview only, no database writes."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Override batch size."),
) -> None:
    """Normalise master list names that have no base ingredient yet."""

    settings = get_settings()
    normaliser = build_normaliser(settings)
    if normaliser is None:
        typer.secho("MEALCART_LLM_BASE_URL is not configured.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        report = backfill_base_ingredients(
            normaliser,
            batch_size=batch_size or settings.backfill_batch_size,
            dry_run=dry_run,
        )
    except ValueError as exc:
        typer.secho(f"Backfill failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    suffix = " [dry run]" if report.dry_run else ""
    typer.echo(f"Processed {report.processed} item(s) in {report.batches} batch(es){suffix}.")


@app.command("backfill-embeddings")
def backfill_embeddings_command(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview only, no database writes."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Override batch size."),
) -> None:
    """Embed base ingredients of master list items that have no vector yet."""

    settings = get_settings()
    embedder = build_embedding_client(settings)
    if embedder is None:
        typer.secho(
            "MEALCART_EMBEDDING_BASE_URL is not configured.", fg=typer.colors.RED, err=True
        )
        raise typer.Exit(code=1)

    try:
        report = backfill_embeddings(
            embedder,
            batch_size=batch_size or settings.backfill_batch_size,
            dry_run=dry_run,
        )
    except EmbeddingError as exc:
        typer.secho(f"Backfill failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    suffix = " [dry run]" if report.dry_run else ""
    typer.echo(f"Processed {report.processed} item(s) in {report.batches} batch(es){suffix}.")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    """Run the HTTP API."""

    from mealcart.server.run import serve as run_server

    run_server(host=host, port=port, reload=reload)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``mealcart`` console script."""
    app(prog_name="mealcart", args=argv)


if __name__ == "__main__":
    main()
