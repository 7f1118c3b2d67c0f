"""Anagrammer CLI: acquisition, mode and cache management, config, and server."""

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from anagrammer.application.config import resolve_config
from anagrammer.application.factory import build_orchestrator
from anagrammer.domain.errors import SourceUnavailable
from anagrammer.domain.models import AcquisitionMode

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="anagrammer: anagram puzzles from cache, word source and curated pool.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

EXIT_OFFLINE = 3

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

cache_app = typer.Typer(help="Inspect and manage the anagram cache.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")

mode_app = typer.Typer(help="Show or change the default acquisition mode.", no_args_is_help=True)
app.add_typer(mode_app, name="mode")

config_app = typer.Typer(help="Manage anagrammer configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for anagrammer."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose
    if verbose > 1:
        logging.getLogger("anagrammer").setLevel(logging.DEBUG)


def _orchestrator(ctx: typer.Context):
    config = resolve_config({"verbose": (ctx.obj or {}).get("verbose_bonus")})
    return build_orchestrator(config)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def acquire(
    ctx: typer.Context,
    level: Annotated[int, typer.Option("--level", "-l", min=1, max=5, help="Difficulty 1-5.")] = 1,
    mode: Annotated[
        AcquisitionMode | None, typer.Option(help="curated, hybrid or unlimited-only.")
    ] = None,
    category: Annotated[str | None, typer.Option(help="Preferred curated category.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the record as JSON.")] = False,
):
    """[bold green]Acquire[/bold green] one anagram."""
    orchestrator = _orchestrator(ctx)

    async def _acquire():
        try:
            return await orchestrator.acquire(level, mode=mode, category=category)
        finally:
            await orchestrator.close()

    try:
        record = asyncio.run(_acquire())
    except SourceUnavailable as e:
        logger.debug(f"Acquire failed: {e}")
        typer.secho(
            "Offline: the word source is unavailable and unlimited-only mode has no fallback.",
            fg="yellow",
            err=True,
        )
        raise typer.Exit(EXIT_OFFLINE) from None

    if as_json:
        d = dataclasses.asdict(record)
        d["origin"] = record.origin.value
        typer.echo(json.dumps(d, indent=2))
        return

    typer.echo(f"{record.scrambled}  ({record.category}: {record.hint})")
    typer.echo(f"Difficulty {record.difficulty_level}, from {record.origin.value}")


@app.command()
def categories(
    ctx: typer.Context,
    level: Annotated[int, typer.Option("--level", "-l", min=1, max=5, help="Difficulty 1-5.")] = 1,
):
    """List the curated categories accepted by `acquire --category`."""
    for name in _orchestrator(ctx).get_available_categories(level):
        typer.echo(name)


@app.command()
def check(
    ctx: typer.Context,
    record_id: Annotated[str, typer.Argument(help="Id printed by `acquire --json`.")],
    answer: Annotated[str, typer.Argument(help="Proposed solution.")],
):
    """Check an answer against a curated or cached anagram."""
    if _orchestrator(ctx).validate_solution(record_id, answer):
        typer.secho("Correct!", fg="green")
        return
    typer.secho("Incorrect.", fg="red")
    raise typer.Exit(1)


@app.command()
def server(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8777,
    reload: Annotated[bool, typer.Option(help="Auto-reload on code changes.")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("anagrammer.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Mode subgroup
# ---------------------------------------------------------------------------


@mode_app.command("show")
def mode_show(ctx: typer.Context):
    """Print the current default mode."""
    typer.echo(_orchestrator(ctx).get_mode().value)


@mode_app.command("set")
def mode_set(
    ctx: typer.Context,
    mode: Annotated[AcquisitionMode, typer.Argument(help="curated, hybrid or unlimited-only.")],
):
    """Persist a new default mode."""
    new_mode = _orchestrator(ctx).set_mode(mode)
    typer.secho(f"Mode set to {new_mode.value}", fg="green")


# ---------------------------------------------------------------------------
# Cache subgroup
# ---------------------------------------------------------------------------


@cache_app.command("stats")
def cache_stats(ctx: typer.Context):
    """Show cache size, hit rate and evictions as JSON."""
    stats = _orchestrator(ctx).cache.get_stats()
    typer.echo(json.dumps(dataclasses.asdict(stats), indent=2))


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    level: Annotated[
        int | None, typer.Option("--level", "-l", min=1, max=5, help="Only this difficulty.")
    ] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Remove cached anagrams."""
    cache = _orchestrator(ctx).cache

    if level is not None:
        removed = cache.clear_difficulty(level)
        typer.secho(f"Removed {removed} cached anagrams at difficulty {level}.", fg="green")
        return

    if not force and not typer.confirm(f"Clear all {len(cache)} cached anagrams and counters?"):
        raise typer.Abort()
    cache.clear()
    typer.secho("Cache cleared.", fg="green")


@cache_app.command("preload")
def cache_preload(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="YAML list of records.")],
):
    """Bulk-load records from a YAML file."""
    from anagrammer.application.preload import load_records

    try:
        records = load_records(path)
    except ValueError as e:
        typer.secho(f"Invalid preload file: {e}", fg="red", err=True)
        raise typer.Exit(1) from None

    cache = _orchestrator(ctx).cache
    count = cache.preload(records)
    typer.secho(f"Preloaded {count} anagrams ({len(cache)} now cached).", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))
