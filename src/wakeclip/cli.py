"""Typer CLI definition for wakeclip."""

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import NoReturn

import typer

from .api import create_cache, create_pipeline
from .cache.manager import AudioCacheManager
from .config import CONFIG_PATH, generate_config, load_config
from .errors import ConfigError, PipelineError, ProviderError, StorageError
from .tts.models import AlarmTone, GenerationRequest, GenerationResult
from .tts.pipeline import AudioPipeline

app = typer.Typer(help="Generate and cache spoken wake-up clips")

_state = {"debug": False}


def parse_context(items: list[str]) -> dict[str, str]:
    """Parse repeated KEY=VALUE options into a context dictionary.

    Raises:
        ValueError: If an item has no "="
    """
    context = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Context entries must look like KEY=VALUE, got '{item}'")
        context[name.strip()] = value.strip()
    return context


def _fail(message: str, error: Exception) -> NoReturn:
    if _state["debug"]:
        typer.echo(f"Debug - {message}: {error!r}", err=True)
    else:
        typer.echo(f"Error: {message}: {error}", err=True)
    raise typer.Exit(1)


def _pipeline(config_path: Path | None) -> AudioPipeline:
    try:
        return create_pipeline(load_config(config_path))
    except (ConfigError, ProviderError, StorageError, KeyError) as e:
        _fail("Failed to initialize pipeline", e)


def _cache(config_path: Path | None) -> AudioCacheManager:
    try:
        return create_cache(load_config(config_path))
    except (ConfigError, StorageError) as e:
        _fail("Failed to open cache", e)


@app.callback()
def main(
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose error messages and cache activity"
    ),
) -> None:
    """Generate and cache spoken wake-up clips."""
    _state["debug"] = debug
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


@app.command()
def generate(
    goal: str = typer.Argument(..., help="What the user wants to achieve"),
    tone: str = typer.Option("gentle", "-t", "--tone", help="gentle, energetic, tough_love or storyteller"),
    request_id: str = typer.Option("cli", "--id", help="Request identifier used in the cache key"),
    context: list[str] = typer.Option([], "-c", "--context", help="Extra context as KEY=VALUE"),
    in_hours: float = typer.Option(8.0, "--in-hours", help="Hours until the clip is needed"),
    config_path: Path | None = typer.Option(None, "--config", help="Config file to use"),
) -> None:
    """Return a cached clip for GOAL or generate one."""
    try:
        request = GenerationRequest(
            request_id=request_id,
            user_goal=goal,
            tone=AlarmTone.parse(tone),
            scheduled_for=datetime.now() + timedelta(hours=in_hours),
            context=parse_context(context),
        )
    except ValueError as e:
        _fail("Invalid request", e)

    pipeline = _pipeline(config_path)

    async def run() -> GenerationResult:
        try:
            return await pipeline.get_or_generate(request)
        finally:
            await pipeline.close()

    try:
        result = asyncio.run(run())
    except PipelineError as e:
        _fail(f"Generation failed ({e.recovery_suggestion})", e)
    except StorageError as e:
        _fail("Cache error", e)

    source = "cache" if result.from_cache else "generated"
    typer.echo(f"{result.audio_path} ({source}, voice {result.voice_id})")
    if result.text_content:
        typer.echo(result.text_content)


@app.command()
def stats(
    config_path: Path | None = typer.Option(None, "--config", help="Config file to use"),
) -> None:
    """Show cache statistics."""
    cache = _cache(config_path)
    cache_stats = asyncio.run(cache.statistics())

    typer.echo("=== Cache Statistics ===")
    typer.echo(f"Items: {cache_stats.total_items}")
    typer.echo(f"Size: {cache_stats.formatted_total_size}")
    typer.echo(f"Average item: {cache_stats.average_file_size_kb:.1f} KB")
    typer.echo(f"Expired (not yet purged): {cache_stats.expired_items_count}")
    if cache_stats.oldest_item_date:
        typer.echo(f"Oldest: {cache_stats.oldest_item_date:%Y-%m-%d %H:%M}")
        typer.echo(f"Newest: {cache_stats.newest_item_date:%Y-%m-%d %H:%M}")
    typer.echo(f"Free disk: {cache_stats.available_storage_gb:.1f} GB")
    typer.echo(f"Health: {cache_stats.health.value}")


@app.command()
def maintain(
    config_path: Path | None = typer.Option(None, "--config", help="Config file to use"),
) -> None:
    """Evict expired and excess clips and sweep orphaned files."""
    cache = _cache(config_path)
    try:
        asyncio.run(cache.maintain())
    except StorageError as e:
        _fail("Maintenance failed", e)
    cache_stats = asyncio.run(cache.statistics())
    typer.echo(f"Maintenance complete: {cache_stats.total_items} clips, {cache_stats.formatted_total_size}")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config_path: Path | None = typer.Option(None, "--config", help="Config file to use"),
) -> None:
    """Delete every cached clip."""
    if not yes:
        typer.confirm("Delete all cached clips?", abort=True)
    cache = _cache(config_path)
    try:
        asyncio.run(cache.clear())
    except StorageError as e:
        _fail("Failed to clear cache", e)
    typer.echo("Cache cleared")


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
) -> None:
    """Write the default config file."""
    if CONFIG_PATH.exists() and not force:
        typer.echo(f"Config already exists at {CONFIG_PATH} (use --force to overwrite)")
        raise typer.Exit(1)
    path = generate_config()
    typer.echo(f"Wrote {path}")
