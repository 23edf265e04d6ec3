"""Command-line interface for the adaptive feed engine."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adaptive_feed.ads import AdLayoutPolicy, AdSlotLifecycleManager, with_ad_layout
from adaptive_feed.cache import CacheService, JsonFileStorage
from adaptive_feed.config import (
    AdSlotConfig,
    EndlessScrollConfig,
    EngineConfig,
    EngineSettings,
    load_engine_config,
)
from adaptive_feed.constants import ContentSource
from adaptive_feed.errors import AdaptiveFeedError
from adaptive_feed.feed import FeedAssemblyEngine
from adaptive_feed.models import ContentItem
from adaptive_feed.session import FeedSession

# Load environment variables from .env file
load_dotenv()

console = Console()

app = typer.Typer(
    name="adaptive-feed",
    help="Feed assembly and ad-slot lifecycle tooling",
    add_completion=False,
)
cache_app = typer.Typer(help="Inspect and clear the on-disk cache")
app.add_typer(cache_app, name="cache")


def _setup_logging(log_dir: Path, verbose: bool) -> None:
    """Send engine logs to a file, keep the console for rich output."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / "adaptive_feed.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s | %(name)s | %(levelname)s | %(message)s"))

    for name in ("feed", "ads", "cache", "sources"):
        engine_logger = logging.getLogger(name)
        engine_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        engine_logger.propagate = False
        engine_logger.handlers = [handler]

    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _load(config_path: Optional[Path]) -> tuple[EngineSettings, EngineConfig]:
    settings = EngineSettings()
    try:
        config = load_engine_config(config_path, settings)
    except AdaptiveFeedError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1)
    return settings, config


def _open_cache(config: EngineConfig) -> CacheService:
    storage = JsonFileStorage(config.cache.directory)
    return CacheService(storage, config.cache, brand=config.brand)


# =============================================================================
# cache
# =============================================================================


@cache_app.command("stats")
def cache_stats(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Engine YAML config"),
) -> None:
    """Show how much is cached."""
    settings, config = _load(config_path)
    _setup_logging(settings.log_dir, verbose=False)
    cache = _open_cache(config)
    stats = cache.stats()

    table = Table(title="Cache", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Directory", str(config.cache.directory))
    table.add_row("Entries", str(stats.total_keys))
    table.add_row("Size", CacheService.format_size(stats.total_size))
    table.add_row("Oldest", stats.oldest_entry.isoformat(timespec="seconds") if stats.oldest_entry else "-")
    table.add_row("Newest", stats.newest_entry.isoformat(timespec="seconds") if stats.newest_entry else "-")
    console.print(table)


@cache_app.command("clear")
def cache_clear(
    brand: Optional[str] = typer.Option(None, "--brand", "-b", help="Only clear this brand"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Engine YAML config"),
) -> None:
    """Delete cached entries (all brands unless --brand is given)."""
    settings, config = _load(config_path)
    _setup_logging(settings.log_dir, verbose=False)
    cache = _open_cache(config)

    removed = cache.clear_brand(brand) if brand else cache.clear_all()
    scope = f"brand {brand.upper()}" if brand else "all brands"
    console.print(f"[green]Removed {removed} cache entries[/green] ({scope})")


# =============================================================================
# simulate
# =============================================================================


class _SyntheticRecommender:
    """Finite recommendation pool that honors exclusions."""

    def __init__(self, pool_size: int, brand_prefix: str):
        self.pool = [f"rec-{i}" for i in range(pool_size)]
        self.brand_prefix = brand_prefix
        self.calls = 0

    async def __call__(
        self, count: int, exclude_ids: list[str], user_id: Optional[str], is_authenticated: bool
    ) -> list[ContentItem]:
        self.calls += 1
        excluded = set(exclude_ids)
        available = [i for i in self.pool if f"{self.brand_prefix}-{i}" not in excluded]
        return [
            ContentItem(id=item_id, source=ContentSource.RECOMMENDED, title=item_id)
            for item_id in available[:count]
        ]


class _SyntheticAdProvider:
    """Ad provider that fails for selected positions."""

    def __init__(self, fail_positions: set[int]):
        self.fail_positions = fail_positions
        self.released: list[Any] = []

    async def load(self, position: int) -> str:
        await asyncio.sleep(0)
        if position in self.fail_positions:
            raise RuntimeError("no fill")
        return f"ad-instance-{position}"

    def release(self, handle: Any) -> None:
        self.released.append(handle)


async def _run_simulation(
    config: EngineConfig,
    primary_items: int,
    pool_size: int,
    scroll_to: int,
    fail_positions: set[int],
) -> tuple[Table, dict[str, Any]]:
    async def fetch_primary(user_id: Optional[str], is_authenticated: bool) -> list[ContentItem]:
        return [
            ContentItem(id=f"story-{i}", source=ContentSource.PRIMARY, title=f"Story {i}")
            for i in range(primary_items)
        ]

    recommender = _SyntheticRecommender(pool_size, config.brand_prefix)
    provider = _SyntheticAdProvider(fail_positions)
    failures: list[int] = []

    engine = FeedAssemblyEngine(
        with_ad_layout(fetch_primary, AdLayoutPolicy(config.ads)),
        recommender,
        config,
    )
    manager = AdSlotLifecycleManager(provider, on_load_error=lambda e: failures.append(e.position))
    manager.initialize(config.ads)
    session = FeedSession(engine, manager)

    await session.mount()
    await session.wait_idle()

    table = Table(title="Scroll simulation", box=box.SIMPLE_HEAVY)
    table.add_column("Pos", justify="right", style="cyan")
    table.add_column("Items", justify="right")
    table.add_column("Extended", justify="center")
    table.add_column("Ads loaded")
    table.add_column("Progress")

    for step in range(scroll_to + 1):
        position = min(step, len(session.state.items) - 1)
        task = session.report_position(position)
        await session.wait_idle()
        progress = session.progress(position)
        table.add_row(
            str(position),
            str(len(session.state.items)),
            "[green]yes[/green]" if task else "",
            ", ".join(str(p) for p in manager.loaded_positions()) or "-",
            f"{progress[0]}/{progress[1]}" if progress else "",
        )

    stats = manager.stats()
    summary = {
        "items": len(session.state.items),
        "primary_count": session.state.primary_count,
        "has_more": session.state.has_more_items,
        "recommendation_calls": recommender.calls,
        "ads_loaded_total": stats.total_loaded_session,
        "ads_failed": sorted(failures),
        "ads_released": len(provider.released),
    }
    return table, summary


@app.command()
def simulate(
    primary_items: int = typer.Option(20, "--primary", help="Primary catalog size"),
    pool_size: int = typer.Option(40, "--pool", help="Recommendation pool size"),
    scroll_to: int = typer.Option(30, "--scroll-to", help="Last position to scroll to"),
    items_per_load: Optional[int] = typer.Option(None, "--items-per-load"),
    trigger_threshold: Optional[int] = typer.Option(None, "--threshold"),
    preload: Optional[int] = typer.Option(None, "--preload"),
    unload: Optional[int] = typer.Option(None, "--unload"),
    fail_ads: Optional[list[int]] = typer.Option(None, "--fail-ad", help="Ad position that fails to load"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Engine YAML config"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Scroll through a synthetic feed and show extensions and ad windows."""
    settings, config = _load(config_path)
    _setup_logging(settings.log_dir, verbose)

    try:
        overrides = {"items_per_load": items_per_load, "trigger_threshold": trigger_threshold}
        config.recommendations.endless_scroll = EndlessScrollConfig(
            **{
                **config.recommendations.endless_scroll.model_dump(),
                **{k: v for k, v in overrides.items() if v is not None},
            }
        )
    except ValueError as e:
        console.print(f"[red]Invalid scroll settings:[/red] {e}")
        raise typer.Exit(code=1)
    try:
        overrides = {"preload_distance": preload, "unload_distance": unload}
        config.ads = AdSlotConfig(
            **{**config.ads.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
    except ValueError as e:
        console.print(f"[red]Invalid ad window:[/red] {e}")
        raise typer.Exit(code=1)

    if primary_items <= 0:
        console.print("[red]--primary must be positive[/red]")
        raise typer.Exit(code=1)

    table, summary = asyncio.run(
        _run_simulation(config, primary_items, pool_size, scroll_to, set(fail_ads or []))
    )

    console.print(table)
    console.print(
        Panel(
            "\n".join(f"[bold]{key}[/bold]: {value}" for key, value in summary.items()),
            title="Summary",
            border_style="green",
        )
    )


if __name__ == "__main__":
    app()
