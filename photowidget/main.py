"""Main entry point for the photowidget application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Any, Coroutine, Dict, Optional

import diskcache as dc
import httpx
import typer
from typing_extensions import Annotated

# --- Core Layer ---
from photowidget.core.command_handler import DEFAULT_TAG, CommandHandler
from photowidget.core.fetch_task import FetchAndCacheTask
from photowidget.core.services.image_work_service import ImageWorkService
from photowidget.domain.models.work import WorkState

# --- Infrastructure Layer ---
# Config
from photowidget.infrastructure.config.settings import (
    load_configuration, get_config, set_config, get_base_url, get_source_name,
    get_source_url, get_cache_dir, get_state_file, get_work_dir, get_max_attempts,
    get_backoff_policy, get_http_timeout,
)
# UI
from photowidget.infrastructure.cli.display import ConsoleDisplay
# Cache
from photowidget.infrastructure.cache.disk_image_cache import DiskImageCache
# HTTP + fetcher
from photowidget.infrastructure.http.picsum_client import PicsumClient
from photowidget.infrastructure.fetcher.cached_image_fetcher import CachedImageFetcher
# State
from photowidget.infrastructure.state.yaml_state_store import YamlWidgetStateStore
# Scheduling
from photowidget.infrastructure.scheduling.work_scheduler import AsyncWorkScheduler
# Monitoring
from photowidget.infrastructure.monitoring.logger_setup import setup_logging, resolve_log_level

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_dependencies(transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Args:
        transport: Optional httpx transport handed to the Picsum client.
    """
    # 1. Load Configuration First
    load_configuration()
    setup_logging(
        log_level=resolve_log_level(get_config('logging.level')),
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format'),
    )
    logger.debug("Initializing application dependencies...")

    dependencies: Dict[str, Any] = {}

    # 2. Instantiate Infrastructure Adapters
    dependencies['ui'] = ConsoleDisplay()
    dependencies['cache'] = DiskImageCache(
        get_cache_dir(),
        size_limit=int(get_config('cache.size_limit_bytes')),
        l1_max_items=int(get_config('cache.l1.max_items')),
        l1_ttl=int(get_config('cache.l1.ttl_seconds')),
    )
    dependencies['client'] = PicsumClient(
        base_url=get_base_url(),
        timeout=get_http_timeout(),
        transport=transport,
    )
    dependencies['fetcher'] = CachedImageFetcher(dependencies['client'], dependencies['cache'])
    dependencies['state_store'] = YamlWidgetStateStore(get_state_file())

    # 3. The fetch task and the scheduler that runs it
    dependencies['fetch_task'] = FetchAndCacheTask(
        fetcher=dependencies['fetcher'],
        state_store=dependencies['state_store'],
        max_attempts=get_max_attempts(),
        source_name=get_source_name(),
        source_url=get_source_url(),
    )
    work_dir = get_work_dir()
    work_store = dc.Index(str(work_dir)) if work_dir else None
    dependencies['scheduler'] = AsyncWorkScheduler(
        runner=dependencies['fetch_task'].run,
        backoff=get_backoff_policy(),
        store=work_store,
    )

    # 4. Core Services
    dependencies['work_service'] = ImageWorkService(dependencies['scheduler'])
    dependencies['command_handler'] = CommandHandler(
        work_service=dependencies['work_service'],
        scheduler=dependencies['scheduler'],
        cache=dependencies['cache'],
        state_store=dependencies['state_store'],
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


_dependencies: Optional[Dict[str, Any]] = None


def get_dependencies() -> Dict[str, Any]:
    """Returns the wired-up dependencies, creating them on first use."""
    global _dependencies
    if _dependencies is None:
        try:
            _dependencies = create_dependencies()
        except Exception as e:
            logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
            raise typer.Exit(code=1)
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="photowidget",
    help="Fetch random Picsum photos by size, cache them on disk and publish them to widget state.",
    add_completion=False,
)


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs an async command handler from a sync Typer command."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        get_dependencies()['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)


# --- CLI Commands ---

TagOption = Annotated[
    str,
    typer.Option("--tag", "-t", help="Widget id the work is tagged with (used by 'cancel').")
]


@app.command()
def fetch(
    width: Annotated[float, typer.Argument(help="Width in pixels (or dp with --density).")],
    height: Annotated[float, typer.Argument(help="Height in pixels (or dp with --density).")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Drop the cached image and fetch a new one.")] = False,
    tag: TagOption = DEFAULT_TAG,
    density: Annotated[Optional[float], typer.Option("--density", "-d", help="Treat the size as dp and scale by this density.")] = None,
    wait: Annotated[bool, typer.Option("--wait/--no-wait", help="Run the work now instead of only queueing it.")] = True,
):
    """Fetch an image for a widget size into the cache and publish it."""
    handler: CommandHandler = get_dependencies()['command_handler']
    state = run_async(handler.handle_fetch(width, height, tag=tag, force=force, density=density, wait=wait))
    if wait and state is not WorkState.SUCCEEDED:
        raise typer.Exit(code=1)


@app.command()
def run():
    """Process pending work left in the persisted queue."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_run())


@app.command()
def cancel(
    tag: Annotated[str, typer.Argument(help="Widget id whose work should be cancelled.")]
):
    """Cancel all unfinished work tagged with a widget id."""
    handler: CommandHandler = get_dependencies()['command_handler']
    handler.handle_cancel(tag)


@app.command()
def show():
    """Show the widget state (cached image per size)."""
    handler: CommandHandler = get_dependencies()['command_handler']
    handler.handle_show()


@app.command(name="clear-cache")
def clear_cache_command(
    level: Annotated[str, typer.Option(help="Level ('l1', 'l2', 'all').")] = 'all'
):
    """Clears the image cache."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_clear_cache(level))


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """photowidget command line."""
    if verbose:
        set_config('logging.level', 'DEBUG')


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
