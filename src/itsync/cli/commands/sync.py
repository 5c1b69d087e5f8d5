"""Sync command - bring Trakt in step with IMDb."""

import logging

import rich_click as click

from ...api.imdb_errors import ImdbApiError, ImdbAuthError
from ...api.trakt import TraktApiError, TraktAuthError
from ...models import SyncMode
from ..core import ConnectionError, SyncError, trigger_hook
from ..display import console, format_sync_results
from ..logic import SyncManager, run_with_timeout
from ..services import ImdbService, TraktService
from .common import print_connection_success, print_connection_test, print_mode_banner

logger = logging.getLogger(__name__)


def _run_sync(config, mode: SyncMode):
    print_connection_test("IMDb")
    with ImdbService.from_config(config) as imdb:
        print_connection_success("IMDb", config.get("imdb.auth"))
        print_connection_test("Trakt")
        with TraktService.from_config(config) as trakt:
            print_connection_success("Trakt", trakt.username)
            console.print("[cyan]Reading IMDb and Trakt…[/cyan]")
            manager = SyncManager(
                imdb=imdb,
                trakt=trakt,
                mode=mode,
                sync_watchlist=bool(config.get("sync.watchlist", True)),
                sync_ratings=bool(config.get("sync.ratings", True)),
                sync_history=bool(config.get("sync.history", False)),
            )
            return manager.sync()


@click.command()
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in SyncMode]),
    default=None,
    help="Override sync.mode: full, add-only or dry-run",
)
@click.pass_context
def sync(ctx, mode):
    """Sync IMDb lists, watchlist and ratings to Trakt.

    Reads everything from both services first and only writes to Trakt once
    every read succeeded. The whole run is bounded by sync.timeout.
    """
    config = ctx.obj.config
    sync_mode = SyncMode(mode or config.get("sync.mode"))
    timeout = float(config.get("sync.timeout", 600))

    print_mode_banner(sync_mode)
    trigger_hook("sync_start", mode=sync_mode.value)

    try:
        summary = run_with_timeout(lambda: _run_sync(config, sync_mode), timeout)
    except (ImdbAuthError, TraktAuthError) as e:
        trigger_hook("sync_error", mode=sync_mode.value, error=str(e))
        service = "IMDb" if isinstance(e, ImdbAuthError) else "Trakt"
        raise ConnectionError(service, str(e), "Check your credentials in config.yaml") from e
    except (ImdbApiError, TraktApiError) as e:
        trigger_hook("sync_error", mode=sync_mode.value, error=str(e))
        raise SyncError(str(e)) from e
    except SyncError as e:
        trigger_hook("sync_error", mode=sync_mode.value, error=str(e))
        raise

    format_sync_results(summary)

    trigger_hook(
        "sync_complete",
        mode=sync_mode.value,
        lists=len(summary.lists),
        items_added=summary.items_added,
        items_removed=summary.items_removed,
        ratings_added=summary.ratings_added,
        ratings_removed=summary.ratings_removed,
        history_added=summary.history_added,
        history_removed=summary.history_removed,
    )


# Export for lazy loading
cli = sync
