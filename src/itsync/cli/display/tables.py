"""Table builders for CLI output.

- Functions named _render_*_table()
- Header style: "bold cyan"
- Primary column (first) styled as "bold"
"""

from rich.table import Table

from ...models import ListResult, SyncMode, SyncSummary


def _list_action(result: ListResult) -> str:
    if result.deleted:
        return "[red]DELETED[/red]"
    if result.created:
        return "[green]CREATED[/green]"
    if result.added or result.removed:
        return "[cyan]UPDATED[/cyan]"
    return "[dim]UNCHANGED[/dim]"


def _render_sync_results_table(summary: SyncSummary, title: str = "Trakt Lists"):
    """
    Create table for per-list sync results.

    Args:
        summary: SyncSummary of the run
        title: Table title

    Returns:
        Rich Table object
    """
    if summary.mode is SyncMode.DRY_RUN:
        title = f"{title} (dry run, nothing written)"

    table = Table(title=title, header_style="bold cyan")
    table.add_column("List", style="bold")
    table.add_column("Slug")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Removed", justify="right", style="red")
    table.add_column("Action")

    for result in sorted(summary.lists, key=lambda r: (not r.is_watchlist, r.name.lower())):
        table.add_row(
            result.name,
            "watchlist" if result.is_watchlist else (result.slug or ""),
            str(result.added),
            str(result.removed),
            _list_action(result),
        )

    return table


def _render_status_table(imdb_identity, imdb_auth: str, list_ids, trakt_username: str):
    """
    Create table describing both signed-in accounts.

    Args:
        imdb_identity: ImdbSession or None when IMDb auth is disabled
        imdb_auth: Configured IMDb auth method
        list_ids: IMDb list ids selected for syncing
        trakt_username: Trakt username

    Returns:
        Rich Table object
    """
    table = Table(title="Accounts", header_style="bold cyan")
    table.add_column("Service", style="bold")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("IMDb", "Auth", imdb_auth)
    if imdb_identity is not None:
        table.add_row("", "User id", imdb_identity.user_id)
        table.add_row("", "Username", imdb_identity.username)
        table.add_row("", "Watchlist id", imdb_identity.watchlist_id)
    table.add_row("", "Lists", f"{len(list_ids)} ({', '.join(list_ids)})" if list_ids else "0")
    table.add_row("Trakt", "Username", trakt_username)

    return table
