"""Output formatters for CLI."""

from ...models import SyncMode, SyncSummary
from .console import console
from .tables import _render_sync_results_table


def format_sync_results(summary: SyncSummary):
    """
    Display sync results as a table followed by totals.

    Args:
        summary: SyncSummary of the run
    """
    if summary.lists:
        console.print(_render_sync_results_table(summary))

    verb = "to add" if summary.mode is SyncMode.DRY_RUN else "added"
    removed = "to remove" if summary.mode is SyncMode.DRY_RUN else "removed"

    console.print(f"\n[bold]Summary ({summary.mode.value}):[/bold]")
    console.print(f"  List items {verb}: [green]{summary.items_added}[/green]")
    console.print(f"  List items {removed}: [red]{summary.items_removed}[/red]")
    console.print(f"  Ratings {verb}: [green]{summary.ratings_added}[/green]")
    console.print(f"  Ratings {removed}: [red]{summary.ratings_removed}[/red]")
    console.print(f"  History entries {verb}: [green]{summary.history_added}[/green]")
    console.print(f"  History entries {removed}: [red]{summary.history_removed}[/red]")
