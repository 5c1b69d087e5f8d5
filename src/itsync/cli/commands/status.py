"""Status command - sign in to both services and show what would be synced."""

import rich_click as click

from ...api.imdb_errors import ImdbApiError
from ..core import ConnectionError, with_imdb, with_trakt
from ..display import _render_status_table, console


@click.command()
@click.pass_context
@with_trakt
@with_imdb
def status(ctx, imdb, trakt):
    """Sign in to IMDb and Trakt and show the discovered accounts."""
    try:
        identity = imdb.hydrate()
    except ImdbApiError as e:
        raise ConnectionError("IMDb", str(e)) from e

    console.print()
    console.print(
        _render_status_table(
            imdb_identity=identity,
            imdb_auth=imdb.auth,
            list_ids=imdb.list_ids,
            trakt_username=trakt.username,
        )
    )


# Export for lazy loading
cli = status
