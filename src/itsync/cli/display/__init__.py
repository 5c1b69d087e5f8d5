"""Display layer for CLI output."""

from .console import console
from .formatters import format_sync_results
from .tables import _render_status_table, _render_sync_results_table

__all__ = [
    "console",
    "format_sync_results",
    "_render_status_table",
    "_render_sync_results_table",
]
