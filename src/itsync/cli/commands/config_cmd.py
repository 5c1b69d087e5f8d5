"""Config command - interactive configuration editor."""

import sys

import rich_click as click

from ...config_wizard import ConfigWizard
from ..display import console


@click.command("config")
@click.pass_context
def config_command(ctx):
    """Interactive configuration editor.

    Walks through the IMDb, Trakt and sync settings and writes config.yaml,
    keeping a .backup copy of the previous file.
    """
    config_path = getattr(ctx.obj, "config_path", None) or "config.yaml"

    try:
        ConfigWizard(config_path).run()
    except (KeyboardInterrupt, click.exceptions.Abort):
        console.print("\n\n[yellow]Configuration cancelled.[/yellow]")
        sys.exit(0)


# Export for lazy loading
cli = config_command
