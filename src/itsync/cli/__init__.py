"""itsync CLI - keep Trakt in step with IMDb."""

# Configure rich-click BEFORE importing click
import rich_click as click

# Enable rich-click formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

from .. import __version__  # noqa: E402
from ..config import setup_logging  # noqa: E402
from .core import ConfigurationError, ItsyncContext, ItsyncGroup, get_hook_manager  # noqa: E402
from .display.console import console  # noqa: E402

# Commands that must run without a valid configuration
CONFIGLESS_COMMANDS = ("config", "cfg")


class _ConfigPathOnly:
    def __init__(self, config_path):
        self.config_path = config_path


@click.group(
    cls=ItsyncGroup,
    commands_package="itsync.cli.commands",
    context_settings=dict(
        auto_envvar_prefix="ITSYNC",
        help_option_names=["-h", "--help"],
    ),
)
@click.version_option(version=__version__, help="Show the version and exit.")
@click.option(
    "-c",
    "--config",
    default=None,
    envvar="ITSYNC_CONFIG",
    help="Path to config file (or set ITSYNC_CONFIG)",
)
@click.pass_context
def cli(ctx, config):
    """Sync IMDb lists, watchlist and ratings to Trakt."""

    config_path = config or "config.yaml"

    if ctx.invoked_subcommand in CONFIGLESS_COMMANDS:
        ctx.obj = _ConfigPathOnly(config_path)
        return

    try:
        itsync_ctx = ItsyncContext.create(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        console.print("\n[cyan]Tip:[/cyan] Run 'itsync config' to set up your configuration interactively.")
        ctx.exit(1)

    ctx.obj = itsync_ctx
    setup_logging(itsync_ctx.config)

    hook_manager = get_hook_manager()
    hook_manager.clear()
    hook_manager.load_from_config(itsync_ctx.config)


if __name__ == "__main__":
    cli()
