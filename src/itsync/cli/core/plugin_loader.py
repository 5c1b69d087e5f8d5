"""Root command group: lazy command loading, aliases and error reporting."""

import importlib
import pkgutil
from typing import Optional

import rich_click as click
from rich_click import RichGroup

from .exceptions import ConnectionError, ITSyncError

DEFAULT_ALIASES = {
    "run": "sync",
    "st": "status",
    "cfg": "config",
}


class ItsyncGroup(RichGroup):
    """
    Group that imports commands from a package on demand and resolves aliases.

    A command lives in ``<commands_package>.<name>`` or ``<name>_cmd`` and is
    exported as ``cli``. ITSyncError raised by a command is printed and turned
    into exit status 1.
    """

    def __init__(self, *args, commands_package: str = None, aliases: Optional[dict] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.commands_package = commands_package or "itsync.cli.commands"
        self.aliases = DEFAULT_ALIASES if aliases is None else aliases

    def list_commands(self, ctx):
        """
        List command modules in the commands package plus registered commands.

        Returns:
            Sorted list of command names
        """
        names = set(self.commands)
        package = importlib.import_module(self.commands_package)
        for module in pkgutil.iter_modules(package.__path__):
            if module.name == "common" or module.name.startswith("_"):
                continue
            names.add(module.name[:-4] if module.name.endswith("_cmd") else module.name)
        return sorted(names)

    def get_command(self, ctx, cmd_name):
        """
        Resolve an alias, then return a registered or lazily imported command.

        Args:
            ctx: Click context
            cmd_name: Command name or alias

        Returns:
            Click command or None
        """
        name = self.aliases.get(cmd_name, cmd_name)
        if name in self.commands:
            return self.commands[name]

        for module_name in (name, f"{name}_cmd"):
            try:
                module = importlib.import_module(f"{self.commands_package}.{module_name}")
            except ModuleNotFoundError as e:
                if e.name != f"{self.commands_package}.{module_name}":
                    raise
                continue
            command = getattr(module, "cli", None)
            if command is not None:
                return command
        return None

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except ITSyncError as e:
            from ..display.console import console

            console.print(f"[red]Error:[/red] {e}")
            if isinstance(e, ConnectionError) and e.hint:
                console.print(f"  [dim]{e.hint}[/dim]")
            ctx.exit(1)
