"""Interactive configuration wizard for itsync."""

import logging
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.syntax import Syntax
from rich.table import Table

from .config import DEFAULTS, IMDB_AUTH_METHODS, SYNC_MODES, _is_list_id

console = Console()
logger = logging.getLogger(__name__)


class ConfigWizard:
    """Interactive configuration wizard."""

    def __init__(self, config_path: str):
        """Initialize configuration wizard.

        Args:
            config_path: Path to config file
        """
        self.config_path = Path(config_path)
        self.config_data = {}
        self.changes_made = False

    def run(self):
        """Run the wizard, or the edit menu when a config file already exists."""
        if self.config_path.exists():
            self._load_existing_config()
            self.menu_mode()
        else:
            self.wizard_mode()

    def _load_existing_config(self):
        try:
            with open(self.config_path) as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Error loading config:[/red] {e}")
            loaded = {}
        self.config_data = loaded if isinstance(loaded, dict) else {}

    def wizard_mode(self):
        """Step-by-step wizard for first-time setup."""
        self._show_welcome()

        self.config_data = {"imdb": {}, "trakt": {}, "sync": {}}

        console.print("\n[bold]Step 1/3: IMDb[/bold]")
        self._configure_imdb()

        console.print("\n[bold]Step 2/3: Trakt[/bold]")
        self._configure_trakt()

        console.print("\n[bold]Step 3/3: Sync settings[/bold]")
        self._configure_sync_settings()

        self._preview_and_save()

    def menu_mode(self):
        """Interactive menu for editing existing configuration."""
        while True:
            console.clear()
            self._render_menu()

            choice = Prompt.ask(
                "\nSelect a section to configure",
                choices=["1", "2", "3", "s", "S", "q", "Q"],
            ).lower()

            if choice == "1":
                self._configure_imdb()
                self.changes_made = True
            elif choice == "2":
                self._configure_trakt()
                self.changes_made = True
            elif choice == "3":
                self._configure_sync_settings()
                self.changes_made = True
            elif choice == "s":
                if self.changes_made:
                    self._save_config()
                    console.print("\n[green]✓[/green] Configuration saved successfully!")
                else:
                    console.print("\n[yellow]No changes to save.[/yellow]")
                break
            elif choice == "q":
                if not self.changes_made or Confirm.ask(
                    "\n[yellow]You have unsaved changes. Quit anyway?[/yellow]", default=False
                ):
                    break

    def _show_welcome(self):
        welcome_text = """
[bold cyan]Welcome to the itsync configuration wizard![/bold cyan]

itsync copies your IMDb lists, watchlist and ratings to Trakt.

[bold]What you'll configure:[/bold]
  • IMDb sign-in (credentials, cookies, or none for public lists)
  • Trakt account and API application
  • Sync mode and what to sync

Press Ctrl+C at any time to cancel.
        """
        console.print(Panel(welcome_text, border_style="cyan"))

    def _render_menu(self):
        console.print(Panel("[bold cyan]itsync Configuration[/bold cyan]", border_style="cyan"))

        sections = Table(title="\nSections", show_header=False, box=None, padding=(0, 2))
        sections.add_column("Number", style="cyan", width=5)
        sections.add_column("Section", style="white", width=15)
        sections.add_column("Status", style="white", width=18)
        sections.add_column("Details", style="dim", width=30)

        sections.add_row("[1]", "IMDb", self._section_status("imdb"), self._section_detail("imdb"))
        sections.add_row("[2]", "Trakt", self._section_status("trakt"), self._section_detail("trakt"))
        sections.add_row("[3]", "Sync Settings", "[green]✓ Configured[/green]", self._section_detail("sync"))
        console.print(Panel(sections, border_style="blue"))

        actions = Table(title="\nActions", show_header=False, box=None, padding=(0, 2))
        actions.add_column("Key", style="cyan", width=5)
        actions.add_column("Action", style="white")
        actions.add_row("[S]", "Save and exit")
        actions.add_row("[Q]", "Quit without saving")
        console.print(Panel(actions, border_style="green"))

    def _section_status(self, section: str) -> str:
        values = self.config_data.get(section) or {}
        if section == "imdb":
            configured = values.get("auth") in IMDB_AUTH_METHODS
        else:
            configured = all(values.get(key) for key in ("email", "password", "client_id", "client_secret"))
        return "[green]✓ Configured[/green]" if configured else "[red]✗ Not configured[/red]"

    def _section_detail(self, section: str) -> str:
        values = self.config_data.get(section) or {}
        if section == "imdb":
            lists = values.get("lists") or []
            auth = values.get("auth", "")
            return f"{auth}, {len(lists)} list(s)" if auth else ""
        if section == "trakt":
            return values.get("email", "")
        return values.get("mode", DEFAULTS["sync"]["mode"])

    def _configure_imdb(self):
        console.print("\n[bold cyan]IMDb Configuration[/bold cyan]")
        imdb = self.config_data.setdefault("imdb", {})

        auth = Prompt.ask(
            "How should itsync sign in to IMDb?",
            choices=list(IMDB_AUTH_METHODS),
            default=imdb.get("auth", "credentials"),
        )
        imdb["auth"] = auth

        if auth == "credentials":
            imdb["email"] = Prompt.ask("IMDb email", default=imdb.get("email"))
            imdb["password"] = Prompt.ask("IMDb password", password=True, default=imdb.get("password"))
        elif auth == "cookies":
            console.print("[dim]Copy the at-main and ubid-main cookies from a signed-in browser[/dim]")
            imdb["cookie_at_main"] = Prompt.ask("at-main cookie", default=imdb.get("cookie_at_main"))
            imdb["cookie_ubid_main"] = Prompt.ask("ubid-main cookie", default=imdb.get("cookie_ubid_main"))
        else:
            console.print("[dim]Without sign-in only public lists can be synced[/dim]")

        imdb["lists"] = self._ask_list_ids(imdb.get("lists") or [], required=auth == "none")

    def _ask_list_ids(self, current: list, required: bool) -> list:
        hint = "required" if required else "leave empty to sync every list on your account"
        while True:
            raw = Prompt.ask(f"IMDb list ids, comma separated ({hint})", default=",".join(current))
            list_ids = [part.strip() for part in raw.split(",") if part.strip()]
            invalid = [list_id for list_id in list_ids if not _is_list_id(list_id)]
            if invalid:
                console.print(f"[red]Invalid list ids:[/red] {', '.join(invalid)} (expected ls123456789)")
                continue
            if required and not list_ids:
                console.print("[red]At least one list id is required without IMDb sign-in[/red]")
                continue
            return list_ids

    def _configure_trakt(self):
        console.print("\n[bold cyan]Trakt Configuration[/bold cyan]")
        console.print("[dim]Create an API application at https://trakt.tv/oauth/applications[/dim]")
        trakt = self.config_data.setdefault("trakt", {})

        trakt["email"] = Prompt.ask("Trakt email", default=trakt.get("email"))
        trakt["password"] = Prompt.ask("Trakt password", password=True, default=trakt.get("password"))
        trakt["client_id"] = Prompt.ask("Trakt client id", default=trakt.get("client_id"))
        trakt["client_secret"] = Prompt.ask(
            "Trakt client secret", password=True, default=trakt.get("client_secret")
        )

    def _configure_sync_settings(self):
        console.print("\n[bold cyan]Sync Settings[/bold cyan]")
        sync = self.config_data.setdefault("sync", {})
        defaults = DEFAULTS["sync"]

        sync["mode"] = Prompt.ask(
            "Sync mode", choices=list(SYNC_MODES), default=sync.get("mode", defaults["mode"])
        )
        sync["watchlist"] = Confirm.ask("Sync the watchlist?", default=sync.get("watchlist", defaults["watchlist"]))
        sync["ratings"] = Confirm.ask("Sync ratings?", default=sync.get("ratings", defaults["ratings"]))
        sync["history"] = Confirm.ask(
            "Mark rated titles as watched in Trakt history?", default=sync.get("history", defaults["history"])
        )
        sync["timeout"] = IntPrompt.ask("Run timeout (seconds)", default=sync.get("timeout", defaults["timeout"]))
        sync["log_level"] = Prompt.ask(
            "Log level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            default=sync.get("log_level", defaults["log_level"]),
        )
        log_file = Prompt.ask("Log file path (leave empty for stdout only)", default=sync.get("log_file", ""))
        sync["log_file"] = log_file.strip()

    def _preview_and_save(self):
        console.print("\n[bold cyan]Configuration Preview[/bold cyan]\n")

        yaml_str = yaml.dump(self._redacted(), default_flow_style=False, sort_keys=False)
        console.print(Panel(Syntax(yaml_str, "yaml", theme="monokai"), border_style="green"))

        if Confirm.ask("\nSave this configuration?", default=True):
            self._save_config()
            console.print(f"\n[green]✓[/green] Configuration saved to {self.config_path}")
            console.print("\n[bold]You can now run:[/bold] itsync sync")
        else:
            console.print("[yellow]Configuration not saved.[/yellow]")

    def _redacted(self) -> dict:
        secrets = ("password", "client_secret", "cookie_at_main", "cookie_ubid_main")
        return {
            section: (
                {key: ("********" if key in secrets and value else value) for key, value in values.items()}
                if isinstance(values, dict) else values
            )
            for section, values in self.config_data.items()
        }

    def _save_config(self):
        """Write the config file, moving any previous one to ``.yaml.backup``."""
        try:
            if self.config_path.exists():
                backup_path = self.config_path.with_suffix(".yaml.backup")
                self.config_path.replace(backup_path)
                console.print(f"[dim]Backup saved to {backup_path}[/dim]")

            with open(self.config_path, "w") as f:
                yaml.dump(self.config_data, f, default_flow_style=False, sort_keys=False)

            self.changes_made = False
            logger.debug(f"Wrote configuration to {self.config_path}")
        except OSError as e:
            console.print(f"[red]Error saving configuration:[/red] {e}")
            sys.exit(1)
