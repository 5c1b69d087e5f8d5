"""Event hooks run around a sync: shell commands and webhooks."""

import json
import logging
import os
import subprocess
from typing import Callable, Dict, List

import requests

logger = logging.getLogger(__name__)

EVENTS = ("sync_start", "sync_complete", "sync_error")


class HookManager:
    """Manages event hooks for CLI notifications."""

    def __init__(self):
        self._hooks: Dict[str, List[Callable]] = {}

    def register(self, event: str, callback: Callable):
        """
        Register a callback for an event.

        Args:
            event: Event name (e.g., 'sync_complete', 'sync_error')
            callback: Function to call when event fires
        """
        self._hooks.setdefault(event, []).append(callback)
        logger.debug(f"Registered hook for event: {event}")

    def clear(self):
        self._hooks.clear()

    def trigger(self, event: str, **payload):
        """
        Run every callback for an event.

        A failing callback is logged and never stops the others or the sync.

        Args:
            event: Event name
            **payload: Event details passed to callbacks
        """
        callbacks = self._hooks.get(event, [])
        if not callbacks:
            return

        logger.debug(f"Triggering event: {event}")
        for callback in callbacks:
            try:
                callback(event=event, **payload)
            except Exception as e:
                logger.error(f"Hook callback failed for {event}: {e}")

    def load_from_config(self, config):
        """
        Load hooks from configuration.

        Expected config format:
        hooks:
          sync_complete:
            - type: command
              command: "notify-send 'Trakt is in step with IMDb'"
            - type: webhook
              url: "https://..."
          sync_error:
            - type: command
              command: "notify-send 'itsync failed'"

        Args:
            config: Config object
        """
        hooks_config = config.get("hooks", {}) or {}

        for event, hook_configs in hooks_config.items():
            if event not in EVENTS:
                logger.warning(f"Ignoring hooks for unknown event: {event}")
                continue
            if not isinstance(hook_configs, list):
                continue

            for hook_config in hook_configs:
                hook_type = hook_config.get("type")

                if hook_type == "command" and hook_config.get("command"):
                    self.register(event, self._create_command_hook(hook_config["command"]))
                elif hook_type == "webhook" and hook_config.get("url"):
                    self.register(event, self._create_webhook_hook(hook_config["url"]))
                else:
                    logger.warning(f"Ignoring invalid {event} hook: {hook_config}")

    def _create_command_hook(self, command: str) -> Callable:
        """Create a shell command hook; the payload is exposed as ITSYNC_HOOK_* variables."""
        def hook(event: str, **payload):
            env = dict(os.environ)
            env["ITSYNC_HOOK_EVENT"] = event
            for key, value in payload.items():
                env[f"ITSYNC_HOOK_{key.upper()}"] = str(value)
            completed = subprocess.run(command, shell=True, check=False, capture_output=True, env=env)
            if completed.returncode != 0:
                logger.warning(f"Hook command exited with {completed.returncode}: {command}")
            else:
                logger.debug(f"Executed hook command: {command}")
        return hook

    def _create_webhook_hook(self, url: str) -> Callable:
        """Create a webhook HTTP POST hook."""
        def hook(event: str, **payload):
            body = {"event": event, **payload}
            response = requests.post(url, data=json.dumps(body, default=str),
                                     headers={"Content-Type": "application/json"}, timeout=5)
            response.raise_for_status()
            logger.debug(f"Sent {event} webhook to: {url}")
        return hook


# Global hook manager instance
_hook_manager = HookManager()


def get_hook_manager() -> HookManager:
    """Get the global hook manager instance."""
    return _hook_manager


def trigger_hook(event: str, **payload):
    """Convenience function to trigger a hook."""
    _hook_manager.trigger(event, **payload)
