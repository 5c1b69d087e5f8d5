import json

import responses

from itsync.cli.core.hooks import HookManager
from itsync.config import Config


def _config(hooks):
    return Config(
        data={
            "imdb": {"auth": "none", "lists": ["ls000000001"]},
            "trakt": {"email": "e", "password": "p", "client_id": "c", "client_secret": "s"},
            "hooks": hooks,
        },
        environ={},
    )


def test_callbacks_receive_event_and_payload():
    manager = HookManager()
    seen = []
    manager.register("sync_complete", lambda **payload: seen.append(payload))

    manager.trigger("sync_complete", items_added=3)
    manager.trigger("sync_error", error="ignored")

    assert seen == [{"event": "sync_complete", "items_added": 3}]


def test_failing_callback_does_not_stop_the_others():
    manager = HookManager()
    seen = []

    def broken(**payload):
        raise RuntimeError("nope")

    manager.register("sync_start", broken)
    manager.register("sync_start", lambda **payload: seen.append(payload["event"]))

    manager.trigger("sync_start")

    assert seen == ["sync_start"]


def test_command_hook_exposes_payload_as_environment(tmp_path):
    output = tmp_path / "hook.txt"
    manager = HookManager()
    manager.load_from_config(
        _config(
            {"sync_complete": [{"type": "command", "command": f'echo "$ITSYNC_HOOK_EVENT $ITSYNC_HOOK_ITEMS_ADDED" > {output}'}]}
        )
    )

    manager.trigger("sync_complete", items_added=5)

    assert output.read_text().strip() == "sync_complete 5"


@responses.activate
def test_webhook_posts_json():
    responses.add(responses.POST, "https://hooks.example.test/itsync", status=204)
    manager = HookManager()
    manager.load_from_config(_config({"sync_error": [{"type": "webhook", "url": "https://hooks.example.test/itsync"}]}))

    manager.trigger("sync_error", mode="full", error="Trakt is down")

    assert json.loads(responses.calls[0].request.body) == {
        "event": "sync_error",
        "mode": "full",
        "error": "Trakt is down",
    }


def test_unknown_events_and_invalid_hooks_are_ignored():
    manager = HookManager()
    manager.load_from_config(
        _config(
            {
                "sync_finished": [{"type": "command", "command": "true"}],
                "sync_start": [{"type": "email", "to": "me@example.org"}, {"type": "webhook"}],
            }
        )
    )

    assert manager._hooks == {}
