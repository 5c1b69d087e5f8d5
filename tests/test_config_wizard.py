import yaml

from itsync import config_wizard
from itsync.config_wizard import ConfigWizard


def test_save_keeps_a_backup(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("sync:\n  mode: full\n")

    wizard = ConfigWizard(str(path))
    wizard.config_data = {"imdb": {"auth": "none", "lists": ["ls000000001"]}, "sync": {"mode": "dry-run"}}
    wizard.changes_made = True
    wizard._save_config()

    assert yaml.safe_load(path.read_text()) == wizard.config_data
    assert list(yaml.safe_load(path.read_text())) == ["imdb", "sync"]
    assert yaml.safe_load((tmp_path / "config.yaml.backup").read_text()) == {"sync": {"mode": "full"}}
    assert not wizard.changes_made


def test_preview_hides_secrets(tmp_path):
    wizard = ConfigWizard(str(tmp_path / "config.yaml"))
    wizard.config_data = {"trakt": {"email": "me@example.org", "password": "hunter2", "client_secret": ""}}

    assert wizard._redacted() == {
        "trakt": {"email": "me@example.org", "password": "********", "client_secret": ""}
    }


def test_list_ids_are_asked_again_until_valid(tmp_path, monkeypatch):
    answers = iter(["ls1, ls000000001", "", "ls000000001, ls000000002"])
    monkeypatch.setattr(config_wizard.Prompt, "ask", lambda *args, **kwargs: next(answers))

    wizard = ConfigWizard(str(tmp_path / "config.yaml"))

    assert wizard._ask_list_ids([], required=True) == ["ls000000001", "ls000000002"]


def test_existing_config_is_loaded(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("imdb:\n  auth: cookies\n")

    wizard = ConfigWizard(str(path))
    wizard._load_existing_config()

    assert wizard.config_data == {"imdb": {"auth": "cookies"}}
    assert "Configured" in wizard._section_status("imdb")
    assert "Not configured" in wizard._section_status("trakt")
