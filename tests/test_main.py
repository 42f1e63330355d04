"""Tests for the command-line entry point."""
import json

import httpx
import pytest

from fastgpt.client import FastGPTClient
from fastgpt.config import ConfigStore, Settings
from fastgpt.main import EXIT_ERROR, EXIT_NO_API_KEY, EXIT_OK, build_parser, main, resolve_session_config


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "config.env")


def out(console):
    return console.file.getvalue()


def test_missing_api_key_is_fatal(store, console, capsys):
    assert main([], store=store, console=console) == EXIT_NO_API_KEY
    assert "No API key found" in capsys.readouterr().err


def test_set_api_key_saves(store, console):
    assert main(["--set-api-key", "abcd1234wxyz"], store=store, console=console) == EXIT_OK
    assert store.load().api_key == "abcd1234wxyz"
    assert "saved successfully" in out(console)


def test_show_api_key_masks(store, console):
    store.save(Settings(api_key="abcd1234wxyz"))
    assert main(["--show-api-key"], store=store, console=console) == EXIT_OK
    text = out(console)
    assert "abcd...wxyz" in text
    assert "1234" not in text


def test_show_api_key_when_unset(store, console):
    assert main(["--show-api-key"], store=store, console=console) == EXIT_OK
    assert "No API key is currently set." in out(console)


def test_reset_api_key(store, console):
    store.save(Settings(api_key="k"))
    assert main(["--reset-api-key"], store=store, console=console) == EXIT_OK
    assert store.load().api_key == ""


def test_flags_override_stored_toggles():
    settings = Settings(api_key="k", cache_enabled=True, references_enabled=False)
    config = resolve_session_config(settings, build_parser().parse_args(["--no-cache", "--json"]))
    assert config.cache is False
    assert config.references is False
    assert config.json_mode is True

    config = resolve_session_config(settings, build_parser().parse_args(["--references"]))
    assert config.cache is True
    assert config.references is True


def _client(handler):
    return FastGPTClient("k", api_url="https://kagi.test/fastgpt", transport=httpx.MockTransport(handler))


def test_one_shot_query(store, console, api_body_factory):
    store.save(Settings(api_key="k"))
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=api_body_factory("Four."))

    code = main(["what", "is", "2+2?"], store=store, console=console, client=_client(handler))
    assert code == EXIT_OK
    assert seen[0]["query"] == "what is 2+2?"
    assert "Four." in out(console)


def test_one_shot_json(store, console, api_body_factory):
    store.save(Settings(api_key="k"))
    body = api_body_factory("Four.")
    client = _client(lambda r: httpx.Response(200, json=body))
    assert main(["--json", "2+2?"], store=store, console=console, client=client) == EXIT_OK
    assert json.loads(out(console)) == body


def test_one_shot_failure(store, console):
    store.save(Settings(api_key="k"))
    client = _client(lambda r: httpx.Response(401, text="bad key"))
    assert main(["hello"], store=store, console=console, client=client) == EXIT_ERROR
    assert "Invalid or missing API key" in out(console)


def test_interactive_config(store, console, monkeypatch):
    answers = iter(["new-key-123456", "n", "y"])
    # Prompt.ask and Confirm.ask read every answer, password included, through Console.input
    monkeypatch.setattr(console, "input", lambda *a, **k: next(answers))
    assert main(["--config"], store=store, console=console) == EXIT_OK
    loaded = store.load()
    assert loaded.api_key == "new-key-123456"
    assert loaded.cache_enabled is False
    assert loaded.references_enabled is True


def test_config_write_failure(tmp_path, console, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("")
    store = ConfigStore(blocker / "config.env")
    assert main(["--set-api-key", "k"], store=store, console=console) == EXIT_ERROR
    assert "Failed to write config file" in capsys.readouterr().err
