import json

import pytest

from game.runtime.client_settings import load_client_settings, save_client_settings
from game.runtime.pending_sessions_store import load_pending_sessions, save_pending_sessions


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ARCADE_BACKEND_URL", "ARCADE_CHALLENGE_URL", "ARCADE_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "cfg" / "client_settings.json"
    config, api_key = load_client_settings(path)

    assert config.backend_url == "http://127.0.0.1:8000"
    assert api_key == ""
    assert json.loads(path.read_text(encoding="utf-8"))["backend_url"] == "http://127.0.0.1:8000"


def test_values_from_file(tmp_path):
    path = tmp_path / "client_settings.json"
    save_client_settings(path, " http://prod.example ", "http://fn.example/v1", "k-1")

    config, api_key = load_client_settings(path)

    assert config.backend_url == "http://prod.example"
    assert config.challenge_url == "http://fn.example/v1"
    assert api_key == "k-1"
    assert config.challenge_endpoints["quiz"] == "generate-quiz"


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "client_settings.json"
    save_client_settings(path, "http://file.example", "http://fn.example", "file-key")
    monkeypatch.setenv("ARCADE_BACKEND_URL", "http://env.example")
    monkeypatch.setenv("ARCADE_API_KEY", "env-key")

    config, api_key = load_client_settings(path)

    assert config.backend_url == "http://env.example"
    assert config.challenge_url == "http://fn.example"
    assert api_key == "env-key"


def test_broken_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "client_settings.json"
    path.write_text("{not json", encoding="utf-8")
    config, api_key = load_client_settings(path)
    assert config.backend_url == "http://127.0.0.1:8000"
    assert api_key == ""


def test_pending_store_roundtrip(tmp_path):
    path = tmp_path / "pending.json"
    assert load_pending_sessions(path) == {}
    save_pending_sessions(path, {"sub-1": {"path": "/v1/sessions", "body": {"score": 1}}})
    assert load_pending_sessions(path)["sub-1"]["body"] == {"score": 1}
    save_pending_sessions(path, {})
    assert not path.exists()
