from __future__ import annotations

from pathlib import Path

from config import (
    API_KEY_ENV_VAR,
    PLACEHOLDER_API_KEY,
    JsonConfigStore,
    load_settings,
    read_packaged_config,
    resolve_api_key,
)


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_l"
    assert store.get_language() == ""

    store.set_api_key(" abc ")
    store.set_hotkey("Key.alt_r")
    store.set_language("de")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey() == "Key.alt_r"
    assert reloaded.get_language() == "de"


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_l"


def test_resolve_api_key_priority(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    store.set_api_key("runtime-key")
    env = {API_KEY_ENV_VAR: "env-key"}

    assert resolve_api_key(store, packaged="packaged-key", environ=env) == "packaged-key"
    assert resolve_api_key(store, packaged="", environ=env) == "env-key"
    assert resolve_api_key(store, packaged="", environ={}) == "runtime-key"


def test_resolve_api_key_rejects_placeholder_and_empty(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    store.set_api_key(PLACEHOLDER_API_KEY)

    env = {API_KEY_ENV_VAR: ""}
    assert resolve_api_key(store, packaged=PLACEHOLDER_API_KEY, environ=env) == ""

    env = {API_KEY_ENV_VAR: PLACEHOLDER_API_KEY}
    store.set_api_key("runtime-key")
    assert resolve_api_key(store, packaged="", environ=env) == "runtime-key"


def test_load_settings_language_and_timeouts(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")

    settings = load_settings(store)
    assert settings.default_language is None
    assert settings.resource_timeout_s == 2 * settings.request_timeout_s
    assert settings.max_recording_s == 60.0
    assert (settings.success_display_s, settings.error_display_s) == (1.5, 3.0)

    settings = load_settings(store, {"language": "en", API_KEY_ENV_VAR: "packaged"})
    assert settings.default_language == "en"
    assert settings.packaged_api_key == "packaged"

    store.set_language("auto")
    assert load_settings(store, {"language": "en"}).default_language is None


def test_read_packaged_config(tmp_path: Path) -> None:
    assert read_packaged_config(tmp_path / "missing.json") == {}

    path = tmp_path / "voiceboard.json"
    path.write_text('{"GROQ_API_KEY": "k"}', encoding="utf-8")
    assert read_packaged_config(path) == {"GROQ_API_KEY": "k"}

    path.write_text("[]", encoding="utf-8")
    assert read_packaged_config(path) == {}
