from __future__ import annotations

from pathlib import Path

import pytest

import main
from config import JsonConfigStore


def test_parser_defaults() -> None:
    args = main.build_parser().parse_args([])

    assert args.set_api_key is None
    assert args.language is None
    assert args.hotkey is None
    assert args.log_level == "INFO"


def test_set_api_key_stores_override_and_exits(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    path = tmp_path / "config.json"
    monkeypatch.setattr(main, "JsonConfigStore", lambda: JsonConfigStore(path=path))

    assert main.main(["--set-api-key", "gsk_test"]) == 0
    assert JsonConfigStore(path=path).get_api_key() == "gsk_test"


def test_hotkey_before_run_raises(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    monkeypatch.setattr(main, "JsonConfigStore", lambda: JsonConfigStore(path=tmp_path / "config.json"))
    monkeypatch.setattr(main, "PACKAGED_CONFIG", tmp_path / "missing.json")
    app = main.App(main.build_parser().parse_args([]))

    with pytest.raises(RuntimeError):
        app._on_hotkey_press()
    with pytest.raises(RuntimeError):
        app._on_result("hello")
