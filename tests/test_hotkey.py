from __future__ import annotations

from unittest.mock import MagicMock

import pytest

import hotkey
from hotkey import GlobalHotkeyAdapter


@pytest.fixture
def fake_keyboard(monkeypatch):  # noqa: ANN001
    module = MagicMock()
    monkeypatch.setattr(hotkey, "keyboard", module)
    return module


def _handlers(fake_keyboard: MagicMock):
    kwargs = fake_keyboard.Listener.call_args.kwargs
    return kwargs["on_press"], kwargs["on_release"]


def test_hold_and_release_fire_once(fake_keyboard: MagicMock) -> None:
    events: list[str] = []
    adapter = GlobalHotkeyAdapter(talk_key="Key.alt_l")
    adapter.start(on_press=lambda: events.append("press"), on_release=lambda: events.append("release"))
    press, release = _handlers(fake_keyboard)

    press("Key.alt_l")
    press("Key.alt_l")  # key repeat
    press("Key.shift")
    release("Key.alt_l")
    release("Key.alt_l")

    assert events == ["press", "release"]
    fake_keyboard.Listener.return_value.start.assert_called_once()


def test_delete_key_triggers_delete(fake_keyboard: MagicMock) -> None:
    events: list[str] = []
    adapter = GlobalHotkeyAdapter(talk_key="Key.alt_l", delete_key="Key.alt_r")
    adapter.start(
        on_press=lambda: events.append("press"),
        on_release=lambda: events.append("release"),
        on_delete=lambda: events.append("delete"),
    )
    press, _ = _handlers(fake_keyboard)

    press("Key.alt_r")
    press("Key.alt_r")

    assert events == ["delete", "delete"]


def test_stop_stops_listener(fake_keyboard: MagicMock) -> None:
    adapter = GlobalHotkeyAdapter()
    adapter.start(on_press=lambda: None, on_release=lambda: None)
    adapter.stop()
    adapter.stop()

    fake_keyboard.Listener.return_value.stop.assert_called_once()


def test_start_without_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey, "keyboard", None)
    with pytest.raises(RuntimeError):
        GlobalHotkeyAdapter().start(on_press=lambda: None, on_release=lambda: None)


def test_character_keys_are_matched_by_character(fake_keyboard: MagicMock) -> None:
    events: list[str] = []
    adapter = GlobalHotkeyAdapter(talk_key="x", delete_key=None)
    adapter.start(on_press=lambda: events.append("press"), on_release=lambda: events.append("release"))
    press, release = _handlers(fake_keyboard)

    press("'x'")
    assert adapter.talk_key_down is True
    release("'x'")

    assert events == ["press", "release"]
    assert hotkey.key_name("Key.alt_l") == "Key.alt_l"


def test_stop_forgets_held_key(fake_keyboard: MagicMock) -> None:
    adapter = GlobalHotkeyAdapter()
    adapter.start(on_press=lambda: None, on_release=lambda: None)
    press, _ = _handlers(fake_keyboard)
    press("Key.alt_l")
    assert adapter.running is True

    adapter.stop()

    assert adapter.running is False
    assert adapter.talk_key_down is False
