"""Keyboard bindings for the desktop host.

Holding the talk key maps to ``begin()``/``end()`` on the recording
controller; tapping the delete key removes one character in the focused
field.  Keys are named the way pynput prints them (``Key.alt_l``) or by their
character (``x``).
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover - no display server
    keyboard = None  # type: ignore

Handler = Callable[[], None]


def key_name(key: object) -> str:
    """``Key.alt_l`` for special keys, the bare character for ``KeyCode``."""
    name = str(key)
    if len(name) == 3 and name[0] == name[-1] == "'":
        return name[1]
    return name


class GlobalHotkeyAdapter:
    def __init__(self, talk_key: str = "Key.alt_l", delete_key: Optional[str] = "Key.alt_r") -> None:
        self.talk_key = talk_key
        self.delete_key = delete_key
        self._listener: Optional[object] = None
        self._talk_down = False
        self._guard = threading.Lock()
        self._on_talk_start: Optional[Handler] = None
        self._on_talk_end: Optional[Handler] = None
        self._on_delete: Optional[Handler] = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    @property
    def talk_key_down(self) -> bool:
        return self._talk_down

    def start(self, on_press: Handler, on_release: Handler, on_delete: Optional[Handler] = None) -> None:
        """Begin listening.  Handlers are called on the pynput thread."""
        if keyboard is None:
            raise RuntimeError("pynput is not available")
        if self._listener is not None:
            return
        self._on_talk_start = on_press
        self._on_talk_end = on_release
        self._on_delete = on_delete
        self._listener = keyboard.Listener(on_press=self._key_down, on_release=self._key_up)
        self._listener.start()

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()
        with self._guard:
            self._talk_down = False

    def _key_down(self, key: object) -> None:
        name = key_name(key)
        if name == self.delete_key and self._on_delete is not None:
            # Auto-repeat deletes repeatedly, like a held backspace.
            self._on_delete()
        elif name == self.talk_key and self._mark_talk(True):
            self._on_talk_start()

    def _key_up(self, key: object) -> None:
        if key_name(key) == self.talk_key and self._mark_talk(False):
            self._on_talk_end()

    def _mark_talk(self, down: bool) -> bool:
        """Record the talk key's position; False when it did not change."""
        with self._guard:
            if self._talk_down == down:
                return False
            self._talk_down = down
            return True
