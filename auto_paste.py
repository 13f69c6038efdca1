"""Host text insertion through the clipboard and synthetic key presses."""

from __future__ import annotations

import logging
import sys
import time

from models import PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover - no display server
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardPasteService:
    """Inserts text into the focused field, restoring the previous clipboard."""

    def __init__(self, restore_delay_s: float = 0.1) -> None:
        self._restore_delay_s = restore_delay_s

    def insert_text(self, text: str) -> PasteResult:
        if not text.strip():
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return PasteResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        old_clip: str | None = None
        restored = False
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            keyboard = Controller()
            modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
            with keyboard.pressed(modifier):
                keyboard.press("v")
                keyboard.release("v")
            time.sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            restored = True
            return PasteResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            logger.warning("Text insertion failed: %s", exc)
            try:
                if old_clip is not None:
                    pyperclip.copy(old_clip)
                    restored = True
            except Exception:
                restored = False
            return PasteResult(
                success=False,
                reason=f"insertion failed: {exc}",
                clipboard_restored=restored,
            )

    def delete_backward(self) -> None:
        if Controller is None or Key is None:
            raise RuntimeError("pynput is not available")
        keyboard = Controller()
        keyboard.press(Key.backspace)
        keyboard.release(Key.backspace)
