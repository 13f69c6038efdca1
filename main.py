"""Desktop host: hold a hotkey to dictate into the focused text field."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from auto_paste import ClipboardPasteService
from config import AUTO_LANGUAGE, JsonConfigStore, load_settings, read_packaged_config, resolve_api_key
from errors import StateError
from hotkey import GlobalHotkeyAdapter
from models import RecordingState
from recorder import SoundDeviceRecorder
from session_controller import RecordingController
from transcriber import WhisperApiTranscriber

logger = logging.getLogger("voiceboard")

PACKAGED_CONFIG = Path(__file__).with_name("voiceboard.json")


class App:
    def __init__(self, args: argparse.Namespace) -> None:
        self.config_store = JsonConfigStore()
        self.settings = load_settings(self.config_store, read_packaged_config(PACKAGED_CONFIG))
        if args.language:
            self.settings.default_language = None if args.language == AUTO_LANGUAGE else args.language

        self.paste_service = ClipboardPasteService()
        self.transcriber = WhisperApiTranscriber(
            base_url=self.settings.base_url,
            model=self.settings.model,
            language=self.settings.default_language,
            response_format=self.settings.response_format,
            request_timeout_s=self.settings.request_timeout_s,
            resource_timeout_s=self.settings.resource_timeout_s,
        )
        self.controller = RecordingController(
            backend=SoundDeviceRecorder(
                sample_rate=self.settings.sample_rate,
                channels=self.settings.channels,
                max_duration_s=self.settings.max_recording_s,
            ),
            transcriber=self.transcriber,
            credential_provider=self._credential,
            max_duration_s=self.settings.max_recording_s,
            success_display_s=self.settings.success_display_s,
            error_display_s=self.settings.error_display_s,
            on_state_change=self._on_state_change,
            on_result=self._on_result,
            on_error=self._on_error,
        )
        self.hotkey = GlobalHotkeyAdapter(talk_key=args.hotkey or self.config_store.get_hotkey())
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _credential(self) -> str:
        return resolve_api_key(self.config_store, packaged=self.settings.packaged_api_key)

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("App.run() has not started the event loop")
        return self._loop

    # ------------------------------------------------------------------
    # Controller callbacks (event loop)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: RecordingState, to_state: RecordingState) -> None:
        if to_state == RecordingState.RECORDING:
            logger.info("Recording... release to transcribe")
        elif to_state == RecordingState.PROCESSING:
            logger.info("Transcribing...")
        elif to_state == RecordingState.IDLE:
            logger.info("Ready")

    def _on_result(self, text: str) -> None:
        self._require_loop().run_in_executor(None, self._insert, text)

    def _on_error(self, code: str, message: str) -> None:
        logger.error("%s: %s", code, message)

    def _insert(self, text: str) -> None:
        result = self.paste_service.insert_text(text)
        if not result.success:
            logger.error("Could not insert text: %s", result.reason)

    # ------------------------------------------------------------------
    # Hotkey handlers (listener thread -> event loop)
    # ------------------------------------------------------------------

    def _on_hotkey_press(self) -> None:
        loop = self._require_loop()
        asyncio.run_coroutine_threadsafe(self._begin(), loop)

    def _on_hotkey_release(self) -> None:
        loop = self._require_loop()
        asyncio.run_coroutine_threadsafe(self._end(), loop)

    def _on_delete(self) -> None:
        try:
            self.paste_service.delete_backward()
        except RuntimeError as exc:
            logger.error("Delete failed: %s", exc)

    async def _begin(self) -> None:
        try:
            await self.controller.begin()
        except StateError as exc:
            logger.debug("Ignoring press: %s", exc.detail)

    async def _end(self) -> None:
        try:
            await self.controller.end()
        except StateError as exc:
            logger.debug("Ignoring release: %s", exc.detail)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> int:
        self._loop = asyncio.get_running_loop()
        if not self._credential():
            logger.warning("No API key configured; run with --set-api-key or set GROQ_API_KEY")
        try:
            self.hotkey.start(
                on_press=self._on_hotkey_press,
                on_release=self._on_hotkey_release,
                on_delete=self._on_delete,
            )
        except RuntimeError as exc:
            logger.error("Hotkey disabled: %s", exc)
            return 1

        logger.info("Ready. Hold the talk key to dictate, Ctrl+C to quit.")
        try:
            await asyncio.Event().wait()
        finally:
            self.hotkey.stop()
            await self.controller.aclose()
            await self.transcriber.aclose()
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hold a hotkey, speak, and type the transcript.")
    parser.add_argument("--set-api-key", metavar="KEY", help="Store a Groq API key and exit")
    parser.add_argument(
        "--language",
        default=None,
        help=f"Language hint such as 'en', or '{AUTO_LANGUAGE}' to auto-detect",
    )
    parser.add_argument("--hotkey", default=None, help="pynput key name, e.g. Key.alt_l")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.set_api_key is not None:
        JsonConfigStore().set_api_key(args.set_api_key)
        logger.info("API key saved.")
        return 0

    try:
        return asyncio.run(App(args).run())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
