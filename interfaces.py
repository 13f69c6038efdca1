"""Protocol interfaces used by RecordingController and the host."""

from __future__ import annotations

from typing import Protocol

from models import AudioArtifact, PasteResult, TranscriptionResult


class CaptureBackend(Protocol):
    def start(self) -> None: ...

    def stop(self) -> AudioArtifact: ...

    def current_amplitude(self) -> float: ...

    def current_duration(self) -> float: ...

    def permission_granted(self) -> bool: ...

    def close(self) -> None: ...


class Transcriber(Protocol):
    async def transcribe(self, artifact: AudioArtifact, credential: str) -> TranscriptionResult: ...


class TextInserter(Protocol):
    def insert_text(self, text: str) -> PasteResult: ...

    def delete_backward(self) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_language(self) -> str: ...

    def set_language(self, language: str) -> None: ...
