"""Core data models for the dictation pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class RecordingState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass
class CaptureSession:
    path: Path
    started_at: float
    max_duration_s: float = 60.0


@dataclass(frozen=True)
class AudioArtifact:
    """Completed recording handed from the capture backend to the transcriber."""

    path: Path
    size_bytes: int
    duration_s: float

    @property
    def container(self) -> str:
        return self.path.suffix.lstrip(".").lower() or "m4a"

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def discard(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


@dataclass
class TranscriptionRequest:
    audio: bytes
    filename: str
    content_type: str
    model: str
    response_format: str = "json"
    language: Optional[str] = None

    def form_fields(self) -> dict[str, str]:
        fields = {"model": self.model, "response_format": self.response_format}
        # Auto-detect is signalled by leaving the part out entirely.
        if self.language:
            fields["language"] = self.language
        return fields


@dataclass
class TranscriptionWord:
    word: str
    start: float
    end: float
    probability: Optional[float] = None

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def is_high_confidence(self) -> bool:
        return (self.probability or 0.0) > 0.8


@dataclass
class TranscriptionSegment:
    id: int
    start: float
    end: float
    text: str
    tokens: Optional[list[int]] = None
    temperature: Optional[float] = None
    avg_logprob: Optional[float] = None
    compression_ratio: Optional[float] = None
    no_speech_prob: Optional[float] = None
    words: Optional[list[TranscriptionWord]] = None

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def time_range(self) -> str:
        return f"{self.start:.1f}s - {self.end:.1f}s"


def _pick(data: dict, snake: str, camel: str) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel)


@dataclass
class TranscriptionResponse:
    """Parsed body of a successful ``/audio/transcriptions`` call."""

    text: str
    task: Optional[str] = None
    language: Optional[str] = None
    duration: Optional[float] = None
    segments: Optional[list[TranscriptionSegment]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "TranscriptionResponse":
        """Build from decoded JSON. Raises ValueError when the schema does not match."""
        if not isinstance(data, dict):
            raise ValueError("response is not a JSON object")
        text = data.get("text")
        if not isinstance(text, str):
            raise ValueError("response has no text field")
        try:
            duration = data.get("duration")
            segments = None
            if data.get("segments") is not None:
                segments = [_segment_from_dict(item) for item in data["segments"]]
            return cls(
                text=text,
                task=data.get("task"),
                language=data.get("language"),
                duration=float(duration) if duration is not None else None,
                segments=segments,
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"malformed response: {exc}") from exc

    @property
    def cleaned_text(self) -> str:
        return self.text.strip()

    @property
    def has_valid_text(self) -> bool:
        return bool(self.cleaned_text)

    @property
    def detected_language(self) -> str:
        return self.language or "unknown"

    @property
    def formatted_duration(self) -> Optional[str]:
        if self.duration is None:
            return None
        return f"{self.duration:.1f}s"


def _segment_from_dict(data: dict) -> TranscriptionSegment:
    words = data.get("words")
    return TranscriptionSegment(
        id=int(data["id"]),
        start=float(data["start"]),
        end=float(data["end"]),
        text=str(data["text"]),
        tokens=data.get("tokens"),
        temperature=data.get("temperature"),
        avg_logprob=_pick(data, "avg_logprob", "avgLogprob"),
        compression_ratio=_pick(data, "compression_ratio", "compressionRatio"),
        no_speech_prob=_pick(data, "no_speech_prob", "noSpeechProb"),
        words=[
            TranscriptionWord(
                word=str(w["word"]),
                start=float(w["start"]),
                end=float(w["end"]),
                probability=w.get("probability"),
            )
            for w in words
        ]
        if words is not None
        else None,
    )


@dataclass
class ApiErrorResponse:
    message: str
    type: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ApiErrorResponse"]:
        if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
            return None
        error = data["error"]
        message = error.get("message")
        if not isinstance(message, str):
            return None
        return cls(message=message, type=error.get("type"), code=error.get("code"))


@dataclass
class TranscriptionResult:
    """Either a usable transcript or a classified failure."""

    text: str = ""
    language: Optional[str] = None
    duration_s: Optional[float] = None
    error_code: str = ""
    detail: str = ""
    status_code: Optional[int] = None
    segments: list[TranscriptionSegment] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.error_code

    @classmethod
    def success(
        cls,
        text: str,
        language: Optional[str] = None,
        duration_s: Optional[float] = None,
        segments: Optional[list[TranscriptionSegment]] = None,
    ) -> "TranscriptionResult":
        return cls(text=text, language=language, duration_s=duration_s, segments=segments or [])

    @classmethod
    def failed(
        cls, code: str, detail: str = "", status_code: Optional[int] = None
    ) -> "TranscriptionResult":
        return cls(error_code=code, detail=detail, status_code=status_code)


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool
