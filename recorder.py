"""Microphone capture backend writing to a temporary WAV file."""

from __future__ import annotations

import logging
import tempfile
import threading
import time
import uuid
import wave
from pathlib import Path
from typing import Any, Optional

import numpy as np

from errors import (
    ALREADY_IN_PROGRESS,
    EMPTY_OR_CORRUPT,
    NOTHING_TO_STOP,
    PERMISSION_DENIED,
    SESSION_SETUP_FAILED,
    CaptureError,
)
from models import AudioArtifact, CaptureSession

try:
    import sounddevice as sd
except Exception:  # pragma: no cover - PortAudio missing on this host
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

_INT16_FULL_SCALE = 32768.0


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        max_duration_s: float = 60.0,
        directory: Optional[Path] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.max_duration_s = max_duration_s
        self._directory = directory or Path(tempfile.gettempdir())
        self._lock = threading.Lock()
        self._stream: Any = None
        self._writer: Optional[wave.Wave_write] = None
        self._session: Optional[CaptureSession] = None
        self._frames_written = 0
        self._level = 0.0

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def permission_granted(self) -> bool:
        if sd is None:
            return False
        try:
            return bool(sd.query_devices(kind="input"))
        except Exception as exc:
            logger.debug("No usable input device: %s", exc)
            return False

    def start(self) -> None:
        with self._lock:
            if self._session is not None:
                raise CaptureError(ALREADY_IN_PROGRESS)
            if not self.permission_granted():
                raise CaptureError(PERMISSION_DENIED)

            path = self._new_recording_path()
            self._frames_written = 0
            self._level = 0.0
            try:
                self._writer = wave.open(str(path), "wb")
                self._writer.setnchannels(self.channels)
                self._writer.setsampwidth(2)
                self._writer.setframerate(self.sample_rate)
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=int(self.sample_rate * (self.chunk_ms / 1000.0)),
                    callback=self._on_audio,
                )
                self._session = CaptureSession(
                    path=path,
                    started_at=time.monotonic(),
                    max_duration_s=self.max_duration_s,
                )
                self._stream.start()
            except Exception as exc:
                logger.warning("Audio session setup failed: %s", exc)
                self._session = None
                self._release()
                _remove(path)
                raise CaptureError(SESSION_SETUP_FAILED, str(exc)) from exc
            logger.debug("Capture started: %s", path)

    def stop(self) -> AudioArtifact:
        with self._lock:
            session = self._session
            if session is None:
                raise CaptureError(NOTHING_TO_STOP)
            frames = self._frames_written
            try:
                self._release()
                size = session.path.stat().st_size if session.path.exists() else 0
            except Exception as exc:
                _remove(session.path)
                raise CaptureError(EMPTY_OR_CORRUPT, str(exc)) from exc
            finally:
                self._session = None
                self._level = 0.0

        if frames == 0 or size == 0:
            _remove(session.path)
            raise CaptureError(EMPTY_OR_CORRUPT)
        duration_s = frames / float(self.sample_rate)
        logger.debug("Capture finished: %s (%d bytes, %.2fs)", session.path, size, duration_s)
        return AudioArtifact(path=session.path, size_bytes=size, duration_s=duration_s)

    def close(self) -> None:
        """Stop capturing and delete the in-progress file, whatever the state."""
        with self._lock:
            session = self._session
            self._session = None
            self._level = 0.0
            try:
                self._release()
            finally:
                if session is not None:
                    _remove(session.path)

    def current_amplitude(self) -> float:
        if self._session is None:
            return 0.0
        return self._level

    def current_duration(self) -> float:
        session = self._session
        if session is None:
            return 0.0
        return time.monotonic() - session.started_at

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        writer = self._writer
        if self._session is None or writer is None:
            return
        if status:
            logger.debug("Input stream status: %s", status)
        samples = np.asarray(indata, dtype=np.int16)
        if samples.size:
            peak = int(np.abs(samples.astype(np.int32)).max())
            self._level = min(1.0, peak / _INT16_FULL_SCALE)
        writer.writeframes(samples.tobytes())
        self._frames_written += len(samples)

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        writer, self._writer = self._writer, None
        try:
            if stream is not None:
                stream.stop()
                stream.close()
        finally:
            if writer is not None:
                writer.close()

    def _new_recording_path(self) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        name = f"voice_recording_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.wav"
        return self._directory / name


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)
