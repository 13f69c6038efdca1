"""Shared error codes, user-facing messages and pipeline exceptions."""

from __future__ import annotations

from typing import Optional

# Capture
PERMISSION_DENIED = "PERMISSION_DENIED"
SESSION_SETUP_FAILED = "SESSION_SETUP_FAILED"
ALREADY_IN_PROGRESS = "ALREADY_IN_PROGRESS"
NOTHING_TO_STOP = "NOTHING_TO_STOP"
EMPTY_OR_CORRUPT = "EMPTY_OR_CORRUPT"

# State
ALREADY_RECORDING = "ALREADY_RECORDING"
NOT_RECORDING = "NOT_RECORDING"

# Network
NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
TIMEOUT = "TIMEOUT"
SERVER_ERROR = "SERVER_ERROR"

# Protocol / content
API_KEY_MISSING = "API_KEY_MISSING"
NO_DATA = "NO_DATA"
INVALID_RESPONSE = "INVALID_RESPONSE"
NO_SPEECH_DETECTED = "NO_SPEECH_DETECTED"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone permission is required for voice recording.",
    SESSION_SETUP_FAILED: "Failed to set up the audio session.",
    ALREADY_IN_PROGRESS: "Recording is already in progress.",
    NOTHING_TO_STOP: "No active recording to stop.",
    EMPTY_OR_CORRUPT: "The recorded audio is empty or unreadable.",
    ALREADY_RECORDING: "A recording cycle is already active.",
    NOT_RECORDING: "Not currently recording.",
    NETWORK_UNAVAILABLE: "Network is unavailable. Please check your connection.",
    TIMEOUT: "Request timed out. Please try again.",
    SERVER_ERROR: "Server error ({status}). Please try again later.",
    API_KEY_MISSING: "API key is missing. Please configure your Groq API key.",
    NO_DATA: "No data received from server.",
    INVALID_RESPONSE: "Invalid response format.",
    NO_SPEECH_DETECTED: "No speech detected in audio.",
}


def user_message(code: str, status_code: Optional[int] = None) -> str:
    """Return the human readable message for an error code."""
    template = ERROR_MESSAGES.get(code, "Something went wrong. Please try again.")
    if code == SERVER_ERROR:
        return template.format(status=status_code if status_code is not None else "unknown")
    return template


class VoiceBoardError(Exception):
    """Base exception carrying one of the error codes above."""

    def __init__(self, code: str, detail: str = "") -> None:
        self.code = code
        self.detail = detail or ERROR_MESSAGES.get(code, code)
        super().__init__(self.detail)


class CaptureError(VoiceBoardError):
    """Raised by capture backends."""


class StateError(VoiceBoardError):
    """Raised when a controller transition is requested from the wrong state."""
