from __future__ import annotations

from pathlib import Path

import pytest

from errors import SERVER_ERROR, TIMEOUT, user_message
from models import ApiErrorResponse, AudioArtifact, TranscriptionRequest, TranscriptionResponse


def test_response_helpers() -> None:
    response = TranscriptionResponse.from_dict({"text": "  Hi there \n", "duration": 2.54})

    assert response.cleaned_text == "Hi there"
    assert response.has_valid_text is True
    assert response.detected_language == "unknown"
    assert response.formatted_duration == "2.5s"
    assert response.segments is None


def test_response_rejects_malformed_segments() -> None:
    with pytest.raises(ValueError):
        TranscriptionResponse.from_dict({"text": "hi", "segments": [{"id": 0}]})


def test_error_response_only_needs_message() -> None:
    parsed = ApiErrorResponse.from_dict({"error": {"message": "Rate limit reached"}})
    assert parsed is not None
    assert parsed.message == "Rate limit reached"
    assert parsed.code is None
    assert ApiErrorResponse.from_dict({"detail": "nope"}) is None


def test_request_omits_language_for_auto_detect() -> None:
    request = TranscriptionRequest(
        audio=b"x", filename="audio.m4a", content_type="audio/m4a", model="whisper-large-v3"
    )
    assert request.form_fields() == {"model": "whisper-large-v3", "response_format": "json"}

    request.language = "en"
    assert request.form_fields()["language"] == "en"


def test_artifact_discard_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / "voice_recording.m4a"
    path.write_bytes(b"abc")
    artifact = AudioArtifact(path=path, size_bytes=3, duration_s=0.1)

    assert artifact.container == "m4a"
    assert artifact.read_bytes() == b"abc"
    artifact.discard()
    artifact.discard()
    assert not path.exists()


def test_user_messages() -> None:
    assert user_message(SERVER_ERROR, 401) == "Server error (401). Please try again later."
    assert user_message(TIMEOUT).startswith("Request timed out")
    assert user_message("SOMETHING_ELSE")
