"""Speech-to-text client for OpenAI-compatible ``/audio/transcriptions`` endpoints.

Each call uploads one recorded artifact as multipart form data, waits for the
JSON reply and classifies every outcome into a ``TranscriptionResult``.  There
is no retry loop: a retry is simply a new recording cycle.  The artifact's
backing file is deleted once the call finishes, whatever the outcome.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import httpx

from config import is_usable_api_key
from errors import (
    API_KEY_MISSING,
    EMPTY_OR_CORRUPT,
    INVALID_RESPONSE,
    NETWORK_UNAVAILABLE,
    NO_DATA,
    NO_SPEECH_DETECTED,
    SERVER_ERROR,
    TIMEOUT,
)
from models import (
    ApiErrorResponse,
    AudioArtifact,
    TranscriptionRequest,
    TranscriptionResponse,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)

TRANSCRIPTION_ENDPOINT = "/audio/transcriptions"

# container -> (upload filename, content type)
_UPLOAD_NAMES = {
    "m4a": ("audio.m4a", "audio/m4a"),
    "wav": ("audio.wav", "audio/wav"),
}


class WhisperApiTranscriber:
    def __init__(
        self,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "whisper-large-v3",
        language: Optional[str] = None,
        response_format: str = "json",
        request_timeout_s: float = 30.0,
        resource_timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = base_url.rstrip("/") + TRANSCRIPTION_ENDPOINT
        self._model = model
        self._language = language
        self._response_format = response_format
        self._request_timeout_s = request_timeout_s
        self._resource_timeout_s = (
            resource_timeout_s if resource_timeout_s is not None else request_timeout_s * 2
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(request_timeout_s))

    @property
    def url(self) -> str:
        return self._url

    async def transcribe(self, artifact: AudioArtifact, credential: str) -> TranscriptionResult:
        try:
            if not is_usable_api_key(credential):
                return TranscriptionResult.failed(API_KEY_MISSING)
            try:
                request = self.build_request(artifact)
            except OSError as exc:
                logger.warning("Could not read audio artifact %s: %s", artifact.path, exc)
                return TranscriptionResult.failed(EMPTY_OR_CORRUPT, str(exc))
            return await self._send(request, credential.strip())
        finally:
            artifact.discard()

    def build_request(self, artifact: AudioArtifact) -> TranscriptionRequest:
        filename, content_type = _UPLOAD_NAMES.get(artifact.container, _UPLOAD_NAMES["m4a"])
        return TranscriptionRequest(
            audio=artifact.read_bytes(),
            filename=filename,
            content_type=content_type,
            model=self._model,
            response_format=self._response_format,
            language=self._language,
        )

    async def _send(self, request: TranscriptionRequest, credential: str) -> TranscriptionResult:
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    self._url,
                    headers={"Authorization": f"Bearer {credential}"},
                    data=request.form_fields(),
                    files={"file": (request.filename, request.audio, request.content_type)},
                    timeout=httpx.Timeout(self._request_timeout_s),
                ),
                timeout=self._resource_timeout_s,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.warning("Transcription request timed out: %r", exc)
            return TranscriptionResult.failed(TIMEOUT, str(exc) or "timed out")
        except httpx.TransportError as exc:
            logger.warning("Transcription transport failure: %r", exc)
            return TranscriptionResult.failed(NETWORK_UNAVAILABLE, str(exc))
        return self.parse_response(response)

    def parse_response(self, response: httpx.Response) -> TranscriptionResult:
        if not 200 <= response.status_code < 300:
            detail = _error_message(response) or response.reason_phrase
            logger.warning("Transcription server error %s: %s", response.status_code, detail)
            return TranscriptionResult.failed(SERVER_ERROR, detail, status_code=response.status_code)

        if not response.content:
            return TranscriptionResult.failed(NO_DATA)

        try:
            parsed = TranscriptionResponse.from_dict(json.loads(response.content))
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning(
                "Failed to decode transcription response (%s): %s",
                exc,
                response.content[:200].decode("utf-8", errors="replace"),
            )
            return TranscriptionResult.failed(INVALID_RESPONSE, str(exc))

        if not parsed.has_valid_text:
            return TranscriptionResult.failed(NO_SPEECH_DETECTED)
        return TranscriptionResult.success(
            parsed.cleaned_text,
            language=parsed.language,
            duration_s=parsed.duration,
            segments=parsed.segments,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        error = ApiErrorResponse.from_dict(response.json())
    except (ValueError, UnicodeDecodeError):
        return ""
    return error.message if error else ""
