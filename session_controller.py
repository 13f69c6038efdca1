"""State-machine based recording cycle orchestration.

All transitions happen on the asyncio event loop that calls ``begin()`` and
``end()``.  Capture start/stop run in worker threads and transcription is
awaited, so neither blocks the loop; their results are applied back on the
loop before any state is touched.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Callable, Optional

from errors import (
    ALREADY_RECORDING,
    EMPTY_OR_CORRUPT,
    INVALID_RESPONSE,
    NOT_RECORDING,
    SESSION_SETUP_FAILED,
    CaptureError,
    StateError,
    user_message,
)
from interfaces import CaptureBackend, Transcriber
from models import RecordingState, TranscriptionResult

logger = logging.getLogger(__name__)

StateCallback = Callable[[RecordingState, RecordingState], None]
ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
CredentialProvider = Callable[[], str]

_TERMINAL_STATES = (RecordingState.SUCCESS, RecordingState.ERROR)


class RecordingController:
    def __init__(
        self,
        backend: CaptureBackend,
        transcriber: Transcriber,
        credential_provider: CredentialProvider,
        max_duration_s: float = 60.0,
        success_display_s: float = 1.5,
        error_display_s: float = 3.0,
        on_state_change: Optional[StateCallback] = None,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._backend = backend
        self._transcriber = transcriber
        self._credential_provider = credential_provider
        self._max_duration_s = max_duration_s
        self._success_display_s = success_display_s
        self._error_display_s = error_display_s
        self._on_state_change = on_state_change
        self._on_result = on_result
        self._on_error = on_error

        self._state = RecordingState.IDLE
        self._error_message = ""
        self._cycle_id = 0
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._reset_handle: Optional[asyncio.TimerHandle] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._starting: Optional[asyncio.Future] = None
        self._last_result: Optional[TranscriptionResult] = None

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def error_message(self) -> str:
        """Message of the current ``ERROR`` state, empty otherwise."""
        return self._error_message

    @property
    def last_result(self) -> Optional[TranscriptionResult]:
        return self._last_result

    async def __aenter__(self) -> "RecordingController":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def begin(self) -> bool:
        """Start a new recording cycle.

        Returns False when the capture backend could not start (the cycle then
        ends in ``ERROR``) or the controller was closed while it started.
        Raises ``StateError`` while another cycle is active.
        """
        if self._state in _TERMINAL_STATES:
            self._cancel_reset()
            self._error_message = ""
            self._transition(RecordingState.IDLE)
        if self._state != RecordingState.IDLE:
            raise StateError(ALREADY_RECORDING)

        self._cycle_id += 1
        cycle = self._cycle_id
        self._last_result = None
        starting = asyncio.get_running_loop().create_future()
        self._starting = starting
        self._transition(RecordingState.RECORDING)
        started = False
        try:
            started = await self._start_backend(cycle)
        finally:
            if self._starting is starting:
                self._starting = None
            starting.set_result(started)
        return started

    async def _start_backend(self, cycle: int) -> bool:
        try:
            await asyncio.to_thread(self._backend.start)
        except CaptureError as exc:
            if cycle == self._cycle_id:
                self._fail(exc.code, exc.detail)
            return False
        except Exception as exc:  # pragma: no cover - defensive
            if cycle == self._cycle_id:
                self._fail(SESSION_SETUP_FAILED, str(exc))
            return False

        if cycle != self._cycle_id or self._state != RecordingState.RECORDING:
            # Torn down while starting; aclose() releases the capture.
            return False
        loop = asyncio.get_running_loop()
        self._timeout_handle = loop.call_later(self._max_duration_s, self._on_max_duration, cycle)
        return True

    async def end(self) -> TranscriptionResult:
        """Stop recording and wait for the transcription of this cycle.

        A release that arrives while the backend is still starting waits for
        the start to settle first.  If the start failed the call raises
        ``StateError(NOT_RECORDING)``; the failure itself was already reported.
        """
        if self._state != RecordingState.RECORDING:
            raise StateError(NOT_RECORDING)
        starting = self._starting
        if starting is not None:
            cycle = self._cycle_id
            await asyncio.shield(starting)
            if cycle != self._cycle_id or self._state != RecordingState.RECORDING:
                raise StateError(NOT_RECORDING)
        self._cancel_timeout()
        task = self._start_processing(self._cycle_id)
        return await asyncio.shield(task)

    async def wait_for_cycle(self) -> Optional[TranscriptionResult]:
        """Wait for the in-flight cycle, if any, and return its result."""
        task = self._cycle_task
        if task is not None and not task.done():
            return await asyncio.shield(task)
        return self._last_result

    def current_amplitude(self) -> float:
        if self._state != RecordingState.RECORDING:
            return 0.0
        return self._backend.current_amplitude()

    def recording_duration(self) -> float:
        if self._state != RecordingState.RECORDING:
            return 0.0
        return self._backend.current_duration()

    async def amplitude_levels(self, interval_s: float = 0.1) -> AsyncIterator[float]:
        """Yield level samples at a fixed rate for as long as recording lasts."""
        while self._state == RecordingState.RECORDING:
            yield self.current_amplitude()
            await asyncio.sleep(interval_s)

    async def aclose(self) -> None:
        """Tear down: drop timers, abandon the cycle, stop capture and delete temp audio."""
        self._cancel_timeout()
        self._cancel_reset()
        self._cycle_id += 1
        starting = self._starting
        if starting is not None:
            # Closing while start() runs would leave a capture nobody owns.
            await asyncio.shield(starting)
        task, self._cycle_task = self._cycle_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        try:
            await asyncio.to_thread(self._backend.close)
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("Capture backend cleanup failed: %s", exc)
        self._error_message = ""
        self._transition(RecordingState.IDLE)

    def _start_processing(self, cycle: int) -> asyncio.Task:
        self._transition(RecordingState.PROCESSING)
        task = asyncio.get_running_loop().create_task(self._process(cycle))
        self._cycle_task = task
        return task

    async def _process(self, cycle: int) -> TranscriptionResult:
        try:
            artifact = await asyncio.to_thread(self._backend.stop)
        except CaptureError as exc:
            result = TranscriptionResult.failed(exc.code, exc.detail)
            self._finish(cycle, result)
            return result
        except Exception as exc:
            logger.exception("Capture backend failed to stop")
            result = TranscriptionResult.failed(EMPTY_OR_CORRUPT, str(exc))
            self._finish(cycle, result)
            return result

        try:
            result = await self._transcriber.transcribe(artifact, self._credential_provider())
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Transcriber raised instead of returning a result")
            artifact.discard()
            result = TranscriptionResult.failed(INVALID_RESPONSE, str(exc))
        self._finish(cycle, result)
        return result

    def _finish(self, cycle: int, result: TranscriptionResult) -> None:
        if cycle != self._cycle_id:
            return
        self._last_result = result
        if not result.ok:
            self._fail(result.error_code, result.detail, result.status_code)
            return
        if self._on_result:
            self._on_result(result.text)
        self._transition(RecordingState.SUCCESS)
        self._schedule_reset(self._success_display_s, cycle)

    def _on_max_duration(self, cycle: int) -> None:
        self._timeout_handle = None
        if cycle != self._cycle_id or self._state != RecordingState.RECORDING:
            return
        logger.info("Recording stopped automatically after %.1f seconds", self._max_duration_s)
        self._start_processing(cycle)

    def _fail(self, code: str, detail: str = "", status_code: Optional[int] = None) -> None:
        self._cancel_timeout()
        message = user_message(code, status_code)
        logger.warning("Recording cycle failed: %s (%s)", code, detail or message)
        self._error_message = message
        self._transition(RecordingState.ERROR)
        self._emit_error(code, message)
        self._schedule_reset(self._error_display_s, self._cycle_id)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _schedule_reset(self, delay_s: float, cycle: int) -> None:
        self._cancel_reset()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(delay_s, self._reset_to_idle, cycle)

    def _reset_to_idle(self, cycle: int) -> None:
        self._reset_handle = None
        if cycle != self._cycle_id or self._state not in _TERMINAL_STATES:
            return
        self._error_message = ""
        self._transition(RecordingState.IDLE)

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _transition(self, to_state: RecordingState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("State %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
