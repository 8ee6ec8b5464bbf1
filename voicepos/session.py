"""Listening session for the POS voice engine.

``VoiceSession`` owns the listening state and is the only object that talks
to the speech capture backend. Each final transcript runs the whole command
pipeline synchronously:

    match -> extract -> dispatch (confident matches only) -> speak -> history

Example usage::
    router = CommandRouter()
    router.register(ActionKind.ADD_PRODUCT, cart.add_from_voice)
    session = VoiceSession(capture, router, VoiceOutput(Pyttsx3Speaker()))
    session.start()
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from voicepos.catalog import CATALOG, Intent
from voicepos.history import HISTORY_CAPACITY, CommandHistory
from voicepos.router import CONFIDENCE_THRESHOLD, CommandResult, CommandRouter, build_result
from voicepos.voice_input import Ended, Error, Final, Interim, SpeechCapture, SpeechEvent
from voicepos.voice_output import VoiceOutput

log = logging.getLogger(__name__)

RECOGNITION_ERROR_MESSAGE = "Xin lỗi, tôi không nghe rõ. Vui lòng thử lại."


class CapabilityUnavailable(RuntimeError):
    """No speech capture backend exists; listening can never start."""


class SessionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"


class VoiceSession:
    def __init__(
        self,
        capture: Optional[SpeechCapture],
        router: CommandRouter,
        voice: Optional[VoiceOutput] = None,
        history: Optional[CommandHistory] = None,
        catalog: Tuple[Intent, ...] = CATALOG,
        threshold: float = CONFIDENCE_THRESHOLD,
    ):
        self._capture = capture
        self.supported = capture is not None
        if not self.supported:
            log.warning("No speech capture available, voice commands are disabled")
        self.router = router
        self.voice = voice or VoiceOutput()
        self._history = history if history is not None else CommandHistory(HISTORY_CAPACITY)
        self.catalog = catalog
        self.threshold = threshold

        self.state = SessionState.IDLE
        self.transcript = ""
        self.confidence = 0.0
        self.last_result: Optional[CommandResult] = None

    @property
    def listening(self) -> bool:
        return self.state is SessionState.LISTENING

    @property
    def history_capacity(self) -> int:
        return self._history.capacity

    @property
    def history(self) -> Tuple[CommandResult, ...]:
        return self._history.snapshot()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if not self.supported:
            raise CapabilityUnavailable("speech recognition is not available")
        if self.listening:
            log.debug("start() while already listening, ignored")
            return
        self.state = SessionState.LISTENING
        self.transcript = ""
        self.confidence = 0.0
        try:
            self._capture.start(self.handle_event)
        except Exception:
            self.state = SessionState.IDLE
            raise
        log.info("Listening")

    def stop(self) -> None:
        if not self.listening:
            return
        self._capture.stop()
        self.state = SessionState.IDLE
        log.info("Stopped listening")

    # ------------------------------------------------------------------
    # Capture events
    # ------------------------------------------------------------------
    def handle_event(self, event: SpeechEvent) -> Optional[CommandResult]:
        if isinstance(event, Final):
            return self.on_final(event.transcript, event.confidence)
        if isinstance(event, Interim):
            self.on_interim(event.transcript, event.confidence)
        elif isinstance(event, Error):
            self.on_error(event.code)
        elif isinstance(event, Ended):
            self.on_end()
        else:
            raise TypeError(f"unsupported speech event: {event!r}")
        return None

    def on_interim(self, transcript: str, confidence: float) -> None:
        self.transcript = transcript
        self.confidence = confidence

    def on_final(self, transcript: str, confidence: float) -> CommandResult:
        """Run one final transcript through the command pipeline.

        Feedback, history and the return to idle happen even if the host
        handler raises; the handler's exception is then re-raised.
        """
        self.transcript = transcript
        self.confidence = confidence
        result = build_result(transcript, confidence, self.catalog, self.threshold)
        log.info("Heard %r (%.2f) -> %s", transcript, confidence, result.action.value)
        try:
            if result.success:
                self.router.dispatch(result)
        finally:
            self.last_result = result
            self.voice.speak(result.message)
            self._history.push(result)
            self.state = SessionState.IDLE
        return result

    def on_error(self, code: str) -> None:
        log.warning("Speech recognition error: %s", code)
        self.state = SessionState.IDLE
        self.voice.speak(RECOGNITION_ERROR_MESSAGE)

    def on_end(self) -> None:
        self.state = SessionState.IDLE

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "supported": self.supported,
            "transcript": self.transcript,
            "confidence": self.confidence,
            "lastResult": self.last_result.to_dict() if self.last_result else None,
        }
