"""Microphone speech capture backed by ``speech_recognition``.

* Each call to :meth:`RecognizerCapture.start` records one phrase from the
  microphone on a background thread (single-shot, like a non-continuous
  browser recognizer).
* The phrase is sent to the Google Web Speech recognizer in the configured
  language and the best alternative is reported as a :class:`Final` event,
  followed by :class:`Ended`.
* Failures are reported as :class:`Error` events using the browser error
  codes (``no-speech``, ``audio-capture``, ``network``).

Google's batch endpoint returns no partial hypotheses, so this backend never
emits :class:`Interim` events.
"""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from typing import Any, Optional

import speech_recognition as sr

from voicepos.voice_input import (
    CaptureConfig,
    Ended,
    Error,
    Final,
    Listener,
    SpeechEvent,
    clamp_confidence,
)

log = logging.getLogger(__name__)


def best_alternative(response: Any) -> Optional[Final]:
    """Pick the top hypothesis out of a ``recognize_google(show_all=True)`` reply.

    The reply is an empty list when nothing was recognized, otherwise a dict
    with an ``alternative`` list. Only the first alternative is used.
    """
    if not isinstance(response, dict):
        return None
    alternatives = response.get("alternative") or []
    if not alternatives:
        return None
    top = alternatives[0]
    transcript = (top.get("transcript") or "").strip()
    if not transcript:
        return None
    return Final(transcript, clamp_confidence(top.get("confidence", 0.0)))


def transcribe_wav(
    data: bytes,
    language: str = "vi-VN",
    recognizer: Optional[sr.Recognizer] = None,
) -> Optional[Final]:
    """Recognize a complete WAV file. Returns ``None`` when nothing was heard."""
    recognizer = recognizer or sr.Recognizer()
    with sr.AudioFile(io.BytesIO(data)) as source:
        audio = recognizer.record(source)
    response = recognizer.recognize_google(audio, language=language, show_all=True)
    return best_alternative(response)


class RecognizerCapture:
    """:class:`~voicepos.voice_input.SpeechCapture` over the default microphone.

    Example usage::
        capture = RecognizerCapture(CaptureConfig(language="vi-VN"))
        capture.start(print)
        # ... later
        capture.stop()

    When ``loop`` is given, events are handed to the listener on that event
    loop's thread instead of the worker thread.
    """

    def __init__(
        self,
        config: CaptureConfig = CaptureConfig(),
        timeout: float = 5.0,
        phrase_time_limit: float = 8.0,
        device_index: Optional[int] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        recognizer: Optional[sr.Recognizer] = None,
    ):
        self.config = config
        self.timeout = timeout
        self.phrase_time_limit = phrase_time_limit
        self.device_index = device_index
        self._loop = loop
        self._recognizer = recognizer or sr.Recognizer()
        # Events from an activation older than the current one are dropped.
        self._activation = 0
        self._stop_requested = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def is_available() -> bool:
        """Whether PyAudio is installed and at least one input device exists."""
        try:
            return bool(sr.Microphone.list_microphone_names())
        except (AttributeError, OSError) as exc:
            log.warning("Speech capture unavailable: %s", exc)
            return False

    def start(self, listener: Listener) -> None:
        previous = self._thread
        self._activation += 1
        self._stop_requested = threading.Event()
        self._thread = threading.Thread(
            target=self._listen_once,
            args=(listener, self._activation, self._stop_requested, previous),
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        # The recognizer cannot be interrupted mid-phrase; whatever was
        # already captured is still recognized and reported.
        self._stop_requested.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _emit(self, listener: Listener, activation: int, event: SpeechEvent) -> None:
        def deliver() -> None:
            if activation != self._activation:
                log.debug("Dropping %r from superseded activation %d", event, activation)
                return
            listener(event)

        if self._loop is not None:
            self._loop.call_soon_threadsafe(deliver)
        else:
            deliver()

    def _listen_once(
        self,
        listener: Listener,
        activation: int,
        stop_requested: threading.Event,
        previous: Optional[threading.Thread],
    ) -> None:
        # One microphone stream at a time: wait for the previous activation.
        if previous is not None and previous.is_alive():
            previous.join()
        try:
            try:
                with sr.Microphone(device_index=self.device_index) as source:
                    audio = self._recognizer.listen(
                        source, timeout=self.timeout, phrase_time_limit=self.phrase_time_limit
                    )
            except sr.WaitTimeoutError:
                self._emit(listener, activation, Error("no-speech"))
                return
            except OSError as exc:
                log.error("Microphone error: %s", exc)
                self._emit(listener, activation, Error("audio-capture"))
                return

            if stop_requested.is_set():
                log.debug("Stop requested during capture, recognizing what was heard")
            try:
                response = self._recognizer.recognize_google(
                    audio, language=self.config.language, show_all=True
                )
            except sr.RequestError as exc:
                log.error("Speech recognition request failed: %s", exc)
                self._emit(listener, activation, Error("network"))
                return
            event = best_alternative(response)
            self._emit(listener, activation, event if event is not None else Error("no-speech"))
        finally:
            self._emit(listener, activation, Ended())


# Simple demo when run directly
if __name__ == "__main__":
    capture = RecognizerCapture()
    if not capture.is_available():
        raise SystemExit("No microphone found.")
    print("Say something in Vietnamese…")
    capture.start(lambda event: print("Event:", event))
    capture.join()
