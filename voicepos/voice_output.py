"""Spoken feedback for processed voice commands.

:class:`VoiceOutput` hands every feedback message to a :class:`Speaker` with a
fixed language, rate and pitch. Speech is best effort: with no speaker the
call is a no-op, and speaker failures are logged instead of interrupting the
command pipeline.

:class:`Pyttsx3Speaker` is the local speaker. It runs ``pyttsx3`` on a single
worker thread so ``speak`` returns immediately.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional, Protocol

import pyttsx3

from voicepos.config import Settings

log = logging.getLogger(__name__)


class Speaker(Protocol):
    def speak(self, text: str, language: str, rate: float, pitch: float) -> None:
        ...


# ---------------------------------------------------------------------------
# Main wrapper
# ---------------------------------------------------------------------------
class VoiceOutput:
    """Speak feedback messages through an optional speaker."""

    def __init__(
        self,
        speaker: Optional[Speaker] = None,
        language: str = "vi-VN",
        rate: float = 0.9,
        pitch: float = 1.0,
    ):
        """Create a VoiceOutput instance.

        Parameters
        ----------
        speaker: Optional[Speaker]
            Text-to-speech backend. ``None`` disables speech entirely.
        language: str
            BCP-47 tag passed to the speaker with every message.
        rate, pitch: float
            Relative speaking rate and pitch, 1.0 being the voice default.
        """
        self.speaker = speaker
        self.language = language
        self.rate = rate
        self.pitch = pitch

    @classmethod
    def from_settings(cls, settings: Settings, speaker: Optional[Speaker] = None) -> "VoiceOutput":
        return cls(speaker, settings.language, settings.speech_rate, settings.speech_pitch)

    @property
    def available(self) -> bool:
        return self.speaker is not None

    def speak(self, text: str) -> None:
        if self.speaker is None:
            log.debug("No speaker, skipping feedback: %s", text)
            return
        try:
            self.speaker.speak(text, self.language, self.rate, self.pitch)
        except Exception:
            log.exception("Speaker failed for %r", text)


# ---------------------------------------------------------------------------
# pyttsx3 backend
# ---------------------------------------------------------------------------
def _language_tags(voice: Any) -> list:
    tags = []
    for lang in getattr(voice, "languages", None) or []:
        if isinstance(lang, bytes):
            lang = lang.decode("utf-8", errors="ignore")
        tags.append(re.sub(r"[^a-z_\-]", "", str(lang).lower()))
    return tags


class Pyttsx3Speaker:
    """Offline speech through the platform engine (espeak, SAPI5, NSSpeech)."""

    def __init__(self, driver_name: Optional[str] = None):
        self.driver_name = driver_name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tts")
        # Only touched from the executor thread.
        self._engine = None
        self._base_rate: Optional[int] = None
        self._voices: Dict[str, Optional[str]] = {}

    def speak(self, text: str, language: str, rate: float, pitch: float) -> None:
        future = self._executor.submit(self._speak_sync, text, language, rate, pitch)
        future.add_done_callback(self._report)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    @staticmethod
    def _report(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            log.warning("Text-to-speech failed: %s", exc)

    def _ensure_engine(self):
        if self._engine is None:
            self._engine = pyttsx3.init(self.driver_name)
            self._base_rate = int(self._engine.getProperty("rate"))
        return self._engine

    def _voice_for(self, engine, language: str) -> Optional[str]:
        if language not in self._voices:
            prefix = language.split("-")[0].lower()
            found = None
            for voice in engine.getProperty("voices"):
                voice_id = str(voice.id).lower()
                tags = _language_tags(voice)
                if any(t == prefix or t.startswith(prefix + "-") or t.startswith(prefix + "_") for t in tags) \
                        or voice_id == prefix or voice_id.endswith("/" + prefix):
                    found = voice.id
                    break
            if found is None:
                log.warning("No %s voice installed, using the default voice", language)
            self._voices[language] = found
        return self._voices[language]

    def _speak_sync(self, text: str, language: str, rate: float, pitch: float) -> None:
        engine = self._ensure_engine()
        engine.setProperty("rate", int(self._base_rate * rate))
        voice_id = self._voice_for(engine, language)
        if voice_id is not None:
            engine.setProperty("voice", voice_id)
        if pitch != 1.0:
            log.debug("pyttsx3 has no pitch control, ignoring pitch=%s", pitch)
        engine.say(text)
        engine.runAndWait()
