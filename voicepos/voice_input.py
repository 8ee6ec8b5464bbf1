"""Speech capture interface.

The session never talks to a microphone or recognizer directly. It is given
a :class:`SpeechCapture` and receives recognition events as one of the small
event types below. Loose payloads coming from outside (HTTP, a browser
bridge) are decoded with :func:`decode_event` before they reach the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, Union


@dataclass(frozen=True)
class Interim:
    transcript: str
    confidence: float


@dataclass(frozen=True)
class Final:
    transcript: str
    confidence: float


@dataclass(frozen=True)
class Error:
    code: str


@dataclass(frozen=True)
class Ended:
    pass


SpeechEvent = Union[Interim, Final, Error, Ended]
Listener = Callable[[SpeechEvent], None]


@dataclass(frozen=True)
class CaptureConfig:
    """Recognition settings every capture backend is expected to honour."""

    language: str = "vi-VN"
    continuous: bool = False
    interim_results: bool = True
    max_alternatives: int = 1


class SpeechCapture(Protocol):
    def start(self, listener: Listener) -> None:
        """Begin one listening activation and report events to ``listener``."""

    def stop(self) -> None:
        """Ask the backend to end the current activation."""


def clamp_confidence(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"confidence must be a number, got {value!r}")
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"confidence must be a number, got {value!r}")
    if confidence != confidence:  # NaN
        raise ValueError("confidence must be a number, got NaN")
    return min(max(confidence, 0.0), 1.0)


def decode_event(payload: Mapping[str, Any]) -> SpeechEvent:
    """Turn a loosely-typed recognition payload into a :data:`SpeechEvent`.

    Accepted shapes::

        {"type": "result", "transcript": "...", "confidence": 0.9, "isFinal": true}
        {"type": "error", "error": "no-speech"}
        {"type": "end"}

    A result without ``confidence`` is treated as confidence 0.
    Raises :class:`ValueError` for anything else.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("event payload must be an object")
    kind = payload.get("type")
    if kind == "result":
        transcript = payload.get("transcript")
        if not isinstance(transcript, str):
            raise ValueError("result event needs a string 'transcript'")
        confidence = clamp_confidence(payload.get("confidence", 0.0))
        if payload.get("isFinal", False) is True:
            return Final(transcript, confidence)
        return Interim(transcript, confidence)
    if kind == "error":
        code = payload.get("error") or payload.get("code")
        if not isinstance(code, str) or not code:
            raise ValueError("error event needs an 'error' code")
        return Error(code)
    if kind == "end":
        return Ended()
    raise ValueError(f"unknown event type: {kind!r}")
