"""Runtime settings for the voice engine.

Values come from the environment (and a ``.env`` file if present), the same
way the assistant prototypes read their endpoints and model paths.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")


@dataclass(frozen=True)
class Settings:
    language: str = "vi-VN"
    speech_rate: float = 0.9
    speech_pitch: float = 1.0
    confidence_threshold: float = 0.70
    history_capacity: int = 10
    listen_timeout: float = 5.0
    phrase_time_limit: float = 8.0
    device_index: Optional[int] = None
    log_level: str = "INFO"


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} has an invalid value: {raw!r}") from exc


def load_settings(dotenv: bool = True) -> Settings:
    """Build :class:`Settings` from ``VOICEPOS_*`` environment variables."""
    if dotenv:
        load_dotenv()
    return Settings(
        language=os.getenv("VOICEPOS_LANGUAGE", Settings.language),
        speech_rate=_env("VOICEPOS_SPEECH_RATE", Settings.speech_rate, float),
        speech_pitch=_env("VOICEPOS_SPEECH_PITCH", Settings.speech_pitch, float),
        confidence_threshold=_env(
            "VOICEPOS_CONFIDENCE_THRESHOLD", Settings.confidence_threshold, float
        ),
        history_capacity=_env("VOICEPOS_HISTORY_CAPACITY", Settings.history_capacity, int),
        listen_timeout=_env("VOICEPOS_LISTEN_TIMEOUT", Settings.listen_timeout, float),
        phrase_time_limit=_env(
            "VOICEPOS_PHRASE_TIME_LIMIT", Settings.phrase_time_limit, float
        ),
        device_index=_env("VOICEPOS_MIC_INDEX", None, int),
        log_level=os.getenv("VOICEPOS_LOG_LEVEL", Settings.log_level).upper(),
    )
