"""Shared test doubles for the voice engine."""

import pytest

from voicepos.catalog import CATALOG
from voicepos.router import CommandRouter
from voicepos.session import VoiceSession
from voicepos.voice_output import VoiceOutput


class FakeCapture:
    """Records start/stop calls; tests push events through ``listener``."""

    def __init__(self):
        self.starts = 0
        self.stops = 0
        self.listener = None

    def start(self, listener):
        self.starts += 1
        self.listener = listener

    def stop(self):
        self.stops += 1


class FakeSpeaker:
    def __init__(self):
        self.spoken = []

    def speak(self, text, language, rate, pitch):
        self.spoken.append((text, language, rate, pitch))

    @property
    def messages(self):
        return [text for text, *_ in self.spoken]


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def speaker():
    return FakeSpeaker()


@pytest.fixture
def dispatched():
    return []


@pytest.fixture
def router(dispatched):
    router = CommandRouter()
    for intent in CATALOG:
        router.register(intent.action, dispatched.append)
    return router


@pytest.fixture
def session(capture, router, speaker):
    return VoiceSession(capture, router, VoiceOutput(speaker))
