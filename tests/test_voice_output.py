"""Tests for spoken feedback."""

import logging

from voicepos.config import Settings
from voicepos.voice_output import Pyttsx3Speaker, VoiceOutput


def test_speak_forwards_fixed_settings(speaker):
    out = VoiceOutput.from_settings(Settings(), speaker)
    out.speak("Áp dụng giảm giá 10%")
    assert speaker.spoken == [("Áp dụng giảm giá 10%", "vi-VN", 0.9, 1.0)]


def test_no_speaker_is_silent_noop():
    out = VoiceOutput()
    assert out.available is False
    out.speak("Không hiểu lệnh này")


def test_speaker_failure_is_logged(caplog):
    class Broken:
        def speak(self, text, language, rate, pitch):
            raise RuntimeError("audio device gone")

    with caplog.at_level(logging.ERROR, logger="voicepos.voice_output"):
        VoiceOutput(Broken()).speak("In hóa đơn")
    assert "Speaker failed" in caplog.text


class DummyVoice:
    def __init__(self, id, languages):
        self.id = id
        self.languages = languages


class DummyEngine:
    def __init__(self):
        self.props = {
            "rate": 200,
            "voices": [DummyVoice("gmw/en", [b"\x05en"]), DummyVoice("aav/vi", [b"\x05vi"])],
        }
        self.said = []
        self.set_calls = []

    def getProperty(self, name):
        return self.props[name]

    def setProperty(self, name, value):
        self.set_calls.append((name, value))

    def say(self, text):
        self.said.append(text)

    def runAndWait(self):
        pass


def test_pyttsx3_speaker_sets_rate_and_voice(monkeypatch):
    engine = DummyEngine()
    monkeypatch.setattr("voicepos.voice_output.pyttsx3.init", lambda driver=None: engine)
    speaker = Pyttsx3Speaker()
    speaker.speak("Thanh toán bằng thẻ", "vi-VN", 0.9, 1.0)
    speaker.close()
    assert engine.said == ["Thanh toán bằng thẻ"]
    assert ("rate", 180) in engine.set_calls
    assert ("voice", "aav/vi") in engine.set_calls


def test_pyttsx3_speaker_falls_back_to_default_voice(monkeypatch):
    engine = DummyEngine()
    engine.props["voices"] = [DummyVoice("english", ["en_US"])]
    monkeypatch.setattr("voicepos.voice_output.pyttsx3.init", lambda driver=None: engine)
    speaker = Pyttsx3Speaker()
    speaker.speak("Hủy đơn hàng hiện tại", "vi-VN", 1.0, 1.0)
    speaker.close()
    assert engine.said == ["Hủy đơn hàng hiện tại"]
    assert all(name != "voice" for name, _ in engine.set_calls)


def test_pyttsx3_engine_failure_does_not_raise(monkeypatch, caplog):
    def broken(driver=None):
        raise RuntimeError("eSpeak not installed")

    monkeypatch.setattr("voicepos.voice_output.pyttsx3.init", broken)
    speaker = Pyttsx3Speaker()
    with caplog.at_level(logging.WARNING, logger="voicepos.voice_output"):
        speaker.speak("Tạo khách hàng mới", "vi-VN", 0.9, 1.0)
        speaker.close()
    assert "Text-to-speech failed" in caplog.text
