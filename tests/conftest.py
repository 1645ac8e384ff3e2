"""
Pytest configuration and shared fixtures.

Provides a temporary blob store, a fake audio toolkit whose "audio" is a small
JSON header describing duration and peak level, and a fake synthesizer that
records every call. Hypothesis is configured for property-based tests.
"""

import json

import pytest
from hypothesis import settings, Verbosity

from lesson_audio_generator.audio.toolkit import AudioToolkit
from lesson_audio_generator.content.sources import LessonSource
from lesson_audio_generator.errors import AudioAnalysisError
from lesson_audio_generator.models import Scope
from lesson_audio_generator.storage.blob_store import LocalBlobStore
from lesson_audio_generator.tts.base import SpeechSynthesizer
from lesson_audio_generator.vocab.store import VocabularyStore


# Configure Hypothesis for property-based testing
settings.register_profile("lesson_audio",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None
)
settings.load_profile("lesson_audio")


def pytest_configure(config):
    config.addinivalue_line("markers", "property: property-based tests using Hypothesis")


class FakeAudioToolkit(AudioToolkit):
    """
    Deterministic stand-in for the audio toolkit.

    A fragment is a JSON header line followed by zero padding so that it passes
    the minimum size check. Concatenation and mixing produce new fragments whose
    labels record what went into them.
    """

    extension = "wav"

    def __init__(self):
        self.concat_calls = []
        self.mix_calls = []
        self.peak_calls = 0

    @staticmethod
    def fragment(duration_ms: int, label: str = "speech", peak_db: float = -6.0,
                 padding: int = 1200) -> bytes:
        header = json.dumps({'ms': duration_ms, 'label': label, 'peak': peak_db})
        return header.encode('utf-8') + b"\n" + b"\0" * padding

    @staticmethod
    def parse(audio: bytes) -> dict:
        return json.loads(audio.split(b"\n", 1)[0].decode('utf-8'))

    def measure_duration_ms(self, audio: bytes) -> int:
        if not audio:
            return 0
        return self.parse(audio)['ms']

    def concat_with_silence(self, fragments, pause_durations_ms, leading_silence_ms=0):
        self.concat_calls.append((list(fragments), list(pause_durations_ms), leading_silence_ms))
        total = leading_silence_ms + sum(pause_durations_ms)
        total += sum(self.measure_duration_ms(f) for f in fragments)
        labels = [self.parse(f)['label'] for f in fragments if f]
        return self.fragment(total, label="+".join(labels))

    def mix_with_delays(self, base_audio, overlays):
        self.mix_calls.append((base_audio, list(overlays)))
        base = self.parse(base_audio)
        placed = ",".join(f"{self.parse(f)['label']}@{delay}" for f, delay in overlays)
        return self.fragment(base['ms'], label=f"{base['label']}|mixed:{placed}")

    def peak_level_db(self, audio: bytes) -> float:
        self.peak_calls += 1
        try:
            return float(self.parse(audio)['peak'])
        except (ValueError, KeyError, UnicodeDecodeError) as e:
            raise AudioAnalysisError("Undecodable fake audio", details=str(e))


class FakeSynthesizer(SpeechSynthesizer):
    """Synthesizer that returns fake fragments and records every call."""

    def __init__(self, duration_ms: int = 800, peak_db: float = -6.0):
        self.duration_ms = duration_ms
        self.peak_db = peak_db
        self.calls = []
        self.failures = {}

    def fail_on(self, text: str, error: Exception) -> None:
        self.failures[text] = error

    def synthesize(self, text: str, voice: str) -> bytes:
        self.calls.append((text, voice))
        if text in self.failures:
            raise self.failures[text]
        return FakeAudioToolkit.fragment(self.duration_ms, label=text, peak_db=self.peak_db)


@pytest.fixture
def blob_store(tmp_path):
    """Blob store rooted in a temporary directory."""
    return LocalBlobStore(tmp_path / "data")


@pytest.fixture
def toolkit():
    return FakeAudioToolkit()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def scope():
    return Scope("french", "level1")


@pytest.fixture
def store(blob_store, scope):
    """Vocabulary store loaded for the default scope."""
    vocab_store = VocabularyStore(blob_store, extension="wav")
    vocab_store.load(scope)
    return vocab_store


@pytest.fixture
def make_lesson(scope):
    """Factory for in-memory lesson sources of the default scope."""
    def _make(lesson_id: str, text: str, voice: str = None) -> LessonSource:
        return LessonSource(
            language_id=scope.language,
            level_id=scope.level,
            lesson_id=lesson_id,
            text=text,
            path=scope.content_path(f"lessons/{lesson_id}.txt"),
            voice=voice
        )
    return _make


def write_text(blob_store, path: str, text: str) -> None:
    blob_store.write_file(path, text.encode('utf-8'))
