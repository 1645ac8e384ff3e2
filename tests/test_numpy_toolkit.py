"""
Tests for the numpy/soundfile audio toolkit using real encoded audio.
"""

import io

import numpy as np
import pytest
import soundfile as sf

from lesson_audio_generator.audio import NumpyAudioToolkit
from lesson_audio_generator.errors import AudioAnalysisError


SAMPLE_RATE = 24000


def tone(duration_ms, amplitude=0.5, frequency=440.0, sample_rate=SAMPLE_RATE):
    """Encode a sine tone as WAV bytes."""
    t = np.arange(int(sample_rate * duration_ms / 1000)) / sample_rate
    samples = (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format='WAV', subtype='PCM_16')
    return buffer.getvalue()


def silence(duration_ms):
    return tone(duration_ms, amplitude=0.0)


@pytest.fixture
def numpy_toolkit():
    return NumpyAudioToolkit(sample_rate=SAMPLE_RATE, output_format="wav")


class TestNumpyAudioToolkit:
    """Test measurement, concatenation, mixing and level analysis."""

    def test_measure_duration(self, numpy_toolkit):
        """Test duration is read from the audio itself."""
        assert numpy_toolkit.measure_duration_ms(tone(750)) == 750

    def test_measure_resampled_input(self, numpy_toolkit):
        """Test fragments at another sample rate keep their duration."""
        assert numpy_toolkit.measure_duration_ms(tone(500, sample_rate=16000)) == 500

    def test_concat_matches_timing(self, numpy_toolkit):
        """Test leading silence, fragments and pauses add up exactly."""
        audio = numpy_toolkit.concat_with_silence([tone(500), tone(300)], [1000, 0], leading_silence_ms=200)

        assert numpy_toolkit.measure_duration_ms(audio) == 2000

    def test_concat_skips_empty_fragments(self, numpy_toolkit):
        """Test a freestanding silence contributes only its pause."""
        audio = numpy_toolkit.concat_with_silence([b"", tone(400)], [600, 500])

        assert numpy_toolkit.measure_duration_ms(audio) == 1500

    def test_concat_length_mismatch(self, numpy_toolkit):
        """Test fragments and pauses must pair up."""
        with pytest.raises(ValueError):
            numpy_toolkit.concat_with_silence([tone(100)], [])

    def test_mix_keeps_base_length(self, numpy_toolkit):
        """Test overlays inside the base do not change its duration."""
        mixed = numpy_toolkit.mix_with_delays(silence(2000), [(tone(500), 1000)])

        assert numpy_toolkit.measure_duration_ms(mixed) == 2000
        assert numpy_toolkit.peak_level_db(mixed) > -10.0

    def test_mix_places_overlay_at_offset(self, numpy_toolkit):
        """Test the overlay lands where it was asked to."""
        mixed = numpy_toolkit.mix_with_delays(silence(2000), [(tone(500), 1000)])
        samples, _ = sf.read(io.BytesIO(mixed), dtype='float32')

        assert np.max(np.abs(samples[:SAMPLE_RATE // 2])) == 0.0
        assert np.max(np.abs(samples[SAMPLE_RATE + 1200:SAMPLE_RATE + 6000])) > 0.3

    def test_mix_extends_to_longest_input(self, numpy_toolkit):
        """Test an overlay running past the end."""
        mixed = numpy_toolkit.mix_with_delays(silence(2000), [(tone(500), 1800)])

        assert numpy_toolkit.measure_duration_ms(mixed) == 2300

    def test_peak_level(self, numpy_toolkit):
        """Test speech-like and silent fragments."""
        assert numpy_toolkit.peak_level_db(tone(500, amplitude=0.5)) == pytest.approx(-6.0, abs=1.0)
        assert numpy_toolkit.peak_level_db(silence(500)) == float('-inf')

    def test_undecodable_audio(self, numpy_toolkit):
        """Test garbage bytes raise an analysis error."""
        with pytest.raises(AudioAnalysisError):
            numpy_toolkit.peak_level_db(b"definitely not audio" * 100)

    def test_unsupported_output_format(self):
        """Test formats without an encoder mapping."""
        with pytest.raises(ValueError):
            NumpyAudioToolkit(output_format="aiff")
