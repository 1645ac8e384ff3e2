"""
Audio toolkit backed by numpy, soundfile, librosa and scipy.

All fragments are decoded to mono float samples at a common sample rate,
processed in memory and encoded once, so a lesson or a repair is a single
encode regardless of how many fragments it combines.
"""

import io
import logging
from typing import List, Sequence, Tuple

import numpy as np
import librosa
import soundfile as sf
from scipy import signal

from ..config import Config
from ..errors import AudioAnalysisError
from .toolkit import AudioToolkit


logger = logging.getLogger(__name__)


class NumpyAudioToolkit(AudioToolkit):
    """In-process implementation of the audio toolkit."""

    # soundfile (format, subtype) per output extension
    FORMATS = {
        'wav': ('WAV', 'PCM_16'),
        'flac': ('FLAC', 'PCM_16'),
        'ogg': ('OGG', 'VORBIS'),
        'mp3': ('MP3', 'MPEG_LAYER_III'),
    }

    HIGH_PASS_CUTOFF_HZ = 80.0

    def __init__(self, sample_rate: int = Config.SAMPLE_RATE, output_format: str = None,
                 fade_duration: float = Config.FADE_DURATION):
        """
        Initialize the toolkit.

        Args:
            sample_rate: Sample rate every fragment is converted to
            output_format: Encoded output format (wav, flac, ogg, mp3)
            fade_duration: Cosine fade applied at fragment edges, in seconds
        """
        output_format = (output_format or Config.AUDIO_FORMAT).lower()
        if output_format not in self.FORMATS:
            raise ValueError(f"Unsupported output format: {output_format}")

        self.sample_rate = sample_rate
        self.extension = output_format
        self.fade_duration = fade_duration

    def measure_duration_ms(self, audio: bytes) -> int:
        samples = self._decode(audio)
        return self._samples_to_ms(len(samples))

    def concat_with_silence(self, fragments: Sequence[bytes], pause_durations_ms: Sequence[int],
                            leading_silence_ms: int = 0) -> bytes:
        if len(fragments) != len(pause_durations_ms):
            raise ValueError(
                f"Got {len(fragments)} fragments but {len(pause_durations_ms)} pause durations"
            )

        # Offsets are placed from cumulative milliseconds so the encoded audio
        # lines up with timing computed from measured durations.
        pieces = []
        cursor_ms = 0
        written = 0

        def place(samples: np.ndarray, duration_ms: int) -> None:
            nonlocal cursor_ms, written
            cursor_ms += duration_ms
            target = self._ms_to_samples(cursor_ms) - written
            pieces.append(self._fit_length(samples, target))
            written += target

        if leading_silence_ms > 0:
            place(np.zeros(0, dtype=np.float32), leading_silence_ms)

        for fragment, pause_ms in zip(fragments, pause_durations_ms):
            samples = self._apply_fade_effects(self._decode(fragment))
            place(samples, self._samples_to_ms(len(samples)))
            if pause_ms > 0:
                place(np.zeros(0, dtype=np.float32), pause_ms)

        combined = np.concatenate(pieces) if pieces else np.zeros(0, dtype=np.float32)
        logger.debug(
            f"Concatenated {len(fragments)} fragments into {self._samples_to_ms(len(combined))}ms"
        )
        return self._encode(combined)

    def mix_with_delays(self, base_audio: bytes, overlays: List[Tuple[bytes, int]]) -> bytes:
        base = self._decode(base_audio)
        placed = []
        length = len(base)
        for fragment, delay_ms in overlays:
            samples = self._apply_fade_effects(self._decode(fragment))
            offset = self._ms_to_samples(max(0, delay_ms))
            placed.append((samples, offset))
            length = max(length, offset + len(samples))

        mixed = np.zeros(length, dtype=np.float32)
        mixed[:len(base)] += base
        for samples, offset in placed:
            mixed[offset:offset + len(samples)] += samples

        logger.debug(f"Mixed {len(overlays)} fragments onto {self._samples_to_ms(len(base))}ms base")
        return self._encode(mixed)

    def peak_level_db(self, audio: bytes) -> float:
        samples = self._apply_high_pass_filter(self._decode(audio))
        if len(samples) == 0:
            return float('-inf')

        peak = float(np.max(np.abs(samples)))
        if peak <= 0.0:
            return float('-inf')
        return 20.0 * np.log10(peak)

    def _decode(self, audio: bytes) -> np.ndarray:
        """Decode to mono float32 samples at the toolkit sample rate."""
        if not audio:
            return np.zeros(0, dtype=np.float32)

        try:
            data, source_rate = sf.read(io.BytesIO(audio), dtype='float32', always_2d=False)
        except (RuntimeError, TypeError, ValueError) as e:
            raise AudioAnalysisError("Failed to decode audio", details=str(e))

        if data.ndim > 1:
            data = data.mean(axis=1)

        if source_rate != self.sample_rate and len(data) > 0:
            data = librosa.resample(data, orig_sr=source_rate, target_sr=self.sample_rate)

        return data.astype(np.float32, copy=False)

    def _encode(self, samples: np.ndarray) -> bytes:
        file_format, subtype = self.FORMATS[self.extension]
        buffer = io.BytesIO()
        sf.write(
            buffer,
            np.clip(samples, -1.0, 1.0),
            self.sample_rate,
            format=file_format,
            subtype=subtype
        )
        return buffer.getvalue()

    def _apply_fade_effects(self, samples: np.ndarray) -> np.ndarray:
        """Apply cosine fade in/out to prevent clicks at fragment edges."""
        fade_samples = min(int(self.fade_duration * self.sample_rate), len(samples) // 4)
        if fade_samples <= 0:
            return samples

        faded = samples.copy()
        faded[:fade_samples] *= 0.5 * (1 - np.cos(np.linspace(0, np.pi, fade_samples)))
        faded[-fade_samples:] *= 0.5 * (1 + np.cos(np.linspace(0, np.pi, fade_samples)))
        return faded

    def _apply_high_pass_filter(self, samples: np.ndarray) -> np.ndarray:
        """Remove DC offset and rumble before measuring peaks."""
        if len(samples) < 100:
            return samples

        nyquist = self.sample_rate / 2
        b, a = signal.butter(2, self.HIGH_PASS_CUTOFF_HZ / nyquist, btype='high')
        try:
            return signal.filtfilt(b, a, samples)
        except ValueError as e:
            raise AudioAnalysisError("High-pass filtering failed", details=str(e))

    @staticmethod
    def _fit_length(samples: np.ndarray, length: int) -> np.ndarray:
        if len(samples) >= length:
            return samples[:length]
        return np.concatenate([samples, np.zeros(length - len(samples), dtype=np.float32)])

    def _ms_to_samples(self, ms: int) -> int:
        return int(round(ms * self.sample_rate / 1000))

    def _samples_to_ms(self, count: int) -> int:
        return int(round(count * 1000 / self.sample_rate))
