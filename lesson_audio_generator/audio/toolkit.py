"""
Audio introspection and mixing interface.

Assembly, repair and corruption detection only touch audio through this
interface so they can be exercised with a fake toolkit in tests.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple


class AudioToolkit(ABC):
    """Pure audio operations on encoded audio bytes."""

    #: File extension (without dot) of the audio this toolkit produces
    extension: str = "wav"

    @abstractmethod
    def measure_duration_ms(self, audio: bytes) -> int:
        """
        Measure the duration of an encoded fragment by inspecting it.

        Raises:
            AudioAnalysisError: If the bytes cannot be decoded
        """
        pass

    @abstractmethod
    def concat_with_silence(self, fragments: Sequence[bytes], pause_durations_ms: Sequence[int],
                            leading_silence_ms: int = 0) -> bytes:
        """
        Concatenate fragments, each followed by its pause.

        Args:
            fragments: Encoded fragments; an empty bytes object contributes no audio
            pause_durations_ms: Silence appended after each fragment
            leading_silence_ms: Silence placed before the first fragment

        Returns:
            One encoded audio blob
        """
        pass

    @abstractmethod
    def mix_with_delays(self, base_audio: bytes, overlays: List[Tuple[bytes, int]]) -> bytes:
        """
        Mix fragments onto a base audio in a single pass.

        Each overlay is delayed to start at its offset in milliseconds and summed
        with the base. The output lasts as long as the longest input.
        """
        pass

    @abstractmethod
    def peak_level_db(self, audio: bytes) -> float:
        """
        Peak level of the fragment in dBFS (``-inf`` for digital silence).

        Raises:
            AudioAnalysisError: If level analysis fails
        """
        pass
