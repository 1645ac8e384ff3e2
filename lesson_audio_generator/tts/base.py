"""
Speech synthesis interface.
"""

from abc import ABC, abstractmethod


class SpeechSynthesizer(ABC):
    """Text-to-speech capability consumed by generation and repair."""

    @abstractmethod
    def synthesize(self, text: str, voice: str) -> bytes:
        """
        Synthesize speech for ``text`` with ``voice``.

        Returns:
            Encoded audio bytes

        Raises:
            TransientSynthesisError: Rate limit, timeout or network failure
            FatalSynthesisError: Authentication, quota or request failure
        """
        pass
