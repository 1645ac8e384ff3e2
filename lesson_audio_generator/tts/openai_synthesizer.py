"""
OpenAI text-to-speech backend.
"""

import logging

from openai import (
    OpenAI,
    APIConnectionError,
    APIStatusError,
    InternalServerError,
    RateLimitError,
)

from ..config import Config
from ..errors import FatalSynthesisError, TransientSynthesisError
from .base import SpeechSynthesizer


logger = logging.getLogger(__name__)

# OpenAI response_format for each output extension
RESPONSE_FORMATS = {
    'wav': 'wav',
    'flac': 'flac',
    'mp3': 'mp3',
    'ogg': 'opus',
}


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Synthesizes speech with the OpenAI audio API and classifies its failures."""

    def __init__(self, api_key: str = None, model: str = None, audio_format: str = None,
                 speed: float = None, timeout: float = None, client: OpenAI = None):
        """
        Initialize the synthesizer.

        Args:
            api_key: OpenAI API key (defaults to Config.OPENAI_API_KEY)
            model: TTS model name
            audio_format: Output extension, mapped to an OpenAI response format
            speed: Speaking speed passed to the API
            timeout: Request timeout in seconds
            client: Preconfigured client, mainly for tests
        """
        self.model = model or Config.TTS_MODEL
        self.audio_format = (audio_format or Config.AUDIO_FORMAT).lower()
        if self.audio_format not in RESPONSE_FORMATS:
            raise ValueError(f"Unsupported audio format for OpenAI speech: {self.audio_format}")
        self.speed = speed if speed is not None else Config.TTS_SPEED
        # Retries are handled by RetryingSynthesizer
        self.client = client or OpenAI(
            api_key=api_key or Config.OPENAI_API_KEY,
            timeout=timeout or Config.TTS_REQUEST_TIMEOUT,
            max_retries=0
        )

    def synthesize(self, text: str, voice: str) -> bytes:
        logger.debug(f"Synthesizing {len(text)} chars with voice {voice}: {text[:60]!r}")
        try:
            response = self.client.audio.speech.create(
                model=self.model,
                voice=voice,
                input=text,
                response_format=RESPONSE_FORMATS[self.audio_format],
                speed=self.speed
            )
        except RateLimitError as e:
            if getattr(e, 'code', None) == 'insufficient_quota':
                raise FatalSynthesisError(
                    "OpenAI quota exhausted", text=text, voice=voice, cause=e, error_code="TTS_003"
                )
            raise TransientSynthesisError(
                "OpenAI rate limit hit", text=text, voice=voice, cause=e, error_code="TTS_001"
            )
        except APIConnectionError as e:
            # Includes APITimeoutError
            raise TransientSynthesisError(
                "Could not reach OpenAI", text=text, voice=voice, cause=e, error_code="TTS_002"
            )
        except InternalServerError as e:
            raise TransientSynthesisError(
                f"OpenAI server error ({e.status_code})", text=text, voice=voice, cause=e,
                error_code="TTS_002"
            )
        except APIStatusError as e:
            raise FatalSynthesisError(
                f"OpenAI rejected the request ({e.status_code})", text=text, voice=voice, cause=e,
                error_code="TTS_004"
            )

        audio = response.content
        if not audio:
            raise TransientSynthesisError(
                "OpenAI returned empty audio", text=text, voice=voice, error_code="TTS_005"
            )
        return audio
