"""
Retry and throttle wrapper for speech synthesizers.
"""

import logging
import time
from typing import Callable

from ..config import Config
from ..errors import TransientSynthesisError
from .base import SpeechSynthesizer


logger = logging.getLogger(__name__)


class RetryingSynthesizer(SpeechSynthesizer):
    """
    Retries transient synthesis failures with exponential backoff and spaces
    consecutive calls by a fixed delay.

    Fatal errors propagate immediately. When retries are exhausted the last
    transient error propagates, aborting only the phrase or entry in progress.
    """

    def __init__(self, inner: SpeechSynthesizer, max_retries: int = None,
                 base_delay: float = None, throttle_seconds: float = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.inner = inner
        self.max_retries = max_retries if max_retries is not None else Config.SYNTHESIS_MAX_RETRIES
        self.base_delay = base_delay if base_delay is not None else Config.SYNTHESIS_BACKOFF_SECONDS
        self.throttle_seconds = (
            throttle_seconds if throttle_seconds is not None else Config.SYNTHESIS_DELAY_SECONDS
        )
        self._sleep = sleep
        self._clock = clock
        self._last_call = None

    def synthesize(self, text: str, voice: str) -> bytes:
        for attempt in range(self.max_retries):
            self._throttle()
            try:
                return self.inner.synthesize(text, voice)
            except TransientSynthesisError as e:
                if attempt == self.max_retries - 1:
                    logger.error(f"Synthesis failed after {self.max_retries} attempts: {e}")
                    raise

                delay = self.base_delay * (2 ** attempt)  # 2, 4, 8, 16 seconds
                logger.warning(
                    f"{e}; retrying in {delay:.0f}s (attempt {attempt + 1}/{self.max_retries})"
                )
                self._sleep(delay)

        raise ValueError("max_retries must be at least 1")

    def _throttle(self) -> None:
        now = self._clock()
        if self._last_call is not None:
            remaining = self.throttle_seconds - (now - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
        self._last_call = self._clock()
