"""
Configuration settings for the Lesson Audio Generator.
"""

import os
from pathlib import Path


class Config:
    """Configuration class for application settings."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent
    DATA_ROOT = Path(os.environ.get("LESSON_AUDIO_ROOT", PROJECT_ROOT / "data"))

    # Blob store prefixes (relative to DATA_ROOT)
    CONTENT_PREFIX = "lessons-content"
    AUDIO_PREFIX = "lessons-audio"

    # Speech synthesis settings
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    TTS_MODEL = os.environ.get("LESSON_AUDIO_TTS_MODEL", "tts-1")
    DEFAULT_VOICE = os.environ.get("LESSON_AUDIO_VOICE", "alloy")
    AVAILABLE_VOICES = ["alloy", "echo", "fable", "onyx", "nova", "shimmer"]
    TTS_SPEED = 1.0
    TTS_REQUEST_TIMEOUT = 60.0  # seconds
    TTS_COST_PER_1000_CHARS = 0.015
    TTS_BUDGET_LIMIT = 0.0  # 0 disables the budget guard

    # Audio settings
    AUDIO_FORMAT = os.environ.get("LESSON_AUDIO_FORMAT", "wav")
    SAMPLE_RATE = 24000
    FADE_DURATION = 0.01  # seconds, applied at fragment edges

    # Throttling and retries
    SYNTHESIS_DELAY_SECONDS = 0.5
    LESSON_DELAY_SECONDS = 1.0
    REPAIR_COOLDOWN_SECONDS = 1.0
    SYNTHESIS_MAX_RETRIES = 5
    SYNTHESIS_BACKOFF_SECONDS = 2.0

    # Corruption detection
    SILENCE_THRESHOLD_DB = float(os.environ.get("LESSON_AUDIO_SILENCE_DB", "-35.0"))
    MIN_FILE_SIZE_BYTES = 1000

    # Storage layout (relative to a scope directory)
    VOCAB_AUDIO_DIR = "vocab-audio"
    VOCAB_TEXT_DIR = "vocab-text"
    VOCAB_MANIFEST_FILE = "vocab-manifest.json"
    LESSONS_DIR = "lessons"
    VOCAB_LISTS_DIR = "vocab-lists"
    STATUS_FILE = "status.json"
    METADATA_SUFFIX = ".metadata.json"
    CATALOG_FILE = "manifest.json"
    COST_TRACKER_FILE = "cost-tracker.json"
    LESSON_SOURCE_TAG = "lesson-generated"

    @classmethod
    def ensure_directories(cls):
        """Create necessary directories if they don't exist."""
        for directory in [cls.DATA_ROOT / cls.CONTENT_PREFIX, cls.DATA_ROOT / cls.AUDIO_PREFIX]:
            directory.mkdir(parents=True, exist_ok=True)

    @classmethod
    def validate(cls, require_api_key: bool = True) -> None:
        """
        Validate configuration values.

        Args:
            require_api_key: Whether a speech synthesis API key is required

        Raises:
            ConfigurationError: If any setting is invalid, listing every problem
        """
        from .errors import ConfigurationError

        problems = []
        if require_api_key and not cls.OPENAI_API_KEY:
            problems.append("OPENAI_API_KEY is not set")
        if cls.DEFAULT_VOICE not in cls.AVAILABLE_VOICES:
            problems.append(
                f"Unknown default voice '{cls.DEFAULT_VOICE}' "
                f"(available: {', '.join(cls.AVAILABLE_VOICES)})"
            )
        if cls.AUDIO_FORMAT not in ("wav", "flac", "mp3", "ogg"):
            problems.append(f"Unsupported audio format: {cls.AUDIO_FORMAT}")
        if cls.SILENCE_THRESHOLD_DB >= 0:
            problems.append(
                f"Silence threshold must be negative dBFS, got {cls.SILENCE_THRESHOLD_DB}"
            )

        if problems:
            raise ConfigurationError.from_problems(problems)
