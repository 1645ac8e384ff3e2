"""
Error handling system for the Lesson Audio Generator.

This module provides centralized error definitions, the exception taxonomy
used across generation and repair, and actionable error messages for the
batch tools.
"""

import logging
from enum import Enum
from typing import List, Optional, Dict, Any
from dataclasses import dataclass


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors that can occur during processing."""
    CONFIGURATION = "configuration"
    SYNTHESIS = "synthesis"
    DATA_INTEGRITY = "data_integrity"
    INVARIANT = "invariant"
    AUDIO_PROCESSING = "audio_processing"
    FILE_SYSTEM = "file_system"
    BUDGET = "budget"


@dataclass
class ProcessingError:
    """Represents a processing error with context and guidance."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    details: str
    suggested_actions: List[str]
    error_code: str
    context: Dict[str, Any] = None

    def __post_init__(self):
        if self.context is None:
            self.context = {}


class LessonAudioError(Exception):
    """Base exception for Lesson Audio Generator errors."""

    def __init__(self, processing_error: ProcessingError):
        self.processing_error = processing_error
        super().__init__(processing_error.message)


class ConfigurationError(LessonAudioError):
    """Raised when the configuration is incomplete or invalid."""

    @classmethod
    def from_problems(cls, problems: List[str]) -> 'ConfigurationError':
        return cls(ProcessingError(
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            message="Invalid configuration",
            details="; ".join(problems),
            suggested_actions=[
                "Set OPENAI_API_KEY in the environment",
                "Check LESSON_AUDIO_* environment overrides"
            ],
            error_code="CONFIG_001",
            context={'problems': problems}
        ))


class SynthesisError(LessonAudioError):
    """Raised when speech synthesis fails."""

    transient = False

    def __init__(self, message: str, text: str = "", voice: str = "",
                 cause: Optional[BaseException] = None, error_code: str = "TTS_000"):
        super().__init__(ProcessingError(
            category=ErrorCategory.SYNTHESIS,
            severity=ErrorSeverity.ERROR,
            message=message,
            details=f"{type(cause).__name__}: {cause}" if cause else "",
            suggested_actions=self._suggested_actions(),
            error_code=error_code,
            context={'text': text[:100], 'voice': voice}
        ))
        self.text = text
        self.voice = voice
        self.cause = cause

    def _suggested_actions(self) -> List[str]:
        return ["Check the synthesis provider status and credentials"]


class TransientSynthesisError(SynthesisError):
    """Rate limit, timeout or network failure; safe to retry."""

    transient = True

    def _suggested_actions(self) -> List[str]:
        return [
            "Wait a few minutes and run the batch again",
            "Increase SYNTHESIS_BACKOFF_SECONDS if rate limits persist"
        ]


class FatalSynthesisError(SynthesisError):
    """Authentication, quota or request failure; retrying will not help."""

    def _suggested_actions(self) -> List[str]:
        return [
            "Verify OPENAI_API_KEY is valid",
            "Check the account quota and billing status",
            "Verify the requested voice and model exist"
        ]


class BudgetExceededError(FatalSynthesisError):
    """Raised before a synthesis call that would exceed the configured budget."""

    def _suggested_actions(self) -> List[str]:
        return ["Raise the budget limit in cost-tracker.json or reset the tracker"]


class DataIntegrityError(LessonAudioError):
    """Raised when persisted state (manifests, referenced files) is unusable."""

    def __init__(self, message: str, details: str = "", context: Dict[str, Any] = None):
        super().__init__(ProcessingError(
            category=ErrorCategory.DATA_INTEGRITY,
            severity=ErrorSeverity.ERROR,
            message=message,
            details=details,
            suggested_actions=[
                "Inspect the referenced manifest or audio file",
                "Regenerate the affected lesson if the manifest cannot be fixed"
            ],
            error_code="DATA_001",
            context=context
        ))


class InvariantViolationError(LessonAudioError):
    """Raised on programming errors that break invariants the repair logic relies on."""

    def __init__(self, message: str, details: str = "", context: Dict[str, Any] = None):
        super().__init__(ProcessingError(
            category=ErrorCategory.INVARIANT,
            severity=ErrorSeverity.CRITICAL,
            message=message,
            details=details,
            suggested_actions=[
                "Stop processing this language/level and inspect its manifests",
                "Report the problem with the log output attached"
            ],
            error_code="INVARIANT_001",
            context=context
        ))


class AudioAnalysisError(LessonAudioError):
    """Raised when audio bytes cannot be decoded or analyzed."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(ProcessingError(
            category=ErrorCategory.AUDIO_PROCESSING,
            severity=ErrorSeverity.WARNING,
            message=message,
            details=details,
            suggested_actions=[
                "Check that the audio file is a supported format (WAV, FLAC, OGG, MP3)",
                "Verify that libsndfile supports the codec"
            ],
            error_code="AUDIO_001"
        ))


class ErrorHandler:
    """
    Centralized error handling and reporting system.

    Collects per-lesson and per-entry failures of a batch run so the CLI can
    report counts and continue past individual failures.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.errors: List[ProcessingError] = []
        self.warnings: List[ProcessingError] = []

    def add_error(self, error: ProcessingError) -> None:
        """Add an error to the collection."""
        if error.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]:
            self.errors.append(error)
        elif error.severity == ErrorSeverity.WARNING:
            self.warnings.append(error)

        log_level = {
            ErrorSeverity.INFO: logging.INFO,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL
        }[error.severity]

        self.logger.log(log_level, f"[{error.error_code}] {error.message}")
        if error.details:
            self.logger.log(log_level, f"Details: {error.details}")

    def add_exception(self, exc: LessonAudioError, **context) -> ProcessingError:
        """Record a library exception, merging extra context into it."""
        error = exc.processing_error
        error.context.update(context)
        self.add_error(error)
        return error

    def has_errors(self) -> bool:
        """Check if any errors have been recorded."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been recorded."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> Dict[str, Any]:
        """Get a summary of all errors and warnings."""
        return {
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
            'errors': [self._format_error_for_summary(e) for e in self.errors],
            'warnings': [self._format_error_for_summary(e) for e in self.warnings]
        }

    def _format_error_for_summary(self, error: ProcessingError) -> Dict[str, Any]:
        """Format error for summary display."""
        return {
            'code': error.error_code,
            'category': error.category.value,
            'severity': error.severity.value,
            'message': error.message,
            'context': error.context,
            'suggested_actions': error.suggested_actions
        }

    def clear_errors(self) -> None:
        """Clear all recorded errors and warnings."""
        self.errors.clear()
        self.warnings.clear()

    def handle_lesson_failure(self, lesson_id: str, error: Exception) -> ProcessingError:
        """Build the error record for a lesson whose generation was aborted."""
        if isinstance(error, TransientSynthesisError):
            return ProcessingError(
                category=ErrorCategory.SYNTHESIS,
                severity=ErrorSeverity.ERROR,
                message=f"Lesson {lesson_id} aborted: synthesis retries exhausted",
                details=str(error),
                suggested_actions=[
                    "Run the batch again later; the lesson is still pending",
                    "Check provider rate limits"
                ],
                error_code="LESSON_001",
                context={'lesson_id': lesson_id}
            )

        if isinstance(error, FatalSynthesisError):
            return ProcessingError(
                category=ErrorCategory.SYNTHESIS,
                severity=ErrorSeverity.ERROR,
                message=f"Lesson {lesson_id} aborted: synthesis failed",
                details=str(error),
                suggested_actions=error.processing_error.suggested_actions,
                error_code="LESSON_002",
                context={'lesson_id': lesson_id}
            )

        if isinstance(error, InvariantViolationError):
            return ProcessingError(
                category=ErrorCategory.INVARIANT,
                severity=ErrorSeverity.CRITICAL,
                message=f"Lesson {lesson_id} violated a timing invariant",
                details=str(error),
                suggested_actions=error.processing_error.suggested_actions,
                error_code="LESSON_003",
                context={'lesson_id': lesson_id}
            )

        return ProcessingError(
            category=ErrorCategory.AUDIO_PROCESSING,
            severity=ErrorSeverity.ERROR,
            message=f"Lesson {lesson_id} failed",
            details=f"{type(error).__name__}: {error}",
            suggested_actions=[
                "Check the lesson text for unusual content",
                "Run with --verbose for more details"
            ],
            error_code="LESSON_004",
            context={'lesson_id': lesson_id}
        )

    def handle_vocabulary_failure(self, text: str, error: Exception,
                                  filename: str = None) -> ProcessingError:
        """Build the error record for a vocabulary item that could not be produced."""
        return ProcessingError(
            category=ErrorCategory.SYNTHESIS,
            severity=ErrorSeverity.ERROR,
            message=f"Vocabulary item failed: \"{text}\"",
            details=f"{type(error).__name__}: {error}",
            suggested_actions=[
                "Run the batch again to retry pending items"
            ],
            error_code="VOCAB_001",
            context={'text': text, 'filename': filename}
        )

    def handle_unrepaired_entry(self, filename: str, text: str) -> ProcessingError:
        """Build the warning for a corrupt vocabulary entry that stayed corrupt."""
        return ProcessingError(
            category=ErrorCategory.AUDIO_PROCESSING,
            severity=ErrorSeverity.WARNING,
            message=f"Vocabulary entry {filename} still corrupt after regeneration",
            details=f"Text: \"{text}\"",
            suggested_actions=[
                "Run the repair command again to retry",
                "Edit the entry text in vocab-manifest.json if it cannot be spoken"
            ],
            error_code="REPAIR_001",
            context={'filename': filename, 'text': text}
        )


# Global error handler instance
error_handler = ErrorHandler()
