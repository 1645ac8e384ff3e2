"""
Tests for the error handling system and progress tracking.
"""

import pytest

from lesson_audio_generator.config import Config
from lesson_audio_generator.errors import (
    BudgetExceededError,
    ConfigurationError,
    DataIntegrityError,
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    FatalSynthesisError,
    InvariantViolationError,
    ProcessingError,
    TransientSynthesisError,
)
from lesson_audio_generator.progress import ProcessingStage, ProgressTracker


class TestErrorHandler:
    """Test error collection and classification."""

    def test_errors_and_warnings_are_separated(self):
        """Test severity routing."""
        handler = ErrorHandler()
        handler.add_error(handler.handle_unrepaired_entry("00003.wav", "Merci"))
        handler.add_error(handler.handle_vocabulary_failure("Oui", FatalSynthesisError("quota")))

        summary = handler.get_error_summary()

        assert summary['warning_count'] == 1
        assert summary['error_count'] == 1
        assert summary['errors'][0]['code'] == "VOCAB_001"
        assert handler.has_errors() and handler.has_warnings()

    def test_info_is_only_logged(self):
        """Test informational records are not collected."""
        handler = ErrorHandler()
        handler.add_error(ProcessingError(
            category=ErrorCategory.FILE_SYSTEM, severity=ErrorSeverity.INFO,
            message="note", details="", suggested_actions=[], error_code="INFO_001"
        ))

        assert not handler.has_errors()
        assert not handler.has_warnings()

    def test_add_exception_merges_context(self):
        """Test library exceptions are recorded with extra context."""
        handler = ErrorHandler()

        error = handler.add_exception(DataIntegrityError("bad manifest", context={'path': "p"}), scope="fr/level1")

        assert error.context == {'path': "p", 'scope': "fr/level1"}
        assert handler.errors == [error]

    @pytest.mark.parametrize("error,code,severity", [
        (TransientSynthesisError("429"), "LESSON_001", ErrorSeverity.ERROR),
        (FatalSynthesisError("401"), "LESSON_002", ErrorSeverity.ERROR),
        (BudgetExceededError("over budget"), "LESSON_002", ErrorSeverity.ERROR),
        (InvariantViolationError("gap"), "LESSON_003", ErrorSeverity.CRITICAL),
        (DataIntegrityError("empty"), "LESSON_004", ErrorSeverity.ERROR),
    ])
    def test_lesson_failure_classification(self, error, code, severity):
        """Test each failure kind maps to its error code."""
        record = ErrorHandler().handle_lesson_failure("lesson1", error)

        assert record.error_code == code
        assert record.severity == severity
        assert record.context['lesson_id'] == "lesson1"

    def test_clear_errors(self):
        """Test a handler can be reused."""
        handler = ErrorHandler()
        handler.add_error(handler.handle_lesson_failure("lesson1", FatalSynthesisError("x")))
        handler.clear_errors()

        assert not handler.has_errors()


class TestSynthesisErrors:
    """Test the synthesis exception taxonomy."""

    def test_transient_flag(self):
        """Test retryable and non-retryable errors."""
        assert TransientSynthesisError("x").transient
        assert not FatalSynthesisError("x").transient
        assert not BudgetExceededError("x").transient

    def test_context_truncates_text(self):
        """Test long texts are shortened in error context."""
        error = FatalSynthesisError("x", text="a" * 500, voice="nova")

        assert len(error.processing_error.context['text']) == 100
        assert error.processing_error.context['voice'] == "nova"


class TestConfigValidation:
    """Test configuration checks."""

    def test_missing_api_key(self, monkeypatch):
        """Test the key is required for synthesis."""
        monkeypatch.setattr(Config, "OPENAI_API_KEY", "")

        with pytest.raises(ConfigurationError) as exc_info:
            Config.validate()

        assert "OPENAI_API_KEY" in exc_info.value.processing_error.details
        Config.validate(require_api_key=False)

    def test_all_problems_are_listed(self, monkeypatch):
        """Test several invalid settings at once."""
        monkeypatch.setattr(Config, "OPENAI_API_KEY", "key")
        monkeypatch.setattr(Config, "DEFAULT_VOICE", "robot")
        monkeypatch.setattr(Config, "AUDIO_FORMAT", "aiff")

        with pytest.raises(ConfigurationError) as exc_info:
            Config.validate()

        assert len(exc_info.value.processing_error.context['problems']) == 2


class TestProgressTracker:
    """Test stage tracking and the completion summary."""

    def test_stage_lifecycle(self):
        """Test start, update and completion of a stage."""
        tracker = ProgressTracker(enable_console_output=False)
        progress = tracker.stages[ProcessingStage.LESSON_GENERATION]
        assert progress.status == "pending"

        tracker.start_stage(ProcessingStage.LESSON_GENERATION, total_items=4)
        tracker.update_stage_progress(ProcessingStage.LESSON_GENERATION, completed_items=1, current_item="fr/lesson1")
        progress = tracker.stages[ProcessingStage.LESSON_GENERATION]

        assert progress.status == "in_progress"
        assert progress.progress_percentage == 25.0
        assert progress.current_item == "fr/lesson1"

        tracker.complete_stage(ProcessingStage.LESSON_GENERATION, details={'lessons': 4})

        assert progress.status == "completed"
        assert progress.progress_percentage == 100.0
        assert progress.duration is not None
        assert tracker.generate_completion_summary()['stage_details']['lesson_generation']['details'] == {'lessons': 4}

    def test_summary_counts_only_stages_that_ran(self):
        """Test the success rate ignores pending stages."""
        tracker = ProgressTracker(enable_console_output=False)
        tracker.start_pipeline()
        tracker.start_stage(ProcessingStage.LESSON_GENERATION)
        tracker.complete_stage(ProcessingStage.LESSON_GENERATION, success=True)
        tracker.start_stage(ProcessingStage.CATALOG_UPDATE)
        tracker.complete_stage(ProcessingStage.CATALOG_UPDATE, success=False)
        tracker.complete_pipeline(success=False)

        summary = tracker.generate_completion_summary()

        assert summary['total_stages'] == 2
        assert summary['success_rate'] == 50.0
        assert summary['stage_details']['vocabulary_repair']['status'] == "pending"

    def test_summary_data(self):
        """Test metric accumulation and reset."""
        tracker = ProgressTracker(enable_console_output=False)
        tracker.increment_summary_data(lessons_generated=2, calls_saved=5)
        tracker.increment_summary_data(lessons_generated=1)
        tracker.update_summary_data(estimated_cost=0.25)

        summary = tracker.generate_completion_summary()
        assert summary['lessons_generated'] == 3
        assert summary['calls_saved'] == 5
        assert summary['estimated_cost'] == 0.25

        tracker.reset()
        assert tracker.generate_completion_summary()['lessons_generated'] == 0

    def test_console_summary(self, capsys):
        """Test the printed summary."""
        tracker = ProgressTracker(enable_console_output=True)
        tracker.start_pipeline()
        tracker.start_stage(ProcessingStage.VOCABULARY_REPAIR, total_items=1)
        tracker.complete_stage(ProcessingStage.VOCABULARY_REPAIR)
        tracker.increment_summary_data(holes_repaired=2)
        tracker.complete_pipeline(success=True)

        output = capsys.readouterr().out
        assert "PROCESSING SUMMARY" in output
        assert "Holes Repaired: 2" in output
        assert "Lesson Generation" not in output
