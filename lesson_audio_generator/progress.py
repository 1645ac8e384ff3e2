"""
Run progress and completion summary.

Each command runs a subset of the stages below; the tracker times them,
counts items and prints the summary shown at the end of a run.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


class ProcessingStage(Enum):
    """Phases of a lesson audio run, in execution order."""
    VOCABULARY_GENERATION = "vocabulary_generation"
    LESSON_GENERATION = "lesson_generation"
    VOCABULARY_REPAIR = "vocabulary_repair"
    LESSON_RECONSTRUCTION = "lesson_reconstruction"
    CATALOG_UPDATE = "catalog_update"

    @property
    def display_name(self) -> str:
        return self.value.replace('_', ' ').title()


# Counters reported in the summary, in print order
SUMMARY_COUNTERS = (
    'vocabulary_entries',
    'lessons_generated',
    'lessons_failed',
    'synthesis_calls',
    'calls_saved',
    'holes_repaired',
    'lessons_reconstructed',
)


@dataclass
class StageProgress:
    stage: ProcessingStage
    status: str = "pending"  # pending, in_progress, completed, failed
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_items: int = 0
    completed_items: int = 0
    current_item: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        elif self.start_time:
            return datetime.now() - self.start_time
        return None

    @property
    def progress_percentage(self) -> float:
        if self.status == "completed":
            return 100.0
        if self.total_items <= 0:
            return 0.0
        return self.completed_items / self.total_items * 100


class ProgressTracker:
    """
    Times the stages of one run and accumulates its counters.

    Console output can be disabled for tests and library use; the log
    records are emitted either way.
    """

    def __init__(self, enable_console_output: bool = True):
        self.logger = logging.getLogger(__name__)
        self.enable_console_output = enable_console_output
        self.reset()

    def reset(self) -> None:
        """Forget all stage state and counters."""
        self.stages: Dict[ProcessingStage, StageProgress] = {
            stage: StageProgress(stage=stage) for stage in ProcessingStage
        }
        self.pipeline_start_time: Optional[datetime] = None
        self.pipeline_end_time: Optional[datetime] = None
        self.summary_data: Dict[str, Any] = {}

    def start_pipeline(self) -> None:
        self.pipeline_start_time = datetime.now()
        self.logger.info("🚀 Starting lesson audio pipeline")
        if self.enable_console_output:
            print("🚀 Starting lesson audio pipeline")
            print("=" * 50)

    def start_stage(self, stage: ProcessingStage, total_items: int = 0) -> None:
        """
        Start a stage.

        Args:
            stage: Stage to start; restarting a stage resets its counts
            total_items: Number of items (lists, lessons, scopes) the stage will process
        """
        self.stages[stage] = StageProgress(
            stage=stage, status="in_progress", start_time=datetime.now(), total_items=total_items
        )

        self.logger.info(f"Starting stage: {stage.display_name}")
        if self.enable_console_output:
            print(f"\n📋 {stage.display_name}")
            if total_items > 0:
                print(f"   Processing {total_items} items...")

    def update_stage_progress(self, stage: ProcessingStage, completed_items: int,
                              current_item: str = "") -> None:
        """Record how many items of a stage are done and which one finished last."""
        progress = self.stages[stage]
        progress.completed_items = completed_items
        if current_item:
            progress.current_item = current_item

        if progress.total_items > 0:
            self.logger.debug(
                f"{stage.value}: {completed_items}/{progress.total_items} "
                f"({progress.progress_percentage:.1f}%) {current_item}"
            )
            # Roughly every tenth of the stage
            if self.enable_console_output and completed_items % max(1, progress.total_items // 10) == 0:
                print(f"   Progress: {completed_items}/{progress.total_items} "
                      f"({progress.progress_percentage:.1f}%)")

    def complete_stage(self, stage: ProcessingStage, success: bool = True,
                       details: Dict[str, Any] = None) -> None:
        progress = self.stages[stage]
        progress.status = "completed" if success else "failed"
        progress.end_time = datetime.now()
        if details:
            progress.details.update(details)

        duration = progress.duration
        duration_str = f" ({duration.total_seconds():.1f}s)" if duration else ""

        if success:
            self.logger.info(f"✅ Completed stage: {stage.display_name}{duration_str}")
            if self.enable_console_output:
                print(f"   ✅ Completed{duration_str}")
        else:
            self.logger.error(f"❌ Failed stage: {stage.display_name}{duration_str}")
            if self.enable_console_output:
                print(f"   ❌ Failed{duration_str}")

    def complete_pipeline(self, success: bool = True) -> None:
        """
        Finish the run and print the summary.

        Args:
            success: False when any lesson, list or scope failed
        """
        self.pipeline_end_time = datetime.now()
        summary = self.generate_completion_summary()

        if success:
            self.logger.info("🎉 Pipeline completed successfully")
            if self.enable_console_output:
                print("\n🎉 Pipeline completed successfully!")
        else:
            self.logger.error("❌ Pipeline finished with failures")
            if self.enable_console_output:
                print("\n❌ Pipeline finished with failures")

        if self.enable_console_output:
            self._print_completion_summary(summary)

    def generate_completion_summary(self) -> Dict[str, Any]:
        total_duration = None
        if self.pipeline_start_time and self.pipeline_end_time:
            total_duration = self.pipeline_end_time - self.pipeline_start_time

        # Only stages that actually ran count towards the success rate
        ran = [s for s in self.stages.values() if s.status != "pending"]
        completed_stages = sum(1 for s in ran if s.status == "completed")

        summary = {
            'pipeline_duration': total_duration.total_seconds() if total_duration else None,
            'stages_completed': completed_stages,
            'stages_failed': sum(1 for s in ran if s.status == "failed"),
            'total_stages': len(ran),
            'success_rate': (completed_stages / len(ran)) * 100 if ran else 0,
            'estimated_cost': self.summary_data.get('estimated_cost', 0.0),
            'stage_details': {
                stage.value: {
                    'status': progress.status,
                    'duration': progress.duration.total_seconds() if progress.duration else None,
                    'items_processed': progress.completed_items,
                    'total_items': progress.total_items,
                    'details': progress.details
                }
                for stage, progress in self.stages.items()
            },
            'timestamp': datetime.now().isoformat()
        }
        for counter in SUMMARY_COUNTERS:
            summary[counter] = self.summary_data.get(counter, 0)
        return summary

    def _print_completion_summary(self, summary: Dict[str, Any]) -> None:
        print("\n" + "=" * 50)
        print("📊 PROCESSING SUMMARY")
        print("=" * 50)

        duration = summary.get('pipeline_duration')
        if duration:
            print(f"⏱️  Total Duration: {duration:.1f} seconds")

        print(f"📈 Success Rate: {summary['success_rate']:.1f}%")
        print(f"✅ Stages Completed: {summary['stages_completed']}/{summary['total_stages']}")
        if summary['stages_failed'] > 0:
            print(f"❌ Stages Failed: {summary['stages_failed']}")

        print("\n📋 CONTENT PROCESSED:")
        print(f"   📝 Vocabulary Entries: {summary['vocabulary_entries']}")
        print(f"   🎧 Lessons Generated: {summary['lessons_generated']}")
        if summary['lessons_failed'] > 0:
            print(f"   ⚠️  Lessons Failed: {summary['lessons_failed']}")
        print(f"   🔊 Synthesis Calls: {summary['synthesis_calls']} "
              f"({summary['calls_saved']} saved by reuse)")
        print(f"   🔧 Holes Repaired: {summary['holes_repaired']}")
        print(f"   🩹 Lessons Reconstructed: {summary['lessons_reconstructed']}")
        print(f"   💰 Estimated Cost: ${summary['estimated_cost']:.4f}")

        print("\n📋 STAGE BREAKDOWN:")
        for stage in ProcessingStage:
            details = summary['stage_details'][stage.value]
            if details['status'] == 'pending':
                continue
            status_icon = "✅" if details['status'] == 'completed' else "❌" if details['status'] == 'failed' else "⏸️"
            duration_str = f" ({details['duration']:.1f}s)" if details.get('duration') else ""
            items_str = ""
            if details['total_items'] > 0:
                items_str = f" - {details['items_processed']}/{details['total_items']} items"
            print(f"   {status_icon} {stage.display_name}{duration_str}{items_str}")

        print("=" * 50)

    def update_summary_data(self, **kwargs) -> None:
        """Set summary values, replacing earlier ones."""
        self.summary_data.update(kwargs)

    def increment_summary_data(self, **kwargs) -> None:
        """Add to numeric summary counters."""
        for key, value in kwargs.items():
            self.summary_data[key] = self.summary_data.get(key, 0) + value


# Global progress tracker instance
progress_tracker = ProgressTracker()
