"""
Surgical reconstruction of lessons that use repaired vocabulary.

For every lesson whose timing manifest depends on a repaired fragment, the
fragment is mixed onto the existing final audio at each dependent segment's
recorded offset. All holes of a lesson are patched in a single mix; segment
timing is never changed.
"""

import logging
from typing import Dict, List, Tuple

from ..audio.toolkit import AudioToolkit
from ..config import Config
from ..errors import AudioAnalysisError, DataIntegrityError
from ..models import (
    LessonRepairReport,
    RepairedEntry,
    RepairStatus,
    Scope,
    TimingManifest,
    utc_now_iso,
)
from ..storage.blob_store import BlobStore
from ..lessons.timing import TimingRepository


logger = logging.getLogger(__name__)


class Reconstructor:
    """Patches final lesson audio in place after vocabulary repairs."""

    def __init__(self, blob_store: BlobStore, toolkit: AudioToolkit,
                 timing_repository: TimingRepository = None):
        self.blob_store = blob_store
        self.toolkit = toolkit
        self.timing_repository = timing_repository or TimingRepository(blob_store)

    def reconstruct(self, repaired_entries: List[RepairedEntry], scope: Scope) -> List[LessonRepairReport]:
        """
        Patch every lesson of a scope affected by the repaired entries.

        Args:
            repaired_entries: Entries successfully regenerated by the vocabulary repairer
            scope: Language/level whose lessons are examined

        Returns:
            One report per affected (or unreadable) lesson; empty when nothing
            was repaired or no lesson depends on the repaired entries
        """
        if not repaired_entries:
            logger.info(f"No repaired vocabulary in {scope}, nothing to reconstruct")
            return []

        repaired_keys = {f"{Config.VOCAB_AUDIO_DIR}/{entry.filename}" for entry in repaired_entries}
        manifest_paths = self.timing_repository.list_manifest_paths(scope)
        logger.info(f"Scanning {len(manifest_paths)} lessons in {scope} for affected segments")

        reports = []
        for path in manifest_paths:
            try:
                manifest = self.timing_repository.load(path)
            except DataIntegrityError as e:
                lesson_id = self.timing_repository.lesson_id_from_manifest_path(scope, path)
                logger.error(f"Skipping lesson {lesson_id}: {e}")
                reports.append(LessonRepairReport(lesson_id, RepairStatus.SKIPPED, message=str(e)))
                continue

            affected = manifest.affected_segments(sorted(repaired_keys))
            if not affected:
                continue

            count = sum(len(indices) for indices in affected.values())
            logger.info(f"Lesson {manifest.lesson_id}: {count} segment(s) need repair")
            reports.append(self._repair_lesson(manifest, affected))

        repaired = sum(1 for r in reports if r.status == RepairStatus.REPAIRED)
        logger.info(f"Reconstruction {scope}: {repaired}/{len(reports)} affected lessons repaired")
        return reports

    def _repair_lesson(self, manifest: TimingManifest,
                       affected: Dict[str, List[int]]) -> LessonRepairReport:
        lesson_id = manifest.lesson_id
        audio_path = self.timing_repository.audio_path(manifest)
        if not self.blob_store.exists(audio_path):
            logger.warning(f"Skipping lesson {lesson_id}: audio file not found: {audio_path}")
            return LessonRepairReport(
                lesson_id, RepairStatus.SKIPPED,
                skipped_segments=sorted(i for indices in affected.values() for i in indices),
                message=f"audio file not found: {audio_path}"
            )

        overlays: List[Tuple[bytes, int]] = []
        repaired_segments: List[int] = []
        skipped_segments: List[int] = []
        for vocab_file, indices in affected.items():
            fragment_path = manifest.scope.content_path(vocab_file)
            if not self.blob_store.exists(fragment_path):
                logger.warning(
                    f"Lesson {lesson_id}: vocabulary file {vocab_file} not found, "
                    f"skipping segments {indices}"
                )
                skipped_segments.extend(indices)
                continue

            fragment = self.blob_store.read_file(fragment_path)
            for index in indices:
                segment = manifest.segments[index]
                logger.debug(f"Lesson {lesson_id}: injecting {vocab_file} at {segment.start_ms}ms")
                overlays.append((fragment, segment.start_ms))
                repaired_segments.append(index)

        if not overlays:
            logger.warning(f"Skipping lesson {lesson_id}: no actionable segments")
            return LessonRepairReport(
                lesson_id, RepairStatus.SKIPPED,
                skipped_segments=sorted(skipped_segments),
                message="no actionable segments"
            )

        try:
            mixed = self.toolkit.mix_with_delays(self.blob_store.read_file(audio_path), overlays)
        except AudioAnalysisError as e:
            logger.error(f"Lesson {lesson_id}: mixing failed: {e}")
            return LessonRepairReport(
                lesson_id, RepairStatus.FAILED,
                skipped_segments=sorted(repaired_segments + skipped_segments),
                message=str(e)
            )

        self.blob_store.write_file(audio_path, mixed)
        manifest.last_repaired_at = utc_now_iso()
        manifest.repaired_segments = sorted(repaired_segments)
        self.timing_repository.save(manifest)

        logger.info(f"Lesson {lesson_id}: repaired segments {manifest.repaired_segments}")
        return LessonRepairReport(
            lesson_id, RepairStatus.REPAIRED,
            repaired_segments=manifest.repaired_segments,
            skipped_segments=sorted(skipped_segments),
            message=f"{len(repaired_segments)} segment(s) patched"
        )
