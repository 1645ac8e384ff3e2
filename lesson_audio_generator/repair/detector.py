"""
Corruption detection for stored vocabulary fragments.

A fragment is corrupt when its file is missing, smaller than a minimum size,
or its peak level is below a silence threshold. When level analysis itself
fails the fragment is treated as healthy, since a corrupt verdict leads to an
irreversible overwrite.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List

from ..audio.toolkit import AudioToolkit
from ..config import Config
from ..errors import AudioAnalysisError
from ..models import ScanResult, VocabularyEntry
from ..storage.blob_store import BlobStore
from ..vocab.store import VocabularyStore


logger = logging.getLogger(__name__)


class CorruptionStrictness(Enum):
    """How eagerly fragments are flagged as corrupt."""
    LENIENT = "lenient"
    NORMAL = "normal"
    STRICT = "strict"


@dataclass
class DetectionThresholds:
    """Thresholds of the corruption heuristic."""

    silence_threshold_db: float = -35.0
    min_file_size_bytes: int = 1000

    @classmethod
    def for_strictness(cls, strictness: CorruptionStrictness) -> 'DetectionThresholds':
        """Default thresholds for a strictness level."""
        if strictness == CorruptionStrictness.LENIENT:
            return cls(silence_threshold_db=-45.0, min_file_size_bytes=500)
        elif strictness == CorruptionStrictness.STRICT:
            return cls(silence_threshold_db=-30.0, min_file_size_bytes=2000)
        return cls(
            silence_threshold_db=Config.SILENCE_THRESHOLD_DB,
            min_file_size_bytes=Config.MIN_FILE_SIZE_BYTES
        )


class CorruptionDetector:
    """Flags vocabulary fragments whose audio looks like a failed synthesis."""

    def __init__(self, blob_store: BlobStore, toolkit: AudioToolkit,
                 thresholds: DetectionThresholds = None):
        self.blob_store = blob_store
        self.toolkit = toolkit
        self.thresholds = thresholds or DetectionThresholds.for_strictness(CorruptionStrictness.NORMAL)

    def check(self, path: str, entry: VocabularyEntry = None) -> ScanResult:
        """
        Check one audio blob.

        Args:
            path: Blob path of the fragment
            entry: Vocabulary entry the fragment belongs to

        Returns:
            ScanResult with the verdict and the reason
        """
        if not self.blob_store.exists(path):
            return self._result(entry, True, f"file not found: {path}")

        size = self.blob_store.size(path)
        if size < self.thresholds.min_file_size_bytes:
            return self._result(
                entry, True,
                f"file too small ({size} bytes < {self.thresholds.min_file_size_bytes})"
            )

        try:
            peak_db = self.toolkit.peak_level_db(self.blob_store.read_file(path))
        except AudioAnalysisError as e:
            logger.warning(f"Could not analyze {path}, assuming OK: {e}")
            return self._result(entry, False, "level analysis failed")

        if peak_db < self.thresholds.silence_threshold_db:
            return self._result(
                entry, True,
                f"too quiet (peak {peak_db:.1f} dB < {self.thresholds.silence_threshold_db:.1f} dB)"
            )
        return self._result(entry, False, f"peak {peak_db:.1f} dB")

    def scan(self, store: VocabularyStore) -> List[ScanResult]:
        """Check every entry of a loaded vocabulary store."""
        results = []
        entries = store.entries
        logger.info(f"Scanning {len(entries)} vocabulary fragments in {store.scope}")
        for number, entry in enumerate(entries, start=1):
            result = self.check(store.audio_key(entry), entry)
            if result.is_corrupt:
                logger.warning(
                    f"[{number}/{len(entries)}] {entry.filename} (\"{entry.text}\") is corrupt: {result.reason}"
                )
            else:
                logger.debug(f"[{number}/{len(entries)}] {entry.filename} OK: {result.reason}")
            results.append(result)
        return results

    @staticmethod
    def _result(entry: VocabularyEntry, is_corrupt: bool, reason: str) -> ScanResult:
        return ScanResult(entry=entry, is_corrupt=is_corrupt, reason=reason)
