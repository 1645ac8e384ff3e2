"""
In-place regeneration of corrupt vocabulary fragments.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List

from ..config import Config
from ..errors import SynthesisError
from ..models import RepairedEntry, ScanResult
from ..script.tokenizer import format_for_speech
from ..tts.base import SpeechSynthesizer
from ..vocab.store import VocabularyStore
from .detector import CorruptionDetector


logger = logging.getLogger(__name__)


@dataclass
class RepairFailure:
    filename: str
    text: str
    reason: str


@dataclass
class VocabularyRepairResult:
    """Totals of one scan-and-repair pass over a scope."""
    total_files: int = 0
    holes_found: int = 0
    repaired: List[RepairedEntry] = field(default_factory=list)
    failures: List[RepairFailure] = field(default_factory=list)

    @property
    def holes_repaired(self) -> int:
        return len(self.repaired)

    @property
    def holes_failed(self) -> int:
        return len(self.failures)

    @property
    def success_rate(self) -> float:
        if self.holes_found == 0:
            return 100.0
        return self.holes_repaired / self.holes_found * 100


class VocabularyRepairer:
    """
    Regenerates every corrupt entry once per scan under its existing filename.

    Entries that are still corrupt after regeneration are left for a future scan.
    """

    def __init__(self, store: VocabularyStore, detector: CorruptionDetector,
                 synthesizer: SpeechSynthesizer, cooldown_seconds: float = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.detector = detector
        self.synthesizer = synthesizer
        self.cooldown_seconds = (
            cooldown_seconds if cooldown_seconds is not None else Config.REPAIR_COOLDOWN_SECONDS
        )
        self._sleep = sleep

    def repair(self) -> VocabularyRepairResult:
        """Scan the loaded store and repair its corrupt entries."""
        results = self.detector.scan(self.store)
        result = VocabularyRepairResult(total_files=len(results))
        corrupt = [r for r in results if r.is_corrupt]
        result.holes_found = len(corrupt)

        for number, scan in enumerate(corrupt):
            if number > 0 and self.cooldown_seconds > 0:
                self._sleep(self.cooldown_seconds)
            self._repair_entry(scan, result)

        if result.repaired:
            self.store.save()
            logger.info(f"Updated vocabulary manifest of {self.store.scope} with repair timestamps")

        logger.info(
            f"Vocabulary repair {self.store.scope}: {result.total_files} scanned, "
            f"{result.holes_found} holes, {result.holes_repaired} repaired, {result.holes_failed} still broken"
        )
        return result

    def _repair_entry(self, scan: ScanResult, result: VocabularyRepairResult) -> None:
        entry = scan.entry
        path = self.store.audio_key(entry)
        logger.info(f"Repairing {entry.filename} (\"{entry.text}\"): {scan.reason}")

        try:
            audio = self.synthesizer.synthesize(format_for_speech(entry.text), entry.voice)
        except SynthesisError as e:
            logger.error(f"Repair of {entry.filename} failed: {e}")
            result.failures.append(RepairFailure(entry.filename, entry.text, str(e)))
            return

        self.store.blob_store.write_file(path, audio)

        recheck = self.detector.check(path, entry)
        if recheck.is_corrupt:
            logger.error(f"Repair of {entry.filename} failed: still corrupt ({recheck.reason})")
            result.failures.append(
                RepairFailure(entry.filename, entry.text, f"still corrupt after regeneration: {recheck.reason}")
            )
            return

        self.store.touch(entry.filename)
        result.repaired.append(RepairedEntry(text=entry.text, filename=entry.filename, audio_path=entry.audio_path))
        logger.info(f"Repaired {entry.filename}")
