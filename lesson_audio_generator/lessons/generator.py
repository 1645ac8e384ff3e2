"""
Lesson generation orchestration.

Tokenizes a lesson script, resolves every phrase, assembles the final audio
and persists it together with its timing manifest. A lesson that fails part
way persists nothing; vocabulary entries added before the failure stay valid
and are saved with the batch.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..audio.toolkit import AudioToolkit
from ..config import Config
from ..content.sources import LessonSource
from ..errors import (
    AudioAnalysisError,
    DataIntegrityError,
    InvariantViolationError,
    SynthesisError,
)
from ..models import ResolvedPhrase, TimingManifest
from ..script.tokenizer import tokenize
from ..storage.blob_store import BlobStore
from ..tts.base import SpeechSynthesizer
from ..vocab.store import VocabularyStore
from .assembler import Assembler
from .resolver import ResolutionEngine, ResolutionStats
from .timing import TimingRepository


logger = logging.getLogger(__name__)


@dataclass
class GeneratedLesson:
    """A lesson whose audio and timing manifest were written."""
    lesson_id: str
    audio_path: str
    manifest_path: str
    manifest: TimingManifest
    stats: ResolutionStats


@dataclass
class LessonOutcome:
    lesson_id: str
    success: bool
    result: Optional[GeneratedLesson] = None
    error: Optional[Exception] = None


@dataclass
class BatchResult:
    """Per-lesson outcomes of a batch plus aggregated resolution statistics."""
    outcomes: List[LessonOutcome] = field(default_factory=list)
    stats: ResolutionStats = field(default_factory=ResolutionStats)

    @property
    def succeeded(self) -> List[LessonOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[LessonOutcome]:
        return [o for o in self.outcomes if not o.success]


class LessonGenerator:
    """Generates lesson audio for one scope."""

    def __init__(self, store: VocabularyStore, synthesizer: SpeechSynthesizer,
                 toolkit: AudioToolkit, blob_store: BlobStore,
                 timing_repository: TimingRepository = None,
                 default_voice: str = None, lesson_delay_seconds: float = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the generator.

        Args:
            store: Vocabulary store already loaded for the scope being generated
            synthesizer: Speech synthesis (usually retrying and throttled)
            toolkit: Audio measurement and concatenation
            blob_store: Storage for final audio
            timing_repository: Storage for timing manifests
            default_voice: Voice for lessons without a voice setting
            lesson_delay_seconds: Pause between lessons of a batch
            sleep: Sleep function, replaceable in tests
        """
        self.store = store
        self.synthesizer = synthesizer
        self.toolkit = toolkit
        self.blob_store = blob_store
        self.timing_repository = timing_repository or TimingRepository(blob_store)
        self.assembler = Assembler(toolkit)
        self.default_voice = default_voice or Config.DEFAULT_VOICE
        self.lesson_delay_seconds = (
            lesson_delay_seconds if lesson_delay_seconds is not None else Config.LESSON_DELAY_SECONDS
        )
        self._sleep = sleep

    def generate(self, source: LessonSource) -> GeneratedLesson:
        """
        Generate and persist one lesson.

        Args:
            source: Lesson to generate

        Raises:
            SynthesisError: If a phrase could not be synthesized
            DataIntegrityError: If the lesson has nothing to speak
            InvariantViolationError: If the store belongs to another scope or
                the assembled timing is inconsistent
        """
        if self.store.scope != source.scope:
            raise InvariantViolationError(
                f"Lesson {source.lesson_id} of {source.scope} generated with the store of {self.store.scope}"
            )

        phrases = tokenize(source.text)
        spoken = [p for p in phrases if not p.is_silence]
        if not spoken:
            raise DataIntegrityError(
                f"Lesson {source.lesson_id} has no speakable text",
                context={'path': source.path}
            )

        voice = source.voice or self.default_voice
        if source.speed is not None and source.speed != Config.TTS_SPEED:
            logger.info(
                f"Lesson {source.lesson_id} requests speed {source.speed}; "
                f"shared fragments are synthesized at {Config.TTS_SPEED}"
            )
        logger.info(
            f"Generating lesson {source.lesson_id} ({source.scope}): "
            f"{len(spoken)} phrases, voice {voice}"
        )

        engine = ResolutionEngine(self.store, self.synthesizer, source_tag=Config.LESSON_SOURCE_TAG)
        resolved = []
        for number, phrase in enumerate(phrases, start=1):
            if phrase.is_silence:
                resolved.append(ResolvedPhrase(phrase, b""))
                continue
            logger.debug(f"[{number}/{len(phrases)}] {phrase.text[:50]!r}")
            resolved.append(engine.resolve(phrase, voice))

        audio_file = self.timing_repository.audio_filename(
            source.scope, source.lesson_id, self.toolkit.extension
        )
        audio, manifest = self.assembler.assemble(source.lesson_id, source.scope, audio_file, resolved)

        self.timing_repository.write_lesson(manifest, audio)
        stats = engine.stats
        logger.info(
            f"Lesson {source.lesson_id}: {stats.phrases} phrases, {stats.cache_hits} cache hits, "
            f"{stats.vocabulary_hits} vocabulary hits, {stats.synthesis_calls} synthesis calls"
        )

        return GeneratedLesson(
            lesson_id=source.lesson_id,
            audio_path=self.timing_repository.audio_path(manifest),
            manifest_path=self.timing_repository.manifest_path(manifest),
            manifest=manifest,
            stats=stats
        )

    def generate_batch(self, sources: List[LessonSource],
                       on_progress: Callable[[int, LessonOutcome], None] = None) -> BatchResult:
        """
        Generate lessons sequentially, continuing past individual failures.

        The vocabulary store is saved once at the end, even when an invariant
        violation stops the batch.

        Raises:
            InvariantViolationError: Stops the batch for this scope
        """
        result = BatchResult()

        try:
            for number, source in enumerate(sources, start=1):
                if number > 1 and self.lesson_delay_seconds > 0:
                    self._sleep(self.lesson_delay_seconds)

                try:
                    generated = self.generate(source)
                    outcome = LessonOutcome(source.lesson_id, True, result=generated)
                    self._accumulate(result.stats, generated.stats)
                except (SynthesisError, DataIntegrityError, AudioAnalysisError) as e:
                    logger.error(f"Lesson {source.lesson_id} failed: {e}")
                    outcome = LessonOutcome(source.lesson_id, False, error=e)

                result.outcomes.append(outcome)
                if on_progress:
                    on_progress(number, outcome)
        finally:
            self.store.save()

        stats = result.stats
        savings = round(stats.calls_saved / stats.phrases * 100) if stats.phrases else 0
        logger.info(
            f"Batch complete: {len(result.succeeded)}/{len(sources)} lessons, "
            f"{stats.phrases} phrases, {stats.cache_hits} cache hits, "
            f"{stats.vocabulary_hits} vocabulary hits, {stats.synthesis_calls} synthesis calls "
            f"({savings}% fewer synthesis calls)"
        )
        return result

    @staticmethod
    def _accumulate(total: ResolutionStats, lesson: ResolutionStats) -> None:
        total.phrases += lesson.phrases
        total.cache_hits += lesson.cache_hits
        total.vocabulary_hits += lesson.vocabulary_hits
        total.synthesis_calls += lesson.synthesis_calls
        total.new_vocabulary_entries += lesson.new_vocabulary_entries
