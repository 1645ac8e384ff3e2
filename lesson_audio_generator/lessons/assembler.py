"""
Lesson assembly.

Concatenates resolved phrase audio interleaved with pause silences into one
final audio blob and builds the matching timing manifest from measured
fragment durations.
"""

import logging
from typing import List, Tuple

from ..audio.toolkit import AudioToolkit
from ..config import Config
from ..models import (
    ResolvedPhrase,
    Scope,
    Segment,
    SegmentKind,
    SourceKind,
    TimingManifest,
)


logger = logging.getLogger(__name__)


class Assembler:
    """Builds final lesson audio and its timing manifest in one pass."""

    def __init__(self, toolkit: AudioToolkit):
        self.toolkit = toolkit

    def assemble(self, lesson_id: str, scope: Scope, audio_file: str,
                 resolved: List[ResolvedPhrase]) -> Tuple[bytes, TimingManifest]:
        """
        Assemble a lesson.

        Layout: a leading silence equal to the first pause of the lesson, then
        every phrase's audio followed by its pause. When the final phrase has no
        pause, a trailing silence equal to the last pause of the lesson closes it.
        A freestanding silence phrase contributes only its pause. Zero-length
        pieces are not recorded as segments.

        Args:
            lesson_id: Lesson identifier
            scope: Language/level of the lesson
            audio_file: Filename of the final audio
            resolved: Resolved phrases in script order

        Returns:
            Tuple of (final audio bytes, validated timing manifest)

        Raises:
            InvariantViolationError: If the resulting manifest breaks a timing invariant
        """
        pauses = [item.phrase.pause_after_ms for item in resolved]
        leading_ms = 0
        if resolved and not resolved[0].phrase.is_silence:
            leading_ms = pauses[0]
        if resolved and pauses[-1] == 0:
            pauses[-1] = next((p for p in reversed(pauses) if p > 0), 0)

        segments: List[Segment] = []
        cursor = 0

        def add_segment(duration_ms: int, kind: SegmentKind, item: ResolvedPhrase = None) -> None:
            nonlocal cursor
            if duration_ms <= 0:
                return
            segment = Segment(index=len(segments), start_ms=cursor, duration_ms=duration_ms, kind=kind)
            if item is not None:
                segment.text = item.phrase.text
                segment.normalized = item.phrase.normalized
                if kind == SegmentKind.VOCAB:
                    segment.vocab_file = f"{Config.VOCAB_AUDIO_DIR}/{item.source.vocab_filename}"
            segments.append(segment)
            cursor += duration_ms

        add_segment(leading_ms, SegmentKind.SILENCE)

        fragments = []
        for item, pause_ms in zip(resolved, pauses):
            if item.phrase.is_silence:
                fragments.append(b"")
            else:
                fragments.append(item.audio)
                add_segment(self.toolkit.measure_duration_ms(item.audio), self._segment_kind(item), item)
            add_segment(pause_ms, SegmentKind.SILENCE)

        audio = self.toolkit.concat_with_silence(fragments, pauses, leading_silence_ms=leading_ms)

        manifest = TimingManifest(
            lesson_id=lesson_id,
            language_id=scope.language,
            level_id=scope.level,
            audio_file=audio_file,
            total_duration_ms=cursor,
            segments=segments
        )
        manifest.rebuild_dependencies()
        manifest.validate()

        logger.info(
            f"Assembled lesson {lesson_id}: {len(segments)} segments, "
            f"{cursor / 1000:.1f}s, {len(manifest.vocab_dependencies)} vocabulary dependencies"
        )
        return audio, manifest

    @staticmethod
    def _segment_kind(item: ResolvedPhrase) -> SegmentKind:
        # Session-cache hits are recorded as synthesized regardless of origin
        if item.source.kind == SourceKind.VOCABULARY and item.source.vocab_filename:
            return SegmentKind.VOCAB
        return SegmentKind.SYNTHESIZED
