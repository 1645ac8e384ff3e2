"""
Core data models for the Lesson Audio Generator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any, Iterable

from .config import Config
from .errors import InvariantViolationError


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class Scope:
    """A (language, level) pair under which vocabulary and lesson state are partitioned."""
    language: str
    level: str

    @property
    def content_dir(self) -> str:
        return f"{Config.CONTENT_PREFIX}/{self.language}/{self.level}"

    @property
    def audio_dir(self) -> str:
        return f"{Config.AUDIO_PREFIX}/{self.language}/{self.level}"

    def content_path(self, relative: str) -> str:
        """Blob path of a file relative to the scope's content directory."""
        return f"{self.content_dir}/{relative}"

    def audio_path(self, relative: str) -> str:
        """Blob path of a file relative to the scope's lesson audio directory."""
        return f"{self.audio_dir}/{relative}"

    def __str__(self) -> str:
        return f"{self.language}/{self.level}"


@dataclass
class Phrase:
    """One spoken phrase of a lesson script and the pause that follows it."""
    text: str
    normalized: str
    reusable: bool = False
    pause_after_ms: int = 0

    @property
    def is_silence(self) -> bool:
        """A phrase without text is a freestanding silence."""
        return not self.text


@dataclass
class VocabularyEntry:
    """A reusable spoken fragment persisted in the vocabulary store."""
    text: str
    filename: str
    voice: str
    source: str
    generated_at: str = field(default_factory=utc_now_iso)

    @property
    def audio_path(self) -> str:
        """Store-relative key of the entry's audio, e.g. ``vocab-audio/00001.wav``."""
        return f"{Config.VOCAB_AUDIO_DIR}/{self.filename}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'text': self.text,
            'filename': self.filename,
            'audioPath': self.audio_path,
            'voice': self.voice,
            'generatedAt': self.generated_at,
            'source': self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VocabularyEntry':
        """Create instance from dictionary."""
        return cls(
            text=data['text'],
            filename=data['filename'],
            voice=data.get('voice', Config.DEFAULT_VOICE),
            source=data.get('source', ''),
            generated_at=data.get('generatedAt') or utc_now_iso(),
        )


@dataclass
class VocabularyManifest:
    """Ordered vocabulary entries of one scope plus the next-filename counter."""
    language: str
    level: str
    version: str = "1.0"
    last_updated: str = field(default_factory=utc_now_iso)
    next_filename_number: int = 1
    entries: List[VocabularyEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'version': self.version,
            'language': self.language,
            'level': self.level,
            'lastUpdated': self.last_updated,
            'nextFilenameNumber': self.next_filename_number,
            'entries': [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VocabularyManifest':
        """Create instance from dictionary."""
        return cls(
            language=data['language'],
            level=data['level'],
            version=data.get('version', "1.0"),
            last_updated=data.get('lastUpdated') or utc_now_iso(),
            next_filename_number=int(data.get('nextFilenameNumber', 1)),
            entries=[VocabularyEntry.from_dict(entry) for entry in data.get('entries', [])],
        )


class SegmentKind(Enum):
    """What a time span of a final lesson audio consists of."""
    SILENCE = "silence"
    VOCAB = "vocab"
    SYNTHESIZED = "tts"


@dataclass
class Segment:
    """One contiguous time span of a final lesson audio."""
    index: int
    start_ms: int
    duration_ms: int
    kind: SegmentKind
    text: Optional[str] = None
    normalized: Optional[str] = None
    vocab_file: Optional[str] = None

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.duration_ms

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            'index': self.index,
            'startMs': self.start_ms,
            'durationMs': self.duration_ms,
            'type': self.kind.value,
        }
        if self.text is not None:
            data['text'] = self.text
        if self.normalized is not None:
            data['normalized'] = self.normalized
        if self.vocab_file is not None:
            data['vocabFile'] = self.vocab_file
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Segment':
        """Create instance from dictionary."""
        return cls(
            index=int(data['index']),
            start_ms=int(data['startMs']),
            duration_ms=int(data['durationMs']),
            kind=SegmentKind(data['type']),
            text=data.get('text'),
            normalized=data.get('normalized'),
            vocab_file=data.get('vocabFile'),
        )


@dataclass
class VocabDependency:
    """Segments of one lesson rendered from a single vocabulary file."""
    text: str
    segments: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'text': self.text, 'segments': list(self.segments)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VocabDependency':
        return cls(text=data.get('text', ''), segments=[int(i) for i in data['segments']])


@dataclass
class TimingManifest:
    """
    Per-lesson timing metadata.

    Records every segment of the final audio with its offset and duration, and a
    reverse index from vocabulary file to the segments rendered from it. The
    reverse index is the join key used to find lessons affected by a repair.
    """
    lesson_id: str
    language_id: str
    level_id: str
    audio_file: str
    total_duration_ms: int
    generated_at: str = field(default_factory=utc_now_iso)
    segments: List[Segment] = field(default_factory=list)
    vocab_dependencies: Dict[str, VocabDependency] = field(default_factory=dict)
    last_repaired_at: Optional[str] = None
    repaired_segments: List[int] = field(default_factory=list)

    @property
    def scope(self) -> Scope:
        return Scope(self.language_id, self.level_id)

    def rebuild_dependencies(self) -> None:
        """Derive the vocab-file reverse index from the segment list."""
        dependencies: Dict[str, VocabDependency] = {}
        for segment in self.segments:
            if segment.kind != SegmentKind.VOCAB:
                continue
            dependency = dependencies.setdefault(
                segment.vocab_file, VocabDependency(text=segment.text or '')
            )
            dependency.segments.append(segment.index)
        self.vocab_dependencies = dependencies

    def affected_segments(self, vocab_files: Iterable[str]) -> Dict[str, List[int]]:
        """Map each of the given vocab files this lesson depends on to its segment indices."""
        return {
            vocab_file: list(self.vocab_dependencies[vocab_file].segments)
            for vocab_file in vocab_files
            if vocab_file in self.vocab_dependencies
        }

    def validate(self) -> None:
        """
        Check the timing invariants.

        Raises:
            InvariantViolationError: On index gaps, non-contiguous or overlapping
                segments, a total that differs from the segment sum, or a reverse
                index inconsistent with the segments
        """
        context = {'lesson_id': self.lesson_id}
        expected_start = 0
        for position, segment in enumerate(self.segments):
            if segment.index != position:
                raise InvariantViolationError(
                    f"Segment index {segment.index} at position {position} in lesson {self.lesson_id}",
                    context=context
                )
            if segment.duration_ms <= 0:
                raise InvariantViolationError(
                    f"Segment {position} of lesson {self.lesson_id} has non-positive duration",
                    details=f"duration_ms={segment.duration_ms}",
                    context=context
                )
            if segment.start_ms != expected_start:
                raise InvariantViolationError(
                    f"Segment {position} of lesson {self.lesson_id} is not contiguous",
                    details=f"expected start {expected_start}ms, got {segment.start_ms}ms",
                    context=context
                )
            if (segment.kind == SegmentKind.VOCAB) != (segment.vocab_file is not None):
                raise InvariantViolationError(
                    f"Segment {position} of lesson {self.lesson_id} has inconsistent vocab reference",
                    context=context
                )
            expected_start = segment.end_ms

        if expected_start != self.total_duration_ms:
            raise InvariantViolationError(
                f"Lesson {self.lesson_id} total duration mismatch",
                details=f"segments sum to {expected_start}ms, total is {self.total_duration_ms}ms",
                context=context
            )

        indexed = sorted(i for dep in self.vocab_dependencies.values() for i in dep.segments)
        vocab_indices = [s.index for s in self.segments if s.kind == SegmentKind.VOCAB]
        if indexed != vocab_indices:
            raise InvariantViolationError(
                f"Vocab dependency index of lesson {self.lesson_id} does not match its segments",
                details=f"indexed {indexed}, vocab segments {vocab_indices}",
                context=context
            )
        for vocab_file, dependency in self.vocab_dependencies.items():
            for index in dependency.segments:
                if self.segments[index].vocab_file != vocab_file:
                    raise InvariantViolationError(
                        f"Segment {index} of lesson {self.lesson_id} listed under {vocab_file}",
                        context=context
                    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            'lessonId': self.lesson_id,
            'languageId': self.language_id,
            'levelId': self.level_id,
            'audioFile': self.audio_file,
            'totalDurationMs': self.total_duration_ms,
            'generatedAt': self.generated_at,
            'segments': [segment.to_dict() for segment in self.segments],
            'vocabDependencies': {
                vocab_file: dependency.to_dict()
                for vocab_file, dependency in self.vocab_dependencies.items()
            },
        }
        if self.last_repaired_at is not None:
            data['lastRepairedAt'] = self.last_repaired_at
            data['repairedSegments'] = list(self.repaired_segments)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimingManifest':
        """Create instance from dictionary."""
        return cls(
            lesson_id=data['lessonId'],
            language_id=data['languageId'],
            level_id=data['levelId'],
            audio_file=data['audioFile'],
            total_duration_ms=int(data['totalDurationMs']),
            generated_at=data.get('generatedAt') or utc_now_iso(),
            segments=[Segment.from_dict(segment) for segment in data.get('segments', [])],
            vocab_dependencies={
                vocab_file: VocabDependency.from_dict(dependency)
                for vocab_file, dependency in data.get('vocabDependencies', {}).items()
            },
            last_repaired_at=data.get('lastRepairedAt'),
            repaired_segments=[int(i) for i in data.get('repairedSegments', [])],
        )


class SourceKind(Enum):
    """Where the audio of a resolved phrase came from."""
    SESSION_CACHE = "session_cache"
    VOCABULARY = "vocabulary"
    SYNTHESIS = "synthesis"


@dataclass
class SourceDescriptor:
    """Provenance of a resolved phrase's audio."""
    kind: SourceKind
    vocab_filename: Optional[str] = None


@dataclass
class ResolvedPhrase:
    """A phrase together with its audio bytes and their provenance."""
    phrase: Phrase
    audio: bytes
    source: Optional[SourceDescriptor] = None  # None for freestanding silences


@dataclass
class RepairedEntry:
    """A vocabulary entry whose audio was successfully regenerated."""
    text: str
    filename: str
    audio_path: str


class RepairStatus(Enum):
    """Outcome of reconstructing one lesson."""
    REPAIRED = "repaired"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class LessonRepairReport:
    """Per-lesson result of a reconstruction pass."""
    lesson_id: str
    status: RepairStatus
    repaired_segments: List[int] = field(default_factory=list)
    skipped_segments: List[int] = field(default_factory=list)
    message: str = ""


@dataclass
class ScanResult:
    """Corruption check result for one vocabulary entry."""
    entry: VocabularyEntry
    is_corrupt: bool
    reason: str = ""
