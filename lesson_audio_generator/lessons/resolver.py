"""
Three-tier audio resolution for lesson phrases.

Each phrase is resolved from, in order: the per-lesson session cache, the
vocabulary store (reusable phrases only), and finally speech synthesis.
Newly synthesized reusable phrases are written back to the vocabulary store.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple

from ..config import Config
from ..models import Phrase, ResolvedPhrase, SourceDescriptor, SourceKind
from ..script.tokenizer import strip_answer_delimiters
from ..tts.base import SpeechSynthesizer
from ..vocab.store import VocabularyStore


logger = logging.getLogger(__name__)

SessionCache = Dict[Tuple[str, str], bytes]


@dataclass
class ResolutionStats:
    """Counters of where phrase audio came from during one run."""
    phrases: int = 0
    cache_hits: int = 0
    vocabulary_hits: int = 0
    synthesis_calls: int = 0
    new_vocabulary_entries: int = 0

    @property
    def calls_saved(self) -> int:
        return self.cache_hits + self.vocabulary_hits

    def to_dict(self) -> Dict[str, int]:
        data = asdict(self)
        data['calls_saved'] = self.calls_saved
        return data


class ResolutionEngine:
    """Resolves phrase audio while minimizing synthesis calls."""

    def __init__(self, vocab_store: VocabularyStore, synthesizer: SpeechSynthesizer,
                 session_cache: Optional[SessionCache] = None, source_tag: str = None):
        """
        Initialize the engine.

        Args:
            vocab_store: Loaded vocabulary store of the lesson's scope
            synthesizer: Fallback speech synthesis
            session_cache: Cache for one lesson, keyed by (voice, normalized text)
            source_tag: Provenance recorded on vocabulary entries this engine adds
        """
        self.vocab_store = vocab_store
        self.synthesizer = synthesizer
        self.session_cache: SessionCache = session_cache if session_cache is not None else {}
        self.source_tag = source_tag or Config.LESSON_SOURCE_TAG
        self.stats = ResolutionStats()

    def resolve(self, phrase: Phrase, voice: str) -> ResolvedPhrase:
        """
        Resolve the audio of one phrase.

        Raises:
            SynthesisError: If synthesis is needed and fails
        """
        self.stats.phrases += 1
        cache_key = (voice, phrase.normalized)

        cached = self.session_cache.get(cache_key)
        if cached is not None:
            self.stats.cache_hits += 1
            logger.debug(f"Session cache hit: {phrase.normalized!r}")
            return ResolvedPhrase(phrase, cached, SourceDescriptor(SourceKind.SESSION_CACHE))

        bare_key = strip_answer_delimiters(phrase.text) if phrase.reusable else None

        if bare_key:
            entry = self.vocab_store.get(bare_key)
            if entry is not None:
                audio = self.vocab_store.read_audio(entry)
                self.session_cache[cache_key] = audio
                self.stats.vocabulary_hits += 1
                logger.debug(f"Vocabulary hit: {bare_key!r} -> {entry.filename}")
                return ResolvedPhrase(
                    phrase, audio, SourceDescriptor(SourceKind.VOCABULARY, entry.filename)
                )

        audio = self.synthesizer.synthesize(phrase.text, voice)
        self.stats.synthesis_calls += 1
        self.session_cache[cache_key] = audio

        if bare_key:
            self.vocab_store.put(bare_key, audio, voice, self.source_tag)
            self.stats.new_vocabulary_entries += 1

        return ResolvedPhrase(phrase, audio, SourceDescriptor(SourceKind.SYNTHESIS))
