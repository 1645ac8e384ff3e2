"""
Pre-generation of vocabulary from curated vocabulary lists.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..config import Config
from ..content.status import ItemKind, StatusLedger, WorkStatus
from ..content.vocab_lists import VocabList, VocabListItem, save_generated_items
from ..errors import SynthesisError
from ..script.tokenizer import format_for_speech
from ..storage.blob_store import BlobStore
from ..tts.base import SpeechSynthesizer
from .store import VocabularyStore


logger = logging.getLogger(__name__)


@dataclass
class VocabListResult:
    """Outcome of processing one vocabulary list."""
    list_id: str
    generated: List[str] = field(default_factory=list)
    already_present: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: Dict[str, SynthesisError] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed


class VocabularyListGenerator:
    """Synthesizes the NEW items of vocabulary lists into the vocabulary store."""

    def __init__(self, store: VocabularyStore, synthesizer: SpeechSynthesizer,
                 blob_store: BlobStore, voice: str = None):
        self.store = store
        self.synthesizer = synthesizer
        self.blob_store = blob_store
        self.voice = voice or Config.DEFAULT_VOICE

    def process(self, vocab_list: VocabList, ledger: StatusLedger = None) -> VocabListResult:
        """
        Generate every NEW item of a list.

        Items already in the store are only marked GENERATED. Per-item failures
        are logged and counted; the list is marked DONE in the ledger only when
        every item succeeded.
        """
        result = VocabListResult(list_id=vocab_list.list_id)
        pending = vocab_list.new_items
        logger.info(
            f"Processing vocabulary list {vocab_list.list_id} ({vocab_list.scope}): "
            f"{len(vocab_list.items) - len(pending)} already generated, {len(pending)} new"
        )

        done: List[VocabListItem] = []
        for number, item in enumerate(pending, start=1):
            if self.store.has(item.text):
                logger.debug(f"[{number}/{len(pending)}] Already in store: {item.text!r}")
                result.already_present.append(item.text)
                done.append(item)
                continue

            try:
                audio = self.synthesizer.synthesize(format_for_speech(item.text), self.voice)
            except SynthesisError as e:
                logger.error(
                    f"Vocabulary list {vocab_list.list_id} line {item.line_number}: "
                    f"failed to synthesize {item.text!r}: {e}"
                )
                result.failed.append(item.text)
                result.errors[item.text] = e
                continue

            filename = self.store.put(item.text, audio, self.voice, vocab_list.list_id)
            logger.info(f"[{number}/{len(pending)}] {item.text!r} -> {filename}")
            result.generated.append(item.text)
            done.append(item)

        self.store.save()
        save_generated_items(self.blob_store, vocab_list, done)

        if ledger is not None:
            if result.complete:
                ledger.set(ItemKind.VOCAB_LIST, vocab_list.list_id, WorkStatus.DONE)
            else:
                ledger.set(
                    ItemKind.VOCAB_LIST, vocab_list.list_id, WorkStatus.FAILED,
                    message=f"{len(result.failed)} items failed"
                )
            ledger.save()

        logger.info(
            f"Vocabulary list {vocab_list.list_id}: {len(result.generated)} generated, "
            f"{len(result.already_present)} already present, {len(result.failed)} failed"
        )
        return result
