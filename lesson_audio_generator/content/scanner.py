"""
Discovery of lesson sources and vocabulary lists under the content root.

Layout::

    lessons-content/<language>/<level>/lessons/<lessonId>.txt
    lessons-content/<language>/<level>/vocab-lists/<listId>.txt
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..config import Config
from ..models import Scope
from ..storage.blob_store import BlobStore
from .sources import LessonSource, load_lesson_source
from .status import ItemKind, StatusLedger, WorkStatus
from .vocab_lists import VocabList, load_vocab_list


logger = logging.getLogger(__name__)


@dataclass
class ScopeContent:
    """Everything found for one language/level."""
    scope: Scope
    lessons: List[LessonSource] = field(default_factory=list)
    vocab_lists: List[VocabList] = field(default_factory=list)


class ContentScanner:
    """Finds scopes, lesson sources and vocabulary lists in the blob store."""

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    def scopes(self) -> List[Scope]:
        found = set()
        for path in self.blob_store.list_files(Config.CONTENT_PREFIX):
            parts = path.split('/')
            # lessons-content/<lang>/<level>/<something>
            if len(parts) >= 4:
                found.add(Scope(parts[1], parts[2]))
        return sorted(found, key=lambda s: (s.language, s.level))

    def lesson_sources(self, scope: Scope) -> List[LessonSource]:
        sources = []
        for path in self.blob_store.list_files(scope.content_path(Config.LESSONS_DIR)):
            if not path.endswith('.txt'):
                continue
            try:
                sources.append(load_lesson_source(self.blob_store, scope, path))
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to read lesson {path}: {e}")
        return sources

    def vocab_lists(self, scope: Scope) -> List[VocabList]:
        lists = []
        for path in self.blob_store.list_files(scope.content_path(Config.VOCAB_LISTS_DIR)):
            if not path.endswith('.txt'):
                continue
            try:
                lists.append(load_vocab_list(self.blob_store, scope, path))
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to read vocabulary list {path}: {e}")
        return lists

    def scan(self) -> List[ScopeContent]:
        """Scan every scope under the content root."""
        results = []
        for scope in self.scopes():
            content = ScopeContent(
                scope=scope,
                lessons=self.lesson_sources(scope),
                vocab_lists=self.vocab_lists(scope)
            )
            logger.info(
                f"Found {len(content.lessons)} lessons and {len(content.vocab_lists)} "
                f"vocabulary lists in {scope}"
            )
            results.append(content)
        return results

    def pending_lessons(self, scope: Scope, ledger: StatusLedger = None,
                        include_failed: bool = True) -> List[LessonSource]:
        """Lessons of a scope whose status is not DONE (optionally excluding FAILED)."""
        ledger = ledger or StatusLedger(self.blob_store, scope).load()
        pending = []
        for source in self.lesson_sources(scope):
            status = ledger.get(ItemKind.LESSON, source.lesson_id)
            if status == WorkStatus.DONE:
                continue
            if status == WorkStatus.FAILED and not include_failed:
                continue
            pending.append(source)
        return pending
