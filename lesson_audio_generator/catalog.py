"""
Catalog of available lessons.

The catalog (``manifest.json`` at the blob root) lists every language, level
and generated lesson together with the storage path of its audio. Names and
titles already present in an existing catalog are preserved so manual edits
survive regeneration.
"""

import logging
import re
from typing import Dict, Any, List, Optional

from .config import Config
from .content.scanner import ContentScanner, ScopeContent
from .content.status import ItemKind, StatusLedger, WorkStatus
from .errors import DataIntegrityError
from .lessons.timing import TimingRepository
from .storage.blob_store import BlobStore


logger = logging.getLogger(__name__)


def default_language_name(language_id: str) -> str:
    return language_id[:1].upper() + language_id[1:]


def default_level_name(level_id: str) -> str:
    """``level1`` -> ``Level 1``."""
    match = re.fullmatch(r'level[-_]?(\d+)', level_id, re.IGNORECASE)
    if match:
        return f"Level {int(match.group(1))}"
    return default_language_name(level_id)


class CatalogBuilder:
    """Builds and saves the lesson catalog from the content tree and ledgers."""

    def __init__(self, blob_store: BlobStore, extension: str = None,
                 scanner: ContentScanner = None, timing_repository: TimingRepository = None):
        self.blob_store = blob_store
        self.extension = (extension or Config.AUDIO_FORMAT).lstrip('.')
        self.scanner = scanner or ContentScanner(blob_store)
        self.timing_repository = timing_repository or TimingRepository(blob_store)
        self.path = Config.CATALOG_FILE

    def load_existing(self) -> Dict[str, Any]:
        """Read the current catalog; a missing or unreadable one is treated as empty."""
        if not self.blob_store.exists(self.path):
            return {'languages': []}
        try:
            catalog = self.blob_store.read_json(self.path)
            if not isinstance(catalog.get('languages'), list):
                raise ValueError("'languages' is not a list")
            return catalog
        except (ValueError, AttributeError) as e:
            logger.warning(f"Could not parse existing {self.path}, creating a new one: {e}")
            return {'languages': []}

    def build(self, contents: List[ScopeContent] = None) -> Dict[str, Any]:
        """
        Build the catalog.

        Args:
            contents: Scanned scopes; the content tree is scanned when omitted

        Returns:
            Catalog dictionary ready for JSON serialization
        """
        contents = contents if contents is not None else self.scanner.scan()
        existing = self.load_existing()

        languages: Dict[str, Dict[str, Any]] = {}
        for content in contents:
            scope = content.scope
            ledger = self._load_ledger(content)

            lessons = []
            for source in content.lessons:
                if not self._is_available(content, source.lesson_id, ledger):
                    logger.debug(f"Lesson {scope}/{source.lesson_id} has no audio yet, not cataloged")
                    continue
                previous = self._find(existing, scope.language, scope.level, source.lesson_id)
                audio_file = TimingRepository.audio_filename(scope, source.lesson_id, self.extension)
                lessons.append({
                    'id': source.lesson_id,
                    'title': (previous or {}).get('title') or source.display_title,
                    'storagePath': scope.audio_path(audio_file),
                })
            if not lessons:
                continue

            language = languages.get(scope.language)
            if language is None:
                previous = self._find(existing, scope.language)
                language = {
                    'id': scope.language,
                    'name': (previous or {}).get('name') or default_language_name(scope.language),
                    'levels': [],
                }
                languages[scope.language] = language

            previous = self._find(existing, scope.language, scope.level)
            language['levels'].append({
                'id': scope.level,
                'name': (previous or {}).get('name') or default_level_name(scope.level),
                'lessons': sorted(lessons, key=lambda lesson: lesson['id']),
            })

        catalog = {'languages': sorted(languages.values(), key=lambda language: language['id'])}
        for language in catalog['languages']:
            language['levels'].sort(key=lambda level: level['id'])

        total = sum(len(level['lessons']) for language in catalog['languages'] for level in language['levels'])
        logger.info(f"Catalog lists {total} lessons in {len(catalog['languages'])} languages")
        return catalog

    def save(self, catalog: Dict[str, Any]) -> str:
        self.blob_store.write_json(self.path, catalog)
        logger.info(f"Catalog saved to {self.path}")
        return self.path

    def update(self) -> Dict[str, Any]:
        """Build and save the catalog."""
        catalog = self.build()
        self.save(catalog)
        return catalog

    def _load_ledger(self, content: ScopeContent) -> Optional[StatusLedger]:
        try:
            return StatusLedger(self.blob_store, content.scope).load()
        except DataIntegrityError as e:
            logger.warning(f"Ignoring status ledger of {content.scope}: {e}")
            return None

    def _is_available(self, content: ScopeContent, lesson_id: str, ledger: Optional[StatusLedger]) -> bool:
        if ledger is not None and ledger.get(ItemKind.LESSON, lesson_id) == WorkStatus.DONE:
            return True
        return self.timing_repository.lesson_audio_exists(content.scope, lesson_id, self.extension)

    @staticmethod
    def _find(catalog: Dict[str, Any], language_id: str, level_id: str = None,
              lesson_id: str = None) -> Optional[Dict[str, Any]]:
        """Look up a language, level or lesson node of an existing catalog."""
        node = next((l for l in catalog.get('languages', []) if isinstance(l, dict) and l.get('id') == language_id), None)
        if node is None or level_id is None:
            return node
        node = next((l for l in node.get('levels', []) if isinstance(l, dict) and l.get('id') == level_id), None)
        if node is None or lesson_id is None:
            return node
        return next((l for l in node.get('lessons', []) if isinstance(l, dict) and l.get('id') == lesson_id), None)
