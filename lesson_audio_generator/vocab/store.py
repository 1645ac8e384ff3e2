"""
Content-addressable store of reusable spoken fragments.

One vocabulary manifest per scope lists every fragment with its sequential
filename. Lookups are case- and whitespace-insensitive. Filenames are allocated
from a monotonic counter and never reused; a corrupt fragment is repaired in
place under its existing filename.
"""

import logging
import re
from typing import Dict, List, Optional

from ..config import Config
from ..errors import DataIntegrityError, InvariantViolationError
from ..models import Scope, VocabularyEntry, VocabularyManifest, utc_now_iso
from ..script.tokenizer import lookup_key, normalize_text
from ..storage.blob_store import BlobStore


logger = logging.getLogger(__name__)

_FILENAME_NUMBER = re.compile(r'^(\d+)\.')


class VocabularyStore:
    """
    Explicit load/mutate/save owner of one scope's vocabulary manifest.

    A store instance is bound to a scope by ``load`` and must be passed to every
    component that reads or adds vocabulary for that scope.
    """

    def __init__(self, blob_store: BlobStore, extension: str = None):
        """
        Initialize the store.

        Args:
            blob_store: Persistent storage for manifests and fragment audio
            extension: File extension of newly allocated fragment files
        """
        self.blob_store = blob_store
        self.extension = (extension or Config.AUDIO_FORMAT).lstrip('.')
        self.scope: Optional[Scope] = None
        self.manifest: Optional[VocabularyManifest] = None
        self._index: Dict[str, VocabularyEntry] = {}
        self._by_filename: Dict[str, VocabularyEntry] = {}
        self._dirty = False

    @staticmethod
    def manifest_path(scope: Scope) -> str:
        return scope.content_path(f"{Config.VOCAB_TEXT_DIR}/{Config.VOCAB_MANIFEST_FILE}")

    def load(self, scope: Scope) -> VocabularyManifest:
        """
        Load the manifest of a scope, or start an empty one with counter 1.

        Raises:
            DataIntegrityError: If the persisted manifest is malformed
            InvariantViolationError: If it holds duplicate keys or a counter behind
                its existing filenames
        """
        path = self.manifest_path(scope)
        if self.blob_store.exists(path):
            try:
                manifest = VocabularyManifest.from_dict(self.blob_store.read_json(path))
            except (ValueError, KeyError, TypeError) as e:
                raise DataIntegrityError(
                    f"Malformed vocabulary manifest for {scope}",
                    details=f"{path}: {e}",
                    context={'path': path}
                )
            logger.info(f"Loaded {len(manifest.entries)} vocabulary entries for {scope}")
        else:
            manifest = VocabularyManifest(language=scope.language, level=scope.level)
            logger.info(f"No vocabulary manifest for {scope}, starting empty")

        index: Dict[str, VocabularyEntry] = {}
        by_filename: Dict[str, VocabularyEntry] = {}
        highest = 0
        for entry in manifest.entries:
            key = lookup_key(entry.text)
            if key in index:
                raise InvariantViolationError(
                    f"Duplicate vocabulary key in {scope}: \"{entry.text}\"",
                    details=f"{index[key].filename} and {entry.filename}",
                    context={'path': path}
                )
            if entry.filename in by_filename:
                raise InvariantViolationError(
                    f"Duplicate vocabulary filename in {scope}: {entry.filename}",
                    context={'path': path}
                )
            index[key] = entry
            by_filename[entry.filename] = entry
            match = _FILENAME_NUMBER.match(entry.filename)
            if match:
                highest = max(highest, int(match.group(1)))

        if manifest.next_filename_number <= highest:
            raise InvariantViolationError(
                f"Vocabulary counter for {scope} is behind its filenames",
                details=f"nextFilenameNumber={manifest.next_filename_number}, highest existing={highest}",
                context={'path': path}
            )

        self.scope = scope
        self.manifest = manifest
        self._index = index
        self._by_filename = by_filename
        self._dirty = False
        return manifest

    def _require_loaded(self) -> None:
        if self.manifest is None:
            raise InvariantViolationError("Vocabulary store used before load()")

    @property
    def entries(self) -> List[VocabularyEntry]:
        self._require_loaded()
        return list(self.manifest.entries)

    def has(self, text: str) -> bool:
        self._require_loaded()
        return lookup_key(text) in self._index

    def get(self, text: str) -> Optional[VocabularyEntry]:
        self._require_loaded()
        return self._index.get(lookup_key(text))

    def get_by_filename(self, filename: str) -> Optional[VocabularyEntry]:
        self._require_loaded()
        return self._by_filename.get(filename)

    def audio_key(self, entry: VocabularyEntry) -> str:
        """Blob path of an entry's audio."""
        self._require_loaded()
        return self.scope.content_path(entry.audio_path)

    def read_audio(self, entry: VocabularyEntry) -> bytes:
        return self.blob_store.read_file(self.audio_key(entry))

    def put(self, text: str, audio: bytes, voice: str, source: str) -> str:
        """
        Add a fragment under the next sequential filename.

        If an entry already exists for the text this is a no-op that returns the
        existing filename; use ``has`` first to tell the two cases apart.

        Returns:
            Filename of the entry holding the text
        """
        self._require_loaded()
        existing = self.get(text)
        if existing is not None:
            return existing.filename

        number = self.manifest.next_filename_number
        filename = f"{number:05d}.{self.extension}"
        if filename in self._by_filename:
            raise InvariantViolationError(
                f"Vocabulary filename {filename} already allocated in {self.scope}"
            )

        entry = VocabularyEntry(
            text=normalize_text(text),
            filename=filename,
            voice=voice,
            source=source
        )
        self.blob_store.write_file(self.audio_key(entry), audio)

        self.manifest.entries.append(entry)
        self.manifest.next_filename_number = number + 1
        self._index[lookup_key(entry.text)] = entry
        self._by_filename[filename] = entry
        self._dirty = True

        logger.info(f"Added vocabulary entry {filename}: \"{entry.text}\" ({source})")
        return filename

    def touch(self, filename: str) -> VocabularyEntry:
        """Refresh the timestamp of a repaired entry."""
        self._require_loaded()
        entry = self._by_filename.get(filename)
        if entry is None:
            raise InvariantViolationError(f"No vocabulary entry {filename} in {self.scope}")
        entry.generated_at = utc_now_iso()
        self._dirty = True
        return entry

    def save(self) -> bool:
        """
        Flush the manifest if it changed since the last load or save.

        Returns:
            True if the manifest was written
        """
        self._require_loaded()
        if not self._dirty:
            return False

        self.manifest.last_updated = utc_now_iso()
        self.blob_store.write_json(self.manifest_path(self.scope), self.manifest.to_dict())
        self._dirty = False
        logger.info(f"Saved vocabulary manifest for {self.scope} ({len(self.manifest.entries)} entries)")
        return True
