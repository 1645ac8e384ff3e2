"""
Persistence of lesson audio and timing manifests.

A lesson's final audio lives at ``lessons-audio/<lang>/<level>/<lang>-<level>-<lessonId>.<ext>``
and its timing manifest next to it with the extension replaced by
``.metadata.json``.
"""

import logging
import posixpath
from typing import List

from ..config import Config
from ..errors import DataIntegrityError, InvariantViolationError
from ..models import Scope, TimingManifest
from ..storage.blob_store import BlobStore


logger = logging.getLogger(__name__)


class TimingRepository:
    """Reads and writes timing manifests and the lesson audio they describe."""

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    @staticmethod
    def audio_filename(scope: Scope, lesson_id: str, extension: str) -> str:
        return f"{scope.language}-{scope.level}-{lesson_id}.{extension.lstrip('.')}"

    @staticmethod
    def manifest_filename(audio_file: str) -> str:
        stem, _ = posixpath.splitext(audio_file)
        return f"{stem}{Config.METADATA_SUFFIX}"

    @staticmethod
    def lesson_id_from_manifest_path(scope: Scope, path: str) -> str:
        """Lesson id encoded in a manifest filename, or the bare stem if it does not follow the naming."""
        stem = posixpath.basename(path)[:-len(Config.METADATA_SUFFIX)]
        prefix = f"{scope.language}-{scope.level}-"
        return stem[len(prefix):] if stem.startswith(prefix) and len(stem) > len(prefix) else stem

    def audio_path(self, manifest: TimingManifest) -> str:
        return manifest.scope.audio_path(manifest.audio_file)

    def manifest_path(self, manifest: TimingManifest) -> str:
        return manifest.scope.audio_path(self.manifest_filename(manifest.audio_file))

    def list_manifest_paths(self, scope: Scope) -> List[str]:
        return [
            path for path in self.blob_store.list_files(scope.audio_dir)
            if path.endswith(Config.METADATA_SUFFIX)
        ]

    def lesson_audio_exists(self, scope: Scope, lesson_id: str, extension: str) -> bool:
        return self.blob_store.exists(scope.audio_path(self.audio_filename(scope, lesson_id, extension)))

    def load(self, path: str) -> TimingManifest:
        """
        Load and validate a timing manifest.

        Raises:
            DataIntegrityError: If the manifest is missing, unparsable or
                breaks a timing invariant
        """
        try:
            manifest = TimingManifest.from_dict(self.blob_store.read_json(path))
        except FileNotFoundError:
            raise DataIntegrityError(f"Timing manifest not found: {path}", context={'path': path})
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DataIntegrityError(
                f"Malformed timing manifest: {path}", details=str(e), context={'path': path}
            )

        try:
            manifest.validate()
        except InvariantViolationError as e:
            raise DataIntegrityError(
                f"Inconsistent timing manifest: {path}", details=str(e), context={'path': path}
            )
        return manifest

    def save(self, manifest: TimingManifest) -> str:
        """Write a manifest next to its audio and return its path."""
        path = self.manifest_path(manifest)
        self.blob_store.write_json(path, manifest.to_dict())
        logger.debug(f"Wrote timing manifest {path}")
        return path

    def write_lesson(self, manifest: TimingManifest, audio: bytes) -> None:
        """Persist a lesson: audio first, then the manifest describing it."""
        self.blob_store.write_file(self.audio_path(manifest), audio)
        self.save(manifest)
