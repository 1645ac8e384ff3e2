"""
Persistent blob storage.

Paths are forward-slash separated keys relative to the store root, e.g.
``lessons-content/fr/level1/vocab-audio/00001.wav``. Writes are atomic per
file; nothing else is transactional.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List


logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Abstract interface for the blob store consumed by the core components."""

    @abstractmethod
    def write_file(self, path: str, data: bytes) -> None:
        """Write bytes to ``path``, replacing any existing blob atomically."""
        pass

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """
        Read a blob.

        Raises:
            FileNotFoundError: If no blob exists at ``path``
        """
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def list_files(self, prefix: str) -> List[str]:
        """List all blob paths below a directory prefix, sorted."""
        pass

    @abstractmethod
    def size(self, path: str) -> int:
        """Size of a blob in bytes; raises FileNotFoundError if missing."""
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        pass

    def read_json(self, path: str) -> Any:
        """Read and decode a JSON blob. Raises ValueError on malformed JSON."""
        return json.loads(self.read_file(path).decode('utf-8'))

    def write_json(self, path: str, data: Any) -> None:
        """Encode ``data`` as indented UTF-8 JSON and write it."""
        payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        self.write_file(path, payload.encode('utf-8'))


class LocalBlobStore(BlobStore):
    """Blob store backed by a directory on the local filesystem."""

    def __init__(self, root):
        """
        Initialize the store.

        Args:
            root: Directory holding all blobs; created if missing
        """
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path.strip('/')).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise ValueError(f"Path escapes blob store root: {path}")
        return resolved

    def write_file(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug(f"Wrote {len(data)} bytes to {path}")

    def read_file(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def list_files(self, prefix: str) -> List[str]:
        base = self._resolve(prefix)
        if not base.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in base.rglob('*')
            if p.is_file() and not p.name.endswith('.tmp')
        )

    def size(self, path: str) -> int:
        return self._resolve(path).stat().st_size

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target.exists():
            target.unlink()
