"""
Per-scope work status ledger.

Records whether each lesson and vocabulary list of a scope is pending, done or
failed in ``<lang>/<level>/status.json`` instead of encoding it in filenames.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional

from ..config import Config
from ..errors import DataIntegrityError
from ..models import Scope, utc_now_iso
from ..storage.blob_store import BlobStore


logger = logging.getLogger(__name__)


class WorkStatus(Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


class ItemKind(Enum):
    LESSON = "lessons"
    VOCAB_LIST = "vocabLists"


@dataclass
class StatusRecord:
    status: WorkStatus
    updated_at: str = field(default_factory=utc_now_iso)
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {'status': self.status.value, 'updatedAt': self.updated_at}
        if self.message:
            data['message'] = self.message
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatusRecord':
        return cls(
            status=WorkStatus(data['status']),
            updated_at=data.get('updatedAt', ''),
            message=data.get('message', '')
        )


class StatusLedger:
    """Load/mutate/save owner of one scope's status records."""

    def __init__(self, blob_store: BlobStore, scope: Scope):
        self.blob_store = blob_store
        self.scope = scope
        self.path = scope.content_path(Config.STATUS_FILE)
        self.records: Dict[ItemKind, Dict[str, StatusRecord]] = {kind: {} for kind in ItemKind}
        self._dirty = False

    def load(self) -> 'StatusLedger':
        """
        Load the ledger; a missing file means everything is pending.

        Raises:
            DataIntegrityError: If the ledger file is malformed
        """
        if not self.blob_store.exists(self.path):
            return self
        try:
            data = self.blob_store.read_json(self.path)
            for kind in ItemKind:
                self.records[kind] = {
                    item_id: StatusRecord.from_dict(record)
                    for item_id, record in data.get(kind.value, {}).items()
                }
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DataIntegrityError(
                f"Malformed status ledger for {self.scope}", details=str(e), context={'path': self.path}
            )
        return self

    def get(self, kind: ItemKind, item_id: str) -> WorkStatus:
        record = self.records[kind].get(item_id)
        return record.status if record else WorkStatus.PENDING

    def record(self, kind: ItemKind, item_id: str) -> Optional[StatusRecord]:
        return self.records[kind].get(item_id)

    def set(self, kind: ItemKind, item_id: str, status: WorkStatus, message: str = "") -> None:
        self.records[kind][item_id] = StatusRecord(status=status, message=message)
        self._dirty = True

    def save(self) -> None:
        if not self._dirty:
            return
        data = {
            kind.value: {item_id: record.to_dict() for item_id, record in sorted(records.items())}
            for kind, records in self.records.items()
        }
        self.blob_store.write_json(self.path, data)
        self._dirty = False
        logger.debug(f"Saved status ledger for {self.scope}")

    def counts(self, kind: ItemKind, item_ids) -> Dict[str, int]:
        """Number of the given items in each status."""
        counts = {status.value: 0 for status in WorkStatus}
        for item_id in item_ids:
            counts[self.get(kind, item_id).value] += 1
        return counts
