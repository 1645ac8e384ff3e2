"""
Vocabulary list files.

One item per line, ``<text> — NEW`` or ``<text> — GENERATED`` (``--`` is
accepted in place of the em dash).
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List

from ..models import Scope
from ..storage.blob_store import BlobStore


logger = logging.getLogger(__name__)

ITEM_LINE = re.compile(r'^(.+?)\s*(?:—|--)\s*(NEW|GENERATED)\s*$')
STATUS_MARKER = re.compile(r'(—|--)\s*(NEW|GENERATED)\s*$')


class ItemStatus(Enum):
    NEW = "NEW"
    GENERATED = "GENERATED"


@dataclass
class VocabListItem:
    text: str
    status: ItemStatus
    line_number: int


@dataclass
class VocabList:
    """A curated list of vocabulary to pre-generate for a scope."""
    scope: Scope
    list_id: str
    path: str
    items: List[VocabListItem] = field(default_factory=list)

    @property
    def new_items(self) -> List[VocabListItem]:
        return [item for item in self.items if item.status == ItemStatus.NEW]


def parse_vocab_list(content: str, source_name: str = "") -> List[VocabListItem]:
    """Parse list lines, skipping blank ones and logging malformed ones."""
    items = []
    for number, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        match = ITEM_LINE.match(line)
        if not match:
            logger.warning(f"Skipping malformed line {number} in {source_name}: {line!r}")
            continue
        items.append(VocabListItem(match.group(1).strip(), ItemStatus(match.group(2)), number))
    return items


def mark_generated(content: str, line_numbers: Iterable[int]) -> str:
    """Rewrite the status marker of the given lines to GENERATED."""
    targets = set(line_numbers)
    lines = content.split('\n')
    for index, line in enumerate(lines):
        if index + 1 in targets:
            lines[index] = STATUS_MARKER.sub(
                lambda m: f"{m.group(1)} {ItemStatus.GENERATED.value}", line.rstrip('\r')
            )
    return '\n'.join(lines)


def load_vocab_list(blob_store: BlobStore, scope: Scope, path: str) -> VocabList:
    content = blob_store.read_file(path).decode('utf-8')
    list_id = posixpath.splitext(posixpath.basename(path))[0]
    return VocabList(scope=scope, list_id=list_id, path=path, items=parse_vocab_list(content, path))


def save_generated_items(blob_store: BlobStore, vocab_list: VocabList,
                         items: Iterable[VocabListItem]) -> None:
    """Persist GENERATED markers for items and update them in memory."""
    items = list(items)
    if not items:
        return
    content = blob_store.read_file(vocab_list.path).decode('utf-8')
    updated = mark_generated(content, [item.line_number for item in items])
    blob_store.write_file(vocab_list.path, updated.encode('utf-8'))
    for item in items:
        item.status = ItemStatus.GENERATED
