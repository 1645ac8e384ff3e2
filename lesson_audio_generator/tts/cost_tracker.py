"""
Synthesis cost tracking and budget enforcement.

Estimated spend is persisted as ``cost-tracker.json`` at the blob store root so
it accumulates across batch runs.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List

from ..config import Config
from ..errors import BudgetExceededError
from ..models import utc_now_iso
from ..storage.blob_store import BlobStore
from .base import SpeechSynthesizer


logger = logging.getLogger(__name__)


@dataclass
class CostEntry:
    """One billed synthesis request."""
    text: str
    character_count: int
    cost: float
    voice: str
    timestamp: str = field(default_factory=utc_now_iso)


class CostTracker:
    """Tracks estimated synthesis cost and enforces an optional budget limit."""

    MAX_TEXT_LENGTH = 100

    def __init__(self, blob_store: BlobStore, path: str = None,
                 cost_per_1000_chars: float = None, budget_limit: float = None):
        """
        Initialize the tracker and load persisted spend.

        Args:
            blob_store: Storage for the tracker file
            path: Blob path of the tracker file
            cost_per_1000_chars: Price per 1000 input characters
            budget_limit: Overrides the persisted limit when given; 0 disables it
        """
        self.blob_store = blob_store
        self.path = path or Config.COST_TRACKER_FILE
        self.cost_per_1000_chars = (
            cost_per_1000_chars if cost_per_1000_chars is not None else Config.TTS_COST_PER_1000_CHARS
        )

        self.total_spent = 0.0
        self.budget_limit = Config.TTS_BUDGET_LIMIT
        self.entries: List[CostEntry] = []
        self.session_start = utc_now_iso()
        self.session_spent = 0.0
        self._load()

        if budget_limit is not None:
            self.budget_limit = budget_limit

    def _load(self) -> None:
        if not self.blob_store.exists(self.path):
            return
        try:
            data = self.blob_store.read_json(self.path)
            self.total_spent = float(data.get('totalSpent', 0.0))
            self.budget_limit = float(data.get('budgetLimit', self.budget_limit))
            self.entries = [
                CostEntry(
                    text=e['text'],
                    character_count=int(e['characterCount']),
                    cost=float(e['cost']),
                    voice=e.get('voice', ''),
                    timestamp=e.get('timestamp', '')
                )
                for e in data.get('entries', [])
            ]
            logger.info(f"Loaded cost tracker: ${self.total_spent:.4f} spent")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not parse {self.path}, starting a new cost tracker: {e}")

    def calculate_cost(self, text: str) -> float:
        return len(text) / 1000 * self.cost_per_1000_chars

    @property
    def remaining_budget(self) -> float:
        if self.budget_limit <= 0:
            return float('inf')
        return max(0.0, self.budget_limit - self.total_spent)

    def check(self, text: str) -> None:
        """
        Raise if synthesizing ``text`` would exceed the budget.

        Raises:
            BudgetExceededError: If the request would push spend over the limit
        """
        if self.budget_limit <= 0:
            return
        cost = self.calculate_cost(text)
        if self.total_spent + cost > self.budget_limit:
            raise BudgetExceededError(
                f"Budget of ${self.budget_limit:.2f} would be exceeded "
                f"(spent ${self.total_spent:.4f}, request ${cost:.4f})",
                text=text,
                error_code="TTS_006"
            )

    def record(self, text: str, voice: str) -> CostEntry:
        entry = CostEntry(
            text=text[:self.MAX_TEXT_LENGTH],
            character_count=len(text),
            cost=self.calculate_cost(text),
            voice=voice
        )
        self.entries.append(entry)
        self.total_spent += entry.cost
        self.session_spent += entry.cost
        return entry

    def save(self) -> None:
        self.blob_store.write_json(self.path, self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalSpent': round(self.total_spent, 6),
            'budgetLimit': self.budget_limit,
            'currency': 'USD',
            'entries': [
                {
                    'text': e.text,
                    'characterCount': e.character_count,
                    'cost': round(e.cost, 6),
                    'voice': e.voice,
                    'timestamp': e.timestamp,
                }
                for e in self.entries
            ],
            'lastUpdated': utc_now_iso(),
            'sessionStart': self.session_start,
        }

    def get_summary(self) -> Dict[str, Any]:
        """Spend figures for the CLI summary."""
        session_entries = [e for e in self.entries if e.timestamp >= self.session_start]
        return {
            'total_spent': self.total_spent,
            'session_spent': self.session_spent,
            'session_requests': len(session_entries),
            'session_characters': sum(e.character_count for e in session_entries),
            'budget_limit': self.budget_limit,
            'remaining_budget': self.remaining_budget,
        }


class CostTrackingSynthesizer(SpeechSynthesizer):
    """Checks the budget before, and records spend after, every synthesis call."""

    def __init__(self, inner: SpeechSynthesizer, tracker: CostTracker):
        self.inner = inner
        self.tracker = tracker

    def synthesize(self, text: str, voice: str) -> bytes:
        self.tracker.check(text)
        audio = self.inner.synthesize(text, voice)
        self.tracker.record(text, voice)
        self.tracker.save()
        return audio
