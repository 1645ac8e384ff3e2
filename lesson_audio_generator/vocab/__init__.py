"""
Vocabulary store and vocabulary list generation.
"""

from .store import VocabularyStore
from .generator import VocabularyListGenerator, VocabListResult

__all__ = [
    'VocabularyStore',
    'VocabularyListGenerator',
    'VocabListResult'
]
