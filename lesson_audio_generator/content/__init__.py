"""
Lesson sources, vocabulary lists and their work status.
"""

from .sources import LessonSource, parse_front_matter, load_lesson_source
from .vocab_lists import ItemStatus, VocabList, VocabListItem, parse_vocab_list, mark_generated
from .status import ItemKind, StatusLedger, WorkStatus
from .scanner import ContentScanner, ScopeContent

__all__ = [
    'LessonSource',
    'parse_front_matter',
    'load_lesson_source',
    'ItemStatus',
    'VocabList',
    'VocabListItem',
    'parse_vocab_list',
    'mark_generated',
    'ItemKind',
    'StatusLedger',
    'WorkStatus',
    'ContentScanner',
    'ScopeContent'
]
