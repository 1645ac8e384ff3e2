"""
Lesson resolution, assembly, timing persistence and generation.
"""

from .resolver import ResolutionEngine, ResolutionStats
from .assembler import Assembler
from .timing import TimingRepository
from .generator import LessonGenerator, GeneratedLesson, LessonOutcome, BatchResult

__all__ = [
    'ResolutionEngine',
    'ResolutionStats',
    'Assembler',
    'TimingRepository',
    'LessonGenerator',
    'GeneratedLesson',
    'LessonOutcome',
    'BatchResult'
]
