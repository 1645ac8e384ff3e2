"""
Corruption detection, vocabulary repair and lesson reconstruction.
"""

from .detector import CorruptionDetector, CorruptionStrictness, DetectionThresholds
from .vocab_repair import VocabularyRepairer, VocabularyRepairResult, RepairFailure
from .reconstructor import Reconstructor

__all__ = [
    'CorruptionDetector',
    'CorruptionStrictness',
    'DetectionThresholds',
    'VocabularyRepairer',
    'VocabularyRepairResult',
    'RepairFailure',
    'Reconstructor'
]
