"""
Speech synthesis backends and wrappers.
"""

from .base import SpeechSynthesizer
from .retrying import RetryingSynthesizer
from .cost_tracker import CostTracker, CostTrackingSynthesizer

__all__ = [
    'SpeechSynthesizer',
    'RetryingSynthesizer',
    'CostTracker',
    'CostTrackingSynthesizer'
]
