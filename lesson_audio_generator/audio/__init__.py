"""
Audio measurement, concatenation and mixing.
"""

from .toolkit import AudioToolkit
from .numpy_toolkit import NumpyAudioToolkit

__all__ = [
    'AudioToolkit',
    'NumpyAudioToolkit'
]
