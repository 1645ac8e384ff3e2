"""
Lesson Audio Generator.

Builds long-form spoken-language lesson audio from scripted text, reusing
previously synthesized vocabulary fragments and repairing corrupted fragments
surgically inside already assembled lessons.
"""

__version__ = "0.1.0"
