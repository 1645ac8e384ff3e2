"""
Lesson source files.

A lesson file may start with a YAML front matter block::

    ---
    voice: nova
    speed: 0.9
    title: At the bakery
    ---
    Bonjour [pause 2s] "Un croissant, s'il vous plait" [pause 3s]
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import yaml

from ..config import Config
from ..models import Scope
from ..storage.blob_store import BlobStore


logger = logging.getLogger(__name__)

FRONT_MATTER = re.compile(r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(.*)\Z', re.DOTALL)


@dataclass
class LessonSource:
    """Script and settings of one lesson."""
    language_id: str
    level_id: str
    lesson_id: str
    text: str
    path: str
    title: Optional[str] = None
    voice: Optional[str] = None
    speed: Optional[float] = None

    @property
    def scope(self) -> Scope:
        return Scope(self.language_id, self.level_id)

    @property
    def display_title(self) -> str:
        return self.title or default_lesson_title(self.lesson_id)


def default_lesson_title(lesson_id: str) -> str:
    """``lesson3`` -> ``Lesson 3``."""
    match = re.fullmatch(r'lesson[-_]?(\d+)', lesson_id, re.IGNORECASE)
    if match:
        return f"Lesson {int(match.group(1))}"
    return lesson_id.replace('-', ' ').replace('_', ' ').title()


def parse_front_matter(raw: str, source_name: str = "") -> Tuple[Dict[str, Any], str]:
    """
    Split a lesson file into front matter and body.

    Invalid front matter is logged and ignored; the body is always kept.

    Returns:
        Tuple of (metadata dict, body text)
    """
    raw = raw.lstrip('\ufeff')
    match = FRONT_MATTER.match(raw)
    if not match:
        return {}, raw.strip()

    header, body = match.groups()
    try:
        metadata = yaml.safe_load(header) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring invalid front matter in {source_name}: {e}")
        return {}, body.strip()

    if not isinstance(metadata, dict):
        logger.warning(f"Ignoring front matter in {source_name}: expected a mapping")
        return {}, body.strip()
    return metadata, body.strip()


def load_lesson_source(blob_store: BlobStore, scope: Scope, path: str) -> LessonSource:
    """Read a lesson file and apply its front matter settings."""
    raw = blob_store.read_file(path).decode('utf-8')
    metadata, body = parse_front_matter(raw, path)
    lesson_id = posixpath.splitext(posixpath.basename(path))[0]

    voice = metadata.get('voice')
    if voice is not None and voice not in Config.AVAILABLE_VOICES:
        logger.warning(f"Lesson {lesson_id}: unknown voice '{voice}', using default")
        voice = None

    speed = metadata.get('speed')
    if speed is not None:
        try:
            speed = float(speed)
        except (TypeError, ValueError):
            logger.warning(f"Lesson {lesson_id}: invalid speed {speed!r}, using default")
            speed = None

    title = metadata.get('title')
    return LessonSource(
        language_id=scope.language,
        level_id=scope.level,
        lesson_id=lesson_id,
        text=body,
        path=path,
        title=str(title) if title is not None else None,
        voice=voice,
        speed=speed
    )
