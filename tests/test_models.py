"""
Tests for core data models.
"""

import pytest

from lesson_audio_generator.models import (
    Phrase,
    Scope,
    Segment,
    SegmentKind,
    VocabularyEntry,
    VocabularyManifest,
    utc_now_iso,
)


class TestScope:
    """Test cases for Scope paths."""

    def test_paths(self):
        """Test content and audio locations of a scope."""
        scope = Scope("french", "level1")

        assert scope.content_path("vocab-audio/00001.wav") == "lessons-content/french/level1/vocab-audio/00001.wav"
        assert scope.audio_path("x.wav") == "lessons-audio/french/level1/x.wav"
        assert str(scope) == "french/level1"

    def test_scope_is_hashable(self):
        """Test scopes can key dictionaries and sets."""
        assert len({Scope("fr", "a"), Scope("fr", "a"), Scope("fr", "b")}) == 2


class TestPhrase:
    """Test cases for Phrase."""

    def test_silence(self):
        """Test a phrase without text is a silence."""
        assert Phrase(text='', normalized='', pause_after_ms=2000).is_silence
        assert not Phrase(text='Bonjour', normalized='Bonjour').is_silence


class TestVocabularyEntry:
    """Test cases for VocabularyEntry data model."""

    def test_audio_path(self):
        """Test the store-relative audio key."""
        entry = VocabularyEntry(text="Merci", filename="00007.wav", voice="alloy", source="t")

        assert entry.audio_path == "vocab-audio/00007.wav"

    def test_from_dict_defaults(self):
        """Test optional fields of older manifests."""
        entry = VocabularyEntry.from_dict({'text': "Merci", 'filename': "00001.wav"})

        assert entry.voice == "alloy"
        assert entry.source == ""
        assert entry.generated_at.endswith("Z")

    def test_manifest_from_dict(self):
        """Test manifest fields and entry order."""
        manifest = VocabularyManifest.from_dict({
            'language': "french", 'level': "level1", 'nextFilenameNumber': 3,
            'entries': [
                {'text': "Un", 'filename': "00001.wav"},
                {'text': "Deux", 'filename': "00002.wav"},
            ]
        })

        assert manifest.next_filename_number == 3
        assert [e.text for e in manifest.entries] == ["Un", "Deux"]
        assert manifest.to_dict()['entries'][1]['audioPath'] == "vocab-audio/00002.wav"


class TestSegment:
    """Test cases for Segment serialization."""

    def test_silence_omits_text_fields(self):
        """Test silence segments carry only timing."""
        assert Segment(0, 0, 1000, SegmentKind.SILENCE).to_dict() == {
            'index': 0, 'startMs': 0, 'durationMs': 1000, 'type': "silence"
        }

    def test_vocab_segment_fields(self):
        """Test vocab segments record their fragment."""
        data = Segment(1, 1000, 500, SegmentKind.VOCAB, '"Oui"', '"Oui"', "vocab-audio/00001.wav").to_dict()

        assert data['type'] == "vocab"
        assert data['vocabFile'] == "vocab-audio/00001.wav"
        assert Segment.from_dict(data).end_ms == 1500

    def test_unknown_type(self):
        """Test unknown segment types are rejected."""
        with pytest.raises(ValueError):
            Segment.from_dict({'index': 0, 'startMs': 0, 'durationMs': 10, 'type': "music"})


def test_utc_now_iso_format():
    """Test millisecond UTC timestamps."""
    timestamp = utc_now_iso()

    assert timestamp.endswith("Z")
    assert len(timestamp.split(".")[1]) == 4
