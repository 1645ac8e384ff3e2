"""
Tests for lesson sources, vocabulary lists, the status ledger and content discovery.
"""

import pytest

from conftest import write_text
from lesson_audio_generator.content.scanner import ContentScanner
from lesson_audio_generator.content.sources import (
    default_lesson_title,
    load_lesson_source,
    parse_front_matter,
)
from lesson_audio_generator.content.status import ItemKind, StatusLedger, WorkStatus
from lesson_audio_generator.content.vocab_lists import (
    ItemStatus,
    load_vocab_list,
    mark_generated,
    parse_vocab_list,
    save_generated_items,
)
from lesson_audio_generator.errors import DataIntegrityError
from lesson_audio_generator.models import Scope


class TestLessonSources:
    """Test lesson file parsing."""

    def test_front_matter(self):
        """Test YAML settings are split from the script."""
        metadata, body = parse_front_matter(
            "---\nvoice: nova\nspeed: 0.9\ntitle: At the bakery\n---\nBonjour [pause 2s]\n"
        )

        assert metadata == {'voice': 'nova', 'speed': 0.9, 'title': 'At the bakery'}
        assert body == "Bonjour [pause 2s]"

    def test_no_front_matter(self):
        """Test plain scripts are returned unchanged."""
        assert parse_front_matter("  Bonjour [pause 2s]\n") == ({}, "Bonjour [pause 2s]")

    def test_invalid_front_matter_is_ignored(self):
        """Test unparsable YAML keeps the body."""
        metadata, body = parse_front_matter("---\nvoice: [unclosed\n---\nBonjour")

        assert metadata == {}
        assert body == "Bonjour"

    def test_non_mapping_front_matter_is_ignored(self):
        """Test a YAML list header."""
        assert parse_front_matter("---\n- a\n- b\n---\nBonjour") == ({}, "Bonjour")

    def test_load_lesson_source(self, blob_store, scope):
        """Test settings and identifiers of a loaded lesson."""
        path = scope.content_path("lessons/lesson2.txt")
        write_text(blob_store, path, "\ufeff---\nvoice: nova\nspeed: slow\n---\nBonjour")

        source = load_lesson_source(blob_store, scope, path)

        assert source.lesson_id == "lesson2"
        assert source.voice == "nova"
        assert source.speed is None
        assert source.text == "Bonjour"
        assert source.display_title == "Lesson 2"

    def test_unknown_voice_falls_back(self, blob_store, scope):
        """Test a voice the provider does not offer."""
        path = scope.content_path("lessons/lesson1.txt")
        write_text(blob_store, path, "---\nvoice: robot\n---\nBonjour")

        assert load_lesson_source(blob_store, scope, path).voice is None

    @pytest.mark.parametrize("lesson_id,expected", [
        ("lesson1", "Lesson 1"),
        ("lesson-07", "Lesson 7"),
        ("at_the_bakery", "At The Bakery"),
    ])
    def test_default_lesson_title(self, lesson_id, expected):
        """Test titles derived from lesson identifiers."""
        assert default_lesson_title(lesson_id) == expected


class TestVocabLists:
    """Test vocabulary list parsing and status rewriting."""

    def test_parse(self):
        """Test both dash styles, blank lines and malformed lines."""
        items = parse_vocab_list("Bonjour — NEW\n\nMerci -- GENERATED\nno marker here\nOui — NEW\n")

        assert [(i.text, i.status, i.line_number) for i in items] == [
            ("Bonjour", ItemStatus.NEW, 1),
            ("Merci", ItemStatus.GENERATED, 3),
            ("Oui", ItemStatus.NEW, 5),
        ]

    def test_mark_generated_keeps_other_lines(self):
        """Test only the selected lines change."""
        content = "Bonjour — NEW\nMerci -- NEW\nOui — NEW"

        assert mark_generated(content, [2, 3]) == "Bonjour — NEW\nMerci -- GENERATED\nOui — GENERATED"

    def test_save_generated_items(self, blob_store, scope):
        """Test markers are persisted and updated in memory."""
        path = scope.content_path("vocab-lists/greetings.txt")
        write_text(blob_store, path, "Bonjour — NEW\nMerci — NEW\n")
        vocab_list = load_vocab_list(blob_store, scope, path)

        save_generated_items(blob_store, vocab_list, vocab_list.items[:1])

        assert vocab_list.list_id == "greetings"
        assert [i.text for i in vocab_list.new_items] == ["Merci"]
        assert blob_store.read_file(path).decode('utf-8') == "Bonjour — GENERATED\nMerci — NEW\n"


class TestStatusLedger:
    """Test the per-scope status ledger."""

    def test_missing_ledger_is_pending(self, blob_store, scope):
        """Test defaults without a ledger file."""
        ledger = StatusLedger(blob_store, scope).load()

        assert ledger.get(ItemKind.LESSON, "lesson1") == WorkStatus.PENDING

    def test_set_save_load(self, blob_store, scope):
        """Test records persist."""
        ledger = StatusLedger(blob_store, scope).load()
        ledger.set(ItemKind.LESSON, "lesson1", WorkStatus.DONE)
        ledger.set(ItemKind.VOCAB_LIST, "greetings", WorkStatus.FAILED, message="2 items failed")
        ledger.save()

        reloaded = StatusLedger(blob_store, scope).load()

        assert reloaded.get(ItemKind.LESSON, "lesson1") == WorkStatus.DONE
        assert reloaded.record(ItemKind.VOCAB_LIST, "greetings").message == "2 items failed"
        assert blob_store.exists("lessons-content/french/level1/status.json")

    def test_counts(self, blob_store, scope):
        """Test status counts over a set of items."""
        ledger = StatusLedger(blob_store, scope)
        ledger.set(ItemKind.LESSON, "lesson1", WorkStatus.DONE)
        ledger.set(ItemKind.LESSON, "lesson2", WorkStatus.FAILED)

        counts = ledger.counts(ItemKind.LESSON, ["lesson1", "lesson2", "lesson3"])

        assert counts == {'pending': 1, 'done': 1, 'failed': 1}

    def test_malformed_ledger(self, blob_store, scope):
        """Test an unparsable ledger is a data-integrity error."""
        write_text(blob_store, scope.content_path("status.json"), '{"lessons": {"lesson1": {"status": "maybe"}}}')

        with pytest.raises(DataIntegrityError):
            StatusLedger(blob_store, scope).load()


class TestContentScanner:
    """Test discovery of scopes and pending work."""

    def _populate(self, blob_store):
        write_text(blob_store, "lessons-content/french/level1/lessons/lesson1.txt", "Bonjour")
        write_text(blob_store, "lessons-content/french/level1/lessons/lesson2.txt", "Merci")
        write_text(blob_store, "lessons-content/french/level1/lessons/notes.md", "ignored")
        write_text(blob_store, "lessons-content/french/level1/vocab-lists/greetings.txt", "Oui — NEW")
        write_text(blob_store, "lessons-content/greek/level2/lessons/lesson1.txt", "Γεια σου")

    def test_scan(self, blob_store):
        """Test every scope with its lessons and lists."""
        self._populate(blob_store)

        contents = ContentScanner(blob_store).scan()

        assert [c.scope for c in contents] == [Scope("french", "level1"), Scope("greek", "level2")]
        assert [s.lesson_id for s in contents[0].lessons] == ["lesson1", "lesson2"]
        assert [v.list_id for v in contents[0].vocab_lists] == ["greetings"]
        assert contents[1].vocab_lists == []

    def test_pending_lessons(self, blob_store, scope):
        """Test DONE lessons are skipped and FAILED ones optionally."""
        self._populate(blob_store)
        ledger = StatusLedger(blob_store, scope)
        ledger.set(ItemKind.LESSON, "lesson1", WorkStatus.DONE)
        ledger.set(ItemKind.LESSON, "lesson2", WorkStatus.FAILED)
        scanner = ContentScanner(blob_store)

        assert [s.lesson_id for s in scanner.pending_lessons(scope, ledger)] == ["lesson2"]
        assert scanner.pending_lessons(scope, ledger, include_failed=False) == []

    def test_empty_root(self, blob_store):
        """Test a content root with nothing in it."""
        assert ContentScanner(blob_store).scan() == []
