"""
Tests for the vocabulary store.
"""

import json
import tempfile

import pytest
from hypothesis import given, strategies as st

from lesson_audio_generator.errors import DataIntegrityError, InvariantViolationError
from lesson_audio_generator.models import Scope
from lesson_audio_generator.script.tokenizer import lookup_key
from lesson_audio_generator.storage.blob_store import LocalBlobStore
from lesson_audio_generator.vocab.store import VocabularyStore


class TestVocabularyStoreLifecycle:
    """Test load/save behavior."""

    def test_load_missing_manifest_starts_empty(self, blob_store, scope):
        """Test a new scope starts with counter 1 and no entries."""
        store = VocabularyStore(blob_store, extension="wav")
        manifest = store.load(scope)

        assert manifest.entries == []
        assert manifest.next_filename_number == 1
        assert manifest.language == "french"

    def test_save_and_reload(self, blob_store, scope, store):
        """Test entries persist across a save/load cycle."""
        store.put("Bonjour", b"audio-1", "alloy", "greetings")
        assert store.save()

        reloaded = VocabularyStore(blob_store, extension="wav")
        manifest = reloaded.load(scope)

        assert len(manifest.entries) == 1
        assert manifest.next_filename_number == 2
        entry = reloaded.get("bonjour")
        assert entry.filename == "00001.wav"
        assert entry.voice == "alloy"
        assert entry.source == "greetings"
        assert reloaded.read_audio(entry) == b"audio-1"

    def test_save_is_idempotent(self, blob_store, store):
        """Test that saving an unchanged store writes nothing."""
        store.put("Bonjour", b"audio", "alloy", "test")

        assert store.save() is True
        assert store.save() is False

    def test_manifest_json_layout(self, blob_store, scope, store):
        """Test the persisted field names."""
        store.put("Merci", b"audio", "nova", "lesson-generated")
        store.save()

        data = json.loads(blob_store.read_file(VocabularyStore.manifest_path(scope)))
        assert data['language'] == "french"
        assert data['level'] == "level1"
        assert data['nextFilenameNumber'] == 2
        assert data['entries'][0]['audioPath'] == "vocab-audio/00001.wav"
        assert data['entries'][0]['generatedAt'].endswith("Z")

    def test_use_before_load_fails(self, blob_store):
        """Test that an unloaded store refuses lookups."""
        store = VocabularyStore(blob_store)
        with pytest.raises(InvariantViolationError):
            store.has("Bonjour")


class TestVocabularyStoreLookups:
    """Test normalized lookups."""

    def test_lookup_is_case_and_whitespace_insensitive(self, store):
        """Test the Greek example resolves to the same entry."""
        store.put("Γεια σου", b"audio", "alloy", "test")

        assert store.has("Γεια σου")
        assert store.has("  γεια   σου ")
        assert store.get("ΓΕΙΑ ΣΟΥ").filename == store.get("γεια σου").filename

    def test_get_missing_returns_none(self, store):
        """Test lookups of unknown text."""
        assert store.get("Au revoir") is None
        assert not store.has("Au revoir")


class TestVocabularyStorePut:
    """Test filename allocation."""

    def test_sequential_filenames(self, store):
        """Test monotonic, zero-padded filenames."""
        assert store.put("Un", b"1", "alloy", "t") == "00001.wav"
        assert store.put("Deux", b"2", "alloy", "t") == "00002.wav"
        assert store.put("Trois", b"3", "alloy", "t") == "00003.wav"

    def test_put_existing_is_noop(self, blob_store, store):
        """Test put of known text returns the existing filename and keeps its audio."""
        first = store.put("Bonjour", b"original", "alloy", "t")
        second = store.put("  BONJOUR ", b"replacement", "alloy", "t")

        assert first == second
        assert len(store.entries) == 1
        assert store.manifest.next_filename_number == 2
        assert store.read_audio(store.get("Bonjour")) == b"original"

    def test_audio_written_under_scope(self, blob_store, store, scope):
        """Test fragment audio location."""
        store.put("Bonjour", b"audio", "alloy", "t")

        assert blob_store.exists(scope.content_path("vocab-audio/00001.wav"))

    def test_counter_continues_after_reload(self, blob_store, scope, store):
        """Test that filenames are never reused across sessions."""
        store.put("Un", b"1", "alloy", "t")
        store.put("Deux", b"2", "alloy", "t")
        store.save()

        reloaded = VocabularyStore(blob_store, extension="wav")
        reloaded.load(scope)
        assert reloaded.put("Trois", b"3", "alloy", "t") == "00003.wav"

    def test_touch_refreshes_timestamp(self, store):
        """Test repaired entries get a new timestamp."""
        store.put("Bonjour", b"audio", "alloy", "t")
        entry = store.get("Bonjour")
        entry.generated_at = "2020-01-01T00:00:00.000Z"

        store.touch(entry.filename)

        assert store.get("Bonjour").generated_at != "2020-01-01T00:00:00.000Z"
        assert store.save()

    def test_touch_unknown_filename(self, store):
        """Test touching a filename that does not exist."""
        with pytest.raises(InvariantViolationError):
            store.touch("99999.wav")


class TestVocabularyStoreIntegrity:
    """Test rejection of inconsistent persisted manifests."""

    def _write_manifest(self, blob_store, scope, data):
        blob_store.write_json(VocabularyStore.manifest_path(scope), data)

    def _entry(self, text, filename):
        return {'text': text, 'filename': filename, 'voice': 'alloy',
                'generatedAt': '2024-01-01T00:00:00.000Z', 'source': 't'}

    def test_malformed_json(self, blob_store, scope):
        """Test unparsable manifests raise a data-integrity error."""
        blob_store.write_file(VocabularyStore.manifest_path(scope), b"{not json")

        with pytest.raises(DataIntegrityError):
            VocabularyStore(blob_store).load(scope)

    def test_duplicate_key(self, blob_store, scope):
        """Test duplicate normalized text is an invariant violation."""
        self._write_manifest(blob_store, scope, {
            'language': 'french', 'level': 'level1', 'nextFilenameNumber': 3,
            'entries': [self._entry("Bonjour", "00001.wav"), self._entry("bonjour ", "00002.wav")]
        })

        with pytest.raises(InvariantViolationError):
            VocabularyStore(blob_store).load(scope)

    def test_counter_behind_filenames(self, blob_store, scope):
        """Test a counter that would reuse a filename is rejected."""
        self._write_manifest(blob_store, scope, {
            'language': 'french', 'level': 'level1', 'nextFilenameNumber': 2,
            'entries': [self._entry("Un", "00001.wav"), self._entry("Deux", "00002.wav")]
        })

        with pytest.raises(InvariantViolationError):
            VocabularyStore(blob_store).load(scope)

    def test_scopes_are_independent(self, blob_store, store):
        """Test that another level has its own counter."""
        store.put("Bonjour", b"audio", "alloy", "t")
        store.save()

        other = VocabularyStore(blob_store, extension="wav")
        other.load(Scope("french", "level2"))

        assert not other.has("Bonjour")
        assert other.put("Bonjour", b"audio", "alloy", "t") == "00001.wav"


class TestVocabularyStoreProperties:
    """Property-based tests for filename allocation."""

    @pytest.mark.property
    @given(st.lists(st.text(alphabet="abcAB é", min_size=1, max_size=6), max_size=25))
    def test_filenames_unique_and_counter_ahead(self, texts):
        """Test one entry per normalized text and a counter past every filename."""
        with tempfile.TemporaryDirectory() as root:
            store = VocabularyStore(LocalBlobStore(root), extension="wav")
            store.load(Scope("french", "level1"))
            for text in texts:
                if text.strip():
                    store.put(text, b"audio", "alloy", "t")

            filenames = [e.filename for e in store.entries]
            assert len(filenames) == len(set(filenames))
            assert store.manifest.next_filename_number == len(filenames) + 1
            assert len({lookup_key(e.text) for e in store.entries}) == len(filenames)
