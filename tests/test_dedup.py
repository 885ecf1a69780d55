"""Tests for media fingerprinting and the dedup gate."""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest
from cashflow_ocr.dedup import DedupGate, compute_media_ref
from cashflow_ocr.exceptions import InputError
from cashflow_ocr.models import MediaRef
from cashflow_ocr.storage import JsonDocumentStore, MemoryDocumentStore


class CountingStore(MemoryDocumentStore):

    def __init__(self):
        super().__init__(default_factory=lambda: {'seen': {}})
        self.writes = 0

    def set(self, document):
        self.writes += 1
        super().set(document)


class TestComputeMediaRef:

    def test_fingerprint_is_content_sha1_prefix(self, media_file):
        path = media_file('recibo.jpg', b'same bytes')
        ref = compute_media_ref(path)

        assert ref.fingerprint == hashlib.sha1(b'same bytes').hexdigest()[:12]
        assert ref.filename == 'recibo.jpg'
        assert str(ref) == f"{ref.fingerprint}:recibo.jpg"

    def test_same_content_same_fingerprint(self, media_file):
        first = compute_media_ref(media_file('a.jpg', b'content'))
        second = compute_media_ref(media_file('b.jpg', b'content'))

        assert first.fingerprint == second.fingerprint
        assert str(first) != str(second)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError):
            compute_media_ref(tmp_path / 'nope.jpg')

    def test_directory_is_not_media(self, tmp_path):
        with pytest.raises(InputError):
            compute_media_ref(tmp_path)


class TestDedupGate:

    def setup_method(self):
        self.now = datetime(2026, 10, 18, 20, 30, tzinfo=timezone.utc)
        self.store = CountingStore()
        self.gate = DedupGate(self.store, clock=lambda: self.now)
        self.ref = MediaRef(fingerprint='a1b2c3d4e5f6', filename='IMG-001.jpg')

    def test_first_observation_registers(self):
        result = self.gate.observe(self.ref)

        assert result.is_duplicate is False
        assert result.first_seen_at == '2026-10-18T20:30:00+00:00'
        assert self.gate.is_known(self.ref)
        assert self.store.writes == 1

    def test_repeat_observation_has_no_side_effects(self):
        self.gate.observe(self.ref)
        before = self.store.get()

        self.now = self.now + timedelta(hours=3)
        result = self.gate.observe(self.ref)

        assert result.is_duplicate is True
        assert result.first_seen_at == '2026-10-18T20:30:00+00:00'
        assert self.store.writes == 1
        assert self.store.get() == before

    def test_distinct_refs(self):
        other = MediaRef(fingerprint='ffffffffffff', filename='IMG-001.jpg')
        self.gate.observe(self.ref)

        assert self.gate.observe(other).is_duplicate is False
        assert not self.gate.is_known(MediaRef('000000000000', 'x.png'))

    def test_survives_restart(self, tmp_path):
        path = tmp_path / 'seen.json'
        DedupGate(JsonDocumentStore(path)).observe(self.ref)

        result = DedupGate(JsonDocumentStore(path)).observe(self.ref)

        assert result.is_duplicate is True

    def test_malformed_registry_starts_empty(self, tmp_path):
        path = tmp_path / 'seen.json'
        path.write_text('{"seen": []}', encoding='utf-8')
        gate = DedupGate(JsonDocumentStore(path))

        assert gate.observe(self.ref).is_duplicate is False
        assert gate.is_known(self.ref)
