"""Shared fixtures for the cashflow-ocr test suite."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Allow running the suite from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from cashflow_ocr.config import AppConfig, ClassifierConfig
from cashflow_ocr.pipeline import ClassificationPipeline


class FakeOCR:
    """Stands in for Tesseract: returns canned text per file name."""

    def __init__(self, texts=None, fail_on=()):
        self.texts = texts or {}
        self.fail_on = set(fail_on)
        self.calls = []

    async def recognize(self, image_path):
        name = Path(image_path).name
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"tesseract crashed on {name}")
        return self.texts.get(name, '')


@pytest.fixture
def classifier_config():
    return ClassifierConfig.from_yaml()


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        data_dir=tmp_path / 'data',
        outbox_dir=tmp_path / 'outbox',
        inbox_dir=tmp_path / 'inbox',
    )


@pytest.fixture
def fake_ocr():
    return FakeOCR()


@pytest.fixture
def pipeline(app_config, classifier_config, fake_ocr):
    return ClassificationPipeline.from_config(app_config, classifier_config, ocr=fake_ocr)


@pytest.fixture
def received_at():
    # 15:30 in Bogota
    return datetime(2026, 10, 18, 20, 30, tzinfo=timezone.utc)


@pytest.fixture
def media_file(tmp_path):
    """Create a media file with given name and content."""
    def _make(name: str, content: bytes = b'\x89PNG fake image bytes') -> Path:
        path = tmp_path / 'media' / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
    return _make
