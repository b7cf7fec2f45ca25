"""Tests for Tesseract text extraction.

The Tesseract engine itself is replaced with monkeypatched ``pytesseract``
functions; images are real files written with Pillow.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import pytesseract
from PIL import Image

from doctype_classifier.extraction import ExtractionStatus, TesseractExtractor
from doctype_classifier.models import WordBox


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    path = tmp_path / "scan.png"
    Image.new("RGB", (40, 20), "white").save(path)
    return path


@pytest.fixture
def extractor(tmp_path: Path) -> TesseractExtractor:
    return TesseractExtractor(tessdata_path=tmp_path / "tessdata", language="deu")


class TestTesseractExtractor:
    """Tests for TesseractExtractor."""

    def test_extracts_text(self, extractor, image_file, monkeypatch):
        calls = {}

        def fake_image_to_string(image, lang=None, config=""):
            calls.update(lang=lang, config=config, size=image.size)
            return "Rechnung Nummer 123\n"

        monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)

        result = extractor.extract(image_file)
        assert result.ok
        assert result.status is ExtractionStatus.OK
        assert result.text == "Rechnung Nummer 123\n"
        assert calls["lang"] == "deu"
        assert "--tessdata-dir" in calls["config"]
        assert calls["size"] == (40, 20)

    def test_missing_file_returns_empty_text(self, extractor, tmp_path, caplog):
        with caplog.at_level(logging.ERROR, logger="doctype_classifier"):
            assert extractor.extract_text(tmp_path / "missing.png") == ""

        assert extractor.extract(tmp_path / "missing.png").status is ExtractionStatus.NOT_FOUND
        assert any("File not found" in r.getMessage() for r in caplog.records)

    def test_engine_error(self, extractor, image_file, monkeypatch, caplog):
        def failing(*args, **kwargs):
            raise pytesseract.TesseractError(1, "boom")

        monkeypatch.setattr(pytesseract, "image_to_string", failing)

        result = extractor.extract(image_file)
        assert result.status is ExtractionStatus.ENGINE_FAILURE
        assert "boom" in result.error

        with caplog.at_level(logging.ERROR, logger="doctype_classifier"):
            assert extractor.extract_text(image_file) == ""
        assert [r.levelno for r in caplog.records] == [logging.ERROR]
        assert "OCR processing error" in caplog.records[0].getMessage()

    def test_engine_not_installed(self, extractor, image_file, monkeypatch):
        def missing_binary(*args, **kwargs):
            raise pytesseract.TesseractNotFoundError()

        monkeypatch.setattr(pytesseract, "image_to_string", missing_binary)
        assert extractor.extract(image_file).status is ExtractionStatus.ENGINE_FAILURE

    def test_unreadable_image(self, extractor, tmp_path):
        path = tmp_path / "notes.png"
        path.write_text("not an image", encoding="utf-8")
        result = extractor.extract(path)
        assert result.status is ExtractionStatus.ENGINE_FAILURE
        assert result.text == ""

    def test_unexpected_error_logged_as_critical(self, extractor, image_file, monkeypatch, caplog):
        def broken(*args, **kwargs):
            raise ValueError("bad state")

        monkeypatch.setattr(pytesseract, "image_to_string", broken)

        with caplog.at_level(logging.ERROR, logger="doctype_classifier"):
            assert extractor.extract_text(image_file) == ""

        assert extractor.extract(image_file).status is ExtractionStatus.UNEXPECTED
        critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
        assert len(critical) == 1
        assert "bad state" in critical[0].getMessage()

    def test_default_tessdata(self):
        assert TesseractExtractor().tesseract_config == ""

    def test_word_boxes(self, extractor, image_file, monkeypatch):
        data = {
            "text": ["", "Rechnung", "  ", "123"],
            "left": [0, 10, 0, 60],
            "top": [0, 5, 0, 5],
            "width": [40, 45, 0, 20],
            "height": [20, 12, 0, 12],
        }
        monkeypatch.setattr(pytesseract, "image_to_data", lambda *a, **kw: data)

        boxes = extractor.extract_word_boxes(image_file)
        assert boxes == [
            WordBox("Rechnung", 10, 5, 55, 17),
            WordBox("123", 60, 5, 80, 17),
        ]
        assert boxes[0].width == 45
        assert boxes[0].height == 12

    def test_word_boxes_on_failure(self, extractor, tmp_path):
        assert extractor.extract_word_boxes(tmp_path / "missing.png") == []

    def test_write_word_boxes(self, extractor, image_file, tmp_path, monkeypatch):
        data = {"text": ["Summe"], "left": [1], "top": [2], "width": [3], "height": [4]}
        monkeypatch.setattr(pytesseract, "image_to_data", lambda *a, **kw: data)

        output = extractor.write_word_boxes(image_file, tmp_path / "out" / "boxes.json")
        assert json.loads(output.read_text(encoding="utf-8")) == [
            {"word": "Summe", "x1": 1, "y1": 2, "x2": 4, "y2": 6},
        ]
