"""Optical text extraction from document images with Tesseract.

The classification core only depends on the :class:`TextExtractor` protocol
(``extract_text(image_path) -> str``). :class:`TesseractExtractor` is the
production implementation, backed by ``pytesseract`` and ``Pillow``.

Extraction never raises. :meth:`TesseractExtractor.extract` reports failures
as an :class:`ExtractionResult` with an explicit :class:`ExtractionStatus`;
:meth:`TesseractExtractor.extract_text` logs the cause and degrades to an
empty string.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

import pytesseract
from PIL import Image, UnidentifiedImageError

from .models import WordBox

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ExtractionStatus(str, Enum):
    """Outcome of a single extraction call."""

    OK = "ok"
    NOT_FOUND = "not_found"
    ENGINE_FAILURE = "engine_failure"
    UNEXPECTED = "unexpected"


# Log severity per failure cause
_FAILURE_LEVELS = {
    ExtractionStatus.NOT_FOUND: logging.ERROR,
    ExtractionStatus.ENGINE_FAILURE: logging.ERROR,
    ExtractionStatus.UNEXPECTED: logging.CRITICAL,
}


@dataclass
class ExtractionResult:
    """Text (and optionally word boxes) recognized in one image."""

    status: ExtractionStatus
    text: str = ""
    words: list[WordBox] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ExtractionStatus.OK


class TextExtractor(Protocol):
    """Anything that can turn an image path into recognized text."""

    def extract_text(self, image_path: PathLike) -> str:
        """Return the text in the image, or ``""`` if it cannot be read."""
        ...


class TesseractExtractor:
    """Tesseract-backed text extractor.

    Each call opens the image in a ``with`` block and runs Tesseract once, so
    no image or engine handle outlives the call.

    Args:
        tessdata_path: Directory holding the ``*.traineddata`` files; the
            Tesseract default is used when ``None``.
        language: Tesseract language code(s), e.g. ``"deu"`` or ``"deu+eng"``.
        tesseract_cmd: Path to the ``tesseract`` binary if not on ``PATH``.
    """

    def __init__(
        self,
        tessdata_path: Optional[PathLike] = None,
        language: str = "eng",
        tesseract_cmd: Optional[str] = None,
    ) -> None:
        self.tessdata_path = Path(tessdata_path) if tessdata_path else None
        self.language = language
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @property
    def tesseract_config(self) -> str:
        if self.tessdata_path is None:
            return ""
        return f'--tessdata-dir "{self.tessdata_path}"'

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, image_path: PathLike) -> ExtractionResult:
        """Recognize the text of an image without raising."""
        return self._run(image_path, self._read_text)

    def extract_text(self, image_path: PathLike) -> str:
        """Recognize the text of an image; ``""`` on any failure (logged)."""
        result = self.extract(image_path)
        self._log_failure(image_path, result)
        return result.text

    def extract_word_boxes(self, image_path: PathLike) -> list[WordBox]:
        """Recognize words with their bounding boxes; ``[]`` on failure (logged)."""
        result = self._run(image_path, self._read_words)
        self._log_failure(image_path, result)
        return result.words

    def write_word_boxes(self, image_path: PathLike, output_path: PathLike) -> Path:
        """Write the word boxes of an image to a JSON file.

        Returns:
            The output path.
        """
        boxes = self.extract_word_boxes(image_path)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps([b.to_dict() for b in boxes], indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Wrote %d word boxes for %s to %s", len(boxes), image_path, output_path)
        return output_path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        image_path: PathLike,
        operation: Callable[[Image.Image], ExtractionResult],
    ) -> ExtractionResult:
        path = Path(image_path)
        if not path.is_file():
            return ExtractionResult(ExtractionStatus.NOT_FOUND, error=f"File not found: {path}")

        try:
            with Image.open(path) as image:
                return operation(image)
        except FileNotFoundError as exc:
            return ExtractionResult(ExtractionStatus.NOT_FOUND, error=str(exc))
        except (
            pytesseract.TesseractError,
            pytesseract.TesseractNotFoundError,
            UnidentifiedImageError,
        ) as exc:
            return ExtractionResult(ExtractionStatus.ENGINE_FAILURE, error=f"{type(exc).__name__}: {exc}")
        except Exception as exc:  # extraction must never raise
            logger.debug("Unexpected extraction fault for %s", path, exc_info=True)
            return ExtractionResult(ExtractionStatus.UNEXPECTED, error=f"{type(exc).__name__}: {exc}")

    def _read_text(self, image: Image.Image) -> ExtractionResult:
        text = pytesseract.image_to_string(
            image, lang=self.language, config=self.tesseract_config
        )
        return ExtractionResult(ExtractionStatus.OK, text=text)

    def _read_words(self, image: Image.Image) -> ExtractionResult:
        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            config=self.tesseract_config,
            output_type=pytesseract.Output.DICT,
        )

        words: list[WordBox] = []
        for i, word in enumerate(data.get("text", [])):
            word = (word or "").strip()
            if not word:
                continue
            left, top = int(data["left"][i]), int(data["top"][i])
            words.append(WordBox(
                word=word,
                x1=left,
                y1=top,
                x2=left + int(data["width"][i]),
                y2=top + int(data["height"][i]),
            ))

        text = " ".join(w.word for w in words)
        return ExtractionResult(ExtractionStatus.OK, text=text, words=words)

    @staticmethod
    def _log_failure(image_path: PathLike, result: ExtractionResult) -> None:
        if result.ok:
            return
        messages = {
            ExtractionStatus.NOT_FOUND: "File not found: %s (%s)",
            ExtractionStatus.ENGINE_FAILURE: "OCR processing error for file: %s (%s)",
            ExtractionStatus.UNEXPECTED: "Unexpected error during OCR processing for file: %s (%s)",
        }
        logger.log(_FAILURE_LEVELS[result.status], messages[result.status], image_path, result.error)
