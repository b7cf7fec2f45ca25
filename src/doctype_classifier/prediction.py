"""Single-document prediction with a fitted model."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .errors import ModelNotReadyError
from .extraction import TextExtractor
from .models import DocumentRecord, Prediction
from .pipeline import Model

logger = logging.getLogger(__name__)


class Predictor:
    """Applies a fitted model to new documents.

    Args:
        extractor: Used by :meth:`predict_image` to read the document first.
    """

    def __init__(self, extractor: Optional[TextExtractor] = None) -> None:
        self.extractor = extractor

    def predict(self, model: Optional[Model], document: DocumentRecord) -> Prediction:
        """Classify a document whose text has already been extracted.

        Raises:
            ModelNotReadyError: If ``model`` is ``None`` (e.g. training failed).
            UnknownLabelError: If the document carries a label the model does not know.
        """
        if model is None:
            raise ModelNotReadyError(
                "No model available for prediction; train or load a model first."
            )

        prediction = model.predict_one(document)
        logger.info(
            "Predicted Document Type for %s: %s (Score: %s)",
            document.file_path, prediction.predicted_label,
            ", ".join(f"{s:.4f}" for s in prediction.score),
        )
        return prediction

    def predict_image(self, model: Optional[Model], image_path: str | Path) -> Prediction:
        """Extract the text of an image and classify it.

        Raises:
            ModelNotReadyError: If ``model`` is ``None``.
            RuntimeError: If the predictor has no extractor.
        """
        if model is None:
            raise ModelNotReadyError(
                "No model available for prediction; train or load a model first."
            )
        if self.extractor is None:
            raise RuntimeError("Predictor has no text extractor. Pass one to Predictor().")

        text = self.extractor.extract_text(image_path)
        if not text.strip():
            logger.warning("No text extracted for %s; prediction is uninformed", image_path)
        return self.predict(model, DocumentRecord(file_path=str(image_path), text=text))
