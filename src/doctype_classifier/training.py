"""Training orchestration: load, fit, persist."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .dataset import LabeledDatasetLoader
from .errors import TrainingFailure
from .persistence import load_model, save_model
from .pipeline import FeaturePipeline, Model

logger = logging.getLogger(__name__)


class Trainer:
    """Fits a model on a training file, or reloads the persisted one.

    Failures never propagate out of :meth:`train`; they are logged and the
    call returns ``None``. The most recent failure is kept in ``last_error``.

    Args:
        loader: Loads training files (and extracts text).
        model_path: Where the fitted model is persisted.
        pipeline: Pipeline used for fitting.
    """

    def __init__(
        self,
        loader: LabeledDatasetLoader,
        model_path: str | Path,
        pipeline: Optional[FeaturePipeline] = None,
    ) -> None:
        self.loader = loader
        self.model_path = Path(model_path)
        self.pipeline = pipeline or FeaturePipeline()
        self.model: Optional[Model] = None
        self.last_error: Optional[TrainingFailure] = None

    def train(self, training_file_path: str | Path, train_new_model: bool = True) -> Optional[Model]:
        """Train a new model or load the persisted one.

        Args:
            training_file_path: Training file; not read when reusing a model.
            train_new_model: Fit and persist a new model if ``True``;
                otherwise load the model at ``model_path``.

        Returns:
            The model, or ``None`` if anything failed.
        """
        logger.info(
            "Training document classifier started. TrainingDataPath: %s, TrainNewModel: %s",
            training_file_path, train_new_model,
        )
        self.last_error = None

        try:
            if train_new_model:
                dataset = self.loader.load(training_file_path)
                model = self.pipeline.fit(dataset)
                save_model(model, model.schema, self.model_path)
            else:
                model, _ = load_model(self.model_path)
        except Exception as exc:
            failure = TrainingFailure(f"Training from {training_file_path} failed: {exc}")
            failure.__cause__ = exc
            self.last_error = failure
            logger.error("An error occurred while training the document classifier.", exc_info=exc)
            return None

        self.model = model
        logger.info("Document classifier training completed successfully. Labels: %s", model.labels)
        return model
