"""Tests for the Trainer."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from doctype_classifier.dataset import LabeledDatasetLoader
from doctype_classifier.errors import ModelFormatError, TrainingFailure
from doctype_classifier.models import DocumentRecord
from doctype_classifier.training import Trainer

from conftest import FakeExtractor


class TestTrainer:
    """Tests for Trainer.train."""

    def test_train_new_model(self, loader, training_file, model_path):
        trainer = Trainer(loader, model_path)
        model = trainer.train(training_file, train_new_model=True)

        assert model is not None
        assert trainer.model is model
        assert trainer.last_error is None
        assert model.labels == ["Invoice", "Receipt"]
        assert model_path.is_file()

        prediction = model.predict_one(DocumentRecord("new.png", "Kassenbon Summe bar Rückgeld"))
        assert len(prediction.score) == 2
        assert prediction.predicted_label == "Receipt"

    def test_reuse_loads_persisted_model(self, loader, training_file, model_path):
        trained = Trainer(loader, model_path).train(training_file)

        class FailingExtractor:
            def extract_text(self, image_path):
                raise AssertionError("extractor must not be called when reusing a model")

        reuse = Trainer(LabeledDatasetLoader(FailingExtractor()), model_path)
        loaded = reuse.train(Path("does/not/exist.csv"), train_new_model=False)

        assert loaded is not None
        assert loaded.labels == trained.labels
        assert loaded.classifier.to_dict() == trained.classifier.to_dict()

    def test_reuse_without_persisted_model(self, loader, model_path):
        trainer = Trainer(loader, model_path)
        assert trainer.train("unused.csv", train_new_model=False) is None
        assert isinstance(trainer.last_error, TrainingFailure)
        assert isinstance(trainer.last_error.__cause__, FileNotFoundError)

    def test_reuse_with_corrupt_model(self, loader, model_path):
        model_path.parent.mkdir(parents=True)
        model_path.write_text("garbage", encoding="utf-8")
        trainer = Trainer(loader, model_path)
        assert trainer.train("unused.csv", train_new_model=False) is None
        assert isinstance(trainer.last_error.__cause__, ModelFormatError)

    def test_single_label_training_fails(self, tmp_path: Path, model_path):
        path = tmp_path / "one.csv"
        path.write_text("FilePath;Label\na.png;Invoice\nb.png;Invoice\n", encoding="utf-8")

        trainer = Trainer(LabeledDatasetLoader(FakeExtractor({"a.png": "Rechnung"})), model_path)
        assert trainer.train(path) is None
        assert "two distinct labels" in str(trainer.last_error)
        assert not model_path.exists()

    def test_failure_is_logged(self, loader, tmp_path: Path, model_path, caplog):
        trainer = Trainer(loader, model_path)
        with caplog.at_level(logging.ERROR, logger="doctype_classifier"):
            assert trainer.train(tmp_path / "absent.csv") is None
        assert any(
            "error occurred while training" in r.getMessage() and r.exc_info
            for r in caplog.records
        )

    def test_last_error_cleared_on_success(self, loader, training_file, tmp_path: Path, model_path):
        trainer = Trainer(loader, model_path)
        trainer.train(tmp_path / "absent.csv")
        assert trainer.last_error is not None

        trainer.train(training_file)
        assert trainer.last_error is None

    @pytest.mark.parametrize("train_new_model", [True, False])
    def test_logs_start(self, loader, training_file, model_path, caplog, train_new_model):
        trainer = Trainer(loader, model_path)
        if not train_new_model:
            trainer.train(training_file)
        with caplog.at_level(logging.INFO, logger="doctype_classifier"):
            trainer.train(training_file, train_new_model=train_new_model)
        assert any(
            f"TrainNewModel: {train_new_model}" in r.getMessage() for r in caplog.records
        )
