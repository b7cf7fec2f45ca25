"""Holdout evaluation and k-fold cross-validation.

``Evaluator.evaluate`` runs the full procedure on a training file:

1. load the dataset (extracting text for every row)
2. split it into a train and a test partition with a seeded shuffle
3. cross-validate over the *whole* dataset as a diagnostic
4. fit on the train partition and persist that model
5. score the test partition: log-loss, per-class log-loss, confusion matrix

The label key map is built once from the full dataset and shared by every
fit in the run, so every partition's labels are known to every model.
"""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from pathlib import Path
from typing import Optional

from .dataset import LabeledDatasetLoader
from .errors import EvaluationFailure
from .metrics import compute_metrics
from .models import FoldResult, LabeledDataset, Metrics, label_counts
from .persistence import save_model
from .pipeline import FeatureCache, FeaturePipeline, LabelKeyMap, Model

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------

def train_test_split(
    n_rows: int,
    test_fraction: float = 0.3,
    seed: int = DEFAULT_SEED,
) -> tuple[list[int], list[int]]:
    """Randomly partition row indices into train and test indices.

    The test partition holds ``round(n_rows * test_fraction)`` rows. Both
    index lists are returned in ascending (file) order.

    Raises:
        ValueError: If ``test_fraction`` is not strictly between 0 and 1, or
            either partition would be empty.
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(f"test_fraction must be in (0, 1), got {test_fraction}")

    n_test = int(round(n_rows * test_fraction))
    if n_test == 0 or n_test == n_rows:
        raise ValueError(
            f"test_fraction {test_fraction} over {n_rows} rows leaves an empty partition"
        )

    indices = list(range(n_rows))
    random.Random(seed).shuffle(indices)
    return sorted(indices[n_test:]), sorted(indices[:n_test])


def k_fold_indices(
    labels: list[str],
    k: int = 5,
    seed: int = DEFAULT_SEED,
) -> list[tuple[list[int], list[int]]]:
    """Generate stratified k-fold train/validation index splits.

    Rows are shuffled within each label and dealt round-robin across folds,
    continuing from fold to fold between labels, so folds differ in size by
    at most one and keep roughly the dataset's label distribution. The
    validation sets are pairwise disjoint and together cover every row.

    Args:
        labels: Label per row.
        k: Number of folds.
        seed: Random seed for reproducibility.

    Returns:
        List of (train_indices, validation_indices) tuples.

    Raises:
        ValueError: If ``k < 2`` or ``k`` exceeds the number of rows.
    """
    if k < 2:
        raise ValueError(f"k must be at least 2, got {k}")
    if k > len(labels):
        raise ValueError(f"k ({k}) cannot exceed the number of rows ({len(labels)})")

    rng = random.Random(seed)

    # Group indices by class
    class_indices: dict[str, list[int]] = defaultdict(list)
    for idx, label in enumerate(labels):
        class_indices[label].append(idx)

    # Shuffle within each class
    for indices in class_indices.values():
        rng.shuffle(indices)

    # Deal indices to folds round-robin
    fold_assignments: list[int] = [0] * len(labels)
    position = 0
    for cls_indices in class_indices.values():
        for idx in cls_indices:
            fold_assignments[idx] = position % k
            position += 1

    folds: list[tuple[list[int], list[int]]] = []
    for fold_idx in range(k):
        validation = [i for i, f in enumerate(fold_assignments) if f == fold_idx]
        train = [i for i, f in enumerate(fold_assignments) if f != fold_idx]
        folds.append((train, validation))

    return folds


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def cross_validate(
    pipeline: FeaturePipeline,
    cache: FeatureCache,
    label_map: LabelKeyMap,
    labels: list[str],
    k: int = 5,
    seed: int = DEFAULT_SEED,
) -> list[FoldResult]:
    """Run k-fold cross-validation over a feature cache.

    Each fold refits the classifier on the cached features of the other
    folds; nothing is featurized again.

    Returns:
        One FoldResult per fold.
    """
    results: list[FoldResult] = []
    for fold, (train_idx, val_idx) in enumerate(k_fold_indices(labels, k=k, seed=seed), 1):
        model = pipeline.fit_cached(cache.subset(train_idx), label_map)
        validation = cache.subset(val_idx)
        predictions = model.predict_vectors(validation.vectors)
        metrics = compute_metrics(validation.keys, [p.score for p in predictions], label_map.labels)
        results.append(FoldResult(
            fold=fold,
            train_size=len(train_idx),
            validation_indices=val_idx,
            metrics=metrics,
        ))
    return results


def evaluate_model(model: Model, dataset: LabeledDataset) -> Metrics:
    """Score a fitted model on labeled records.

    Raises:
        UnknownLabelError: If a record's label is unknown to the model.
    """
    predictions = model.transform(dataset)
    y_true = model.label_map.encode_all(dataset.labels)
    return compute_metrics(y_true, [p.score for p in predictions], model.labels)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class Evaluator:
    """Train/test evaluation with a cross-validation diagnostic.

    Failures never propagate out of :meth:`evaluate`; they are logged and the
    call returns ``None``. The most recent failure is kept in ``last_error``.

    Args:
        loader: Loads training files (and extracts text).
        model_path: Where the model fitted on the train partition is persisted.
        pipeline: Pipeline used for every fit.
        seed: Seed for the train/test split and the fold assignment.
    """

    def __init__(
        self,
        loader: LabeledDatasetLoader,
        model_path: str | Path,
        pipeline: Optional[FeaturePipeline] = None,
        seed: int = DEFAULT_SEED,
    ) -> None:
        self.loader = loader
        self.model_path = Path(model_path)
        self.pipeline = pipeline or FeaturePipeline()
        self.seed = seed

        self.model: Optional[Model] = None
        self.train_set: Optional[LabeledDataset] = None
        self.test_set: Optional[LabeledDataset] = None
        self.fold_results: list[FoldResult] = []
        self.last_error: Optional[EvaluationFailure] = None

    def evaluate(
        self,
        training_file_path: str | Path,
        test_fraction: float = 0.3,
        folds: int = 5,
    ) -> Optional[Metrics]:
        """Evaluate the pipeline on a training file.

        Args:
            training_file_path: Training file.
            test_fraction: Share of rows held out for testing.
            folds: Number of cross-validation folds.

        Returns:
            Metrics on the test partition, or ``None`` if anything failed.
        """
        logger.info(
            "Evaluation of document classifier started. TrainingDataPath: %s, "
            "TestFraction: %s, Folds: %d, Seed: %d",
            training_file_path, test_fraction, folds, self.seed,
        )
        self.last_error = None

        try:
            metrics = self._run(training_file_path, test_fraction, folds)
        except Exception as exc:
            failure = EvaluationFailure(f"Evaluation of {training_file_path} failed: {exc}")
            failure.__cause__ = exc
            self.last_error = failure
            logger.error("An error occurred while evaluating the document classifier.", exc_info=exc)
            return None

        logger.info("Evaluation of document classifier completed successfully.")
        return metrics

    def _run(self, training_file_path: str | Path, test_fraction: float, folds: int) -> Metrics:
        dataset = self.loader.load(training_file_path)
        label_map = LabelKeyMap.from_dataset(dataset)
        logger.info("Label distribution: %s", label_counts(dataset.labels))

        train_idx, test_idx = train_test_split(len(dataset), test_fraction, seed=self.seed)
        self.train_set = dataset.subset(train_idx)
        self.test_set = dataset.subset(test_idx)
        logger.info("Split %d rows into %d train / %d test", len(dataset), len(train_idx), len(test_idx))

        # Cache checkpoint shared by every fold and the holdout fit
        cache = self.pipeline.featurize(dataset, label_map)

        self.fold_results = cross_validate(
            self.pipeline, cache, label_map, dataset.labels, k=folds, seed=self.seed
        )
        for result in self.fold_results:
            logger.info("Fold: %d, LogLoss: %.6f", result.fold, result.log_loss)

        model = self.pipeline.fit_cached(cache.subset(train_idx), label_map)
        save_model(model, model.schema, self.model_path)
        self.model = model

        predictions = model.transform(self.test_set)
        for record, prediction in zip(self.test_set, predictions):
            logger.debug(
                "%s: PredictedLabel: %s, Score: %s",
                record.file_path, prediction.predicted_label,
                ", ".join(f"{s:.4f}" for s in prediction.score),
            )
        metrics = compute_metrics(
            label_map.encode_all(self.test_set.labels),
            [p.score for p in predictions],
            label_map.labels,
        )
        logger.info("Log-loss: %.6f", metrics.log_loss)
        logger.info("Per-Class Log-loss: %s", ", ".join(f"{v:.6f}" for v in metrics.per_class_log_loss))
        logger.info("Confusion Matrix:\n%s", "\n".join(metrics.confusion_matrix_rows()))
        return metrics
