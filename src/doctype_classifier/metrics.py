"""Multiclass evaluation metrics computed from predicted class scores."""

from __future__ import annotations

import math

from .classifier import argmax
from .models import Metrics

# Probabilities are clipped here before taking the log
_MIN_PROBABILITY = 1e-15


def compute_metrics(
    y_true: list[int],
    scores: list[list[float]],
    labels: list[str],
) -> Metrics:
    """Compute log-loss, per-class log-loss and the confusion matrix.

    Args:
        y_true: True label key per row.
        scores: Class probabilities per row, ordered by label key.
        labels: Label strings in key order.

    Returns:
        Metrics for the rows.

    Raises:
        ValueError: If the inputs are empty, of different lengths, or a
            score row does not have one entry per label.
    """
    if len(y_true) != len(scores):
        raise ValueError("y_true and scores must have the same length")
    if not y_true:
        raise ValueError("cannot compute metrics on an empty set")

    n_classes = len(labels)
    if any(len(row) != n_classes for row in scores):
        raise ValueError(f"every score row must have {n_classes} entries")
    if any(not 0 <= t < n_classes for t in y_true):
        raise ValueError(f"true label keys must be in [0, {n_classes})")
    n = len(y_true)

    # Confusion matrix and log-loss sums
    cm = [[0] * n_classes for _ in range(n_classes)]
    class_loss = [0.0] * n_classes
    support = [0] * n_classes
    for true, row in zip(y_true, scores):
        cm[true][argmax(row)] += 1
        class_loss[true] -= math.log(max(row[true], _MIN_PROBABILITY))
        support[true] += 1

    log_loss = sum(class_loss) / n
    per_class_log_loss = [
        class_loss[c] / support[c] if support[c] else math.nan for c in range(n_classes)
    ]

    # Log-loss of always predicting the observed class distribution
    prior_log_loss = -sum(
        (s / n) * math.log(s / n) for s in support if s > 0
    )
    log_loss_reduction = (
        (prior_log_loss - log_loss) / prior_log_loss if prior_log_loss > 0 else 0.0
    )

    # Accuracy, precision and recall
    correct = sum(cm[c][c] for c in range(n_classes))
    precision = []
    recall = []
    for c in range(n_classes):
        predicted = sum(cm[other][c] for other in range(n_classes))
        precision.append(cm[c][c] / predicted if predicted else 0.0)
        recall.append(cm[c][c] / support[c] if support[c] else 0.0)

    present = [c for c in range(n_classes) if support[c]]
    macro_accuracy = sum(recall[c] for c in present) / len(present)

    return Metrics(
        labels=list(labels),
        log_loss=log_loss,
        per_class_log_loss=per_class_log_loss,
        confusion_matrix=cm,
        log_loss_reduction=log_loss_reduction,
        micro_accuracy=correct / n,
        macro_accuracy=macro_accuracy,
        per_class_precision=precision,
        per_class_recall=recall,
        support=support,
    )
