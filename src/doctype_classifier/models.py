"""Data models for document classification."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Sequence


@dataclass(frozen=True)
class DocumentRecord:
    """A single document: image path, recognized text and label.

    ``text`` is empty when extraction failed; ``label`` is empty for
    documents that are about to be classified.
    """

    file_path: str
    text: str = ""
    label: str = ""

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "text": self.text,
            "label": self.label,
        }


@dataclass
class LabeledDataset:
    """Ordered collection of document records.

    Insertion order is preserved so that seeded splits and folds are
    reproducible.
    """

    records: list[DocumentRecord] = field(default_factory=list)

    def add(self, record: DocumentRecord) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[DocumentRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> DocumentRecord:
        return self.records[index]

    @property
    def labels(self) -> list[str]:
        return [r.label for r in self.records]

    @property
    def texts(self) -> list[str]:
        return [r.text for r in self.records]

    @property
    def distinct_labels(self) -> list[str]:
        """Labels in order of first occurrence."""
        return list(dict.fromkeys(self.labels))

    @property
    def empty_text_count(self) -> int:
        return sum(1 for r in self.records if not r.has_text)

    def subset(self, indices: Iterable[int]) -> "LabeledDataset":
        """Return a new dataset holding the records at ``indices``, in that order."""
        return LabeledDataset([self.records[i] for i in indices])


@dataclass
class Prediction:
    """Classification of a single document.

    ``score`` holds one probability per label, ordered by label key.
    """

    predicted_label: str
    score: list[float]
    predicted_key: int = -1

    @property
    def confidence(self) -> float:
        return max(self.score) if self.score else 0.0

    def to_dict(self) -> dict:
        return {
            "predicted_label": self.predicted_label,
            "predicted_key": self.predicted_key,
            "score": [round(s, 6) for s in self.score],
        }


@dataclass
class Metrics:
    """Multiclass evaluation metrics.

    All per-class lists and both confusion matrix axes follow label key
    order (``labels[i]`` has key ``i``).

    Attributes:
        labels: Label strings in key order.
        log_loss: Mean negative log-probability of the true label.
        per_class_log_loss: Log-loss restricted to rows of each true label;
            ``nan`` for labels with no rows.
        confusion_matrix: ``[actual][predicted]`` row counts.
        log_loss_reduction: Improvement of log-loss over the class prior.
        micro_accuracy: Fraction of rows predicted correctly.
        macro_accuracy: Mean per-class recall over labels with support.
        per_class_precision: Precision per label.
        per_class_recall: Recall per label.
        support: Number of rows per true label.
    """

    labels: list[str]
    log_loss: float
    per_class_log_loss: list[float]
    confusion_matrix: list[list[int]]
    log_loss_reduction: float = 0.0
    micro_accuracy: float = 0.0
    macro_accuracy: float = 0.0
    per_class_precision: list[float] = field(default_factory=list)
    per_class_recall: list[float] = field(default_factory=list)
    support: list[int] = field(default_factory=list)

    def confusion_matrix_rows(self) -> list[str]:
        """Confusion matrix as tab-separated text rows."""
        return ["\t".join(str(c) for c in row) for row in self.confusion_matrix]

    def to_dict(self) -> dict:
        return {
            "labels": self.labels,
            "log_loss": _round(self.log_loss),
            "log_loss_reduction": _round(self.log_loss_reduction),
            "micro_accuracy": _round(self.micro_accuracy),
            "macro_accuracy": _round(self.macro_accuracy),
            "per_class_log_loss": [_round(v) for v in self.per_class_log_loss],
            "per_class_precision": [_round(v) for v in self.per_class_precision],
            "per_class_recall": [_round(v) for v in self.per_class_recall],
            "support": self.support,
            "confusion_matrix": self.confusion_matrix,
        }

    def summary(self) -> str:
        """Human-readable summary of metrics."""
        lines = [
            f"Log-loss: {self.log_loss:.4f}",
            f"Log-loss reduction: {self.log_loss_reduction:.4f}",
            f"Micro accuracy: {self.micro_accuracy:.2%}",
            f"Macro accuracy: {self.macro_accuracy:.2%}",
            "",
            f"{'Class':<20} {'LogLoss':>10} {'Precision':>10} {'Recall':>10} {'Support':>10}",
            "-" * 64,
        ]
        for i, label in enumerate(self.labels):
            lines.append(
                f"{label:<20} {self.per_class_log_loss[i]:>10.4f} "
                f"{self.per_class_precision[i]:>10.4f} "
                f"{self.per_class_recall[i]:>10.4f} {self.support[i]:>10}"
            )
        lines.append("")
        lines.append("Confusion Matrix:")
        lines.extend(self.confusion_matrix_rows())
        return "\n".join(lines)


@dataclass
class FoldResult:
    """Outcome of one cross-validation fold."""

    fold: int
    train_size: int
    validation_indices: list[int]
    metrics: Metrics

    @property
    def log_loss(self) -> float:
        return self.metrics.log_loss

    def to_dict(self) -> dict:
        return {
            "fold": self.fold,
            "train_size": self.train_size,
            "validation_size": len(self.validation_indices),
            "log_loss": _round(self.log_loss),
        }


@dataclass
class WordBox:
    """A recognized word and its bounding box in pixel coordinates."""

    word: str
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
        }


def _round(value: float, digits: int = 4) -> Optional[float]:
    # NaN is not valid JSON
    return None if math.isnan(value) else round(value, digits)


def label_counts(labels: Sequence[str]) -> dict[str, int]:
    """Count occurrences of each label, keeping first-occurrence order."""
    counts: dict[str, int] = {}
    for label in labels:
        counts[label] = counts.get(label, 0) + 1
    return counts
