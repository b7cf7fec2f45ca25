"""Multinomial maximum-entropy (logistic regression) classifier.

Works directly on sparse vectors (``{bucket: weight}`` dicts) produced by
:class:`~doctype_classifier.features.HashingVectorizer` and on dense integer
label keys. Pure Python; no numpy required.

Optimization runs per-example gradient passes over a seeded shuffle of the
training rows with a decaying step size and L2 weight decay, and stops once
the mean training log-loss changes by less than ``tol`` between epochs.
Given identical input and seed, fitting is fully deterministic.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field

from .features import SparseVector

logger = logging.getLogger(__name__)

_MIN_PROBABILITY = 1e-15


def softmax(scores: list[float]) -> list[float]:
    """Normalize raw class scores into probabilities (log-sum-exp stable)."""
    max_score = max(scores)
    exp_scores = [math.exp(s - max_score) for s in scores]
    total = sum(exp_scores)
    return [s / total for s in exp_scores]


@dataclass
class MaxEntClassifier:
    """Multiclass logistic regression over sparse features.

    Args:
        l2: L2 regularization strength.
        learning_rate: Initial step size; epoch ``e`` uses ``learning_rate / (1 + e * decay)``.
        decay: Step size decay per epoch.
        max_epochs: Upper bound on passes over the training data.
        tol: Stop when the mean training loss changes by less than this.
        seed: Seed for the per-epoch shuffle.
    """

    l2: float = 1e-4
    learning_rate: float = 0.5
    decay: float = 0.1
    max_epochs: int = 50
    tol: float = 1e-5
    seed: int = 0

    # Learned parameters
    n_classes_: int = 0
    weights_: list[dict[int, float]] = field(default_factory=list, repr=False)
    bias_: list[float] = field(default_factory=list, repr=False)
    epochs_run_: int = 0

    @property
    def is_fitted(self) -> bool:
        return self.n_classes_ > 0

    def fit(
        self,
        vectors: list[SparseVector],
        keys: list[int],
        n_classes: int,
    ) -> "MaxEntClassifier":
        """Train the classifier on sparse vectors and label keys.

        Args:
            vectors: Sparse feature vectors.
            keys: Label key per vector, each in ``range(n_classes)``.
            n_classes: Number of classes; keys without rows are allowed.

        Returns:
            Self (for method chaining).

        Raises:
            ValueError: On mismatched lengths, out-of-range keys, an empty
                training set or fewer than two classes.
        """
        if len(vectors) != len(keys):
            raise ValueError(
                f"vectors ({len(vectors)}) and keys ({len(keys)}) must have same length"
            )
        if not vectors:
            raise ValueError("cannot fit on an empty training set")
        if n_classes < 2:
            raise ValueError(f"at least two classes are required, got {n_classes}")
        bad = [k for k in keys if not 0 <= k < n_classes]
        if bad:
            raise ValueError(f"label keys out of range [0, {n_classes}): {sorted(set(bad))}")

        self.n_classes_ = n_classes
        self.weights_ = [{} for _ in range(n_classes)]
        self.bias_ = [0.0] * n_classes

        rng = random.Random(self.seed)
        order = list(range(len(vectors)))
        previous_loss = math.inf

        for epoch in range(self.max_epochs):
            rng.shuffle(order)
            step = self.learning_rate / (1 + epoch * self.decay)
            total_loss = 0.0

            for i in order:
                vec = vectors[i]
                probs = softmax(self._scores(vec))
                total_loss -= math.log(max(probs[keys[i]], _MIN_PROBABILITY))

                for cls in range(n_classes):
                    gradient = probs[cls] - (1.0 if cls == keys[i] else 0.0)
                    if gradient == 0.0:
                        continue
                    weights = self.weights_[cls]
                    for feat, value in vec.items():
                        weights[feat] = weights.get(feat, 0.0) - step * gradient * value
                    self.bias_[cls] -= step * gradient

            if self.l2 > 0:
                shrink = 1.0 - min(step * self.l2, 1.0)
                for weights in self.weights_:
                    for feat in weights:
                        weights[feat] *= shrink

            mean_loss = total_loss / len(vectors)
            self.epochs_run_ = epoch + 1
            logger.debug("epoch %d: mean training log-loss %.6f", epoch + 1, mean_loss)
            if abs(previous_loss - mean_loss) < self.tol:
                break
            previous_loss = mean_loss

        return self

    def predict_proba(self, vectors: list[SparseVector]) -> list[list[float]]:
        """Class probabilities per vector, ordered by label key.

        Raises:
            RuntimeError: If the classifier has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Classifier has not been fitted. Call fit() first.")
        return [softmax(self._scores(vec)) for vec in vectors]

    def predict(self, vectors: list[SparseVector]) -> list[int]:
        """Most probable label key per vector."""
        return [argmax(p) for p in self.predict_proba(vectors)]

    def _scores(self, vec: SparseVector) -> list[float]:
        """Unnormalized log-linear score for each class."""
        scores = []
        for cls in range(self.n_classes_):
            weights = self.weights_[cls]
            score = self.bias_[cls]
            for feat, value in vec.items():
                score += weights.get(feat, 0.0) * value
            scores.append(score)
        return scores

    def to_dict(self) -> dict:
        """Serialize classifier state."""
        return {
            "l2": self.l2,
            "learning_rate": self.learning_rate,
            "decay": self.decay,
            "max_epochs": self.max_epochs,
            "tol": self.tol,
            "seed": self.seed,
            "n_classes": self.n_classes_,
            "epochs_run": self.epochs_run_,
            "bias": self.bias_,
            # JSON object keys must be strings
            "weights": [{str(f): w for f, w in weights.items()} for weights in self.weights_],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MaxEntClassifier":
        """Deserialize classifier from a dictionary."""
        clf = cls(
            l2=data["l2"],
            learning_rate=data["learning_rate"],
            decay=data["decay"],
            max_epochs=data["max_epochs"],
            tol=data["tol"],
            seed=data["seed"],
        )
        clf.n_classes_ = data["n_classes"]
        clf.epochs_run_ = data.get("epochs_run", 0)
        clf.bias_ = list(data["bias"])
        clf.weights_ = [{int(f): w for f, w in weights.items()} for weights in data["weights"]]
        return clf


def argmax(values: list[float]) -> int:
    """Index of the largest value (first one on ties)."""
    return max(range(len(values)), key=values.__getitem__)
