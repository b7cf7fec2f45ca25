"""Feature pipeline: featurize, encode labels, cache, fit, decode.

``FeaturePipeline`` composes the steps that turn a ``LabeledDataset`` into a
fitted ``Model``:

1. text -> hashed feature vector (:class:`HashingVectorizer`)
2. label string -> dense label key (:class:`LabelKeyMap`)
3. cache checkpoint (:class:`FeatureCache`) so repeated fits over subsets,
   as in cross-validation, reuse the materialized features
4. multiclass maximum-entropy trainer (:class:`MaxEntClassifier`)
5. predicted key -> label string on the way out

Example::

    pipeline = FeaturePipeline()
    model = pipeline.fit(dataset)
    prediction = model.predict_one(DocumentRecord("scan.png", text="Rechnung ..."))
    print(prediction.predicted_label, prediction.score)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

from .classifier import MaxEntClassifier, argmax
from .errors import UnknownLabelError
from .features import HashingVectorizer, SparseVector
from .models import DocumentRecord, LabeledDataset, Prediction

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


# ---------------------------------------------------------------------------
# Label keys
# ---------------------------------------------------------------------------

class LabelKeyMap:
    """Bijection between label strings and dense integer keys.

    Keys are assigned in order of first occurrence, so the same label column
    always produces the same map.
    """

    def __init__(self, labels: Iterable[str] = ()) -> None:
        self._labels: list[str] = []
        self._keys: dict[str, int] = {}
        for label in labels:
            if label not in self._keys:
                self._keys[label] = len(self._labels)
                self._labels.append(label)

    @classmethod
    def from_dataset(cls, dataset: LabeledDataset) -> "LabelKeyMap":
        """Build the map from a dataset's label column."""
        missing = [r.file_path for r in dataset if not r.label]
        if missing:
            raise ValueError(f"{len(missing)} record(s) have no label, e.g. {missing[0]!r}")
        return cls(dataset.labels)

    @property
    def labels(self) -> list[str]:
        """Labels in key order."""
        return list(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, label: object) -> bool:
        return label in self._keys

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelKeyMap):
            return NotImplemented
        return self._labels == other._labels

    def __repr__(self) -> str:
        return f"LabelKeyMap({self._labels!r})"

    def encode(self, label: str) -> int:
        """Return the key of ``label``.

        Raises:
            UnknownLabelError: If the label was not seen when building the map.
        """
        try:
            return self._keys[label]
        except KeyError:
            raise UnknownLabelError(
                f"Unknown label {label!r}. Known: {self._labels}"
            ) from None

    def encode_all(self, labels: Iterable[str]) -> list[int]:
        return [self.encode(label) for label in labels]

    def decode(self, key: int) -> str:
        """Return the label with key ``key``.

        Raises:
            UnknownLabelError: If the key is out of range.
        """
        if not 0 <= key < len(self._labels):
            raise UnknownLabelError(f"Unknown label key {key}; map has {len(self._labels)} labels")
        return self._labels[key]

    def to_list(self) -> list[str]:
        return self.labels


# ---------------------------------------------------------------------------
# Cache checkpoint
# ---------------------------------------------------------------------------

@dataclass
class FeatureCache:
    """Materialized features and label keys of a dataset.

    Row ``i`` of the cache corresponds to row ``i`` of the source dataset.
    """

    vectors: list[SparseVector]
    keys: list[int]

    def __post_init__(self) -> None:
        if len(self.vectors) != len(self.keys):
            raise ValueError("vectors and keys must have same length")

    def __len__(self) -> int:
        return len(self.vectors)

    def subset(self, indices: Sequence[int]) -> "FeatureCache":
        """Slice the cache without recomputing features."""
        return FeatureCache(
            vectors=[self.vectors[i] for i in indices],
            keys=[self.keys[i] for i in indices],
        )


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

@dataclass
class ModelSchema:
    """Input/output contract bound to a fitted model."""

    columns: list[dict] = field(default_factory=lambda: [
        {"name": "FilePath", "type": "string"},
        {"name": "Text", "type": "string"},
        {"name": "Label", "type": "string"},
    ])
    feature_dimension: int = 0
    labels: list[str] = field(default_factory=list)
    format_version: str = FORMAT_VERSION

    def to_dict(self) -> dict:
        return {
            "columns": self.columns,
            "feature_dimension": self.feature_dimension,
            "labels": self.labels,
            "format_version": self.format_version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModelSchema":
        return cls(
            columns=list(data["columns"]),
            feature_dimension=data["feature_dimension"],
            labels=list(data["labels"]),
            format_version=data.get("format_version", FORMAT_VERSION),
        )


@dataclass
class Model:
    """A fitted pipeline: featurizer, label map and classifier."""

    vectorizer: HashingVectorizer
    label_map: LabelKeyMap
    classifier: MaxEntClassifier
    schema: ModelSchema

    @property
    def labels(self) -> list[str]:
        return self.label_map.labels

    def transform(
        self,
        data: Union[LabeledDataset, DocumentRecord, Iterable[DocumentRecord]],
    ) -> list[Prediction]:
        """Classify one record or a collection of records.

        Records that carry a label must carry one the model knows.

        Raises:
            UnknownLabelError: If a record's label is not in the label map.
        """
        records = [data] if isinstance(data, DocumentRecord) else list(data)
        for record in records:
            if record.label and record.label not in self.label_map:
                raise UnknownLabelError(
                    f"Record {record.file_path!r} has label {record.label!r} "
                    f"unknown to the model. Known: {self.labels}"
                )

        vectors = self.vectorizer.transform([r.text for r in records])
        return self.predict_vectors(vectors)

    def predict_one(self, record: DocumentRecord) -> Prediction:
        return self.transform(record)[0]

    def predict_vectors(self, vectors: list[SparseVector]) -> list[Prediction]:
        """Classify already featurized rows and decode the predicted keys."""
        predictions = []
        for score in self.classifier.predict_proba(vectors):
            key = argmax(score)
            predictions.append(Prediction(
                predicted_label=self.label_map.decode(key),
                score=score,
                predicted_key=key,
            ))
        return predictions

    def to_dict(self) -> dict:
        return {
            "vectorizer": self.vectorizer.to_dict(),
            "labels": self.label_map.to_list(),
            "classifier": self.classifier.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict, schema: ModelSchema) -> "Model":
        return cls(
            vectorizer=HashingVectorizer.from_dict(data["vectorizer"]),
            label_map=LabelKeyMap(data["labels"]),
            classifier=MaxEntClassifier.from_dict(data["classifier"]),
            schema=schema,
        )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class FeaturePipeline:
    """Composable featurize -> encode -> cache -> fit pipeline.

    The pipeline itself holds no fitted state; every ``fit`` call returns a
    new :class:`Model`.

    Args:
        vectorizer_kwargs: Optional configuration for HashingVectorizer.
        classifier_kwargs: Optional configuration for MaxEntClassifier.
    """

    def __init__(
        self,
        vectorizer_kwargs: Optional[dict] = None,
        classifier_kwargs: Optional[dict] = None,
    ) -> None:
        self._vec_kwargs = vectorizer_kwargs or {}
        self._cls_kwargs = classifier_kwargs or {}
        self.vectorizer = HashingVectorizer(**self._vec_kwargs)

    def featurize(
        self,
        dataset: LabeledDataset,
        label_map: Optional[LabelKeyMap] = None,
    ) -> FeatureCache:
        """Featurize and encode a dataset once (the cache checkpoint).

        Args:
            dataset: Labeled records.
            label_map: Map to encode with; built from ``dataset`` if omitted.
        """
        if label_map is None:
            label_map = LabelKeyMap.from_dataset(dataset)
        keys = label_map.encode_all(dataset.labels)
        vectors = self.vectorizer.transform(dataset.texts)
        logger.debug("Featurized %d records into %d buckets", len(vectors), self.vectorizer.n_features)
        return FeatureCache(vectors=vectors, keys=keys)

    def fit(
        self,
        dataset: LabeledDataset,
        label_map: Optional[LabelKeyMap] = None,
    ) -> Model:
        """Fit a model on ``dataset``.

        Raises:
            ValueError: If the label map has fewer than two labels.
            UnknownLabelError: If ``label_map`` is given and misses a dataset label.
        """
        if label_map is None:
            label_map = LabelKeyMap.from_dataset(dataset)
        return self.fit_cached(self.featurize(dataset, label_map), label_map)

    def fit_cached(self, cache: FeatureCache, label_map: LabelKeyMap) -> Model:
        """Fit a model on already materialized features."""
        if len(label_map) < 2:
            raise ValueError(
                f"at least two distinct labels are required, got {label_map.labels}"
            )

        classifier = MaxEntClassifier(**self._cls_kwargs)
        classifier.fit(cache.vectors, cache.keys, n_classes=len(label_map))
        logger.debug(
            "Fitted classifier on %d rows, %d labels, %d epochs",
            len(cache), len(label_map), classifier.epochs_run_,
        )

        schema = ModelSchema(
            feature_dimension=self.vectorizer.n_features,
            labels=label_map.labels,
        )
        return Model(
            vectorizer=HashingVectorizer(**self._vec_kwargs),
            label_map=label_map,
            classifier=classifier,
            schema=schema,
        )
