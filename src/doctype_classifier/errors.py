"""Exception hierarchy for the document type classifier."""

from __future__ import annotations

from typing import Optional


class DoctypeClassifierError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(DoctypeClassifierError):
    """A required configuration option is missing or has an invalid value."""


class MalformedRowError(DoctypeClassifierError, ValueError):
    """A training file row (or its header) does not match the column schema.

    Args:
        message: Human-readable description.
        line_number: 1-based line in the source file, when known.
    """

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class UnknownLabelError(DoctypeClassifierError, KeyError):
    """A label (or label key) is not part of the fitted label map."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class ModelNotReadyError(DoctypeClassifierError, RuntimeError):
    """Prediction was attempted without a fitted model."""


class ModelFormatError(DoctypeClassifierError, ValueError):
    """A persisted model artifact cannot be read."""


class TrainingFailure(DoctypeClassifierError):
    """Loading, extraction or fitting failed during training."""


class EvaluationFailure(DoctypeClassifierError):
    """Any step of the evaluation procedure failed."""
