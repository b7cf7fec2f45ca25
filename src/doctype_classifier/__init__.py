"""Document Type Classifier -- OCR and text classification for scanned documents."""

__version__ = "0.1.0"

from .classifier import MaxEntClassifier
from .config import Settings, load_settings
from .dataset import ColumnSpec, LabeledDatasetLoader
from .errors import (
    ConfigurationError,
    DoctypeClassifierError,
    EvaluationFailure,
    MalformedRowError,
    ModelFormatError,
    ModelNotReadyError,
    TrainingFailure,
    UnknownLabelError,
)
from .evaluation import Evaluator, cross_validate, evaluate_model, k_fold_indices, train_test_split
from .extraction import ExtractionResult, ExtractionStatus, TesseractExtractor, TextExtractor
from .features import HashingVectorizer
from .metrics import compute_metrics
from .models import DocumentRecord, FoldResult, LabeledDataset, Metrics, Prediction, WordBox
from .persistence import load_model, save_model
from .pipeline import FeatureCache, FeaturePipeline, LabelKeyMap, Model, ModelSchema
from .prediction import Predictor
from .training import Trainer

__all__ = [
    # Data model
    "DocumentRecord",
    "LabeledDataset",
    "Prediction",
    "Metrics",
    "FoldResult",
    "WordBox",
    # Extraction
    "TextExtractor",
    "TesseractExtractor",
    "ExtractionResult",
    "ExtractionStatus",
    # Loading
    "LabeledDatasetLoader",
    "ColumnSpec",
    # Pipeline
    "FeaturePipeline",
    "FeatureCache",
    "HashingVectorizer",
    "LabelKeyMap",
    "MaxEntClassifier",
    "Model",
    "ModelSchema",
    "save_model",
    "load_model",
    # Orchestration
    "Trainer",
    "Evaluator",
    "Predictor",
    "compute_metrics",
    "cross_validate",
    "evaluate_model",
    "k_fold_indices",
    "train_test_split",
    # Configuration
    "Settings",
    "load_settings",
    # Errors
    "DoctypeClassifierError",
    "ConfigurationError",
    "MalformedRowError",
    "UnknownLabelError",
    "ModelNotReadyError",
    "ModelFormatError",
    "TrainingFailure",
    "EvaluationFailure",
]
