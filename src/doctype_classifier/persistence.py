"""Model persistence (JSON serialization).

A model artifact is a single JSON document::

    {"format_version": "1.0", "schema": {...}, "model": {...}}

Writes go to a temporary file in the target directory that is then renamed
over the destination, so a reader never sees a partially written model.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import ModelFormatError
from .pipeline import FORMAT_VERSION, Model, ModelSchema

logger = logging.getLogger(__name__)


def save_model(model: Model, schema: ModelSchema, path: str | Path) -> Path:
    """Save a fitted model and its schema.

    Args:
        model: Fitted model.
        schema: Schema bound to the model.
        path: Destination file; parent directories are created.

    Returns:
        The destination path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    model_data = {
        "format_version": FORMAT_VERSION,
        "schema": schema.to_dict(),
        "model": model.to_dict(),
    }

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(model_data, f)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Model saved to %s (%d labels)", path, len(schema.labels))
    return path


def load_model(path: str | Path) -> tuple[Model, ModelSchema]:
    """Load a model and its schema.

    Raises:
        FileNotFoundError: If no artifact exists at ``path``.
        ModelFormatError: If the artifact is not a readable model.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ModelFormatError(f"{path} is not a valid model file: {exc}") from exc

    version = data.get("format_version") if isinstance(data, dict) else None
    if version != FORMAT_VERSION:
        raise ModelFormatError(
            f"{path} has unsupported format version {version!r} (expected {FORMAT_VERSION!r})"
        )

    try:
        schema = ModelSchema.from_dict(data["schema"])
        model = Model.from_dict(data["model"], schema)
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelFormatError(f"{path} is missing model data: {exc}") from exc

    logger.info("Model loaded from %s (%d labels)", path, len(schema.labels))
    return model, schema
