"""Application settings.

Settings come from a JSON file with nested sections (``appsettings.json``)::

    {
      "OCRSettings": {"TessDataPath": "tessdata", "DefaultLanguage": "deu"},
      "MLSettings": {
        "TrainingDataPath": "classifier_data/classifierdata.csv",
        "ModelPath": "classifier_data/documentClassificationModel.json"
      }
    }

Every option can be overridden by an environment variable named after it
with ``__`` in place of ``:`` (``MLSettings__ModelPath``). A ``.env`` file in
the working directory is loaded first. Relative paths are resolved against
the settings file's directory.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_SETTINGS_FILE = "appsettings.json"

_MISSING = object()
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration."""

    tessdata_path: Path
    default_language: str
    training_data_path: Path
    model_path: Path
    seed: int = 42
    test_fraction: float = 0.3
    folds: int = 5
    skip_empty_text: bool = False
    log_level: str = "INFO"
    log_directory: Path = Path("Logs")


def load_settings(
    path: str | Path = DEFAULT_SETTINGS_FILE,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Read settings from a JSON file and the environment.

    Args:
        path: Settings file; may be absent if the environment supplies
            every required option.
        environ: Environment mapping; defaults to ``os.environ`` after
            loading ``.env``.

    Raises:
        ConfigurationError: If a required option is missing or a value
            cannot be parsed.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    path = Path(path)
    data: dict = {}
    if path.is_file():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Settings file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {path} must contain a JSON object")
    base_dir = path.resolve().parent

    source = _Source(data, environ)

    def resolve(option: str) -> Path:
        value = Path(source.required(option))
        return value if value.is_absolute() else base_dir / value

    return Settings(
        tessdata_path=resolve("OCRSettings:TessDataPath"),
        default_language=source.required("OCRSettings:DefaultLanguage"),
        training_data_path=resolve("MLSettings:TrainingDataPath"),
        model_path=resolve("MLSettings:ModelPath"),
        seed=source.optional("MLSettings:Seed", 42, int),
        test_fraction=source.optional("MLSettings:TestFraction", 0.3, float),
        folds=source.optional("MLSettings:Folds", 5, int),
        skip_empty_text=source.optional("MLSettings:SkipEmptyText", False, _parse_bool),
        log_level=source.optional("Logging:Level", "INFO", str).upper(),
        log_directory=base_dir / source.optional("Logging:Directory", "Logs", str),
    )


class _Source:
    """Looks options up in the environment first, then in the JSON data."""

    def __init__(self, data: dict, environ: Mapping[str, str]) -> None:
        self._data = data
        self._environ = environ

    def get(self, option: str) -> Any:
        env_value = self._environ.get(option.replace(":", "__"))
        if env_value is not None:
            return env_value

        node: Any = self._data
        for part in option.split(":"):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def required(self, option: str) -> str:
        value = self.get(option)
        if value is _MISSING or value is None or (isinstance(value, str) and not value.strip()):
            raise ConfigurationError(f"Missing required configuration option '{option}'")
        if not isinstance(value, str):
            raise ConfigurationError(f"Configuration option '{option}' must be a string")
        return value

    def optional(self, option: str, default: Any, parse: Callable[[Any], Any]) -> Any:
        value = self.get(option)
        if value is _MISSING or value is None:
            return default
        try:
            return parse(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid value {value!r} for '{option}': {exc}") from exc


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError("expected a boolean")
