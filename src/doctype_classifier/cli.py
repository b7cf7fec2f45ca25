"""Command-line interface for the document type classifier.

Provides ``extract``, ``boxes``, ``train``, ``evaluate`` and ``predict``
commands with rich terminal output using the ``click`` and ``rich``
libraries. Every command reads ``appsettings.json`` (or ``--settings``).

Usage::

    doctype-classifier extract scan.png
    doctype-classifier evaluate --test-fraction 0.3 --folds 5
    doctype-classifier predict scan.png
"""

from __future__ import annotations

import json
import math
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_SETTINGS_FILE, Settings, load_settings
from .dataset import LabeledDatasetLoader
from .errors import ConfigurationError, ModelNotReadyError
from .evaluation import Evaluator
from .extraction import TesseractExtractor
from .log import configure_logging
from .models import FoldResult, Metrics
from .prediction import Predictor
from .training import Trainer

console = Console()


def _build_extractor(settings: Settings) -> TesseractExtractor:
    return TesseractExtractor(settings.tessdata_path, settings.default_language)


def _build_loader(settings: Settings) -> LabeledDatasetLoader:
    return LabeledDatasetLoader(
        _build_extractor(settings),
        skip_empty_text=settings.skip_empty_text,
    )


@click.group()
@click.version_option(package_name="doctype-classifier")
@click.option("--settings", "settings_path", type=click.Path(path_type=Path),
              default=DEFAULT_SETTINGS_FILE, show_default=True,
              help="JSON settings file.")
@click.pass_context
def main(ctx: click.Context, settings_path: Path) -> None:
    """🗂️ Document type classifier: OCR and text classification for scans.

    Extract text from scanned documents, train and evaluate a classifier,
    and predict the type of new documents.
    """
    try:
        settings = load_settings(settings_path)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/] {escape(str(e))}")
        sys.exit(2)

    configure_logging(settings.log_level, settings.log_directory)
    ctx.obj = settings


@main.command()
@click.argument("image", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def extract(settings: Settings, image: Path) -> None:
    """Print the OCR text of an image.

    Example: doctype-classifier extract scan.png
    """
    with console.status("[bold blue]Recognizing text...", spinner="dots"):
        text = _build_extractor(settings).extract_text(image)

    if not text.strip():
        console.print("[bold red]Error:[/] no text could be extracted (see log).")
        sys.exit(1)
    console.print(Panel(escape(text.strip()), title=f"📄 OCR result: {image.name}", border_style="blue"))


@main.command()
@click.argument("image", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path),
              default=Path("bounding_boxes.json"), show_default=True,
              help="JSON file to write the word boxes to.")
@click.pass_obj
def boxes(settings: Settings, image: Path, output: Path) -> None:
    """Write word-level bounding boxes of an image to a JSON file.

    Example: doctype-classifier boxes scan.png -o boxes.json
    """
    extractor = _build_extractor(settings)
    with console.status("[bold blue]Locating words...", spinner="dots"):
        path = extractor.write_word_boxes(image, output)
    console.print(f"[dim]Word boxes saved to {path}[/]")


@main.command()
@click.option("--reuse", is_flag=True, help="Load the persisted model instead of training.")
@click.option("--training-data", type=click.Path(path_type=Path), default=None,
              help="Training file (defaults to MLSettings:TrainingDataPath).")
@click.pass_obj
def train(settings: Settings, reuse: bool, training_data: Path | None) -> None:
    """Train the classifier on the training file and persist it.

    Example: doctype-classifier train
    """
    trainer = Trainer(_build_loader(settings), settings.model_path)
    with console.status("[bold blue]Training classifier...", spinner="dots"):
        model = trainer.train(training_data or settings.training_data_path, train_new_model=not reuse)

    if model is None:
        console.print(f"[bold red]Error:[/] {escape(str(trainer.last_error))}")
        sys.exit(1)
    console.print(f"Model ready at [bold]{settings.model_path}[/] with labels: {', '.join(model.labels)}")


@main.command()
@click.option("--training-data", type=click.Path(path_type=Path), default=None,
              help="Training file (defaults to MLSettings:TrainingDataPath).")
@click.option("--test-fraction", type=click.FloatRange(0.0, 1.0, min_open=True, max_open=True),
              default=None, help="Share of rows held out for testing.")
@click.option("--folds", "-k", type=click.IntRange(min=2), default=None,
              help="Number of cross-validation folds.")
@click.option("--seed", type=int, default=None, help="Seed for the split and the folds.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_obj
def evaluate(
    settings: Settings,
    training_data: Path | None,
    test_fraction: float | None,
    folds: int | None,
    seed: int | None,
    output: str,
) -> None:
    """Cross-validate, fit on a train split and score the test split.

    Example: doctype-classifier evaluate --test-fraction 0.3 --folds 5
    """
    evaluator = Evaluator(
        _build_loader(settings),
        settings.model_path,
        seed=settings.seed if seed is None else seed,
    )
    with console.status("[bold blue]Evaluating classifier...", spinner="dots"):
        metrics = evaluator.evaluate(
            training_data or settings.training_data_path,
            test_fraction=settings.test_fraction if test_fraction is None else test_fraction,
            folds=settings.folds if folds is None else folds,
        )

    if metrics is None:
        console.print(f"[bold red]Error:[/] {escape(str(evaluator.last_error))}")
        sys.exit(1)

    if output == "json":
        click.echo(json.dumps({
            "folds": [r.to_dict() for r in evaluator.fold_results],
            "metrics": metrics.to_dict(),
        }, indent=2))
    else:
        _render_evaluation(evaluator.fold_results, metrics)


@main.command()
@click.argument("image", type=click.Path(exists=True, path_type=Path))
@click.option("--reuse", is_flag=True, help="Load the persisted model instead of training.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_obj
def predict(settings: Settings, image: Path, reuse: bool, output: str) -> None:
    """Predict the document type of an image.

    Example: doctype-classifier predict --reuse scan.png
    """
    extractor = _build_extractor(settings)
    trainer = Trainer(
        LabeledDatasetLoader(extractor, skip_empty_text=settings.skip_empty_text),
        settings.model_path,
    )

    with console.status("[bold blue]Classifying document...", spinner="dots"):
        model = trainer.train(settings.training_data_path, train_new_model=not reuse)
        try:
            prediction = Predictor(extractor).predict_image(model, image)
        except ModelNotReadyError as e:
            console.print(f"[bold red]Error:[/] {escape(str(e))} ({escape(str(trainer.last_error))})")
            sys.exit(1)

    if output == "json":
        click.echo(json.dumps({"file_path": str(image), **prediction.to_dict()}, indent=2))
        return

    table = Table(title=f"Predicted Document Type: {image.name}", show_lines=False)
    table.add_column("Label", style="cyan")
    table.add_column("Score", justify="right")
    for label, score in zip(model.labels, prediction.score):
        style = "bold green" if label == prediction.predicted_label else ""
        table.add_row(label, f"{score:.4f}", style=style)
    console.print(table)
    console.print(f"Predicted Document Type: [bold]{prediction.predicted_label}[/]")


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_evaluation(fold_results: list[FoldResult], metrics: Metrics) -> None:
    """Render cross-validation and holdout metrics with rich formatting."""
    console.print()

    folds = Table(title="Cross-Validation", show_lines=False)
    folds.add_column("Fold", justify="right", width=6)
    folds.add_column("Train", justify="right")
    folds.add_column("Validation", justify="right")
    folds.add_column("LogLoss", justify="right")
    for r in fold_results:
        folds.add_row(str(r.fold), str(r.train_size), str(len(r.validation_indices)), f"{r.log_loss:.4f}")
    console.print(folds)
    console.print()

    console.print(Panel(
        f"Log-loss: [bold]{metrics.log_loss:.4f}[/]\n"
        f"Log-loss reduction: {metrics.log_loss_reduction:.4f}\n"
        f"Micro accuracy: {metrics.micro_accuracy:.0%} | "
        f"Macro accuracy: {metrics.macro_accuracy:.0%}",
        title="Holdout Evaluation",
        border_style="blue",
    ))

    per_class = Table(title="Per-Class Metrics", show_lines=False)
    per_class.add_column("Label", style="cyan")
    per_class.add_column("LogLoss", justify="right")
    per_class.add_column("Precision", justify="right")
    per_class.add_column("Recall", justify="right")
    per_class.add_column("Support", justify="right")
    for i, label in enumerate(metrics.labels):
        loss = metrics.per_class_log_loss[i]
        per_class.add_row(
            label,
            "-" if math.isnan(loss) else f"{loss:.4f}",
            f"{metrics.per_class_precision[i]:.2f}",
            f"{metrics.per_class_recall[i]:.2f}",
            str(metrics.support[i]),
        )
    console.print(per_class)

    matrix = Table(title="Confusion Matrix (rows: actual, columns: predicted)", show_lines=True)
    matrix.add_column("")
    for label in metrics.labels:
        matrix.add_column(label, justify="right")
    for label, row in zip(metrics.labels, metrics.confusion_matrix):
        matrix.add_row(label, *(str(c) for c in row))
    console.print(matrix)
    console.print()


if __name__ == "__main__":
    main()
