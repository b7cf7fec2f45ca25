"""Loading labeled training data.

A training file is delimited text (``;`` by default) with one document per
row. Columns are bound to :class:`DocumentRecord` fields through an explicit
schema of :class:`ColumnSpec` entries rather than by inspecting the record
type::

    FilePath;Label
    scans/invoice_001.png;Invoice
    scans/receipt_001.png;Receipt

Each row's text is resolved by the configured :class:`TextExtractor`,
strictly one row after another.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

from .errors import MalformedRowError
from .extraction import TextExtractor
from .models import DocumentRecord, LabeledDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnSpec:
    """Binding of one file column to a record field.

    Attributes:
        name: Column name as it appears in the header.
        field: ``DocumentRecord`` attribute the value is assigned to.
        index: Column position used when the file has no header.
        type: Semantic type of the value.
    """

    name: str
    field: str
    index: int
    type: str = "string"


DEFAULT_SCHEMA: tuple[ColumnSpec, ...] = (
    ColumnSpec(name="FilePath", field="file_path", index=0),
    ColumnSpec(name="Label", field="label", index=1),
)


@dataclass(frozen=True)
class RawRow:
    """A row bound to field values, before text extraction."""

    line_number: int
    file_path: str
    label: str


class LabeledDatasetLoader:
    """Reads a training file and attaches extracted text to every row.

    Args:
        extractor: Resolves an image path to text.
        schema: Column bindings; must bind ``file_path`` and ``label``.
        skip_empty_text: Drop records whose extracted text is empty instead
            of keeping them as uninformative rows.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        schema: Sequence[ColumnSpec] = DEFAULT_SCHEMA,
        skip_empty_text: bool = False,
    ) -> None:
        fields = {spec.field for spec in schema}
        missing = {"file_path", "label"} - fields
        if missing:
            raise ValueError(f"schema must bind fields {sorted(missing)}")
        self.extractor = extractor
        self.schema = tuple(schema)
        self.skip_empty_text = skip_empty_text

    def load(
        self,
        path: str | Path,
        delimiter: str = ";",
        has_header: bool = True,
    ) -> LabeledDataset:
        """Load a training file into a dataset, extracting text row by row.

        Args:
            path: Training file path.
            delimiter: Column separator.
            has_header: Whether the first line names the columns.

        Returns:
            Dataset in file order.

        Raises:
            FileNotFoundError: If the file does not exist.
            MalformedRowError: If a row has the wrong number of columns or the
                header lacks a schema column.
        """
        path = Path(path)
        logger.info("Loading training data from %s", path)

        dataset = LabeledDataset()
        empty = 0
        for row in self.read_rows(path, delimiter=delimiter, has_header=has_header):
            text = self.extractor.extract_text(row.file_path)
            record = DocumentRecord(file_path=row.file_path, text=text or "", label=row.label)

            if not record.has_text:
                empty += 1
                if self.skip_empty_text:
                    logger.warning(
                        "Skipping %s (line %d): no text extracted", row.file_path, row.line_number
                    )
                    continue
                logger.warning(
                    "No text extracted for %s (line %d); keeping it as an empty record",
                    row.file_path, row.line_number,
                )
            dataset.add(record)

        logger.info(
            "Loaded %d records (%d labels, %d with empty text%s)",
            len(dataset), len(dataset.distinct_labels), empty,
            ", skipped" if self.skip_empty_text else "",
        )
        return dataset

    def read_rows(
        self,
        path: str | Path,
        delimiter: str = ";",
        has_header: bool = True,
    ) -> Iterator[RawRow]:
        """Yield schema-bound rows without extracting any text."""
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f, delimiter=delimiter)
            indices: Optional[dict[str, int]] = None
            expected_columns = len(self.schema)

            for values in reader:
                line_number = reader.line_num
                if not values or all(not v.strip() for v in values):
                    continue

                if has_header and indices is None:
                    indices = self._resolve_header(values, line_number)
                    expected_columns = len(values)
                    continue
                if indices is None:
                    indices = {spec.field: spec.index for spec in self.schema}
                    expected_columns = max(expected_columns, max(indices.values()) + 1)

                if len(values) != expected_columns:
                    raise MalformedRowError(
                        f"expected {expected_columns} columns, got {len(values)}",
                        line_number=line_number,
                    )

                bound = {name: values[idx].strip() for name, idx in indices.items()}
                if not bound["file_path"]:
                    raise MalformedRowError("empty file path", line_number=line_number)
                if not bound["label"]:
                    raise MalformedRowError("empty label", line_number=line_number)
                yield RawRow(
                    line_number=line_number,
                    file_path=bound["file_path"],
                    label=bound["label"],
                )

    def _resolve_header(self, header: list[str], line_number: int) -> dict[str, int]:
        """Map schema fields to column positions by (case-insensitive) name."""
        positions = {name.strip().lower(): i for i, name in enumerate(header)}
        indices: dict[str, int] = {}
        for spec in self.schema:
            idx = positions.get(spec.name.lower())
            if idx is None:
                raise MalformedRowError(
                    f"header is missing column {spec.name!r} (found {header})",
                    line_number=line_number,
                )
            indices[spec.field] = idx
        return indices
