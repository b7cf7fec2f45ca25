"""Shared test fixtures for doctype-classifier tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from doctype_classifier.dataset import LabeledDatasetLoader
from doctype_classifier.models import DocumentRecord, LabeledDataset

# Synthetic OCR output; each label has distinctive vocabulary.
INVOICE_TEXTS = [
    "Rechnung Nummer 1001 Rechnungsdatum 12.03.2024 Betrag netto 450,00 EUR "
    "zuzüglich Mehrwertsteuer zahlbar innerhalb von 14 Tagen",
    "Rechnung Nr 2045 Leistungszeitraum März Gesamtbetrag 1.200,00 EUR "
    "Bankverbindung IBAN Zahlungsziel 30 Tage",
    "Rechnung Kundennummer 778 Rechnungsbetrag 89,90 EUR Umsatzsteuer 19 Prozent "
    "bitte überweisen Sie den Betrag",
    "Rechnung Nummer 3310 Position Beratung Stundensatz Rechnungssumme "
    "Zahlungsbedingungen netto 14 Tage",
    "Rechnung Nr 5120 Lieferschein Bestellnummer Nettobetrag Mehrwertsteuer "
    "Rechnungsbetrag fällig am",
]

RECEIPT_TEXTS = [
    "Kassenbon Supermarkt Milch 1,19 Brot 2,49 Summe 3,68 bar gezahlt Rückgeld "
    "vielen Dank für Ihren Einkauf",
    "Quittung Tankstelle Super 45,20 Liter Summe EUR Kartenzahlung Beleg "
    "vielen Dank gute Fahrt",
    "Kassenbon Bäckerei Brötchen Kaffee Summe 4,80 bar Rückgeld 0,20 "
    "Bon Nummer Kasse 2",
    "Quittung Apotheke Summe 12,95 EC Karte Beleg Kundenbeleg "
    "vielen Dank für Ihren Besuch",
    "Kassenbon Drogerie Zahnpasta Shampoo Summe 7,45 bar gegeben Rückgeld "
    "Kasse 1 Bon",
]


class FakeExtractor:
    """In-memory TextExtractor that records every call."""

    def __init__(self, texts: dict[str, str]) -> None:
        self.texts = texts
        self.calls: list[str] = []

    def extract_text(self, image_path) -> str:
        self.calls.append(str(image_path))
        return self.texts.get(str(image_path), "")


@pytest.fixture
def document_texts() -> dict[str, str]:
    """Image path -> OCR text for the ten training scans."""
    texts = {}
    for i, text in enumerate(INVOICE_TEXTS, 1):
        texts[f"scans/invoice_{i:02d}.png"] = text
    for i, text in enumerate(RECEIPT_TEXTS, 1):
        texts[f"scans/receipt_{i:02d}.png"] = text
    return texts


@pytest.fixture
def fake_extractor(document_texts: dict[str, str]) -> FakeExtractor:
    return FakeExtractor(document_texts)


@pytest.fixture
def loader(fake_extractor: FakeExtractor) -> LabeledDatasetLoader:
    return LabeledDatasetLoader(fake_extractor)


@pytest.fixture
def training_file(tmp_path: Path, document_texts: dict[str, str]) -> Path:
    """A ``;``-delimited training file with 5 invoices and 5 receipts, interleaved."""
    invoices = [p for p in document_texts if "invoice" in p]
    receipts = [p for p in document_texts if "receipt" in p]
    lines = ["FilePath;Label"]
    for invoice, receipt in zip(invoices, receipts):
        lines.append(f"{invoice};Invoice")
        lines.append(f"{receipt};Receipt")
    path = tmp_path / "classifierdata.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def dataset() -> LabeledDataset:
    """The training corpus as records, interleaved Invoice/Receipt."""
    records = []
    for i, (invoice, receipt) in enumerate(zip(INVOICE_TEXTS, RECEIPT_TEXTS), 1):
        records.append(DocumentRecord(f"scans/invoice_{i:02d}.png", invoice, "Invoice"))
        records.append(DocumentRecord(f"scans/receipt_{i:02d}.png", receipt, "Receipt"))
    return LabeledDataset(records)


@pytest.fixture
def model_path(tmp_path: Path) -> Path:
    return tmp_path / "models" / "documentClassificationModel.json"
