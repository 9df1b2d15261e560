"""
Import and export merchant notes as CSV or JSON.

CSV format: one note per row under a "Merchant Name,Category,Notes" header:

    Merchant Name,Category,Notes
    "Swiggy","Food","Dinner orders"

The camelCase / snake_case spellings of the merchant column (merchantName,
merchant_name) are accepted on import. JSON files hold a list of notes or
{"notes": [...]}. An imported note replaces the stored note for the same
merchant (case-insensitive).
"""

import csv
import io
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .enricher import MerchantNote

NOTES_CSV_COLUMNS = ['Merchant Name', 'Category', 'Notes']

# Header spellings -> MerchantNote field
_CSV_ALIASES = {
    'merchant name': 'merchant_name',
    'merchantname': 'merchant_name',
    'merchant_name': 'merchant_name',
    'merchant': 'merchant_name',
    'category': 'category',
    'notes': 'notes',
}


@dataclass
class NotesImportReport:
    """Notes read from a file plus what was left out."""

    notes: List[MerchantNote] = field(default_factory=list)
    skipped: int = 0  # Entries without a merchant name
    errors: List[str] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return len(self.notes)

    def summary(self) -> str:
        message = f"Imported {self.imported} merchant notes"
        if self.skipped:
            message += f", skipped {self.skipped} invalid entries"
        return message


def notes_to_csv(notes: Iterable[MerchantNote]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(NOTES_CSV_COLUMNS)
    for note in notes:
        writer.writerow([note.merchant_name, note.category, note.notes])
    return buffer.getvalue()


def export_notes_csv(notes: Iterable[MerchantNote], path) -> int:
    """Write notes to a CSV file. Returns the number of notes written."""
    notes = list(notes)
    Path(path).write_text(notes_to_csv(notes), encoding='utf-8')
    return len(notes)


def export_notes_json(notes: Iterable[MerchantNote], path: Optional[Path] = None) -> str:
    """Serialize notes to a JSON list; write it when path is given."""
    content = json.dumps([n.to_dict() for n in notes], indent=2) + '\n'
    if path is not None:
        Path(path).write_text(content, encoding='utf-8')
    return content


def _collect(entries: Iterable[Any]) -> NotesImportReport:
    report = NotesImportReport()
    by_merchant: Dict[str, int] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            report.skipped += 1
            report.errors.append(f"Not a merchant note: {entry!r}")
            continue
        note = MerchantNote.from_dict(entry)
        name = note.merchant_name.strip()
        if not name:
            report.skipped += 1
            report.errors.append('Merchant note has no merchant name')
            continue
        # Ids are assigned by the store
        note = replace(note, merchant_name=name, id='')
        key = name.casefold()
        if key in by_merchant:
            # A later entry for the same merchant wins
            report.notes[by_merchant[key]] = note
        else:
            by_merchant[key] = len(report.notes)
            report.notes.append(note)
    return report


def parse_notes_csv(text: str) -> List[Dict[str, str]]:
    """Read CSV text into note mappings keyed by MerchantNote field names.

    Raises:
        ValueError: if the header has no merchant name column
    """
    # Quoted notes may span lines, so the text is read as one stream
    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    if not rows:
        return []
    header = [_CSV_ALIASES.get(column.strip().lower(), '') for column in rows[0]]
    if 'merchant_name' not in header:
        raise ValueError(f"expected a '{NOTES_CSV_COLUMNS[0]}' column, got: {', '.join(rows[0])}")
    entries = []
    for row in rows[1:]:
        entries.append({name: value for name, value in zip(header, row) if name})
    return entries


def import_notes_csv(path) -> NotesImportReport:
    """Read notes from a CSV file; the returned notes are not stored.

    Raises:
        ValueError: if the file has no header with a merchant name column
    """
    try:
        entries = parse_notes_csv(Path(path).read_text(encoding='utf-8'))
    except ValueError as e:
        raise ValueError(f"{path}: {e}") from e
    return _collect(entries)


def import_notes_json(path) -> NotesImportReport:
    """Read notes from a JSON file holding a list of notes or {"notes": [...]}.

    Raises:
        ValueError: if the file is not valid JSON or has no note list
    """
    try:
        data = json.loads(Path(path).read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON: {e}") from e
    if isinstance(data, Mapping):
        data = data.get('notes')
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of notes or an object with a 'notes' list")
    return _collect(data)


def import_notes(path) -> NotesImportReport:
    """Import from CSV or JSON, chosen by file extension."""
    if Path(path).suffix.lower() == '.json':
        return import_notes_json(path)
    return import_notes_csv(path)
