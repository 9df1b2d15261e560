"""
Import and export parser rules as CSV or JSON.

CSV format: one rule per row, list-valued columns hold JSON-encoded arrays:

    name,enabled,senderMatch,amountRegex,...,merchantExtractions,...
    HDFC Bank Credit Card,true,"[""HDFCBK""]","[""Rs\\\\.?\\\\s*([\\\\d,]+)""]",...

The legacy merchantStartText / merchantEndText / merchantStartIndex columns
are written alongside merchantExtractions (first extraction only) so files
can be read by older versions. Lines starting with # are comments.
"""

import csv
import io
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .rule_engine import ParserRule
from .rule_store import RuleValidationError, normalize_rule_data, rule_to_dict

CSV_COLUMNS = [
    'name',
    'enabled',
    'senderMatch',
    'amountRegex',
    'merchantCondition',
    'merchantCommonPatterns',
    'paymentBank',
    'priority',
    'skipCondition',
    'transactionType',
    'merchantExtractions',
    'merchantStartText',
    'merchantEndText',
    'merchantStartIndex',
    'dateRegex',
    'subjectMatch',
    'noExtractCondition',
    'extractMerchantFromSubject',
]

# Bookkeeping fields that are never imported from files
_STORE_OWNED = ('id', 'createdAt', 'updatedAt', 'lastError', 'successCount')


@dataclass
class ImportReport:
    """Outcome of an import: new rules plus counts of what was left out."""

    rules: List[ParserRule] = field(default_factory=list)
    skipped: int = 0  # Rows that could not form a rule (e.g. no name)
    duplicates: int = 0  # Rows whose name already exists
    errors: List[str] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return len(self.rules)

    def summary(self) -> str:
        message = f"Imported {self.imported} rules"
        if self.skipped:
            message += f", skipped {self.skipped} invalid entries"
        if self.duplicates:
            message += f", ignored {self.duplicates} duplicates"
        return message


def rule_to_csv_row(rule: ParserRule) -> Dict[str, str]:
    first = rule.merchant_extractions[0] if rule.merchant_extractions else None
    return {
        'name': rule.name,
        'enabled': 'true' if rule.enabled else 'false',
        'senderMatch': json.dumps(list(rule.sender_match)),
        'amountRegex': json.dumps(list(rule.amount_regex)),
        'merchantCondition': json.dumps(list(rule.merchant_condition)),
        'merchantCommonPatterns': json.dumps(list(rule.merchant_common_patterns)),
        'paymentBank': rule.payment_bank,
        'priority': str(rule.priority),
        'skipCondition': json.dumps(list(rule.skip_condition)),
        'transactionType': rule.transaction_type,
        'merchantExtractions': json.dumps([e.to_dict() for e in rule.merchant_extractions]),
        'merchantStartText': first.start_text if first else '',
        'merchantEndText': first.end_text if first else '',
        'merchantStartIndex': str(first.start_index) if first else '1',
        'dateRegex': json.dumps(list(rule.date_regex)),
        'subjectMatch': json.dumps(list(rule.subject_match)),
        'noExtractCondition': json.dumps(list(rule.no_extract_condition)),
        'extractMerchantFromSubject': 'true' if rule.extract_merchant_from_subject else 'false',
    }


def rules_to_csv(rules: Iterable[ParserRule]) -> str:
    """Serialize rules to CSV text."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator='\n')
    writer.writeheader()
    for rule in rules:
        writer.writerow(rule_to_csv_row(rule))
    return buffer.getvalue()


def export_rules_csv(rules: Iterable[ParserRule], path) -> int:
    """Write rules to a CSV file. Returns the number of rules written."""
    rules = list(rules)
    Path(path).write_text(rules_to_csv(rules), encoding='utf-8')
    return len(rules)


def parse_rules_csv(text: str) -> List[Dict[str, Any]]:
    """Read CSV text into raw row mappings (comment and blank lines dropped)."""
    lines = [line for line in text.splitlines() if line.strip() and not line.lstrip().startswith('#')]
    if not lines:
        return []
    reader = csv.DictReader(lines)
    return [dict(row) for row in reader]


def _import_rows(rows: Iterable[Mapping[str, Any]], existing_names: Iterable[str]) -> ImportReport:
    report = ImportReport()
    seen = set(existing_names)
    for row in rows:
        if not isinstance(row, Mapping):
            report.skipped += 1
            report.errors.append(f"Not a rule object: {row!r}")
            continue
        data = {k: v for k, v in row.items() if k not in _STORE_OWNED}
        name = str(data.get('name') or '').strip()
        if name in seen:
            report.duplicates += 1
            continue
        try:
            rule = normalize_rule_data(data)
        except RuleValidationError as e:
            report.skipped += 1
            report.errors.append(str(e))
            continue
        seen.add(rule.name)
        report.rules.append(rule)
    return report


def import_rules_csv(path, existing_names: Iterable[str] = ()) -> ImportReport:
    """Read rules from a CSV file.

    Rows without a name are skipped; rows whose name is already in
    existing_names (or earlier in the same file) are counted as duplicates.
    The returned rules are normalized but not stored.

    Raises:
        ValueError: if the file contains no rule rows
    """
    rows = parse_rules_csv(Path(path).read_text(encoding='utf-8'))
    if not rows:
        raise ValueError(f"{path}: no rules found in the CSV file")
    return _import_rows(rows, existing_names)


def export_rules_json(rules: Iterable[ParserRule], path: Optional[Path] = None) -> str:
    """Serialize rules to a JSON document ({"rules": [...]}); write it when path is given."""
    content = json.dumps({'rules': [rule_to_dict(r) for r in rules]}, indent=2) + '\n'
    if path is not None:
        Path(path).write_text(content, encoding='utf-8')
    return content


def import_rules_json(path, existing_names: Iterable[str] = ()) -> ImportReport:
    """Read rules from a JSON file holding a list of rules or {"rules": [...]}.

    Raises:
        ValueError: if the file is not valid JSON or has no rule list
    """
    try:
        data = json.loads(Path(path).read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON: {e}") from e
    if isinstance(data, Mapping):
        data = data.get('rules')
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of rules or an object with a 'rules' list")
    return _import_rows(data, existing_names)


def import_rules(path, existing_names: Iterable[str] = ()) -> ImportReport:
    """Import from CSV or JSON, chosen by file extension."""
    if Path(path).suffix.lower() == '.json':
        return import_rules_json(path, existing_names)
    return import_rules_csv(path, existing_names)
