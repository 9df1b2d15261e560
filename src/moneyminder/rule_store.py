"""
SQLite store for parser rules and merchant notes.

Rules are stored one row per rule; list-valued fields are JSON-encoded text
columns. Every mutation publishes an event on the store's EventBus after the
write is committed, so subscribers always observe the new state.

Rule data arriving from outside (imports, older exports, hand-edited files)
goes through normalize_rule_data(), which is the single place where legacy
and malformed shapes are coerced into a ParserRule.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Optional

from .default_rules import DEFAULT_RULES
from .enricher import MerchantNote
from .events import DataEvent, EventBus
from .merchant_extract import MerchantExtraction
from .rule_engine import TRANSACTION_TYPES, ParserRule

LIST_FIELDS = (
    'sender_match',
    'amount_regex',
    'merchant_condition',
    'merchant_common_patterns',
    'skip_condition',
    'date_regex',
    'subject_match',
    'no_extract_condition',
)

NEWER_RULE_COLUMNS = (
    ('subject_match', 'TEXT'),
    ('no_extract_condition', 'TEXT'),
    ('extract_merchant_from_subject', 'INTEGER DEFAULT 0'),
)

# snake_case field -> camelCase key used in exports and older data
CAMEL_KEYS = {
    'sender_match': 'senderMatch',
    'amount_regex': 'amountRegex',
    'merchant_condition': 'merchantCondition',
    'merchant_common_patterns': 'merchantCommonPatterns',
    'merchant_extractions': 'merchantExtractions',
    'skip_condition': 'skipCondition',
    'date_regex': 'dateRegex',
    'subject_match': 'subjectMatch',
    'no_extract_condition': 'noExtractCondition',
    'extract_merchant_from_subject': 'extractMerchantFromSubject',
    'payment_bank': 'paymentBank',
    'transaction_type': 'transactionType',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
    'last_error': 'lastError',
    'success_count': 'successCount',
}


class RuleValidationError(ValueError):
    """Rule data that cannot form a rule at all (e.g. no name)."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get(data: Mapping[str, Any], field_name: str, default: Any = None) -> Any:
    camel = CAMEL_KEYS.get(field_name)
    if camel and camel in data:
        return data[camel]
    return data.get(field_name, default)


def _coerce_list(value: Any, split_commas: bool = False) -> List[str]:
    """Coerce a list, JSON-encoded list or legacy scalar into a list of strings.

    Array entries are kept as they are, blank ones included, so arrays survive
    a store or export round trip unchanged; ParserRule ignores blank patterns.
    Only None entries are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return []
        if stripped.startswith('['):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return _coerce_list(decoded)
        if split_commas and ',' in stripped and not stripped.startswith(('/', '[')):
            return [part.strip() for part in stripped.split(',') if part.strip()]
        return [stripped]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _coerce_bool(value: Any, default: bool = True) -> bool:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value).strip().lower() in ('true', '1', 'yes', 'y')


def _coerce_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _coerce_extractions(data: Mapping[str, Any]) -> List[MerchantExtraction]:
    raw = _get(data, 'merchant_extractions')
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else None
        except json.JSONDecodeError:
            raw = None
    if isinstance(raw, Mapping):
        raw = [raw]
    extractions = []
    if isinstance(raw, (list, tuple)):
        for item in raw:
            if isinstance(item, MerchantExtraction):
                extractions.append(item)
            elif isinstance(item, Mapping):
                extractions.append(MerchantExtraction.from_dict(item))
    if extractions:
        return extractions

    # Legacy single-extraction fields
    start = data.get('merchantStartText', data.get('merchant_start_text')) or ''
    end = data.get('merchantEndText', data.get('merchant_end_text')) or ''
    index = data.get('merchantStartIndex', data.get('merchant_start_index'))
    if start or end:
        return [MerchantExtraction.from_dict({'startText': start, 'endText': end, 'startIndex': index})]
    return []


def normalize_rule_data(data: Mapping[str, Any]) -> ParserRule:
    """Coerce a rule mapping of any known shape into a ParserRule.

    Raises:
        RuleValidationError: if the data has no name
    """
    if isinstance(data, ParserRule):
        return data
    name = str(data.get('name') or '').strip()
    if not name:
        raise RuleValidationError('Rule has no name')

    values = {}
    for field_name in LIST_FIELDS:
        values[field_name] = _coerce_list(_get(data, field_name))

    raw_skip = _get(data, 'skip_condition')
    if raw_skip is None or raw_skip == '' or raw_skip == []:
        # Legacy plural field
        raw_skip = data.get('skipConditions', data.get('skip_conditions'))
    values['skip_condition'] = _coerce_list(raw_skip, split_commas=True)

    transaction_type = str(_get(data, 'transaction_type') or 'expense').strip().lower()
    if transaction_type not in TRANSACTION_TYPES:
        transaction_type = 'expense'

    return ParserRule(
        name=name,
        id=str(data.get('id') or ''),
        enabled=_coerce_bool(data.get('enabled'), default=True),
        merchant_extractions=_coerce_extractions(data),
        extract_merchant_from_subject=_coerce_bool(_get(data, 'extract_merchant_from_subject'), default=False),
        payment_bank=str(_get(data, 'payment_bank') or ''),
        priority=_coerce_int(data.get('priority'), 0),
        transaction_type=transaction_type,
        created_at=str(_get(data, 'created_at') or ''),
        updated_at=str(_get(data, 'updated_at') or ''),
        last_error=str(_get(data, 'last_error') or ''),
        success_count=_coerce_int(_get(data, 'success_count'), 0),
        **values,
    )


def rule_to_dict(rule: ParserRule) -> dict:
    """camelCase mapping of a rule, as used in JSON exports."""
    return {
        'id': rule.id,
        'name': rule.name,
        'enabled': rule.enabled,
        'senderMatch': list(rule.sender_match),
        'amountRegex': list(rule.amount_regex),
        'merchantCondition': list(rule.merchant_condition),
        'merchantCommonPatterns': list(rule.merchant_common_patterns),
        'merchantExtractions': [e.to_dict() for e in rule.merchant_extractions],
        'skipCondition': list(rule.skip_condition),
        'dateRegex': list(rule.date_regex),
        'subjectMatch': list(rule.subject_match),
        'noExtractCondition': list(rule.no_extract_condition),
        'extractMerchantFromSubject': rule.extract_merchant_from_subject,
        'paymentBank': rule.payment_bank,
        'priority': rule.priority,
        'transactionType': rule.transaction_type,
        'createdAt': rule.created_at,
        'updatedAt': rule.updated_at,
        'lastError': rule.last_error,
        'successCount': rule.success_count,
    }


class RuleStore:
    """SQLite-backed collection of parser rules and merchant notes."""

    def __init__(self, db_path: Path, events: Optional[EventBus] = None):
        self.db_path = Path(db_path)
        self.events = events or EventBus()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                self._ensure_schema(conn)
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS parser_rules (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                enabled INTEGER NOT NULL DEFAULT 1,
                sender_match TEXT,
                amount_regex TEXT,
                merchant_condition TEXT,
                merchant_common_patterns TEXT,
                merchant_extractions TEXT,
                skip_condition TEXT,
                date_regex TEXT,
                subject_match TEXT,
                no_extract_condition TEXT,
                extract_merchant_from_subject INTEGER DEFAULT 0,
                payment_bank TEXT,
                priority INTEGER DEFAULT 0,
                transaction_type TEXT DEFAULT 'expense',
                position INTEGER,
                created_at TEXT,
                updated_at TEXT,
                last_error TEXT,
                success_count INTEGER DEFAULT 0
            );
            CREATE TABLE IF NOT EXISTS merchant_notes (
                id TEXT PRIMARY KEY,
                merchant_name TEXT NOT NULL,
                category TEXT,
                notes TEXT,
                date_added TEXT,
                last_updated TEXT
            );
            """
        )
        # Ensure columns added after the first release exist in older stores.
        for column, column_type in NEWER_RULE_COLUMNS:
            try:
                conn.execute(f"ALTER TABLE parser_rules ADD COLUMN {column} {column_type}")
            except sqlite3.OperationalError:
                pass

    def _row_to_rule(self, row: sqlite3.Row) -> ParserRule:
        values = {f: json.loads(row[f]) if row[f] else [] for f in LIST_FIELDS}
        extractions = json.loads(row['merchant_extractions']) if row['merchant_extractions'] else []
        return ParserRule(
            id=row['id'],
            name=row['name'],
            enabled=bool(row['enabled']),
            merchant_extractions=[MerchantExtraction.from_dict(e) for e in extractions],
            extract_merchant_from_subject=bool(row['extract_merchant_from_subject']),
            payment_bank=row['payment_bank'] or '',
            priority=int(row['priority'] or 0),
            transaction_type=row['transaction_type'] or 'expense',
            created_at=row['created_at'] or '',
            updated_at=row['updated_at'] or '',
            last_error=row['last_error'] or '',
            success_count=int(row['success_count'] or 0),
            **values,
        )

    def _rule_params(self, rule: ParserRule) -> dict:
        params = {f: json.dumps(list(getattr(rule, f))) for f in LIST_FIELDS}
        params.update(
            id=rule.id,
            name=rule.name,
            enabled=1 if rule.enabled else 0,
            merchant_extractions=json.dumps([e.to_dict() for e in rule.merchant_extractions]),
            extract_merchant_from_subject=1 if rule.extract_merchant_from_subject else 0,
            payment_bank=rule.payment_bank,
            priority=rule.priority,
            transaction_type=rule.transaction_type,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
            last_error=rule.last_error,
            success_count=rule.success_count,
        )
        return params

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def list_rules(self) -> List[ParserRule]:
        """All rules, disabled included, ordered by priority (desc) then insertion."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM parser_rules ORDER BY priority DESC, position"
            ).fetchall()
        return [self._row_to_rule(row) for row in rows]

    def get_rule(self, rule_id: str) -> Optional[ParserRule]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM parser_rules WHERE id = ?", (rule_id,)).fetchone()
        return self._row_to_rule(row) if row else None

    def find_rule(self, key: str) -> Optional[ParserRule]:
        """Look a rule up by id, then by name (case-insensitive)."""
        rule = self.get_rule(key)
        if rule is not None:
            return rule
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM parser_rules WHERE LOWER(name) = LOWER(?) ORDER BY position LIMIT 1",
                (key,),
            ).fetchone()
        return self._row_to_rule(row) if row else None

    def _insert(self, conn: sqlite3.Connection, rule: ParserRule) -> ParserRule:
        now = _now()
        rule = replace(
            rule,
            id=rule.id or str(uuid.uuid4()),
            created_at=rule.created_at or now,
            updated_at=now,
        )
        params = self._rule_params(rule)
        params['position'] = conn.execute(
            "SELECT COALESCE(MAX(position), -1) FROM parser_rules"
        ).fetchone()[0] + 1
        columns = ', '.join(params)
        placeholders = ', '.join(f':{c}' for c in params)
        conn.execute(f"INSERT INTO parser_rules ({columns}) VALUES ({placeholders})", params)
        return rule

    def add_rule(self, data: Mapping[str, Any]) -> ParserRule:
        """Normalize and insert one rule. Returns the stored rule (with id and timestamps)."""
        rule = normalize_rule_data(data)
        with self._connect() as conn:
            rule = self._insert(conn, rule)
        self.events.emit(DataEvent.RULES_CHANGED, action='add', rule_ids=[rule.id])
        return rule

    def add_rules(self, rules: Iterable[Mapping[str, Any]], event: DataEvent = DataEvent.RULES_CHANGED) -> List[ParserRule]:
        """Insert several rules in one transaction and publish a single event."""
        normalized = [normalize_rule_data(r) for r in rules]
        if not normalized:
            return []
        with self._connect() as conn:
            stored = [self._insert(conn, rule) for rule in normalized]
        self.events.emit(event, action='add', rule_ids=[r.id for r in stored])
        return stored

    def update_rule(self, rule: ParserRule) -> ParserRule:
        """Replace a stored rule's fields. Raises KeyError for an unknown id."""
        rule = replace(rule, updated_at=_now())
        params = self._rule_params(rule)
        assignments = ', '.join(f"{c} = :{c}" for c in params if c != 'id')
        with self._connect() as conn:
            cursor = conn.execute(f"UPDATE parser_rules SET {assignments} WHERE id = :id", params)
            if cursor.rowcount == 0:
                raise KeyError(f"No rule with id {rule.id!r}")
        self.events.emit(DataEvent.RULES_CHANGED, action='update', rule_ids=[rule.id])
        return rule

    def delete_rule(self, rule_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM parser_rules WHERE id = ?", (rule_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            self.events.emit(DataEvent.RULES_CHANGED, action='delete', rule_ids=[rule_id])
        return deleted

    def set_enabled(self, rule_id: str, enabled: bool) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE parser_rules SET enabled = ?, updated_at = ? WHERE id = ?",
                (1 if enabled else 0, _now(), rule_id),
            )
            changed = cursor.rowcount > 0
        if changed:
            self.events.emit(DataEvent.RULES_CHANGED, action='enable' if enabled else 'disable', rule_ids=[rule_id])
        return changed

    def record_match(self, rule_id: str, count: int = 1) -> None:
        """Bump a rule's success counter and clear its last error."""
        with self._connect() as conn:
            conn.execute(
                "UPDATE parser_rules SET success_count = success_count + ?, last_error = '' WHERE id = ?",
                (count, rule_id),
            )
        self.events.emit(DataEvent.RULES_CHANGED, action='stats', rule_ids=[rule_id])

    def record_error(self, rule_id: str, message: str) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE parser_rules SET last_error = ? WHERE id = ?", (message, rule_id))
        self.events.emit(DataEvent.RULES_CHANGED, action='stats', rule_ids=[rule_id])

    def rule_names(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT name FROM parser_rules ORDER BY position").fetchall()
        return [row['name'] for row in rows]

    def ensure_default_rules(self) -> List[ParserRule]:
        """Seed the built-in rules when the store has none. Returns what was added."""
        with self._connect() as conn:
            count = conn.execute("SELECT COUNT(*) FROM parser_rules").fetchone()[0]
        if count:
            return []
        return self.add_rules(DEFAULT_RULES)

    # -------------------------------------------------------------------------
    # Merchant notes
    # -------------------------------------------------------------------------

    def list_merchant_notes(self) -> List[MerchantNote]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM merchant_notes ORDER BY merchant_name").fetchall()
        return [
            MerchantNote(
                id=row['id'],
                merchant_name=row['merchant_name'],
                category=row['category'] or '',
                notes=row['notes'] or '',
                date_added=row['date_added'] or '',
                last_updated=row['last_updated'] or '',
            )
            for row in rows
        ]

    def get_merchant_note(self, merchant_name: str) -> Optional[MerchantNote]:
        """The note for a merchant (case-insensitive), or None."""
        key = merchant_name.casefold()
        for note in self.list_merchant_notes():
            if note.merchant_name.casefold() == key:
                return note
        return None

    def save_merchant_note(self, note: MerchantNote) -> MerchantNote:
        """Insert a note, or replace the existing note for the same merchant."""
        if not note.merchant_name.strip():
            raise RuleValidationError('Merchant note has no merchant name')
        now = _now()
        with self._connect() as conn:
            existing = conn.execute(
                "SELECT id, date_added FROM merchant_notes WHERE LOWER(merchant_name) = LOWER(?)",
                (note.merchant_name,),
            ).fetchone()
            note = replace(
                note,
                id=existing['id'] if existing else (note.id or str(uuid.uuid4())),
                date_added=existing['date_added'] if existing else (note.date_added or now),
                last_updated=now,
            )
            conn.execute(
                "INSERT OR REPLACE INTO merchant_notes (id, merchant_name, category, notes, date_added, last_updated) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (note.id, note.merchant_name, note.category, note.notes, note.date_added, note.last_updated),
            )
        self.events.emit(DataEvent.MERCHANT_NOTES_CHANGED, merchant=note.merchant_name)
        return note

    def delete_merchant_note(self, note_id: str) -> bool:
        with self._connect() as conn:
            deleted = conn.execute("DELETE FROM merchant_notes WHERE id = ?", (note_id,)).rowcount > 0
        if deleted:
            self.events.emit(DataEvent.MERCHANT_NOTES_CHANGED, note_id=note_id)
        return deleted
