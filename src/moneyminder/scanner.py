"""
Batch scanning of messages into transactions.

Runs the rule engine over a list of messages, drops duplicate alerts (banks
often send the same transaction twice, e.g. SMS plus e-mail), enriches the
survivors and collects per-rule statistics. Messages a rule consumed through
its noExtractCondition are reported separately and never become transactions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .enricher import MerchantNote, enrich_transaction
from .parsers import SmsMessage, to_naive_utc
from .rule_engine import DEFAULT_CATEGORY, DEFAULT_CURRENCY, ParserRule, RuleEngine, Transaction

DEFAULT_DUPLICATE_WINDOW = 60  # seconds


@dataclass
class ScanReport:
    """Result of scan_messages()."""

    transactions: List[Transaction] = field(default_factory=list)
    unmatched: List[SmsMessage] = field(default_factory=list)
    duplicates: List[Tuple[SmsMessage, Transaction]] = field(default_factory=list)
    processed: List[Tuple[SmsMessage, Transaction]] = field(default_factory=list)  # noExtractCondition hits
    rule_counts: Dict[str, int] = field(default_factory=dict)  # rule id (or name) -> matches
    rule_errors: Dict[str, str] = field(default_factory=dict)  # rule id (or name) -> last error
    enriched: int = 0

    @property
    def total(self) -> int:
        return len(self.transactions) + len(self.unmatched) + len(self.duplicates) + len(self.processed)


def _rule_key(rule: ParserRule) -> str:
    return rule.id or rule.name


def is_duplicate(
    candidate: Transaction, existing: Transaction, window_seconds: float = DEFAULT_DUPLICATE_WINDOW
) -> bool:
    """Two transactions describe the same payment.

    Same message id, or same amount and merchant (case-insensitive) with dates
    less than window_seconds apart. Undated transactions are never duplicates
    unless their message ids match.
    """
    if candidate.message_id and candidate.message_id == existing.message_id:
        return True
    if candidate.amount != existing.amount:
        return False
    if candidate.merchant_name.casefold() != existing.merchant_name.casefold():
        return False
    if candidate.date is None or existing.date is None:
        return False
    delta = to_naive_utc(candidate.date) - to_naive_utc(existing.date)
    return abs(delta.total_seconds()) < window_seconds


def scan_messages(
    messages: Iterable[SmsMessage],
    rules: Iterable[ParserRule],
    window_seconds: float = DEFAULT_DUPLICATE_WINDOW,
    currency: str = DEFAULT_CURRENCY,
    default_category: str = DEFAULT_CATEGORY,
    history: Iterable[Transaction] = (),
    notes: Optional[Dict[str, MerchantNote]] = None,
    received_at: Optional[datetime] = None,
) -> ScanReport:
    """Turn messages into transactions.

    Args:
        messages: Messages to scan, in any order
        rules: Parser rules (disabled ones are ignored)
        window_seconds: Duplicate detection window
        currency / default_category: Copied onto every transaction
        history: Previously stored transactions, used for duplicate checks
            and enrichment
        notes: Merchant notes index (see enricher.index_merchant_notes)
        received_at: Date for messages that carry none
    """
    engine = RuleEngine(rules, currency=currency, default_category=default_category)
    history = list(history)
    report = ScanReport()

    for message in messages:
        result = engine.match(
            message.body,
            message.sender,
            received_at=message.date or received_at,
            message_id=message.id,
            subject=message.subject,
        )
        if not result.matched:
            report.unmatched.append(message)
            continue

        transaction = result.transaction
        key = _rule_key(result.rule)
        if not transaction.extracted:
            report.processed.append((message, transaction))
            report.rule_counts[key] = report.rule_counts.get(key, 0) + 1
            continue

        previous = history + report.transactions
        if any(is_duplicate(transaction, seen, window_seconds) for seen in previous):
            report.duplicates.append((message, transaction))
            continue

        if enrich_transaction(transaction, history, notes, default_category):
            report.enriched += 1
        report.transactions.append(transaction)
        report.rule_counts[key] = report.rule_counts.get(key, 0) + 1

    for rule in engine.active_rules:
        if rule.compile() is None:
            report.rule_errors[_rule_key(rule)] = rule.last_error

    return report
