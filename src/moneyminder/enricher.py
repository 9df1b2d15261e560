"""
Fill in category and notes for freshly extracted transactions.

A transaction produced by a parser rule only knows the default category. If
the user has written a merchant note for that merchant, or has categorised an
earlier transaction from the same merchant, that information is copied over.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional

from .parsers import to_naive_utc
from .rule_engine import DEFAULT_CATEGORY, Transaction

AUTO_NOTE_MARKER = 'Auto-extracted from SMS'


@dataclass
class MerchantNote:
    """User-maintained category / notes for one merchant."""

    merchant_name: str
    category: str = ''
    notes: str = ''
    id: str = ''
    date_added: str = ''
    last_updated: str = ''

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'merchantName': self.merchant_name,
            'category': self.category,
            'notes': self.notes,
            'dateAdded': self.date_added,
            'lastUpdated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MerchantNote':
        return cls(
            merchant_name=data.get('merchantName', data.get('merchant_name')) or '',
            category=data.get('category') or '',
            notes=data.get('notes') or '',
            id=data.get('id') or '',
            date_added=data.get('dateAdded', data.get('date_added')) or '',
            last_updated=data.get('lastUpdated', data.get('last_updated')) or '',
        )


@dataclass
class PreviousData:
    category: str = ''
    notes: str = ''


def is_auto_note(notes: Optional[str]) -> bool:
    return not notes or AUTO_NOTE_MARKER in notes


def previous_transaction_data(
    merchant_name: str, history: Iterable[Transaction]
) -> Optional[PreviousData]:
    """Category/notes of the most recent transaction for the same merchant.

    Merchant names compare case-insensitively. Transactions whose notes were
    auto-generated are ignored so defaults are not reinforced.
    """
    if not merchant_name:
        return None
    key = merchant_name.casefold()
    matching = [
        t for t in history
        if t.merchant_name and t.merchant_name.casefold() == key
        and not (t.notes and AUTO_NOTE_MARKER in t.notes)
    ]
    if not matching:
        return None
    # Undated transactions sort as oldest
    matching.sort(key=lambda t: to_naive_utc(t.date) or datetime.min, reverse=True)
    latest = matching[0]
    return PreviousData(category=latest.category or '', notes=latest.notes or '')


def index_merchant_notes(notes: Iterable[MerchantNote]) -> Dict[str, MerchantNote]:
    """Map casefolded merchant name -> note (later notes win)."""
    return {n.merchant_name.casefold(): n for n in notes if n.merchant_name}


def enrich_transaction(
    transaction: Transaction,
    history: Iterable[Transaction] = (),
    notes: Optional[Dict[str, MerchantNote]] = None,
    default_category: str = DEFAULT_CATEGORY,
) -> bool:
    """Copy category/notes onto transaction in place. Returns True if anything changed.

    Merchant notes take precedence over transaction history. Transactions that
    already carry a non-default category and user-written notes are left alone.
    """
    if transaction.category != default_category and not is_auto_note(transaction.notes):
        return False

    source = None
    if notes:
        note = notes.get(transaction.merchant_name.casefold())
        if note is not None:
            source = PreviousData(category=note.category, notes=note.notes)
    if source is None:
        source = previous_transaction_data(transaction.merchant_name, history)
    if source is None:
        return False

    enriched = False
    if transaction.category == default_category and source.category:
        transaction.category = source.category
        enriched = True
    if is_auto_note(transaction.notes) and source.notes:
        transaction.notes = source.notes
        enriched = True
    return enriched


def batch_enrich(
    transactions: Iterable[Transaction],
    history: Iterable[Transaction] = (),
    notes: Optional[Dict[str, MerchantNote]] = None,
    default_category: str = DEFAULT_CATEGORY,
) -> int:
    """Enrich each transaction; returns how many were changed."""
    history = list(history)
    count = 0
    for transaction in transactions:
        if enrich_transaction(transaction, history, notes, default_category):
            count += 1
    return count
