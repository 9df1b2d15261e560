"""
Message and value parsing - amounts, dates and message CSV files.

This module handles the plain-text plumbing around the rule engine: turning
captured amount/date strings into numbers and datetimes, and loading
exported SMS/e-mail messages from CSV.
"""

import csv
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

_CURRENCY_RE = re.compile(r'[$€£¥₹]|\b(?:Rs|INR|USD|EUR|GBP)\b\.?', re.IGNORECASE)

# Formats seen in Indian bank alerts first, then ISO/US fallbacks
DATE_FORMATS = [
    '%d-%m-%Y',
    '%d-%m-%y',
    '%d/%m/%Y',
    '%d/%m/%y',
    '%d-%b-%Y',
    '%d-%b-%y',
    '%d %b %Y',
    '%d %b %y',
    '%d%b%y',
    '%d%b%Y',
    '%d.%m.%Y',
    '%d.%m.%y',
    '%Y-%m-%d',
    '%Y/%m/%d',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%d-%m-%Y %H:%M:%S',
    '%d-%m-%Y %H:%M',
    '%b %d, %Y',
]

BODY_COLUMNS = ('body', 'message', 'text', 'content')
SENDER_COLUMNS = ('sender', 'address', 'from', 'source')
DATE_COLUMNS = ('date', 'received_at', 'timestamp', 'time')
ID_COLUMNS = ('id', 'message_id', 'messageid')
SUBJECT_COLUMNS = ('subject', 'title')


@dataclass
class SmsMessage:
    """One raw message to be scanned."""

    body: str
    sender: str = ''
    date: Optional[datetime] = None
    id: str = ''
    subject: str = ''  # E-mail subject line; empty for SMS


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC; naive values pass through.

    All dates handled by moneyminder are naive so that dates from different
    sources can be compared and sorted together.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_amount(amount_str, decimal_separator='.'):
    """Parse an amount string to float, handling various formats.

    Args:
        amount_str: String like "1,234.56", "Rs.1,234.56", "1.234,56" or "(100.00)"
        decimal_separator: Character used as decimal separator ('.' or ',')

    Returns:
        Float value of the amount

    Raises:
        ValueError: if no number can be read from the string
    """
    amount_str = amount_str.strip()

    # Handle parentheses notation for negative: (100.00) -> -100.00
    negative = False
    if amount_str.startswith('(') and amount_str.endswith(')'):
        negative = True
        amount_str = amount_str[1:-1]

    amount_str = _CURRENCY_RE.sub('', amount_str).strip()

    if decimal_separator == ',':
        amount_str = amount_str.replace('.', '').replace(' ', '')
        amount_str = amount_str.replace(',', '.')
    else:
        amount_str = amount_str.replace(',', '')

    # Captures like "500." come from greedy [\d,.]+ groups at sentence end
    amount_str = amount_str.strip('.').strip()
    if not amount_str:
        raise ValueError('No amount found')

    result = float(amount_str)
    return -result if negative else result


def parse_message_date(value) -> Optional[datetime]:
    """Parse a date string from a message or CSV column, or None if unreadable.

    Dates carrying a UTC offset are converted to naive UTC (see to_naive_utc).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    text = str(value).strip().rstrip('.,')
    if not text:
        return None
    if text.endswith(('Z', 'z')):
        # fromisoformat() only accepts the Z suffix from Python 3.11
        text = text[:-1] + '+00:00'
    try:
        return to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _pick_column(fieldnames, candidates):
    lookup = {name.strip().lower(): name for name in fieldnames if name}
    for candidate in candidates:
        if candidate in lookup:
            return lookup[candidate]
    return None


def load_messages_csv(filepath) -> List[SmsMessage]:
    """Load messages from a CSV export.

    The file needs a body column (body/message/text/content); sender, date,
    id and subject columns are optional. Rows with an empty body are skipped.

    Raises:
        ValueError: if the file has no recognisable body column
    """
    messages = []
    with open(filepath, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or []
        body_col = _pick_column(fieldnames, BODY_COLUMNS)
        if body_col is None:
            raise ValueError(
                f"{filepath}: no message body column found "
                f"(expected one of: {', '.join(BODY_COLUMNS)})"
            )
        sender_col = _pick_column(fieldnames, SENDER_COLUMNS)
        date_col = _pick_column(fieldnames, DATE_COLUMNS)
        id_col = _pick_column(fieldnames, ID_COLUMNS)
        subject_col = _pick_column(fieldnames, SUBJECT_COLUMNS)

        for row in reader:
            body = (row.get(body_col) or '').strip()
            if not body:
                continue
            messages.append(SmsMessage(
                body=body,
                sender=(row.get(sender_col) or '').strip() if sender_col else '',
                date=parse_message_date(row.get(date_col)) if date_col else None,
                id=(row.get(id_col) or '').strip() if id_col else '',
                subject=(row.get(subject_col) or '').strip() if subject_col else '',
            ))
    return messages
