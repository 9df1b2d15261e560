"""
Merchant name extraction for bank SMS and e-mail alerts.

Two modes are supported:

- Marker extraction: the merchant is the text between a start marker and an
  end marker, e.g. ``at`` ... ``on`` in "Rs.500 spent at Big Bazaar on 12-05".
  Parser rules list these marker pairs in ``merchant_extractions``.
- Advanced extraction: no rule is available, so markers are guessed from a
  small lexicon plus merchants the user already confirmed. Every plausible
  candidate is collected and one is picked by a configurable policy.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

DEFAULT_MERCHANT = 'Unknown Merchant'

# Words that usually precede the merchant in bank alerts
DEFAULT_MARKERS = ['on', 'at', 'from', 'towards', 'to', 'via', 'merchant:', 'spent at']

# When no marker works, the merchant is often everything before these
FALLBACK_KEYWORDS = ['Limit:', 'Balance:', 'Avl']

# Boilerplate that ends a merchant name (anything after is dropped)
BOILERPLATE_KEYWORDS = ['Avl', 'Limit:', 'Balance:']

MIN_MERCHANT_LENGTH = 3

_CANDIDATE_END_RE = re.compile(r'[.,:\n]')

_DATE_BODY = (
    r'\d{1,2}-[A-Za-z]{3}-\d{2,4}'
    r'|\d{1,2}-\d{1,2}-\d{2,4}'
    r'|\d{4}-\d{2}-\d{2}'
    r'|\d{1,2}/\d{1,2}/\d{2,4}'
)
_TRAILING_DATE_RE = re.compile(r'\s+(?:' + _DATE_BODY + r')$')
_TRAILING_AMOUNT_RE = re.compile(
    r'\s+(?:(?:INR|USD|EUR|Rs\.?)\s*)?\d[\d,]*(?:\.\d+)?\s*(?:INR|USD|EUR)?$', re.IGNORECASE
)
_TRAILING_CARD_RE = re.compile(r'\s+XX\d{4}$', re.IGNORECASE)
_TRAILING_CONNECTOR_RE = re.compile(r'\s+(?:on|at|to|via|from|towards|for|by)$', re.IGNORECASE)
_EDGE_PUNCTUATION_RE = re.compile(r'^[\s:.,-]+|[\s:.,-]+$')

_DATE_RE = re.compile(r'(?:' + _DATE_BODY + r')')
_AMOUNT_RE = re.compile(
    r'(?:(?:INR|USD|EUR|Rs\.?)\s*)?\d[\d,]*(?:\.\d+)?\s*(?:INR|USD|EUR)?', re.IGNORECASE
)
_CARD_RE = re.compile(r'(?:[A-Za-z/]+\s*)?XX\d{4}', re.IGNORECASE)


@dataclass
class MerchantExtraction:
    """A (start, end) marker pair plus which occurrence of the start marker to use."""

    start_text: str = ''
    end_text: str = ''
    start_index: int = 1  # 1-based occurrence of start_text

    @property
    def is_placeholder(self) -> bool:
        """True when neither marker is set (extracts nothing useful)."""
        return not self.start_text and not self.end_text

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'MerchantExtraction':
        """Build from a mapping using either camelCase or snake_case keys."""
        start_text = data.get('startText', data.get('start_text')) or ''
        end_text = data.get('endText', data.get('end_text')) or ''
        raw_index = data.get('startIndex', data.get('start_index'))
        try:
            start_index = int(raw_index) if raw_index not in (None, '') else 1
        except (TypeError, ValueError):
            start_index = 1
        return cls(start_text=str(start_text), end_text=str(end_text), start_index=max(start_index, 1))

    def to_dict(self) -> dict:
        return {
            'startText': self.start_text,
            'endText': self.end_text,
            'startIndex': self.start_index,
        }


ExtractionLike = Union[MerchantExtraction, Mapping[str, Any]]


def extract_merchant_name(
    text: str,
    start_text: Optional[str] = None,
    end_text: Optional[str] = None,
    start_index: int = 1,
) -> str:
    """Extract the text between two markers.

    Args:
        text: Message content
        start_text: Start marker (case-insensitive). When omitted the window
            starts at the beginning of the text.
        end_text: End marker (case-insensitive). The first occurrence at or
            after the window start ends the window; when missing or not found
            the window runs to the end of the text.
        start_index: 1-based occurrence of start_text to use

    Returns:
        The trimmed window, or an empty string when start_text occurs fewer
        than start_index times or the window is empty.
    """
    if not text:
        return ''
    lower_text = text.lower()
    start = 0
    end = len(text)

    if start_text:
        marker = start_text.lower()
        idx = -1
        search_from = 0
        for _ in range(max(start_index, 1)):
            idx = lower_text.find(marker, search_from)
            if idx == -1:
                return ''
            search_from = idx + len(marker)
        start = idx + len(marker)

    if end_text:
        end_idx = lower_text.find(end_text.lower(), start)
        if end_idx != -1:
            end = end_idx

    if start >= end:
        return ''
    return text[start:end].strip()


def try_merchant_extractions(text: str, extractions: Optional[Iterable[ExtractionLike]]) -> str:
    """Return the first non-empty result of the extractions, in list order."""
    if not text or not extractions:
        return ''
    for extraction in extractions:
        if not isinstance(extraction, MerchantExtraction):
            extraction = MerchantExtraction.from_dict(extraction)
        merchant = extract_merchant_name(
            text, extraction.start_text, extraction.end_text, extraction.start_index or 1
        )
        if merchant:
            return merchant
    return ''


def merchant_from_sender(sender: Optional[str], default: str = DEFAULT_MERCHANT) -> str:
    """Merchant name from an e-mail sender address.

    "Amazon.in <auto-confirm@amazon.in>" gives the display name; a bare
    address gives its capitalised domain ("orders@swiggy.in" -> "Swiggy").
    SMS headers such as "VM-HDFCBK" carry neither and give default.
    """
    if not sender:
        return default
    display_name, bracket, _ = sender.partition('<')
    display_name = display_name.strip().strip('"').strip()
    if bracket and display_name:
        return display_name
    if '@' in sender:
        domain = sender.split('@', 1)[1].split('.')[0].strip(' >')
        if domain:
            return domain[0].upper() + domain[1:]
    return default


# =============================================================================
# Advanced (heuristic) extraction
# =============================================================================

@dataclass
class MerchantCandidate:
    """A merchant candidate found after a marker."""

    merchant: str
    start_text: str
    end_text: str
    start_index: int
    position: int  # Offset in the text where the candidate starts


@dataclass
class AdvancedExtraction:
    """Result of extract_merchant_advanced()."""

    merchant: str = DEFAULT_MERCHANT
    candidates: List[str] = field(default_factory=list)
    start_text: str = ''
    end_text: str = ''
    start_index: int = 1

    @property
    def found(self) -> bool:
        return bool(self.candidates) and self.merchant != DEFAULT_MERCHANT

    def to_extraction(self) -> Optional[MerchantExtraction]:
        """Freeze the winning markers into an explicit rule extraction."""
        if not self.found:
            return None
        return MerchantExtraction(
            start_text=self.start_text,
            end_text=self.end_text,
            start_index=self.start_index,
        )


PickPolicy = Union[str, Callable[[Sequence[MerchantCandidate]], MerchantCandidate]]


def clean_merchant_name(merchant: str) -> str:
    """Strip trailing dates, amounts, card numbers and bank boilerplate."""
    m = merchant.strip()
    m = _TRAILING_DATE_RE.sub('', m)
    m = _TRAILING_AMOUNT_RE.sub('', m)
    m = _TRAILING_CARD_RE.sub('', m)
    for keyword in BOILERPLATE_KEYWORDS:
        idx = m.find(keyword)
        if idx != -1:
            m = m[:idx].strip()
    m = _EDGE_PUNCTUATION_RE.sub('', m)
    m = _TRAILING_CONNECTOR_RE.sub('', m)
    return _EDGE_PUNCTUATION_RE.sub('', m)


def is_date(value: str) -> bool:
    return bool(_DATE_RE.fullmatch(value.strip()))


def is_amount(value: str) -> bool:
    return bool(_AMOUNT_RE.fullmatch(value.strip()))


def is_card_number(value: str) -> bool:
    return bool(_CARD_RE.fullmatch(value.strip()))


def _is_valid_candidate(value: str) -> bool:
    return (
        len(value) >= MIN_MERCHANT_LENGTH
        and not is_date(value)
        and not is_amount(value)
        and not is_card_number(value)
    )


def learn_markers(text: str, confirmed_merchants: Optional[Iterable[str]]) -> List[str]:
    """Return the word right before each confirmed merchant found in text."""
    learned: List[str] = []
    if not confirmed_merchants:
        return learned
    lower_text = text.lower()
    for merchant in confirmed_merchants:
        if not merchant:
            continue
        idx = lower_text.find(merchant.lower())
        if idx <= 0:
            continue
        words = text[max(0, idx - 10):idx].split()
        if words and words[-1] not in learned:
            learned.append(words[-1])
    return learned


def _marker_regex(marker: str):
    # Word-like marker edges must sit on word boundaries ("at" never matches "Mart")
    prefix = r'(?<!\w)' if re.match(r'\w', marker[0]) else ''
    suffix = r'(?!\w)' if re.match(r'\w', marker[-1]) else ''
    return re.compile(prefix + re.escape(marker) + suffix, re.IGNORECASE)


def _occurrence_index(lower_text: str, marker: str, position: int) -> int:
    """1-based index of the plain substring occurrence of marker at position."""
    marker = marker.lower()
    count = 0
    idx = lower_text.find(marker)
    while idx != -1 and idx <= position:
        count += 1
        if idx == position:
            break
        idx = lower_text.find(marker, idx + len(marker))
    return max(count, 1)


def find_merchant_candidates(text: str, markers: Sequence[str]) -> List[MerchantCandidate]:
    """Collect every valid candidate after every occurrence of every marker.

    Candidates are returned ordered by their position in the text.
    """
    candidates: List[MerchantCandidate] = []
    lower_text = text.lower()
    for marker in markers:
        for match in _marker_regex(marker).finditer(text):
            start = match.end()
            while start < len(text) and text[start] in ' :':
                start += 1
            end_match = _CANDIDATE_END_RE.search(text, start)
            end = end_match.start() if end_match else len(text)
            cleaned = clean_merchant_name(text[start:end])
            if not _is_valid_candidate(cleaned):
                continue
            candidates.append(MerchantCandidate(
                merchant=cleaned,
                start_text=marker,
                end_text=text[end] if end < len(text) else '',
                start_index=_occurrence_index(lower_text, marker, match.start()),
                position=start,
            ))
    candidates.sort(key=lambda c: c.position)
    return candidates


def _pick_candidate(candidates: Sequence[MerchantCandidate], pick: PickPolicy) -> MerchantCandidate:
    if callable(pick):
        return pick(candidates)
    if pick == 'last':
        return candidates[-1]
    if pick == 'first':
        return candidates[0]
    raise ValueError(f"Unknown merchant pick policy: {pick!r} (use 'last', 'first' or a callable)")


def extract_merchant_advanced(
    text: str,
    confirmed_merchants: Optional[Iterable[str]] = None,
    pick: PickPolicy = 'last',
) -> AdvancedExtraction:
    """Guess the merchant in a message without a parser rule.

    Args:
        text: Message content
        confirmed_merchants: Merchant names the user confirmed before. The
            word preceding each one in ``text`` is used as an extra marker.
        pick: 'last' (default) picks the candidate latest in the text, since
            bank alerts tend to open with a preamble; 'first' picks the
            earliest; a callable receives the ordered candidates.

    Returns:
        AdvancedExtraction with the merchant (DEFAULT_MERCHANT when nothing
        plausible is found), every candidate in text order (a name found
        after two overlapping markers such as "spent at" and "at" is listed
        twice) and the markers that produced the winner.
    """
    if not text:
        return AdvancedExtraction()

    markers: List[str] = []
    for marker in learn_markers(text, confirmed_merchants) + DEFAULT_MARKERS:
        if marker and marker.lower() not in [m.lower() for m in markers]:
            markers.append(marker)

    candidates = find_merchant_candidates(text, markers)
    if candidates:
        best = _pick_candidate(candidates, pick)
        return AdvancedExtraction(
            merchant=best.merchant,
            candidates=[c.merchant for c in candidates],
            start_text=best.start_text,
            end_text=best.end_text,
            start_index=best.start_index,
        )

    for keyword in FALLBACK_KEYWORDS:
        idx = text.find(keyword)
        if idx <= 0:
            continue
        candidate = clean_merchant_name(text[:idx])
        if _is_valid_candidate(candidate):
            return AdvancedExtraction(
                merchant=candidate,
                candidates=[candidate],
                start_text='',
                end_text=keyword,
                start_index=1,
            )

    return AdvancedExtraction()
