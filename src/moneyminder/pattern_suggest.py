"""
Regex suggestions for authoring new parser rules.

Given one sample message, propose candidate patterns for the amount, the
merchant and merchant cleanup. The output is advisory: it is shown to the
user when creating a rule and is never used when matching messages.
"""

import re
from dataclasses import dataclass, field
from typing import List, Tuple

# (detector, suggestion): the suggestion is offered when the detector finds its shape
AMOUNT_SUGGESTIONS: List[Tuple[str, str]] = [
    (r'Amount:?\s*(?:Rs|INR|₹)', r'Amount:?\s*(?:Rs|INR|₹)\.?\s*([\d,]+\.?\d*)'),
    (r'(?:\b(?:Rs|INR)|₹)\.?\s*\d', r'(?:Rs|INR|₹)\.?\s*([\d,.]+)'),
    (r'\b(?:debited|spent|paid|credited)\s+(?:by|with|for|of)?\s*(?:Rs|INR|₹)',
     r'(?:debited|spent|paid|credited)\s+(?:by|with|for|of)?\s*(?:Rs|INR|₹)\.?\s*([\d,]+\.?\d*)'),
    (r'\d\s*(?:INR|Rs)\b', r'([\d,]+\.?\d*)\s*(?:INR|Rs)\b'),
    (r'(?:USD|\$)\s*\d', r'(?:USD|\$)\s*([\d,]+\.?\d*)'),
]

GENERIC_AMOUNT_PATTERN = r'([\d,.]+)'

MERCHANT_KEYWORDS = ['at', 'to', 'in']

MERCHANT_SUGGESTIONS: List[Tuple[str, str]] = [
    (r'\bto\s+VPA\s+\S+@', r'to\s+VPA\s+(.+?)@'),
    (r'\bInfo:\s*\S', r'Info:\s*([^.\n]+)'),
    (r'\bmerchant:\s*\S', r'merchant:\s*([^.,\n]+)'),
]

CLEANING_SUGGESTIONS: List[Tuple[str, str]] = [
    (r'\bon\s+\d{1,2}[-/][A-Za-z0-9]{1,9}', r'^(.+?)\s+on\s+\d+'),
    (r'\bon\s+[\w\s]+', r'^(.+?)\s+on\s+.+'),
    (r'\bvia\s+\S', r'^(.+?)\s+via\s+'),
    (r'\b(?:Ref|UPI Ref|Ref No)\b', r'^(.+?)\s+(?:UPI\s+)?Ref\b'),
    (r'\bAvl\b', r'^(.+?)\s+Avl\b'),
]


@dataclass
class PatternSuggestions:
    """Candidate regexes for a new parser rule."""

    amount_patterns: List[str] = field(default_factory=list)
    merchant_patterns: List[str] = field(default_factory=list)
    merchant_cleaning_patterns: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'amountPatterns': list(self.amount_patterns),
            'merchantPatterns': list(self.merchant_patterns),
            'merchantCleaningPatterns': list(self.merchant_cleaning_patterns),
        }


def _dedupe(patterns: List[str]) -> List[str]:
    seen = set()
    unique = []
    for pattern in patterns:
        if pattern not in seen:
            seen.add(pattern)
            unique.append(pattern)
    return unique


def suggest_patterns_from_sms(text: str) -> PatternSuggestions:
    """Suggest amount, merchant and merchant-cleaning regexes for a message.

    Each suggested pattern has exactly one capture group, so it can be pasted
    straight into a rule's amountRegex / merchantCondition /
    merchantCommonPatterns list.
    """
    text = text or ''
    amount_patterns: List[str] = []
    merchant_patterns: List[str] = []
    cleaning_patterns: List[str] = []

    for detector, suggestion in AMOUNT_SUGGESTIONS:
        if re.search(detector, text, re.IGNORECASE):
            amount_patterns.append(suggestion)
    amount_patterns.append(GENERIC_AMOUNT_PATTERN)

    for detector, suggestion in MERCHANT_SUGGESTIONS:
        if re.search(detector, text, re.IGNORECASE):
            merchant_patterns.append(suggestion)

    for keyword in MERCHANT_KEYWORDS:
        # Merchant runs until "on <date>", "via", or punctuation
        if re.search(rf'\b{keyword}\s+[^.,\n]+?(?:\s+on\b|\s+via\b|[.,]|$)', text, re.IGNORECASE):
            merchant_patterns.append(rf'\b{keyword}\s+(.+?)(?:\s+on\b|\s+via\b|[.,\n]|$)')
        # Capitalised word run, e.g. "at Big Bazaar"
        if re.search(rf'\b{keyword}\s+[A-Z][A-Za-z0-9&\'-]*', text):
            merchant_patterns.append(rf"\b{keyword}\s+([A-Z][A-Za-z0-9&'-]*(?:\s+[A-Z][A-Za-z0-9&'-]*)*)")

    if re.search(r'\b(?:at|to|in)\b', text, re.IGNORECASE):
        merchant_patterns.append(r'\b(?:at|to|in)\s+([^\s.,]+(?:\s+[^\s.,]+)?)')

    for detector, suggestion in CLEANING_SUGGESTIONS:
        if re.search(detector, text, re.IGNORECASE):
            cleaning_patterns.append(suggestion)

    return PatternSuggestions(
        amount_patterns=_dedupe(amount_patterns),
        merchant_patterns=_dedupe(merchant_patterns),
        merchant_cleaning_patterns=_dedupe(cleaning_patterns),
    )
