"""Tests for regex suggestions."""

import re

from moneyminder.pattern_suggest import GENERIC_AMOUNT_PATTERN, suggest_patterns_from_sms


SAMPLE = "Rs.500 spent at Big Bazaar on 12-05-2024"


def _all_patterns(suggestions):
    return (
        suggestions.amount_patterns
        + suggestions.merchant_patterns
        + suggestions.merchant_cleaning_patterns
    )


class TestSuggestPatterns:
    """Tests for suggest_patterns_from_sms()."""

    def test_amount_suggestions(self):
        suggestions = suggest_patterns_from_sms(SAMPLE)
        assert r'(?:Rs|INR|₹)\.?\s*([\d,.]+)' in suggestions.amount_patterns
        assert suggestions.amount_patterns[-1] == GENERIC_AMOUNT_PATTERN

    def test_merchant_suggestions_capture_merchant(self):
        """At least one merchant suggestion captures the merchant."""
        suggestions = suggest_patterns_from_sms(SAMPLE)
        captured = set()
        for pattern in suggestions.merchant_patterns:
            match = re.search(pattern, SAMPLE, re.IGNORECASE)
            if match:
                captured.add(match.group(1))
        assert "Big Bazaar" in captured

    def test_cleaning_suggestions(self):
        suggestions = suggest_patterns_from_sms(SAMPLE)
        assert r'^(.+?)\s+on\s+\d+' in suggestions.merchant_cleaning_patterns

    def test_every_suggestion_compiles_with_one_group(self):
        suggestions = suggest_patterns_from_sms(
            "Amount: INR 1,200.00 debited to VPA shop@ybl via UPI on 01/02/24. Ref 123. Avl bal Rs 50"
        )
        for pattern in _all_patterns(suggestions):
            assert re.compile(pattern).groups == 1, pattern

    def test_no_duplicates(self):
        suggestions = suggest_patterns_from_sms("Rs 100 paid to Shop at Mall in City on 1-1-24")
        for patterns in (suggestions.amount_patterns, suggestions.merchant_patterns,
                         suggestions.merchant_cleaning_patterns):
            assert len(patterns) == len(set(patterns))

    def test_vpa_merchant(self):
        suggestions = suggest_patterns_from_sms("Rs 100 debited to VPA shop@ybl")
        assert r'to\s+VPA\s+(.+?)@' in suggestions.merchant_patterns

    def test_empty_text_only_generic_amount(self):
        suggestions = suggest_patterns_from_sms("")
        assert suggestions.amount_patterns == [GENERIC_AMOUNT_PATTERN]
        assert suggestions.merchant_patterns == []
        assert suggestions.merchant_cleaning_patterns == []

    def test_to_dict(self):
        data = suggest_patterns_from_sms(SAMPLE).to_dict()
        assert set(data) == {"amountPatterns", "merchantPatterns", "merchantCleaningPatterns"}
