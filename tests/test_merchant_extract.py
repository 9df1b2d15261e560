"""Tests for marker-based and heuristic merchant extraction."""

import pytest

from moneyminder.merchant_extract import (
    DEFAULT_MERCHANT,
    MerchantExtraction,
    clean_merchant_name,
    extract_merchant_advanced,
    extract_merchant_name,
    is_amount,
    is_card_number,
    is_date,
    learn_markers,
    merchant_from_sender,
    try_merchant_extractions,
)


class TestExtractMerchantName:
    """Tests for extract_merchant_name()."""

    def test_between_markers(self):
        """Text between start and end marker is returned trimmed."""
        text = "Rs.500 spent at Big Bazaar on 12-05-2024"
        assert extract_merchant_name(text, "at", "on") == "Big Bazaar"

    def test_markers_are_case_insensitive(self):
        assert extract_merchant_name("SPENT AT SHOP ON 1", "at", "on") == "SHOP"

    def test_start_index_selects_occurrence(self):
        """start_index picks the Nth occurrence of the start marker."""
        text = "Paid to Alice to Bob on 1"
        assert extract_merchant_name(text, "to", "on", 1) == "Alice to Bob"
        assert extract_merchant_name(text, "to", "on", 2) == "Bob"

    def test_start_index_beyond_occurrences_is_empty(self):
        """Asking for more occurrences than exist gives '' rather than an error."""
        assert extract_merchant_name("spent at Shop", "at", None, 3) == ""

    def test_missing_start_marker_is_empty(self):
        assert extract_merchant_name("Rs.500 debited", "at", "on") == ""

    def test_no_start_marker_starts_at_beginning(self):
        assert extract_merchant_name("Hello World. More", None, ".") == "Hello World"

    def test_end_marker_not_found_runs_to_end(self):
        assert extract_merchant_name("spent at Shop", "at", "on") == "Shop"

    def test_empty_window(self):
        assert extract_merchant_name("at on", "at", "on") == ""

    def test_empty_text(self):
        assert extract_merchant_name("", "at", "on") == ""

    def test_deterministic(self):
        """Same inputs always produce the same output."""
        text = "Rs.500 spent at Big Bazaar on 12-05-2024"
        results = {extract_merchant_name(text, "at", "on", 1) for _ in range(5)}
        assert results == {"Big Bazaar"}


class TestTryMerchantExtractions:
    """Tests for try_merchant_extractions()."""

    def test_first_non_empty_wins(self):
        extractions = [
            {"startText": "via", "endText": "."},
            {"startText": "at", "endText": "on"},
        ]
        assert try_merchant_extractions("Rs.5 spent at Cafe on 1", extractions) == "Cafe"

    def test_accepts_extraction_objects(self):
        extractions = [MerchantExtraction(start_text="to", end_text="on")]
        assert try_merchant_extractions("Rs 250 paid to ZOMATO on 13-05", extractions) == "ZOMATO"

    def test_nothing_found(self):
        assert try_merchant_extractions("Rs.5 debited", [{"startText": "at"}]) == ""
        assert try_merchant_extractions("Rs.5 spent at Cafe", None) == ""


class TestMerchantExtraction:
    """Tests for the MerchantExtraction dataclass."""

    def test_from_dict_accepts_both_key_styles(self):
        camel = MerchantExtraction.from_dict({"startText": "at", "endText": "on", "startIndex": 2})
        snake = MerchantExtraction.from_dict({"start_text": "at", "end_text": "on", "start_index": 2})
        assert camel == snake == MerchantExtraction("at", "on", 2)

    def test_start_index_clamped(self):
        assert MerchantExtraction.from_dict({"startText": "at", "startIndex": "0"}).start_index == 1
        assert MerchantExtraction.from_dict({"startText": "at", "startIndex": "x"}).start_index == 1

    def test_placeholder(self):
        assert MerchantExtraction().is_placeholder
        assert not MerchantExtraction(end_text=".").is_placeholder

    def test_to_dict(self):
        assert MerchantExtraction("at", "on", 1).to_dict() == {
            "startText": "at", "endText": "on", "startIndex": 1,
        }


class TestCleaning:
    """Tests for candidate cleaning and validation helpers."""

    def test_strips_trailing_date_and_connector(self):
        assert clean_merchant_name("Big Bazaar on 12-05-2024") == "Big Bazaar"

    def test_strips_trailing_card_number(self):
        assert clean_merchant_name("SWIGGY XX1234") == "SWIGGY"

    def test_strips_trailing_amount(self):
        assert clean_merchant_name("AMAZON PAY Rs 500") == "AMAZON PAY"

    def test_cuts_at_boilerplate(self):
        assert clean_merchant_name("XYZ Mart Avl Bal") == "XYZ Mart"

    def test_validators(self):
        assert is_date("12-May-2024")
        assert is_date("2024-05-12")
        assert is_amount("Rs.1,200.50")
        assert is_amount("500 INR")
        assert is_card_number("XX1234")
        assert not is_amount("7-Eleven")
        assert not is_date("Big Bazaar")


class TestExtractMerchantAdvanced:
    """Tests for extract_merchant_advanced()."""

    def test_stops_before_avl(self):
        result = extract_merchant_advanced("Rs.200 debited at XYZ Mart Avl Bal 500")
        assert result.merchant == "XYZ Mart"
        assert result.found

    def test_pick_last_is_default(self):
        text = "Rs.100 sent to Ramesh. Paid at Big Store."
        result = extract_merchant_advanced(text)
        assert result.merchant == "Big Store"
        assert result.candidates == ["Ramesh", "Big Store"]

    def test_pick_first(self):
        text = "Rs.100 sent to Ramesh. Paid at Big Store."
        assert extract_merchant_advanced(text, pick="first").merchant == "Ramesh"

    def test_pick_callable(self):
        text = "Rs.100 sent to Ramesh. Paid at Big Store."
        result = extract_merchant_advanced(text, pick=lambda candidates: candidates[0])
        assert result.merchant == "Ramesh"

    def test_unknown_pick_policy(self):
        with pytest.raises(ValueError):
            extract_merchant_advanced("Rs.100 sent to Ramesh.", pick="longest")

    def test_to_extraction_reproduces_window(self):
        """Freezing the winner gives markers that carve out the same text."""
        text = "Rs.100 sent to Ramesh. Paid at Big Store."
        extraction = extract_merchant_advanced(text).to_extraction()
        assert extraction == MerchantExtraction("at", ".", 1)
        assert extract_merchant_name(text, extraction.start_text, extraction.end_text,
                                     extraction.start_index) == "Big Store"

    def test_markers_respect_word_boundaries(self):
        """'at' inside 'Kathmandu' is not a marker; 'spent at' and 'at' both are."""
        result = extract_merchant_advanced("Spent at Kathmandu Cafe")
        assert result.candidates == ["Kathmandu Cafe", "Kathmandu Cafe"]

    def test_repeated_candidates_are_all_listed(self):
        result = extract_merchant_advanced("Paid to Ramesh. Refund to Ramesh.")
        assert result.candidates == ["Ramesh", "Ramesh"]
        assert result.merchant == "Ramesh"
        assert result.start_index == 2

    def test_confirmed_merchants_teach_markers(self):
        text = "Txn of INR 250 with ACME Corp. Thank you"
        assert extract_merchant_advanced(text).merchant == DEFAULT_MERCHANT
        result = extract_merchant_advanced(text, confirmed_merchants=["ACME Corp"])
        assert result.merchant == "ACME Corp"
        assert result.start_text == "with"

    def test_learn_markers(self):
        assert learn_markers("Txn of INR 250 with ACME Corp.", ["acme corp"]) == ["with"]
        assert learn_markers("ACME Corp charged you", ["ACME Corp"]) == []

    def test_keyword_fallback(self):
        result = extract_merchant_advanced("AMAZON PAY Rs 500 Balance: 2000")
        assert result.merchant == "AMAZON PAY"
        assert result.candidates == ["AMAZON PAY"]

    def test_nothing_found(self):
        result = extract_merchant_advanced("Rs.500 debited")
        assert result.merchant == DEFAULT_MERCHANT
        assert result.candidates == []
        assert not result.found
        assert result.to_extraction() is None

    def test_empty_text(self):
        assert extract_merchant_advanced("").merchant == DEFAULT_MERCHANT


class TestMerchantFromSender:
    """Tests for merchant_from_sender()."""

    def test_display_name(self):
        assert merchant_from_sender("Amazon.in <auto-confirm@amazon.in>") == "Amazon.in"
        assert merchant_from_sender('"Uber Receipts" <noreply@uber.com>') == "Uber Receipts"

    def test_bare_address_uses_domain(self):
        assert merchant_from_sender("orders@swiggy.in") == "Swiggy"
        assert merchant_from_sender("<billing@netflix.com>") == "Netflix"

    def test_sms_header_gives_default(self):
        assert merchant_from_sender("VM-HDFCBK") == DEFAULT_MERCHANT
        assert merchant_from_sender("") == DEFAULT_MERCHANT
        assert merchant_from_sender(None, default="Unknown") == "Unknown"
