"""Tests for transaction enrichment from merchant notes and history."""

from datetime import datetime, timedelta, timezone

from moneyminder.enricher import (
    AUTO_NOTE_MARKER,
    MerchantNote,
    batch_enrich,
    enrich_transaction,
    index_merchant_notes,
    previous_transaction_data,
)
from moneyminder.rule_engine import Transaction


def txn(merchant="Swiggy", category="other", notes="", date=None):
    return Transaction(amount=100.0, merchant_name=merchant, category=category, notes=notes, date=date)


class TestPreviousTransactionData:
    """Tests for previous_transaction_data()."""

    def test_most_recent_wins(self):
        history = [
            txn(category="food", notes="old", date=datetime(2024, 1, 1)),
            txn(category="dining", notes="new", date=datetime(2024, 3, 1)),
            txn(category="undated"),
        ]
        data = previous_transaction_data("SWIGGY", history)
        assert (data.category, data.notes) == ("dining", "new")

    def test_offset_and_naive_dates_compare(self):
        """An offset-aware date is compared on UTC with naive ones."""
        history = [
            txn(category="food", notes="naive", date=datetime(2024, 3, 1, 9, 0)),
            txn(category="dining", notes="aware", date=datetime(2024, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=5)))),
        ]
        data = previous_transaction_data("Swiggy", history)
        assert data.notes == "naive"

    def test_auto_notes_ignored(self):
        history = [txn(category="food", notes=f"{AUTO_NOTE_MARKER} (HDFC)", date=datetime(2024, 1, 1))]
        assert previous_transaction_data("Swiggy", history) is None

    def test_no_merchant(self):
        assert previous_transaction_data("", [txn()]) is None


class TestEnrichTransaction:
    """Tests for enrich_transaction()."""

    def test_from_history(self):
        target = txn()
        assert enrich_transaction(target, [txn(category="food", notes="lunch")])
        assert (target.category, target.notes) == ("food", "lunch")

    def test_note_takes_precedence(self):
        notes = index_merchant_notes([MerchantNote(merchant_name="swiggy", category="treats", notes="")])
        target = txn()
        assert enrich_transaction(target, [txn(category="food", notes="lunch")], notes)
        assert target.category == "treats"
        assert target.notes == ""

    def test_auto_note_replaced(self):
        target = txn(notes=AUTO_NOTE_MARKER)
        enrich_transaction(target, [txn(category="food", notes="lunch")])
        assert target.notes == "lunch"

    def test_already_categorised_left_alone(self):
        target = txn(category="travel", notes="trip")
        assert not enrich_transaction(target, [txn(category="food", notes="lunch")])
        assert target.category == "travel"

    def test_nothing_known(self):
        assert not enrich_transaction(txn(merchant="Unknown Shop"), [txn()])

    def test_custom_default_category(self):
        target = txn(category="misc")
        assert enrich_transaction(target, [txn(category="food")], default_category="misc")
        assert target.category == "food"

    def test_batch(self):
        targets = [txn(), txn(merchant="Other")]
        assert batch_enrich(targets, [txn(category="food")]) == 1


class TestMerchantNote:
    """Tests for MerchantNote serialization."""

    def test_dict_round_trip(self):
        note = MerchantNote(merchant_name="Swiggy", category="food", notes="n", id="1",
                            date_added="a", last_updated="b")
        assert note.to_dict()["merchantName"] == "Swiggy"
        assert MerchantNote.from_dict(note.to_dict()) == note
