"""Tests for rule CSV/JSON import and export."""

import json

import pytest

from moneyminder.default_rules import DEFAULT_RULES
from moneyminder.rule_store import normalize_rule_data
from moneyminder.rules_io import (
    CSV_COLUMNS,
    ImportReport,
    export_rules_csv,
    export_rules_json,
    import_rules,
    import_rules_csv,
    import_rules_json,
    parse_rules_csv,
    rules_to_csv,
)

COMPARED_FIELDS = (
    'name', 'enabled', 'sender_match', 'amount_regex', 'merchant_condition',
    'merchant_common_patterns', 'merchant_extractions', 'skip_condition',
    'date_regex', 'payment_bank', 'priority', 'transaction_type',
    'subject_match', 'no_extract_condition', 'extract_merchant_from_subject',
)


@pytest.fixture
def rules():
    tricky = normalize_rule_data({
        "name": 'Quotes "and", commas',
        "enabled": False,
        "amountRegex": [r'Rs\.?\s*([\d,]+\.?\d*)', r'INR\s*([\d,]+)'],
        "skipCondition": ["OTP", "/offer, cashback/i"],
        "merchantExtractions": [
            {"startText": "at", "endText": "on", "startIndex": 1},
            {"startText": "to", "endText": ".", "startIndex": 2},
        ],
        "dateRegex": [r'on (\d{2}-\d{2}-\d{2,4})'],
        "subjectMatch": ["Order", ""],
        "noExtractCondition": ["statement is ready", ""],
        "extractMerchantFromSubject": True,
        "priority": 3,
        "transactionType": "income",
    })
    return [normalize_rule_data(r) for r in DEFAULT_RULES] + [tricky]


def assert_same_rules(actual, expected):
    assert len(actual) == len(expected)
    for a, e in zip(actual, expected):
        for field_name in COMPARED_FIELDS:
            assert getattr(a, field_name) == getattr(e, field_name), field_name


class TestCsv:
    """Tests for CSV import/export."""

    def test_header(self, rules):
        header = rules_to_csv(rules).splitlines()[0]
        assert header.split(',') == CSV_COLUMNS

    def test_round_trip(self, rules, tmp_path):
        path = tmp_path / "rules.csv"
        assert export_rules_csv(rules, path) == len(rules)
        report = import_rules_csv(path)
        assert report.skipped == 0
        assert report.duplicates == 0
        assert_same_rules(report.rules, rules)

    def test_lists_are_json_in_cells(self, rules):
        row = parse_rules_csv(rules_to_csv(rules[:1]))[0]
        assert json.loads(row["senderMatch"]) == ["HDFCBK", "HDFC-VM"]
        assert row["merchantStartText"] == "at"
        assert row["enabled"] == "true"

    def test_duplicates_and_nameless_rows(self, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text(
            "# exported rules\n"
            "name,senderMatch,amountRegex\n"
            'Existing,"[""A""]","[""(\\\\d+)""]"\n'
            ',"[""B""]","[]"\n'
            'New,"[""C""]","[]"\n'
            'New,"[""D""]","[]"\n',
            encoding="utf-8",
        )
        report = import_rules_csv(path, existing_names=["Existing"])
        assert [r.name for r in report.rules] == ["New"]
        assert report.rules[0].sender_match == ["C"]
        assert report.duplicates == 2
        assert report.skipped == 1
        assert report.summary() == "Imported 1 rules, skipped 1 invalid entries, ignored 2 duplicates"

    def test_legacy_columns(self, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text(
            "name,enabled,senderMatch,skipCondition,merchantStartText,merchantEndText,merchantStartIndex\n"
            "Old,TRUE,HDFCBK,\"OTP, offer\",at,on,1\n",
            encoding="utf-8",
        )
        rule = import_rules_csv(path).rules[0]
        assert rule.enabled is True
        assert rule.sender_match == ["HDFCBK"]
        assert rule.skip_condition == ["OTP", "offer"]
        assert [e.to_dict() for e in rule.merchant_extractions] == [
            {"startText": "at", "endText": "on", "startIndex": 1}
        ]
        assert rule.subject_match == []
        assert rule.extract_merchant_from_subject is False

    def test_blank_array_entries_survive(self, tmp_path):
        rule = normalize_rule_data({"name": "Blanks", "senderMatch": ["", "HDFCBK", " "]})
        path = tmp_path / "rules.csv"
        export_rules_csv([rule], path)
        assert import_rules_csv(path).rules[0].sender_match == ["", "HDFCBK", " "]

    def test_email_columns(self, rules):
        row = parse_rules_csv(rules_to_csv(rules[-1:]))[0]
        assert json.loads(row["subjectMatch"]) == ["Order", ""]
        assert json.loads(row["noExtractCondition"]) == ["statement is ready", ""]
        assert row["extractMerchantFromSubject"] == "true"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text("# nothing here\n", encoding="utf-8")
        with pytest.raises(ValueError):
            import_rules_csv(path)


class TestJson:
    """Tests for JSON import/export."""

    def test_round_trip(self, rules, tmp_path):
        path = tmp_path / "rules.json"
        export_rules_json(rules, path)
        report = import_rules_json(path)
        assert_same_rules(report.rules, rules)

    def test_store_fields_not_imported(self, rules, tmp_path):
        rules[0].id = "abc"
        rules[0].success_count = 9
        path = tmp_path / "rules.json"
        export_rules_json(rules, path)
        imported = import_rules_json(path).rules[0]
        assert imported.id == ""
        assert imported.success_count == 0

    def test_accepts_bare_list(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps([{"name": "A"}, {"priority": 1}, "junk"]), encoding="utf-8")
        report = import_rules_json(path)
        assert [r.name for r in report.rules] == ["A"]
        assert report.skipped == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            import_rules_json(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text('{"rules": 5}', encoding="utf-8")
        with pytest.raises(ValueError):
            import_rules_json(path)

    def test_import_rules_dispatches_on_extension(self, rules, tmp_path):
        export_rules_json(rules, tmp_path / "r.json")
        export_rules_csv(rules, tmp_path / "r.csv")
        assert import_rules(tmp_path / "r.json").imported == len(rules)
        assert import_rules(tmp_path / "r.csv").imported == len(rules)


class TestImportReport:
    """Tests for ImportReport."""

    def test_summary_without_problems(self):
        assert ImportReport().summary() == "Imported 0 rules"
