"""Tests for GridParser."""

from __future__ import annotations

from hrrecon.ingest.grid_parser import GridParser
from hrrecon.models.fields import SourceGrammar

GRID_EXPORT = "\n".join([
    "STAFF MASTER LISTING,,,,,,,,",
    "Employee No.,,,AB12,,Name,,,AHMAD BIN ALI",
    "Department,,,,,Mobile,,,0123456789",
    "I/C No. (New),,,830211-14-5678,,Birth Date,,,11/02/1983",
    "E-Mail,,,,ali@example.com,,,,",
    "Resign Date,,,/ /,,Current Basic,,,\"RM 3,500.00\"",
    "Bank Code/ Branch,,,MBB/KL,,Bank Account No,,,1234567890",
    "Favourite Colour,,,BLUE,,,,,",
    "Fixed Allowance / Deduction,,,,,,,,",
    "1,T.ALLOW,TRAVELLING ALLOWANCE,,,,200.00,,,MONTHLY,1/2024,,,12/2024",
    "2,,,,,,,,",
    "Employee No.,,,,,Name,,,GHOST",
    "Department,,,HR,,,,,",
    "Employee No.,,,AB13,,Name,,,SITI AMINAH",
    "Department,,,FINANCE,,,,,",
])


def _parse(text: str = GRID_EXPORT):
    return GridParser().parse(text, "LTCM", "LTCM_staff.csv")


class TestRecordBoundaries:
    def test_one_fragment_per_identified_record(self):
        result = _parse()
        assert [f.employee_no for f in result.fragments] == ["AB12", "AB13"]
        assert result.stats.records == 2

    def test_boundary_without_identity_dropped(self):
        result = _parse()
        assert result.stats.dropped_records == 1
        assert result.stats.discarded_lines == 2  # title row and the GHOST department row
        assert all(f.field_map.get("name") != "GHOST" for f in result.fragments)

    def test_lines_before_first_record_counted(self):
        text = "STAFF MASTER LISTING,,,,\nPrinted 01/02/2024,,,,\n,,,,\nEmployee No.,,,AB12,,Name,,,ALI\n"
        result = _parse(text)
        assert result.stats.discarded_lines == 2
        assert result.stats.dropped_records == 0
        assert [f.employee_no for f in result.fragments] == ["AB12"]

    def test_fragment_carries_origin(self):
        fragment = _parse().fragments[0]
        assert fragment.organization_code == "LTCM"
        assert fragment.source_grammar == SourceGrammar.GRID
        assert fragment.source_file == "LTCM_staff.csv"


class TestFieldExtraction:
    def test_label_value_pairs(self):
        fields = _parse().fragments[0].field_map
        assert fields["name"] == "AHMAD BIN ALI"
        assert fields["mobile"] == "0123456789"
        assert fields["ic_new"] == "830211-14-5678"
        assert fields["birth_date"] == "11/02/1983"

    def test_empty_and_placeholder_values_skipped(self):
        fields = _parse().fragments[0].field_map
        assert "department" not in fields
        assert "resign_date" not in fields

    def test_shifted_email_column(self):
        assert _parse().fragments[0].field_map["email"] == "ali@example.com"

    def test_currency_marker_stripped(self):
        assert _parse().fragments[0].field_map["current_basic"] == "3500.00"

    def test_bank_code_branch_split(self):
        fields = _parse().fragments[0].field_map
        assert fields["bank_code"] == "MBB"
        assert fields["bank_branch"] == "KL"
        assert fields["bank_account_no"] == "1234567890"

    def test_unrecognized_labels_reported(self):
        assert _parse().stats.unrecognized_labels == ["Favourite Colour"]

    def test_fields_do_not_leak_between_records(self):
        second = _parse().fragments[1].field_map
        assert second == {"name": "SITI AMINAH", "department": "FINANCE"}


class TestLineItems:
    def test_line_item_columns(self):
        items = _parse().fragments[0].line_items
        assert len(items) == 1
        item = items[0]
        assert item.code == "T.ALLOW"
        assert item.description == "TRAVELLING ALLOWANCE"
        assert item.amount == "200.00"
        assert item.period == "MONTHLY"
        assert item.start == "1/2024"
        assert item.end == "12/2024"

    def test_row_without_code_is_malformed(self):
        malformed = _parse().stats.malformed_lines
        assert len(malformed) == 1
        assert malformed[0].line_no == 11
        assert malformed[0].source_file == "LTCM_staff.csv"


class TestDeterminism:
    def test_same_input_same_fragments(self):
        assert _parse().fragments == _parse().fragments

    def test_no_state_between_calls(self):
        parser = GridParser()
        first = parser.parse(GRID_EXPORT, "LTCM", "a.csv")
        parser.parse("Employee No.,,,ZZ9,,Name,,,OTHER", "LTCM", "b.csv")
        again = parser.parse(GRID_EXPORT, "LTCM", "a.csv")
        assert first == again


class TestParseFile:
    def test_legacy_code_page_fallback(self, tmp_path):
        path = tmp_path / "LTCM_staff.csv"
        path.write_bytes(b"Employee No.,,,AB12,,Name,,,JOS\xc9\n")
        result = GridParser().parse_file(path, "LTCM")
        assert result.fragments[0].field_map["name"] == "JOSÉ"
        assert result.stats.source_file == str(path)
