"""
Test CSV Parser

Parsing uploads with Polars and converting frames to datasets.
"""

import polars as pl
import pytest

from core.csv_parser import CSVParser, EmptyCSVError, UnreadableSpreadsheetError
from core.models import ColumnType, Null, Number, Text

SEASON = b"""date,goals,assists,opponent
2024-01-01,1,0,Rovers
2024-01-08,2,1,United
2024-01-15,0,2,City
2024-01-22,3,1,Rovers
2024-01-29,1,1,Athletic"""


@pytest.fixture
def parser():
    return CSVParser()


class TestParsing:
    def test_columns_and_rows(self, parser):
        df = parser.parse_bytes(SEASON)

        assert df.height == 5
        assert df.columns == ["date", "goals", "assists", "opponent"]
        assert df["goals"].dtype == pl.Int64

    def test_parse_file(self, parser, tmp_path):
        path = tmp_path / "season.csv"
        path.write_bytes(SEASON)

        assert parser.parse_file(path).height == 5

    def test_missing_cells(self, parser):
        df = parser.parse_bytes(b"a,b\n1,x\n,y\n3,\n")

        assert df["a"].null_count() == 1
        assert df["b"].null_count() == 1

    def test_quoted_fields(self, parser):
        df = parser.parse_bytes(b'name,note\n"Doe, J","said ""hi"""\nAnn,ok\n')

        assert df["name"].to_list() == ["Doe, J", "Ann"]

    def test_us_dates_in_named_column(self, parser):
        df = parser.parse_bytes(b"match_day,goals\n01/15/2024,1\n01/22/2024,2\n")

        assert df["match_day"].dtype == pl.Date


class TestDecoding:
    def test_ascii(self, parser):
        assert parser.decode(b"goals,assists\n1,2\n") == "goals,assists\n1,2\n"

    def test_undecodable_bytes_fall_back(self, parser):
        assert isinstance(parser.decode(b"\xff\xfe\xfa,\x81"), str)

    def test_empty_input_defaults(self, parser):
        assert parser.detect_encoding(b"") == "utf-8"


class TestLoad:
    def test_dataset_schema(self, parser):
        dataset = parser.load(SEASON, "season.csv")

        assert dataset.name == "season.csv"
        assert len(dataset.id) == 16
        assert dataset.column_types == {
            "date": ColumnType.STRING,
            "goals": ColumnType.NUMBER,
            "assists": ColumnType.NUMBER,
            "opponent": ColumnType.STRING,
        }

    def test_rows_hold_scalars(self, parser):
        dataset = parser.load(SEASON, "season.csv")
        first = dataset.rows[0]

        assert first.get("goals") == Number(1.0)
        assert first.get("opponent") == Text("Rovers")
        assert first.get("date") == Text("2024-01-01")
        assert first.get("missing") == Null()
        assert {row.dataset_id for row in dataset.rows} == {dataset.id}

    def test_header_only(self, parser):
        with pytest.raises(EmptyCSVError):
            parser.load(b"a,b\n", "empty.csv")

    def test_each_load_gets_its_own_id(self, parser):
        assert parser.load(SEASON, "a.csv").id != parser.load(SEASON, "a.csv").id


class TestExcel:
    ROWS = [
        ["date", "goals", "assists", "opponent"],
        ["2024-01-01", 1, 0, "Rovers"],
        ["2024-01-08", 2, 1, "United"],
        ["2024-01-15", 0, 2, "City"],
    ]

    def test_load_workbook(self, parser, make_workbook):
        dataset = parser.load(make_workbook(self.ROWS), "season.xlsx")

        assert dataset.name == "season.xlsx"
        assert dataset.columns == ["date", "goals", "assists", "opponent"]
        assert dataset.column_types["goals"] == ColumnType.NUMBER
        assert dataset.column_types["opponent"] == ColumnType.STRING
        assert len(dataset.rows) == 3
        assert dataset.rows[1].get("goals") == Number(2.0)

    def test_parse_file(self, parser, make_workbook, tmp_path):
        path = tmp_path / "season.xlsx"
        path.write_bytes(make_workbook(self.ROWS))

        assert parser.parse_file(path).height == 3

    def test_extension_is_case_insensitive(self, parser, make_workbook):
        assert len(parser.load(make_workbook(self.ROWS), "SEASON.XLSX").rows) == 3

    def test_not_a_workbook(self, parser):
        with pytest.raises(UnreadableSpreadsheetError):
            parser.load(b"date,goals\n2024-01-01,1\n", "season.xlsx")

    def test_header_only(self, parser, make_workbook):
        with pytest.raises(EmptyCSVError):
            parser.load(make_workbook([["date", "goals"]]), "empty.xlsx")
