"""
CSV Parser

Reads uploaded CSV and Excel bytes with Polars and turns the frame into a
Dataset. CSV encoding is sniffed with chardet; columns named like dates are
converted when most of their values parse with one of the known date formats.
"""

import io
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import chardet
import polars as pl

from config import get_settings
from core.logging_config import data_logger as logger
from core.models import DATE_FORMATS, ColumnType, Dataset, new_dataset_id, utcnow

ENCODING_SAMPLE_BYTES = 100 * 1024
DATE_COLUMN_HINTS = ("date", "time", "day", "timestamp", "created", "updated")
# share of a column that must parse before it is converted to dates
DATE_PARSE_RATIO = 0.5
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")


class EmptyCSVError(ValueError):
    """The upload parsed to zero data rows."""


class UnreadableSpreadsheetError(ValueError):
    """The upload is not a workbook the Excel reader can open."""


class CSVParser:
    """Polars-backed CSV and Excel reader producing Datasets."""

    NUMERIC_TYPES = {
        pl.Int8, pl.Int16, pl.Int32, pl.Int64,
        pl.UInt8, pl.UInt16, pl.UInt32, pl.UInt64,
        pl.Float32, pl.Float64,
    }

    def __init__(self):
        self.settings = get_settings()

    def detect_encoding(self, data: bytes) -> str:
        """chardet's guess over the first 100KB, utf-8 when it has none."""
        guess = chardet.detect(data[:ENCODING_SAMPLE_BYTES])
        return guess.get("encoding") or "utf-8"

    def decode(self, data: bytes) -> str:
        """Bytes to text in the detected encoding; latin-1 accepts anything else."""
        try:
            return data.decode(self.detect_encoding(data))
        except (UnicodeDecodeError, LookupError):
            return data.decode("latin-1")

    def parse_bytes(self, data: bytes, infer_schema_length: int = 10000) -> pl.DataFrame:
        df = pl.read_csv(
            io.StringIO(self.decode(data)),
            infer_schema_length=infer_schema_length,
            try_parse_dates=True,
            ignore_errors=True,
            truncate_ragged_lines=True,
        )
        return self.convert_date_columns(df)

    def parse_file(self, file_path: Union[str, Path]) -> pl.DataFrame:
        path = Path(file_path)
        if is_spreadsheet(path.name):
            return self.parse_excel(path.read_bytes())
        return self.parse_bytes(path.read_bytes())

    def parse_excel(self, data: bytes) -> pl.DataFrame:
        """
        First worksheet of an Excel workbook, read through openpyxl.

        Raises:
            UnreadableSpreadsheetError: not a workbook openpyxl can load
        """
        try:
            df = pl.read_excel(io.BytesIO(data), engine="openpyxl")
        except pl.exceptions.NoDataError:
            return pl.DataFrame()
        except Exception as e:
            raise UnreadableSpreadsheetError(f"Could not read spreadsheet: {e}") from e
        return self.convert_date_columns(df)

    def convert_date_columns(self, df: pl.DataFrame) -> pl.DataFrame:
        """Convert string columns with date-like names that Polars left as text."""
        for column in df.columns:
            if df[column].dtype != pl.String:
                continue
            if not any(hint in column.lower() for hint in DATE_COLUMN_HINTS):
                continue

            for fmt in DATE_FORMATS:
                try:
                    parsed = df[column].str.to_date(fmt, strict=False)
                except pl.exceptions.PolarsError:
                    continue
                if parsed.null_count() < len(df) * DATE_PARSE_RATIO:
                    df = df.with_columns(parsed.alias(column))
                    logger.debug(f"Column {column} read as dates ({fmt})")
                    break

        return df

    def column_type(self, dtype: pl.DataType) -> ColumnType:
        if dtype in self.NUMERIC_TYPES:
            return ColumnType.NUMBER
        if dtype == pl.Boolean:
            return ColumnType.BOOLEAN
        return ColumnType.STRING

    def to_dataset(
        self,
        df: pl.DataFrame,
        name: str,
        created_at: Optional[datetime] = None,
        dataset_id: Optional[str] = None,
    ) -> Dataset:
        """Dataset with the frame's column order and Polars-derived column types."""
        return Dataset.from_rows(
            name=name,
            rows=list(df.iter_rows(named=True)),
            columns=list(df.columns),
            column_types={column: self.column_type(df[column].dtype) for column in df.columns},
            created_at=created_at or utcnow(),
            dataset_id=dataset_id or new_dataset_id(),
        )

    def load(self, data: bytes, name: str) -> Dataset:
        """
        Parse an uploaded CSV or Excel file into a Dataset.

        Raises:
            EmptyCSVError: no data rows
            UnreadableSpreadsheetError: an Excel upload that cannot be opened
        """
        df = self.parse_excel(data) if is_spreadsheet(name) else self.parse_bytes(data)
        if df.height == 0:
            raise EmptyCSVError("No valid data rows found in file")

        dataset = self.to_dataset(df, name)
        logger.info(f"Parsed {name}: {df.height} rows, {df.width} columns")
        return dataset


def is_spreadsheet(name: str) -> bool:
    return name.lower().endswith(SPREADSHEET_EXTENSIONS)


# Global instance
csv_parser = CSVParser()
