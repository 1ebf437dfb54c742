"""
Core Data Models

Records, datasets and the scalar values they carry.

Rows are heterogeneous key-value mappings, so each cell is wrapped in a
tagged scalar (Number, Text, Bool, Null) and every dataset carries an explicit
column schema. Extraction code dispatches on the scalar variant instead of
guessing at runtime types.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4


class Domain(str, Enum):
    """Coarse category assigned to a dataset or metric."""

    FINANCIAL = "financial"
    SPORTS = "sports"
    HEALTH = "health"
    PRODUCTIVITY = "productivity"
    FOOD = "food"
    HOME = "home"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Any) -> "Domain":
        """Domain for a stored label, `general` when unknown."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERAL


class ColumnType(str, Enum):
    """Declared type of a dataset column."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# =============================================================================
# SCALARS
# =============================================================================

@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Null:
    pass


Scalar = Union[Number, Text, Bool, Null]

NULL = Null()


def to_scalar(value: Any) -> Scalar:
    """Wrap a raw cell value in its scalar variant."""
    if value is None:
        return NULL
    if isinstance(value, (Number, Text, Bool, Null)):
        return value
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return Bool(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return NULL
        return Number(float(value))
    if isinstance(value, (datetime, date)):
        return Text(value.isoformat())
    return Text(str(value))


def scalar_to_python(scalar: Scalar) -> Any:
    """Unwrap a scalar for serialization."""
    if isinstance(scalar, Null):
        return None
    return scalar.value


def as_number(scalar: Scalar) -> Optional[float]:
    """
    Numeric reading of a scalar.

    Numbers are returned as is and text is parsed as a float. Booleans,
    nulls, unparseable text and NaN read as None.
    """
    if isinstance(scalar, Number):
        result = scalar.value
    elif isinstance(scalar, Text):
        try:
            result = float(scalar.value.strip())
        except ValueError:
            return None
    else:
        return None

    if math.isnan(result):
        return None
    return result


def as_text(scalar: Scalar) -> str:
    """String form of a scalar, empty for null."""
    if isinstance(scalar, Null):
        return ""
    if isinstance(scalar, Bool):
        return "true" if scalar.value else "false"
    if isinstance(scalar, Number):
        value = scalar.value
        return str(int(value)) if value.is_integer() else str(value)
    return scalar.value


# =============================================================================
# DATES
# =============================================================================

DATE_FORMATS = [
    "%m/%d/%Y",       # 01/15/2024
    "%d/%m/%Y",       # 15/01/2024
    "%Y-%m-%d",       # 2024-01-15
    "%Y/%m/%d",       # 2024/01/15
    "%m-%d-%Y",       # 01-15-2024
    "%d-%m-%Y",       # 15-01-2024
    "%B %d, %Y",      # January 15, 2024
    "%b %d, %Y",      # Jan 15, 2024
    "%d %B %Y",       # 15 January 2024
    "%d %b %Y",       # 15 Jan 2024
]


def _normalize(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a date-like value into a naive UTC datetime.

    Accepts datetime/date objects, Text scalars and strings in ISO 8601 or one
    of DATE_FORMATS. Numbers are never read as dates.
    """
    if isinstance(value, Text):
        value = value.value
    if isinstance(value, datetime):
        return _normalize(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    candidate = value.strip()
    if not candidate or candidate.replace(".", "", 1).lstrip("-").isdigit():
        return None

    try:
        return _normalize(datetime.fromisoformat(candidate.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    return None


def utcnow() -> datetime:
    """Current naive UTC time."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_dataset_id() -> str:
    """16 hex characters of a random UUID."""
    return uuid4().hex[:16]


# =============================================================================
# RECORDS AND DATASETS
# =============================================================================

@dataclass(frozen=True)
class Record:
    """One ingested unit: a tabular row or a free-text entry."""

    dataset_id: str
    timestamp: datetime
    raw_fields: Optional[dict[str, Scalar]] = None
    text: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    def get(self, column: str) -> Scalar:
        if not self.raw_fields:
            return NULL
        return self.raw_fields.get(column, NULL)

    def to_dict(self) -> dict[str, Any]:
        fields = self.raw_fields or {}
        return {name: scalar_to_python(value) for name, value in fields.items()}


@dataclass
class DatasetListing:
    """Dataset metadata as listed by the store, before rows are fetched."""

    id: str
    name: str
    columns: list[str]
    column_types: dict[str, ColumnType]
    upload_date: datetime
    row_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "columns": self.columns,
            "column_types": {k: v.value for k, v in self.column_types.items()},
            "upload_date": self.upload_date.isoformat(),
            "row_count": self.row_count,
        }


@dataclass
class Dataset:
    """A named collection of records with an explicit column schema."""

    id: str
    name: str
    columns: list[str]
    column_types: dict[str, ColumnType]
    rows: list[Record] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_rows(
        cls,
        name: str,
        rows: list[dict[str, Any]],
        columns: Optional[list[str]] = None,
        column_types: Optional[dict[str, ColumnType]] = None,
        created_at: Optional[datetime] = None,
        dataset_id: Optional[str] = None,
    ) -> "Dataset":
        """
        Build a dataset from plain row mappings.

        Column order defaults to first appearance and column types are
        inferred from the values when not given.
        """
        dataset_id = dataset_id or new_dataset_id()
        created_at = created_at or utcnow()

        if columns is None:
            columns = []
            for row in rows:
                for column in row:
                    if column not in columns:
                        columns.append(column)

        records = [
            Record(
                dataset_id=dataset_id,
                timestamp=created_at,
                raw_fields={col: to_scalar(row.get(col)) for col in columns},
            )
            for row in rows
        ]

        if column_types is None:
            column_types = {col: infer_column_type(r.get(col) for r in records) for col in columns}

        return cls(
            id=dataset_id,
            name=name,
            columns=list(columns),
            column_types=dict(column_types),
            rows=records,
            created_at=created_at,
        )

    def column_type(self, column: str) -> Optional[ColumnType]:
        return self.column_types.get(column)

    def numeric_columns(self) -> list[str]:
        return [c for c in self.columns if self.column_types.get(c) == ColumnType.NUMBER]

    def values(self, column: str) -> list[Scalar]:
        return [row.get(column) for row in self.rows]

    def numeric_values(self, column: str) -> list[float]:
        """Non-null numeric readings of a column, in row order."""
        result = []
        for scalar in self.values(column):
            number = as_number(scalar)
            if number is not None:
                result.append(number)
        return result

    def sample(self, n: int) -> list[Record]:
        return self.rows[:n]

    def listing(self) -> DatasetListing:
        return DatasetListing(
            id=self.id,
            name=self.name,
            columns=list(self.columns),
            column_types=dict(self.column_types),
            upload_date=self.created_at,
            row_count=len(self.rows),
        )


def infer_column_type(values) -> ColumnType:
    """Column type from its scalars: all numbers, all booleans, else string."""
    seen = [v for v in values if not isinstance(v, Null)]
    if not seen:
        return ColumnType.STRING
    if all(isinstance(v, Number) for v in seen):
        return ColumnType.NUMBER
    if all(isinstance(v, Bool) for v in seen):
        return ColumnType.BOOLEAN
    return ColumnType.STRING
