"""
API Request Schemas

Pydantic models for API request validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TextEntryRequest(BaseModel):
    """Free-text entry."""

    text: str = Field(
        ...,
        description="Free-form note, e.g. '2 goals, 2 assists. 7 miles.'"
    )
    name: str = Field(
        default="text_input.txt",
        max_length=255,
        description="Name of the stored text-entry dataset"
    )


class DateRange(BaseModel):
    """Inclusive upload-date bounds; either side may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None


class QueryFilters(BaseModel):
    date_range: Optional[DateRange] = None
    file_name: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the dataset name"
    )


class QueryRequest(BaseModel):
    """Row query over every stored dataset."""

    query: str = Field(default="", description="Free-form query label, echoed back")
    filters: Optional[QueryFilters] = None
