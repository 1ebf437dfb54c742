"""
API Response Schemas

Pydantic models for API responses and the insights they carry.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from core.models import Domain


def convert_numpy(obj: Any) -> Any:
    """Convert numpy types to Python native types."""
    if obj is None:
        return None
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [convert_numpy(v) for v in obj]
    return obj


class Priority(str, Enum):
    """Insight importance level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_WEIGHTS = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class ChartType(str, Enum):
    LINE = "line"
    BAR = "bar"
    PIE = "pie"
    SCATTER = "scatter"
    AREA = "area"


class AIInsightType(str, Enum):
    """Kinds of rule-based pattern insights."""

    TREND = "trend"
    PATTERN = "pattern"
    RECOMMENDATION = "recommendation"
    CORRELATION = "correlation"


class Insight(BaseModel):
    """
    A single domain insight.

    Immutable: consumers may sort or filter insights but never edit them.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique insight ID")
    type: Domain = Field(..., description="Domain the insight belongs to")
    category: str = Field(..., description="summary, trend, performance, savings, metrics, ...")
    title: str = Field(..., description="Brief insight title")
    description: str = Field(..., description="Detailed description")
    confidence: float = Field(..., ge=0, le=1)
    priority: Priority
    recommendation: Optional[str] = None
    related_metrics: list[str] = Field(default=[], description="Related columns or metrics")
    trend: Optional[str] = Field(default=None, pattern="^(increasing|decreasing|stable)$")
    value: dict[str, Any] = Field(default={}, description="Supporting values")

    @field_serializer('value')
    @classmethod
    def serialize_value(cls, v: Any) -> Any:
        """Convert numpy types to Python native types."""
        return convert_numpy(v)


class ChartSuggestion(BaseModel):
    """Chart the client may render; the data follows a labels/datasets layout."""

    model_config = ConfigDict(frozen=True)

    type: ChartType
    title: str
    description: str
    data: dict[str, Any] = {}
    priority: Priority

    @field_serializer('data')
    @classmethod
    def serialize_data(cls, v: Any) -> Any:
        return convert_numpy(v)


class AIInsight(BaseModel):
    """Rule-based pattern insight for one dataset."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: AIInsightType
    title: str
    description: str
    explanation: str = ""
    confidence: float = Field(..., ge=0, le=1)
    priority: Priority
    actionable: bool = True
    action_items: list[str] = []
    related_metrics: list[str] = []
    timeframe: Optional[str] = None
    impact: Optional[str] = Field(default=None, pattern="^(positive|negative|neutral)$")


class AIVisualization(BaseModel):
    """Chart idea derived from a dataset's column mix."""

    type: ChartType
    title: str
    description: str
    insights: list[str] = []


class AnalyticsSummary(BaseModel):
    total_datasets: int
    total_records: int
    domains: dict[str, int] = {}
    last_updated: datetime


class AnalyticsResponse(BaseModel):
    """Full analytics over every stored dataset."""

    summary: AnalyticsSummary
    insights: list[Insight] = []
    cross_dataset_insights: list[dict[str, Any]] = []
    correlations: list[dict[str, Any]] = []
    recommendations: list[str] = []
    charts: list[ChartSuggestion] = []
    metrics: dict[str, Any] = {}
    ai_insights: list[AIInsight] = []
    ai_summary: str = ""


class MetricsResponse(BaseModel):
    """Aggregated metrics across all datasets."""

    domain_metrics: list[dict[str, Any]] = []
    cross_domain: dict[str, Any] = {}
    summary: dict[str, Any] = {}


class DatasetInfo(BaseModel):
    """Dataset listing entry."""

    id: str
    name: str
    columns: list[str]
    column_types: dict[str, str]
    upload_date: datetime
    row_count: int


class DatasetDetail(DatasetInfo):
    """Dataset with its classification and a row sample."""

    domain: Domain
    domain_confidence: float
    indicators: list[str] = []
    sample: list[dict[str, Any]] = []


class UploadResponse(BaseModel):
    """File upload response."""

    dataset_id: str
    filename: str
    row_count: int
    column_count: int
    columns: list[str]
    column_types: dict[str, str]
    sample: list[dict[str, Any]] = []
    message: str


class TextEntryResponse(BaseModel):
    """Processed text entry."""

    dataset_id: str
    domain: Domain
    metrics: dict[str, float] = {}
    entities: dict[str, list[str]] = {}
    sentiment: str
    confidence: float
    insights: list[str] = []
    recommendations: list[str] = []
    ai_response: str


class QueryResponse(BaseModel):
    """Rows matching a query, newest upload first."""

    data: list[dict[str, Any]] = []
    total_rows: int
    query: str


class UploadDateRange(BaseModel):
    start: str = ""
    end: str = ""


class DataSummary(BaseModel):
    """What is stored, before any analysis."""

    total_files: int
    total_rows: int
    date_range: UploadDateRange
    columns: list[str] = []


class HealthResponse(BaseModel):
    status: str
    version: str
    ollama_available: bool
    datasets: int


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None
