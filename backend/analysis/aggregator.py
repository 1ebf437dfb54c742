"""
Metric Aggregator

Running totals, averages and trends per (domain, metric) across every
ingested record.

An aggregator is a plain value owned by one analysis run. It is rebuilt from
the full dataset list on every run, so concurrent runs never share state.
"""

import json
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from analysis.correlations import CorrelationResult, Strength, correlation_engine
from analysis.domain_classifier import DomainClassification, domain_classifier, is_text_entry_dataset
from config import get_settings
from core.logging_config import data_logger as logger
from core.models import ColumnType, Dataset, Domain, Number, Record, as_number, as_text, parse_date, utcnow


# Canonical metric vocabularies probed on tabular datasets of these domains
CANONICAL_METRICS = {
    Domain.SPORTS: [
        "goals", "assists", "points", "score", "distance", "time", "speed",
        "shots", "passes", "tackles", "saves", "wins", "losses",
    ],
    Domain.FINANCIAL: [
        "amount", "cost", "price", "expense", "income", "budget", "savings",
        "spending", "revenue", "profit", "loss",
    ],
    Domain.HEALTH: [
        "weight", "calories", "steps", "heart_rate", "blood_pressure",
        "exercise_time", "sleep_hours", "water_intake",
    ],
}

# Text-entry columns that are never ingested as metrics
RESERVED_TEXT_ENTRY_COLUMNS = {"confidence"}


@dataclass
class HistoryPoint:
    date: datetime
    value: float
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value, "source": self.source}


@dataclass
class MetricAggregation:
    """Running aggregate of one metric within one domain."""

    domain: Domain
    metric: str
    total: float = 0.0
    count: int = 0
    average: float = 0.0
    min: float = math.inf
    max: float = -math.inf
    trend: str = "stable"  # increasing, decreasing, stable
    last_updated: Optional[datetime] = None
    history: list[HistoryPoint] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.domain.value}:{self.metric}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain.value,
            "metric": self.metric,
            "total": round(self.total, 4),
            "count": self.count,
            "average": round(self.average, 4),
            "min": self.min if self.count else None,
            "max": self.max if self.count else None,
            "trend": self.trend,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "history": [h.to_dict() for h in self.history],
        }


@dataclass
class DomainMetrics:
    """Aggregations of one domain and the time range they cover."""

    domain: Domain
    metrics: dict[str, MetricAggregation]
    total_entries: int
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain.value,
            "metrics": {name: m.to_dict() for name, m in self.metrics.items()},
            "total_entries": self.total_entries,
            "time_range": {"start": self.start.isoformat(), "end": self.end.isoformat()},
        }


@dataclass
class CrossDomainAnalysis:
    correlations: list[CorrelationResult] = field(default_factory=list)
    combined_insights: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "correlations": [c.to_dict() for c in self.correlations],
            "combined_insights": self.combined_insights,
            "recommendations": self.recommendations,
        }


@dataclass
class MetricsReport:
    """Output of a full aggregation pass."""

    domain_metrics: list[DomainMetrics]
    cross_domain: CrossDomainAnalysis
    summary: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain_metrics": [dm.to_dict() for dm in self.domain_metrics],
            "cross_domain": self.cross_domain.to_dict(),
            "summary": self.summary,
        }

    @classmethod
    def empty(cls) -> "MetricsReport":
        return cls(
            domain_metrics=[],
            cross_domain=CrossDomainAnalysis(),
            summary={
                "total_metrics": 0,
                "total_entries": 0,
                "domains": [],
                "last_updated": utcnow().isoformat(),
            },
        )


def _is_usable(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _count(value: float) -> str:
    """Thousands-separated number, without a trailing .0."""
    return f"{int(value):,}" if float(value).is_integer() else f"{value:,}"


class MetricAggregator:
    """
    Per-run metric registry.

    Aggregations are keyed by `domain:metric` and kept in insertion order.
    """

    def __init__(self):
        self.settings = get_settings()
        self._registry: dict[str, MetricAggregation] = {}

    @classmethod
    def build(
        cls,
        datasets: list[Dataset],
        classifications: Optional[dict[str, DomainClassification]] = None,
    ) -> "MetricAggregator":
        """
        Rebuild an aggregator from scratch over every dataset.

        Datasets without a supplied classification are classified here.
        """
        aggregator = cls()
        classifications = classifications or {}

        for dataset in datasets:
            classification = classifications.get(dataset.id)
            if classification is None:
                classification = classify_dataset(dataset)
            aggregator.ingest_dataset(dataset, classification)

        logger.info(f"Aggregated {len(aggregator)} metrics from {len(datasets)} datasets")
        return aggregator

    def __len__(self) -> int:
        return len(self._registry)

    def ingest(
        self,
        metric: str,
        value: Any,
        domain: Domain,
        timestamp: datetime,
        source_id: str,
    ) -> None:
        """
        Record one metric value.

        Non-numeric, NaN, infinite and non-positive values are skipped.
        """
        if not _is_usable(value):
            return

        value = float(value)
        key = f"{domain.value}:{metric}"
        aggregation = self._registry.get(key)
        if aggregation is None:
            aggregation = MetricAggregation(domain=domain, metric=metric)
            self._registry[key] = aggregation

        aggregation.total += value
        aggregation.count += 1
        aggregation.average = aggregation.total / aggregation.count
        aggregation.min = min(aggregation.min, value)
        aggregation.max = max(aggregation.max, value)
        aggregation.last_updated = timestamp
        aggregation.history.append(HistoryPoint(date=timestamp, value=value, source=source_id))

        if len(aggregation.history) >= 3:
            aggregation.trend = self._trend(aggregation.history)

    def _trend(self, history: list[HistoryPoint]) -> str:
        """Compare the mean of the last two points with the two before it."""
        first, middle, last = (p.value for p in history[-3:])
        earlier = (first + middle) / 2
        recent = (middle + last) / 2
        ratio = self.settings.analysis.trend_change_ratio

        if recent > earlier * (1 + ratio):
            return "increasing"
        if recent < earlier * (1 - ratio):
            return "decreasing"
        return "stable"

    def snapshot(self) -> list[MetricAggregation]:
        """Copies of every aggregation, in insertion order."""
        return [replace(a, history=list(a.history)) for a in self._registry.values()]

    def get(self, domain: Domain, metric: str) -> Optional[MetricAggregation]:
        return self._registry.get(f"{domain.value}:{metric}")

    # =========================================================================
    # DATASET INGESTION
    # =========================================================================

    def ingest_dataset(self, dataset: Dataset, classification: DomainClassification) -> None:
        if is_text_entry_dataset(dataset.columns):
            self._ingest_text_entries(dataset)
        else:
            self._ingest_tabular(dataset, classification.type)

    def _ingest_text_entries(self, dataset: Dataset) -> None:
        for row in dataset.rows:
            domain = Domain.parse(as_text(row.get("domain")) or "general")
            timestamp = parse_date(row.get("timestamp")) or dataset.created_at

            raw_metrics = as_text(row.get("metrics"))
            if raw_metrics:
                try:
                    metrics = json.loads(raw_metrics)
                except json.JSONDecodeError as e:
                    logger.warning(f"Unreadable metrics in {dataset.name}: {e}")
                    metrics = {}
                if isinstance(metrics, dict):
                    for metric, value in metrics.items():
                        self.ingest(str(metric), value, domain, timestamp, dataset.name)

            for column in dataset.columns:
                if column in RESERVED_TEXT_ENTRY_COLUMNS:
                    continue
                if dataset.column_type(column) == ColumnType.NUMBER:
                    self.ingest(column, as_number(row.get(column)), domain, timestamp, dataset.name)

    def _ingest_tabular(self, dataset: Dataset, domain: Domain) -> None:
        numeric_columns = dataset.numeric_columns()
        vocabulary = CANONICAL_METRICS.get(domain, [])
        with_aliases = self.settings.analysis.canonical_alias_ingestion

        for row in dataset.rows:
            timestamp = dataset.created_at

            for column in numeric_columns:
                self.ingest(column, as_number(row.get(column)), domain, timestamp, dataset.name)

            if not with_aliases:
                continue

            # The same value may land twice: under its column and its canonical alias
            for metric in vocabulary:
                value = canonical_value(row, dataset.columns, metric)
                if value is not None:
                    self.ingest(metric, value, domain, timestamp, dataset.name)

    # =========================================================================
    # DOMAIN VIEW
    # =========================================================================

    def domain_metrics(self) -> list[DomainMetrics]:
        """Aggregations grouped by domain, domains in first-seen order."""
        groups: dict[Domain, list[MetricAggregation]] = {}
        for aggregation in self.snapshot():
            groups.setdefault(aggregation.domain, []).append(aggregation)

        result = []
        for domain, aggregations in groups.items():
            dates = [h.date for a in aggregations for h in a.history]
            result.append(DomainMetrics(
                domain=domain,
                metrics={a.metric: a for a in aggregations},
                total_entries=sum(a.count for a in aggregations),
                start=min(dates),
                end=max(dates),
            ))
        return result

    def analyze_cross_domain(
        self,
        domain_metrics: Optional[list[DomainMetrics]] = None,
    ) -> CrossDomainAnalysis:
        """Metric correlations, combined totals and follow-up recommendations."""
        if domain_metrics is None:
            domain_metrics = self.domain_metrics()

        aggregations = [a for dm in domain_metrics for a in dm.metrics.values()]
        correlations = correlation_engine.correlate_metrics(aggregations)

        return CrossDomainAnalysis(
            correlations=correlations,
            combined_insights=self._combined_insights(domain_metrics),
            recommendations=self._recommendations(domain_metrics, correlations),
        )

    def _combined_insights(self, domain_metrics: list[DomainMetrics]) -> list[str]:
        by_domain = {dm.domain: dm.metrics for dm in domain_metrics}
        insights = []

        def total(domain: Domain, metric: str) -> float:
            aggregation = by_domain.get(domain, {}).get(metric)
            return aggregation.total if aggregation else 0.0

        goals = total(Domain.SPORTS, "goals")
        assists = total(Domain.SPORTS, "assists")
        if goals > 0:
            insights.append(f"Total goals scored: {as_text(Number(goals))}")
        if assists > 0:
            insights.append(f"Total assists: {as_text(Number(assists))}")

        spending = total(Domain.FINANCIAL, "amount")
        savings = total(Domain.FINANCIAL, "savings")
        if spending > 0:
            insights.append(f"Total spending: ${spending:.2f}")
        if savings > 0:
            insights.append(f"Total savings: ${savings:.2f}")

        steps = total(Domain.HEALTH, "steps")
        calories = total(Domain.HEALTH, "calories")
        if steps > 0:
            insights.append(f"Total steps: {_count(steps)}")
        if calories > 0:
            insights.append(f"Total calories burned: {_count(calories)}")

        return insights

    def _recommendations(
        self,
        domain_metrics: list[DomainMetrics],
        correlations: list[CorrelationResult],
    ) -> list[str]:
        recommendations = []

        for dm in domain_metrics:
            if dm.domain == Domain.SPORTS:
                goals = dm.metrics.get("goals")
                if goals and goals.trend == "decreasing":
                    recommendations.append("Focus on improving goal-scoring performance")
            elif dm.domain == Domain.FINANCIAL:
                spending = dm.metrics.get("amount")
                if spending and spending.trend == "increasing":
                    recommendations.append(
                        "Consider reviewing spending patterns to identify savings opportunities"
                    )
            elif dm.domain == Domain.HEALTH:
                steps = dm.metrics.get("steps")
                if steps and steps.trend == "decreasing":
                    recommendations.append("Try to increase daily step count for better health")

        if any(c.strength == Strength.STRONG for c in correlations):
            recommendations.append(
                "Some metrics show strong correlations - consider analyzing these relationships further"
            )

        return recommendations[: self.settings.analysis.max_recommendations]

    def report(self) -> MetricsReport:
        """Domain view, cross-domain pass and summary in one report."""
        domain_metrics = self.domain_metrics()
        return MetricsReport(
            domain_metrics=domain_metrics,
            cross_domain=self.analyze_cross_domain(domain_metrics),
            summary={
                "total_metrics": sum(len(dm.metrics) for dm in domain_metrics),
                "total_entries": sum(dm.total_entries for dm in domain_metrics),
                "domains": [dm.domain.value for dm in domain_metrics],
                "last_updated": utcnow().isoformat(),
            },
        )


def canonical_value(row: Record, columns: list[str], metric: str) -> Optional[float]:
    """
    Value of a canonical metric in a row.

    An exact column name wins; otherwise the first column whose lowercased
    name contains the metric name is used.
    """
    if row.raw_fields and metric in row.raw_fields:
        value = as_number(row.get(metric))
        if value is not None:
            return value

    for column in columns:
        if metric.lower() in column.lower():
            return as_number(row.get(column))
    return None


def classify_dataset(dataset: Dataset) -> DomainClassification:
    """Metadata path for text entries, column and value rules otherwise."""
    if is_text_entry_dataset(dataset.columns):
        first_row = dataset.rows[0] if dataset.rows else None
        return domain_classifier.classify_from_metadata(first_row)
    return domain_classifier.classify(
        dataset.columns,
        dataset.column_types,
        dataset.sample(domain_classifier.settings.analysis.sample_rows),
    )
