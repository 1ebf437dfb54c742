"""
Correlation Engine

Finds relationships between datasets and between aggregated metrics.

Every unordered pair of datasets goes through three independent strategies
(same-domain shared columns, aligned time series, shared columns) and a pair
may appear once per strategy. Shared-column vectors are compared position by
position after truncation to the shorter length, without any row alignment.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence

import numpy as np

from config import get_settings
from core.logging_config import insights_logger as logger
from core.models import ColumnType, Dataset, Domain, Record, as_number, parse_date

if TYPE_CHECKING:
    from analysis.aggregator import MetricAggregation


class CorrelationBasis(str, Enum):
    DOMAIN = "domain"
    COLUMN = "column"
    TIME = "time"
    METRIC = "metric"


class Strength(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


@dataclass(frozen=True)
class CorrelationResult:
    """Relationship between two datasets or two metrics."""

    entity_a: str
    entity_b: str
    shared_basis: CorrelationBasis
    coefficient: float  # signed, [-1, 1]
    strength: Strength
    description: str
    shared_columns: tuple[str, ...] = ()
    confidence: float = 0.0
    recommendation: Optional[str] = None
    domain: Optional[Domain] = None

    @property
    def magnitude(self) -> float:
        return abs(self.coefficient)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_a": self.entity_a,
            "entity_b": self.entity_b,
            "shared_basis": self.shared_basis.value,
            "coefficient": round(self.coefficient, 4),
            "strength": self.strength.value,
            "description": self.description,
            "shared_columns": list(self.shared_columns),
            "confidence": round(self.confidence, 4),
            "recommendation": self.recommendation,
            "domain": self.domain.value if self.domain else None,
        }


@dataclass
class DatasetMetadata:
    """A dataset with its rows and assigned domain."""

    id: str
    name: str
    domain: Domain
    columns: list[str]
    column_types: dict[str, ColumnType]
    rows: list[Record] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_dataset(cls, dataset: Dataset, domain: Domain) -> "DatasetMetadata":
        return cls(
            id=dataset.id,
            name=dataset.name,
            domain=domain,
            columns=list(dataset.columns),
            column_types=dict(dataset.column_types),
            rows=list(dataset.rows),
            created_at=dataset.created_at,
        )

    def is_numeric(self, column: str) -> bool:
        return self.column_types.get(column) == ColumnType.NUMBER

    def numeric_values(self, column: str) -> list[float]:
        values = (as_number(row.get(column)) for row in self.rows)
        return [v for v in values if v is not None]

    def has_column_containing(self, *keywords: str) -> bool:
        return any(k in col.lower() for col in self.columns for k in keywords)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation by the sums formula.

    Returns 0.0 for empty or mismatched input and when either side has no
    variance.
    """
    n = len(x)
    if n == 0 or n != len(y):
        return 0.0

    xs = np.asarray(x, dtype=np.float64)
    ys = np.asarray(y, dtype=np.float64)
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return 0.0

    sum_x = xs.sum()
    sum_y = ys.sum()
    numerator = n * np.dot(xs, ys) - sum_x * sum_y
    denominator = np.sqrt((n * np.dot(xs, xs) - sum_x ** 2) * (n * np.dot(ys, ys) - sum_y ** 2))

    if denominator == 0 or not np.isfinite(denominator):
        return 0.0
    return float(np.clip(numerator / denominator, -1.0, 1.0))


def dataset_strength(coefficient: float) -> Strength:
    magnitude = abs(coefficient)
    if magnitude > 0.7:
        return Strength.STRONG
    if magnitude > 0.4:
        return Strength.MODERATE
    return Strength.WEAK


def metric_strength(coefficient: float) -> Strength:
    magnitude = abs(coefficient)
    if magnitude > 0.7:
        return Strength.STRONG
    if magnitude > 0.5:
        return Strength.MODERATE
    return Strength.WEAK


class CorrelationEngine:
    """
    Cross-dataset correlation discovery.

    Strategies:
    - Same-domain shared columns (no threshold)
    - Time-aligned first numeric columns
    - Shared columns regardless of domain
    """

    def __init__(self):
        self.settings = get_settings()

    def correlate(self, datasets: list[DatasetMetadata]) -> list[CorrelationResult]:
        """
        Run every strategy over every unordered pair of datasets.

        Returns:
            Results sorted by |coefficient| descending, ties in discovery order
        """
        results: list[CorrelationResult] = []

        for i in range(len(datasets)):
            for j in range(i + 1, len(datasets)):
                first, second = datasets[i], datasets[j]

                if first.domain == second.domain:
                    same_domain = self.same_domain_correlation(first, second)
                    if same_domain:
                        results.append(same_domain)

                temporal = self.time_correlation(first, second)
                if temporal:
                    results.append(temporal)

                shared = self.shared_column_correlation(first, second)
                if shared:
                    results.append(shared)

        results.sort(key=lambda r: r.magnitude, reverse=True)
        logger.debug(f"Found {len(results)} dataset correlations across {len(datasets)} datasets")
        return results

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def same_domain_correlation(
        self,
        first: DatasetMetadata,
        second: DatasetMetadata,
    ) -> Optional[CorrelationResult]:
        if first.domain != second.domain:
            return None

        shared = self.shared_columns(first, second)
        coefficient = self._shared_column_coefficient(first, second, shared)
        if coefficient is None:
            return None

        strength = dataset_strength(coefficient)
        return CorrelationResult(
            entity_a=first.name,
            entity_b=second.name,
            shared_basis=CorrelationBasis.DOMAIN,
            coefficient=coefficient,
            strength=strength,
            description=(
                f"{first.name} and {second.name} show {strength.value} "
                f"correlation in {', '.join(shared)}"
            ),
            shared_columns=tuple(shared),
            confidence=min(abs(coefficient) * 1.2, 1.0),
            domain=first.domain,
        )

    def time_correlation(
        self,
        first: DatasetMetadata,
        second: DatasetMetadata,
    ) -> Optional[CorrelationResult]:
        """
        Correlate the first numeric column of each dataset over aligned dates.

        Absent (None) when either side lacks a date-like or numeric column,
        when fewer than the minimum pairs align, or when |r| is below the
        reporting threshold.
        """
        date_first = self.first_date_column(first)
        date_second = self.first_date_column(second)
        if date_first is None or date_second is None:
            return None

        numeric_first = next((c for c in first.columns if first.is_numeric(c)), None)
        numeric_second = next((c for c in second.columns if second.is_numeric(c)), None)
        if numeric_first is None or numeric_second is None:
            return None

        series_first = time_series(first.rows, date_first, numeric_first)
        series_second = time_series(second.rows, date_second, numeric_second)
        if not series_first or not series_second:
            return None

        aligned = align_time_series(
            series_first,
            series_second,
            timedelta(days=self.settings.analysis.time_alignment_days),
        )
        if len(aligned) < self.settings.analysis.min_aligned_points:
            return None

        coefficient = pearson([a for a, _ in aligned], [b for _, b in aligned])
        if abs(coefficient) < self.settings.analysis.time_correlation_threshold:
            return None

        strength = dataset_strength(coefficient)
        return CorrelationResult(
            entity_a=first.name,
            entity_b=second.name,
            shared_basis=CorrelationBasis.TIME,
            coefficient=coefficient,
            strength=strength,
            description=f"{first.name} and {second.name} show {strength.value} temporal correlation",
            shared_columns=("time",),
            confidence=min(abs(coefficient) * 1.1, 1.0),
        )

    def shared_column_correlation(
        self,
        first: DatasetMetadata,
        second: DatasetMetadata,
    ) -> Optional[CorrelationResult]:
        shared = self.shared_columns(first, second)
        coefficient = self._shared_column_coefficient(first, second, shared)
        if coefficient is None or abs(coefficient) < self.settings.analysis.shared_column_threshold:
            return None

        strength = dataset_strength(coefficient)
        return CorrelationResult(
            entity_a=first.name,
            entity_b=second.name,
            shared_basis=CorrelationBasis.COLUMN,
            coefficient=coefficient,
            strength=strength,
            description=(
                f"{first.name} and {second.name} correlate in {', '.join(shared)} "
                f"with {strength.value} relationship"
            ),
            shared_columns=tuple(shared),
            confidence=min(abs(coefficient) * 1.1, 1.0),
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def shared_columns(self, first: DatasetMetadata, second: DatasetMetadata) -> list[str]:
        return [c for c in first.columns if c in second.columns]

    def _shared_column_coefficient(
        self,
        first: DatasetMetadata,
        second: DatasetMetadata,
        shared: list[str],
    ) -> Optional[float]:
        """Mean Pearson r over shared numeric columns, None if none was usable."""
        coefficients = []
        for column in shared:
            if not (first.is_numeric(column) and second.is_numeric(column)):
                continue
            values_first = first.numeric_values(column)
            values_second = second.numeric_values(column)
            if not values_first or not values_second:
                continue
            length = min(len(values_first), len(values_second))
            coefficients.append(pearson(values_first[:length], values_second[:length]))

        if not coefficients:
            return None
        return sum(coefficients) / len(coefficients)

    def first_date_column(self, dataset: DatasetMetadata) -> Optional[str]:
        """First column with a parseable date among its sampled values."""
        sample = dataset.rows[: self.settings.analysis.sample_rows]
        for column in dataset.columns:
            if any(parse_date(row.get(column)) is not None for row in sample):
                return column
        return None

    # =========================================================================
    # METRICS
    # =========================================================================

    def correlate_metrics(self, aggregations: list["MetricAggregation"]) -> list[CorrelationResult]:
        """
        Heuristic metric-to-metric correlation.

        Not a statistic: 0.3 when two metrics share a trend label (else -0.1),
        plus 0.2 when their averages differ by less than 10.
        """
        threshold = self.settings.analysis.metric_correlation_threshold
        results = []

        for i in range(len(aggregations)):
            for j in range(i + 1, len(aggregations)):
                first, second = aggregations[i], aggregations[j]
                score = 0.3 if first.trend == second.trend else -0.1
                if abs(first.average - second.average) < 10:
                    score += 0.2
                score = min(1.0, max(-1.0, score))

                if score <= threshold:
                    continue

                strength = metric_strength(score)
                results.append(CorrelationResult(
                    entity_a=first.metric,
                    entity_b=second.metric,
                    shared_basis=CorrelationBasis.METRIC,
                    coefficient=score,
                    strength=strength,
                    description=f"{first.metric} and {second.metric} show a {strength.value} correlation",
                    confidence=score,
                ))

        results.sort(key=lambda r: r.coefficient, reverse=True)
        return results

    # =========================================================================
    # CROSS-DATASET INSIGHTS
    # =========================================================================

    def cross_dataset_insights(
        self,
        datasets: list[DatasetMetadata],
        correlations: list[CorrelationResult],
    ) -> list[CorrelationResult]:
        """
        Narrative insights for related datasets, each with a recommendation.

        Domain narratives need at least two datasets in the domain; temporal
        narratives come from time-based correlations above 0.5.
        """
        insights: list[CorrelationResult] = []

        groups: dict[Domain, list[DatasetMetadata]] = {}
        for dataset in datasets:
            groups.setdefault(dataset.domain, []).append(dataset)

        for domain, members in groups.items():
            if len(members) < 2:
                continue
            insight = self._domain_narrative(domain, members, correlations)
            if insight:
                insights.append(insight)

        for correlation in correlations:
            if correlation.shared_basis != CorrelationBasis.TIME or correlation.magnitude <= 0.5:
                continue
            insights.append(CorrelationResult(
                entity_a=correlation.entity_a,
                entity_b=correlation.entity_b,
                shared_basis=CorrelationBasis.TIME,
                coefficient=correlation.coefficient,
                strength=correlation.strength,
                description=(
                    f"{correlation.entity_a} and {correlation.entity_b} "
                    "show strong temporal correlation"
                ),
                shared_columns=correlation.shared_columns,
                confidence=correlation.confidence,
                recommendation=(
                    "These datasets may be related. "
                    "Consider analyzing them together for deeper insights."
                ),
                domain=Domain.GENERAL,
            ))

        insights.sort(key=lambda r: r.magnitude, reverse=True)
        return insights

    def _domain_narrative(
        self,
        domain: Domain,
        members: list[DatasetMetadata],
        correlations: list[CorrelationResult],
    ) -> Optional[CorrelationResult]:
        if domain == Domain.FINANCIAL:
            left = [d for d in members if d.has_column_containing("savings")]
            right = [d for d in members if d.has_column_containing("spending")]
            template = "There's a {label} relationship between your savings and spending patterns"
            advice = (
                "Consider tracking your spending more closely to optimize savings",
                "Your savings and spending seem well balanced",
            )
        elif domain == Domain.SPORTS:
            left = [d for d in members if d.has_column_containing("goal")]
            right = [d for d in members if d.has_column_containing("assist")]
            template = "Your goals and assists show a {label} correlation"
            advice = (
                "You're performing well in both scoring and playmaking",
                "Consider focusing on improving either goals or assists",
            )
        elif domain == Domain.HEALTH:
            left = [d for d in members if d.has_column_containing("exercise", "workout")]
            right = [d for d in members if d.has_column_containing("weight")]
            template = "Your exercise routine and weight show a {label} relationship"
            advice = (
                "Your exercise routine is effectively impacting your weight",
                "Consider adjusting your exercise routine or diet",
            )
        else:
            return None

        if not left or not right:
            return None

        left_names = {d.name for d in left}
        right_names = {d.name for d in right}
        match = next(
            (
                c for c in correlations
                if c.shared_basis != CorrelationBasis.METRIC and (
                    (c.entity_a in left_names and c.entity_b in right_names)
                    or (c.entity_b in left_names and c.entity_a in right_names)
                )
            ),
            None,
        )
        if match is None:
            return None

        label = "strong" if match.magnitude > 0.5 else "moderate"
        return CorrelationResult(
            entity_a=match.entity_a,
            entity_b=match.entity_b,
            shared_basis=CorrelationBasis.DOMAIN,
            coefficient=match.coefficient,
            strength=match.strength,
            description=template.format(label=label),
            shared_columns=match.shared_columns,
            confidence=match.confidence,
            recommendation=advice[0] if match.magnitude > 0.7 else advice[1],
            domain=domain,
        )


def time_series(rows: list[Record], date_column: str, value_column: str) -> list[tuple[datetime, float]]:
    """(date, value) pairs with both sides readable, sorted by date."""
    series = []
    for row in rows:
        moment = parse_date(row.get(date_column))
        value = as_number(row.get(value_column))
        if moment is not None and value is not None:
            series.append((moment, value))
    series.sort(key=lambda point: point[0])
    return series


def align_time_series(
    first: list[tuple[datetime, float]],
    second: list[tuple[datetime, float]],
    tolerance: timedelta,
) -> list[tuple[float, float]]:
    """Pair each point of `first` with the first point of `second` within tolerance."""
    aligned = []
    for moment, value in first:
        match = next((v for m, v in second if abs(moment - m) <= tolerance), None)
        if match is not None:
            aligned.append((value, match))
    return aligned


# Global instance
correlation_engine = CorrelationEngine()
