"""
Domain Insights

Per-dataset insight generation, dispatched on the dataset's domain.

Tabular datasets get column-driven insights (totals, trends, best periods,
averages). Text-entry datasets replay the metrics, insights and
recommendations stored on their row.
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from analysis.domain_classifier import (
    DomainClassification,
    has_health_values,
    has_money_values,
    has_productivity_values,
    has_sports_values,
    is_health_column,
    is_money_column,
    is_productivity_column,
    is_savings_column,
    is_sports_column,
    is_text_entry_dataset,
)
from analysis.trends import trend_detector
from api.schemas.responses import Insight, Priority
from config import get_settings
from core.logging_config import insights_logger as logger
from core.models import (
    ColumnType,
    Dataset,
    Domain,
    Number,
    as_number,
    as_text,
    parse_date,
)
from extraction.text_processor import LIST_SEPARATOR


def format_money(amount: float) -> str:
    """US dollar formatting, e.g. -$1,234.50."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_date(moment: datetime) -> str:
    return f"{moment.month}/{moment.day}/{moment.year}"


def _fmt(value: float) -> str:
    return as_text(Number(value))


# =============================================================================
# DISPLAY NAMES AND ADVICE
# =============================================================================

def _display_name(column: str, names: list[tuple[str, str]], default: str) -> str:
    lowered = column.lower()
    for keyword, name in names:
        if keyword in lowered:
            return name
    return default


def money_column_name(column: str) -> str:
    return _display_name(
        column,
        [("savings", "Savings"), ("spending", "Spending"), ("income", "Income"), ("expense", "Expenses")],
        "Money",
    )


def sports_column_name(column: str) -> str:
    return _display_name(column, [("goal", "Goals"), ("assist", "Assists"), ("score", "Score")], "Performance")


def health_column_name(column: str) -> str:
    return _display_name(column, [("weight", "Weight"), ("sleep", "Sleep"), ("steps", "Steps")], "Health Metric")


def productivity_column_name(column: str) -> str:
    return _display_name(column, [("task", "Tasks"), ("project", "Projects"), ("work", "Work")], "Productivity")


FINANCIAL_ADVICE = {
    "increasing": "Great job! Keep up the positive trend. Consider setting higher goals.",
    "decreasing": "Consider reviewing your spending habits and setting a budget.",
    "stable": "Your finances are stable. Consider diversifying your savings.",
}

SPORTS_ADVICE = {
    "increasing": "Excellent progress! Your training is paying off.",
    "decreasing": "Consider adjusting your training routine or seeking coaching.",
    "stable": "Consistent performance. Try setting new challenges to improve.",
}


class DomainInsightGenerator:
    """
    Rule-based insights for one dataset.

    Features:
    - Financial totals, trends, best month and savings rate
    - Sports totals and performance trends
    - Health averages, productivity totals, general statistics
    - Replay of stored text-entry results
    """

    def __init__(self):
        self.settings = get_settings()

    def generate(self, dataset: Dataset, classification: DomainClassification) -> list[Insight]:
        """
        Insights for a dataset in its classified domain.

        Args:
            dataset: Dataset with rows
            classification: Domain assigned by the classifier

        Returns:
            List of Insight, in generation order
        """
        if is_text_entry_dataset(dataset.columns):
            insights = self.text_entry_insights(dataset)
        elif classification.type == Domain.FINANCIAL:
            insights = self.financial_insights(dataset)
        elif classification.type == Domain.SPORTS:
            insights = self.sports_insights(dataset)
        elif classification.type == Domain.HEALTH:
            insights = self.health_insights(dataset)
        elif classification.type == Domain.PRODUCTIVITY:
            insights = self.productivity_insights(dataset)
        else:
            insights = self.general_insights(dataset)

        logger.debug(f"{dataset.name}: {len(insights)} {classification.type.value} insights")
        return insights

    # =========================================================================
    # COLUMN SELECTION
    # =========================================================================

    def _matching_columns(self, dataset: Dataset, name_check, value_check) -> list[str]:
        sample = dataset.sample(self.settings.analysis.sample_rows)
        columns = []
        for column in dataset.columns:
            if name_check(column):
                columns.append(column)
            elif dataset.column_type(column) == ColumnType.NUMBER and value_check(
                [row.get(column) for row in sample]
            ):
                columns.append(column)
        return columns

    def date_column(self, dataset: Dataset) -> Optional[str]:
        """First column whose sampled values include a date."""
        sample = dataset.sample(self.settings.analysis.sample_rows)
        for column in dataset.columns:
            if any(parse_date(row.get(column)) is not None for row in sample):
                return column
        return None

    def _time_series(self, dataset: Dataset, date_column: str, value_column: str) -> list[tuple[datetime, float]]:
        series = []
        for row in dataset.rows:
            moment = parse_date(row.get(date_column))
            value = as_number(row.get(value_column))
            if moment is not None and value is not None:
                series.append((moment, value))
        series.sort(key=lambda point: point[0])
        return series

    @staticmethod
    def _series_payload(series: list[tuple[datetime, float]]) -> list[dict[str, Any]]:
        return [{"date": moment.isoformat(), "value": value} for moment, value in series]

    # =========================================================================
    # DOMAINS
    # =========================================================================

    def financial_insights(self, dataset: Dataset) -> list[Insight]:
        insights = []
        money_columns = self._matching_columns(dataset, is_money_column, has_money_values)
        date_column = self.date_column(dataset)

        for column in money_columns:
            values = dataset.numeric_values(column)
            if not values:
                continue

            name = money_column_name(column)
            total = sum(values)
            average = total / len(values)

            insights.append(Insight(
                id=str(uuid4()),
                type=Domain.FINANCIAL,
                category="summary",
                title=f"Total {name}",
                description=f"You have {format_money(total)} in total {name.lower()}",
                value={"total": total, "avg": average, "max": max(values), "min": min(values)},
                confidence=0.9,
                priority=Priority.HIGH,
                related_metrics=[column],
            ))

            if date_column is not None:
                series = self._time_series(dataset, date_column, column)
                if len(series) >= 3:
                    trend = trend_detector.series_trend([value for _, value in series])
                    insights.append(Insight(
                        id=str(uuid4()),
                        type=Domain.FINANCIAL,
                        category="trend",
                        title=f"{name} Trend",
                        description=f"Your {name.lower()} is {trend.direction} over time",
                        value={"trend": trend.slope, "time_series": self._series_payload(series)},
                        confidence=0.8,
                        priority=Priority.HIGH,
                        trend=trend.direction,
                        recommendation=FINANCIAL_ADVICE[trend.direction],
                        related_metrics=[column, date_column],
                    ))

                    # ties keep the earliest date
                    best = max(series, key=lambda point: point[1])
                    worst = min(series, key=lambda point: point[1])
                    insights.append(Insight(
                        id=str(uuid4()),
                        type=Domain.FINANCIAL,
                        category="performance",
                        title=f"Best {name} Month",
                        description=(
                            f"Your best month was {format_date(best[0])} "
                            f"with {format_money(best[1])}"
                        ),
                        value={
                            "best": {"date": best[0].isoformat(), "value": best[1]},
                            "worst": {"date": worst[0].isoformat(), "value": worst[1]},
                        },
                        confidence=0.9,
                        priority=Priority.MEDIUM,
                        related_metrics=[column],
                    ))

            if is_savings_column(column):
                positive = [v for v in values if v > 0]
                if positive:
                    average_savings = sum(positive) / len(positive)
                    insights.append(Insight(
                        id=str(uuid4()),
                        type=Domain.FINANCIAL,
                        category="savings",
                        title="Average Monthly Savings",
                        description=f"You save an average of {format_money(average_savings)} per month",
                        value={"avg_savings": average_savings, "positive_count": len(positive)},
                        confidence=0.8,
                        priority=Priority.HIGH,
                        related_metrics=[column],
                    ))

        return insights

    def sports_insights(self, dataset: Dataset) -> list[Insight]:
        insights = []
        date_column = self.date_column(dataset)

        for column in self._matching_columns(dataset, is_sports_column, has_sports_values):
            values = dataset.numeric_values(column)
            if not values:
                continue

            name = sports_column_name(column)
            total = sum(values)
            average = total / len(values)

            insights.append(Insight(
                id=str(uuid4()),
                type=Domain.SPORTS,
                category="performance",
                title=f"Total {name}",
                description=f"You have {_fmt(total)} total {name.lower()}",
                value={"total": total, "avg": average, "max": max(values), "min": min(values)},
                confidence=0.9,
                priority=Priority.HIGH,
                related_metrics=[column],
            ))

            if date_column is None:
                continue
            series = self._time_series(dataset, date_column, column)
            if len(series) < 3:
                continue

            trend = trend_detector.series_trend([value for _, value in series])
            insights.append(Insight(
                id=str(uuid4()),
                type=Domain.SPORTS,
                category="trend",
                title=f"{name} Performance Trend",
                description=f"Your {name.lower()} performance is {trend.direction}",
                value={"trend": trend.slope, "time_series": self._series_payload(series)},
                confidence=0.8,
                priority=Priority.HIGH,
                trend=trend.direction,
                recommendation=SPORTS_ADVICE[trend.direction],
                related_metrics=[column, date_column],
            ))

        return insights

    def health_insights(self, dataset: Dataset) -> list[Insight]:
        insights = []
        for column in self._matching_columns(dataset, is_health_column, has_health_values):
            values = dataset.numeric_values(column)
            if not values:
                continue
            name = health_column_name(column)
            average = sum(values) / len(values)
            insights.append(Insight(
                id=str(uuid4()),
                type=Domain.HEALTH,
                category="metrics",
                title=f"Average {name}",
                description=f"Your average {name.lower()} is {average:.1f}",
                value={"avg": average, "values": values},
                confidence=0.8,
                priority=Priority.MEDIUM,
                related_metrics=[column],
            ))
        return insights

    def productivity_insights(self, dataset: Dataset) -> list[Insight]:
        insights = []
        for column in self._matching_columns(dataset, is_productivity_column, has_productivity_values):
            values = dataset.numeric_values(column)
            if not values:
                continue
            name = productivity_column_name(column)
            total = sum(values)
            insights.append(Insight(
                id=str(uuid4()),
                type=Domain.PRODUCTIVITY,
                category="summary",
                title=f"Total {name}",
                description=f"You have {_fmt(total)} total {name.lower()}",
                value={"total": total, "avg": total / len(values)},
                confidence=0.8,
                priority=Priority.MEDIUM,
                related_metrics=[column],
            ))
        return insights

    def general_insights(self, dataset: Dataset) -> list[Insight]:
        insights = []
        for column in dataset.numeric_columns():
            values = dataset.numeric_values(column)
            if not values:
                continue
            average = sum(values) / len(values)
            low, high = min(values), max(values)
            insights.append(Insight(
                id=str(uuid4()),
                type=Domain.GENERAL,
                category="statistics",
                title=f"{column} Statistics",
                description=f"Average: {average:.2f}, Range: {low:.2f} - {high:.2f}",
                value={"avg": average, "max": high, "min": low},
                confidence=0.7,
                priority=Priority.MEDIUM,
                related_metrics=[column],
            ))
        return insights

    # =========================================================================
    # TEXT ENTRIES
    # =========================================================================

    def text_entry_insights(self, dataset: Dataset) -> list[Insight]:
        """
        Replay the stored result of a text entry.

        Positive metrics become `metrics` insights, stored insight strings
        become `nlp_insight` insights and stored recommendations become
        high-priority `recommendation` insights.
        """
        if not dataset.rows:
            return []

        row = dataset.rows[0]
        domain = Domain.parse(as_text(row.get("domain")) or "general")
        stored_confidence = as_number(row.get("confidence"))
        confidence = 0.8 if stored_confidence is None else min(1.0, max(0.0, stored_confidence))
        insights = []

        raw_metrics = as_text(row.get("metrics"))
        if raw_metrics:
            try:
                metrics = json.loads(raw_metrics)
            except json.JSONDecodeError:
                logger.warning(f"{dataset.name}: unreadable stored metrics")
                metrics = {}
            if not isinstance(metrics, dict):
                metrics = {}

            for key, value in metrics.items():
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    continue
                insights.append(Insight(
                    id=str(uuid4()),
                    type=domain,
                    category="metrics",
                    title=f"{key[:1].upper()}{key[1:]}: {_fmt(value)}",
                    description=f"Recorded {_fmt(value)} {key}",
                    value={key: value},
                    confidence=confidence,
                    priority=Priority.MEDIUM,
                    related_metrics=[key],
                ))

        for index, text in enumerate(_split(as_text(row.get("insights"))), start=1):
            insights.append(Insight(
                id=str(uuid4()),
                type=domain,
                category="nlp_insight",
                title=f"Insight {index}",
                description=text,
                value={"insight": text},
                confidence=confidence,
                priority=Priority.MEDIUM,
            ))

        for index, text in enumerate(_split(as_text(row.get("recommendations"))), start=1):
            insights.append(Insight(
                id=str(uuid4()),
                type=domain,
                category="recommendation",
                title=f"Recommendation {index}",
                description=text,
                value={"recommendation": text},
                confidence=confidence,
                priority=Priority.HIGH,
                recommendation=text,
            ))

        return insights


def _split(joined: str) -> list[str]:
    return [part for part in joined.split(LIST_SEPARATOR) if part.strip()]


def insight_time_series(insight: Insight) -> list[dict[str, Any]]:
    """The date/value series an insight carries, empty when it has none."""
    series = insight.value.get("time_series")
    return series if isinstance(series, list) else []


# Global instance
domain_insight_generator = DomainInsightGenerator()
