"""
Pattern Insights

Deterministic pattern analysis over sampled values: short-run trends,
recurring categorical values and suggestions derived from a dataset's shape.
Nothing here calls a model; results are reproducible for the same rows.
"""

from dataclasses import dataclass, field
from typing import Any

from analysis.trends import trend_detector
from api.schemas.responses import AIInsight, AIInsightType, AIVisualization, ChartType, Priority
from core.logging_config import insights_logger as logger
from core.models import ColumnType, Dataset, Null, as_number, as_text

SAMPLE_VALUES = 5
KEY_INSIGHT_LIMIT = 3
RECURRING_RATIO = 0.8
LARGE_DATASET_ROWS = 100


@dataclass
class DatasetPatterns:
    """Pattern analysis of one dataset."""

    dataset_id: str
    name: str
    summary: str
    insights: list[AIInsight] = field(default_factory=list)
    visualizations: list[AIVisualization] = field(default_factory=list)

    @property
    def key_insights(self) -> list[AIInsight]:
        return self.insights[:KEY_INSIGHT_LIMIT]

    def of_type(self, insight_type: AIInsightType) -> list[AIInsight]:
        return [i for i in self.insights if i.type == insight_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "name": self.name,
            "summary": self.summary,
            "key_insights": [i.model_dump(mode="json") for i in self.key_insights],
            "visualizations": [v.model_dump(mode="json") for v in self.visualizations],
        }


@dataclass
class PortfolioPatterns:
    """Pattern analysis across every dataset."""

    analyses: list[DatasetPatterns] = field(default_factory=list)
    cross_dataset: list[AIInsight] = field(default_factory=list)
    recommendations: list[AIInsight] = field(default_factory=list)
    summary: str = ""

    def all_insights(self) -> list[AIInsight]:
        """Key insights of each dataset, then recommendations, then cross-dataset ones."""
        combined = [i for analysis in self.analyses for i in analysis.key_insights]
        for analysis in self.analyses:
            combined.extend(
                i for i in analysis.of_type(AIInsightType.RECOMMENDATION)
                if i not in analysis.key_insights
            )
        combined.extend(self.recommendations)
        combined.extend(self.cross_dataset)
        return combined


class PatternInsightGenerator:
    """Rule-based pattern insights over dataset samples."""

    def analyze(self, dataset: Dataset) -> DatasetPatterns:
        """
        Pattern insights for one dataset.

        Numeric columns with at least three sampled values get a trend insight
        when their sample rises or falls. String columns whose sample repeats
        values get a recurring-pattern insight. Large datasets get a
        time-series suggestion and datasets with several numeric columns a
        correlation suggestion.
        """
        insights: list[AIInsight] = []
        numeric_columns = dataset.numeric_columns()
        string_columns = [
            c for c in dataset.columns if dataset.column_type(c) == ColumnType.STRING
        ]
        sample = dataset.sample(SAMPLE_VALUES)

        for index, column in enumerate(numeric_columns):
            values = [as_number(row.get(column)) for row in sample]
            values = [v for v in values if v is not None]
            if len(values) < 3:
                continue

            trend = trend_detector.sample_trend(values)
            if trend.direction == "stable":
                continue

            strength = "strong" if trend.confidence >= 0.9 else "moderate"
            insights.append(AIInsight(
                id=f"trend-{dataset.id}-{index}",
                type=AIInsightType.TREND,
                title=f"{column} {trend.direction} Trend",
                description=f"{column} shows a {trend.direction} trend",
                explanation=(
                    f"The {column} column displays a {trend.direction} pattern "
                    f"with {strength} consistency."
                ),
                confidence=trend.confidence,
                priority=Priority.HIGH if trend.confidence > 0.8 else Priority.MEDIUM,
                action_items=[f"Monitor {column} for continued {trend.direction} movement"],
                related_metrics=[column],
                timeframe="short-term",
                impact="positive" if trend.direction == "increasing" else "neutral",
            ))

        for index, column in enumerate(string_columns):
            values = [
                as_text(row.get(column)) for row in sample
                if not isinstance(row.get(column), Null)
            ]
            if not values:
                continue

            unique = len(set(values))
            if unique >= len(values) * RECURRING_RATIO:
                continue

            insights.append(AIInsight(
                id=f"pattern-{dataset.id}-{index}",
                type=AIInsightType.PATTERN,
                title=f"{column} Shows Recurring Patterns",
                description=f"Common values appear frequently in {column}",
                explanation=(
                    f"{column} contains {unique} unique values out of "
                    f"{len(values)} samples, indicating recurring patterns."
                ),
                confidence=0.75,
                priority=Priority.MEDIUM,
                action_items=[f"Analyze the most common values in {column}"],
                related_metrics=[column],
                timeframe="short-term",
                impact="neutral",
            ))

        if len(dataset.rows) > LARGE_DATASET_ROWS:
            insights.append(AIInsight(
                id=f"recommendation-{dataset.id}-1",
                type=AIInsightType.RECOMMENDATION,
                title="Consider Time-Series Analysis",
                description="Large dataset suitable for trend analysis",
                explanation=(
                    f"With {len(dataset.rows)} rows, this dataset is well-suited "
                    "for time-series analysis and trend identification."
                ),
                confidence=0.85,
                priority=Priority.HIGH,
                action_items=["Add date/time columns if available", "Perform seasonal analysis"],
                related_metrics=list(dataset.columns),
                timeframe="medium-term",
                impact="positive",
            ))

        if len(numeric_columns) > 1:
            insights.append(AIInsight(
                id=f"correlation-{dataset.id}-1",
                type=AIInsightType.CORRELATION,
                title="Multiple Numeric Variables Available",
                description="Potential for correlation analysis",
                explanation=(
                    f"The dataset contains {len(numeric_columns)} numeric columns, "
                    "enabling correlation analysis between variables."
                ),
                confidence=0.8,
                priority=Priority.MEDIUM,
                action_items=["Perform correlation analysis", "Create scatter plots"],
                related_metrics=numeric_columns,
                timeframe="short-term",
                impact="positive",
            ))

        return DatasetPatterns(
            dataset_id=dataset.id,
            name=dataset.name,
            summary=f"Analysis of {dataset.name} reveals {len(insights)} key patterns and insights.",
            insights=insights,
            visualizations=self.visualizations(dataset, numeric_columns, string_columns),
        )

    def visualizations(
        self,
        dataset: Dataset,
        numeric_columns: list[str],
        string_columns: list[str],
    ) -> list[AIVisualization]:
        """Chart ideas from the dataset's column mix."""
        suggestions = []
        if numeric_columns:
            suggestions.append(AIVisualization(
                type=ChartType.LINE,
                title=f"{numeric_columns[0]} Over Time",
                description="Shows trends and patterns in the primary numeric variable",
                insights=["Reveals temporal patterns", "Identifies trends and cycles"],
            ))
        if string_columns:
            suggestions.append(AIVisualization(
                type=ChartType.BAR,
                title=f"{string_columns[0]} Distribution",
                description="Shows frequency distribution of categorical data",
                insights=["Reveals most common categories", "Shows data distribution"],
            ))
        if len(numeric_columns) > 1:
            suggestions.append(AIVisualization(
                type=ChartType.SCATTER,
                title=f"{numeric_columns[0]} vs {numeric_columns[1]}",
                description="Shows relationship between two numeric variables",
                insights=["Reveals correlations", "Identifies outliers"],
            ))
        return suggestions

    def analyze_all(self, datasets: list[Dataset], domains: dict[str, str]) -> PortfolioPatterns:
        """
        Pattern analysis of every dataset plus portfolio-level suggestions.

        Args:
            datasets: Datasets with rows
            domains: Domain value per dataset id
        """
        if not datasets:
            return PortfolioPatterns(summary="No data available for analysis")

        analyses = [self.analyze(dataset) for dataset in datasets]
        portfolio = PortfolioPatterns(analyses=analyses)

        if len(datasets) > 1:
            portfolio.cross_dataset.append(AIInsight(
                id="cross-datasets-1",
                type=AIInsightType.CORRELATION,
                title="Cross-Dataset Patterns Detected",
                description="Multiple datasets show related patterns",
                explanation=(
                    "Analysis of multiple datasets reveals interconnected "
                    "patterns and relationships."
                ),
                confidence=0.8,
                priority=Priority.HIGH,
                action_items=["Compare datasets side by side", "Look for common variables"],
                timeframe="medium-term",
                impact="positive",
            ))
            portfolio.recommendations.append(AIInsight(
                id="global-recommendation-1",
                type=AIInsightType.RECOMMENDATION,
                title="Consolidate Related Data",
                description="Combine datasets with common variables",
                explanation=(
                    "Multiple datasets contain related information that could be "
                    "combined for more comprehensive analysis."
                ),
                confidence=0.85,
                priority=Priority.HIGH,
                action_items=["Identify common variables across datasets", "Create unified views"],
                timeframe="medium-term",
                impact="positive",
            ))

        pattern_count = sum(len(a.insights) for a in analyses)
        domain_names = sorted({domains.get(d.id, "general") for d in datasets})
        records = sum(len(d.rows) for d in datasets)
        portfolio.summary = (
            f"Your data portfolio covers {len(datasets)} dataset{'' if len(datasets) == 1 else 's'} "
            f"with {records} records "
            f"across {', '.join(domain_names)}. "
            f"The analysis reveals {pattern_count} key patterns and insights."
        )

        logger.debug(f"Pattern analysis: {pattern_count} patterns over {len(datasets)} datasets")
        return portfolio


# Global instance
pattern_insight_generator = PatternInsightGenerator()
