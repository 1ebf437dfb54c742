"""
Test Insight Generators

Unit tests for domain insights, pattern insights and chart suggestions.
"""

import asyncio
from datetime import datetime

import pytest

from analysis.domain_classifier import DomainClassification
from api.schemas.responses import AIInsightType, ChartType, Priority
from core.models import Dataset, Domain
from extraction.text_processor import text_processor
from insights.charts import ChartBuilder, chart_color
from insights.domain_insights import (
    DomainInsightGenerator,
    format_date,
    format_money,
    insight_time_series,
)
from insights.pattern_insights import PatternInsightGenerator


@pytest.fixture
def generator():
    return DomainInsightGenerator()


def by_title(insights):
    return {i.title: i for i in insights}


class TestFormatting:
    @pytest.mark.parametrize(
        "amount, expected",
        [(1234.5, "$1,234.50"), (-1234.5, "-$1,234.50"), (0, "$0.00")],
    )
    def test_money(self, amount, expected):
        assert format_money(amount) == expected

    def test_date(self):
        assert format_date(datetime(2024, 3, 7)) == "3/7/2024"


class TestDomainInsights:
    def test_financial(self, generator, finance_dataset):
        insights = by_title(generator.generate(
            finance_dataset, DomainClassification(Domain.FINANCIAL, 0.8)
        ))

        assert insights["Total Savings"].description == "You have $500.00 in total savings"
        assert insights["Total Spending"].value["total"] == 2550

        trend = insights["Savings Trend"]
        assert trend.trend == "increasing"
        assert trend.priority == Priority.HIGH
        assert trend.recommendation.startswith("Great job!")
        assert [p["value"] for p in insight_time_series(trend)] == [100, 150, 250]
        assert insights["Spending Trend"].trend == "decreasing"

        assert insights["Best Savings Month"].description == "Your best month was 3/1/2024 with $250.00"
        assert insights["Average Monthly Savings"].value["positive_count"] == 3

    def test_sports(self, generator, sports_dataset):
        insights = by_title(generator.generate(
            sports_dataset, DomainClassification(Domain.SPORTS, 0.8)
        ))

        assert insights["Total Goals"].description == "You have 10 total goals"
        assert insights["Goals Performance Trend"].trend == "increasing"
        assert "Total Assists" in insights

    def test_health(self, generator, health_dataset):
        insights = by_title(generator.generate(
            health_dataset, DomainClassification(Domain.HEALTH, 0.8)
        ))

        assert insights["Average Weight"].description == "Your average weight is 79.5"
        assert insights["Average Steps"].value["avg"] == 9000

    def test_general(self, generator):
        dataset = Dataset.from_rows(name="misc.csv", rows=[{"x": 1}, {"x": 3}])
        insights = generator.generate(dataset, DomainClassification(Domain.GENERAL, 0.5))

        assert len(insights) == 1
        assert insights[0].description == "Average: 2.00, Range: 1.00 - 3.00"

    def test_text_entry_replay(self, generator):
        result = asyncio.run(text_processor.process(
            "July 2nd - 2 goals, 2 assists. 7 miles. Left foot needs to be better."
        ))
        insights = generator.generate(result.to_dataset(), DomainClassification(Domain.SPORTS, 0.85))
        categories = [i.category for i in insights]

        assert [i.title for i in insights[:3]] == ["Goals: 2", "Assists: 2", "Miles: 7"]
        assert categories.count("nlp_insight") == len(result.insights)
        assert categories.count("recommendation") == len(result.recommendations)
        assert all(i.confidence == 0.85 for i in insights)
        assert all(i.priority == Priority.HIGH for i in insights if i.category == "recommendation")

    def test_insights_are_immutable(self, generator, sports_dataset):
        insight = generator.generate(sports_dataset, DomainClassification(Domain.SPORTS, 0.8))[0]

        with pytest.raises(Exception):
            insight.title = "changed"


class TestPatternInsights:
    @pytest.fixture
    def patterns(self):
        return PatternInsightGenerator()

    @pytest.fixture
    def mixed_dataset(self):
        return Dataset.from_rows(
            name="mixed.csv",
            rows=[
                {"score": score, "team": team, "minutes": 30}
                for score, team in zip([1, 2, 3, 4, 5], ["a", "a", "a", "b", "a"])
            ],
            dataset_id="mixed",
        )

    def test_analyze(self, patterns, mixed_dataset):
        result = patterns.analyze(mixed_dataset)
        types = [i.type for i in result.insights]

        assert types == [AIInsightType.TREND, AIInsightType.PATTERN, AIInsightType.CORRELATION]
        trend = result.insights[0]
        assert trend.id == "trend-mixed-0"
        assert trend.confidence == 0.9
        assert trend.priority == Priority.HIGH
        assert [v.type for v in result.visualizations] == [ChartType.LINE, ChartType.BAR, ChartType.SCATTER]

    def test_unsorted_sample(self, patterns):
        dataset = Dataset.from_rows(name="a.csv", rows=[{"v": v} for v in [1, 5, 2, 8, 9]])
        trend = patterns.analyze(dataset).insights[0]

        assert trend.title == "v increasing Trend"
        assert trend.confidence == 0.7

    def test_large_dataset(self, patterns):
        dataset = Dataset.from_rows(
            name="big.csv",
            rows=[{"a": i, "b": i * 2, "c": i * 3, "d": i + 1} for i in range(101)],
        )
        result = patterns.analyze(dataset)

        assert len(result.of_type(AIInsightType.RECOMMENDATION)) == 1
        assert [i.type for i in result.key_insights] == [AIInsightType.TREND] * 3

    def test_analyze_all_empty(self, patterns):
        result = patterns.analyze_all([], {})

        assert result.summary == "No data available for analysis"
        assert result.all_insights() == []

    def test_analyze_all(self, patterns, mixed_dataset):
        big = Dataset.from_rows(
            name="big.csv",
            rows=[{"a": i, "b": i * 2, "c": i * 3, "d": i + 1} for i in range(101)],
            dataset_id="big",
        )
        result = patterns.analyze_all([mixed_dataset, big], {"mixed": "sports", "big": "general"})
        ids = [i.id for i in result.all_insights()]

        assert ids[:6] == [
            "trend-mixed-0", "pattern-mixed-0", "correlation-mixed-1",
            "trend-big-0", "trend-big-1", "trend-big-2",
        ]
        assert ids[6:] == ["recommendation-big-1", "global-recommendation-1", "cross-datasets-1"]
        assert result.summary.startswith(
            "Your data portfolio covers 2 datasets with 106 records across general, sports."
        )

    def test_single_dataset_has_no_cross_insights(self, patterns, mixed_dataset):
        result = patterns.analyze_all([mixed_dataset], {"mixed": "sports"})

        assert result.cross_dataset == []
        assert result.summary.startswith("Your data portfolio covers 1 dataset with 5 records")


class TestCharts:
    def test_colors(self):
        assert chart_color(Domain.FINANCIAL) == "#10B981"
        assert chart_color(Domain.FINANCIAL, 0.1) == "#10B98119"
        assert chart_color(Domain.SPORTS, 0.8, 1) == "#2563EBcc"
        assert chart_color(Domain.FOOD) == "#6B7280"

    def test_sports_charts(self, generator, sports_dataset):
        classification = DomainClassification(Domain.SPORTS, 0.8)
        insights = generator.generate(sports_dataset, classification)
        charts = ChartBuilder().build(insights, [(sports_dataset, classification)])

        assert [c.type for c in charts] == [ChartType.LINE, ChartType.LINE, ChartType.BAR]
        line = charts[0]
        assert line.title == "Goals Performance Trend Over Time"
        assert line.data["labels"] == ["1/1/2024", "1/8/2024", "1/15/2024", "1/22/2024"]
        assert line.data["datasets"][0]["borderColor"] == "#3B82F6"

        bar = charts[-1]
        assert bar.title == "Sports Performance Summary"
        assert bar.data["labels"] == ["goals", "assists"]
        assert bar.data["datasets"][0]["label"] == "Total"
        assert bar.data["datasets"][0]["data"] == [10, 4]

    def test_financial_pie(self, generator, finance_dataset):
        classification = DomainClassification(Domain.FINANCIAL, 0.8)
        charts = ChartBuilder().build([], [(finance_dataset, classification)])

        assert len(charts) == 1
        assert charts[0].type == ChartType.PIE
        assert charts[0].data["labels"] == ["savings", "spending"]
        assert "label" not in charts[0].data["datasets"][0]

    def test_capped(self, generator, finance_dataset, monkeypatch):
        builder = ChartBuilder()
        monkeypatch.setattr(builder.settings.analysis, "max_charts", 1)
        classification = DomainClassification(Domain.FINANCIAL, 0.8)
        insights = generator.generate(finance_dataset, classification)
        charts = builder.build(insights, [(finance_dataset, classification)])

        assert len(charts) == 1
        assert charts[0].type == ChartType.LINE
