"""
Chart Suggestions

Chart payloads in a labels/datasets layout, ready for a client-side
charting library. Nothing is rendered here.
"""

from datetime import datetime

from analysis.domain_classifier import DomainClassification, is_money_column, is_sports_column
from api.schemas.responses import PRIORITY_WEIGHTS, ChartSuggestion, ChartType, Insight, Priority
from config import get_settings
from core.models import Dataset, Domain
from insights.domain_insights import format_date, insight_time_series

PALETTES = {
    Domain.FINANCIAL: ["#10B981", "#059669", "#047857", "#065F46"],
    Domain.SPORTS: ["#3B82F6", "#2563EB", "#1D4ED8", "#1E40AF"],
    Domain.HEALTH: ["#F59E0B", "#D97706", "#B45309", "#92400E"],
    Domain.PRODUCTIVITY: ["#8B5CF6", "#7C3AED", "#6D28D9", "#5B21B6"],
    Domain.GENERAL: ["#6B7280", "#4B5563", "#374151", "#1F2937"],
}


def chart_color(domain: Domain, alpha: float = 1.0, index: int = 0) -> str:
    """
    Palette color for a domain, with the alpha appended as two hex digits.

    Domains without a palette use the general one.
    """
    palette = PALETTES.get(domain, PALETTES[Domain.GENERAL])
    color = palette[index % len(palette)]
    if alpha < 1:
        return f"{color}{int(alpha * 255):02x}"
    return color


class ChartBuilder:
    """Chart suggestions from insights and classified datasets."""

    def __init__(self):
        self.settings = get_settings()

    def build(
        self,
        insights: list[Insight],
        datasets: list[tuple[Dataset, DomainClassification]],
    ) -> list[ChartSuggestion]:
        """
        Line charts for insights carrying a time series, then a pie chart per
        financial dataset and a bar chart per sports dataset.

        Sorted by priority (stable) and capped at `max_charts`.
        """
        charts = [self.line_chart(i) for i in insights if insight_time_series(i)]

        for dataset, classification in datasets:
            if classification.type == Domain.FINANCIAL:
                chart = self.totals_chart(
                    dataset,
                    [c for c in dataset.columns if is_money_column(c)],
                    ChartType.PIE,
                    Domain.FINANCIAL,
                    "Financial Breakdown",
                    "Distribution of your financial data",
                )
            elif classification.type == Domain.SPORTS:
                chart = self.totals_chart(
                    dataset,
                    [c for c in dataset.columns if is_sports_column(c)],
                    ChartType.BAR,
                    Domain.SPORTS,
                    "Sports Performance Summary",
                    "Total performance metrics",
                )
            else:
                chart = None
            if chart is not None:
                charts.append(chart)

        charts.sort(key=lambda c: PRIORITY_WEIGHTS[c.priority], reverse=True)
        return charts[: self.settings.analysis.max_charts]

    def line_chart(self, insight: Insight) -> ChartSuggestion:
        series = insight_time_series(insight)
        return ChartSuggestion(
            type=ChartType.LINE,
            title=f"{insight.title} Over Time",
            description=f"Track {insight.title.lower()} trends",
            data={
                "labels": [format_date(datetime.fromisoformat(p["date"])) for p in series],
                "datasets": [{
                    "label": insight.title,
                    "data": [p["value"] for p in series],
                    "borderColor": chart_color(insight.type),
                    "backgroundColor": chart_color(insight.type, 0.1),
                }],
            },
            priority=insight.priority,
        )

    def totals_chart(
        self,
        dataset: Dataset,
        columns: list[str],
        chart_type: ChartType,
        domain: Domain,
        title: str,
        description: str,
    ):
        if not columns:
            return None

        totals = [sum(dataset.numeric_values(c)) for c in columns]
        series = {
            "data": totals,
            "backgroundColor": [chart_color(domain, 0.8, i) for i in range(len(columns))],
        }
        if chart_type == ChartType.BAR:
            series = {"label": "Total", **series}

        return ChartSuggestion(
            type=chart_type,
            title=title,
            description=description,
            data={"labels": columns, "datasets": [series]},
            priority=Priority.MEDIUM,
        )


# Global instance
chart_builder = ChartBuilder()
