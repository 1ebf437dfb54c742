"""
Insight Ranker

Orders insights by priority-weighted confidence and assembles the
recommendation list shown alongside them.
"""

from typing import Iterable, Optional

from analysis.correlations import CorrelationResult
from api.schemas.responses import PRIORITY_WEIGHTS, Insight, Priority
from config import get_settings
from core.models import Domain

# One per domain, added when that domain produced any insight
DOMAIN_RECOMMENDATIONS = [
    (
        Domain.FINANCIAL,
        "Consider setting up automated tracking for your financial data "
        "to get more consistent insights.",
    ),
    (Domain.SPORTS, "Track your performance metrics regularly to identify improvement patterns."),
    (Domain.HEALTH, "Monitor your health trends over time to maintain optimal wellness."),
]

ONBOARDING_RECOMMENDATIONS = [
    "Upload your first dataset to start getting insights",
    "Try uploading different types of data to discover correlations",
    "Use the text input to quickly add data points",
]

CORRELATION_RECOMMENDATION_THRESHOLD = 0.5


def score(insight: Insight) -> float:
    """Priority weight times confidence."""
    return PRIORITY_WEIGHTS[insight.priority] * insight.confidence


class InsightRanker:
    """
    Ranks insights and builds recommendations.

    Sorting is stable: insights with equal scores keep their input order.
    """

    def __init__(self):
        self.settings = get_settings()

    def rank(self, insights: Iterable[Insight]) -> list[Insight]:
        """
        Rank insights by score, highest first.

        Args:
            insights: Insights in generation order

        Returns:
            New sorted list; the insights themselves are not modified
        """
        return sorted(insights, key=score, reverse=True)

    def build_recommendations(
        self,
        insights: list[Insight],
        cross_dataset_insights: list[CorrelationResult],
        limit: Optional[int] = None,
    ) -> list[str]:
        """
        Recommendation strings, deduplicated and truncated.

        Order: recommendations of high-priority insights in generation order,
        then those of cross-dataset insights with |coefficient| above 0.5,
        then one boilerplate line per financial, sports and health domain
        present.
        """
        limit = self.settings.analysis.max_recommendations if limit is None else limit
        candidates: list[str] = []

        candidates.extend(
            i.recommendation for i in insights
            if i.priority == Priority.HIGH and i.recommendation
        )
        candidates.extend(
            c.recommendation for c in cross_dataset_insights
            if c.magnitude > CORRELATION_RECOMMENDATION_THRESHOLD and c.recommendation
        )

        domains = {i.type for i in insights}
        candidates.extend(text for domain, text in DOMAIN_RECOMMENDATIONS if domain in domains)

        return list(dict.fromkeys(candidates))[:limit]

    def onboarding_recommendations(self) -> list[str]:
        """Recommendations for a user with no data yet."""
        return list(ONBOARDING_RECOMMENDATIONS)


# Global instance
insight_ranker = InsightRanker()
