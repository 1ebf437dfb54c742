"""
Test Insight Ranker

Unit tests for insight scoring, stable ordering and recommendations.
"""

import pytest

from analysis.correlations import CorrelationBasis, CorrelationResult, Strength
from api.schemas.responses import Insight, Priority
from core.models import Domain
from insights.ranker import ONBOARDING_RECOMMENDATIONS, InsightRanker, score


def make_insight(
    title,
    priority=Priority.MEDIUM,
    confidence=0.8,
    domain=Domain.GENERAL,
    recommendation=None,
):
    return Insight(
        id=title,
        type=domain,
        category="summary",
        title=title,
        description=title,
        confidence=confidence,
        priority=priority,
        recommendation=recommendation,
    )


def make_correlation(coefficient, recommendation):
    return CorrelationResult(
        entity_a="a.csv",
        entity_b="b.csv",
        shared_basis=CorrelationBasis.DOMAIN,
        coefficient=coefficient,
        strength=Strength.STRONG,
        description="related",
        recommendation=recommendation,
    )


@pytest.fixture
def ranker():
    return InsightRanker()


class TestRank:
    def test_score(self):
        assert score(make_insight("a", Priority.HIGH, 0.5)) == pytest.approx(1.5)
        assert score(make_insight("b", Priority.LOW, 0.9)) == pytest.approx(0.9)

    def test_orders_by_score(self, ranker):
        insights = [
            make_insight("low", Priority.LOW, 0.9),
            make_insight("high", Priority.HIGH, 0.6),
            make_insight("medium", Priority.MEDIUM, 0.8),
        ]

        assert [i.title for i in ranker.rank(insights)] == ["high", "medium", "low"]

    def test_ties_keep_input_order(self, ranker):
        insights = [make_insight(name) for name in ["first", "second", "third"]]

        assert [i.title for i in ranker.rank(insights)] == ["first", "second", "third"]

    def test_confidence_breaks_priority(self, ranker):
        insights = [
            make_insight("high-weak", Priority.HIGH, 0.3),
            make_insight("medium-sure", Priority.MEDIUM, 0.9),
        ]

        assert [i.title for i in ranker.rank(insights)] == ["medium-sure", "high-weak"]

    def test_returns_new_list(self, ranker):
        insights = [make_insight("b", Priority.LOW), make_insight("a", Priority.HIGH)]
        ranked = ranker.rank(insights)

        assert ranked is not insights
        assert [i.title for i in insights] == ["b", "a"]

    def test_empty(self, ranker):
        assert ranker.rank([]) == []


class TestRecommendations:
    def test_high_priority_only(self, ranker):
        insights = [
            make_insight("a", Priority.HIGH, recommendation="Keep going"),
            make_insight("b", Priority.MEDIUM, recommendation="Ignored"),
        ]

        assert ranker.build_recommendations(insights, []) == ["Keep going"]

    def test_cross_dataset_threshold(self, ranker):
        correlations = [
            make_correlation(-0.8, "Strong negative"),
            make_correlation(0.5, "Too weak"),
        ]

        assert ranker.build_recommendations([], correlations) == ["Strong negative"]

    def test_domain_boilerplate_and_dedupe(self, ranker):
        insights = [
            make_insight("a", Priority.HIGH, domain=Domain.SPORTS, recommendation="Train"),
            make_insight("b", Priority.HIGH, domain=Domain.SPORTS, recommendation="Train"),
            make_insight("c", Priority.LOW, domain=Domain.PRODUCTIVITY),
        ]
        recommendations = ranker.build_recommendations(insights, [])

        assert recommendations == [
            "Train",
            "Track your performance metrics regularly to identify improvement patterns.",
        ]

    def test_truncated(self, ranker):
        insights = [
            make_insight(str(i), Priority.HIGH, recommendation=f"Tip {i}") for i in range(8)
        ]

        assert len(ranker.build_recommendations(insights, [])) == 5
        assert ranker.build_recommendations(insights, [], limit=2) == ["Tip 0", "Tip 1"]

    def test_onboarding(self, ranker):
        recommendations = ranker.onboarding_recommendations()
        recommendations.append("mutated")

        assert len(ONBOARDING_RECOMMENDATIONS) == 3
        assert ranker.onboarding_recommendations() == ONBOARDING_RECOMMENDATIONS
