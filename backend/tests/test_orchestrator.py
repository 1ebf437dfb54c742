"""
Test Analysis Orchestrator

End-to-end runs of the analysis pipeline over the in-memory store.
"""

import asyncio

import pytest

from analysis.orchestrator import AnalysisOrchestrator
from api.schemas.responses import Insight, Priority
from core.cache import classification_cache
from core.dataset_store import StorageUnavailableError, dataset_store
from core.models import Dataset, Domain
from extraction.text_processor import text_processor
from insights.domain_insights import domain_insight_generator
from insights.ranker import ONBOARDING_RECOMMENDATIONS

SPORTS_ENTRY = "July 2nd - 2 goals, 2 assists. 7 miles. Left foot needs to be better."


@pytest.fixture
def orchestrator():
    return AnalysisOrchestrator()


@pytest.fixture
def stored_entry():
    result = asyncio.run(text_processor.process(SPORTS_ENTRY))
    dataset = result.to_dataset()
    dataset_store.save(dataset)
    return dataset


def goals_total(result):
    for domain_metrics in result.metrics.domain_metrics:
        if domain_metrics.domain == Domain.SPORTS:
            return domain_metrics.metrics["goals"].total
    return None


class TestEmptyStore:
    def test_empty_result(self, orchestrator):
        result = asyncio.run(orchestrator.run(dataset_store))

        assert result.is_empty
        assert result.insights == []
        assert result.recommendations == ONBOARDING_RECOMMENDATIONS
        assert result.ai_summary == "No data available for analysis"
        assert result.to_dict()["summary"]["total_records"] == 0

    def test_datasets_without_rows_are_skipped(self, orchestrator):
        dataset_store.save(Dataset.from_rows(name="empty.csv", rows=[], columns=["a"]))
        result = asyncio.run(orchestrator.run(dataset_store))

        assert result.is_empty

    def test_storage_unavailable(self, orchestrator):
        dataset_store.set_available(False)

        with pytest.raises(StorageUnavailableError):
            asyncio.run(orchestrator.run(dataset_store))


class TestRun:
    def test_text_entry_and_csv(self, orchestrator, sports_dataset, stored_entry):
        dataset_store.save(sports_dataset)
        result = asyncio.run(orchestrator.run(dataset_store))

        assert result.total_datasets == 2
        assert result.total_records == 5
        assert result.domains == {"sports": 2}
        assert "Practice footwork drills to improve technique" in result.recommendations
        assert len(result.recommendations) <= 5
        assert goals_total(result) == 22
        assert "Total goals scored: 22" in result.metrics.cross_domain.combined_insights
        assert any(c.title == "Sports Performance Summary" for c in result.charts)
        assert result.ai_summary.startswith("Your data portfolio covers 2 datasets")

    def test_insights_are_ranked(self, orchestrator, finance_dataset, health_dataset):
        dataset_store.save(finance_dataset)
        dataset_store.save(health_dataset)
        result = asyncio.run(orchestrator.run(dataset_store))
        scores = [
            {"high": 3, "medium": 2, "low": 1}[i.priority.value] * i.confidence
            for i in result.insights
        ]

        assert scores == sorted(scores, reverse=True)
        assert result.domains == {"financial": 1, "health": 1}

    def test_classification_is_cached(self, orchestrator, sports_dataset):
        dataset_store.save(sports_dataset)
        asyncio.run(orchestrator.run(dataset_store))

        assert classification_cache.get(sports_dataset.id).type == Domain.SPORTS

    def test_runs_do_not_accumulate(self, orchestrator, sports_dataset):
        dataset_store.save(sports_dataset)
        first = asyncio.run(orchestrator.run(dataset_store))
        second = asyncio.run(orchestrator.run(dataset_store))

        assert goals_total(first) == goals_total(second) == 20

    def test_faulty_dataset_is_skipped(self, orchestrator, sports_dataset, health_dataset, monkeypatch):
        original = domain_insight_generator.generate

        def generate(dataset, classification):
            if dataset.id == health_dataset.id:
                raise ValueError("broken")
            return original(dataset, classification)

        monkeypatch.setattr(domain_insight_generator, "generate", generate)
        dataset_store.save(sports_dataset)
        dataset_store.save(health_dataset)
        result = asyncio.run(orchestrator.run(dataset_store))

        assert result.domains == {"sports": 1}
        assert all(i.type == Domain.SPORTS for i in result.insights)

    def test_recommendations_follow_generation_order(self, orchestrator, sports_dataset, monkeypatch):
        def generate(dataset, classification):
            return [
                Insight(
                    id=f"tip-{n}",
                    type=Domain.GENERAL,
                    category="summary",
                    title=f"Tip {n}",
                    description=f"Tip {n}",
                    confidence=0.5 + n * 0.1,
                    priority=Priority.HIGH,
                    recommendation=f"Tip {n}",
                )
                for n in range(6)
            ]

        monkeypatch.setattr(domain_insight_generator, "generate", generate)
        dataset_store.save(sports_dataset)
        result = asyncio.run(orchestrator.run(dataset_store))

        assert result.insights[0].id == "tip-5"
        assert result.recommendations == ["Tip 0", "Tip 1", "Tip 2", "Tip 3", "Tip 4"]

    def test_to_dict(self, orchestrator, sports_dataset):
        dataset_store.save(sports_dataset)
        payload = asyncio.run(orchestrator.run(dataset_store)).to_dict()

        assert set(payload) == {
            "summary", "insights", "cross_dataset_insights", "correlations",
            "recommendations", "charts", "metrics", "ai_insights", "ai_summary",
        }
        assert payload["summary"]["domains"] == {"sports": 1}


class TestBuildMetrics:
    def test_metrics_only(self, orchestrator, health_dataset):
        dataset_store.save(health_dataset)
        report = asyncio.run(orchestrator.build_metrics(dataset_store))

        assert report.summary["domains"] == ["health"]
        assert "Total steps: 54,000" in report.cross_domain.combined_insights

    def test_empty(self, orchestrator):
        report = asyncio.run(orchestrator.build_metrics(dataset_store))

        assert report.domain_metrics == []
