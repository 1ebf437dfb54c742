"""
Analysis Orchestrator

Runs the whole pipeline over every stored dataset:
classify -> domain insights -> aggregate -> correlate -> pattern insights -> rank.

Each run owns its aggregator, so concurrent runs never share state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from analysis.aggregator import MetricAggregator, MetricsReport, classify_dataset
from analysis.correlations import CorrelationResult, DatasetMetadata, correlation_engine
from analysis.domain_classifier import DomainClassification
from api.schemas.responses import AIInsight, ChartSuggestion, Insight
from core.cache import classification_cache
from core.dataset_store import DatasetNotFoundError, DatasetStore
from core.logging_config import insights_logger as logger
from core.models import Dataset, utcnow
from insights.charts import chart_builder
from insights.domain_insights import domain_insight_generator
from insights.pattern_insights import pattern_insight_generator
from insights.ranker import insight_ranker


@dataclass
class AnalyticsResult:
    """
    Everything one analysis run produces.

    `cross_dataset_insights` and `correlations` hold CorrelationResult
    objects; `to_dict` flattens them for the API layer.
    """

    total_datasets: int = 0
    total_records: int = 0
    domains: dict[str, int] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=utcnow)
    insights: list[Insight] = field(default_factory=list)
    cross_dataset_insights: list[CorrelationResult] = field(default_factory=list)
    correlations: list[CorrelationResult] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    charts: list[ChartSuggestion] = field(default_factory=list)
    metrics: MetricsReport = field(default_factory=MetricsReport.empty)
    ai_insights: list[AIInsight] = field(default_factory=list)
    ai_summary: str = ""

    @property
    def is_empty(self) -> bool:
        return self.total_datasets == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total_datasets": self.total_datasets,
                "total_records": self.total_records,
                "domains": self.domains,
                "last_updated": self.last_updated.isoformat(),
            },
            "insights": [i.model_dump(mode="json") for i in self.insights],
            "cross_dataset_insights": [c.to_dict() for c in self.cross_dataset_insights],
            "correlations": [c.to_dict() for c in self.correlations],
            "recommendations": self.recommendations,
            "charts": [c.model_dump(mode="json") for c in self.charts],
            "metrics": self.metrics.to_dict(),
            "ai_insights": [i.model_dump(mode="json") for i in self.ai_insights],
            "ai_summary": self.ai_summary,
        }


class AnalysisOrchestrator:
    """
    Orchestrates all analysis in the correct order.

    Flow:
    1. Load every non-empty dataset from the store
    2. Classify datasets (cached by dataset id)
    3. Generate domain insights per dataset
    4. Aggregate metrics and run the cross-domain pass
    5. Correlate datasets and derive cross-dataset insights
    6. Run pattern analysis
    7. Rank insights, build recommendations and charts

    Storage failures propagate. Any other fault in a dataset's stage is
    logged and the dataset is skipped for that stage.
    """

    def __init__(self):
        self.logger = logger

    async def load(self, store: DatasetStore) -> list[Dataset]:
        """Every stored dataset with at least one row."""
        datasets = []
        for listing in await store.list_datasets():
            try:
                rows = await store.fetch_rows(listing.id)
            except DatasetNotFoundError:
                self.logger.warning(f"Dataset {listing.id} disappeared during the run")
                continue

            if not rows:
                self.logger.info(f"Skipped {listing.name} (no data)")
                continue

            datasets.append(Dataset(
                id=listing.id,
                name=listing.name,
                columns=list(listing.columns),
                column_types=dict(listing.column_types),
                rows=rows,
                created_at=listing.upload_date,
            ))
        return datasets

    def classify(self, dataset: Dataset) -> DomainClassification:
        """Classification of a dataset, from the cache when present."""
        return classification_cache.get_or_classify(dataset, classify_dataset)

    def empty_result(self) -> AnalyticsResult:
        return AnalyticsResult(
            recommendations=insight_ranker.onboarding_recommendations(),
            ai_summary="No data available for analysis",
        )

    async def run(self, store: DatasetStore) -> AnalyticsResult:
        """
        Analyze every stored dataset.

        Args:
            store: Dataset store to read from

        Returns:
            AnalyticsResult, empty with onboarding recommendations when no
            dataset has rows

        Raises:
            StorageUnavailableError: The store cannot be read
        """
        self.logger.info("=== ANALYSIS ORCHESTRATOR STARTED ===")
        datasets = await self.load(store)

        if not datasets:
            self.logger.info("No datasets with data, returning empty result")
            return self.empty_result()

        # 1-2. CLASSIFY AND DOMAIN INSIGHTS
        classified: list[tuple[Dataset, DomainClassification]] = []
        insights: list[Insight] = []
        for dataset in datasets:
            try:
                classification = self.classify(dataset)
                dataset_insights = domain_insight_generator.generate(dataset, classification)
            except Exception as e:
                self.logger.warning(f"Skipped {dataset.name}: {e}")
                continue
            classified.append((dataset, classification))
            insights.extend(dataset_insights)
            self.logger.info(
                f"{dataset.name}: {classification.type.value} "
                f"({classification.confidence:.2f}), {len(dataset_insights)} insights"
            )

        # 3. METRICS
        metrics = self.aggregate(classified)

        # 4. CORRELATIONS
        correlations: list[CorrelationResult] = []
        cross_dataset: list[CorrelationResult] = []
        metadata = [DatasetMetadata.from_dataset(d, c.type) for d, c in classified]
        try:
            correlations = correlation_engine.correlate(metadata)
            cross_dataset = correlation_engine.cross_dataset_insights(metadata, correlations)
            self.logger.success(
                f"Found {len(correlations)} correlations, {len(cross_dataset)} cross-dataset insights"
            )
        except Exception as e:
            self.logger.warning(f"Correlation analysis failed: {e}")

        # 5. PATTERNS
        domains = {d.id: c.type.value for d, c in classified}
        ai_insights: list[AIInsight] = []
        ai_summary = ""
        try:
            patterns = pattern_insight_generator.analyze_all([d for d, _ in classified], domains)
            ai_insights = patterns.all_insights()
            ai_summary = patterns.summary
        except Exception as e:
            self.logger.warning(f"Pattern analysis failed: {e}")

        # 6. RANK
        ranked = insight_ranker.rank(insights)
        recommendations = insight_ranker.build_recommendations(insights, cross_dataset)
        charts = chart_builder.build(ranked, classified)

        domain_counts: dict[str, int] = {}
        for _, classification in classified:
            key = classification.type.value
            domain_counts[key] = domain_counts.get(key, 0) + 1

        self.logger.success(f"Analysis complete: {len(ranked)} insights, {len(charts)} charts")
        return AnalyticsResult(
            total_datasets=len(datasets),
            total_records=sum(len(d.rows) for d in datasets),
            domains=domain_counts,
            insights=ranked,
            cross_dataset_insights=cross_dataset,
            correlations=correlations,
            recommendations=recommendations,
            charts=charts,
            metrics=metrics,
            ai_insights=ai_insights,
            ai_summary=ai_summary,
        )

    def aggregate(self, classified: list[tuple[Dataset, DomainClassification]]) -> MetricsReport:
        """Fresh aggregator over the classified datasets, then its report."""
        aggregator = MetricAggregator()
        for dataset, classification in classified:
            try:
                aggregator.ingest_dataset(dataset, classification)
            except Exception as e:
                self.logger.warning(f"Could not aggregate {dataset.name}: {e}")
        self.logger.success(f"Aggregated {len(aggregator)} metrics")
        return aggregator.report()

    async def build_metrics(self, store: DatasetStore) -> MetricsReport:
        """
        Aggregation stage only.

        Raises:
            StorageUnavailableError: The store cannot be read
        """
        datasets = await self.load(store)
        if not datasets:
            return MetricsReport.empty()
        classified = []
        for dataset in datasets:
            try:
                classified.append((dataset, self.classify(dataset)))
            except Exception as e:
                self.logger.warning(f"Skipped {dataset.name}: {e}")
        return self.aggregate(classified)


# Global instance
analysis_orchestrator = AnalysisOrchestrator()
