"""
Analytics API Routes

Endpoints for the full analysis over every stored dataset.
"""

from fastapi import APIRouter, HTTPException

from analysis.orchestrator import analysis_orchestrator
from api.schemas.responses import AnalyticsResponse, MetricsResponse
from core.dataset_store import StorageUnavailableError, dataset_store
from core.logging_config import insights_logger as logger


router = APIRouter()


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics() -> AnalyticsResponse:
    """
    Analyze all stored datasets.

    Returns insights, correlations, recommendations, chart suggestions,
    aggregated metrics and pattern insights.
    """
    try:
        result = await analysis_orchestrator.run(dataset_store)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Analytics run failed")
        raise HTTPException(
            status_code=500,
            detail=f"Error analyzing data: {str(e)}"
        )

    return AnalyticsResponse.model_validate(result.to_dict())


@router.get("/analytics/metrics", response_model=MetricsResponse)
async def get_metrics() -> MetricsResponse:
    """Aggregated metrics per domain with the cross-domain pass."""
    try:
        report = await analysis_orchestrator.build_metrics(dataset_store)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Metrics aggregation failed")
        raise HTTPException(
            status_code=500,
            detail=f"Error aggregating metrics: {str(e)}"
        )

    return MetricsResponse.model_validate(report.to_dict())
