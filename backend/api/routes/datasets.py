"""
Dataset API Routes

Endpoints for listing, inspecting and deleting stored datasets.
"""

from fastapi import APIRouter, HTTPException

from analysis.aggregator import classify_dataset
from api.schemas.responses import DatasetDetail, DatasetInfo
from core.cache import classification_cache
from core.dataset_store import StorageUnavailableError, dataset_store


router = APIRouter()


@router.get("/datasets")
async def list_datasets() -> dict:
    """List all stored datasets, newest first."""
    try:
        listings = await dataset_store.list_datasets()
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    datasets = [DatasetInfo(**listing.to_dict()) for listing in listings]
    return {"datasets": datasets, "count": len(datasets)}


@router.get("/datasets/{dataset_id}", response_model=DatasetDetail)
async def get_dataset(dataset_id: str) -> DatasetDetail:
    """Get a dataset with its domain classification and a row sample."""
    try:
        dataset = dataset_store.get(dataset_id)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if dataset is None:
        raise HTTPException(status_code=404, detail="Dataset not found")

    classification = classification_cache.get_or_classify(dataset, classify_dataset)

    return DatasetDetail(
        **dataset.listing().to_dict(),
        domain=classification.type,
        domain_confidence=classification.confidence,
        indicators=sorted(classification.indicators),
        sample=[row.to_dict() for row in dataset.sample(10)],
    )


@router.delete("/datasets/{dataset_id}")
async def delete_dataset(dataset_id: str) -> dict:
    """Delete a dataset."""
    try:
        deleted = dataset_store.delete(dataset_id)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=404, detail="Dataset not found")

    classification_cache.invalidate(dataset_id)
    return {"message": f"Dataset {dataset_id} deleted successfully"}
