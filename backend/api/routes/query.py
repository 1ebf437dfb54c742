"""
Query API Routes

Row-level access to everything stored: a filtered row query and a
summary of files, rows, upload dates and columns.
"""

from fastapi import APIRouter, HTTPException

from api.schemas.requests import QueryFilters, QueryRequest
from api.schemas.responses import DataSummary, QueryResponse, UploadDateRange
from core.dataset_store import DatasetNotFoundError, StorageUnavailableError, dataset_store
from core.logging_config import data_logger as logger
from core.models import DatasetListing, parse_date


router = APIRouter()


def matches(listing: DatasetListing, filters: QueryFilters) -> bool:
    """Upload date within the range and name containing the file filter."""
    if filters.date_range is not None:
        start = parse_date(filters.date_range.start) if filters.date_range.start else None
        end = parse_date(filters.date_range.end) if filters.date_range.end else None
        if start and listing.upload_date < start:
            return False
        if end and listing.upload_date > end:
            return False

    if filters.file_name and filters.file_name.lower() not in listing.name.lower():
        return False

    return True


@router.post("/query", response_model=QueryResponse)
async def query_data(request: QueryRequest) -> QueryResponse:
    """
    Rows of every stored dataset, newest upload first.

    Each row carries its dataset's `file_name` and `upload_date` next to
    its own fields.
    """
    try:
        listings = await dataset_store.list_datasets()
        if request.filters is not None:
            listings = [listing for listing in listings if matches(listing, request.filters)]

        data = []
        for listing in listings:
            try:
                rows = await dataset_store.fetch_rows(listing.id)
            except DatasetNotFoundError:
                continue
            for row in rows:
                data.append({
                    "file_name": listing.name,
                    "upload_date": listing.upload_date.isoformat(),
                    **row.to_dict(),
                })

    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Query failed")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to query data: {str(e)}"
        )

    logger.info(f"Query '{request.query or 'all data'}' matched {len(data)} rows")
    return QueryResponse(data=data, total_rows=len(data), query=request.query or "all data")


@router.get("/query", response_model=DataSummary)
async def data_summary() -> DataSummary:
    """Counts, upload date range and the union of column names."""
    try:
        listings = await dataset_store.list_datasets()
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    columns: list[str] = []
    for listing in listings:
        for column in listing.columns:
            if column not in columns:
                columns.append(column)

    dates = [listing.upload_date for listing in listings]
    return DataSummary(
        total_files=len(listings),
        total_rows=sum(listing.row_count for listing in listings),
        date_range=UploadDateRange(
            start=min(dates).isoformat() if dates else "",
            end=max(dates).isoformat() if dates else "",
        ),
        columns=columns,
    )
