"""
Dataset Store

In-memory dataset storage shared by the upload, entry and analytics routes.
Reads are exposed as awaitable calls so the analysis pipeline treats the
store as an I/O collaborator.
"""

import asyncio
from threading import Lock
from typing import Optional

from core.logging_config import data_logger as logger
from core.models import Dataset, DatasetListing, Record


class StorageUnavailableError(RuntimeError):
    """The dataset store cannot be read. Callers may retry."""

    retryable = True


class DatasetNotFoundError(LookupError):
    """No dataset with the requested id."""


class DatasetStore:
    """Thread-safe dataset storage."""

    def __init__(self):
        self._datasets: dict[str, Dataset] = {}
        self._lock = Lock()
        self._available = True

    def set_available(self, available: bool) -> None:
        """Mark the backing storage as reachable or not."""
        self._available = available
        if not available:
            logger.warning("Dataset store marked unavailable")

    def _check_available(self) -> None:
        if not self._available:
            raise StorageUnavailableError("Dataset storage is unavailable")

    def save(self, dataset: Dataset) -> None:
        """Store or replace a dataset."""
        self._check_available()
        with self._lock:
            self._datasets[dataset.id] = dataset
        logger.info(f"Stored dataset {dataset.name} ({dataset.id}) with {len(dataset.rows)} rows")

    def get(self, dataset_id: str) -> Optional[Dataset]:
        """Get a dataset by id."""
        self._check_available()
        with self._lock:
            return self._datasets.get(dataset_id)

    def delete(self, dataset_id: str) -> bool:
        """Delete a dataset."""
        self._check_available()
        with self._lock:
            if dataset_id in self._datasets:
                del self._datasets[dataset_id]
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._datasets.clear()

    def listings(self) -> list[DatasetListing]:
        """Dataset listings, newest first."""
        self._check_available()
        with self._lock:
            datasets = list(self._datasets.values())
        datasets.sort(key=lambda d: d.created_at, reverse=True)
        return [d.listing() for d in datasets]

    async def list_datasets(self) -> list[DatasetListing]:
        """Awaitable listing used by the analysis pipeline."""
        await asyncio.sleep(0)
        return self.listings()

    async def fetch_rows(self, dataset_id: str) -> list[Record]:
        """Materialized rows of one dataset."""
        await asyncio.sleep(0)
        self._check_available()
        with self._lock:
            dataset = self._datasets.get(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(f"Dataset {dataset_id} not found")
        return list(dataset.rows)


# Global instance
dataset_store = DatasetStore()
