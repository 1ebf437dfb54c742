"""
Classification Cache

Domain classifications keyed by dataset id, with LRU eviction and expiry.
Entries are dropped when their dataset is deleted.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Callable, Optional

from config import get_settings
from core.logging_config import cache_logger as logger

if TYPE_CHECKING:
    from analysis.domain_classifier import DomainClassification
    from core.models import Dataset


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "evictions": self.evictions}


class ClassificationCache:
    """
    Thread-safe per-dataset classification store.

    A classification depends only on the dataset's columns and sampled rows,
    which never change after upload, so the dataset id is a sufficient key.
    """

    def __init__(self, maxsize: int = 256, ttl_seconds: int = 3600, enabled: bool = True):
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self.stats = CacheStats()
        self._entries: OrderedDict[str, tuple["DomainClassification", float]] = OrderedDict()
        self._lock = Lock()

    def get(self, dataset_id: str) -> Optional["DomainClassification"]:
        """Cached classification, None when absent, expired or disabled."""
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(dataset_id)
            if entry is None:
                self.stats.misses += 1
                return None

            classification, stored_at = entry
            if time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[dataset_id]
                self.stats.misses += 1
                return None

            self._entries.move_to_end(dataset_id)
            self.stats.hits += 1
            return classification

    def put(self, dataset_id: str, classification: "DomainClassification") -> None:
        if not self.enabled:
            return

        with self._lock:
            self._entries.pop(dataset_id, None)
            while len(self._entries) >= self.maxsize:
                evicted, _ = self._entries.popitem(last=False)
                self.stats.evictions += 1
                logger.debug(f"Evicted classification of {evicted}")
            self._entries[dataset_id] = (classification, time.monotonic())

    def get_or_classify(
        self,
        dataset: "Dataset",
        classify: Callable[["Dataset"], "DomainClassification"],
    ) -> "DomainClassification":
        """Cached classification of a dataset, computed and stored on a miss."""
        classification = self.get(dataset.id)
        if classification is None:
            classification = classify(dataset)
            self.put(dataset.id, classification)
        return classification

    def invalidate(self, dataset_id: str) -> bool:
        """Drop a dataset's entry. True when one was present."""
        with self._lock:
            return self._entries.pop(dataset_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.stats = CacheStats()

    def __contains__(self, dataset_id: str) -> bool:
        with self._lock:
            return dataset_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Global instance
_cache_settings = get_settings().cache
classification_cache = ClassificationCache(
    maxsize=_cache_settings.max_size,
    ttl_seconds=_cache_settings.ttl_seconds,
    enabled=_cache_settings.enabled,
)
