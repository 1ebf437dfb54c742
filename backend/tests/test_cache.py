"""
Test Classification Cache

LRU eviction, expiry and invalidation of cached classifications.
"""

import pytest

from analysis.domain_classifier import DomainClassification
from core.cache import ClassificationCache
from core.models import Dataset, Domain

SPORTS = DomainClassification(Domain.SPORTS, 0.8, {"sports"})


@pytest.fixture
def cache():
    return ClassificationCache(maxsize=2, ttl_seconds=60)


class TestClassificationCache:
    def test_get_or_classify_computes_once(self, cache):
        dataset = Dataset.from_rows(name="a.csv", rows=[{"goals": 1}])
        calls = []

        def classify(d):
            calls.append(d.id)
            return SPORTS

        assert cache.get_or_classify(dataset, classify) is SPORTS
        assert cache.get_or_classify(dataset, classify) is SPORTS
        assert calls == [dataset.id]
        assert cache.stats.hits == 1

    def test_evicts_least_recently_used(self, cache):
        cache.put("a", SPORTS)
        cache.put("b", SPORTS)
        cache.get("a")
        cache.put("c", SPORTS)

        assert "a" in cache
        assert "b" not in cache
        assert cache.stats.evictions == 1

    def test_expiry(self, cache, monkeypatch):
        cache.put("a", SPORTS)
        monkeypatch.setattr(cache, "ttl_seconds", -1)

        assert cache.get("a") is None
        assert len(cache) == 0

    def test_invalidate(self, cache):
        cache.put("a", SPORTS)

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False

    def test_disabled(self):
        cache = ClassificationCache(enabled=False)
        cache.put("a", SPORTS)

        assert cache.get("a") is None
        assert len(cache) == 0
