"""
Shared fixtures.

Every test starts with an empty, available dataset store, an empty
classification cache and no Ollama backend.
"""

import io

import pytest
from openpyxl import Workbook

from core.cache import classification_cache
from core.dataset_store import dataset_store
from core.models import Dataset
from llm.ollama_client import ollama_client


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    async def unavailable():
        return False

    monkeypatch.setattr(ollama_client, "is_available", unavailable)
    dataset_store.set_available(True)
    dataset_store.clear()
    classification_cache.clear()
    yield
    dataset_store.set_available(True)
    dataset_store.clear()
    classification_cache.clear()


@pytest.fixture
def sports_dataset():
    return Dataset.from_rows(
        name="season.csv",
        rows=[
            {"date": "2024-01-01", "goals": 1, "assists": 0},
            {"date": "2024-01-08", "goals": 2, "assists": 1},
            {"date": "2024-01-15", "goals": 3, "assists": 1},
            {"date": "2024-01-22", "goals": 4, "assists": 2},
        ],
    )


@pytest.fixture
def finance_dataset():
    return Dataset.from_rows(
        name="budget.csv",
        rows=[
            {"month": "2024-01-01", "savings": 100.0, "spending": 900.0},
            {"month": "2024-02-01", "savings": 150.0, "spending": 850.0},
            {"month": "2024-03-01", "savings": 250.0, "spending": 800.0},
        ],
    )


@pytest.fixture
def health_dataset():
    return Dataset.from_rows(
        name="health.csv",
        rows=[
            {"date": "2024-01-01", "weight": 80.0, "steps": 8000},
            {"date": "2024-01-02", "weight": 79.5, "steps": 9000},
            {"date": "2024-01-03", "weight": 79.0, "steps": 10000},
        ],
    )


@pytest.fixture
def make_workbook():
    """Builds .xlsx bytes from a list of rows, the first being the header."""

    def build(rows):
        workbook = Workbook()
        sheet = workbook.active
        for row in rows:
            sheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return build
