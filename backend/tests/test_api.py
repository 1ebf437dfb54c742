"""
Test API

Route-level tests through FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from core.dataset_store import dataset_store
from main import create_app

SEASON_CSV = (
    b"date,goals,assists\n"
    b"2024-01-01,1,0\n"
    b"2024-01-08,2,1\n"
    b"2024-01-15,3,1\n"
    b"2024-01-22,4,2\n"
)
SPORTS_ENTRY = "July 2nd - 2 goals, 2 assists. 7 miles. Left foot needs to be better."
XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def client():
    return TestClient(create_app())


def upload(client, filename, content, content_type="text/csv"):
    return client.post("/api/v1/upload", files={"file": (filename, content, content_type)})


class TestUpload:
    def test_csv(self, client):
        response = upload(client, "season.csv", SEASON_CSV)
        data = response.json()

        assert response.status_code == 200
        assert data["row_count"] == 4
        assert data["columns"] == ["date", "goals", "assists"]
        assert data["column_types"]["goals"] == "number"
        assert len(data["dataset_id"]) == 16
        assert dataset_store.get(data["dataset_id"]) is not None

    def test_text_file(self, client):
        response = upload(client, "note.txt", SPORTS_ENTRY.encode(), "text/plain")
        data = response.json()

        assert response.status_code == 200
        assert data["row_count"] == 1
        assert "metrics" in data["columns"]

    def test_unsupported_type(self, client):
        response = upload(client, "data.pdf", b"whatever", "application/pdf")

        assert response.status_code == 400

    def test_excel(self, client, make_workbook):
        content = make_workbook([["date", "goals", "assists"], ["2024-01-01", 1, 0], ["2024-01-08", 2, 1]])
        response = upload(client, "season.xlsx", content, XLSX_TYPE)
        data = response.json()

        assert response.status_code == 200
        assert data["row_count"] == 2
        assert data["columns"] == ["date", "goals", "assists"]
        assert data["column_types"]["goals"] == "number"

    def test_unreadable_excel(self, client):
        response = upload(client, "season.xls", b"not a workbook", XLSX_TYPE)

        assert response.status_code == 400

    def test_empty_text_file(self, client):
        response = upload(client, "note.txt", b"   ", "text/plain")

        assert response.status_code == 400

    def test_header_only_csv(self, client):
        response = upload(client, "empty.csv", b"a,b\n")

        assert response.status_code == 400

    def test_storage_unavailable(self, client):
        dataset_store.set_available(False)
        response = upload(client, "season.csv", SEASON_CSV)

        assert response.status_code == 503


class TestTextEntries:
    def test_create(self, client):
        response = client.post("/api/v1/entries/text", json={"text": SPORTS_ENTRY})
        data = response.json()

        assert response.status_code == 200
        assert data["domain"] == "sports"
        assert data["metrics"] == {"goals": 2, "assists": 2, "miles": 7}
        assert data["sentiment"] == "neutral"
        assert data["confidence"] == 0.85
        assert data["ai_response"].startswith("Here's what I understood")
        assert dataset_store.get(data["dataset_id"]).name == "text_input.txt"

    def test_empty(self, client):
        response = client.post("/api/v1/entries/text", json={"text": "  "})

        assert response.status_code == 400

    def test_too_long(self, client):
        response = client.post("/api/v1/entries/text", json={"text": "x" * 10001})

        assert response.status_code == 413


class TestDatasets:
    def test_list_and_detail(self, client):
        dataset_id = upload(client, "season.csv", SEASON_CSV).json()["dataset_id"]

        listing = client.get("/api/v1/datasets").json()
        assert listing["count"] == 1
        assert listing["datasets"][0]["id"] == dataset_id

        detail = client.get(f"/api/v1/datasets/{dataset_id}").json()
        assert detail["domain"] == "sports"
        assert "sports" in detail["indicators"]
        assert len(detail["sample"]) == 4

    def test_missing(self, client):
        assert client.get("/api/v1/datasets/nope").status_code == 404
        assert client.delete("/api/v1/datasets/nope").status_code == 404

    def test_delete(self, client):
        dataset_id = upload(client, "season.csv", SEASON_CSV).json()["dataset_id"]

        assert client.delete(f"/api/v1/datasets/{dataset_id}").status_code == 200
        assert client.get("/api/v1/datasets").json()["count"] == 0

    def test_storage_unavailable(self, client):
        dataset_store.set_available(False)

        assert client.get("/api/v1/datasets").status_code == 503


class TestAnalytics:
    def test_empty(self, client):
        response = client.get("/api/v1/analytics")
        data = response.json()

        assert response.status_code == 200
        assert data["summary"]["total_datasets"] == 0
        assert len(data["recommendations"]) == 3
        assert data["ai_summary"] == "No data available for analysis"

    def test_with_data(self, client):
        upload(client, "season.csv", SEASON_CSV)
        client.post("/api/v1/entries/text", json={"text": SPORTS_ENTRY})
        data = client.get("/api/v1/analytics").json()

        assert data["summary"]["total_datasets"] == 2
        assert data["summary"]["domains"] == {"sports": 2}
        assert data["insights"]
        assert data["charts"]
        assert data["metrics"]["summary"]["domains"] == ["sports"]

    def test_metrics(self, client):
        upload(client, "season.csv", SEASON_CSV)
        data = client.get("/api/v1/analytics/metrics").json()

        assert data["summary"]["domains"] == ["sports"]
        assert "Total goals scored: 20" in data["cross_domain"]["combined_insights"]

    def test_storage_unavailable(self, client):
        dataset_store.set_available(False)

        assert client.get("/api/v1/analytics").status_code == 503
        assert client.get("/api/v1/analytics/metrics").status_code == 503


class TestQuery:
    def test_all_rows(self, client):
        upload(client, "season.csv", SEASON_CSV)
        client.post("/api/v1/entries/text", json={"text": SPORTS_ENTRY})
        data = client.post("/api/v1/query", json={}).json()

        assert data["total_rows"] == 5
        assert data["query"] == "all data"
        assert {row["file_name"] for row in data["data"]} == {"season.csv", "text_input.txt"}

    def test_file_name_filter(self, client):
        upload(client, "season.csv", SEASON_CSV)
        client.post("/api/v1/entries/text", json={"text": SPORTS_ENTRY})
        data = client.post(
            "/api/v1/query",
            json={"query": "goals", "filters": {"file_name": "SEASON"}},
        ).json()

        assert data["total_rows"] == 4
        assert data["query"] == "goals"
        assert [row["goals"] for row in data["data"]] == [1, 2, 3, 4]
        assert all(row["file_name"] == "season.csv" for row in data["data"])

    def test_date_range_filter(self, client):
        upload(client, "season.csv", SEASON_CSV)

        before = {"filters": {"date_range": {"end": "2000-01-01"}}}
        after = {"filters": {"date_range": {"start": "2000-01-01T00:00:00Z"}}}

        assert client.post("/api/v1/query", json=before).json()["total_rows"] == 0
        assert client.post("/api/v1/query", json=after).json()["total_rows"] == 4

    def test_summary(self, client):
        upload(client, "season.csv", SEASON_CSV)
        client.post("/api/v1/entries/text", json={"text": SPORTS_ENTRY})
        data = client.get("/api/v1/query").json()

        assert data["total_files"] == 2
        assert data["total_rows"] == 5
        assert {"goals", "metrics"} <= set(data["columns"])
        assert len(data["columns"]) == len(set(data["columns"]))
        assert data["date_range"]["start"] <= data["date_range"]["end"]

    def test_empty_summary(self, client):
        data = client.get("/api/v1/query").json()

        assert data["total_files"] == 0
        assert data["date_range"] == {"start": "", "end": ""}

    def test_storage_unavailable(self, client):
        dataset_store.set_available(False)

        assert client.get("/api/v1/query").status_code == 503
        assert client.post("/api/v1/query", json={}).status_code == 503

class TestHealth:
    def test_healthy(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["ollama_available"] is False
        assert data["datasets"] == 0

    def test_degraded(self, client):
        dataset_store.set_available(False)

        assert client.get("/health").json()["status"] == "degraded"
