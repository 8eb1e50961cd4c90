"""Tests for the SQLite analysis store and the null store."""

import sqlite3

import pytest

from planauditor.orchestrator import AnalysisMetadata, AnalysisResult, AnalysisSummary
from planauditor.storage import AnalysisPage, ListCriteria, NullAnalysisStore, SqliteAnalysisStore


def _result(analysis_id, analyzed_at, tenant_id="acme", status="completed", repository_url=None):
    return AnalysisResult(
        analysis_id=analysis_id,
        status=status,
        tenant_id=tenant_id,
        metadata=AnalysisMetadata(
            analyzed_at=analyzed_at,
            plan_format="json",
            terraform_version="1.6.0",
            repository_url=repository_url,
        ),
        summary=AnalysisSummary(total_resources=3, compliance_score=80.0, security_score=75.0, findings_count=2),
    )


@pytest.fixture
def store(tmp_path):
    return SqliteAnalysisStore(tmp_path / "nested" / "analyses.db")


@pytest.fixture
def populated(store):
    store.store(_result("tf-analysis-1-aaaaaa", "2024-01-01T00:00:00.000Z"))
    store.store(_result("tf-analysis-2-bbbbbb", "2024-01-02T00:00:00.000Z", status="failed"))
    store.store(_result("tf-analysis-3-cccccc", "2024-01-03T00:00:00.000Z", repository_url="https://x/infra"))
    store.store(_result("tf-analysis-4-dddddd", "2024-01-04T00:00:00.000Z", tenant_id="other"))
    return store


def test_schema_created(store):
    assert store.db_path.exists()
    with sqlite3.connect(store.db_path) as conn:
        tables = [row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
    assert tables == ["analyses"]


def test_get_returns_stored_dict(populated):
    data = populated.get("tf-analysis-1-aaaaaa")

    assert data["analysis_id"] == "tf-analysis-1-aaaaaa"
    assert data["summary"]["compliance_score"] == 80.0
    assert data["metadata"]["terraform_version"] == "1.6.0"


def test_get_scoped_by_tenant(populated):
    assert populated.get("tf-analysis-4-dddddd", "acme") is None
    assert populated.get("tf-analysis-4-dddddd", "other")["tenant_id"] == "other"
    assert populated.get("missing") is None


def test_store_replaces_existing(store):
    store.store(_result("tf-analysis-1-aaaaaa", "2024-01-01T00:00:00.000Z"))
    store.store(_result("tf-analysis-1-aaaaaa", "2024-01-01T00:00:00.000Z", status="failed"))

    assert store.get("tf-analysis-1-aaaaaa")["status"] == "failed"
    assert store.list(ListCriteria()).total == 1


def test_list_newest_first_with_paging(populated):
    page = populated.list(ListCriteria(tenant_id="acme", limit=2))

    assert [item["analysis_id"] for item in page.items] == ["tf-analysis-3-cccccc", "tf-analysis-2-bbbbbb"]
    assert page.total == 3
    assert page.has_more is True

    last = populated.list(ListCriteria(tenant_id="acme", limit=2, offset=2))
    assert [item["analysis_id"] for item in last.items] == ["tf-analysis-1-aaaaaa"]
    assert last.has_more is False


def test_list_filters(populated):
    assert [i["analysis_id"] for i in populated.list(ListCriteria(status="failed")).items] == [
        "tf-analysis-2-bbbbbb"
    ]
    assert [i["analysis_id"] for i in populated.list(ListCriteria(repository_url="https://x/infra")).items] == [
        "tf-analysis-3-cccccc"
    ]
    assert populated.list(ListCriteria()).total == 4


def test_list_items_are_summaries(populated):
    item = populated.list(ListCriteria(limit=1)).items[0]

    assert item["findings_count"] == 2
    assert item["security_score"] == 75.0
    assert "result_json" not in item


def test_delete(populated):
    assert populated.delete("tf-analysis-1-aaaaaa", "other") is False
    assert populated.delete("tf-analysis-1-aaaaaa") is True
    assert populated.delete("tf-analysis-1-aaaaaa") is False
    assert populated.get("tf-analysis-1-aaaaaa") is None


def test_null_store():
    store = NullAnalysisStore()

    assert store.store(_result("x", "2024-01-01T00:00:00.000Z")) is None
    assert store.get("x") is None
    assert store.delete("x") is False
    assert store.list(ListCriteria()) == AnalysisPage()
    assert AnalysisPage().to_dict() == {"items": [], "total": 0, "has_more": False}
