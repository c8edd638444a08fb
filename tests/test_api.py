"""Tests for the search service HTTP API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from search_libs.document_store.postgres import PostgresDocumentStore
from service_search.app.hybrid.search_manager import SearchManager
from service_search.app.main import create_app

from .conftest import BrokenStore, FakeEmbeddingProvider, seed_corpus


@pytest.fixture
def seeded_store(store):
    asyncio.run(seed_corpus(store))
    return store


def build_client(config, store, provider, metrics_collector):
    manager = SearchManager(
        config,
        document_store=store,
        embedding_provider=provider,
        metrics_collector=metrics_collector
    )
    return TestClient(create_app(config=config, search_manager=manager))


@pytest.fixture
def client(search_config, seeded_store, provider, metrics_collector):
    with build_client(search_config, seeded_store, provider, metrics_collector) as test_client:
        yield test_client


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "search-service"

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_fulltext_search(client):
    response = client.post("/api/v1/search/fulltext", json={"query": "Engineer"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["title"] for r in results] == ["Engineer"]
    assert set(results[0]) == {"id", "title", "body", "text_score"}
    assert "X-Process-Time" in response.headers


def test_semantic_search(client):
    response = client.post("/api/v1/search/semantic", json={"query": "Engineer"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["title"] for r in results] == ["Engineer", "SE", "Technician"]
    assert results[0]["hybrid_score"] >= results[1]["hybrid_score"] >= results[2]["hybrid_score"]
    assert results[1]["text_score"] == 0.0


def test_blank_queries_return_empty_results(client):
    for path in ("fulltext", "semantic"):
        response = client.post(f"/api/v1/search/{path}", json={"query": ""})
        assert response.status_code == 200
        assert response.json() == {"results": []}


def test_missing_query_is_rejected(client):
    response = client.post("/api/v1/search/fulltext", json={})

    assert response.status_code == 422
    body = response.json()
    assert "error" in body
    assert body["detail"]


def test_provider_failure_only_affects_semantic_path(search_config, seeded_store, metrics_collector):
    provider = FakeEmbeddingProvider(fail_all=True)

    with build_client(search_config, seeded_store, provider, metrics_collector) as test_client:
        fulltext = test_client.post("/api/v1/search/fulltext", json={"query": "Engineer"})
        semantic = test_client.post("/api/v1/search/semantic", json={"query": "Engineer"})

    assert fulltext.status_code == 200
    assert len(fulltext.json()["results"]) == 1
    assert semantic.status_code == 502
    assert "provider unreachable" in semantic.json()["error"]


def test_store_failure_returns_error_body(search_config, provider, metrics_collector):
    store = BrokenStore(vector_dimension=3)

    with build_client(search_config, store, provider, metrics_collector) as test_client:
        response = test_client.post("/api/v1/search/fulltext", json={"query": "Engineer"})

    assert response.status_code == 500
    assert "connection reset" in response.json()["error"]


def test_document_round_trip(client):
    created = client.post("/api/v1/documents", json={"title": "Welder", "body": "Joins metal"})
    assert created.status_code == 200
    document = created.json()
    assert document["has_embedding"] is False

    fetched = client.get(f"/api/v1/documents/{document['id']}")
    assert fetched.json()["title"] == "Welder"

    replaced = client.post(
        "/api/v1/documents",
        json={"id": document["id"], "title": "Senior Welder", "body": "Joins metal"}
    )
    assert replaced.json()["id"] == document["id"]

    results = client.post("/api/v1/search/fulltext", json={"query": "senior welder"}).json()["results"]
    assert [r["id"] for r in results] == [document["id"]]


def test_unknown_document_returns_404(client):
    response = client.get("/api/v1/documents/does-not-exist")

    assert response.status_code == 404
    assert "error" in response.json()


def test_index_stats(client):
    stats = client.get("/api/v1/index/stats").json()

    assert stats["total_documents"] == 3
    assert stats["documents_with_embedding"] == 3
    assert stats["text_weight"] == 0.6


def test_metrics_endpoint(client):
    client.post("/api/v1/search/fulltext", json={"query": "Engineer"})

    metrics = client.get("/metrics").text
    assert 'search_requests_total{path="fulltext"} 1.0' in metrics
    assert "http_requests_total" in metrics


def test_malformed_document_id_is_rejected_by_postgres_store(search_config, provider, metrics_collector):
    store = PostgresDocumentStore(dsn="postgresql://app@127.0.0.1:1/articles", vector_dimension=3)

    with build_client(search_config, store, provider, metrics_collector) as test_client:
        created = test_client.post("/api/v1/documents", json={"id": "abc", "title": "Welder"})
        fetched = test_client.get("/api/v1/documents/abc")

    assert created.status_code == 422
    assert "UUID" in created.json()["error"]
    assert fetched.status_code == 404
