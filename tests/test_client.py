"""Tests for the concurrent search client."""

import httpx
import pytest

from search_libs.common.config import SearchConfig
from service_search.app.client import HybridSearchClient, SearchClientError
from service_search.app.hybrid.search_manager import SearchManager
from service_search.app.main import create_app

from .conftest import FakeEmbeddingProvider, seed_corpus


def make_client(config, store, provider, metrics_collector):
    manager = SearchManager(
        config,
        document_store=store,
        embedding_provider=provider,
        metrics_collector=metrics_collector
    )
    app = create_app(config=config, search_manager=manager)
    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    return HybridSearchClient(http_client=http_client)


@pytest.mark.asyncio
async def test_both_paths_succeed(search_config, store, provider, metrics_collector):
    await seed_corpus(store)
    updates = []

    async with make_client(search_config, store, provider, metrics_collector) as client:
        outcome = await client.search("Engineer", on_update=lambda path, slot: updates.append(path))

    assert outcome.fulltext.ok and outcome.semantic.ok
    assert [r["title"] for r in outcome.fulltext.results] == ["Engineer"]
    assert [r["title"] for r in outcome.semantic.results] == ["Engineer", "SE", "Technician"]
    assert sorted(updates) == ["fulltext", "semantic"]


@pytest.mark.asyncio
async def test_semantic_failure_keeps_keyword_results(search_config, store, metrics_collector):
    await seed_corpus(store)
    provider = FakeEmbeddingProvider(fail_all=True)

    async with make_client(search_config, store, provider, metrics_collector) as client:
        outcome = await client.search("Engineer")

    assert outcome.fulltext.ok
    assert len(outcome.fulltext.results) == 1
    assert outcome.semantic.done
    assert not outcome.semantic.ok
    assert outcome.semantic.results is None
    assert "provider unreachable" in outcome.semantic.error


@pytest.mark.asyncio
async def test_single_path_raises_client_error(search_config, store, metrics_collector):
    provider = FakeEmbeddingProvider(fail_all=True)

    async with make_client(search_config, store, provider, metrics_collector) as client:
        with pytest.raises(SearchClientError) as exc_info:
            await client.semantic("Engineer")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_transport_errors_are_captured_per_path():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://test")
    async with HybridSearchClient(http_client=http_client) as client:
        outcome = await client.search("Engineer")

    assert outcome.fulltext.done and outcome.semantic.done
    assert "connection refused" in outcome.fulltext.error
    assert "connection refused" in outcome.semantic.error


@pytest.mark.asyncio
async def test_failing_callback_does_not_abort_search(search_config, store, provider, metrics_collector):
    await seed_corpus(store)
    seen = []

    def on_update(path, slot):
        seen.append(path)
        raise RuntimeError("render failed")

    async with make_client(search_config, store, provider, metrics_collector) as client:
        outcome = await client.search("Engineer", on_update=on_update)

    assert sorted(seen) == ["fulltext", "semantic"]
    assert outcome.fulltext.ok and outcome.semantic.ok


@pytest.mark.asyncio
async def test_client_from_config_uses_service_url():
    config = SearchConfig(hs_search_service_url="http://search.internal:8080")

    async with HybridSearchClient.from_config(config) as client:
        assert client.http_client.base_url.host == "search.internal"
        assert client.http_client.base_url.port == 8080
