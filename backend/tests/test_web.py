import pytest
from conftest import FakeEmbedder, FakeVectorStore
from fastapi.testclient import TestClient

from codeindex.core.models import IndexStats, RepoConfig
from codeindex.indexing import Indexer
from codeindex.search import HybridSearcher
from codeindex.search.searcher import UNAVAILABLE_MESSAGE
from codeindex.storage import StoredPoint
from codeindex.web import dependencies
from codeindex.web.app import app
from codeindex.web.dependencies import get_indexer, get_repos, get_searcher
from codeindex.web.routes.indexing import RunState, indexing_progress


class RecordingIndexer(Indexer):

    def __init__(self, stats=None, error=None):
        self.stats = stats or IndexStats(files_processed=2, chunks_indexed=5)
        self.error = error
        self.calls = []

    def index(self, repo, incremental=False, cancel_event=None, progress=None):
        self.calls.append((repo.name, incremental))
        if self.error:
            raise self.error
        if progress is not None:
            progress(2, 2)
        return self.stats


@pytest.fixture
def store():
    return FakeVectorStore()


@pytest.fixture
def indexer():
    return RecordingIndexer()


@pytest.fixture
def client(indexer, store):
    indexing_progress.clear()
    app.dependency_overrides[get_repos] = lambda: {"shop": RepoConfig("shop", "/srv/shop")}
    app.dependency_overrides[get_indexer] = lambda: indexer
    app.dependency_overrides[get_searcher] = lambda: HybridSearcher(FakeEmbedder(), store)
    yield TestClient(app)
    app.dependency_overrides.clear()
    indexing_progress.clear()


def test_unknown_repository(client):
    assert client.post("/api/repos/nope/index", json={}).status_code == 404
    assert client.get("/api/repos/nope/index/progress").status_code == 404


def test_progress_idle_before_any_run(client):
    body = client.get("/api/repos/shop/index/progress").json()
    assert body["status"] == "idle"
    assert body["stats"] is None


def test_start_indexing_runs_in_background(client, indexer):
    response = client.post("/api/repos/shop/index", json={"incremental": True})
    assert response.status_code == 200
    assert response.json()["repo"] == "shop"
    assert indexer.calls == [("shop", True)]

    body = client.get("/api/repos/shop/index/progress").json()
    assert body["status"] == "indexed"
    assert body["incremental"] is True
    assert body["current"] == 2 and body["total"] == 2
    assert body["stats"]["chunks_indexed"] == 5
    assert body["finished_at"] is not None


def test_failed_run_is_reported(client, indexer):
    indexer.error = RuntimeError("qdrant down")
    client.post("/api/repos/shop/index", json={})
    body = client.get("/api/repos/shop/index/progress").json()
    assert body["status"] == "error"
    assert body["error"] == "qdrant down"


def test_concurrent_run_rejected(client, indexer):
    indexing_progress["shop"] = RunState(status="indexing")
    assert client.post("/api/repos/shop/index", json={}).status_code == 409
    assert indexer.calls == []


def test_cancel(client):
    assert client.post("/api/repos/shop/index/cancel").status_code == 400

    state = RunState(status="indexing")
    indexing_progress["shop"] = state
    response = client.post("/api/repos/shop/index/cancel")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert state.cancel_event.is_set()


def test_search(client, store):
    store.query_results = [StoredPoint(
        id="p1",
        payload={
            "file_path": "src/OrderService.java",
            "language": "java",
            "layer": "service",
            "start_line": 3,
            "end_line": 9,
            "text": "void save() {}",
            "chunk_type": "method",
            "symbol_name": "save",
        },
        score=0.25,
    )]
    body = client.post("/api/search", json={"query": "save order", "language": "java"}).json()
    assert body["message"] is None
    (hit,) = body["results"]
    assert hit["file_path"] == "src/OrderService.java"
    assert hit["symbol_name"] == "save"
    assert hit["score"] == 0.25


def test_search_unavailable(client, store):
    store.fail_query = True
    body = client.post("/api/search", json={"query": "save order"}).json()
    assert body["results"] == []
    assert "Run indexing first" in body["message"]


def test_search_degrades_when_backend_cannot_be_built(client, monkeypatch):
    def broken(cfg):
        raise ValueError("sentence-transformers is not installed")

    monkeypatch.setattr(dependencies, "get_config", lambda: {})
    monkeypatch.setattr(dependencies, "make_searcher", broken)
    dependencies._build_searcher.cache_clear()
    app.dependency_overrides.pop(get_searcher)

    response = client.post("/api/search", json={"query": "save order"})
    assert response.status_code == 200
    assert response.json() == {"results": [], "message": UNAVAILABLE_MESSAGE}
    dependencies._build_searcher.cache_clear()


def test_searcher_construction_is_retried_after_failure(monkeypatch):
    attempts = []

    def flaky(cfg):
        attempts.append(cfg)
        if len(attempts) == 1:
            raise ConnectionError("model download failed")
        return HybridSearcher(FakeEmbedder(), FakeVectorStore())

    monkeypatch.setattr(dependencies, "get_config", lambda: {})
    monkeypatch.setattr(dependencies, "make_searcher", flaky)
    dependencies._build_searcher.cache_clear()
    try:
        assert dependencies.get_searcher() is None
        searcher = dependencies.get_searcher()
        assert isinstance(searcher, HybridSearcher)
        assert dependencies.get_searcher() is searcher
        assert len(attempts) == 2
    finally:
        dependencies._build_searcher.cache_clear()
