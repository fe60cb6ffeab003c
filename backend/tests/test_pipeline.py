from conftest import FakeEmbedder, FakeGenerator, FakeVectorStore, write_file

from codeindex.core.models import MAX_CHUNK_CHARS, make_point_id
from codeindex.indexing.pipeline import FileIndexingPipeline, embedding_text, needs_context
from codeindex.llm.contextualize import Contextualizer

SMALL = "public class A {\n    void run() {}\n}\n"


def _large_java(n=10):
    methods = "\n".join(
        f"    public int compute{i}(int a, int b) {{\n"
        + "".join(f"        int v{k} = a * {k} + b - {i} + this.offset;\n" for k in range(10))
        + f"        return a + b + {i};\n    }}\n"
        for i in range(n)
    )
    content = "package com.acme;\n\npublic class Calc {\n    private int offset = 1;\n\n" + methods + "}\n"
    assert len(content) > MAX_CHUNK_CHARS
    return content


def _pipeline(embedder=None, store=None, contextualizer=None):
    return FileIndexingPipeline(
        embedder or FakeEmbedder(),
        store or FakeVectorStore(),
        contextualizer=contextualizer,
        retry_attempts=3,
        retry_base_seconds=0,
    )


def test_small_file_indexed_as_single_point(tmp_path):
    write_file(tmp_path, "src/A.java", SMALL)
    store = FakeVectorStore()
    result = _pipeline(store=store).index_file("shop", tmp_path, "src/A.java")

    assert result.ok
    assert result.chunks_indexed == 1
    assert result.contexts_skipped == 1
    point = store.points[make_point_id("shop", "src/A.java", 1)]
    assert point.payload["repo"] == "shop"
    assert point.payload["chunk_type"] == "file"
    assert point.payload["text"] == SMALL
    assert point.payload["header_chunk_id"] is None
    assert len(point.dense) == 8
    assert point.sparse.indices


def test_small_file_never_calls_the_model(tmp_path):
    write_file(tmp_path, "src/A.java", SMALL)
    gen = FakeGenerator(content="context")
    result = _pipeline(contextualizer=Contextualizer(gen)).index_file("shop", tmp_path, "src/A.java")
    assert result.contexts_skipped == 1
    assert gen.prompts == []


def test_large_file_chunks_point_at_header(tmp_path):
    write_file(tmp_path, "src/Calc.java", _large_java())
    store = FakeVectorStore()
    embedder = FakeEmbedder()
    gen = FakeGenerator(content="Computes a value.")
    result = _pipeline(embedder, store, Contextualizer(gen)).index_file("shop", tmp_path, "src/Calc.java")

    assert result.ok
    assert result.chunks_indexed == 11
    assert result.contexts_skipped == 0
    assert len(embedder.calls) == 1
    assert len(embedder.calls[0]) == 11

    payloads = sorted((p.payload for p in store.points.values()), key=lambda p: p["start_line"])
    header = payloads[0]
    assert header["chunk_type"] == "header"
    assert header["context"] == ""
    header_id = make_point_id("shop", "src/Calc.java", header["start_line"])
    for p in payloads[1:]:
        assert p["header_chunk_id"] == header_id
        assert p["context"] == "Computes a value."
        assert p["parent_symbol"] == "Calc"
    assert len(gen.prompts) == 10


def test_embedding_text_layout():
    from codeindex.core.models import Chunk

    chunk = Chunk(content="void a() {}", file_path="src/A.java", language="java", layer="other",
                  start_line=1, end_line=1)
    assert embedding_text(chunk, "") == "java other src/A.java\n\nvoid a() {}"
    assert embedding_text(chunk, "Ctx.") == "Ctx.\n\njava other src/A.java\n\nvoid a() {}"
    assert not needs_context([chunk])


def test_embedding_retried_until_success(tmp_path):
    write_file(tmp_path, "src/A.java", SMALL)
    embedder = FakeEmbedder(fail_times=2)
    store = FakeVectorStore()
    result = _pipeline(embedder, store).index_file("shop", tmp_path, "src/A.java")
    assert result.ok
    assert len(embedder.calls) == 3
    assert len(store.points) == 1


def test_file_skipped_after_retries_exhausted(tmp_path):
    write_file(tmp_path, "src/A.java", SMALL)
    embedder = FakeEmbedder(fail_always=True)
    store = FakeVectorStore()
    result = _pipeline(embedder, store).index_file("shop", tmp_path, "src/A.java")
    assert not result.ok
    assert "embedding provider unavailable" in result.error
    assert len(embedder.calls) == 3
    assert store.points == {}


def test_upsert_retried(tmp_path):
    write_file(tmp_path, "src/A.java", SMALL)
    store = FakeVectorStore()
    store.fail_upserts = 2
    result = _pipeline(store=store).index_file("shop", tmp_path, "src/A.java")
    assert result.ok
    assert len(store.points) == 1


def test_reindexing_is_idempotent(tmp_path):
    write_file(tmp_path, "src/Calc.java", _large_java())
    store = FakeVectorStore()
    pipeline = _pipeline(store=store)
    pipeline.index_file("shop", tmp_path, "src/Calc.java")
    first = set(store.points)
    pipeline.index_file("shop", tmp_path, "src/Calc.java")
    assert set(store.points) == first


def test_purge_first_deletes_before_upsert(tmp_path):
    write_file(tmp_path, "src/A.java", SMALL)
    store = FakeVectorStore()
    _pipeline(store=store).index_file("shop", tmp_path, "src/A.java", purge_first=True)
    assert store.ops == [
        ("delete", {"repo": "shop", "file_path": "src/A.java"}),
        ("upsert", ("src/A.java",)),
    ]


def test_purge_first_runs_even_when_file_cannot_be_read(tmp_path):
    store = FakeVectorStore()
    result = _pipeline(store=store).index_file("shop", tmp_path, "src/Gone.java", purge_first=True)
    assert not result.ok
    assert store.ops == [("delete", {"repo": "shop", "file_path": "src/Gone.java"})]


def test_payload_text_is_redacted(tmp_path):
    write_file(tmp_path, "src/db.py", 'DB_PASSWORD = "hunter2hunter2"\n')
    store = FakeVectorStore()
    _pipeline(store=store).index_file("shop", tmp_path, "src/db.py")
    (point,) = store.points.values()
    assert "hunter2hunter2" not in point.payload["text"]


def test_missing_file_is_reported(tmp_path):
    result = _pipeline().index_file("shop", tmp_path, "src/Gone.java")
    assert not result.ok
