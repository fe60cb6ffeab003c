import pytest

from codeindex.config import DEFAULT_CONFIG, load_config, parse_repo_configs
from codeindex.core.models import RepoConfig


def test_defaults():
    cfg = load_config({})
    assert cfg["indexing"]["concurrency"] == 3
    assert cfg["vector_store"]["collection"] == "code-chunks"
    assert cfg["search"]["prefetch_limit"] == 20
    assert cfg["search"]["limit"] == 16
    assert cfg["repos"] == []


def test_environment_overrides():
    cfg = load_config({
        "QDRANT_URL": "http://qdrant:6333",
        "QDRANT_COLLECTION": "chunks-test",
        "EMBEDDING_BACKEND": "openai_compatible",
        "EMBEDDING_DIMENSIONS": "1024",
        "LLM_API_BASE": "http://llm/v1",
        "INDEX_CONCURRENCY": "5",
        "CONTEXTUALIZE": "false",
        "DATABASE_URL": "sqlite:///tmp.db",
    })
    assert cfg["vector_store"]["qdrant"]["url"] == "http://qdrant:6333"
    assert cfg["vector_store"]["collection"] == "chunks-test"
    assert cfg["embedding"]["backend"] == "openai_compatible"
    assert cfg["embedding"]["dimensions"] == 1024
    assert cfg["llm"]["api_base"] == "http://llm/v1"
    assert cfg["indexing"]["concurrency"] == 5
    assert cfg["indexing"]["contextualize"] is False
    assert cfg["database_url"] == "sqlite:///tmp.db"


def test_load_config_does_not_mutate_defaults():
    load_config({"QDRANT_COLLECTION": "other"})
    assert DEFAULT_CONFIG["vector_store"]["collection"] == "code-chunks"


def test_parse_repo_configs():
    repos = parse_repo_configs("shop:/srv/shop:main, web:/srv/web:develop")
    assert repos == [RepoConfig("shop", "/srv/shop", "main"), RepoConfig("web", "/srv/web", "develop")]
    assert parse_repo_configs("") == []
    assert parse_repo_configs(None) == []


@pytest.mark.parametrize("value", ["shop:/srv/shop", "shop::main", "a:b:c:d"])
def test_parse_repo_configs_rejects_malformed_entries(value):
    with pytest.raises(ValueError, match="Format: name:path:branch"):
        parse_repo_configs(value)
