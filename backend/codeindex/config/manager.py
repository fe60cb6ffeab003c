"""Configuration management for codeindex."""

from __future__ import annotations

import copy
import os
import re
from typing import Dict, List, Mapping, Optional

from ..core.models import RepoConfig


# Directory names never descended into during discovery.
SKIP_DIRS = frozenset({
    "node_modules",
    ".git",
    "target",
    "build",
    "dist",
    ".idea",
    ".mvn",
    ".vscode",
    ".claude",
    "cicd",
    "docs",
    "test",
    "__tests__",
    "cypress",
    "venv",
    ".venv",
    "__pycache__",
})

# Filenames that tend to hold secrets; never read.
BLOCKED_FILE_PATTERNS: List[re.Pattern] = [
    re.compile(p)
    for p in [
        r"\.config\.(ts|js|mjs|cjs)$",
        r"\.env(\..+)?$",
        r"docker-compose.*\.ya?ml$",
        r"Dockerfile",
        r"secrets?\.(ts|js|json|ya?ml)$",
        r"credentials?\.(ts|js|json)$",
    ]
]

# Any path containing one of these segments is skipped.
BLOCKED_PATH_SEGMENTS = frozenset({
    "resources",
    "environments",
    "env",
    "config",
    ".github",
    ".gitlab",
    "terraform",
    "helm",
    "k8s",
    "kubernetes",
    "ansible",
})

IGNORE_FILE_NAME = ".tibignore"

DEFAULT_CONFIG: Dict = {
    "max_file_size_kb": 512,
    "embedding": {
        "backend": "sentence_transformers",
        "sentence_transformers_model": "sentence-transformers/all-MiniLM-L6-v2",
        "api_base": "https://openrouter.ai/api/v1",
        "model": "qwen/qwen3-embedding-8b",
        "dimensions": 4096,
        "max_input_tokens": 8000,
        "timeout": 60,
    },
    "llm": {
        "api_base": "",
        "model": "openai/gpt-4o-mini",
        "timeout": 30,
    },
    "vector_store": {
        "backend": "qdrant",
        "collection": "code-chunks",
        "qdrant": {
            "url": "",
            "host": "localhost",
            "port": 6333,
            "timeout": 60,
        },
    },
    "indexing": {
        "concurrency": 3,
        "lookback_hours": 24,
        "contextualize": True,
        "retry_attempts": 3,
        "retry_base_seconds": 1.0,
    },
    "search": {"prefetch_limit": 20, "limit": 16, "expand": False},
    "database_url": "sqlite:///./codeindex.db",
    "repos": [],
}


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_repo_configs(value: Optional[str]) -> List[RepoConfig]:
    """Parse ``name:path:branch`` entries separated by commas.

    Raises:
        ValueError: If an entry does not have exactly three non-empty parts
    """
    if not value or not value.strip():
        return []
    repos: List[RepoConfig] = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f'Invalid CODEBASE_REPOS entry: "{entry}". Format: name:path:branch')
        repos.append(RepoConfig(name=parts[0], path=parts[1], branch=parts[2]))
    return repos


def load_config(environ: Optional[Mapping[str, str]] = None) -> Dict:
    """Load configuration.

    Returns a copy of the default configuration overlaid with environment
    variables.
    """
    env = os.environ if environ is None else environ
    config = copy.deepcopy(DEFAULT_CONFIG)

    qdrant = config["vector_store"]["qdrant"]
    qdrant["url"] = env.get("QDRANT_URL", qdrant["url"])
    qdrant["host"] = env.get("QDRANT_HOST", qdrant["host"])
    qdrant["port"] = int(env.get("QDRANT_PORT", qdrant["port"]))
    config["vector_store"]["collection"] = env.get("QDRANT_COLLECTION", config["vector_store"]["collection"])

    emb = config["embedding"]
    emb["backend"] = env.get("EMBEDDING_BACKEND", emb["backend"])
    if "EMBEDDING_MODEL" in env:
        emb["model"] = env["EMBEDDING_MODEL"]
        emb["sentence_transformers_model"] = env["EMBEDDING_MODEL"]
    emb["api_base"] = env.get("EMBEDDING_API_BASE", emb["api_base"])
    emb["dimensions"] = int(env.get("EMBEDDING_DIMENSIONS", emb["dimensions"]))

    llm = config["llm"]
    llm["api_base"] = env.get("LLM_API_BASE", llm["api_base"])
    llm["model"] = env.get("LLM_MODEL", llm["model"])

    idx = config["indexing"]
    idx["concurrency"] = int(env.get("INDEX_CONCURRENCY", idx["concurrency"]))
    idx["lookback_hours"] = int(env.get("INDEX_LOOKBACK_HOURS", idx["lookback_hours"]))
    if "CONTEXTUALIZE" in env:
        idx["contextualize"] = _as_bool(env["CONTEXTUALIZE"])

    config["database_url"] = env.get("DATABASE_URL", config["database_url"])
    config["repos"] = parse_repo_configs(env.get("CODEBASE_REPOS"))

    return config
