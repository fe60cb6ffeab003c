"""Index every repository listed in CODEBASE_REPOS.

Usage:
    python backend/scripts/index_codebase.py [--incremental] [--repo NAME]
"""

import argparse
import logging
import sys

from codeindex.config import load_config
from codeindex.indexing import index_repositories, make_indexer

logger = logging.getLogger("index_codebase")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Index configured repositories into the vector store.")
    parser.add_argument("--incremental", action="store_true", help="only re-index files changed since the last run")
    parser.add_argument("--repo", action="append", help="limit to the named repository (repeatable)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cfg = load_config()
    repos = cfg["repos"]
    if args.repo:
        repos = [r for r in repos if r.name in args.repo]
    if not repos:
        logger.error("No repositories to index. Set CODEBASE_REPOS=name:path:branch[,...]")
        return 1

    results = index_repositories(make_indexer(cfg), repos, incremental=args.incremental)
    for r in results:
        if r.error:
            print(f"{r.repo}: FAILED ({r.error})")
        else:
            print(f"{r.repo}: {r.stats.files_processed} files, {r.stats.chunks_indexed} chunks")
    return 1 if any(r.error for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
