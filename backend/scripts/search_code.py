"""Run one hybrid query against the index and print the hits.

Usage:
    python backend/scripts/search_code.py "pagination in services" --language java --layer service
"""

import argparse
import logging
import sys

from codeindex.config import load_config
from codeindex.search import format_hit, make_searcher


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Search the indexed codebase.")
    parser.add_argument("query")
    parser.add_argument("--repo")
    parser.add_argument("--language")
    parser.add_argument("--layer")
    parser.add_argument("--expand", action="store_true", help="also search LLM rephrasings of the query")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    searcher = make_searcher(load_config())
    response = searcher.search(
        args.query, repo=args.repo, language=args.language, layer=args.layer, expand=args.expand,
    )
    if response.message:
        print(response.message)
    for hit in response.results:
        print(format_hit(hit))
    return 0


if __name__ == "__main__":
    sys.exit(main())
