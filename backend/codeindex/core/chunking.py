"""Language-aware source chunking.

Java, TypeScript, JavaScript and Python are split along tree-sitter syntax
boundaries, Vue single-file components by their template/script sections and
SQL by statement keywords. Small files are always kept as a single chunk.
Every chunk is tagged with an architectural layer inferred from its path.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from typing import List, Optional, Tuple

from .ast_chunker import RawChunk, chunk_source
from .grammars import LanguageGrammar, get_grammar
from .models import MAX_CHUNK_CHARS, Chunk

logger = logging.getLogger(__name__)

EXT_TO_LANG = {
    ".java": "java",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".py": "python",
    ".vue": "vue",
    ".sql": "sql",
}

# Grammar used to parse each extension (TSX and JSX need the JSX-aware grammars)
EXT_TO_GRAMMAR = {
    ".java": "java",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".py": "python",
}

SOURCE_EXTENSIONS = frozenset(EXT_TO_LANG)

# First match wins; more specific patterns go first.
LAYER_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(p), layer)
    for p, layer in [
        (r"/web/controller/", "controller"),
        (r"/business/.*/impl/", "service"),
        (r"/business/", "service"),
        (r"/postgres/data/model/", "model"),
        (r"/postgres/data/repository/", "repository"),
        (r"/mysql/data/", "model"),
        (r"/common/dto/", "dto"),
        (r"/common/exception/", "exception"),
        (r"/common/configuration/", "config"),
        (r"/common/constants/", "constants"),
        (r"/common/", "common"),
        (r"/config/", "config"),
        (r"/controllers?/", "controller"),
        (r"/services?/", "service"),
        (r"/jobs/", "batch"),
        (r"/listeners/", "listener"),
        (r"/repository/", "repository"),
        (r"/models?/", "model"),
        (r"/dto/", "dto"),
        (r"/stores/", "store"),
        (r"/components/", "component"),
        (r"/pages/", "page"),
        (r"/composables/", "composable"),
        (r"/federations/", "federation"),
        (r"/boot/", "boot"),
        (r"/router/", "router"),
        (r"/constants/", "constants"),
    ]
]

SQL_STATEMENT_RE = re.compile(
    r"^(?:CREATE|ALTER|DROP|INSERT|UPDATE|DELETE|GRANT|REVOKE|BEGIN|COMMIT)\b",
    re.IGNORECASE | re.MULTILINE,
)
SQL_OBJECT_RE = re.compile(
    r"^(?:CREATE|ALTER|DROP)\s+(?:OR\s+REPLACE\s+)?(?:UNIQUE\s+)?"
    r"(?:TABLE|VIEW|INDEX|FUNCTION|PROCEDURE|SEQUENCE|TRIGGER|TYPE|SCHEMA)\s+"
    r"(?:IF\s+(?:NOT\s+)?EXISTS\s+)?([\w.\"]+)",
    re.IGNORECASE | re.MULTILINE,
)

VUE_OPEN_RE = re.compile(r"<(template|script|style)(\s[^>]*)?>", re.IGNORECASE)


def detect_language(file_path: str) -> Optional[str]:
    """Get language name from file extension."""
    _, ext = os.path.splitext(file_path)
    return EXT_TO_LANG.get(ext.lower())


def infer_layer(file_path: str) -> str:
    """Map a repository-relative path to an architectural layer, ``"other"`` if none matches."""
    path = "/" + file_path.replace(os.sep, "/").lstrip("/")
    for pattern, layer in LAYER_PATTERNS:
        if pattern.search(path):
            return layer
    return "other"


def grammar_for(file_path: str) -> Optional[LanguageGrammar]:
    _, ext = os.path.splitext(file_path)
    name = EXT_TO_GRAMMAR.get(ext.lower())
    return get_grammar(name) if name else None


def _non_ws_len(text: str) -> int:
    return len(re.sub(r"\s", "", text))


@dataclasses.dataclass
class _Section:
    tag: str
    content: str
    start_line: int
    end_line: int
    inner: str


def _find_close(source: str, tag: str, pos: int) -> Optional[Tuple[int, int]]:
    depth = 1
    for m in re.finditer(rf"<(/?){tag}\b[^>]*>", source[pos:], re.IGNORECASE):
        if m.group(1):
            depth -= 1
            if depth == 0:
                return pos + m.start(), pos + m.end()
        elif not m.group(0).endswith("/>"):
            depth += 1
    return None


def parse_sfc_sections(source: str) -> List[_Section]:
    """Top-level ``<template>``, ``<script>`` and ``<style>`` blocks of a Vue SFC.

    Nested tags of the same name (``<template v-if>`` inside the outer
    template) are balanced so the outer section is matched as a whole.
    """
    sections: List[_Section] = []
    pos = 0
    while True:
        m = VUE_OPEN_RE.search(source, pos)
        if m is None:
            break
        if m.group(0).endswith("/>"):
            pos = m.end()
            continue
        tag = m.group(1).lower()
        close = _find_close(source, tag, m.end())
        if close is None:
            break
        start_line = source.count("\n", 0, m.start()) + 1
        end_line = start_line + source.count("\n", m.start(), close[1])
        sections.append(_Section(
            tag=tag,
            content=source[m.start():close[1]],
            start_line=start_line,
            end_line=end_line,
            inner=source[m.end():close[0]],
        ))
        pos = close[1]
    return sections


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------

class Chunker:
    """Abstract base class for source chunking."""

    def chunk(self, content: str, file_path: str) -> List[Chunk]:
        """Chunk a file into semantic units.

        Args:
            content: Full file text
            file_path: Repository-relative path (drives language and layer)

        Returns:
            Ordered chunks; empty for unsupported file types
        """
        raise NotImplementedError


class LanguageChunker(Chunker):
    """Chunker dispatching on file extension."""

    def __init__(self, max_chunk_chars: int = MAX_CHUNK_CHARS):
        self.max_chunk_chars = max_chunk_chars

    def chunk(self, content: str, file_path: str) -> List[Chunk]:
        language = detect_language(file_path)
        if not language:
            return []

        if language == "sql":
            chunks = self._chunk_sql(content, file_path)
        elif language == "vue":
            chunks = self._chunk_vue(content, file_path, infer_layer(file_path))
        else:
            chunks = self._chunk_code(content, file_path, language, infer_layer(file_path))
        return _finalize(chunks)

    def _single(self, content: str, file_path: str, language: str, layer: str, chunk_type: str = "file") -> Chunk:
        return Chunk(
            content=content,
            file_path=file_path,
            language=language,
            layer=layer,
            start_line=1,
            end_line=len(content.split("\n")),
            chunk_type=chunk_type,
        )

    def _from_raw(
        self,
        raw: List[RawChunk],
        lines: List[str],
        file_path: str,
        language: str,
        layer: str,
        line_offset: int = 1,
    ) -> List[Chunk]:
        return [
            Chunk(
                content="\n".join(lines[r.start_row:r.end_row + 1]),
                file_path=file_path,
                language=language,
                layer=layer,
                start_line=r.start_row + line_offset,
                end_line=r.end_row + line_offset,
                symbol_name=r.symbol_name,
                parent_symbol=r.parent_symbol,
                chunk_type=r.chunk_type,
                annotations=list(r.annotations),
            )
            for r in raw
        ]

    def _chunk_code(self, content: str, file_path: str, language: str, layer: str) -> List[Chunk]:
        if len(content) <= self.max_chunk_chars:
            return [self._single(content, file_path, language, layer)]

        grammar = grammar_for(file_path)
        raw: List[RawChunk] = []
        if grammar is not None:
            try:
                raw = chunk_source(content, grammar)
            except Exception as e:
                logger.warning(f"AST chunking failed for {file_path}, keeping whole file: {e}")
                raw = []
        if not raw:
            logger.debug(f"No syntax boundaries for {file_path}, keeping as single chunk")
            return [self._single(content, file_path, language, layer)]

        logger.debug(f"File {file_path}: {len(raw)} syntax chunks")
        return self._from_raw(raw, content.split("\n"), file_path, language, layer)

    def _chunk_vue(self, content: str, file_path: str, layer: str) -> List[Chunk]:
        if len(content) <= self.max_chunk_chars:
            return [self._single(content, file_path, "vue", layer)]

        sections = parse_sfc_sections(content)
        if not sections:
            return [self._single(content, file_path, "vue", layer)]

        doc_lines = content.split("\n")
        chunks: List[Chunk] = []
        for sec in sections:
            if sec.tag == "style":
                continue
            if sec.tag == "script" and _non_ws_len(sec.content) > self.max_chunk_chars and sec.inner.strip():
                grammar = get_grammar("typescript")
                raw = chunk_source(sec.inner, grammar)
                if len(raw) > 1:
                    chunks.extend(self._script_chunks(sec, raw, doc_lines, file_path, layer))
                    continue
            chunks.append(Chunk(
                content=sec.content,
                file_path=file_path,
                language="vue",
                layer=layer,
                start_line=sec.start_line,
                end_line=sec.end_line,
                chunk_type="template" if sec.tag == "template" else "script",
            ))
        return chunks

    def _script_chunks(
        self, sec: _Section, raw: List[RawChunk], doc_lines: List[str], file_path: str, layer: str,
    ) -> List[Chunk]:
        # inner rows 0 and -1 share their lines with the opening and closing tags;
        # the outer sub-chunks take those whole lines so the section stays covered
        lines = sec.inner.split("\n")
        lines[0] = doc_lines[sec.start_line - 1]
        lines[-1] = doc_lines[sec.end_line - 1]
        raw[0].start_row = 0
        raw[-1].end_row = max(raw[-1].end_row, len(lines) - 1)
        return self._from_raw(raw, lines, file_path, "vue", layer, line_offset=sec.start_line)

    def _chunk_sql(self, content: str, file_path: str) -> List[Chunk]:
        if len(content) <= self.max_chunk_chars:
            return [self._single(content, file_path, "sql", "database")]

        lines = content.split("\n")
        starts = [content.count("\n", 0, m.start()) + 1 for m in SQL_STATEMENT_RE.finditer(content)]
        if len(starts) <= 1:
            return [self._single(content, file_path, "sql", "database")]

        # leading comments belong to the first statement
        starts[0] = 1
        chunks: List[Chunk] = []
        for i, start in enumerate(starts):
            end = starts[i + 1] - 1 if i < len(starts) - 1 else len(lines)
            stmt = "\n".join(lines[start - 1:end])
            m = SQL_OBJECT_RE.search(stmt)
            chunks.append(Chunk(
                content=stmt,
                file_path=file_path,
                language="sql",
                layer="database",
                start_line=start,
                end_line=end,
                symbol_name=m.group(1).strip('"') if m else None,
                chunk_type="statement",
            ))
        return chunks


def _finalize(chunks: List[Chunk]) -> List[Chunk]:
    """Drop empty chunks, order by start line and assign positions."""
    kept = sorted((c for c in chunks if c.content.strip()), key=lambda c: c.start_line)
    for i, c in enumerate(kept):
        c.chunk_index = i
        c.total_chunks = len(kept)
    return kept


def chunk_file(content: str, file_path: str) -> List[Chunk]:
    """Chunk a file with the default chunker (functional wrapper)."""
    return LanguageChunker().chunk(content, file_path)
