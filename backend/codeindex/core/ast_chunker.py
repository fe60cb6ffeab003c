"""Tree-sitter boundary chunking.

Strategy:
1. Classify top-level nodes as header (imports, package, module-level setup),
   boundary (declarations worth their own chunk) or loose statements.
2. Emit one header chunk from the start of the file through the last header node.
3. Class-like boundaries are split into a declaration/fields sub-chunk plus one
   chunk per method; the last sub-chunk absorbs the closing brace.
4. Every other boundary becomes one chunk, extended upward over its
   annotations/decorators and leading comments.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from .grammars import LanguageGrammar

if TYPE_CHECKING:
    from tree_sitter import Node

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RawChunk:
    """A chunk span in 0-based, inclusive row coordinates."""

    start_row: int
    end_row: int
    symbol_name: Optional[str]
    parent_symbol: Optional[str]
    chunk_type: str
    annotations: List[str] = dataclasses.field(default_factory=list)


def leading_start_row(node: "Node", grammar: LanguageGrammar) -> int:
    """Start row of ``node`` extended over the annotations and comments directly above it."""
    row = node.start_point[0]
    sib = node.prev_named_sibling
    while sib is not None and grammar.is_attachable(sib):
        row = sib.start_point[0]
        sib = sib.prev_named_sibling
    if sib is not None:
        # never reach back into the previous sibling's last line
        row = max(row, sib.end_point[0] + 1)
    return min(row, node.start_point[0])


def _precedes_boundary(idx: int, children: List["Node"], grammar: LanguageGrammar) -> bool:
    nxt = idx + 1
    while nxt < len(children) and grammar.is_attachable(children[nxt]):
        nxt += 1
    return nxt < len(children) and children[nxt].type in grammar.boundary_types


def classify_children(
    children: List["Node"], grammar: LanguageGrammar
) -> Tuple[List["Node"], List["Node"], List[List["Node"]]]:
    """Split top-level nodes into headers, boundaries and groups of loose statements."""
    headers: List["Node"] = []
    boundaries: List["Node"] = []
    loose_groups: List[List["Node"]] = []
    current: List["Node"] = []

    for i, node in enumerate(children):
        if grammar.is_attachable(node):
            if _precedes_boundary(i, children, grammar):
                continue
            (current if boundaries else headers).append(node)
        elif node.type in grammar.boundary_types:
            if current:
                loose_groups.append(current)
                current = []
            boundaries.append(node)
        elif not boundaries:
            # header types, and anything else before the first declaration
            headers.append(node)
        else:
            # late imports or statements between declarations
            current.append(node)

    if current:
        loose_groups.append(current)
    return headers, boundaries, loose_groups


def _split_class(outer: "Node", class_node: "Node", grammar: LanguageGrammar) -> List[RawChunk]:
    body = class_node.child_by_field_name("body")
    if body is None:
        body = next((c for c in class_node.named_children if c.type in grammar.body_types), None)
    if body is None:
        return []

    members = body.named_children
    first = next((i for i, m in enumerate(members) if m.type in grammar.method_types), None)
    if first is None:
        return []

    class_name = grammar.symbol_name(class_node)
    chunks: List[RawChunk] = []

    outer_start = leading_start_row(outer, grammar)
    header_end = leading_start_row(members[first], grammar) - 1
    if header_end >= outer_start:
        chunks.append(RawChunk(
            start_row=outer_start,
            end_row=header_end,
            symbol_name=class_name,
            parent_symbol=grammar.parent_symbol(class_node),
            chunk_type="header",
            annotations=grammar.annotations(outer) or grammar.annotations(class_node),
        ))

    for member in members[first:]:
        if grammar.is_attachable(member):
            continue
        chunks.append(RawChunk(
            start_row=leading_start_row(member, grammar),
            end_row=member.end_point[0],
            symbol_name=grammar.symbol_name(member),
            parent_symbol=class_name,
            chunk_type=grammar.member_chunk_type(member),
            annotations=grammar.annotations(member),
        ))

    class_end = outer.end_point[0]
    if chunks and chunks[-1].end_row < class_end:
        chunks[-1].end_row = class_end
    return chunks


def _boundary_chunks(node: "Node", grammar: LanguageGrammar) -> List[RawChunk]:
    class_node = grammar.class_node(node)
    if class_node is not None:
        parts = _split_class(node, class_node, grammar)
        if parts:
            return parts

    return [RawChunk(
        start_row=leading_start_row(node, grammar),
        end_row=node.end_point[0],
        symbol_name=grammar.symbol_name(node),
        parent_symbol=grammar.parent_symbol(node),
        chunk_type=grammar.chunk_type(node),
        annotations=grammar.annotations(node),
    )]


def _is_blank(lines: List[str], start: int, end: int) -> bool:
    return all(not line.strip() for line in lines[start:end])


def _normalize_headers(chunks: List[RawChunk], lines: List[str]) -> List[RawChunk]:
    """Keep at most one header chunk per file.

    A file header directly followed by the first class's declaration block is
    merged into one chunk; later class declaration blocks are typed ``class``.
    """
    chunks.sort(key=lambda c: c.start_row)
    if (
        len(chunks) >= 2
        and chunks[0].chunk_type == "header"
        and chunks[1].chunk_type == "header"
        and _is_blank(lines, chunks[0].end_row + 1, chunks[1].start_row)
    ):
        first, second = chunks[0], chunks.pop(1)
        first.end_row = second.end_row
        first.symbol_name = second.symbol_name
        first.annotations = second.annotations

    seen_header = False
    for c in chunks:
        if c.chunk_type != "header":
            continue
        if seen_header:
            c.chunk_type = "class"
        seen_header = True
    return chunks


def chunk_source(source: str, grammar: LanguageGrammar) -> List[RawChunk]:
    """Chunk ``source`` along syntax boundaries.

    Returns an empty list when the source cannot be parsed or has no
    top-level nodes; callers fall back to a single whole-file chunk.
    """
    try:
        tree = grammar.parser().parse(source.encode("utf-8"))
    except Exception as e:
        logger.warning(f"tree-sitter parse failed for {grammar.name}: {e}")
        return []

    children = tree.root_node.named_children
    if not children:
        return []

    lines = source.split("\n")
    headers, boundaries, loose_groups = classify_children(children, grammar)
    chunks: List[RawChunk] = []

    if headers:
        chunks.append(RawChunk(
            start_row=0,
            end_row=headers[-1].end_point[0],
            symbol_name=None,
            parent_symbol=None,
            chunk_type="header",
        ))

    for node in boundaries:
        chunks.extend(_boundary_chunks(node, grammar))

    for group in loose_groups:
        chunks.append(RawChunk(
            start_row=group[0].start_point[0],
            end_row=group[-1].end_point[0],
            symbol_name=None,
            parent_symbol=None,
            chunk_type="other",
        ))

    return _normalize_headers(chunks, lines)
