"""Per-language syntax tables used by the AST chunker.

Each ``LanguageGrammar`` names the tree-sitter node types that act as file
headers, chunk boundaries, attachable annotations/comments and class bodies,
plus the small functions that pull symbol names out of nodes. The chunk
assembly in ``ast_chunker`` only talks to this interface.
"""

from __future__ import annotations

import dataclasses
import threading
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, List, Optional

import tree_sitter_language_pack

if TYPE_CHECKING:
    from tree_sitter import Node, Parser

# Parsers hold per-parse state, so every worker thread gets its own.
_local = threading.local()


def get_parser(language: str) -> "Parser":
    parsers: Dict[str, "Parser"] = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = _local.parsers = {}
    if language not in parsers:
        parsers[language] = tree_sitter_language_pack.get_parser(language)
    return parsers[language]


# -----------------------------------------------------------------------------
# Node helpers
# -----------------------------------------------------------------------------

def node_text(node: Optional["Node"]) -> Optional[str]:
    if node is None or node.text is None:
        return None
    return node.text.decode("utf-8", errors="replace")


def field_text(node: "Node", field: str) -> Optional[str]:
    return node_text(node.child_by_field_name(field))


def first_line(text: str) -> str:
    return text.split("\n", 1)[0].strip()


def _unwrap(node: "Node") -> "Node":
    """Return the declaration wrapped by export/decorator nodes, or the node itself."""
    for field in ("declaration", "definition"):
        inner = node.child_by_field_name(field)
        if inner is not None:
            return inner
    return node


@dataclasses.dataclass(frozen=True)
class LanguageGrammar:
    """Syntax table for one tree-sitter language."""

    name: str
    header_types: FrozenSet[str]
    boundary_types: FrozenSet[str]
    annotation_types: FrozenSet[str]
    comment_types: FrozenSet[str]
    class_types: FrozenSet[str]
    body_types: FrozenSet[str]
    method_types: FrozenSet[str]
    chunk_type_map: Dict[str, str]
    symbol_name: Callable[["Node"], Optional[str]]
    constructor_types: FrozenSet[str] = frozenset()
    constructor_names: FrozenSet[str] = frozenset()
    modifier_annotation_types: FrozenSet[str] = frozenset()

    def parser(self) -> "Parser":
        return get_parser(self.name)

    def is_annotation(self, node: "Node") -> bool:
        return node.type in self.annotation_types

    def is_attachable(self, node: "Node") -> bool:
        return node.type in self.annotation_types or node.type in self.comment_types

    def class_node(self, node: "Node") -> Optional["Node"]:
        """The class-like declaration behind ``node`` (through export/decorator wrappers)."""
        if node.type in self.class_types:
            return node
        inner = _unwrap(node)
        if inner is not node and inner.type in self.class_types:
            return inner
        return None

    def chunk_type(self, node: "Node") -> str:
        if node.type in self.chunk_type_map:
            return self.chunk_type_map[node.type]
        inner = _unwrap(node)
        if inner is not node:
            return self.chunk_type_map.get(inner.type, "export" if node.type == "export_statement" else "other")
        return "other"

    def member_chunk_type(self, node: "Node") -> str:
        if node.type in self.constructor_types:
            return "constructor"
        if node.type in self.method_types:
            inner = _unwrap(node)
            if inner.type in self.class_types:
                return "class"
            if self.symbol_name(node) in self.constructor_names:
                return "constructor"
            return "method"
        return self.chunk_type(node)

    def parent_symbol(self, node: "Node") -> Optional[str]:
        """Name of the closest enclosing class-like ancestor."""
        p = node.parent
        while p is not None:
            if p.type in self.class_types:
                return field_text(p, "name")
            p = p.parent
        return None

    def annotations(self, node: "Node") -> List[str]:
        """Annotations/decorators attached to ``node``, first line of each."""
        result: List[str] = []

        sib = node.prev_named_sibling
        while sib is not None and self.is_annotation(sib):
            result.insert(0, first_line(node_text(sib) or ""))
            sib = sib.prev_named_sibling
        if result:
            return result

        mods = node.child_by_field_name("modifiers")
        if mods is None:
            mods = next((c for c in node.named_children if c.type == "modifiers"), None)
        if mods is not None:
            for ch in mods.named_children:
                if ch.type in self.modifier_annotation_types:
                    result.append(first_line(node_text(ch) or ""))
        if result:
            return result

        # decorators held as children (python decorated_definition, TS class decorators)
        for ch in node.named_children:
            if self.is_annotation(ch):
                result.append(first_line(node_text(ch) or ""))
        return result


# -----------------------------------------------------------------------------
# Symbol name extraction
# -----------------------------------------------------------------------------

def _name_field(node: "Node") -> Optional[str]:
    return field_text(node, "name")


def _name_from_lexical(node: "Node") -> Optional[str]:
    decl = next((c for c in node.named_children if c.type == "variable_declarator"), None)
    return field_text(decl, "name") if decl is not None else None


def _script_symbol_name(node: "Node") -> Optional[str]:
    if node.type in ("lexical_declaration", "variable_declaration"):
        return _name_from_lexical(node)
    if node.type == "export_statement":
        for ch in node.named_children:
            if ch.type in ("lexical_declaration", "variable_declaration"):
                return _name_from_lexical(ch)
            name = field_text(ch, "name")
            if name:
                return name
        return None
    return _name_field(node)


def _python_symbol_name(node: "Node") -> Optional[str]:
    if node.type == "decorated_definition":
        return _name_field(_unwrap(node))
    return _name_field(node)


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

JAVA = LanguageGrammar(
    name="java",
    header_types=frozenset({
        "package_declaration", "import_declaration", "field_declaration", "static_initializer",
    }),
    boundary_types=frozenset({
        "method_declaration", "constructor_declaration", "class_declaration",
        "interface_declaration", "enum_declaration", "record_declaration",
        "annotation_type_declaration",
    }),
    annotation_types=frozenset({"marker_annotation", "annotation"}),
    comment_types=frozenset({"line_comment", "block_comment"}),
    class_types=frozenset({
        "class_declaration", "enum_declaration", "interface_declaration", "record_declaration",
    }),
    body_types=frozenset({"class_body", "interface_body", "enum_body", "record_declaration_body"}),
    method_types=frozenset({
        "method_declaration", "constructor_declaration", "compact_constructor_declaration",
    }),
    constructor_types=frozenset({"constructor_declaration", "compact_constructor_declaration"}),
    modifier_annotation_types=frozenset({"marker_annotation", "annotation"}),
    chunk_type_map={
        "method_declaration": "method",
        "constructor_declaration": "constructor",
        "class_declaration": "class",
        "interface_declaration": "interface",
        "enum_declaration": "enum",
        "record_declaration": "record",
        "annotation_type_declaration": "interface",
    },
    symbol_name=_name_field,
)

_SCRIPT_TYPE_MAP = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
    "lexical_declaration": "const",
    "variable_declaration": "const",
}

_TS_FIELDS = dict(
    header_types=frozenset({"import_statement"}),
    boundary_types=frozenset({
        "export_statement", "function_declaration", "generator_function_declaration",
        "class_declaration", "abstract_class_declaration", "interface_declaration",
        "type_alias_declaration", "enum_declaration", "lexical_declaration",
    }),
    annotation_types=frozenset({"decorator"}),
    comment_types=frozenset({"comment"}),
    class_types=frozenset({"class_declaration", "abstract_class_declaration"}),
    body_types=frozenset({"class_body"}),
    method_types=frozenset({"method_definition"}),
    constructor_names=frozenset({"constructor"}),
    chunk_type_map=_SCRIPT_TYPE_MAP,
    symbol_name=_script_symbol_name,
)

TYPESCRIPT = LanguageGrammar(name="typescript", **_TS_FIELDS)
TSX = LanguageGrammar(name="tsx", **_TS_FIELDS)

JAVASCRIPT = LanguageGrammar(
    name="javascript",
    header_types=frozenset({"import_statement"}),
    boundary_types=frozenset({
        "export_statement", "function_declaration", "generator_function_declaration",
        "class_declaration", "lexical_declaration", "variable_declaration",
    }),
    annotation_types=frozenset({"decorator"}),
    comment_types=frozenset({"comment"}),
    class_types=frozenset({"class_declaration"}),
    body_types=frozenset({"class_body"}),
    method_types=frozenset({"method_definition"}),
    constructor_names=frozenset({"constructor"}),
    chunk_type_map=_SCRIPT_TYPE_MAP,
    symbol_name=_script_symbol_name,
)

PYTHON = LanguageGrammar(
    name="python",
    header_types=frozenset({
        "import_statement", "import_from_statement", "future_import_statement", "expression_statement",
    }),
    boundary_types=frozenset({"function_definition", "class_definition", "decorated_definition"}),
    annotation_types=frozenset({"decorator"}),
    comment_types=frozenset({"comment"}),
    class_types=frozenset({"class_definition"}),
    body_types=frozenset({"block"}),
    method_types=frozenset({"function_definition", "decorated_definition"}),
    constructor_names=frozenset({"__init__"}),
    chunk_type_map={
        "function_definition": "function",
        "class_definition": "class",
    },
    symbol_name=_python_symbol_name,
)

GRAMMARS: Dict[str, LanguageGrammar] = {
    g.name: g for g in (JAVA, TYPESCRIPT, TSX, JAVASCRIPT, PYTHON)
}


def get_grammar(name: str) -> Optional[LanguageGrammar]:
    return GRAMMARS.get(name)
