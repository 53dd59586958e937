"""
Import extraction for JavaScript and TypeScript sources.

Sources are parsed with tree-sitter (TypeScript grammar, TSX for files that
may contain JSX) and module specifiers are read from the syntax tree, so
string contents, comments and regex literals can never look like imports.
Only literal specifiers are reported; ``require(name)`` with a computed
argument cannot be checked statically and is skipped.
"""

import bisect
from functools import lru_cache
from pathlib import PurePath
from typing import Iterator, List, Optional

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from .reference import ImportKind, Reference, SourceFile

# Extensions parsed with the TSX grammar; everything else uses TypeScript
JSX_EXTENSIONS = {".tsx", ".jsx", ".js", ".mjs", ".cjs"}

_STRING_NODES = ("string", "template_string")

# Ancestors that put an ``import("m")`` call in a type position
_TYPE_CONTEXTS = {
    "type_query",
    "type_annotation",
    "type_alias_declaration",
    "type_arguments",
    "opting_type_annotation",
    "omitting_type_annotation",
}

# Ancestors that end the search for a type context
_SCOPE_BOUNDARIES = {"program", "statement_block", "expression_statement"}


@lru_cache(maxsize=None)
def get_parser(jsx: bool) -> Parser:
    """Get or create the tree-sitter parser for one grammar."""
    if jsx:
        language = Language(tree_sitter_typescript.language_tsx())
    else:
        language = Language(tree_sitter_typescript.language_typescript())
    parser = Parser()
    parser.language = language
    return parser


def _uses_jsx_grammar(file_name: str) -> bool:
    return PurePath(file_name).suffix.lower() in JSX_EXTENSIONS


def _find_nodes_recursive(root: Node, node_types) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in node_types:
            yield node
        stack.extend(reversed(node.children))


def _is_field(parent: Node, field_name: str, node: Node) -> bool:
    child = parent.child_by_field_name(field_name)
    return child is not None and child.start_byte == node.start_byte


def _in_type_position(node: Node) -> bool:
    current = node.parent
    while current is not None and current.type not in _SCOPE_BOUNDARIES:
        if current.type in _TYPE_CONTEXTS or current.type.endswith("_type"):
            return True
        current = current.parent
    return False


def _call_kind(string_node: Node) -> Optional[ImportKind]:
    """Kind of a ``require("m")``/``import("m")`` whose first argument is the node."""
    arguments = string_node.parent
    if arguments is None or arguments.type != "arguments":
        return None
    first = next(c for c in arguments.named_children if c.type != "comment")
    if first.start_byte != string_node.start_byte:
        return None

    call = arguments.parent
    if call is None or call.type != "call_expression":
        return None

    function = call.child_by_field_name("function")
    if function is None:
        return None
    if function.type == "import":
        if _in_type_position(call):
            return ImportKind.IMPORT_TYPE
        return ImportKind.DYNAMIC_IMPORT
    if function.type == "identifier" and function.text == b"require":
        return ImportKind.REQUIRE
    return None


def _import_type_kind(string_node: Node) -> Optional[ImportKind]:
    """Kind of ``import("m")`` parsed as a bare token run inside a type."""
    paren = string_node.prev_sibling
    if paren is None or paren.type != "(":
        return None
    keyword = paren.prev_sibling
    if keyword is None or keyword.type != "import":
        return None
    return ImportKind.IMPORT_TYPE


def reference_kind(string_node: Node) -> Optional[ImportKind]:
    """
    Decide whether a string literal is a module specifier.

    Args:
        string_node: A ``string`` or ``template_string`` node

    Returns:
        Optional[ImportKind]: The import form, or None for ordinary strings
    """
    if string_node.type == "template_string":
        if any(c.type == "template_substitution" for c in string_node.children):
            return None
        # Template literals are only accepted as call arguments
        return _call_kind(string_node)

    parent = string_node.parent
    if parent is None:
        return None
    if parent.type == "import_statement" and _is_field(parent, "source", string_node):
        return ImportKind.IMPORT
    if parent.type == "export_statement" and _is_field(parent, "source", string_node):
        return ImportKind.EXPORT_FROM
    if parent.type == "import_require_clause":
        return ImportKind.IMPORT_EQUALS
    return _call_kind(string_node) or _import_type_kind(string_node)


class _Offsets:
    """Maps tree-sitter byte offsets back to character positions."""

    def __init__(self, text: str, data: bytes):
        self.data = data
        self.line_starts: List[int] = [0]
        for index, ch in enumerate(text):
            if ch == "\n":
                self.line_starts.append(index + 1)

    def char_offset(self, byte_offset: int) -> int:
        return len(self.data[:byte_offset].decode("utf-8", errors="surrogatepass"))

    def line_and_column(self, char_offset: int):
        line = bisect.bisect_right(self.line_starts, char_offset)
        return line, char_offset - self.line_starts[line - 1] + 1


def find_imports(
    source_file: SourceFile, kinds: ImportKind = ImportKind.ALL
) -> Iterator[Reference]:
    """
    Find every external module reference in a source file.

    Args:
        source_file: The file to scan
        kinds: Import forms to report (default: all of them)

    Yields:
        Reference: Module specifiers in the order they appear in the file
    """
    data = source_file.text.encode("utf-8", errors="surrogatepass")
    tree = get_parser(_uses_jsx_grammar(source_file.file_name)).parse(data)
    offsets = _Offsets(source_file.text, data)

    for node in _find_nodes_recursive(tree.root_node, _STRING_NODES):
        kind = reference_kind(node)
        if kind is None or not kind & kinds:
            continue

        start = offsets.char_offset(node.start_byte)
        end = offsets.char_offset(node.end_byte)
        line, column = offsets.line_and_column(start)
        yield Reference(
            text=source_file.text[start + 1 : end - 1],
            line=line,
            column=column,
            start=start,
            end=end,
            kind=kind,
        )
