"""C# declaration parser built on Tree-sitter.

Extracts the declarations the analysis needs from C# source:

- type declarations (class / struct / interface / record) with their
  namespace ancestry, attributes, and methods;
- method declarations with attributes, source text, and a structural
  signature of the body;
- attribute arguments classified as string literal, ``typeof``
  reference, ``nameof`` indirection, or raw expression text.

Tree-sitter produces a concrete syntax tree that preserves every token and
tolerates syntax errors, so partially broken files still yield the
declarations that did parse.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, List, Optional

from .config import SKIP_DIRS, SOURCE_EXTENSIONS
from .equivalence import structural_signature
from .models import (
    ArgumentKind,
    Marker,
    MarkerArgument,
    MethodDecl,
    SourceFile,
    SourceTree,
    TypeDecl,
)

logger = logging.getLogger(__name__)

GRAMMAR_MODULE = "tree_sitter_c_sharp"

# Roslyn's TypeDeclarationSyntax: enums and delegates carry no methods.
TYPE_DECLARATIONS = frozenset({
    "class_declaration",
    "struct_declaration",
    "interface_declaration",
    "record_declaration",
    "record_struct_declaration",
})
NAMESPACE_DECLARATION = "namespace_declaration"
FILE_SCOPED_NAMESPACE = "file_scoped_namespace_declaration"
STRING_LITERALS = frozenset({
    "string_literal",
    "verbatim_string_literal",
    "raw_string_literal",
})


class ParserUnavailableError(RuntimeError):
    """tree-sitter or the C# grammar package cannot be imported."""


class SourceTreeError(RuntimeError):
    """A source root is missing or is not a directory."""


# ===================================================================
# Parser
# ===================================================================

class CSharpParser:
    """Error-tolerant C# declaration parser.

    Uses the per-language ``tree-sitter-c-sharp`` grammar package, which
    exposes a ``language()`` capsule for ``tree_sitter.Language``.
    """

    def __init__(self) -> None:
        try:
            from tree_sitter import Language, Parser as TSParser  # type: ignore[import-untyped]
            grammar = importlib.import_module(GRAMMAR_MODULE)
        except ImportError as exc:
            raise ParserUnavailableError(
                "tree-sitter C# support is not installed. "
                "Install with: pip install tree-sitter tree-sitter-c-sharp"
            ) from exc

        self._parser = TSParser(Language(grammar.language()))
        logger.debug("Loaded tree-sitter parser for c_sharp")

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse_source(self, source: str, path: str = "<memory>") -> SourceFile:
        source_bytes = source.encode("utf-8")
        tree = self._parser.parse(source_bytes)
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s; keeping what parsed", path)

        types: List[TypeDecl] = []
        _DeclarationWalker(source_bytes, path, types).walk(tree.root_node, [], [])
        return SourceFile(path=path, text=source, types=types)

    def parse_file(self, file_path: Path) -> SourceFile:
        source = file_path.read_text(encoding="utf-8-sig", errors="replace")
        return self.parse_source(source, str(file_path))


def load_source_tree(root: Path, parser: Optional[CSharpParser] = None) -> SourceTree:
    """Parse every C# file under *root*, in sorted path order.

    Build output and tool directories (``bin``, ``obj``, ``.git``, ...) are
    skipped.  Files that cannot be read are logged and skipped.

    Raises:
        SourceTreeError: *root* does not exist or is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise SourceTreeError(f"Directory '{root}' does not exist.")

    parser = parser or CSharpParser()
    tree = SourceTree(root=str(root))
    for ext in sorted(SOURCE_EXTENSIONS):
        for file_path in sorted(root.rglob(f"*{ext}")):
            rel_parts = file_path.relative_to(root).parts
            if any(part in SKIP_DIRS for part in rel_parts[:-1]):
                continue
            try:
                tree.files.append(parser.parse_file(file_path))
            except OSError as exc:
                logger.warning("Failed to read %s: %s", file_path, exc)

    logger.debug("Parsed %d files under %s", len(tree.files), root)
    return tree


# ===================================================================
# Declaration walker
# ===================================================================

class _DeclarationWalker:
    """Collects TypeDecl objects from a compilation unit."""

    def __init__(self, source: bytes, path: str, types: List[TypeDecl]) -> None:
        self.source = source
        self.path = path
        self.types = types

    def walk(self, ts_node: Any, namespaces: List[str], enclosing: List[str]) -> None:
        # A file-scoped namespace applies to every declaration after it.
        scope = list(namespaces)
        for child in ts_node.children:
            if child.type == NAMESPACE_DECLARATION:
                name = _name_of(child)
                body = child.child_by_field_name("body")
                if body is not None:
                    self.walk(body, scope + _split_name(name), enclosing)
            elif child.type == FILE_SCOPED_NAMESPACE:
                scope = scope + _split_name(_name_of(child))
                # some grammar versions nest the members under the node
                self.walk(child, scope, enclosing)
            elif child.type in TYPE_DECLARATIONS:
                self._process_type(child, scope, enclosing)
            elif child.type == "declaration_list":
                self.walk(child, scope, enclosing)

    def _process_type(self, type_node: Any, namespaces: List[str], enclosing: List[str]) -> None:
        name = _name_of(type_node)
        if not name:
            return
        qualname = ".".join(namespaces + enclosing + [name])

        type_decl = TypeDecl(
            name=name,
            qualname=qualname,
            kind=type_node.type.replace("_declaration", ""),
            file_path=self.path,
            is_partial=_has_modifier(type_node, "partial"),
            markers=_markers(type_node),
        )
        self.types.append(type_decl)

        body = type_node.child_by_field_name("body")
        if body is None:
            return
        for member in body.children:
            if member.type == "method_declaration":
                method = self._method(member)
                if method is not None:
                    type_decl.methods.append(method)
            elif member.type in TYPE_DECLARATIONS:
                self._process_type(member, namespaces, enclosing + [name])

    def _method(self, method_node: Any) -> Optional[MethodDecl]:
        name = _name_of(method_node)
        if not name:
            return None
        body = method_node.child_by_field_name("body")
        return MethodDecl(
            name=name,
            markers=_markers(method_node),
            source=self._source_with_indent(method_node),
            start_line=method_node.start_point[0] + 1,
            end_line=method_node.end_point[0] + 1,
            body_signature=structural_signature(body) if body is not None else None,
        )

    def _source_with_indent(self, ts_node: Any) -> str:
        """Node text, including the indentation of its first line."""
        line_start = ts_node.start_byte - ts_node.start_point[1]
        prefix = self.source[line_start:ts_node.start_byte]
        text = self.source[ts_node.start_byte:ts_node.end_byte]
        if prefix.strip():
            prefix = b""
        return (prefix + text).decode("utf-8", errors="replace")


# ===================================================================
# Attribute helpers
# ===================================================================

def _markers(decl_node: Any) -> List[Marker]:
    markers: List[Marker] = []
    for child in decl_node.children:
        if child.type != "attribute_list":
            continue
        for attr in child.children:
            if attr.type != "attribute":
                continue
            name_node = attr.child_by_field_name("name")
            if name_node is None:
                name_node = attr.named_children[0] if attr.named_children else None
            if name_node is None:
                continue
            arguments: List[MarkerArgument] = []
            for arg_list in attr.children:
                if arg_list.type != "attribute_argument_list":
                    continue
                for arg in arg_list.named_children:
                    if arg.type == "attribute_argument":
                        arguments.append(classify_argument(arg))
            markers.append(Marker(name=_text(name_node).replace(" ", ""), arguments=tuple(arguments)))
    return markers


def classify_argument(arg_node: Any) -> MarkerArgument:
    """Classify one ``attribute_argument`` node by expression shape."""
    raw = _text(arg_node).strip()
    expr = arg_node.named_children[-1] if arg_node.named_children else None
    if expr is None:
        return MarkerArgument(ArgumentKind.RAW, raw)

    if expr.type == "typeof_expression":
        type_node = expr.child_by_field_name("type")
        if type_node is None and expr.named_children:
            type_node = expr.named_children[0]
        if type_node is not None:
            return MarkerArgument(ArgumentKind.TYPE_REF, raw, _text(type_node).strip())

    if expr.type in STRING_LITERALS:
        return MarkerArgument(ArgumentKind.LITERAL, raw, string_literal_value(_text(expr)))

    if expr.type == "invocation_expression":
        func = expr.child_by_field_name("function")
        if func is not None and _text(func).strip() == "nameof":
            referenced = _nameof_target(expr)
            if referenced is not None:
                return MarkerArgument(ArgumentKind.NAME_OF, raw, referenced)

    return MarkerArgument(ArgumentKind.RAW, raw)


def _nameof_target(invocation: Any) -> Optional[str]:
    arg_list = invocation.child_by_field_name("arguments")
    if arg_list is None:
        return None
    args = [a for a in arg_list.named_children if a.type == "argument"]
    if len(args) != 1 or not args[0].named_children:
        return None
    expr = args[0].named_children[-1]
    if expr.type == "member_access_expression":
        name_node = expr.child_by_field_name("name")
        if name_node is not None:
            return _text(name_node).strip()
    return _text(expr).strip()


def string_literal_value(literal: str) -> str:
    """Unquote a C# string literal (regular, verbatim, or raw)."""
    text = literal.strip()
    if text.startswith('"""'):
        quotes = len(text) - len(text.lstrip('"'))
        return text[quotes:len(text) - quotes].strip("\r\n")
    if text.startswith('@"') or text.startswith('$@"') or text.startswith('@$"'):
        body = text[text.index('"') + 1:]
        body = body[:-1] if body.endswith('"') else body
        return body.replace('""', '"')
    if text.startswith('"'):
        body = text[1:-1] if len(text) >= 2 and text.endswith('"') else text[1:]
        return _unescape(body)
    return text.strip('"')


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", '"': '"', "'": "'", "\\": "\\"}


def _unescape(body: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


# ===================================================================
# Shared helpers
# ===================================================================

def _text(ts_node: Any) -> str:
    return ts_node.text.decode("utf-8", errors="replace")


def _name_of(decl_node: Any) -> str:
    name_node = decl_node.child_by_field_name("name")
    return _text(name_node).replace(" ", "") if name_node is not None else ""


def _split_name(name: str) -> List[str]:
    return [part for part in name.split(".") if part]


def _has_modifier(decl_node: Any, modifier: str) -> bool:
    for child in decl_node.children:
        if child.type == "modifier" and _text(child).strip() == modifier:
            return True
    return False
