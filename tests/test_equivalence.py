"""Tests for structural equivalence of method bodies."""

from diff1cult.equivalence import (
    EMPTY_BLOCK,
    bodies_equivalent,
    signatures_equivalent,
)
from diff1cult.models import MethodDecl


def _method(name: str, signature=None) -> MethodDecl:
    return MethodDecl(name=name, markers=[], source="", start_line=1, end_line=1, body_signature=signature)


def _body_of(parser, body: str) -> MethodDecl:
    source = "class C\n{\n    void M()\n" + body + "\n}\n"
    return parser.parse_source(source).types[0].methods[0]


def test_missing_body_compares_as_empty_block():
    abstract = _method("Render")
    assert not abstract.has_body
    assert bodies_equivalent(abstract, _method("Render", EMPTY_BLOCK))


def test_signatures_equivalent_handles_none():
    assert signatures_equivalent(None, None)
    assert signatures_equivalent(None, EMPTY_BLOCK)
    assert not signatures_equivalent(None, ("block", (("{", "{"), ("return", "return"), ("}", "}"))))


def test_missing_body_differs_from_non_empty_body():
    returning = _method("Render", ("block", (("{", "{"), ("return", "return"), ("}", "}"))))
    assert not bodies_equivalent(_method("Render"), returning)


class TestParsedBodies:
    """Equivalence on real parse trees."""

    def test_whitespace_and_comments_are_ignored(self, csharp_parser):
        old = _body_of(csharp_parser, """    {
        // drop inventory first
        Destroy();
    }""")
        new = _body_of(csharp_parser, """    {
        Destroy( );   /* inventory handled elsewhere */
    }""")
        assert bodies_equivalent(old, new)

    def test_changed_literal_is_not_equivalent(self, csharp_parser):
        old = _body_of(csharp_parser, "    { int value = 42; }")
        new = _body_of(csharp_parser, "    { int value = 100; }")
        assert not bodies_equivalent(old, new)

    def test_reordered_statements_are_not_equivalent(self, csharp_parser):
        old = _body_of(csharp_parser, "    { A(); B(); }")
        new = _body_of(csharp_parser, "    { B(); A(); }")
        assert not bodies_equivalent(old, new)

    def test_equivalence_is_idempotent(self, csharp_parser):
        method = _body_of(csharp_parser, "    { if (x) { return; } Run(x, 1); }")
        assert bodies_equivalent(method, method)
        assert bodies_equivalent(method, method) == bodies_equivalent(method, method)

    def test_empty_body_matches_missing_body(self, csharp_parser):
        empty = _body_of(csharp_parser, "    { }")
        assert bodies_equivalent(empty, _method("M"))
