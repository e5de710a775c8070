"""Structural equivalence of method bodies, ignoring formatting trivia."""

from __future__ import annotations

from typing import Any, Optional

from .models import MethodDecl, Signature

# Node kinds that carry no structure (tree-sitter "extras").
TRIVIA_KINDS = frozenset({"comment", "preproc_region", "preproc_endregion"})

# What a body-less (abstract / extern / interface) method compares as.
EMPTY_BLOCK: Signature = ("block", (("{", "{"), ("}", "}")))


def structural_signature(node: Any) -> Signature:
    """Reduce a tree-sitter node to a hashable structure without trivia.

    Leaf tokens become ``(kind, text)``; inner nodes become
    ``(kind, (child, ...))``.  Whitespace never appears in the tree, and
    comment nodes are dropped, so two bodies that differ only in layout
    or comments get the same signature.
    """
    children = [child for child in node.children if child.type not in TRIVIA_KINDS]
    if not children:
        return (node.type, node.text.decode("utf-8", errors="replace"))
    return (node.type, tuple(structural_signature(child) for child in children))


def signatures_equivalent(a: Optional[Signature], b: Optional[Signature]) -> bool:
    """Compare two body signatures; ``None`` stands for a missing body."""
    return (a if a is not None else EMPTY_BLOCK) == (b if b is not None else EMPTY_BLOCK)


def bodies_equivalent(old: MethodDecl, new: MethodDecl) -> bool:
    """True when both methods' bodies have the same parsed structure."""
    return signatures_equivalent(old.body_signature, new.body_signature)
