"""Symbol index and partial-name resolution over one source tree."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from .models import MethodDecl, ResolutionResult, ResolutionStatus, SourceTree, TypeDecl

logger = logging.getLogger(__name__)

_GENERIC_ARGS = re.compile(r"<[^<>]*>")


def normalize_type_name(name: str) -> str:
    """Strip ``global::`` and generic argument lists from a type reference."""
    name = name.strip()
    if name.startswith("global::"):
        name = name[len("global::"):]
    # Innermost first, so nested generics unwind.
    previous = None
    while previous != name:
        previous = name
        name = _GENERIC_ARGS.sub("", name)
    return name.replace(" ", "")


class SymbolIndex:
    """Fully-qualified type name -> declaring file, for one source tree.

    Built once from a parsed tree.  When two declarations share a
    fully-qualified name the later one wins; the overwritten entries are
    kept in ``duplicates`` so callers can report them.
    """

    def __init__(self, label: str = "") -> None:
        self.label = label
        self._files: Dict[str, str] = {}
        self._types: Dict[str, List[TypeDecl]] = {}
        self.duplicates: List[Tuple[str, str, str]] = []

    @classmethod
    def build(cls, tree: SourceTree, label: str = "") -> "SymbolIndex":
        index = cls(label)
        for type_decl in tree.iter_types():
            index._add(type_decl)
        logger.info("Mapped %d types in %s source (%s).", len(index), label or "the", tree.root)
        return index

    def _add(self, type_decl: TypeDecl) -> None:
        previous = self._files.get(type_decl.qualname)
        self._files[type_decl.qualname] = type_decl.file_path
        if previous is not None and type_decl.is_partial:
            self._types[type_decl.qualname].append(type_decl)
            return
        if previous is not None:
            self.duplicates.append((type_decl.qualname, previous, type_decl.file_path))
            logger.debug(
                "Type '%s' redeclared in %s (was %s)",
                type_decl.qualname, type_decl.file_path, previous,
            )
        self._types[type_decl.qualname] = [type_decl]

    def __len__(self) -> int:
        return len(self._files)

    def file_for(self, qualname: str) -> Optional[str]:
        return self._files.get(qualname)

    def find_method(self, qualname: str, method_name: str) -> Optional[Tuple[TypeDecl, MethodDecl]]:
        """First method called *method_name* declared directly in *qualname*.

        Partial declarations are searched in traversal order.
        """
        for type_decl in self._types.get(qualname, ()):
            method = type_decl.find_method(method_name)
            if method is not None:
                return type_decl, method
        return None

    def resolve(self, target: str) -> ResolutionResult:
        """Resolve a possibly partial type name to a unique indexed name.

        An exact key match wins.  Otherwise every key ending in
        ``"." + target`` is a candidate: exactly one resolves, none is
        ``NOT_FOUND``, several is ``AMBIGUOUS`` with the sorted candidate
        list.  Never guesses.
        """
        name = normalize_type_name(target)
        if name in self._files:
            return ResolutionResult(
                target=target,
                status=ResolutionStatus.RESOLVED,
                qualname=name,
                file_path=self._files[name],
            )

        suffix = "." + name
        candidates = sorted(key for key in self._files if key.endswith(suffix))
        if len(candidates) == 1:
            qualname = candidates[0]
            return ResolutionResult(
                target=target,
                status=ResolutionStatus.RESOLVED,
                qualname=qualname,
                file_path=self._files[qualname],
            )
        if candidates:
            return ResolutionResult(
                target=target,
                status=ResolutionStatus.AMBIGUOUS,
                candidates=tuple(candidates),
            )
        return ResolutionResult(target=target, status=ResolutionStatus.NOT_FOUND)
