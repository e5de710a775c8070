"""Core data models shared by parsing, resolution, diffing, and reporting layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

# A structural signature is a nested tuple: (kind, text) for leaf tokens,
# (kind, (child, child, ...)) for inner nodes.
Signature = Tuple


# ---------------------------------------------------------------------------
# Declaration tree (produced by the parser adapter)
# ---------------------------------------------------------------------------

class ArgumentKind(str, Enum):
    """Shape of a marker argument expression."""

    LITERAL = "literal"
    TYPE_REF = "type_ref"
    NAME_OF = "name_of"
    RAW = "raw"


@dataclass(frozen=True)
class MarkerArgument:
    kind: ArgumentKind
    text: str
    # LITERAL: the unquoted string value. TYPE_REF: the referenced type name.
    # NAME_OF: the simple name of the referenced member. RAW: unused.
    value: str = ""


@dataclass(frozen=True)
class Marker:
    """An attribute attached to a type or member declaration."""

    name: str
    arguments: Tuple[MarkerArgument, ...] = ()

    @property
    def simple_name(self) -> str:
        name = self.name.rsplit(".", 1)[-1].rsplit("::", 1)[-1]
        if name.endswith("Attribute") and name != "Attribute":
            name = name[: -len("Attribute")]
        return name


@dataclass
class MethodDecl:
    name: str
    markers: List[Marker]
    source: str
    start_line: int
    end_line: int
    body_signature: Optional[Signature] = None

    @property
    def has_body(self) -> bool:
        return self.body_signature is not None


@dataclass
class TypeDecl:
    name: str
    qualname: str
    kind: str
    file_path: str
    is_partial: bool = False
    markers: List[Marker] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)

    def find_method(self, name: str) -> Optional[MethodDecl]:
        """Return the first method called *name*, in declaration order."""
        for method in self.methods:
            if method.name == name:
                return method
        return None


@dataclass
class SourceFile:
    path: str
    text: str
    types: List[TypeDecl] = field(default_factory=list)


@dataclass
class SourceTree:
    root: str
    files: List[SourceFile] = field(default_factory=list)

    def iter_types(self):
        for source_file in self.files:
            yield from source_file.types

    def file(self, path: str) -> Optional[SourceFile]:
        for source_file in self.files:
            if source_file.path == path:
                return source_file
        return None


# ---------------------------------------------------------------------------
# Patches and resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatchDeclaration:
    declaring_file: str
    declaring_member: str
    target_class: str
    target_member: str

    def __str__(self) -> str:
        return (
            f"{self.declaring_file}:{self.declaring_member} -> "
            f"{self.target_class}:{self.target_member}"
        )


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of resolving a (possibly partial) type name against a Symbol Index."""

    target: str
    status: ResolutionStatus
    qualname: Optional[str] = None
    file_path: Optional[str] = None
    candidates: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED


class DiagnosticKind(str, Enum):
    TARGET_NOT_FOUND = "TargetNotFound"
    TARGET_AMBIGUOUS = "TargetAmbiguous"
    METHOD_NOT_FOUND = "MethodNotFound"
    DUPLICATE_TYPE = "DuplicateType"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    patch: Optional[PatchDeclaration] = None
    candidates: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Diff model
# ---------------------------------------------------------------------------

class LineKind(str, Enum):
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    INSERTED = "inserted"


class RowKind(str, Enum):
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    INSERTED = "inserted"
    MODIFIED = "modified"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class DiffSegment:
    text: str
    changed: bool = False


@dataclass
class DiffLine:
    text: str
    kind: LineKind
    old_number: Optional[int] = None
    new_number: Optional[int] = None
    # Old version of the line, terminator included (unchanged and deleted lines).
    old_text: Optional[str] = None

    @property
    def content(self) -> str:
        """Line text without its terminator."""
        return self.text.rstrip("\r\n")


@dataclass(frozen=True)
class ModifiedPair:
    """Back-reference between a deleted and an inserted line (indices into ``AlignedDiff.lines``)."""

    deleted_index: int
    inserted_index: int
    similarity: float


@dataclass
class PaneRow:
    kind: RowKind
    old_number: Optional[int] = None
    new_number: Optional[int] = None
    segments: List[DiffSegment] = field(default_factory=list)
    source_index: Optional[int] = None

    @property
    def text(self) -> str:
        return "".join(seg.text for seg in self.segments)


@dataclass
class AlignedDiff:
    lines: List[DiffLine]
    pairs: List[ModifiedPair]
    old_pane: List[PaneRow]
    new_pane: List[PaneRow]


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class ReportItem:
    id: str
    label: str
    patch: PatchDeclaration
    diff: AlignedDiff
    old_source: str
    new_source: str
    patch_source: str


@dataclass
class AnalysisReport:
    total_patches: int
    items: List[ReportItem] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    unchanged: int = 0
    log: str = ""
    type_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return sum(1 for d in self.diagnostics if d.patch is not None)
