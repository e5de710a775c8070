"""Analysis pipeline: patches -> targets in old/new trees -> method diffs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .config_manager import AnalysisSettings
from .equivalence import bodies_equivalent
from .line_aligner import LineAligner
from .models import (
    AnalysisReport,
    Diagnostic,
    DiagnosticKind,
    MethodDecl,
    PatchDeclaration,
    ReportItem,
    ResolutionStatus,
    SourceTree,
    TypeDecl,
)
from .parser import CSharpParser, load_source_tree
from .patches import PatchExtractor
from .run_log import RunLog
from .symbols import SymbolIndex

logger = logging.getLogger(__name__)

PATCH_SOURCE_MISSING = "// Patch method not found"


class PatchAnalyzer:
    """Compares every patched method between an old and a new base tree.

    Each patch is handled on its own: a target that cannot be resolved or
    located is recorded as a Diagnostic and the run moves on.
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None) -> None:
        self.settings = settings or AnalysisSettings()
        self.extractor = PatchExtractor(
            patch_marker=self.settings.patch_marker,
            marker_family=self.settings.marker_family,
        )
        self.aligner = LineAligner(
            pairing_threshold=self.settings.pairing_threshold,
            token_min_length=self.settings.token_min_length,
            token_similarity_floor=self.settings.token_similarity_floor,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, old_root: Path, new_root: Path, mod_root: Path) -> AnalysisReport:
        """Parse the three source trees and analyze them.

        Raises:
            SourceTreeError: a root directory does not exist.
            ParserUnavailableError: the C# grammar is not installed.
        """
        with RunLog() as run_log:
            parser = CSharpParser()
            logger.info("Analyzing mod source code...")
            mod_tree = load_source_tree(mod_root, parser)
            logger.info("Mapping game source files...")
            old_tree = load_source_tree(old_root, parser)
            new_tree = load_source_tree(new_root, parser)
            report = self.analyze(old_tree, new_tree, mod_tree)
        report.log = run_log.text()
        return report

    def analyze(self, old_tree: SourceTree, new_tree: SourceTree, mod_tree: SourceTree) -> AnalysisReport:
        patches = self.extractor.extract(mod_tree)
        logger.info("Found %d patch methods:", len(patches))
        for patch in patches:
            logger.info("  %s", patch)

        old_index = SymbolIndex.build(old_tree, "old")
        new_index = SymbolIndex.build(new_tree, "new")

        report = AnalysisReport(
            total_patches=len(patches),
            type_counts={"old": len(old_index), "new": len(new_index)},
        )
        for label, index in (("old", old_index), ("new", new_index)):
            for qualname, previous, current in index.duplicates:
                report.diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.DUPLICATE_TYPE,
                    message=f"Type '{qualname}' declared in both {previous} and {current} "
                            f"({label} source); using {current}.",
                ))

        logger.info("Comparing patched methods...")
        for patch in patches:
            item = self._analyze_patch(patch, old_index, new_index, mod_tree, report)
            if item is not None:
                report.items.append(item)

        if not report.items:
            if not patches:
                logger.info("No patch methods were found in the mod source.")
            else:
                logger.info("No changes detected in any patched methods.")
        else:
            logger.info("Found %d changed methods.", len(report.items))
        return report

    # ------------------------------------------------------------------
    # Per-patch steps
    # ------------------------------------------------------------------

    def _analyze_patch(
        self,
        patch: PatchDeclaration,
        old_index: SymbolIndex,
        new_index: SymbolIndex,
        mod_tree: SourceTree,
        report: AnalysisReport,
    ) -> Optional[ReportItem]:
        logger.info(
            "Processing patch: %s:%s -> %s:%s",
            patch.declaring_file, patch.declaring_member, patch.target_class, patch.target_member,
        )

        old_qualname = self._resolve(patch, old_index, report)
        if old_qualname is None:
            return None
        new_qualname = self._resolve(patch, new_index, report)
        if new_qualname is None:
            return None

        old_found = self._locate(patch, old_qualname, old_index, report)
        if old_found is None:
            return None
        new_found = self._locate(patch, new_qualname, new_index, report)
        if new_found is None:
            return None

        old_type, old_method = old_found
        new_type, new_method = new_found
        logger.info("  Found target method in both versions.")

        if bodies_equivalent(old_method, new_method):
            logger.info("  No changes detected in method '%s'.", patch.target_member)
            report.unchanged += 1
            return None

        logger.info("  Change detected in method '%s'.", patch.target_member)
        item_id = f"method{len(report.items) + 1}"
        label = (
            f"{Path(patch.declaring_file).name}:{patch.declaring_member} -> "
            f"{Path(old_type.file_path).name}:{patch.target_member}"
        )
        return ReportItem(
            id=item_id,
            label=label,
            patch=patch,
            diff=self.aligner.align(old_method.source, new_method.source),
            old_source=old_method.source,
            new_source=new_method.source,
            patch_source=patch_method_source(mod_tree, patch),
        )

    def _resolve(self, patch: PatchDeclaration, index: SymbolIndex, report: AnalysisReport) -> Optional[str]:
        result = index.resolve(patch.target_class)
        if result.ok:
            if result.qualname != patch.target_class:
                logger.info(
                    "  Resolved '%s' to '%s' in %s source.",
                    patch.target_class, result.qualname, index.label,
                )
            logger.info("  Found target class/struct in %s: %s", index.label, result.file_path)
            return result.qualname

        if result.status is ResolutionStatus.AMBIGUOUS:
            message = (
                f"Multiple candidates for '{patch.target_class}' in {index.label} source: "
                f"{', '.join(result.candidates)}"
            )
            kind = DiagnosticKind.TARGET_AMBIGUOUS
        else:
            message = f"Target class/struct '{patch.target_class}' not found in {index.label} source."
            kind = DiagnosticKind.TARGET_NOT_FOUND
        logger.warning("  %s", message)
        report.diagnostics.append(Diagnostic(kind, message, patch, result.candidates))
        return None

    def _locate(
        self,
        patch: PatchDeclaration,
        qualname: str,
        index: SymbolIndex,
        report: AnalysisReport,
    ) -> Optional[Tuple[TypeDecl, MethodDecl]]:
        found = index.find_method(qualname, patch.target_member)
        if found is None:
            message = f"Target method '{patch.target_member}' not found in {index.label} version of '{qualname}'."
            logger.warning("  %s", message)
            report.diagnostics.append(Diagnostic(DiagnosticKind.METHOD_NOT_FOUND, message, patch))
            return None
        if not found[1].has_body:
            logger.debug("  '%s.%s' has no body in %s source", qualname, patch.target_member, index.label)
        return found


def patch_method_source(mod_tree: SourceTree, patch: PatchDeclaration) -> str:
    """Source of the patch method itself, from the file that declares it."""
    source_file = mod_tree.file(patch.declaring_file)
    if source_file is None:
        return PATCH_SOURCE_MISSING
    methods: List[MethodDecl] = [
        method
        for type_decl in source_file.types
        for method in type_decl.methods
        if method.name == patch.declaring_member
    ]
    return methods[0].source if methods else PATCH_SOURCE_MISSING
