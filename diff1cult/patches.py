"""Patch extraction: find Harmony-style patch declarations in mod source."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .config import DEFAULT_MARKER_FAMILY, DEFAULT_PATCH_MARKER
from .models import (
    ArgumentKind,
    Marker,
    MarkerArgument,
    PatchDeclaration,
    SourceTree,
    TypeDecl,
)

logger = logging.getLogger(__name__)


def target_class_of(arg: MarkerArgument) -> str:
    """``typeof(T)`` gives ``T``; anything else is read as a quoted string."""
    if arg.kind is ArgumentKind.TYPE_REF:
        return arg.value
    if arg.kind is ArgumentKind.LITERAL:
        return arg.value
    return arg.text.strip('"')


def target_member_of(arg: MarkerArgument) -> str:
    """String literal value, ``nameof`` target, or the raw text unquoted."""
    if arg.kind in (ArgumentKind.LITERAL, ArgumentKind.NAME_OF):
        return arg.value
    return arg.text.strip('"')


class PatchExtractor:
    """Scans type declarations for patch markers.

    Args:
        patch_marker: Simple attribute name that names a patch target.
        marker_family: Substring shared by every patch-related attribute
            (role markers such as ``HarmonyPrefix`` included).
    """

    def __init__(
        self,
        patch_marker: str = DEFAULT_PATCH_MARKER,
        marker_family: str = DEFAULT_MARKER_FAMILY,
    ) -> None:
        self.patch_marker = patch_marker
        self.marker_family = marker_family

    def is_patch_marker(self, marker: Marker) -> bool:
        return marker.simple_name == self.patch_marker

    def is_related_marker(self, marker: Marker) -> bool:
        return self.marker_family in marker.simple_name

    def is_role_marker(self, marker: Marker) -> bool:
        return self.is_related_marker(marker) and not self.is_patch_marker(marker)

    def _target_marker(self, markers: Iterable[Marker]) -> Optional[Marker]:
        for marker in markers:
            if self.is_patch_marker(marker):
                return marker
        return None

    def extract_from_type(self, type_decl: TypeDecl) -> List[PatchDeclaration]:
        """Patches declared by one type, type-level ones first."""
        patches: List[PatchDeclaration] = []

        # (a) type-level: [HarmonyPatch(typeof(X), "M")] on the type itself
        type_marker = self._target_marker(type_decl.markers)
        if type_marker is not None and len(type_marker.arguments) >= 2:
            target_class = target_class_of(type_marker.arguments[0])
            target_member = target_member_of(type_marker.arguments[1])
            for method in type_decl.methods:
                if any(self.is_related_marker(m) for m in method.markers):
                    patches.append(PatchDeclaration(
                        declaring_file=type_decl.file_path,
                        declaring_member=method.name,
                        target_class=target_class,
                        target_member=target_member,
                    ))
                    logger.info(
                        "Found type-level patch: %s targeting %s.%s in %s",
                        method.name, target_class, target_member, type_decl.file_path,
                    )

        # (b) member-level: a method with both a target marker and a role marker
        for method in type_decl.methods:
            member_marker = self._target_marker(method.markers)
            has_role = any(self.is_role_marker(m) for m in method.markers)
            if member_marker is None or not has_role or len(member_marker.arguments) < 2:
                continue
            target_class = target_class_of(member_marker.arguments[0])
            target_member = target_member_of(member_marker.arguments[1])
            patches.append(PatchDeclaration(
                declaring_file=type_decl.file_path,
                declaring_member=method.name,
                target_class=target_class,
                target_member=target_member,
            ))
            logger.info(
                "Found method-level patch: %s targeting %s.%s in %s",
                method.name, target_class, target_member, type_decl.file_path,
            )

        return patches

    def extract(self, tree: SourceTree) -> List[PatchDeclaration]:
        """Every patch in *tree*, in file then declaration order."""
        patches: List[PatchDeclaration] = []
        for type_decl in tree.iter_types():
            patches.extend(self.extract_from_type(type_decl))
        return patches
