"""Tests for patch declaration extraction."""

from diff1cult.models import ArgumentKind, Marker, MarkerArgument, MethodDecl, TypeDecl
from diff1cult.patches import PatchExtractor, target_class_of, target_member_of


def _typeof(name: str) -> MarkerArgument:
    return MarkerArgument(ArgumentKind.TYPE_REF, f"typeof({name})", name)


def _literal(value: str) -> MarkerArgument:
    return MarkerArgument(ArgumentKind.LITERAL, f'"{value}"', value)


def _method(name: str, *markers: Marker) -> MethodDecl:
    return MethodDecl(name=name, markers=list(markers), source="", start_line=1, end_line=1)


def _type(markers, methods) -> TypeDecl:
    return TypeDecl(
        name="Patch", qualname="Mod.Patch", kind="class",
        file_path="Mod/Patch.cs", markers=list(markers), methods=list(methods),
    )


class TestArguments:

    def test_target_class_from_typeof(self):
        assert target_class_of(_typeof("Verse.Pawn")) == "Verse.Pawn"

    def test_target_class_from_literal(self):
        assert target_class_of(_literal("Verse.Pawn")) == "Verse.Pawn"

    def test_target_class_from_raw_text(self):
        assert target_class_of(MarkerArgument(ArgumentKind.RAW, "SomeConst")) == "SomeConst"

    def test_target_member_from_nameof(self):
        arg = MarkerArgument(ArgumentKind.NAME_OF, "nameof(Pawn.Kill)", "Kill")
        assert target_member_of(arg) == "Kill"

    def test_target_member_from_raw_text(self):
        assert target_member_of(MarkerArgument(ArgumentKind.RAW, "Names.Tick")) == "Names.Tick"


class TestPatchExtractor:
    """Type-level and member-level patch discovery."""

    def test_type_level_patch(self):
        type_decl = _type(
            [Marker("HarmonyPatch", (_typeof("Pawn"), _literal("Tick")))],
            [_method("Prefix", Marker("HarmonyPrefix")), _method("Helper")],
        )
        patches = PatchExtractor().extract_from_type(type_decl)

        assert len(patches) == 1
        patch = patches[0]
        assert patch.declaring_file == "Mod/Patch.cs"
        assert patch.declaring_member == "Prefix"
        assert (patch.target_class, patch.target_member) == ("Pawn", "Tick")

    def test_type_level_patch_needs_two_arguments(self):
        type_decl = _type(
            [Marker("HarmonyPatch", (_typeof("Pawn"),))],
            [_method("Prefix", Marker("HarmonyPrefix"))],
        )
        assert PatchExtractor().extract_from_type(type_decl) == []

    def test_member_level_patch(self):
        type_decl = _type([], [
            _method(
                "Postfix",
                Marker("HarmonyPatch", (_literal("Verse.Pawn"), _literal("Kill"))),
                Marker("HarmonyPostfix"),
            ),
        ])
        patches = PatchExtractor().extract_from_type(type_decl)
        assert [(p.declaring_member, p.target_class, p.target_member) for p in patches] == [
            ("Postfix", "Verse.Pawn", "Kill"),
        ]

    def test_member_level_patch_needs_role_marker(self):
        type_decl = _type([], [
            _method("Postfix", Marker("HarmonyPatch", (_literal("Verse.Pawn"), _literal("Kill")))),
        ])
        assert PatchExtractor().extract_from_type(type_decl) == []

    def test_type_level_patches_come_first(self):
        type_decl = _type(
            [Marker("HarmonyPatch", (_typeof("A"), _literal("One")))],
            [
                _method(
                    "Member",
                    Marker("HarmonyPatch", (_typeof("B"), _literal("Two"))),
                    Marker("HarmonyTranspiler"),
                ),
                _method("Prefix", Marker("HarmonyPrefix")),
            ],
        )
        patches = PatchExtractor().extract_from_type(type_decl)
        assert [(p.declaring_member, p.target_class) for p in patches] == [
            ("Member", "A"),
            ("Prefix", "A"),
            ("Member", "B"),
        ]

    def test_attribute_suffix_and_namespace_are_ignored(self):
        type_decl = _type(
            [Marker("HarmonyLib.HarmonyPatchAttribute", (_typeof("Pawn"), _literal("Tick")))],
            [_method("Prefix", Marker("HarmonyLib.HarmonyPrefix"))],
        )
        assert len(PatchExtractor().extract_from_type(type_decl)) == 1

    def test_unrelated_markers_are_ignored(self):
        type_decl = _type(
            [Marker("Serializable"), Marker("HarmonyPatch", (_typeof("Pawn"), _literal("Tick")))],
            [_method("Prefix", Marker("Obsolete")), _method("Postfix", Marker("HarmonyPostfix"))],
        )
        patches = PatchExtractor().extract_from_type(type_decl)
        assert [p.declaring_member for p in patches] == ["Postfix"]

    def test_custom_marker_names(self):
        extractor = PatchExtractor(patch_marker="ModPatch", marker_family="Mod")
        type_decl = _type([], [
            _method("Hook", Marker("ModPatch", (_typeof("Pawn"), _literal("Tick"))), Marker("ModPrefix")),
        ])
        assert len(extractor.extract_from_type(type_decl)) == 1
        assert PatchExtractor().extract_from_type(type_decl) == []


class TestParsedPatches:
    """Extraction from parsed C# source."""

    def test_extract_from_source(self, csharp_parser, sample_csharp_code: str):
        from diff1cult.models import SourceTree

        tree = SourceTree(root=".", files=[csharp_parser.parse_source(sample_csharp_code, "Patches.cs")])
        patches = PatchExtractor().extract(tree)

        assert len(patches) == 1
        assert patches[0].target_class == "Game.Core.World"
        assert patches[0].target_member == "Update"
        assert patches[0].declaring_member == "Prefix"

    def test_nameof_and_verbatim_targets(self, csharp_parser):
        from diff1cult.models import SourceTree

        source = '''
class Patches
{
    [HarmonyPatch(typeof(Pawn), nameof(Pawn.Kill))]
    [HarmonyPrefix]
    static void KillPrefix() { }

    [HarmonyPatch(@"Verse.Pawn", "Tick")]
    [HarmonyPostfix]
    static void TickPostfix() { }
}
'''
        tree = SourceTree(root=".", files=[csharp_parser.parse_source(source, "Patches.cs")])
        patches = PatchExtractor().extract(tree)
        assert [(p.target_class, p.target_member) for p in patches] == [
            ("Pawn", "Kill"),
            ("Verse.Pawn", "Tick"),
        ]
