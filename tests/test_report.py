"""Tests for HTML and JSON report export."""

import json
from pathlib import Path

import pytest

from diff1cult.line_aligner import LineAligner
from diff1cult.models import (
    AnalysisReport,
    Diagnostic,
    DiagnosticKind,
    PaneRow,
    PatchDeclaration,
    ReportItem,
    RowKind,
    DiffSegment,
)
from diff1cult.report import (
    render_html,
    render_row,
    report_to_dict,
    write_html_report,
    write_json_report,
)


@pytest.fixture
def sample_report() -> AnalysisReport:
    patch = PatchDeclaration("mod/Patches.cs", "Prefix", "Pawn", "Tick")
    old = "void Tick()\n{\n    int value = 42;\n}\n"
    new = "void Tick()\n{\n    int value = 100;\n    if (a < b) Log(\"</script>\");\n}\n"
    item = ReportItem(
        id="method1",
        label="Patches.cs:Prefix -> Pawn.cs:Tick",
        patch=patch,
        diff=LineAligner().align(old, new),
        old_source=old,
        new_source=new,
        patch_source="static bool Prefix() { return true; }",
    )
    ghost = PatchDeclaration("mod/Patches.cs", "GhostPrefix", "Ghost", "Haunt")
    return AnalysisReport(
        total_patches=2,
        items=[item],
        diagnostics=[Diagnostic(DiagnosticKind.TARGET_NOT_FOUND, "Target class/struct 'Ghost' not found.", ghost)],
        log="Found 2 patch methods:\n<done>",
        type_counts={"old": 1, "new": 1},
    )


class TestRenderRow:

    def test_changed_segments_are_wrapped(self):
        row = PaneRow(
            kind=RowKind.MODIFIED, old_number=3, new_number=3,
            segments=[DiffSegment("int value = "), DiffSegment("42", changed=True), DiffSegment(";")],
        )
        html = render_row(row, "old")
        assert html == (
            '<pre class="line modified-line" data-line="3">'
            'int value = <span class="deleted">42</span>;</pre>'
        )
        assert '<span class="inserted">42</span>' in render_row(row, "new")

    def test_placeholder_has_no_number(self):
        assert render_row(PaneRow(kind=RowKind.PLACEHOLDER), "new") == (
            '<pre class="line placeholder" data-line=""></pre>'
        )

    def test_text_is_escaped(self):
        row = PaneRow(kind=RowKind.UNCHANGED, old_number=1, new_number=1, segments=[DiffSegment("a < b && c")])
        assert "a &lt; b &amp;&amp; c" in render_row(row, "old")


class TestHtmlReport:

    def test_placeholders_are_filled(self, sample_report: AnalysisReport):
        html = render_html(sample_report)
        assert "{{" not in html
        assert "Found 2 Patched Methods. Changes Detected in 1." in html
        assert '<li data-id="method1">Patches.cs:Prefix -&gt; Pawn.cs:Tick</li>' in html
        assert "&lt;done&gt;" in html

    def test_payload_cannot_close_script(self, sample_report: AnalysisReport):
        html = render_html(sample_report)
        script = html.split("const methods = ", 1)[1]
        payload = script.split(";\n", 1)[0]
        assert "</" not in payload
        data = json.loads(payload.replace("<\\/", "</"))
        assert set(data["method1"]) == {"label", "diff", "old", "new", "patch"}
        assert "diff-container" in data["method1"]["diff"]

    def test_write_html_report(self, sample_report: AnalysisReport, temp_dir: Path):
        output = temp_dir / "report.html"
        write_html_report(sample_report, output)
        assert output.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")

    def test_empty_report(self):
        html = render_html(AnalysisReport(total_patches=0))
        assert "Found 0 Patched Methods. Changes Detected in 0." in html


class TestJsonReport:

    def test_report_to_dict(self, sample_report: AnalysisReport):
        data = report_to_dict(sample_report)
        assert data["total_patches"] == 2
        assert data["changed"] == 1
        assert data["skipped"] == 1
        assert data["types"] == {"old": 1, "new": 1}

        item = data["items"][0]
        assert item["patch"]["target_class"] == "Pawn"
        assert len(item["old_pane"]) == len(item["new_pane"])
        kinds = {row["kind"] for row in item["old_pane"]}
        assert "modified" in kinds
        assert "placeholder" in kinds

        diagnostic = data["diagnostics"][0]
        assert diagnostic["kind"] == "TargetNotFound"
        assert diagnostic["patch"] == "mod/Patches.cs:GhostPrefix -> Ghost:Haunt"

    def test_write_json_report(self, sample_report: AnalysisReport, temp_dir: Path):
        output = temp_dir / "report.json"
        write_json_report(sample_report, output)
        assert json.loads(output.read_text(encoding="utf-8"))["changed"] == 1
