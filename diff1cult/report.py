"""Report export: standalone HTML (two-pane diff viewer) and JSON."""

from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Any, Dict, List

from .models import AnalysisReport, PaneRow, ReportItem, RowKind

TEMPLATE_PATH = Path(__file__).parent / "templates" / "report.html"

_ROW_CLASSES = {
    RowKind.UNCHANGED: "unchanged",
    RowKind.DELETED: "deleted-line",
    RowKind.INSERTED: "inserted-line",
    RowKind.MODIFIED: "modified-line",
    RowKind.PLACEHOLDER: "placeholder",
}


def render_row(row: PaneRow, side: str) -> str:
    """One ``<pre class="line ...">`` element for the *side* pane."""
    number = row.old_number if side == "old" else row.new_number
    mark = "deleted" if side == "old" else "inserted"
    parts: List[str] = []
    for seg in row.segments:
        text = html.escape(seg.text)
        parts.append(f'<span class="{mark}">{text}</span>' if seg.changed else text)
    data_line = "" if number is None else str(number)
    return (
        f'<pre class="line {_ROW_CLASSES[row.kind]}" data-line="{data_line}">'
        f'{"".join(parts)}</pre>'
    )


def render_diff(item: ReportItem) -> str:
    old_rows = "\n".join(render_row(row, "old") for row in item.diff.old_pane)
    new_rows = "\n".join(render_row(row, "new") for row in item.diff.new_pane)
    return (
        '<div class="diff-container">\n'
        f'<div class="diff-pane old-pane">\n{old_rows}\n</div>\n'
        f'<div class="diff-pane new-pane">\n{new_rows}\n</div>\n'
        "</div>"
    )


def _code(text: str) -> str:
    return f"<pre><code>{html.escape(text)}</code></pre>"


def html_payload(report: AnalysisReport) -> Dict[str, Any]:
    return {
        item.id: {
            "label": item.label,
            "diff": render_diff(item),
            "old": _code(item.old_source),
            "new": _code(item.new_source),
            "patch": _code(item.patch_source),
        }
        for item in report.items
    }


def render_html(report: AnalysisReport) -> str:
    template = TEMPLATE_PATH.read_text(encoding="utf-8")
    items = "\n".join(
        f'<li data-id="{html.escape(item.id)}">{html.escape(item.label)}</li>'
        for item in report.items
    )
    summary = (
        f"Found {report.total_patches} Patched Methods. "
        f"Changes Detected in {len(report.items)}."
    )
    # "</" would end the inline <script> block early
    payload = json.dumps(html_payload(report), indent=2).replace("</", "<\\/")
    return (
        template
        .replace("{{ SUMMARY }}", html.escape(summary))
        .replace("{{ ITEMS }}", items)
        .replace("{{ LOG }}", html.escape(report.log))
        .replace("{{ REPORT_DATA }}", payload)
    )


def write_html_report(report: AnalysisReport, output_file: Path) -> None:
    output_file.write_text(render_html(report), encoding="utf-8")


# ------------------------------------------------------------------
# JSON
# ------------------------------------------------------------------

def _row_dict(row: PaneRow) -> Dict[str, Any]:
    return {
        "kind": row.kind.value,
        "old_line": row.old_number,
        "new_line": row.new_number,
        "segments": [{"text": seg.text, "changed": seg.changed} for seg in row.segments],
    }


def report_to_dict(report: AnalysisReport) -> Dict[str, Any]:
    return {
        "total_patches": report.total_patches,
        "changed": len(report.items),
        "unchanged": report.unchanged,
        "skipped": report.skipped,
        "types": report.type_counts,
        "items": [
            {
                "id": item.id,
                "label": item.label,
                "patch": {
                    "file": item.patch.declaring_file,
                    "member": item.patch.declaring_member,
                    "target_class": item.patch.target_class,
                    "target_member": item.patch.target_member,
                },
                "old_pane": [_row_dict(row) for row in item.diff.old_pane],
                "new_pane": [_row_dict(row) for row in item.diff.new_pane],
                "old_source": item.old_source,
                "new_source": item.new_source,
                "patch_source": item.patch_source,
            }
            for item in report.items
        ],
        "diagnostics": [
            {
                "kind": diag.kind.value,
                "message": diag.message,
                "patch": str(diag.patch) if diag.patch else None,
                "candidates": list(diag.candidates),
            }
            for diag in report.diagnostics
        ],
    }


def write_json_report(report: AnalysisReport, output_file: Path) -> None:
    output_file.write_text(json.dumps(report_to_dict(report), indent=2), encoding="utf-8")
