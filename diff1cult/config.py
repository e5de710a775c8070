"""Configuration paths and analysis defaults for Diff1cult."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("DIFF1CULT_HOME", str(Path.home() / ".diff1cult"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

SOURCE_EXTENSIONS = {".cs"}
SKIP_DIRS = {
    "bin", "obj", ".git", ".vs", ".idea", "node_modules", "packages",
    "Library", "Temp",
}

# Line aligner: deleted/inserted lines are paired only strictly above this.
DEFAULT_PAIRING_THRESHOLD = 0.5
# Token diff: lines less similar than this, or shorter than the minimum
# length, are rendered whole instead of token by token.
DEFAULT_TOKEN_SIMILARITY_FLOOR = 0.3
DEFAULT_TOKEN_MIN_LENGTH = 3

DEFAULT_PATCH_MARKER = "HarmonyPatch"
DEFAULT_MARKER_FAMILY = "Harmony"

DEFAULT_REPORT_FILE = "diff_report.html"
