"""Configuration manager for Diff1cult using TOML files."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass
class AnalysisSettings:
    """Effective settings for one analysis run."""

    pairing_threshold: float = config.DEFAULT_PAIRING_THRESHOLD
    token_similarity_floor: float = config.DEFAULT_TOKEN_SIMILARITY_FLOOR
    token_min_length: int = config.DEFAULT_TOKEN_MIN_LENGTH
    patch_marker: str = config.DEFAULT_PATCH_MARKER
    marker_family: str = config.DEFAULT_MARKER_FAMILY
    output: str = config.DEFAULT_REPORT_FILE

    def to_toml_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            "diff": {
                "pairing_threshold": self.pairing_threshold,
                "token_similarity_floor": self.token_similarity_floor,
                "token_min_length": self.token_min_length,
            },
            "markers": {
                "patch_marker": self.patch_marker,
                "marker_family": self.marker_family,
            },
            "report": {"output": self.output},
        }


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    A missing file is an empty config; an unreadable or malformed one is
    logged and treated the same way.
    """
    path = config_file or config.CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring config file %s: %s", path, exc)
        return {}


def _fraction(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0.0 <= value <= 1.0:
        return float(value)
    logger.warning("Invalid %s=%r in config (expected 0..1); using %s", key, value, default)
    return default


def _positive_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    logger.warning("Invalid %s=%r in config (expected a non-negative integer); using %s", key, value, default)
    return default


def _name(section: Dict[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if isinstance(value, str) and value.strip():
        return value.strip()
    logger.warning("Invalid %s=%r in config; using %r", key, value, default)
    return default


def load_settings(config_file: Optional[Path] = None) -> AnalysisSettings:
    """Build AnalysisSettings from ``[diff]``, ``[markers]`` and ``[report]``."""
    raw = load_full_config(config_file)
    diff = raw.get("diff", {}) or {}
    markers = raw.get("markers", {}) or {}
    report = raw.get("report", {}) or {}
    defaults = AnalysisSettings()

    return AnalysisSettings(
        pairing_threshold=_fraction(diff, "pairing_threshold", defaults.pairing_threshold),
        token_similarity_floor=_fraction(diff, "token_similarity_floor", defaults.token_similarity_floor),
        token_min_length=_positive_int(diff, "token_min_length", defaults.token_min_length),
        patch_marker=_name(markers, "patch_marker", defaults.patch_marker),
        marker_family=_name(markers, "marker_family", defaults.marker_family),
        output=_name(report, "output", defaults.output),
    )


def save_settings(settings: AnalysisSettings, config_file: Optional[Path] = None) -> Path:
    """Write *settings* to TOML, preserving unrelated sections in the file."""
    path = config_file or config.CONFIG_FILE
    full = load_full_config(path)
    full.update(settings.to_toml_dict())
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        toml.dump(full, f)
    return path


def settings_as_dict(settings: AnalysisSettings) -> Dict[str, Any]:
    return asdict(settings)
