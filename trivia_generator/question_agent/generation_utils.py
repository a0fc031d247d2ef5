# trivia_generator/question_agent/generation_utils.py
# Purpose: Generation utilities (JSON extraction, stats files, debug output)

"""
Generation Utilities

Consolidates LLM JSON extraction, statistics file saving, and debug output.
"""

from __future__ import annotations

import json
import os
import re
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from trivia_generator.config import APP_CONFIG


# ============================================================================
# JSON Extraction
# ============================================================================

FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]+?\})\s*```")

_DECODER = json.JSONDecoder(strict=False)


def _as_object(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def parse_whole_body(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 1: the trimmed response is a JSON object."""
    try:
        return _as_object(json.loads(text.strip(), strict=False))
    except ValueError:
        return None


def parse_fenced_block(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 2: a ```json fenced block holds the object."""
    match = FENCED_BLOCK_RE.search(text)
    if not match:
        return None
    try:
        return _as_object(json.loads(match.group(1).strip(), strict=False))
    except ValueError:
        return None


def parse_brace_candidates(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 3: decode from each '{' in turn, first object wins."""
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except ValueError:
            value = None
        obj = _as_object(value)
        if obj is not None:
            return obj
        start = text.find("{", start + 1)
    return None


PARSE_STRATEGIES: Tuple[Callable[[str], Optional[Dict[str, Any]]], ...] = (
    parse_whole_body,
    parse_fenced_block,
    parse_brace_candidates,
)


def extract_json(response_text: str) -> Optional[Dict[str, Any]]:
    """Try each parse strategy in order; first success short-circuits."""
    if not response_text:
        return None
    for strategy in PARSE_STRATEGIES:
        data = strategy(response_text)
        if data is not None:
            return data
    return None


def looks_like_json(response_text: str) -> bool:
    """True when the text has a brace or fence, i.e. JSON was attempted."""
    return "{" in (response_text or "") or "```" in (response_text or "")


# ============================================================================
# Statistics Files
# ============================================================================


class StatsWriter:
    """Save JSON statistics snapshots; the latest file is replaced atomically."""

    def __init__(self, stats_path: Path, archive_dir: Optional[Path] = None) -> None:
        self.stats_path = Path(stats_path)
        self.archive_dir = Path(archive_dir) if archive_dir else None

    def save(self, payload: Dict[str, Any]) -> Path:
        self.stats_path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(payload, indent=2, default=str)

        tmp_path = self.stats_path.with_name(self.stats_path.name + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, self.stats_path)

        if self.archive_dir is not None:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            archive_path = self.archive_dir / f"{timestamp}_{self.stats_path.stem}.json"
            archive_path.write_text(text, encoding="utf-8")

        return self.stats_path

    def load_latest(self) -> Optional[Dict[str, Any]]:
        if not self.stats_path.exists():
            return None
        try:
            return json.loads(self.stats_path.read_text(encoding="utf-8"))
        except ValueError:
            return None


# ============================================================================
# Debug Output
# ============================================================================


def debug_print(*args, **kwargs):
    """
    Print debug messages if debug mode is enabled.

    Args:
        *args: Messages to print
        **kwargs: Additional arguments (passed to print)
    """
    if APP_CONFIG.debug_mode:
        timestamp = time.strftime("%H:%M:%S")
        print(f"[{timestamp}] [DEBUG]", *args, **kwargs, file=sys.stderr)
        sys.stderr.flush()
