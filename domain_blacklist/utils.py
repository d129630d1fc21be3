# utils.py
"""
Utility functions shared by the blacklist build stages.

This module provides:
- Shared constants (default file names, descriptor prefix, buffer size)
- Statistics key namespaces used by the classifier and the CLI summary
- Line helpers (normalization, comment/blank detection)
- Loading of descriptor and whitelist files
- Atomic writes of the final rule file

Example Usage:
    from domain_blacklist.utils import normalize_line, load_whitelist

    normalize_line("  Example.COM \\n")  # Returns: "example.com"
    whitelist = load_whitelist("domain-whitelist.txt")
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)


# -------------------------
# Constants
# -------------------------

FILE_PREFIX = "file:"
COMMENT_MARKER = "#"

# Default file names used by the DNS proxy setup
BLACKLIST_SOURCES_FILENAME = "blacklist.txt"
WHITELIST_RULE_FILENAME = "domain-whitelist.txt"
BLACKLIST_RULE_FILENAME = "domain-blacklist.txt"

IO_BUFFER_SIZE = 131072  # 128KB buffer for file I/O

# Shared statistics key namespaces (avoid magic strings across modules)
CLASSIFY_STATS_KEYS = SimpleNamespace(
    LINES_IN="lines_in",
    SKIPPED_COMMENTS="skipped_comments",
    UNMATCHED="unmatched",
    NAMES_OUT="names_out",
)

CLASSIFY_SUMMARY_ORDER = (
    CLASSIFY_STATS_KEYS.LINES_IN,
    CLASSIFY_STATS_KEYS.SKIPPED_COMMENTS,
    CLASSIFY_STATS_KEYS.UNMATCHED,
    CLASSIFY_STATS_KEYS.NAMES_OUT,
)


# -------------------------
# Line helpers
# -------------------------


def normalize_line(line: str | None) -> str:
    """Lowercase and trim a raw line."""
    if not line:
        return ""
    return line.lower().strip()


def is_comment_or_blank(line: str) -> bool:
    """True for an empty line or one starting with '#'. Expects a normalized line."""
    return not line or line.startswith(COMMENT_MARKER)


def read_config_lines(path: str | Path) -> list[str]:
    """
    Return the stripped, non-comment, non-blank lines of a config file.

    A missing file yields an empty list.
    """
    p = Path(path)
    if not p.is_file():
        logger.debug("Config file not found: %s", p)
        return []
    entries: list[str] = []
    with p.open("r", encoding="utf-8-sig", errors="replace") as fh:
        for raw in fh:
            line = raw.strip()
            if is_comment_or_blank(line):
                continue
            entries.append(line)
    return entries


def load_descriptors(path: str | Path) -> list[str]:
    """Load source descriptors (one per line) from `path`."""
    return read_config_lines(path)


def load_whitelist(path: str | Path) -> set[str]:
    """Load whitelist entries from `path`, normalized the same way rule lines are."""
    return {normalize_line(entry) for entry in read_config_lines(path)}


# -------------------------
# Filesystem helpers
# -------------------------


def atomic_write_lines(target: str | Path, lines: Iterable[str]) -> int:
    """
    Atomically write `lines` to `target`, one per line with '\\n' endings.

    Returns the number of lines written.
    """
    out_path = Path(target)
    out_dir = out_path.parent
    out_dir.mkdir(parents=True, exist_ok=True)

    count = 0
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=out_dir,
            prefix=".tmp_blacklist_",
            delete=False,
            buffering=IO_BUFFER_SIZE,
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            for line in lines:
                tmp_file.write(line + "\n")
                count += 1
            tmp_file.flush()
        tmp_path.replace(out_path)
        tmp_path = None
    finally:
        if tmp_path and tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
    return count


# -------------------------
# Summary helpers
# -------------------------


def summarize_stats(
    stats_list: Sequence[dict[str, int | str]], keys: Sequence[str]
) -> dict[str, int]:
    """Aggregate totals for the provided keys across a list of stats dicts."""
    return {key: sum(int(s.get(key, 0)) for s in stats_list) for key in keys}


def format_summary(
    label: str, stats_list: Sequence[dict[str, int | str]], keys: Sequence[str]
) -> str:
    """Return a space-joined `key=value` summary line."""
    totals = summarize_stats(stats_list, keys)
    parts = [f"{label}: sources={len(stats_list)}"]
    parts.extend(f"{key}={totals.get(key, 0)}" for key in keys)
    return " ".join(parts)


__all__ = [
    # Functions
    "normalize_line",
    "is_comment_or_blank",
    "read_config_lines",
    "load_descriptors",
    "load_whitelist",
    "atomic_write_lines",
    "summarize_stats",
    "format_summary",
    # Constants
    "FILE_PREFIX",
    "COMMENT_MARKER",
    "BLACKLIST_SOURCES_FILENAME",
    "WHITELIST_RULE_FILENAME",
    "BLACKLIST_RULE_FILENAME",
    "IO_BUFFER_SIZE",
    "CLASSIFY_STATS_KEYS",
    "CLASSIFY_SUMMARY_ORDER",
]
