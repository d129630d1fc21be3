#!/usr/bin/env python3
"""
classify.py

Classify blacklist source lines and extract domain names.

A line is normalized once (lowercase + trim). Comment and blank lines are
skipped; every other line is tested against *all* grammars applicable to the
source's trust level. Formats are not mutually exclusive in the wild, so
matching never stops at the first hit: each grammar that matches contributes
its capture, and names repeated within the same line are dropped.

Usage:
    python -m domain_blacklist.classify [--trusted] INPUT
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, NamedTuple

from domain_blacklist import grammar, utils

logger = logging.getLogger(__name__)
CS_KEYS = utils.CLASSIFY_STATS_KEYS

normalize_line = utils.normalize_line


class GrammarMatch(NamedTuple):
    """Result of one grammar matching one line."""

    grammar: str
    name: str


def is_comment_or_blank(normalized: str) -> bool:
    """True if a normalized line is empty or a '#' comment."""
    return grammar.COMMENT_OR_BLANK_RE.match(normalized) is not None


def match_line(line: str, trusted: bool) -> list[GrammarMatch]:
    """Return every grammar match for `line`, in grammar table order."""
    tmp = normalize_line(line)
    if is_comment_or_blank(tmp):
        return []
    matches: list[GrammarMatch] = []
    for g in grammar.grammars_for(trusted):
        name = g.extract(tmp)
        if name is not None:
            matches.append(GrammarMatch(g.name, name))
    return matches


def classify_line(line: str, trusted: bool) -> list[str]:
    """Return the distinct domain names extracted from `line`."""
    names: dict[str, None] = {}
    for m in match_line(line, trusted):
        names.setdefault(m.name, None)
    return list(names)


def classify_lines(
    lines: Iterable[str], trusted: bool
) -> tuple[list[str], dict[str, int]]:
    """
    Classify all lines of one source.

    Returns (names, stats) where names is an ordered, duplicate-free list
    private to the source.
    """
    stats: dict[str, int] = {
        CS_KEYS.LINES_IN: 0,
        CS_KEYS.SKIPPED_COMMENTS: 0,
        CS_KEYS.UNMATCHED: 0,
        CS_KEYS.NAMES_OUT: 0,
    }
    names: dict[str, None] = {}
    for line in lines:
        stats[CS_KEYS.LINES_IN] += 1
        if is_comment_or_blank(normalize_line(line)):
            stats[CS_KEYS.SKIPPED_COMMENTS] += 1
            continue
        extracted = classify_line(line, trusted)
        if not extracted:
            stats[CS_KEYS.UNMATCHED] += 1
            continue
        for name in extracted:
            names.setdefault(name, None)
    stats[CS_KEYS.NAMES_OUT] = len(names)
    return list(names), stats


def _print_summary(stats: dict[str, int]) -> None:
    logger.info(utils.format_summary("classify", [stats], utils.CLASSIFY_SUMMARY_ORDER))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Extract domain names from a single rule list"
    )
    parser.add_argument("input", help="Rule list to classify")
    parser.add_argument(
        "--trusted",
        action="store_true",
        help="Parse with the trusted (operator file) grammar",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)

    try:
        text = Path(args.input).read_text(encoding="utf-8-sig", errors="replace")
        extracted, file_stats = classify_lines(text.splitlines(), args.trusted)
        for domain in extracted:
            print(domain)
        _print_summary(file_stats)
    except Exception as exc:
        logger.exception("ERROR in classify: %s", exc)
        sys.exit(1)
