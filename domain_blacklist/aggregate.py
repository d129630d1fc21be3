#!/usr/bin/env python3
"""
aggregate.py

Merge domain names from all sources and subtract the whitelist.

Each source is fetched and classified into its own private name list; the
lists are folded into one set in a single merge step once every source has
finished. The whitelist is then removed by exact string equality and the
result sorted.

Usage:
    from domain_blacklist import RuleSource, aggregate

    rules = aggregate(
        [RuleSource.file("my-list.txt"), RuleSource.remote("https://example.org/hosts")],
        whitelist={"example.com"},
    )
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import aiohttp

from domain_blacklist import utils
from domain_blacklist.classify import classify_lines
from domain_blacklist.fetch_sources import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT,
    STATUS_FAILED,
    FetchResult,
    fetch_all,
)
from domain_blacklist.sources import RuleSource

logger = logging.getLogger(__name__)
CS_KEYS = utils.CLASSIFY_STATS_KEYS


@dataclass
class SourceReport:
    """Per-source diagnostic: fetch outcome plus classification counters."""

    locator: str
    kind: str
    trusted: bool
    status: str
    error: str | None = None
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def names_out(self) -> int:
        return self.stats.get(CS_KEYS.NAMES_OUT, 0)


@dataclass
class AggregationResult:
    """
    Output of one aggregation run.

    Attributes:
        domains: Final sorted, duplicate-free rule set.
        reports: One SourceReport per input source, in input order.
        merged: Size of the merged set before whitelist subtraction.
        whitelisted: Number of names removed by the whitelist.
    """

    domains: list[str]
    reports: list[SourceReport]
    merged: int = 0
    whitelisted: int = 0

    @property
    def failed(self) -> list[SourceReport]:
        return [r for r in self.reports if r.status == STATUS_FAILED]


def merge_names(per_source: Iterable[Iterable[str]]) -> set[str]:
    """Fold per-source name lists into one duplicate-free set."""
    merged: set[str] = set()
    for names in per_source:
        merged.update(names)
    return merged


def subtract_whitelist(rules: Iterable[str], whitelist: Iterable[str]) -> set[str]:
    """Remove every rule equal to a whitelist entry. No case folding, no wildcards."""
    return set(rules).difference(whitelist)


def _classify_result(result: FetchResult) -> tuple[list[str], SourceReport]:
    source = result.source
    names, stats = classify_lines(result.lines, source.is_trusted)
    report = SourceReport(
        locator=source.locator,
        kind=source.kind.value,
        trusted=source.is_trusted,
        status=result.status,
        error=result.error,
        stats=stats,
    )
    return names, report


async def aggregate_async(
    sources: Sequence[RuleSource],
    whitelist: Iterable[str] = (),
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    session: aiohttp.ClientSession | None = None,
) -> AggregationResult:
    """Fetch, classify, merge and filter all sources."""
    results = await fetch_all(
        sources, concurrency=concurrency, timeout=timeout, session=session
    )

    per_source: list[list[str]] = []
    reports: list[SourceReport] = []
    for result in results:
        names, report = _classify_result(result)
        per_source.append(names)
        reports.append(report)
        logger.debug(
            "%s: status=%s names=%d", result.source, result.status, report.names_out
        )

    merged = merge_names(per_source)
    final = subtract_whitelist(merged, whitelist)
    return AggregationResult(
        domains=sorted(final),
        reports=reports,
        merged=len(merged),
        whitelisted=len(merged) - len(final),
    )


def build(
    sources: Sequence[RuleSource],
    whitelist: Iterable[str] = (),
    **options,
) -> AggregationResult:
    """
    Synchronous wrapper around aggregate_async() returning diagnostics too.

    Starts its own event loop, so it cannot be called from a coroutine;
    async callers await aggregate_async() instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError(
            "build() cannot run inside an event loop; await aggregate_async() instead"
        )
    return asyncio.run(aggregate_async(sources, whitelist, **options))


def aggregate(
    sources: Sequence[RuleSource],
    whitelist: Iterable[str] = (),
    **options,
) -> list[str]:
    """
    Return the sorted rule set built from `sources` minus `whitelist`.

    Blocking; from a running event loop use aggregate_async().
    """
    return build(sources, whitelist, **options).domains


__all__ = [
    "SourceReport",
    "AggregationResult",
    "merge_names",
    "subtract_whitelist",
    "aggregate_async",
    "build",
    "aggregate",
]
