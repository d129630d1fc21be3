#!/usr/bin/env python3
"""
fetch_sources.py

Resolve rule sources to raw lines.

Behavior:
 - Local files are read as UTF-8; a missing or empty file contributes no lines.
 - Remote lists are fetched concurrently with aiohttp, one GET per source and
   no retry.
 - Any failure (network error, non-200 status, timeout, malformed locator)
   collapses to "this source contributed zero lines". Failures are logged
   and reported per source, never raised.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path
from typing import NamedTuple, Sequence

import aiohttp

from domain_blacklist import utils
from domain_blacklist.sources import RuleSource, SourceKind, parse_source_descriptors

logger = logging.getLogger(__name__)


# ----------------------------------------
# Constants
# ----------------------------------------
DEFAULT_CONCURRENCY = 8
DEFAULT_TIMEOUT = 30
DEFAULT_CONNECT_TIMEOUT = 10
USER_AGENT = "Mozilla/5.0 (compatible; DomainBlacklist/1.0)"

STATUS_OK = "ok"
STATUS_MISSING = "missing"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class SourceFetchError(Exception):
    """Raised when a remote list answers with a non-success status."""


class FetchResult(NamedTuple):
    """Raw lines resolved for one source."""

    source: RuleSource
    status: str
    lines: list[str]
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def _split_lines(text: str) -> list[str]:
    """Split on CR, LF or CRLF only; a trailing line break adds no empty line."""
    lines = LINE_BREAK_RE.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _validate_limits(concurrency: int, timeout: float) -> None:
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    if timeout <= 0:
        raise ValueError(f"timeout must be > 0, got {timeout}")


# ----------------------------------------
# Local files
# ----------------------------------------
def read_file_source(source: RuleSource) -> FetchResult:
    """Read a local rule file. Missing/empty files are skipped silently."""
    path = Path(source.locator) if source.locator else None
    if path is None or not path.is_file():
        logger.debug("Skipping missing file source: %s", source.locator)
        return FetchResult(source, STATUS_MISSING, [])
    try:
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        logger.warning("Could not read %s: %s", source.locator, exc)
        return FetchResult(source, STATUS_FAILED, [], f"{type(exc).__name__}: {exc}")
    lines = _split_lines(text)
    if not lines:
        logger.debug("Skipping empty file source: %s", source.locator)
        return FetchResult(source, STATUS_EMPTY, [])
    return FetchResult(source, STATUS_OK, lines)


# ----------------------------------------
# Remote lists
# ----------------------------------------
async def fetch_remote_source(
    session: aiohttp.ClientSession,
    source: RuleSource,
    timeout: float = DEFAULT_TIMEOUT,
) -> FetchResult:
    """
    Fetch a remote list with a single GET.

    Returns a FetchResult; errors are reported in it rather than raised.
    """
    url = source.locator
    timeout_obj = aiohttp.ClientTimeout(
        total=timeout,
        connect=min(DEFAULT_CONNECT_TIMEOUT, timeout),
        sock_read=timeout,
    )
    try:
        async with session.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout_obj,
            allow_redirects=True,
        ) as resp:
            if resp.status != 200:
                raise SourceFetchError(f"HTTP {resp.status}")
            text = await resp.text(encoding="utf-8-sig", errors="replace")
    except asyncio.TimeoutError:
        error = "Timeout - server did not respond in time"
    except aiohttp.ClientError as exc:
        error = f"Connection error - {type(exc).__name__}: {exc}"
    except SourceFetchError as exc:
        error = str(exc)
    except Exception as exc:
        # malformed locators surface as ValueError/TypeError from yarl
        error = f"{type(exc).__name__}: {exc}"
    else:
        lines = _split_lines(text)
        if not lines:
            logger.debug("Remote source returned no content: %s", url)
            return FetchResult(source, STATUS_EMPTY, [])
        logger.debug("Fetched %s (%d lines)", url, len(lines))
        return FetchResult(source, STATUS_OK, lines)

    logger.warning("Failed to fetch %s: %s", url, error)
    return FetchResult(source, STATUS_FAILED, [], error)


# ----------------------------------------
# Resolve all sources
# ----------------------------------------
async def fetch_one(
    session: aiohttp.ClientSession | None,
    source: RuleSource,
    timeout: float = DEFAULT_TIMEOUT,
) -> FetchResult:
    """Resolve a single source of either kind."""
    if source.kind is SourceKind.FILE:
        return read_file_source(source)
    if session is None:
        raise RuntimeError("remote source requires a client session")
    return await fetch_remote_source(session, source, timeout)


async def _fetch_with_limit(
    session: aiohttp.ClientSession | None,
    sem: asyncio.Semaphore,
    source: RuleSource,
    timeout: float,
) -> FetchResult:
    """Run fetch_one() under concurrency semaphore."""
    async with sem:
        return await fetch_one(session, source, timeout)


async def fetch_all(
    sources: Sequence[RuleSource],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    session: aiohttp.ClientSession | None = None,
) -> list[FetchResult]:
    """
    Resolve all sources concurrently.

    Results are returned in input order. A caller-supplied session is used
    as is and left open.
    """
    _validate_limits(concurrency, timeout)
    if not sources:
        return []

    sem = asyncio.Semaphore(concurrency)
    needs_session = any(s.kind is SourceKind.REMOTE for s in sources)

    async def _run(active: aiohttp.ClientSession | None) -> list[FetchResult]:
        tasks = [_fetch_with_limit(active, sem, s, timeout) for s in sources]
        return list(await asyncio.gather(*tasks))

    if session is not None or not needs_session:
        return await _run(session)

    connector = aiohttp.TCPConnector(limit=concurrency, ttl_dns_cache=300)
    async with aiohttp.ClientSession(connector=connector) as own_session:
        return await _run(own_session)


def _print_summary(results: Sequence[FetchResult]) -> None:
    counts: dict[str, int] = {}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1
    print("fetch_sources: finished")
    print(f"  processed: {len(results)}")
    for status in (STATUS_OK, STATUS_EMPTY, STATUS_MISSING, STATUS_FAILED):
        print(f"    {status + ':':<9}{counts.get(status, 0)}")
    failed = [r for r in results if r.status == STATUS_FAILED]
    if failed:
        print("\nFailed sources:")
        for r in failed:
            print(f"  - {r.source}")
            print(f"    Reason: {r.error}")


# ----------------------------------------
# CLI
# ----------------------------------------
def main() -> None:
    """CLI entrypoint: resolve every descriptor and report line counts."""
    parser = argparse.ArgumentParser(description="Fetch blacklist sources once")
    parser.add_argument(
        "-s",
        "--sources",
        default=utils.BLACKLIST_SOURCES_FILENAME,
        help="File with source descriptors",
    )
    parser.add_argument(
        "--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Max concurrent fetches"
    )
    parser.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT, help="Request timeout (seconds)"
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)

    sources = parse_source_descriptors(utils.load_descriptors(args.sources))
    results = asyncio.run(
        fetch_all(sources, concurrency=args.concurrency, timeout=args.timeout)
    )
    _print_summary(results)


if __name__ == "__main__":
    main()
