#!/usr/bin/env python3
"""
pipeline.py

Build the domain blacklist rule file consumed by the DNS proxy.

Pipeline stages:
  1. load        — Read source descriptors and the whitelist.
  2. aggregate   — Fetch every source, extract names, merge, subtract whitelist.
  3. write       — Atomically write one domain per line to the output file.

Sources that cannot be read or fetched are reported and skipped; an empty
result is still written.

Usage:
    python -m domain_blacklist.pipeline -s blacklist.txt -w domain-whitelist.txt \
        -o domain-blacklist.txt
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from domain_blacklist import utils
from domain_blacklist.aggregate import AggregationResult, build
from domain_blacklist.fetch_sources import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT
from domain_blacklist.sources import RuleSource, parse_source_descriptors

logger = logging.getLogger("pipeline")


# ----------------------------------------
# Helpers
# ----------------------------------------
def _configure_logging(verbose: bool = False) -> logging.Logger:
    """Return configured pipeline logger with a clean, single-line format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        force=True,
        stream=sys.stdout,
    )
    return logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Aggregate domain blacklist sources into a single rule file"
    )
    parser.add_argument(
        "-s",
        "--sources",
        default=utils.BLACKLIST_SOURCES_FILENAME,
        help="File with source descriptors (file:<path> or URL, one per line)",
    )
    parser.add_argument(
        "--source",
        action="append",
        default=[],
        metavar="DESCRIPTOR",
        help="Additional source descriptor (repeatable)",
    )
    parser.add_argument(
        "-w",
        "--whitelist",
        default=utils.WHITELIST_RULE_FILENAME,
        help="Whitelist file (one domain per line)",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=utils.BLACKLIST_RULE_FILENAME,
        help="Output rule file",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help="Max concurrent fetches",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Request timeout (seconds)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def load_sources(sources_file: str, extra: Sequence[str] = ()) -> list[RuleSource]:
    """Return descriptors from `sources_file` followed by `extra`."""
    descriptors = utils.load_descriptors(sources_file)
    descriptors.extend(extra)
    return parse_source_descriptors(descriptors)


# ----------------------------------------
# Pipeline core
# ----------------------------------------
def transform(
    sources: Sequence[RuleSource],
    whitelist: set[str],
    output_file: str,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
) -> AggregationResult:
    """Aggregate `sources` and write the final rule set to `output_file`."""
    start = time.perf_counter()
    result = build(sources, whitelist, concurrency=concurrency, timeout=timeout)
    logger.info(f"Finished aggregating in {time.perf_counter() - start:.2f}s")

    out_path = Path(output_file)
    written = utils.atomic_write_lines(out_path, result.domains)
    logger.info(f"Output saved to: {out_path} ({written} rules)")
    return result


def _print_summary(result: AggregationResult) -> None:
    """Log aggregate statistics for all processed sources."""
    stats_list = [r.stats for r in result.reports]
    summary = utils.format_summary("aggregate", stats_list, utils.CLASSIFY_SUMMARY_ORDER)
    logger.info(
        f"{summary} merged={result.merged} whitelisted={result.whitelisted} "
        f"rules_out={len(result.domains)}"
    )
    if result.failed:
        logger.info("Failed sources:")
        for report in result.failed:
            logger.info(f"  - {report.locator}")
            logger.info(f"    Reason: {report.error}")


# ----------------------------------------
# CLI entrypoint
# ----------------------------------------
def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    log = _configure_logging(args.verbose)

    try:
        sources = load_sources(args.sources, args.source)
        whitelist = utils.load_whitelist(args.whitelist)
        log.info(
            f"Starting pipeline run: {len(sources)} sources, "
            f"{len(whitelist)} whitelist entries"
        )
        result = transform(
            sources,
            whitelist,
            args.output,
            concurrency=args.concurrency,
            timeout=args.timeout,
        )
        _print_summary(result)
    except Exception as exc:
        log.exception(f"[FATAL] {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
