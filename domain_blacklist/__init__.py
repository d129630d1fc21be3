"""
domain_blacklist package - Domain blacklist builder for DNS filtering proxies

Modules:
    grammar: Rule grammars (ad-block, hosts, CSV, trusted literal)
    classify: Line normalization and multi-grammar domain extraction
    sources: Rule source descriptors (local file / remote list)
    fetch_sources: Concurrent, single-attempt source fetching
    aggregate: Merge, whitelist subtraction, aggregate() entry point
    pipeline: Command-line batch build of the rule file
"""

from domain_blacklist.aggregate import (
    AggregationResult,
    SourceReport,
    aggregate,
    aggregate_async,
    build,
    subtract_whitelist,
)
from domain_blacklist.sources import RuleSource, SourceKind, parse_source_descriptor

__version__ = "1.0.0"

__all__ = [
    "AggregationResult",
    "SourceReport",
    "RuleSource",
    "SourceKind",
    "aggregate",
    "aggregate_async",
    "build",
    "parse_source_descriptor",
    "subtract_whitelist",
]
