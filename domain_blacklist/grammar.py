"""
grammar.py

Rule grammars for domain blacklist sources.

Every grammar is a regex with exactly one capture group that yields the
candidate domain. Patterns are applied to a lowercased, trimmed line.

Trusted grammar (operator-authored local files):
    trusted_literal   example.com, *.example.com, ads-1.example.net

Untrusted grammars (remote/community lists):
    ublock_rule       ||ads.example.com^, @@||ads.example.com^$third-party
    plain_domain      ads.example.com
    hosts_entry       0.0.0.0 ads.example.com
    mdl_csv           "2019/01/01_00:00","ads.example.com","1.2.3.4",...
    generic_csv       ads.example.com,malware,2019-01-01 00:00:00,...
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern


# Letters, digits, dots and hyphens ending in an alphabetic label of 2+ chars
DOMAIN_TOKEN = r"[a-z0-9.-]+[.][a-z]{2,}"

COMMENT_OR_BLANK = "comment_or_blank"
UBLOCK_RULE = "ublock_rule"
PLAIN_DOMAIN = "plain_domain"
HOSTS_ENTRY = "hosts_entry"
MDL_CSV = "mdl_csv"
GENERIC_CSV = "generic_csv"
TRUSTED_LITERAL = "trusted_literal"


@dataclass(frozen=True)
class Grammar:
    """A named line pattern; group 1 captures the domain."""

    name: str
    pattern: Pattern[str]
    trusted: bool

    def extract(self, line: str) -> str | None:
        """Return the captured domain if `line` matches, else None."""
        m = self.pattern.match(line)
        return m.group(1) if m else None


COMMENT_OR_BLANK_RE = re.compile(r"^(#|$)")

UNTRUSTED_GRAMMARS: tuple[Grammar, ...] = (
    Grammar(
        UBLOCK_RULE,
        re.compile(rf"^@*\|\|({DOMAIN_TOKEN})\^?(?:\$(?:popup|third-party))?$"),
        trusted=False,
    ),
    Grammar(
        PLAIN_DOMAIN,
        re.compile(rf"^({DOMAIN_TOKEN})$"),
        trusted=False,
    ),
    Grammar(
        HOSTS_ENTRY,
        re.compile(
            rf"^[0-9]{{1,3}}[.][0-9]{{1,3}}[.][0-9]{{1,3}}[.][0-9]{{1,3}}\s+({DOMAIN_TOKEN})$"
        ),
        trusted=False,
    ),
    Grammar(
        MDL_CSV,
        re.compile(rf'^"[^"]+","({DOMAIN_TOKEN})",'),
        trusted=False,
    ),
    Grammar(
        GENERIC_CSV,
        re.compile(rf"^({DOMAIN_TOKEN}),.+,[0-9: /-]+,"),
        trusted=False,
    ),
)

TRUSTED_GRAMMARS: tuple[Grammar, ...] = (
    Grammar(
        TRUSTED_LITERAL,
        re.compile(r"^([*a-z0-9.-]+)$"),
        trusted=True,
    ),
)


def grammars_for(trusted: bool) -> tuple[Grammar, ...]:
    """Return the grammars applicable to a source of the given trust level."""
    return TRUSTED_GRAMMARS if trusted else UNTRUSTED_GRAMMARS


__all__ = [
    "Grammar",
    "DOMAIN_TOKEN",
    "COMMENT_OR_BLANK_RE",
    "UNTRUSTED_GRAMMARS",
    "TRUSTED_GRAMMARS",
    "grammars_for",
    "COMMENT_OR_BLANK",
    "UBLOCK_RULE",
    "PLAIN_DOMAIN",
    "HOSTS_ENTRY",
    "MDL_CSV",
    "GENERIC_CSV",
    "TRUSTED_LITERAL",
]
