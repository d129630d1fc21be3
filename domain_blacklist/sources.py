"""
sources.py

Rule source descriptors.

A source is either a local file (trusted by default) or a remote list
(untrusted by default). Trust can be overridden per source.

Descriptor strings follow the proxy configuration format:
    file:C:/lists/my-blacklist.txt    -> local file
    https://example.org/list.txt      -> remote list
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable

from domain_blacklist import utils

FILE_PREFIX = utils.FILE_PREFIX


class SourceKind(enum.Enum):
    FILE = "file"
    REMOTE = "remote"


@dataclass(frozen=True)
class RuleSource:
    """
    One origin of domain-blocking entries.

    Attributes:
        kind: Whether the locator is a local path or a remote endpoint.
        locator: Path or fetch endpoint, kept as an opaque string.
        trusted: Explicit trust override; None derives trust from kind.
    """

    kind: SourceKind
    locator: str
    trusted: bool | None = None

    @classmethod
    def file(cls, path: str, trusted: bool | None = None) -> RuleSource:
        return cls(SourceKind.FILE, str(path), trusted)

    @classmethod
    def remote(cls, url: str, trusted: bool | None = None) -> RuleSource:
        return cls(SourceKind.REMOTE, url, trusted)

    @property
    def is_trusted(self) -> bool:
        if self.trusted is not None:
            return self.trusted
        return self.kind is SourceKind.FILE

    def __str__(self) -> str:
        if self.kind is SourceKind.FILE:
            return f"{FILE_PREFIX}{self.locator}"
        return self.locator


def parse_source_descriptor(descriptor: str) -> RuleSource:
    """Parse a `file:`-prefixed path or a bare remote endpoint."""
    if descriptor is None or not descriptor.strip():
        raise ValueError("empty source descriptor")
    text = descriptor.strip()
    if text.startswith(FILE_PREFIX):
        return RuleSource.file(text[len(FILE_PREFIX):])
    return RuleSource.remote(text)


def parse_source_descriptors(descriptors: Iterable[str]) -> list[RuleSource]:
    """Parse descriptors in order, skipping blank and '#' comment entries."""
    return [
        parse_source_descriptor(d)
        for d in descriptors
        if d and not utils.is_comment_or_blank(d.strip())
    ]


__all__ = [
    "SourceKind",
    "RuleSource",
    "parse_source_descriptor",
    "parse_source_descriptors",
]
