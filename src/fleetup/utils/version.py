# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/utils/version.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from packaging.version import InvalidVersion, Version


@dataclass(frozen=True)
class BinaryVersion:
    """
    A k0s style version such as ``v1.29.2+k0s.0``.

    ``raw`` is kept for display so messages show the version exactly as the
    binary reported it; comparisons use the parsed form.
    """

    raw: str
    parsed: Version = field(compare=False)

    @classmethod
    def parse(cls, raw: str) -> "BinaryVersion":
        text = raw.strip()
        try:
            return cls(raw=text, parsed=Version(text))
        except InvalidVersion as e:
            raise ValueError(f"invalid version {text!r}") from e

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BinaryVersion):
            return self.parsed == other.parsed
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.parsed)

    def __lt__(self, other: "BinaryVersion") -> bool:
        return self.parsed < other.parsed

    def __str__(self) -> str:
        return self.raw


def try_parse(raw: Optional[str]) -> Optional[BinaryVersion]:
    if not raw:
        return None
    try:
        return BinaryVersion.parse(raw)
    except ValueError:
        return None


def same_version(a: Optional[str], b: Optional[str]) -> bool:
    """Compare two version strings, falling back to text equality if either is unparsable."""
    if not a or not b:
        return False
    va, vb = try_parse(a), try_parse(b)
    if va is None or vb is None:
        return a.strip() == b.strip()
    return va == vb
