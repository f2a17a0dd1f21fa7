"""Semantic version helpers for container versions.

Only the subset needed by the Cauldron workflow: parsing, ordering and patch increments.
Ordering follows semver precedence (a prerelease sorts before its release; build metadata
is ignored).
"""

from __future__ import annotations

import re

_SEMVER_RE = re.compile(
    r"^v?(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)
_CONTAINER_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


def parse(version: str) -> tuple[int, int, int, tuple[str, ...]]:
    m = _SEMVER_RE.match(version.strip())
    if not m:
        raise ValueError(f"Invalid semantic version: {version!r}")
    major, minor, patch, pre = m.groups()
    return int(major), int(minor), int(patch), tuple(pre.split(".")) if pre else ()


def is_valid_container_version(version: str) -> bool:
    return _CONTAINER_VERSION_RE.match(version) is not None


def inc_patch(version: str) -> str:
    """`1.2.3 -> 1.2.4`; a prerelease is promoted to its release (`1.2.3-beta -> 1.2.3`)."""
    major, minor, patch, pre = parse(version)
    if pre:
        return f"{major}.{minor}.{patch}"
    return f"{major}.{minor}.{patch + 1}"


def compare(a: str, b: str) -> int:
    pa, pb = parse(a), parse(b)
    if pa[:3] != pb[:3]:
        return -1 if pa[:3] < pb[:3] else 1
    return _compare_prerelease(pa[3], pb[3])


def gt(a: str, b: str) -> bool:
    return compare(a, b) > 0


def _compare_prerelease(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    if a == b:
        return 0
    # A release outranks any of its prereleases.
    if not a:
        return 1
    if not b:
        return -1
    for x, y in zip(a, b):
        if x == y:
            continue
        if x.isdigit() and y.isdigit():
            return -1 if int(x) < int(y) else 1
        if x.isdigit():
            return -1
        if y.isdigit():
            return 1
        return -1 if x < y else 1
    return -1 if len(a) < len(b) else 1
