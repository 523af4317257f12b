"""Version naming utilities.

Turns a declared development version (e.g., "1.0-SNAPSHOT") plus a build
number into the concrete release version (e.g., "1.0.7"), and finds the next
free build number from existing release tags.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

SNAPSHOT_SUFFIX = "-SNAPSHOT"

SnapshotPredicate = Callable[[str | None], bool]

# Characters and sequences git refuses in ref names (see git-check-ref-format)
_INVALID_REF = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]|\.\.|@\{|//")


def is_snapshot(version: str | None) -> bool:
    """Return True if the version is a floating development version.

    A fixed-suffix check, not a semantic comparison. None is never a snapshot.
    """
    return version is not None and version.endswith(SNAPSHOT_SUFFIX)


def business_version(version: str) -> str:
    """Strip the snapshot marker from a declared version.

    Examples:
        "1.0-SNAPSHOT" → "1.0"
        "2.3" → "2.3"
    """
    return version.removesuffix(SNAPSHOT_SUFFIX)


def release_version(version: str, build_number: int) -> str:
    """Compute the release version for a declared version and build number.

    Examples:
        release_version("1.0-SNAPSHOT", 7) → "1.0.7"
        release_version("2.1.0-SNAPSHOT", 0) → "2.1.0.0"
    """
    return f"{business_version(version)}.{build_number}"


def is_valid_tag_name(name: str) -> bool:
    """Check that a tag name is acceptable to git as refs/tags/<name>."""
    if not name or name.startswith(("-", ".", "/")):
        return False
    if name.endswith((".", "/", ".lock")):
        return False
    return _INVALID_REF.search(name) is None


def build_numbers_from_tags(
    tag_names: Iterable[str], artifact: str, business: str
) -> list[int]:
    """Extract build numbers from tags named {artifact}-{business}.{n}.

    Tags for other artifacts or other business versions are ignored.
    """
    prefix = f"{artifact}-{business}."
    numbers: list[int] = []
    for name in tag_names:
        if name.startswith(prefix):
            suffix = name[len(prefix) :]
            if suffix.isdigit():
                numbers.append(int(suffix))
    return sorted(numbers)


def next_build_number(previous: Iterable[int]) -> int:
    """Return one more than the highest previous build number, or 0."""
    return max(previous, default=-1) + 1
