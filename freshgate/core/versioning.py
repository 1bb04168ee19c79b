"""
Version comparison for FreshGate - parses dotted versions and classifies the gap to the latest release.
"""

import re
from enum import Enum
from typing import Optional
from dataclasses import dataclass

VERSION_PATTERN = re.compile(r'^(\d+)\.(\d+)\.(\d+)')

class VersionDelta(str, Enum):
    """Coarsest version component by which a dependency is behind."""
    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    UNKNOWN = "unknown"

@dataclass(frozen=True)
class ParsedVersion:
    """Leading major.minor.patch numbers of a version string."""
    major: int
    minor: int
    patch: int

def parse_version(version: Optional[str]) -> Optional[ParsedVersion]:
    """Parse the leading `major.minor.patch` of a version string.

    Anything after the third number (pre-release tags, build metadata) is
    ignored. Returns None when the string does not start with that pattern.
    """
    if not isinstance(version, str):
        return None

    match = VERSION_PATTERN.match(version)
    if not match:
        return None

    return ParsedVersion(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3))
    )

def version_delta(current: Optional[str], latest: Optional[str]) -> VersionDelta:
    """Classify how far `current` is behind `latest`."""
    curr = parse_version(current)
    lat = parse_version(latest)

    if curr is None or lat is None:
        return VersionDelta.UNKNOWN

    levels = (
        (VersionDelta.MAJOR, curr.major, lat.major),
        (VersionDelta.MINOR, curr.minor, lat.minor),
        (VersionDelta.PATCH, curr.patch, lat.patch),
    )
    for delta, current_part, latest_part in levels:
        if latest_part > current_part:
            return delta
        if latest_part < current_part:
            # current is ahead of latest
            return VersionDelta.NONE

    return VersionDelta.NONE
