"""
Semantic Version Helpers.

Versions compare numerically component by component, never as strings.
"""

import re

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


def is_valid_semver(version: str) -> bool:
    """Check if a string is a strict X.Y.Z version."""
    return bool(SEMVER_PATTERN.match(version))


def parse_version(version: str) -> list[int]:
    """
    Split a version into its numeric components.

    Non-numeric suffixes on a component are ignored ("3-beta" -> 3).

    Raises:
        ValueError: If a component has no leading digits
    """
    parts = []
    for part in version.strip().lstrip("v").split("."):
        match = re.match(r"\d+", part)
        if match is None:
            raise ValueError(f"Invalid version: {version!r}")
        parts.append(int(match.group()))
    return parts


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    parts1 = parse_version(v1)
    parts2 = parse_version(v2)

    # Pad shorter version with zeros
    max_len = max(len(parts1), len(parts2))
    parts1.extend([0] * (max_len - len(parts1)))
    parts2.extend([0] * (max_len - len(parts2)))

    for p1, p2 in zip(parts1, parts2, strict=True):
        if p1 < p2:
            return -1
        if p1 > p2:
            return 1
    return 0
