"""Version string comparison for mod and game versions."""

import re

_SEPARATORS = re.compile(r"[.-]")
_INTEGER = re.compile(r"\s*[+-]?[0-9]+\s*")


def split_version(version: str) -> list[str]:
    """Split a version string into its dot/hyphen separated segments."""
    return _SEPARATORS.split(version)


def _compare_segment(a: str, b: str) -> int:
    # Numeric only when both sides are integers; "2" vs "a" is ordinal
    if _INTEGER.fullmatch(a) and _INTEGER.fullmatch(b):
        num_a, num_b = int(a), int(b)
    else:
        num_a, num_b = a, b
    if num_a == num_b:
        return 0
    return 1 if num_a > num_b else -1


def compare_versions(a: str, b: str) -> int:
    """
    Compare two version strings segment by segment.

    The shorter version is padded with "0" segments. Segments that both
    parse as integers compare numerically, anything else compares as
    plain strings by code point. This is not semver: "1.0.0-rc1" sorts
    after "1.0.0" because "rc1" > "0".

    Callers strip any leading "v" before comparing.

    Returns -1, 0 or 1.
    """
    parts_a = split_version(a)
    parts_b = split_version(b)
    length = max(len(parts_a), len(parts_b))
    parts_a += ["0"] * (length - len(parts_a))
    parts_b += ["0"] * (length - len(parts_b))

    for seg_a, seg_b in zip(parts_a, parts_b):
        result = _compare_segment(seg_a, seg_b)
        if result != 0:
            return result
    return 0
