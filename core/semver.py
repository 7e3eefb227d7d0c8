"""Version specifier helpers: holes, unholing and version distance."""

import re
from enum import Enum

from packaging.version import InvalidVersion, Version

# Anything that turns a specifier into a range once the leading "==" is gone
_RANGE_MARKERS = re.compile(r"[\^~<>!,|]|\s")
_WILDCARD_SEGMENTS = {"*", "x", "X"}
_EXACT_PREFIX = re.compile(r"^={1,3}\s*")
_LEADING_SYMBOLS = re.compile(r"^[=<>!~^\s]+")
_CLAUSE_SEPARATOR = re.compile(r",|\|\|")


class VersionDifference(Enum):
    """Magnitude of the move from one version to a newer one."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


def _has_wildcard(version: str) -> bool:
    return any(segment in _WILDCARD_SEGMENTS for segment in version.split("."))


def is_holed(spec: str) -> bool:
    """Check whether a specifier allows more than one exact version.

    ``1.2.3``, ``==1.2.3`` and ``===1.2.3`` are exact pins. Range operators
    (``^``, ``~``, ``~=``, ``>``, ``>=``, ``<``, ``<=``, ``!=``), compound
    ranges (``,``, ``||`` or whitespace separated) and wildcard segments
    (``*``, ``x``, ``X``) make it holed.
    """
    body = _EXACT_PREFIX.sub("", spec.strip())
    if _RANGE_MARKERS.search(body):
        return True
    return _has_wildcard(body)


def remove_symbol(spec: str) -> str:
    """Strip operators from the first clause of a specifier, keeping wildcards."""
    first_clause = _CLAUSE_SEPARATOR.split(spec.strip(), maxsplit=1)[0]
    return _LEADING_SYMBOLS.sub("", first_clause).strip()


def unhole(spec: str) -> str | None:
    """Turn a specifier into the lowest exact version it names.

    Returns:
        The exact version, or None if what remains is not a valid version
    """
    bare = remove_symbol(spec)
    if not bare:
        return None
    segments = ["0" if s in _WILDCARD_SEGMENTS else s for s in bare.split(".")]
    candidate = ".".join(segments)
    try:
        Version(candidate)
    except InvalidVersion:
        return None
    return candidate


def calculate_version_difference(current: str, latest: str) -> VersionDifference | None:
    """Calculate how far ``latest`` is ahead of ``current``.

    Args:
        current: Exact current version
        latest: Exact latest version

    Returns:
        The magnitude of the change, or None when either version does not
        parse or ``latest`` is not newer than ``current``
    """
    try:
        old_ver = Version(current)
        new_ver = Version(latest)
    except InvalidVersion:
        return None

    if new_ver <= old_ver:
        return None

    if new_ver.major > old_ver.major:
        return VersionDifference.MAJOR
    if new_ver.minor > old_ver.minor:
        return VersionDifference.MINOR
    # Micro bumps and anything finer (post releases, fourth segments)
    return VersionDifference.PATCH
