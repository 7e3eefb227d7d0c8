"""Update eligibility rules for scanned dependencies."""

from collections.abc import Iterable

from . import semver
from .detect import classify
from .errors import UnrecognizedManifest
from .models import DependencyCandidate, UpdateRequestKey


def should_update(candidate: DependencyCandidate) -> bool:
    """Decide whether a dependency is worth a merge request.

    Vulnerabilities that an upgrade would actually move away from always
    win. Otherwise the upgrade needs a computable version difference, and
    an open range that already admits the latest patch is left alone.
    """
    current = candidate.current_version
    if current is None:
        return False

    is_holed = semver.is_holed(current)
    unholed = semver.unhole(current)
    version_difference = (
        semver.calculate_version_difference(unholed, candidate.latest_version)
        if unholed is not None
        else None
    )
    has_vulnerabilities = bool(candidate.vulnerabilities)
    could_resolve_vulnerabilities = semver.remove_symbol(current) != candidate.latest_version

    if has_vulnerabilities and could_resolve_vulnerabilities:
        return True
    if version_difference is None:
        return False
    if is_holed and version_difference is semver.VersionDifference.PATCH:
        return False
    return True


def _is_manifest(path: str) -> bool:
    try:
        classify(path)
    except UnrecognizedManifest:
        return False
    return True


def can_update(
    candidates: list[DependencyCandidate],
    existing_requests: Iterable[UpdateRequestKey],
    manifest_path: str,
) -> list[tuple[DependencyCandidate, bool]]:
    """Mark which candidates may get a new update request.

    Args:
        candidates: Dependencies reported by the scanner
        existing_requests: Ledger keys already recorded for the project
        manifest_path: Path of the manifest the candidates were parsed from

    Returns:
        Each candidate paired with its eligibility, in input order
    """
    requested_names = {request.dependency_name for request in existing_requests}
    recognized = _is_manifest(manifest_path)

    results = []
    for candidate in candidates:
        already_requested = candidate.name in requested_names
        outdated = (
            candidate.current_version is not None
            and candidate.current_version != candidate.latest_version
        )
        results.append((candidate, recognized and outdated and not already_requested))
    return results
