"""Manifest kind detection from repository file paths."""

from pathlib import PurePosixPath

from .errors import UnrecognizedManifest
from .models import ManifestKind

PYPROJECT = "pyproject.toml"
POETRY_LOCK = "poetry.lock"

_KINDS = {
    ".txt": ManifestKind.LINE_LIST,
    ".toml": ManifestKind.STRUCTURED_PAIR,
    ".lock": ManifestKind.STRUCTURED_PAIR,
}


def classify(path: str) -> ManifestKind:
    """Detect the manifest kind from a file path.

    Args:
        path: Repository path of the manifest, e.g. ``app/requirements.txt``

    Returns:
        The manifest kind the path belongs to

    Raises:
        UnrecognizedManifest: If the extension is not a known manifest format
    """
    kind = _KINDS.get(PurePosixPath(path).suffix.lower())
    if kind is None:
        raise UnrecognizedManifest(path)
    return kind


def poetry_paths(path: str) -> tuple[str, str]:
    """Return the descriptor and lock paths living next to ``path``."""
    parent = PurePosixPath(path).parent
    if str(parent) in ("", "."):
        return PYPROJECT, POETRY_LOCK
    return str(parent / PYPROJECT), str(parent / POETRY_LOCK)
