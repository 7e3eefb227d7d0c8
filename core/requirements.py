"""Python requirements.txt parsing and in-place version bumps."""

import re

from packaging.requirements import InvalidRequirement, Requirement

from . import semver
from .errors import DependencyNotFound, VersionMismatch
from .models import Manifest, ManifestEntry

# Distribution name, optional extras, then the first "<operator><version>" clause
_REQUIREMENT_LINE = re.compile(
    r"^\s*(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)"
    r"(?:\s*\[[^\]]*\])?\s*"
    r"(?:(?P<operator>===|==|~=|!=|>=|<=|>|<)\s*(?P<version>[^\s,;#]+))?"
)


class RequirementsParser:
    """Parser for Python requirements.txt files."""

    def __init__(self):
        # Patterns for lines to skip
        self.skip_patterns = [
            r"^\s*#",  # Comment lines
            r"^\s*$",  # Empty lines
            r"^-e\s+",  # Editable installs
            r"^-r\s+",  # Include other requirements files
            r"^-c\s+",  # Constraint files
            r"^-f\s+",  # Find links
            r"^--",  # Other pip options
            r"^https?://",  # Direct URLs
            r"^file://",  # File URLs
            r"^\./",  # Local paths
            r"(?:git|hg|svn|bzr)\+",  # VCS sources, also "name @ git+..."
        ]

    def _should_skip_line(self, line: str) -> bool:
        """Check if a line should be skipped during parsing."""
        stripped = line.strip()
        if not stripped:
            return True

        return any(re.search(pattern, stripped) for pattern in self.skip_patterns)

    def _parse_requirement_line(self, line: str) -> ManifestEntry | None:
        """Parse a single requirement line using packaging library."""
        try:
            # Inline comments are not part of the requirement
            line_for_parsing = line.strip().split("#")[0].strip()
            if not line_for_parsing:
                return None

            req = Requirement(line_for_parsing)

            return ManifestEntry(
                name=req.name,
                spec=str(req.specifier) if req.specifier else None,
                markers=str(req.marker) if req.marker else None,
                extras=sorted(req.extras) if req.extras else None,
            )

        except InvalidRequirement:
            # Skip malformed requirements gracefully
            return None

    def parse(self, content: str) -> Manifest:
        """Parse requirements.txt content into Manifest."""
        entries: list[ManifestEntry] = []

        for line in content.splitlines():
            if self._should_skip_line(line):
                continue

            entry = self._parse_requirement_line(line)
            if entry:
                entries.append(entry)

        return Manifest(raw=content, entries=entries)

    def update(
        self, content: str, dependency_name: str, from_version: str, to_version: str
    ) -> str:
        """Replace the version of one requirement, leaving every other byte alone.

        The first non-skipped line whose leading name equals ``dependency_name``
        (case-sensitive) is the target. Only its first version token changes.

        Raises:
            DependencyNotFound: If no line names the dependency
            VersionMismatch: If the line is not at ``from_version``
        """
        lines = content.splitlines(keepends=True)

        for index, line in enumerate(lines):
            if self._should_skip_line(line):
                continue

            match = _REQUIREMENT_LINE.match(line)
            if not match or match.group("name") != dependency_name:
                continue

            recorded = match.group("version")
            if recorded is None or recorded != semver.remove_symbol(from_version):
                raise VersionMismatch(dependency_name, from_version, recorded)

            start, end = match.span("version")
            lines[index] = line[:start] + to_version + line[end:]
            return "".join(lines)

        raise DependencyNotFound(dependency_name)


def parse_requirements(content: str) -> Manifest:
    """Parse requirements.txt content into Manifest.

    Args:
        content: The requirements.txt file content

    Returns:
        Parsed Manifest object
    """
    parser = RequirementsParser()
    return parser.parse(content)


def update_requirement(
    content: str, dependency_name: str, from_version: str, to_version: str
) -> str:
    """Bump one dependency in requirements.txt content.

    Args:
        content: The requirements.txt file content
        dependency_name: Exact name of the requirement to bump
        from_version: Version the file is expected to pin
        to_version: Version to write

    Returns:
        The full file content with only the target version replaced
    """
    parser = RequirementsParser()
    return parser.update(content, dependency_name, from_version, to_version)
