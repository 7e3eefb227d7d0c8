"""Poetry pyproject.toml + poetry.lock version bumps.

Both documents are edited as text so that formatting, comments and key
order survive untouched; only the version strings of the bumped package
(and, when supplied, its lock integrity data) change.
"""

import re
from dataclasses import dataclass, field

from packaging.utils import canonicalize_name

from . import semver
from .errors import DependencyNotFound, LockInconsistency, VersionMismatch

_TABLE_HEADER = re.compile(r"^\s*\[(?P<name>[^\[\]]+)\]\s*(?:#.*)?$")
_DEPENDENCY_TABLE = re.compile(
    r"^tool\.poetry\.(?:dependencies|dev-dependencies|group\.[^.]+\.dependencies)"
    r"(?:\.(?P<dependency>[^.]+))?$"
)
_KEY_VALUE = re.compile(
    r"^\s*(?P<quote>[\"']?)(?P<key>[A-Za-z0-9][A-Za-z0-9._-]*)(?P=quote)\s*=\s*(?P<value>.*?)\s*$"
)
_STRING = re.compile(r"(?P<q>[\"'])(?P<text>[^\"']*)(?P=q)")
_INLINE_VERSION = re.compile(r"\bversion\s*=\s*(?P<q>[\"'])(?P<text>[^\"']*)(?P=q)")
_VERSION_NUMBER = re.compile(r"\d[0-9A-Za-z.*+!]*")


@dataclass(frozen=True)
class PoetryFiles:
    """A pyproject.toml and the poetry.lock resolved from it."""

    pyproject: str
    lock: str


@dataclass(frozen=True)
class LockIntegrity:
    """Integrity data computed elsewhere for the new package version."""

    files: tuple[tuple[str, str], ...] = ()  # (filename, hash)
    content_hash: str | None = None


@dataclass
class _Constraint:
    line: int
    start: int  # span of the version number inside the line
    end: int
    text: str  # the whole constraint, e.g. "^1.2.0"
    version: str


@dataclass
class _LockBlock:
    start: int
    name: str | None = None
    version: str | None = None
    version_line: int | None = None
    files_span: tuple[int, int] | None = None


def _newline(content: str) -> str:
    return "\r\n" if "\r\n" in content else "\n"


def _normalize_header(header: str) -> str:
    return header.replace('"', "").replace("'", "").replace(" ", "")


def _constraint_at(line: str, index: int, string: re.Match) -> _Constraint | None:
    text = string.group("text")
    number = _VERSION_NUMBER.search(text)
    if number is None:
        return None
    offset = string.start("text")
    return _Constraint(
        line=index,
        start=offset + number.start(),
        end=offset + number.end(),
        text=text,
        version=number.group(),
    )


def _find_descriptor_entry(lines: list[str], dependency_name: str) -> _Constraint | None:
    wanted = canonicalize_name(dependency_name)
    table = None

    for index, line in enumerate(lines):
        if line.lstrip().startswith("[["):
            # Arrays of tables such as [[tool.poetry.source]] end any dependency table
            table = None
            continue
        header = _TABLE_HEADER.match(line)
        if header:
            table = _DEPENDENCY_TABLE.match(_normalize_header(header.group("name")))
            continue
        if table is None:
            continue

        entry = _KEY_VALUE.match(line)
        if not entry:
            continue

        owner = table.group("dependency")
        if owner is not None:
            # [tool.poetry.dependencies.<name>] sub-table form
            if canonicalize_name(owner) == wanted and entry.group("key") == "version":
                string = _STRING.match(line, entry.start("value"))
                return _constraint_at(line, index, string) if string else None
            continue

        if canonicalize_name(entry.group("key")) != wanted:
            continue

        if entry.group("value").startswith("{"):
            string = _INLINE_VERSION.search(line, entry.start("value"))
        else:
            string = _STRING.match(line, entry.start("value"))
        return _constraint_at(line, index, string) if string else None

    return None


def _lock_blocks(lines: list[str]) -> list[_LockBlock]:
    blocks: list[_LockBlock] = []
    current: _LockBlock | None = None
    in_main_table = False
    files_start: int | None = None

    for index, line in enumerate(lines):
        stripped = line.strip()
        if stripped == "[[package]]":
            current = _LockBlock(start=index)
            blocks.append(current)
            in_main_table = True
            continue
        if stripped.startswith("[") and (_TABLE_HEADER.match(line) or stripped.startswith("[[")):
            # Sub-tables such as [package.dependencies] still belong to the block
            in_main_table = False
            if not stripped.startswith("[package."):
                current = None
            continue
        if current is None or not in_main_table:
            continue

        if files_start is not None:
            if stripped.startswith("]"):
                current.files_span = (files_start, index)
                files_start = None
            continue

        entry = _KEY_VALUE.match(line)
        if not entry:
            continue
        key = entry.group("key")
        if key == "name":
            string = _STRING.match(line, entry.start("value"))
            current.name = string.group("text") if string else None
        elif key == "version":
            string = _STRING.match(line, entry.start("value"))
            current.version = string.group("text") if string else None
            current.version_line = index
        elif key == "files":
            if entry.group("value").endswith("]"):
                current.files_span = (index, index)
            else:
                files_start = index

    return blocks


def _replace_string_value(line: str, value: str) -> str:
    entry = _KEY_VALUE.match(line)
    string = _STRING.match(line, entry.start("value"))
    return line[: string.start("text")] + value + line[string.end("text") :]


def _files_lines(files: tuple[tuple[str, str], ...], newline: str) -> list[str]:
    lines = [f"files = [{newline}"]
    for filename, digest in files:
        lines.append(f'    {{file = "{filename}", hash = "{digest}"}},{newline}')
    lines.append(f"]{newline}")
    return lines


def _update_pyproject(
    content: str, dependency_name: str, from_version: str, to_version: str
) -> tuple[str, _Constraint]:
    lines = content.splitlines(keepends=True)
    constraint = _find_descriptor_entry(lines, dependency_name)
    if constraint is None:
        raise DependencyNotFound(dependency_name, "pyproject.toml")

    if constraint.version != semver.remove_symbol(from_version):
        raise VersionMismatch(dependency_name, from_version, constraint.version)

    line = lines[constraint.line]
    lines[constraint.line] = line[: constraint.start] + to_version + line[constraint.end :]
    return "".join(lines), constraint


def _update_lock(
    content: str,
    dependency_name: str,
    constraint: _Constraint,
    to_version: str,
    integrity: LockIntegrity | None,
) -> str:
    lines = content.splitlines(keepends=True)
    newline = _newline(content)
    wanted = canonicalize_name(dependency_name)

    blocks = [
        block
        for block in _lock_blocks(lines)
        if block.name is not None and canonicalize_name(block.name) == wanted
    ]
    if not blocks:
        raise LockInconsistency(dependency_name, "no package block in poetry.lock")

    pinned = not semver.is_holed(constraint.text)
    for block in blocks:
        if block.version_line is None or block.version is None:
            raise LockInconsistency(dependency_name, "package block without a version")
        if pinned and block.version != constraint.version:
            raise LockInconsistency(
                dependency_name,
                f"pyproject.toml pins {constraint.version} but poetry.lock has {block.version}",
            )

    # Apply bottom-up so earlier line indexes stay valid
    for block in reversed(blocks):
        lines[block.version_line] = _replace_string_value(lines[block.version_line], to_version)
        if integrity is not None and integrity.files:
            new_files = _files_lines(integrity.files, newline)
            if block.files_span is not None:
                first, last = block.files_span
                lines[first : last + 1] = new_files
            else:
                lines[block.version_line + 1 : block.version_line + 1] = new_files

    if integrity is not None and integrity.content_hash:
        for index, line in enumerate(lines):
            entry = _KEY_VALUE.match(line)
            if entry and entry.group("key") == "content-hash":
                lines[index] = _replace_string_value(line, integrity.content_hash)
                break

    return "".join(lines)


def update_poetry(
    files: PoetryFiles,
    dependency_name: str,
    from_version: str,
    to_version: str,
    integrity: LockIntegrity | None = None,
) -> PoetryFiles:
    """Bump one dependency in a pyproject.toml and its poetry.lock together.

    Args:
        files: Current pyproject.toml and poetry.lock contents
        dependency_name: Package to bump
        from_version: Version the descriptor is expected to name
        to_version: Version to write
        integrity: Optional file hashes and content hash for the new version

    Returns:
        Both rewritten documents

    Raises:
        DependencyNotFound: If pyproject.toml has no versioned entry for the package
        VersionMismatch: If the descriptor does not name ``from_version``
        LockInconsistency: If poetry.lock has no block for the package or
            disagrees with an exact pin in pyproject.toml
    """
    pyproject, constraint = _update_pyproject(
        files.pyproject, dependency_name, from_version, to_version
    )
    lock = _update_lock(files.lock, dependency_name, constraint, to_version, integrity)
    return PoetryFiles(pyproject=pyproject, lock=lock)
