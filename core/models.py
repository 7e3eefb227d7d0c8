"""Core data models for depbump."""

from dataclasses import dataclass, field
from enum import Enum


class ManifestKind(Enum):
    """Manifest formats an update can be applied to."""

    LINE_LIST = "line_list"  # requirements.txt
    STRUCTURED_PAIR = "structured_pair"  # pyproject.toml + poetry.lock


class UpdateState(Enum):
    """Steps of one update execution, in order."""

    RECEIVED = "received"
    KEY_CHECKED = "key_checked"
    MANIFEST_LOADED = "manifest_loaded"
    MANIFEST_MUTATED = "manifest_mutated"
    PUBLISHED = "published"
    RECORDED = "recorded"
    NOTIFIED = "notified"
    DONE = "done"


@dataclass
class ManifestEntry:
    """A single dependency entry in a manifest file."""

    name: str
    spec: str | None = None
    markers: str | None = None
    extras: list[str] | None = None


@dataclass
class Manifest:
    """A parsed dependency manifest."""

    raw: str
    entries: list[ManifestEntry]


@dataclass
class DependencyCandidate:
    """A dependency reported by the scanner as possibly outdated."""

    name: str
    current_version: str | None
    latest_version: str
    vulnerabilities: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UpdateRequestKey:
    """Deduplication key of the attempt ledger."""

    project_id: str
    dependency_name: str
    to_version: str


@dataclass(frozen=True)
class UpdateAttempt:
    """A published update, recorded once per request key."""

    project_id: str
    dependency_name: str
    to_version: str
    change_request_url: str

    @property
    def key(self) -> UpdateRequestKey:
        return UpdateRequestKey(self.project_id, self.dependency_name, self.to_version)


@dataclass(frozen=True)
class UpdateDependency:
    """An update request that names the project instead of its ids."""

    project_name: str
    file_path: str
    dependency_name: str
    from_version: str
    to_version: str


@dataclass(frozen=True)
class UpdateCommand:
    """Fully resolved context for a single update execution."""

    project_id: str
    project_name: str
    project_branch: str
    project_repository_id: str
    file_path: str
    dependency_name: str
    from_version: str
    to_version: str

    @property
    def key(self) -> UpdateRequestKey:
        return UpdateRequestKey(self.project_id, self.dependency_name, self.to_version)

    @property
    def summary(self) -> str:
        return f"Bumps {self.dependency_name} from {self.from_version} to {self.to_version}"


@dataclass(frozen=True)
class FileEdit:
    """New content for one repository file."""

    path: str
    content: str


@dataclass(frozen=True)
class MergeRequest:
    """A change request opened on the repository host."""

    iid: int
    web_url: str
    source_branch: str
    target_branch: str


@dataclass
class UpdateResult:
    """Outcome of one update execution."""

    command: UpdateCommand | UpdateDependency
    state: UpdateState
    change_request_url: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
