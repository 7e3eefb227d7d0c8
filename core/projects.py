"""Registry of the projects depbump is allowed to update."""

import json
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProjectConfig:
    """Where a project lives and which branch updates target."""

    id: str
    name: str
    branch: str
    repository_id: str


class ProjectRegistry:
    """Lookup of project configs by name."""

    def __init__(self, projects: list[ProjectConfig] | None = None):
        self._by_name = {project.name: project for project in projects or []}

    @classmethod
    def from_file(cls, path: str | Path) -> "ProjectRegistry":
        """Load a JSON list of ``{id, name, branch, repository_id}`` objects."""
        data = json.loads(Path(path).read_text())
        return cls(
            [
                ProjectConfig(
                    id=str(item["id"]),
                    name=item["name"],
                    branch=item.get("branch", "master"),
                    repository_id=str(item["repository_id"]),
                )
                for item in data
            ]
        )

    def find_by_name(self, name: str) -> ProjectConfig | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._by_name)
