"""Exceptions raised while planning and publishing an update."""


class UpdateError(Exception):
    """Base class for every expected update failure."""


class UnrecognizedManifest(UpdateError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Unrecognized manifest file: {path}")


class AlreadyRequested(UpdateError):
    def __init__(self, project_id: str, dependency_name: str, to_version: str):
        self.project_id = project_id
        self.dependency_name = dependency_name
        self.to_version = to_version
        super().__init__(
            f"Update of {dependency_name} to {to_version} was already requested "
            f"for project {project_id}"
        )


class ProjectNotFound(UpdateError):
    def __init__(self, project_name: str):
        self.project_name = project_name
        super().__init__(f"Config for project {project_name} not found")


class DependencyNotFound(UpdateError):
    def __init__(self, dependency_name: str, path: str | None = None):
        self.dependency_name = dependency_name
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"Dependency {dependency_name} not found{where}")


class VersionMismatch(UpdateError):
    """The manifest records another version than the one we bump from."""

    def __init__(self, dependency_name: str, expected: str, found: str | None):
        self.dependency_name = dependency_name
        self.expected = expected
        self.found = found
        super().__init__(
            f"Dependency {dependency_name} is at {found or 'no version'}, expected {expected}"
        )


class LockInconsistency(UpdateError):
    def __init__(self, dependency_name: str, reason: str):
        self.dependency_name = dependency_name
        self.reason = reason
        super().__init__(f"Lock file inconsistent for {dependency_name}: {reason}")


class GatewayError(Exception):
    """A repository, ticketing or ledger call failed."""


class GatewayFailure(UpdateError):
    """A gateway call failed at a given step of the update."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")
