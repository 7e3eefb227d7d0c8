"""Update orchestration: check, mutate, publish, record, notify.

One update runs its steps strictly in order and stops at the first
failure. Nothing is retried or rolled back: a branch or merge request
created before a later failure stays where it is, and the ledger check
at the start is the only guard against publishing the same bump twice.
"""

from collections.abc import Awaitable
from pathlib import Path
from typing import Protocol, TypeVar

import structlog

from . import policy
from .config import Settings
from .detect import classify, poetry_paths
from .errors import AlreadyRequested, GatewayError, GatewayFailure, ProjectNotFound, UpdateError
from .gitlab import GitlabApi
from .jira import JiraApi, JiraNotificationService
from .ledger import AttemptLedger, InMemoryLedger, SqliteLedger
from .models import (
    DependencyCandidate,
    FileEdit,
    ManifestKind,
    MergeRequest,
    UpdateAttempt,
    UpdateCommand,
    UpdateDependency,
    UpdateRequestKey,
    UpdateResult,
    UpdateState,
)
from .poetry import LockIntegrity, PoetryFiles, update_poetry
from .projects import ProjectRegistry
from .requirements import update_requirement

T = TypeVar("T")

# Stages after which a branch or merge request may be left without a ledger record
_ORPHANING_STAGES = {"create_commit", "create_merge_request", "record_attempt"}


class RepositoryGateway(Protocol):
    async def get_file_content(self, project_id: str, branch: str, path: str) -> str: ...

    async def create_branch(self, project_id: str, from_branch: str, new_branch: str) -> None: ...

    async def create_commit(
        self, project_id: str, branch: str, message: str, edits: list[FileEdit]
    ) -> None: ...

    async def create_merge_request(
        self, project_id: str, source_branch: str, target_branch: str, title: str
    ) -> MergeRequest: ...


class Notifier(Protocol):
    async def notify(self, command: UpdateCommand, change_request_url: str) -> None: ...


async def _call(stage: str, awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    except GatewayError as e:
        raise GatewayFailure(stage, e) from e


class UpdateService:
    """Publishes dependency bumps as merge requests."""

    def __init__(
        self,
        ledger: AttemptLedger,
        repository: RepositoryGateway,
        notifier: Notifier,
        projects: ProjectRegistry | None = None,
        branch_prefix: str = "depbump",
        logger=None,
    ):
        self.ledger = ledger
        self.repository = repository
        self.notifier = notifier
        self.projects = projects or ProjectRegistry()
        self.branch_prefix = branch_prefix
        self.logger = logger or structlog.get_logger(__name__)

    async def can_update(
        self, candidates: list[DependencyCandidate], project_id: str, source_file: str
    ) -> list[tuple[DependencyCandidate, bool]]:
        """Pair each candidate with whether a new request may be opened for it."""
        keys = [
            UpdateRequestKey(project_id, candidate.name, candidate.latest_version)
            for candidate in candidates
        ]
        existing = await self.ledger.exist_any(keys)
        return policy.can_update(candidates, existing, source_file)

    def should_update(
        self, candidates: list[DependencyCandidate]
    ) -> list[tuple[DependencyCandidate, bool]]:
        return [(candidate, policy.should_update(candidate)) for candidate in candidates]

    async def update_project(
        self, request: UpdateDependency, integrity: LockIntegrity | None = None
    ) -> UpdateResult:
        """Resolve the project by name, then run :meth:`update`."""
        project = self.projects.find_by_name(request.project_name)
        if project is None:
            error = ProjectNotFound(request.project_name)
            self.logger.warning("update_rejected", project=request.project_name, error=str(error))
            return UpdateResult(command=request, state=UpdateState.RECEIVED, error=error)

        command = UpdateCommand(
            project_id=project.id,
            project_name=project.name,
            project_branch=project.branch,
            project_repository_id=project.repository_id,
            file_path=request.file_path,
            dependency_name=request.dependency_name,
            from_version=request.from_version,
            to_version=request.to_version,
        )
        return await self.update(command, integrity)

    async def update(
        self, command: UpdateCommand, integrity: LockIntegrity | None = None
    ) -> UpdateResult:
        """Run every step for one command and report how far it got.

        Args:
            command: The fully resolved update
            integrity: Lock file hashes for the new version, poetry projects only

        Returns:
            The result; ``error`` holds the first failure, if any
        """
        log = self.logger.bind(
            project=command.project_name,
            project_id=command.project_id,
            file_path=command.file_path,
            dependency=command.dependency_name,
            from_version=command.from_version,
            to_version=command.to_version,
        )
        log.info("update_requested")

        state = UpdateState.RECEIVED
        merge_request: MergeRequest | None = None
        try:
            kind = classify(command.file_path)
            await self._ensure_not_requested(command)
            state = UpdateState.KEY_CHECKED

            originals = await self._load_manifest(command, kind)
            state = UpdateState.MANIFEST_LOADED

            edits = self._mutate(command, kind, originals, integrity)
            state = UpdateState.MANIFEST_MUTATED

            merge_request = await self._publish(command, edits)
            state = UpdateState.PUBLISHED
            log.info("merge_request_opened", change_request_url=merge_request.web_url)

            await self._record(command, merge_request)
            state = UpdateState.RECORDED

            await _call("notify", self.notifier.notify(command, merge_request.web_url))
            state = UpdateState.NOTIFIED

        except UpdateError as e:
            url = merge_request.web_url if merge_request else None
            log.error("update_failed", state=state.value, error=str(e), change_request_url=url)
            if isinstance(e, GatewayFailure) and e.stage in _ORPHANING_STAGES:
                log.warning(
                    "update_left_orphans",
                    branch=self._branch_name(command),
                    change_request_url=url,
                )
            return UpdateResult(command=command, state=state, change_request_url=url, error=e)

        log.info("update_done", change_request_url=merge_request.web_url)
        return UpdateResult(
            command=command,
            state=UpdateState.DONE,
            change_request_url=merge_request.web_url,
        )

    def _branch_name(self, command: UpdateCommand) -> str:
        return f"{self.branch_prefix}-{command.dependency_name}-{command.to_version}"

    async def _ensure_not_requested(self, command: UpdateCommand) -> None:
        exists = await _call(
            "check_ledger",
            self.ledger.exists(command.project_id, command.dependency_name, command.to_version),
        )
        if exists:
            raise AlreadyRequested(command.project_id, command.dependency_name, command.to_version)

    async def _load_manifest(self, command: UpdateCommand, kind: ManifestKind) -> dict[str, str]:
        if kind is ManifestKind.LINE_LIST:
            paths = [command.file_path]
        else:
            paths = list(poetry_paths(command.file_path))

        contents = {}
        for path in paths:
            contents[path] = await _call(
                "fetch_manifest",
                self.repository.get_file_content(
                    command.project_repository_id, command.project_branch, path
                ),
            )
        return contents

    def _mutate(
        self,
        command: UpdateCommand,
        kind: ManifestKind,
        originals: dict[str, str],
        integrity: LockIntegrity | None,
    ) -> list[FileEdit]:
        if kind is ManifestKind.LINE_LIST:
            content = update_requirement(
                originals[command.file_path],
                command.dependency_name,
                command.from_version,
                command.to_version,
            )
            return [FileEdit(command.file_path, content)]

        pyproject_path, lock_path = poetry_paths(command.file_path)
        updated = update_poetry(
            PoetryFiles(pyproject=originals[pyproject_path], lock=originals[lock_path]),
            command.dependency_name,
            command.from_version,
            command.to_version,
            integrity,
        )
        return [FileEdit(pyproject_path, updated.pyproject), FileEdit(lock_path, updated.lock)]

    async def _publish(self, command: UpdateCommand, edits: list[FileEdit]) -> MergeRequest:
        branch = self._branch_name(command)
        repository_id = command.project_repository_id

        await _call(
            "create_branch",
            self.repository.create_branch(repository_id, command.project_branch, branch),
        )
        await _call(
            "create_commit",
            self.repository.create_commit(repository_id, branch, command.summary, edits),
        )
        return await _call(
            "create_merge_request",
            self.repository.create_merge_request(
                repository_id, branch, command.project_branch, command.summary
            ),
        )

    async def _record(self, command: UpdateCommand, merge_request: MergeRequest) -> None:
        attempt = UpdateAttempt(
            project_id=command.project_id,
            dependency_name=command.dependency_name,
            to_version=command.to_version,
            change_request_url=merge_request.web_url,
        )
        await _call("record_attempt", self.ledger.save(attempt))


def build_update_service(settings: Settings, logger=None) -> UpdateService:
    """Wire an UpdateService from settings: GitLab, Jira and the configured ledger."""
    repository = GitlabApi(
        settings.gitlab.url,
        settings.gitlab.token.get_secret_value(),
        timeout=settings.http_timeout,
    )
    jira = JiraApi(
        settings.jira.address,
        settings.jira.username,
        settings.jira.password.get_secret_value(),
        timeout=settings.http_timeout,
    )
    notifier = JiraNotificationService(jira, settings.jira.project_key, settings.jira.issue_type)
    ledger = SqliteLedger(settings.ledger_path) if settings.ledger_path else InMemoryLedger()
    projects = (
        ProjectRegistry.from_file(settings.projects_file)
        if Path(settings.projects_file).exists()
        else ProjectRegistry()
    )
    return UpdateService(
        ledger,
        repository,
        notifier,
        projects=projects,
        branch_prefix=settings.branch_prefix,
        logger=logger,
    )
