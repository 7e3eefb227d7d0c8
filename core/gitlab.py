"""GitLab REST API client for the repository side of an update."""

from urllib.parse import quote

import httpx

from .errors import GatewayError
from .models import FileEdit, MergeRequest


class FileNotFoundInRepository(GatewayError):
    def __init__(self, path: str, branch: str):
        self.path = path
        self.branch = branch
        super().__init__(f"File {path} not found on branch {branch}")


def _encode(value: str) -> str:
    return quote(value, safe="")


class GitlabApi:
    """Client for the GitLab v4 API."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize GitLab client.

        Args:
            base_url: GitLab instance URL, e.g. "https://gitlab.com"
            token: Private token sent with every request
            timeout: Request timeout in seconds
            client: Shared client; a short-lived one is opened per call otherwise
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}/api/v4{path}"
        headers = {"PRIVATE-TOKEN": self.token} if self.token else {}

        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response

        except httpx.TimeoutException as e:
            raise GatewayError(f"Timeout calling GitLab {method} {path}") from e
        except httpx.HTTPStatusError as e:
            raise GatewayError(
                f"GitLab {method} {path} returned {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Network error calling GitLab {method} {path}: {e}") from e

    async def get_file_content(self, project_id: str, branch: str, path: str) -> str:
        """Fetch the raw content of a file at a branch."""
        try:
            response = await self._request(
                "GET",
                f"/projects/{_encode(project_id)}/repository/files/{_encode(path)}/raw",
                params={"ref": branch},
            )
        except GatewayError as e:
            cause = e.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 404:
                raise FileNotFoundInRepository(path, branch) from cause
            raise
        return response.text

    async def create_branch(self, project_id: str, from_branch: str, new_branch: str) -> None:
        await self._request(
            "POST",
            f"/projects/{_encode(project_id)}/repository/branches",
            json={"branch": new_branch, "ref": from_branch},
        )

    async def create_commit(
        self, project_id: str, branch: str, message: str, edits: list[FileEdit]
    ) -> None:
        """Commit new contents of existing files to a branch."""
        await self._request(
            "POST",
            f"/projects/{_encode(project_id)}/repository/commits",
            json={
                "branch": branch,
                "commit_message": message,
                "actions": [
                    {"action": "update", "file_path": edit.path, "content": edit.content}
                    for edit in edits
                ],
            },
        )

    async def create_merge_request(
        self, project_id: str, source_branch: str, target_branch: str, title: str
    ) -> MergeRequest:
        """Open a merge request and return where reviewers can find it."""
        response = await self._request(
            "POST",
            f"/projects/{_encode(project_id)}/merge_requests",
            json={
                "source_branch": source_branch,
                "target_branch": target_branch,
                "title": title,
                "remove_source_branch": True,
            },
        )
        try:
            data = response.json()
            return MergeRequest(
                iid=data["iid"],
                web_url=data["web_url"],
                source_branch=data.get("source_branch", source_branch),
                target_branch=data.get("target_branch", target_branch),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise GatewayError(f"Unexpected merge request response from GitLab: {e!r}") from e
