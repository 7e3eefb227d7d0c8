"""Jira tickets announcing opened merge requests."""

from dataclasses import dataclass

import httpx

from .errors import GatewayError
from .models import UpdateCommand


@dataclass(frozen=True)
class Text:
    """Plain text node of a ticket description."""

    value: str

    def to_message(self) -> dict:
        return {"type": "text", "text": self.value}


@dataclass(frozen=True)
class Link:
    """Inline link card of a ticket description."""

    url: str

    def to_message(self) -> dict:
        return {"type": "inlineCard", "attrs": {"url": self.url}}


Content = Text | Link


class JiraApi:
    """Client for the Jira Cloud REST API (v3)."""

    def __init__(
        self,
        address: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.address = address.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self._client = client

    async def create_ticket(
        self,
        project_key: str,
        summary: str,
        description: list[Content],
        issue_type: str,
    ) -> None:
        """Create an issue whose description is a single paragraph of nodes."""
        body = {
            "fields": {
                "project": {"key": project_key},
                "issuetype": {"name": issue_type},
                "summary": summary,
                "description": {
                    "type": "doc",
                    "version": 1,
                    "content": [
                        {
                            "type": "paragraph",
                            "content": [node.to_message() for node in description],
                        }
                    ],
                },
            }
        }
        url = f"{self.address}/rest/api/3/issue"
        auth = httpx.BasicAuth(self.username, self.password)

        try:
            if self._client is not None:
                response = await self._client.post(url, json=body, auth=auth)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=body, auth=auth)
            response.raise_for_status()

        except httpx.TimeoutException as e:
            raise GatewayError("Timeout creating Jira ticket") from e
        except httpx.HTTPStatusError as e:
            raise GatewayError(
                f"Jira returned {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Network error creating Jira ticket: {e}") from e


class JiraNotificationService:
    """Opens one ticket per published update."""

    def __init__(self, jira: JiraApi, project_key: str, issue_type: str = "Task"):
        self.jira = jira
        self.project_key = project_key
        self.issue_type = issue_type

    async def notify(self, command: UpdateCommand, change_request_url: str) -> None:
        summary = f"[{command.project_name}] {command.summary}"
        description: list[Content] = [
            Text(
                f"{command.dependency_name} in {command.file_path} can be bumped "
                f"from {command.from_version} to {command.to_version}. "
                "Please review the merge request: "
            ),
            Link(change_request_url),
        ]
        await self.jira.create_ticket(self.project_key, summary, description, self.issue_type)
