"""Tests for the GitLab API client."""

import json

import httpx
import pytest
import respx

from core.errors import GatewayError
from core.gitlab import FileNotFoundInRepository, GitlabApi
from core.models import FileEdit

BASE_URL = "https://gitlab.example.com"


@pytest.fixture
def gitlab():
    return GitlabApi(BASE_URL, token="secret", timeout=5.0)


class TestGitlabApi:
    @pytest.mark.asyncio
    @respx.mock
    async def test_get_file_content(self, gitlab):
        route = respx.get(
            f"{BASE_URL}/api/v4/projects/42/repository/files/services%2Fapi%2Frequirements.txt/raw"
        ).mock(return_value=httpx.Response(200, text="flask==1.0.0\n"))

        content = await gitlab.get_file_content("42", "main", "services/api/requirements.txt")

        assert content == "flask==1.0.0\n"
        request = route.calls[0].request
        assert request.url.params["ref"] == "main"
        assert request.headers["PRIVATE-TOKEN"] == "secret"

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_file(self, gitlab):
        respx.get(f"{BASE_URL}/api/v4/projects/42/repository/files/requirements.txt/raw").mock(
            return_value=httpx.Response(404, json={"message": "404 File Not Found"})
        )

        with pytest.raises(FileNotFoundInRepository) as exc_info:
            await gitlab.get_file_content("42", "main", "requirements.txt")
        assert exc_info.value.branch == "main"

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_branch(self, gitlab):
        route = respx.post(f"{BASE_URL}/api/v4/projects/42/repository/branches").mock(
            return_value=httpx.Response(201, json={"name": "depbump-flask-1.2.0"})
        )

        await gitlab.create_branch("42", "main", "depbump-flask-1.2.0")

        body = json.loads(route.calls[0].request.content)
        assert body == {"branch": "depbump-flask-1.2.0", "ref": "main"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_commit_sends_update_actions(self, gitlab):
        route = respx.post(f"{BASE_URL}/api/v4/projects/42/repository/commits").mock(
            return_value=httpx.Response(201, json={"id": "abc"})
        )

        await gitlab.create_commit(
            "42",
            "depbump-flask-1.2.0",
            "Bumps flask from 1.0.0 to 1.2.0",
            [FileEdit("pyproject.toml", "a"), FileEdit("poetry.lock", "b")],
        )

        body = json.loads(route.calls[0].request.content)
        assert body["branch"] == "depbump-flask-1.2.0"
        assert body["commit_message"] == "Bumps flask from 1.0.0 to 1.2.0"
        assert body["actions"] == [
            {"action": "update", "file_path": "pyproject.toml", "content": "a"},
            {"action": "update", "file_path": "poetry.lock", "content": "b"},
        ]

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_merge_request(self, gitlab):
        web_url = "https://gitlab.example.com/billing/-/merge_requests/7"
        route = respx.post(f"{BASE_URL}/api/v4/projects/42/merge_requests").mock(
            return_value=httpx.Response(
                201,
                json={
                    "iid": 7,
                    "web_url": web_url,
                    "source_branch": "depbump-flask-1.2.0",
                    "target_branch": "main",
                },
            )
        )

        merge_request = await gitlab.create_merge_request(
            "42", "depbump-flask-1.2.0", "main", "Bumps flask from 1.0.0 to 1.2.0"
        )

        assert merge_request.iid == 7
        assert merge_request.web_url == web_url
        body = json.loads(route.calls[0].request.content)
        assert body["title"] == "Bumps flask from 1.0.0 to 1.2.0"
        assert body["target_branch"] == "main"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(201, json={"id": 1}),
            httpx.Response(201, text="<html>created</html>"),
            httpx.Response(201, json=["unexpected"]),
        ],
    )
    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_merge_request_response(self, gitlab, response):
        respx.post(f"{BASE_URL}/api/v4/projects/42/merge_requests").mock(return_value=response)

        with pytest.raises(GatewayError) as exc_info:
            await gitlab.create_merge_request(
                "42", "depbump-flask-1.2.0", "main", "Bumps flask from 1.0.0 to 1.2.0"
            )
        assert "Unexpected merge request response" in str(exc_info.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_becomes_gateway_error(self, gitlab):
        respx.post(f"{BASE_URL}/api/v4/projects/42/repository/branches").mock(
            return_value=httpx.Response(400, json={"message": "Branch already exists"})
        )

        with pytest.raises(GatewayError) as exc_info:
            await gitlab.create_branch("42", "main", "depbump-flask-1.2.0")
        assert "400" in str(exc_info.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error_becomes_gateway_error(self, gitlab):
        respx.post(f"{BASE_URL}/api/v4/projects/42/repository/branches").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(GatewayError):
            await gitlab.create_branch("42", "main", "depbump-flask-1.2.0")

    @pytest.mark.asyncio
    async def test_uses_injected_client(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="content")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            gitlab = GitlabApi(BASE_URL, client=client)
            assert await gitlab.get_file_content("42", "main", "requirements.txt") == "content"
