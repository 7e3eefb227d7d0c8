"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock

import pytest

from core.ledger import InMemoryLedger
from core.models import MergeRequest, UpdateCommand
from core.projects import ProjectConfig, ProjectRegistry
from core.update import UpdateService


@pytest.fixture
def sample_requirements():
    """Sample requirements.txt content for testing."""
    return "flask==1.0.0\n# comment\nrequests>=2.0\n"


@pytest.fixture
def sample_pyproject():
    """Sample pyproject.toml of a poetry project."""
    return """[tool.poetry]
name = "service"
version = "0.1.0"

[tool.poetry.dependencies]
python = "^3.11"
flask = "^1.0.0"  # web framework
requests = { version = "2.28.0", extras = ["socks"] }

[tool.poetry.group.dev.dependencies]
pytest = "~7.4.0"

[build-system]
requires = ["poetry-core"]
build-backend = "poetry.core.masonry.api"
"""


@pytest.fixture
def sample_lock():
    """Sample poetry.lock matching sample_pyproject."""
    return """# This file is automatically @generated by Poetry and should not be changed by hand.

[[package]]
name = "flask"
version = "1.0.0"
description = "A simple framework for building complex web applications."
optional = false
python-versions = ">=3.7"
files = [
    {file = "Flask-1.0.0-py3-none-any.whl", hash = "sha256:aaaa"},
    {file = "Flask-1.0.0.tar.gz", hash = "sha256:bbbb"},
]

[package.dependencies]
click = ">=8.0"

[[package]]
name = "pytest"
version = "7.4.3"
description = "pytest: simple powerful testing with Python"
optional = false
python-versions = ">=3.7"
files = []

[[package]]
name = "requests"
version = "2.28.0"
description = "Python HTTP for Humans."
optional = false
python-versions = ">=3.7"
files = [
    {file = "requests-2.28.0-py3-none-any.whl", hash = "sha256:cccc"},
]

[package.extras]
socks = ["PySocks (>=1.5.6,!=1.5.7)"]

[metadata]
lock-version = "2.0"
python-versions = "^3.11"
content-hash = "0123456789abcdef"
"""


@pytest.fixture
def command():
    """A resolved update of flask in a requirements.txt project."""
    return UpdateCommand(
        project_id="p-1",
        project_name="billing",
        project_branch="main",
        project_repository_id="42",
        file_path="requirements.txt",
        dependency_name="flask",
        from_version="1.0.0",
        to_version="1.2.0",
    )


@pytest.fixture
def merge_request():
    return MergeRequest(
        iid=7,
        web_url="https://gitlab.example.com/billing/-/merge_requests/7",
        source_branch="depbump-flask-1.2.0",
        target_branch="main",
    )


@pytest.fixture
def repository(sample_requirements, merge_request):
    """Repository gateway double serving sample_requirements."""
    gateway = AsyncMock()
    gateway.get_file_content.return_value = sample_requirements
    gateway.create_merge_request.return_value = merge_request
    return gateway


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def projects():
    return ProjectRegistry(
        [ProjectConfig(id="p-1", name="billing", branch="main", repository_id="42")]
    )


@pytest.fixture
def service(ledger, repository, notifier, projects):
    return UpdateService(ledger, repository, notifier, projects=projects)
