"""Runtime settings, read from DEPBUMP_* environment variables or .env."""

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class GitlabSettings(BaseModel):
    url: str = "https://gitlab.com"
    token: SecretStr = SecretStr("")


class JiraSettings(BaseModel):
    address: str = ""
    username: str = ""
    password: SecretStr = SecretStr("")
    project_key: str = ""
    issue_type: str = "Task"


class Settings(BaseSettings):
    """All depbump settings.

    Nested values use a double underscore, e.g. ``DEPBUMP_GITLAB__TOKEN``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPBUMP_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    gitlab: GitlabSettings = Field(default_factory=GitlabSettings)
    jira: JiraSettings = Field(default_factory=JiraSettings)
    branch_prefix: str = "depbump"
    ledger_path: str = "depbump.db"  # SQLite file; an empty value keeps attempts in memory
    projects_file: str = "projects.json"
    http_timeout: float = 30.0
    log_level: str = "INFO"
    json_logs: bool = False
