"""Append-only stores of published update attempts."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from .errors import GatewayError
from .models import UpdateAttempt, UpdateRequestKey


class AttemptLedger(Protocol):
    async def exists(self, project_id: str, dependency_name: str, to_version: str) -> bool: ...

    async def exist_any(self, keys: list[UpdateRequestKey]) -> list[UpdateRequestKey]: ...

    async def save(self, attempt: UpdateAttempt) -> None: ...


class InMemoryLedger:
    """Ledger kept in a dict; lost when the process exits."""

    def __init__(self, attempts: list[UpdateAttempt] | None = None):
        self._attempts: dict[UpdateRequestKey, UpdateAttempt] = {}
        for attempt in attempts or []:
            self._attempts[attempt.key] = attempt

    async def exists(self, project_id: str, dependency_name: str, to_version: str) -> bool:
        return UpdateRequestKey(project_id, dependency_name, to_version) in self._attempts

    async def exist_any(self, keys: list[UpdateRequestKey]) -> list[UpdateRequestKey]:
        return [key for key in keys if key in self._attempts]

    async def save(self, attempt: UpdateAttempt) -> None:
        if attempt.key in self._attempts:
            raise GatewayError(f"Attempt already recorded for {attempt.key}")
        self._attempts[attempt.key] = attempt

    def attempts(self) -> list[UpdateAttempt]:
        return list(self._attempts.values())


class SqliteLedger:
    """Ledger persisted in a SQLite database file.

    Queries run synchronously on the calling thread; each one is a single
    indexed lookup or insert on a local file.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        with self._connect() as db:
            db.execute(
                "CREATE TABLE IF NOT EXISTS update_attempts ("
                "project_id TEXT NOT NULL, "
                "dependency_name TEXT NOT NULL, "
                "to_version TEXT NOT NULL, "
                "change_request_url TEXT NOT NULL, "
                "UNIQUE (project_id, dependency_name, to_version))"
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and always close it."""
        db = sqlite3.connect(self.db_path)
        try:
            with db:
                yield db
        finally:
            db.close()

    @staticmethod
    def _has_row(db: sqlite3.Connection, key: UpdateRequestKey) -> bool:
        row = db.execute(
            "SELECT 1 FROM update_attempts "
            "WHERE project_id = ? AND dependency_name = ? AND to_version = ?",
            (key.project_id, key.dependency_name, key.to_version),
        ).fetchone()
        return row is not None

    async def exists(self, project_id: str, dependency_name: str, to_version: str) -> bool:
        key = UpdateRequestKey(project_id, dependency_name, to_version)
        try:
            with self._connect() as db:
                return self._has_row(db, key)
        except sqlite3.Error as e:
            raise GatewayError(f"Could not look up attempt for {key}: {e}") from e

    async def exist_any(self, keys: list[UpdateRequestKey]) -> list[UpdateRequestKey]:
        try:
            with self._connect() as db:
                return [key for key in keys if self._has_row(db, key)]
        except sqlite3.Error as e:
            raise GatewayError(f"Could not look up attempts: {e}") from e

    async def save(self, attempt: UpdateAttempt) -> None:
        try:
            with self._connect() as db:
                db.execute(
                    "INSERT INTO update_attempts "
                    "(project_id, dependency_name, to_version, change_request_url) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        attempt.project_id,
                        attempt.dependency_name,
                        attempt.to_version,
                        attempt.change_request_url,
                    ),
                )
        except sqlite3.Error as e:
            raise GatewayError(f"Could not record attempt for {attempt.key}: {e}") from e
