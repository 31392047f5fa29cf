"""Summary: SQLite storage implementation for DraftPilot.

Importance: Provides a local-first persistence layer for user templates and AI audits.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from draftpilot.models import AiRequest, AiResponse, EmailTemplate


@dataclass(frozen=True)
class StoredTemplate:
    """Summary: User template record with database identifier.

    Importance: Lets clients update and delete their own templates.
    Alternatives: Use template names as natural keys.
    """

    id: int
    name: str
    data: dict[str, Any]
    is_default: bool
    created_at: str
    updated_at: str

    def to_template(self) -> EmailTemplate:
        return EmailTemplate.from_dict({**self.data, "name": self.name}, template_id=str(self.id))


@dataclass(frozen=True)
class StoredAiRequest:
    """Summary: AI request record with database identifier."""

    id: int
    provider: str
    model: str
    prompt: str
    purpose: str
    timestamp: str


@dataclass(frozen=True)
class StoredAiResponse:
    """Summary: AI response record with database identifier."""

    id: int
    request_id: int
    response_text: str
    latency_ms: int
    input_tokens: int
    output_tokens: int


class SqliteStore:
    """Summary: SQLite-backed storage for DraftPilot.

    Importance: Enables local-first persistence with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready for template and audit queries.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    data TEXT NOT NULL,
                    is_default INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS ai_requests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    provider TEXT NOT NULL,
                    model TEXT NOT NULL,
                    prompt TEXT NOT NULL,
                    purpose TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS ai_responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    request_id INTEGER NOT NULL,
                    response_text TEXT NOT NULL,
                    latency_ms INTEGER NOT NULL,
                    input_tokens INTEGER NOT NULL DEFAULT 0,
                    output_tokens INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            connection.commit()

    def create_template(self, template: EmailTemplate, is_default: bool = False) -> int:
        """Summary: Persist a user template.

        Importance: Lets users keep their own templates beside the built-in ones.
        Alternatives: Store templates in browser local storage only.
        """

        now = datetime.utcnow().isoformat()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT INTO templates (name, data, is_default, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (template.name, _dump_template(template), int(is_default), now, now),
            )
            template_id = cursor.lastrowid
            connection.commit()
        return int(template_id)

    def list_templates(self) -> list[StoredTemplate]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, name, data, is_default, created_at, updated_at
                FROM templates
                ORDER BY created_at DESC, id DESC
                """
            )
            rows = cursor.fetchall()
        return [_row_to_template(row) for row in rows]

    def get_template(self, template_id: int) -> StoredTemplate | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, name, data, is_default, created_at, updated_at
                FROM templates
                WHERE id = ?
                """,
                (template_id,),
            )
            row = cursor.fetchone()
        return _row_to_template(row) if row else None

    def update_template(
        self,
        template_id: int,
        template: EmailTemplate | None = None,
        is_default: bool | None = None,
    ) -> StoredTemplate | None:
        """Summary: Update a stored template, keeping fields that are not supplied.

        Importance: Supports partial edits from the template editor.
        Alternatives: Require a full replacement on every update.
        """

        existing = self.get_template(template_id)
        if not existing:
            return None
        name = template.name if template else existing.name
        data = _dump_template(template) if template else json.dumps(existing.data)
        default_flag = existing.is_default if is_default is None else is_default
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                UPDATE templates
                SET name = ?, data = ?, is_default = ?, updated_at = ?
                WHERE id = ?
                """,
                (name, data, int(default_flag), datetime.utcnow().isoformat(), template_id),
            )
            connection.commit()
        return self.get_template(template_id)

    def delete_template(self, template_id: int) -> bool:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM templates WHERE id = ?", (template_id,))
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    def log_ai_request(self, request: AiRequest) -> int:
        """Summary: Persist an AI request for auditing.

        Importance: Tracks prompts and providers used by the system.
        Alternatives: Use structured logs instead of database storage.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT INTO ai_requests (provider, model, prompt, purpose, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    request.provider,
                    request.model,
                    request.prompt,
                    request.purpose,
                    request.timestamp.isoformat(),
                ),
            )
            request_id = cursor.lastrowid
            connection.commit()
        return int(request_id)

    def log_ai_response(self, response: AiResponse) -> int:
        """Summary: Persist an AI response for auditing.

        Importance: Enables traceability of AI outputs, latency and token usage.
        Alternatives: Store responses in a flat log file.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT INTO ai_responses
                    (request_id, response_text, latency_ms, input_tokens, output_tokens)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    response.request_id,
                    response.response_text,
                    response.latency_ms,
                    response.input_tokens,
                    response.output_tokens,
                ),
            )
            response_id = cursor.lastrowid
            connection.commit()
        return int(response_id)

    def list_ai_requests(self, limit: int) -> list[StoredAiRequest]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, provider, model, prompt, purpose, timestamp
                FROM ai_requests
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [StoredAiRequest(*row) for row in rows]

    def list_ai_responses(self, limit: int) -> list[StoredAiResponse]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, request_id, response_text, latency_ms, input_tokens, output_tokens
                FROM ai_responses
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [StoredAiResponse(*row) for row in rows]

    def sum_ai_tokens(self) -> tuple[int, int]:
        """Summary: Sum recorded input and output tokens.

        Importance: Backs the token usage summary.
        Alternatives: Aggregate in Python from listed responses.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT COALESCE(SUM(input_tokens), 0), COALESCE(SUM(output_tokens), 0) "
                "FROM ai_responses"
            )
            row = cursor.fetchone()
        return int(row[0]), int(row[1])

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _dump_template(template: EmailTemplate) -> str:
    data = template.to_dict()
    data.pop("id", None)
    data.pop("name", None)
    return json.dumps(data)


def _row_to_template(row: tuple[Any, ...]) -> StoredTemplate:
    return StoredTemplate(
        id=row[0],
        name=row[1],
        data=json.loads(row[2]),
        is_default=bool(row[3]),
        created_at=row[4],
        updated_at=row[5],
    )

