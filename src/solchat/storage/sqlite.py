"""SQLite conversation store with WAL mode.

Uses synchronous sqlite3; local-disk I/O is sub-millisecond and does not
justify an extra background thread.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.global_paths import GlobalPath
from ..core.id import Identifier
from ..session.message import ChatMessage, ToolInvocation, UsageRecord
from ..util.log import Log
from .store import Conversation, TokenStat

log = Log.create({"service": "storage"})

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        conversation_id TEXT NOT NULL,
        created_us INTEGER NOT NULL,
        data TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS messages_conversation ON messages (conversation_id, created_us)",
    """
    CREATE TABLE IF NOT EXISTS token_stats (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        message_ids TEXT NOT NULL,
        prompt_tokens INTEGER NOT NULL,
        completion_tokens INTEGER NOT NULL,
        total_tokens INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
)


def _micros(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1_000_000)


class SQLiteConversationStore:
    """Conversation store backed by a single SQLite file.

    ``path`` may be ``":memory:"`` for tests.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or GlobalPath.database()
        self._lock = threading.Lock()
        self._db: Optional[sqlite3.Connection] = None

    def _conn(self) -> sqlite3.Connection:
        if self._db is not None:
            return self._db
        with self._lock:
            if self._db is None:
                if self.path != ":memory:":
                    Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                db = sqlite3.connect(self.path, check_same_thread=False)
                db.execute("PRAGMA journal_mode=WAL")
                db.execute("PRAGMA synchronous=NORMAL")
                db.execute("PRAGMA busy_timeout=5000")
                for statement in _SCHEMA:
                    db.execute(statement)
                db.commit()
                self._db = db
                log.info("storage ready", {"path": self.path})
        return self._db

    async def initialize(self) -> str:
        self._conn()
        return self.path

    # conversations

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        row = self._conn().execute(
            "SELECT id, user_id, title, created_at FROM conversations WHERE id = ?",
            (conversation_id,),
        ).fetchone()
        if row is None:
            return None
        return Conversation(id=row[0], user_id=row[1], title=row[2], created_at=datetime.fromisoformat(row[3]))

    async def create_conversation(self, conversation_id: str, user_id: str, title: str) -> Conversation:
        conversation = Conversation(id=conversation_id, user_id=user_id, title=title)
        db = self._conn()
        with self._lock:
            db.execute(
                "INSERT OR IGNORE INTO conversations (id, user_id, title, created_at) VALUES (?, ?, ?, ?)",
                (conversation.id, conversation.user_id, conversation.title, conversation.created_at.isoformat()),
            )
            db.commit()
        return conversation

    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        db = self._conn()
        with self._lock:
            cursor = db.execute(
                "DELETE FROM conversations WHERE id = ? AND user_id = ?",
                (conversation_id, user_id),
            )
            deleted = cursor.rowcount > 0
            if deleted:
                db.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
            db.commit()
        return deleted

    # messages

    async def list_conversation_messages(self, conversation_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """Most recent ``limit`` messages, oldest first."""
        query = "SELECT data FROM messages WHERE conversation_id = ? ORDER BY created_us DESC"
        params: tuple = (conversation_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (conversation_id, limit)
        rows = self._conn().execute(query, params).fetchall()
        return [ChatMessage.model_validate_json(row[0]) for row in reversed(rows)]

    async def get_message(self, message_id: str) -> Optional[ChatMessage]:
        row = self._conn().execute("SELECT data FROM messages WHERE id = ?", (message_id,)).fetchone()
        if row is None:
            return None
        return ChatMessage.model_validate_json(row[0])

    async def upsert_messages(self, messages: Sequence[ChatMessage]) -> List[ChatMessage]:
        """Insert or replace messages by id."""
        if not messages:
            return []
        db = self._conn()
        with self._lock:
            db.executemany(
                """
                INSERT INTO messages (id, conversation_id, created_us, data) VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    conversation_id = excluded.conversation_id,
                    created_us = excluded.created_us,
                    data = excluded.data
                """,
                [
                    (m.id, m.conversation_id, _micros(m.created_at), m.model_dump_json(by_alias=True))
                    for m in messages
                ],
            )
            db.commit()
        return list(messages)

    async def update_tool_invocations(
        self, message_id: str, invocations: Sequence[ToolInvocation]
    ) -> Optional[ChatMessage]:
        message = await self.get_message(message_id)
        if message is None:
            return None
        updated = message.model_copy(update={"tool_invocations": list(invocations)})
        await self.upsert_messages([updated])
        return updated

    # token usage

    async def create_token_stat(self, user_id: str, message_ids: Sequence[str], usage: UsageRecord) -> TokenStat:
        stat = TokenStat(id=Identifier.ascending("usage"), user_id=user_id, message_ids=list(message_ids), usage=usage)
        db = self._conn()
        with self._lock:
            db.execute(
                """
                INSERT INTO token_stats
                    (id, user_id, message_ids, prompt_tokens, completion_tokens, total_tokens, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stat.id,
                    stat.user_id,
                    json.dumps(stat.message_ids),
                    usage.prompt_tokens,
                    usage.completion_tokens,
                    usage.total_tokens,
                    stat.created_at.isoformat(),
                ),
            )
            db.commit()
        return stat

    async def list_token_stats(self, user_id: str) -> List[TokenStat]:
        rows = self._conn().execute(
            """
            SELECT id, user_id, message_ids, prompt_tokens, completion_tokens, total_tokens, created_at
            FROM token_stats WHERE user_id = ? ORDER BY created_at
            """,
            (user_id,),
        ).fetchall()
        return [
            TokenStat(
                id=row[0],
                user_id=row[1],
                message_ids=json.loads(row[2]),
                usage=UsageRecord(prompt_tokens=row[3], completion_tokens=row[4], total_tokens=row[5]),
                created_at=datetime.fromisoformat(row[6]),
            )
            for row in rows
        ]

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
