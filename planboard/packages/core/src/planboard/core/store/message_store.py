"""MessageStore SQLite 实现 -- 对话历史"""

from datetime import UTC, datetime

import aiosqlite
import structlog

from ..config import RECENT_MESSAGES_LIMIT
from ..models.message import Message
from .connection import SqliteDatabase
from .validation import require_text

log = structlog.get_logger()


class SqliteMessageStore:
    """MessageStore 的 SQLite 实现"""

    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db

    async def save_message(self, user_text: str, bot_reply: str) -> Message:
        """保存一轮对话

        Raises:
            ValidationError: user_text 为空
        """
        clean_user_text = require_text(user_text, "Message text")
        now = datetime.now(UTC).isoformat()

        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "INSERT INTO messages (user_text, bot_reply, created_at) VALUES (?, ?, ?)",
                (clean_user_text, bot_reply or "", now),
            )
            message_id = cursor.lastrowid

        return Message(
            id=message_id,
            user_text=clean_user_text,
            bot_reply=bot_reply or "",
            created_at=datetime.fromisoformat(now),
        )

    async def get_recent_messages(self, limit: int = RECENT_MESSAGES_LIMIT) -> list[Message]:
        """最近 limit 条消息，按时间正序返回"""
        rows = await self._db.fetchall(
            """
            SELECT id, user_text, bot_reply, created_at
            FROM messages
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._row_to_message(row) for row in reversed(rows)]

    async def clear_messages(self) -> int:
        """清空对话历史，返回删除条数"""
        async with self._db.transaction() as conn:
            cursor = await conn.execute("DELETE FROM messages")
            removed = cursor.rowcount

        log.info("messages_cleared", removed=removed)
        return removed

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> Message:
        return Message(
            id=row[0],
            user_text=row[1],
            bot_reply=row[2],
            created_at=datetime.fromisoformat(row[3]),
        )
