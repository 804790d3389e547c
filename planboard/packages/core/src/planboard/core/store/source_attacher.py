"""SourceAttacher SQLite 实现

为 Artifact 挂载来源（task / message）；两类都没有且 Artifact 尚无任何来源时，
补一条 manual 来源。加入调用方的事务，预检失败时整个保存回滚。
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import structlog

from ..config import MANUAL_SOURCE_DESCRIPTION
from ..exceptions import ValidationError
from ..models.artifact import ArtifactSource
from ..models.enums import ArtifactSourceType
from .connection import SqliteDatabase
from .protocols import TaskStore
from .validation import clean_id_list

log = structlog.get_logger()

_INSERT_SOURCE = """
INSERT OR IGNORE INTO artifact_sources
    (artifact_id, source_type, source_id, description, created_at)
VALUES (?, ?, ?, ?, ?)
"""


def missing_tasks_error(missing: list[int]) -> ValidationError:
    """构造 "Tasks not found for ids: 7, 9" 校验错误"""
    return ValidationError(f"Tasks not found for ids: {', '.join(str(i) for i in missing)}")


class SqliteSourceAttacher:
    """SourceAttacher 的 SQLite 实现"""

    def __init__(self, db: SqliteDatabase, task_store: TaskStore) -> None:
        self._db = db
        self._task_store = task_store

    async def attach(
        self,
        artifact_id: int,
        task_ids: Iterable[Any] | None = None,
        message_ids: Iterable[Any] | None = None,
    ) -> None:
        """挂载来源

        Args:
            artifact_id: 目标 Artifact（由调用方保证存在）
            task_ids: 来源任务 id，必须全部存在
            message_ids: 来源消息 id，不校验存在性

        Raises:
            ValidationError: 存在无法解析的任务 id
        """
        clean_task_ids = clean_id_list(task_ids)
        clean_message_ids = clean_id_list(message_ids)

        async with self._db.transaction() as conn:
            if clean_task_ids:
                missing = await self._task_store.find_missing_ids(clean_task_ids)
                if missing:
                    raise missing_tasks_error(missing)

            now = datetime.now(UTC).isoformat()
            rows = [
                (artifact_id, ArtifactSourceType.TASK.value, task_id, None, now)
                for task_id in clean_task_ids
            ] + [
                (artifact_id, ArtifactSourceType.MESSAGE.value, message_id, None, now)
                for message_id in clean_message_ids
            ]
            if rows:
                await conn.executemany(_INSERT_SOURCE, rows)
                return

            cursor = await conn.execute(
                "SELECT COUNT(*) FROM artifact_sources WHERE artifact_id = ?",
                (artifact_id,),
            )
            row = await cursor.fetchone()
            if row is not None and row[0] > 0:
                return

            await conn.execute(
                _INSERT_SOURCE,
                (
                    artifact_id,
                    ArtifactSourceType.MANUAL.value,
                    None,
                    MANUAL_SOURCE_DESCRIPTION,
                    now,
                ),
            )
            log.debug("artifact_manual_source_added", artifact_id=artifact_id)

    async def list_sources(self, artifact_id: int) -> list[ArtifactSource]:
        """查询 Artifact 的全部来源"""
        rows = await self._db.fetchall(
            """
            SELECT id, artifact_id, source_type, source_id, description, created_at
            FROM artifact_sources
            WHERE artifact_id = ?
            ORDER BY id ASC
            """,
            (artifact_id,),
        )
        return [self._row_to_source(row) for row in rows]

    @staticmethod
    def _row_to_source(row: aiosqlite.Row) -> ArtifactSource:
        return ArtifactSource(
            id=row[0],
            artifact_id=row[1],
            source_type=row[2],
            source_id=row[3],
            description=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )
