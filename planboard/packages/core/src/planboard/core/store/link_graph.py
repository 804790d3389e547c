"""LinkGraph SQLite 实现 -- 任务间有向边（parent -> child）

set_relations 按方向整体替换，不做合并；不检测环。
"""

import aiosqlite
import structlog

from ..exceptions import NotFoundError
from ..models.task import Task, TaskSummary
from .connection import SqliteDatabase
from .protocols import TaskStore

log = structlog.get_logger()


class SqliteLinkGraph:
    """任务关系图的 SQLite 实现"""

    def __init__(self, db: SqliteDatabase, task_store: TaskStore) -> None:
        self._db = db
        self._task_store = task_store

    async def set_relations(
        self,
        task_id: int,
        parent_ids: list[int] | None = None,
        child_ids: list[int] | None = None,
    ) -> None:
        """替换任务的入边和/或出边

        Args:
            task_id: 目标任务
            parent_ids: None 表示不修改入边；列表（可为空）表示整体替换
            child_ids: None 表示不修改出边；列表（可为空）表示整体替换

        自引用被跳过，重复边被忽略。

        Raises:
            NotFoundError: 目标任务不存在
        """
        if parent_ids is None and child_ids is None:
            return

        async with self._db.transaction() as conn:
            cursor = await conn.execute("SELECT id FROM tasks WHERE id = ?", (task_id,))
            if await cursor.fetchone() is None:
                raise NotFoundError("task", task_id)

            if parent_ids is not None:
                await conn.execute("DELETE FROM task_links WHERE child_id = ?", (task_id,))
                await conn.executemany(
                    "INSERT OR IGNORE INTO task_links (parent_id, child_id) VALUES (?, ?)",
                    [(parent_id, task_id) for parent_id in parent_ids if parent_id != task_id],
                )

            if child_ids is not None:
                await conn.execute("DELETE FROM task_links WHERE parent_id = ?", (task_id,))
                await conn.executemany(
                    "INSERT OR IGNORE INTO task_links (parent_id, child_id) VALUES (?, ?)",
                    [(task_id, child_id) for child_id in child_ids if child_id != task_id],
                )

        log.info(
            "task_relations_set",
            task_id=task_id,
            parent_count=None if parent_ids is None else len(parent_ids),
            child_count=None if child_ids is None else len(child_ids),
        )

    async def get_with_relations(self, task_id: int) -> Task:
        """查询任务及其父/子任务摘要

        Raises:
            NotFoundError: 任务不存在
        """
        task = await self._task_store.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)

        parents = await self._fetch_summaries(
            """
            SELECT t.id, t.code, t.title
            FROM tasks t
            INNER JOIN task_links l ON t.id = l.parent_id
            WHERE l.child_id = ?
            ORDER BY t.id
            """,
            task_id,
        )
        children = await self._fetch_summaries(
            """
            SELECT t.id, t.code, t.title
            FROM tasks t
            INNER JOIN task_links l ON t.id = l.child_id
            WHERE l.parent_id = ?
            ORDER BY t.id
            """,
            task_id,
        )
        return task.model_copy(update={"parents": parents, "children": children})

    async def list_links(self) -> list[tuple[int, int]]:
        """全部边 (parent_id, child_id)"""
        rows = await self._db.fetchall(
            "SELECT parent_id, child_id FROM task_links ORDER BY parent_id, child_id"
        )
        return [(row[0], row[1]) for row in rows]

    async def _fetch_summaries(self, sql: str, task_id: int) -> list[TaskSummary]:
        rows = await self._db.fetchall(sql, (task_id,))
        return [self._row_to_summary(row) for row in rows]

    @staticmethod
    def _row_to_summary(row: aiosqlite.Row) -> TaskSummary:
        return TaskSummary(id=row[0], code=row[1], title=row[2])
