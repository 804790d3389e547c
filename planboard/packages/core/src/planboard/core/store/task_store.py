"""TaskStore SQLite 实现

任务编号（code）分配为 max(当前前缀下的数字后缀) + 1，补零到 4 位；
前缀按字面逐字符比较（区分大小写，不做通配）；
分配与插入在同一条 INSERT ... SELECT 语句内完成，并在单写者事务中执行。
"""

from datetime import UTC, datetime

import aiosqlite
import structlog

from ..config import CODE_ALLOCATION_MAX_RETRIES, TASK_CODE_WIDTH, get_task_code_prefix
from ..exceptions import NotFoundError, ValidationError
from ..models.enums import INITIAL_TASK_STATUS, TaskStatus, TaskType, parse_enum
from ..models.task import Task, TaskSummary
from ..projection import project_relations
from .connection import SqliteDatabase
from .validation import require_text

log = structlog.get_logger()

_TASK_COLUMNS = "id, type, title, description, status, code, created_at"

# 计算下一个编号并插入（单语句原子完成）
_INSERT_WITH_NEXT_CODE = """
INSERT INTO tasks (type, title, description, status, code, created_at)
SELECT ?, ?, ?, ?,
       printf(?, ?, COALESCE(MAX(CAST(substr(code, length(?) + 2) AS INTEGER)), 0) + 1),
       ?
FROM tasks
WHERE substr(code, 1, length(?) + 1) = ? || '-'
"""


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db
        self._code_prefix = get_task_code_prefix()

    async def create_task(
        self,
        type: str,
        title: str,
        description: str,
        status: str | None = None,
    ) -> Task:
        """创建任务并分配编号

        Returns:
            新任务（parents / children 为空，关系由 LinkGraph 另行写入）

        Raises:
            ValidationError: 字段缺失或枚举值非法
        """
        task_type = parse_enum(TaskType, type, "task type")
        clean_title = require_text(title, "Task title")
        clean_description = require_text(description, "Task description")
        task_status = (
            parse_enum(TaskStatus, status, "task status") if status else INITIAL_TASK_STATUS
        )

        task_id: int | None = None
        for attempt in range(1, CODE_ALLOCATION_MAX_RETRIES + 1):
            try:
                async with self._db.transaction() as conn:
                    cursor = await conn.execute(
                        _INSERT_WITH_NEXT_CODE,
                        (
                            task_type.value,
                            clean_title,
                            clean_description,
                            task_status.value,
                            f"%s-%0{TASK_CODE_WIDTH}d",
                            self._code_prefix,
                            self._code_prefix,
                            datetime.now(UTC).isoformat(),
                            self._code_prefix,
                            self._code_prefix,
                        ),
                    )
                    task_id = cursor.lastrowid
                break
            except aiosqlite.IntegrityError as e:
                if self._is_code_conflict(e) and attempt < CODE_ALLOCATION_MAX_RETRIES:
                    log.warning("task_code_conflict_retry", attempt=attempt)
                    continue
                raise

        task = await self.get_task(task_id) if task_id is not None else None
        if task is None:
            raise RuntimeError("failed to read back created task")

        await log.ainfo("task_created", task_id=task.id, code=task.code, type=task.type.value)
        return task

    async def get_task(self, task_id: int) -> Task | None:
        """根据 id 查询任务（不含关系）"""
        row = await self._db.fetchone(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?",
            (task_id,),
        )
        if row is None:
            return None
        return self._row_to_task(row)

    async def get_tasks_by_ids(self, ids: list[int]) -> list[TaskSummary]:
        """批量查询任务摘要；不存在的 id 被忽略"""
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = await self._db.fetchall(
            f"SELECT id, code, title FROM tasks WHERE id IN ({placeholders})",
            list(ids),
        )
        return [TaskSummary(id=row[0], code=row[1], title=row[2]) for row in rows]

    async def find_missing_ids(self, ids: list[int]) -> list[int]:
        """返回 ids 中不存在的任务 id（保持输入顺序）"""
        existing = {summary.id for summary in await self.get_tasks_by_ids(ids)}
        return [task_id for task_id in ids if task_id not in existing]

    async def list_tasks(self) -> list[Task]:
        """查询全部任务及其关系，按 created_at 倒序"""
        rows = await self._db.fetchall(
            f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY created_at DESC, id DESC"
        )
        links = await self._db.fetchall("SELECT parent_id, child_id FROM task_links")
        return project_relations(
            [self._row_to_task(row) for row in rows],
            [(link[0], link[1]) for link in links],
        )

    async def update_task(
        self,
        task_id: int,
        *,
        type: str | None = None,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
    ) -> Task:
        """部分更新：仅替换传入（非 None）的字段

        Raises:
            ValidationError: 没有任何字段，或字段非法
            NotFoundError: 任务不存在
        """
        sets: list[str] = []
        params: list[str | int] = []
        if type is not None:
            sets.append("type = ?")
            params.append(parse_enum(TaskType, type, "task type").value)
        if title is not None:
            sets.append("title = ?")
            params.append(require_text(title, "Task title"))
        if description is not None:
            sets.append("description = ?")
            params.append(require_text(description, "Task description"))
        if status is not None:
            sets.append("status = ?")
            params.append(parse_enum(TaskStatus, status, "task status").value)

        if not sets:
            raise ValidationError("Nothing to update")

        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?",
                [*params, task_id],
            )
            if cursor.rowcount == 0:
                raise NotFoundError("task", task_id)

        task = await self.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    async def delete_task(self, task_id: int) -> None:
        """删除任务，先移除所有相关边

        Raises:
            NotFoundError: 任务不存在
        """
        async with self._db.transaction() as conn:
            cursor = await conn.execute("SELECT id FROM tasks WHERE id = ?", (task_id,))
            if await cursor.fetchone() is None:
                raise NotFoundError("task", task_id)

            await conn.execute(
                "DELETE FROM task_links WHERE parent_id = ? OR child_id = ?",
                (task_id, task_id),
            )
            await conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

        log.info("task_deleted", task_id=task_id)

    @staticmethod
    def _is_code_conflict(error: Exception) -> bool:
        text = str(error)
        return "tasks.code" in text or "idx_tasks_code" in text

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            id=row[0],
            type=row[1],
            title=row[2],
            description=row[3],
            status=row[4],
            code=row[5],
            created_at=datetime.fromisoformat(row[6]),
        )
