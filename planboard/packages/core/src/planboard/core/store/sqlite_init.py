"""SQLite Schema 初始化与迁移

PRAGMA 配置 + 全部表 DDL + 索引创建，进程每次启动都会调用（幂等）。
tasks 表的 status CHECK 约束与当前 TaskStatus 闭集不一致时，
在单个事务内重建 tasks 表并按映射表改写历史状态值。
"""

from typing import Any

import aiosqlite
import structlog

from ..config import TASK_CODE_WIDTH, get_task_code_prefix
from ..exceptions import MigrationError
from ..models.enums import (
    INITIAL_TASK_STATUS,
    LEGACY_TASK_STATUS_MAP,
    ArtifactCategory,
    ArtifactExportFormat,
    ArtifactFormat,
    ArtifactKind,
    ArtifactSourceType,
    TaskStatus,
    TaskType,
)

log = structlog.get_logger()


def _in_check(column: str, values: list[str]) -> str:
    quoted = "','".join(values)
    return f"{column} IN ('{quoted}')"


TASK_TYPE_CHECK = _in_check("type", [t.value for t in TaskType])
TASK_STATUS_CHECK = _in_check("status", [s.value for s in TaskStatus])
ARTIFACT_KIND_CHECK = _in_check("kind", [k.value for k in ArtifactKind])
ARTIFACT_CATEGORY_CHECK = _in_check("category", [c.value for c in ArtifactCategory])
ARTIFACT_FORMAT_CHECK = _in_check("format", [f.value for f in ArtifactFormat])
ARTIFACT_SOURCE_CHECK = _in_check("source_type", [s.value for s in ArtifactSourceType])
ARTIFACT_EXPORT_FORMAT_CHECK = _in_check("format", [f.value for f in ArtifactExportFormat])

# 迁移过程中旧表的临时名称
_LEGACY_TASKS_TABLE = "tasks_old"

# messages 表 DDL
_MESSAGES_DDL = """
CREATE TABLE IF NOT EXISTS messages (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_text   TEXT NOT NULL,
    bot_reply   TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# tasks 表 DDL
_TASKS_DDL = f"""
CREATE TABLE IF NOT EXISTS tasks (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    type         TEXT NOT NULL CHECK ({TASK_TYPE_CHECK}),
    title        TEXT NOT NULL,
    description  TEXT NOT NULL,
    status       TEXT NOT NULL CHECK ({TASK_STATUS_CHECK}),
    code         TEXT UNIQUE NOT NULL,
    created_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# task_links 表 DDL（有向边 parent -> child）
_TASK_LINKS_DDL = """
CREATE TABLE IF NOT EXISTS task_links (
    parent_id  INTEGER NOT NULL,
    child_id   INTEGER NOT NULL,
    PRIMARY KEY (parent_id, child_id)
);
"""

_TASKS_CODE_INDEX_NAME = "idx_tasks_code"
_TASKS_CODE_INDEX = (
    f"CREATE UNIQUE INDEX IF NOT EXISTS {_TASKS_CODE_INDEX_NAME} ON tasks(code);"
)

_TASK_INDEXES = [
    _TASKS_CODE_INDEX,
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
    # 反向查找入边（主键已覆盖 parent_id 前缀）
    "CREATE INDEX IF NOT EXISTS idx_task_links_child_id ON task_links(child_id);",
]

# artifacts 表 DDL
_ARTIFACTS_DDL = f"""
CREATE TABLE IF NOT EXISTS artifacts (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT NOT NULL,
    kind        TEXT NOT NULL CHECK ({ARTIFACT_KIND_CHECK}),
    category    TEXT NOT NULL CHECK ({ARTIFACT_CATEGORY_CHECK}),
    created_at  TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

_ARTIFACT_VERSIONS_DDL = f"""
CREATE TABLE IF NOT EXISTS artifact_versions (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    artifact_id  INTEGER NOT NULL,
    version      INTEGER NOT NULL,
    format       TEXT NOT NULL CHECK ({ARTIFACT_FORMAT_CHECK}),
    content      TEXT NOT NULL,
    render_url   TEXT,
    notes        TEXT,
    created_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (artifact_id) REFERENCES artifacts(id) ON DELETE CASCADE,
    UNIQUE (artifact_id, version)
);
"""

_ARTIFACT_SOURCES_DDL = f"""
CREATE TABLE IF NOT EXISTS artifact_sources (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    artifact_id  INTEGER NOT NULL,
    source_type  TEXT NOT NULL CHECK ({ARTIFACT_SOURCE_CHECK}),
    source_id    INTEGER,
    description  TEXT,
    created_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (artifact_id) REFERENCES artifacts(id) ON DELETE CASCADE
);
"""

_ARTIFACT_EXPORTS_DDL = f"""
CREATE TABLE IF NOT EXISTS artifact_exports (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    artifact_version_id  INTEGER NOT NULL,
    format               TEXT NOT NULL CHECK ({ARTIFACT_EXPORT_FORMAT_CHECK}),
    content              TEXT,
    location             TEXT,
    created_at           TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (artifact_version_id) REFERENCES artifact_versions(id) ON DELETE CASCADE,
    CHECK (content IS NOT NULL OR location IS NOT NULL)
);
"""

_ARTIFACT_SOURCES_UNIQUE_INDEX = "idx_artifact_sources_unique"

_ARTIFACT_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_artifact_versions_artifact_id "
    "ON artifact_versions(artifact_id);",
    "CREATE INDEX IF NOT EXISTS idx_artifact_sources_artifact_id "
    "ON artifact_sources(artifact_id);",
    "CREATE INDEX IF NOT EXISTS idx_artifact_exports_version_id "
    "ON artifact_exports(artifact_version_id);",
    # 同一来源重复挂载时 INSERT OR IGNORE 生效
    (
        f"CREATE UNIQUE INDEX IF NOT EXISTS {_ARTIFACT_SOURCES_UNIQUE_INDEX} "
        "ON artifact_sources(artifact_id, source_type, source_id);"
    ),
]


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """初始化数据库：PRAGMA + 建表 + 历史 schema 迁移 + 索引

    可在每次进程启动时调用。

    Raises:
        MigrationError: tasks 表重建失败（应中止启动）
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 上次非原子迁移中断留下的 tasks_old
    await _recover_interrupted_migration(conn)

    # 创建表
    await conn.execute(_MESSAGES_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_TASK_LINKS_DDL)

    # tasks 历史列补齐，再校验 status 约束
    await _ensure_task_title_column(conn)
    await _ensure_task_code_column(conn)
    await _ensure_task_status_constraint(conn)

    await conn.execute(_ARTIFACTS_DDL)
    await conn.execute(_ARTIFACT_VERSIONS_DDL)
    await conn.execute(_ARTIFACT_SOURCES_DDL)
    await conn.execute(_ARTIFACT_EXPORTS_DDL)
    await _dedupe_artifact_sources(conn)

    # 创建索引
    for idx_sql in _TASK_INDEXES + _ARTIFACT_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"


async def _table_names(conn: aiosqlite.Connection) -> set[str]:
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    rows = await cursor.fetchall()
    return {row[0] for row in rows}


async def _column_names(conn: aiosqlite.Connection, table: str) -> set[str]:
    cursor = await conn.execute(f"PRAGMA table_info('{table}')")
    rows = await cursor.fetchall()
    return {row[1] for row in rows}


async def _recover_interrupted_migration(conn: aiosqlite.Connection) -> None:
    """恢复中断的 tasks 重建：把 tasks_old 还原为 tasks，之后重新走迁移"""
    tables = await _table_names(conn)
    if _LEGACY_TASKS_TABLE not in tables:
        return

    tasks_present = "tasks" in tables
    log.warning(
        "task_migration_leftover_detected",
        tasks_present=tasks_present,
    )
    await _run_guarded(
        conn,
        [
            *(["DROP TABLE tasks"] if tasks_present else []),
            f"ALTER TABLE {_LEGACY_TASKS_TABLE} RENAME TO tasks",
        ],
        event="task_migration_recovery",
    )


async def _ensure_task_title_column(conn: aiosqlite.Connection) -> None:
    """早期 tasks 表没有 title 列"""
    if "title" in await _column_names(conn, "tasks"):
        return
    log.warning("task_title_column_missing")
    await _run_guarded(
        conn,
        ["ALTER TABLE tasks ADD COLUMN title TEXT NOT NULL DEFAULT ''"],
        event="task_title_migration",
    )


async def _ensure_task_code_column(conn: aiosqlite.Connection) -> None:
    """code 列补齐与回填

    早期 tasks 表没有 code 列：补列后按 id 顺序编号 TASK-0001...；
    上次回填中断留下的 NULL code 从当前最大后缀续编。
    补列、回填、唯一索引在同一事务内完成。
    """
    prefix = get_task_code_prefix()
    statements: list[str | tuple[str, list[Any]]] = []

    if "code" not in await _column_names(conn, "tasks"):
        log.warning("task_code_column_missing")
        statements.append("ALTER TABLE tasks ADD COLUMN code TEXT")
        cursor = await conn.execute("SELECT id FROM tasks ORDER BY id ASC")
        pending = [row[0] for row in await cursor.fetchall()]
        next_number = 1
    else:
        cursor = await conn.execute("SELECT id FROM tasks WHERE code IS NULL ORDER BY id ASC")
        pending = [row[0] for row in await cursor.fetchall()]
        next_number = await _max_code_suffix(conn, prefix) + 1 if pending else 1

    statements.extend(
        (
            "UPDATE tasks SET code = ? WHERE id = ?",
            [f"{prefix}-{number:0{TASK_CODE_WIDTH}d}", task_id],
        )
        for number, task_id in enumerate(pending, start=next_number)
    )

    if not await _index_exists(conn, _TASKS_CODE_INDEX_NAME):
        statements.append(_TASKS_CODE_INDEX)
    if not statements:
        return

    await _run_guarded(conn, statements, event="task_code_migration")
    if pending:
        log.info("task_code_backfilled", task_count=len(pending), first_number=next_number)


async def _max_code_suffix(conn: aiosqlite.Connection, prefix: str) -> int:
    """当前前缀下已分配编号的最大数字后缀"""
    cursor = await conn.execute(
        """
        SELECT COALESCE(MAX(CAST(substr(code, length(?) + 2) AS INTEGER)), 0)
        FROM tasks
        WHERE substr(code, 1, length(?) + 1) = ? || '-'
        """,
        (prefix, prefix, prefix),
    )
    row = await cursor.fetchone()
    return row[0] if row is not None else 0


async def _index_exists(conn: aiosqlite.Connection, name: str) -> bool:
    cursor = await conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = ?",
        (name,),
    )
    return await cursor.fetchone() is not None


async def _ensure_task_status_constraint(conn: aiosqlite.Connection) -> None:
    """status CHECK 约束与当前闭集不一致时重建 tasks 表"""
    cursor = await conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = 'tasks'"
    )
    row = await cursor.fetchone()
    if row is not None and row[0] and TASK_STATUS_CHECK in row[0]:
        return

    log.warning(
        "task_status_migration_required",
        expected_check=TASK_STATUS_CHECK,
    )

    case_sql, case_params = _status_remap_case()
    copy_sql = f"""
        INSERT INTO tasks (id, type, title, description, status, code, created_at)
        SELECT id, type, title, description, {case_sql}, code,
               COALESCE(created_at, CURRENT_TIMESTAMP)
        FROM {_LEGACY_TASKS_TABLE}
    """
    await _run_guarded(
        conn,
        [
            f"ALTER TABLE tasks RENAME TO {_LEGACY_TASKS_TABLE}",
            _TASKS_DDL,
            (copy_sql, case_params),
            f"DROP TABLE {_LEGACY_TASKS_TABLE}",
            # 旧索引随 tasks_old 一并删除，需要在新表上重建
            _TASKS_CODE_INDEX,
        ],
        event="task_status_migration",
    )


def _status_remap_case() -> tuple[str, list[str]]:
    """生成 CASE status WHEN ? THEN ? ... ELSE ? END 及其参数"""
    mapping: dict[str, str] = {s.value: s.value for s in TaskStatus}
    mapping.update({old: new.value for old, new in LEGACY_TASK_STATUS_MAP.items()})

    clauses: list[str] = []
    params: list[str] = []
    for old, new in mapping.items():
        clauses.append("WHEN ? THEN ?")
        params.extend([old, new])
    params.append(INITIAL_TASK_STATUS.value)
    return f"CASE status {' '.join(clauses)} ELSE ? END", params


async def _run_guarded(
    conn: aiosqlite.Connection,
    statements: list[str | tuple[str, list[Any]]],
    event: str,
) -> None:
    """在关闭外键检查的单个事务内执行一组 DDL/DML

    PRAGMA foreign_keys 在事务内无效，必须在 BEGIN 之前切换。

    Raises:
        MigrationError: 任一步骤失败（事务已回滚，外键检查已恢复）
    """
    if conn.in_transaction:
        await conn.commit()

    await conn.execute("PRAGMA foreign_keys = OFF")
    step = "begin"
    try:
        await conn.execute("BEGIN IMMEDIATE")
        for statement in statements:
            sql, params = statement if isinstance(statement, tuple) else (statement, [])
            step = " ".join(sql.split())[:60]
            await conn.execute(sql, params)
        step = "commit"
        await conn.commit()
    except Exception as e:
        if conn.in_transaction:
            await conn.rollback()
        log.error(
            f"{event}_failed",
            step=step,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise MigrationError(step, e) from e
    finally:
        await conn.execute("PRAGMA foreign_keys = ON")

    await log.ainfo(f"{event}_completed", statement_count=len(statements))


async def _dedupe_artifact_sources(conn: aiosqlite.Connection) -> None:
    """唯一索引创建前折叠重复来源行（旧版本 INSERT OR IGNORE 无约束可依）"""
    if await _index_exists(conn, _ARTIFACT_SOURCES_UNIQUE_INDEX):
        return

    cursor = await conn.execute(
        """
        DELETE FROM artifact_sources
        WHERE id NOT IN (
            SELECT MIN(id) FROM artifact_sources
            GROUP BY artifact_id, source_type, source_id
        )
        """
    )
    if cursor.rowcount and cursor.rowcount > 0:
        log.warning("artifact_sources_deduplicated", removed=cursor.rowcount)
