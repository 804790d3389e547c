"""Planboard Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

from .artifact_store import SqliteArtifactStore
from .connection import SqliteDatabase
from .export_store import SqliteExportStore
from .link_graph import SqliteLinkGraph
from .message_store import SqliteMessageStore
from .protocols import (
    ArtifactStore,
    ExportStore,
    LinkGraph,
    MessageStore,
    SourceAttacher,
    TaskStore,
)
from .source_attacher import SqliteSourceAttacher
from .sqlite_init import ensure_schema
from .task_store import SqliteTaskStore
from .transaction import create_task_with_relations, update_task_with_relations


class StoreGroup:
    """Store 实例组 -- 共享同一个 SqliteDatabase"""

    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db
        self.task_store: TaskStore = SqliteTaskStore(db)
        self.link_graph: LinkGraph = SqliteLinkGraph(db, self.task_store)
        self.source_attacher: SourceAttacher = SqliteSourceAttacher(db, self.task_store)
        self.export_store: ExportStore = SqliteExportStore(db)
        self.artifact_store: ArtifactStore = SqliteArtifactStore(
            db, self.source_attacher, self.export_store
        )
        self.message_store: MessageStore = SqliteMessageStore(db)

    async def close(self) -> None:
        """关闭共享连接"""
        await self.db.close()


async def create_store_group(db_path: str | Path) -> StoreGroup:
    """打开数据库、执行 schema 初始化/迁移并创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径（":memory:" 用于测试）

    Returns:
        StoreGroup 实例

    Raises:
        MigrationError: 历史 schema 迁移失败
    """
    db = SqliteDatabase(db_path)
    conn = await db.open()
    try:
        await ensure_schema(conn)
    except BaseException:
        await db.close()
        raise

    return StoreGroup(db)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteDatabase",
    "SqliteTaskStore",
    "SqliteLinkGraph",
    "SqliteArtifactStore",
    "SqliteSourceAttacher",
    "SqliteExportStore",
    "SqliteMessageStore",
    "ensure_schema",
    "create_task_with_relations",
    "update_task_with_relations",
]
