"""ArtifactStore SQLite 实现

一次保存 = upsert Artifact 元数据 + 追加一个版本 + 挂载来源，在同一事务内完成。
对外快照取每个 Artifact 的最新版本（version 最大，平局取 created_at 最新），
category 投影为对外大写词表。
"""

from datetime import UTC, datetime

import aiosqlite
import structlog

from ..exceptions import NotFoundError
from ..models.artifact import (
    Artifact,
    ArtifactDraft,
    ArtifactExport,
    ArtifactSnapshot,
    ArtifactSource,
    ArtifactVersion,
)
from ..models.enums import (
    ArtifactFormat,
    ArtifactKind,
    normalize_category,
    parse_enum,
    to_external_category,
)
from .connection import SqliteDatabase
from .protocols import ExportStore, SourceAttacher
from .validation import optional_text, require_text

log = structlog.get_logger()

# 每个 Artifact 的最新版本行
_SNAPSHOT_SELECT = """
SELECT a.id, a.title, a.kind, a.category,
       v.version, v.id, v.format, v.content, v.render_url, v.created_at
FROM artifacts a
INNER JOIN artifact_versions v ON v.id = (
    SELECT v2.id FROM artifact_versions v2
    WHERE v2.artifact_id = a.id
    ORDER BY v2.version DESC, v2.created_at DESC
    LIMIT 1
)
"""


class SqliteArtifactStore:
    """ArtifactStore 的 SQLite 实现"""

    def __init__(
        self,
        db: SqliteDatabase,
        source_attacher: SourceAttacher,
        export_store: ExportStore,
    ) -> None:
        self._db = db
        self._source_attacher = source_attacher
        self._export_store = export_store

    async def save_artifact_with_version(self, draft: ArtifactDraft) -> ArtifactSnapshot:
        """新建或更新 Artifact 并追加一个版本

        Args:
            draft: artifact_id 为 None 时新建，否则原地覆盖 title/kind/category

        Returns:
            保存后的最新快照

        Raises:
            ValidationError: 字段缺失、枚举非法，或来源任务不存在
            NotFoundError: artifact_id 指向的 Artifact 不存在
        """
        title = require_text(draft.title, "Artifact title")
        content = require_text(draft.content, "Artifact content")
        kind = parse_enum(ArtifactKind, draft.kind, "artifact kind")
        version_format = parse_enum(ArtifactFormat, draft.format, "artifact format")
        category = normalize_category(draft.category)
        now = datetime.now(UTC).isoformat()

        async with self._db.transaction() as conn:
            if draft.artifact_id is not None:
                artifact_id = draft.artifact_id
                cursor = await conn.execute(
                    "UPDATE artifacts SET title = ?, kind = ?, category = ? WHERE id = ?",
                    (title, kind.value, category.value, artifact_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError("artifact", artifact_id)
            else:
                cursor = await conn.execute(
                    """
                    INSERT INTO artifacts (title, kind, category, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (title, kind.value, category.value, now),
                )
                artifact_id = cursor.lastrowid

            cursor = await conn.execute(
                "SELECT COALESCE(MAX(version), 0) + 1 FROM artifact_versions "
                "WHERE artifact_id = ?",
                (artifact_id,),
            )
            row = await cursor.fetchone()
            version = row[0]

            await conn.execute(
                """
                INSERT INTO artifact_versions
                    (artifact_id, version, format, content, render_url, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    artifact_id,
                    version,
                    version_format.value,
                    content,
                    optional_text(draft.render_url),
                    optional_text(draft.note),
                    now,
                ),
            )

            await self._source_attacher.attach(
                artifact_id,
                task_ids=draft.source_task_ids,
                message_ids=draft.source_message_ids,
            )

        await log.ainfo(
            "artifact_version_saved",
            artifact_id=artifact_id,
            version=version,
            category=category.value,
        )

        snapshot = await self.get_latest_artifact_snapshot(artifact_id)
        if snapshot is None:
            raise NotFoundError("artifact", artifact_id)
        return snapshot

    async def list_latest_artifacts(self) -> list[ArtifactSnapshot]:
        """全部 Artifact 的最新快照，按版本创建时间倒序"""
        rows = await self._db.fetchall(
            f"{_SNAPSHOT_SELECT} ORDER BY v.created_at DESC, a.id DESC"
        )
        return [self._row_to_snapshot(row) for row in rows]

    async def get_latest_artifact_snapshot(self, artifact_id: int) -> ArtifactSnapshot | None:
        """单个 Artifact 的最新快照；不存在或尚无版本时返回 None"""
        row = await self._db.fetchone(
            f"{_SNAPSHOT_SELECT} WHERE a.id = ?",
            (artifact_id,),
        )
        if row is None:
            return None
        return self._row_to_snapshot(row)

    async def get_artifact(self, artifact_id: int) -> Artifact | None:
        """查询 Artifact 元数据（内部规范分类）"""
        row = await self._db.fetchone(
            "SELECT id, title, kind, category, created_at FROM artifacts WHERE id = ?",
            (artifact_id,),
        )
        if row is None:
            return None
        return Artifact(
            id=row[0],
            title=row[1],
            kind=row[2],
            category=row[3],
            created_at=datetime.fromisoformat(row[4]),
        )

    async def list_versions(self, artifact_id: int) -> list[ArtifactVersion]:
        """完整版本历史，按版本号升序

        Raises:
            NotFoundError: Artifact 不存在
        """
        if await self.get_artifact(artifact_id) is None:
            raise NotFoundError("artifact", artifact_id)

        rows = await self._db.fetchall(
            """
            SELECT id, artifact_id, version, format, content, render_url, notes, created_at
            FROM artifact_versions
            WHERE artifact_id = ?
            ORDER BY version ASC
            """,
            (artifact_id,),
        )
        return [
            ArtifactVersion(
                id=row[0],
                artifact_id=row[1],
                version=row[2],
                format=row[3],
                content=row[4],
                render_url=row[5],
                notes=row[6],
                created_at=datetime.fromisoformat(row[7]),
            )
            for row in rows
        ]

    async def list_sources(self, artifact_id: int) -> list[ArtifactSource]:
        """Artifact 的来源列表"""
        return await self._source_attacher.list_sources(artifact_id)

    async def add_artifact_export(
        self,
        version_id: int,
        format: str,
        content: str | None = None,
        location: str | None = None,
    ) -> int:
        """为版本追加导出记录，返回导出 id"""
        return await self._export_store.add(
            version_id, format, content=content, location=location
        )

    async def list_exports(self, version_id: int) -> list[ArtifactExport]:
        """某版本的导出记录"""
        return await self._export_store.list_for_version(version_id)

    @staticmethod
    def _row_to_snapshot(row: aiosqlite.Row) -> ArtifactSnapshot:
        return ArtifactSnapshot(
            artifact_id=row[0],
            title=row[1],
            kind=row[2],
            category=to_external_category(row[3]),
            version=row[4],
            version_id=row[5],
            format=row[6],
            content=row[7],
            render_url=row[8],
            created_at=datetime.fromisoformat(row[9]),
        )
