"""ExportStore SQLite 实现 -- Artifact 版本的导出记录"""

from datetime import UTC, datetime

import aiosqlite
import structlog

from ..exceptions import NotFoundError, ValidationError
from ..models.artifact import ArtifactExport
from ..models.enums import ArtifactExportFormat, parse_enum
from .connection import SqliteDatabase
from .validation import optional_text

log = structlog.get_logger()


class SqliteExportStore:
    """ExportStore 的 SQLite 实现"""

    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db

    async def add(
        self,
        version_id: int,
        format: str,
        content: str | None = None,
        location: str | None = None,
    ) -> int:
        """为指定版本追加一条导出记录

        Returns:
            新导出记录的 id

        Raises:
            ValidationError: content 与 location 均为空，或 format 非法
            NotFoundError: 版本不存在
        """
        export_format = parse_enum(ArtifactExportFormat, format, "export format")
        clean_content = optional_text(content)
        clean_location = optional_text(location)
        if clean_content is None and clean_location is None:
            raise ValidationError("Export requires content or location")

        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "SELECT id FROM artifact_versions WHERE id = ?", (version_id,)
            )
            if await cursor.fetchone() is None:
                raise NotFoundError("artifact_version", version_id)

            cursor = await conn.execute(
                """
                INSERT INTO artifact_exports
                    (artifact_version_id, format, content, location, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    version_id,
                    export_format.value,
                    clean_content,
                    clean_location,
                    datetime.now(UTC).isoformat(),
                ),
            )
            export_id = cursor.lastrowid

        log.info(
            "artifact_export_added",
            export_id=export_id,
            version_id=version_id,
            format=export_format.value,
        )
        return export_id

    async def list_for_version(self, version_id: int) -> list[ArtifactExport]:
        """查询某版本的全部导出记录（按创建顺序）"""
        rows = await self._db.fetchall(
            """
            SELECT id, artifact_version_id, format, content, location, created_at
            FROM artifact_exports
            WHERE artifact_version_id = ?
            ORDER BY id ASC
            """,
            (version_id,),
        )
        return [self._row_to_export(row) for row in rows]

    @staticmethod
    def _row_to_export(row: aiosqlite.Row) -> ArtifactExport:
        return ArtifactExport(
            id=row[0],
            artifact_version_id=row[1],
            format=row[2],
            content=row[3],
            location=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )
