"""ArtifactService -- Artifact 保存 / 查询 / 导出业务逻辑"""

from typing import Any

from planboard.core.exceptions import NotFoundError
from planboard.core.models import (
    ArtifactDraft,
    ArtifactExport,
    ArtifactFormat,
    ArtifactSnapshot,
    ArtifactSource,
    ArtifactVersion,
)
from planboard.core.store import StoreGroup

from .task_service import parse_id_array


class ArtifactService:
    """Artifact 业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def save(self, fields: dict[str, Any]) -> ArtifactSnapshot:
        """新建 Artifact 或为已有 Artifact 追加版本

        Raises:
            ValidationError: 字段非法、id 数组非法或来源任务不存在
            NotFoundError: artifact_id 不存在
        """
        source_task_ids = fields.pop("source_task_ids", None)
        source_message_ids = fields.pop("source_message_ids", None)
        draft = ArtifactDraft(
            **{key: value for key, value in fields.items() if value is not None},
            source_task_ids=parse_id_array(source_task_ids),
            source_message_ids=parse_id_array(source_message_ids),
        )
        return await self._stores.artifact_store.save_artifact_with_version(draft)

    async def list_results(self) -> list[dict[str, Any]]:
        """最新 Artifact 列表（结果页格式：format 只区分 plantuml / markdown）"""
        snapshots = await self._stores.artifact_store.list_latest_artifacts()
        return [
            {
                "id": s.artifact_id,
                "title": s.title,
                "format": (
                    ArtifactFormat.PLANTUML.value
                    if s.format == ArtifactFormat.PLANTUML
                    else ArtifactFormat.MARKDOWN.value
                ),
                "content": s.content,
                "category": s.category,
                "kind": s.kind.value,
                "version": s.version,
                "render_url": s.render_url,
                "created_at": s.created_at.isoformat(),
            }
            for s in snapshots
        ]

    async def get_latest(self, artifact_id: int) -> ArtifactSnapshot:
        """最新快照

        Raises:
            NotFoundError: Artifact 不存在
        """
        snapshot = await self._stores.artifact_store.get_latest_artifact_snapshot(artifact_id)
        if snapshot is None:
            raise NotFoundError("artifact", artifact_id)
        return snapshot

    async def get_history(
        self, artifact_id: int
    ) -> tuple[list[ArtifactVersion], list[ArtifactSource]]:
        """版本历史 + 来源"""
        versions = await self._stores.artifact_store.list_versions(artifact_id)
        sources = await self._stores.artifact_store.list_sources(artifact_id)
        return versions, sources

    async def add_export(
        self,
        version_id: int,
        format: str | None,
        content: str | None = None,
        location: str | None = None,
    ) -> ArtifactExport:
        """追加导出记录并返回该记录

        Raises:
            ValidationError: content / location 均为空或 format 非法
            NotFoundError: 版本不存在
        """
        export_id = await self._stores.artifact_store.add_artifact_export(
            version_id, format or "", content=content, location=location
        )
        exports = await self._stores.artifact_store.list_exports(version_id)
        return next(e for e in exports if e.id == export_id)

    async def list_exports(self, version_id: int) -> list[ArtifactExport]:
        """版本的导出记录"""
        return await self._stores.artifact_store.list_exports(version_id)
