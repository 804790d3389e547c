"""Store Protocol 接口定义

定义 TaskStore、LinkGraph、ArtifactStore、SourceAttacher、ExportStore、MessageStore
的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Iterable
from typing import Any, Protocol

from ..models.artifact import (
    Artifact,
    ArtifactDraft,
    ArtifactExport,
    ArtifactSnapshot,
    ArtifactSource,
    ArtifactVersion,
)
from ..models.message import Message
from ..models.task import Task, TaskSummary


class TaskStore(Protocol):
    """Task 存储接口 -- 独占 tasks 表，负责编号分配"""

    async def create_task(
        self,
        type: str,
        title: str,
        description: str,
        status: str | None = None,
    ) -> Task:
        """创建任务并分配编号"""
        ...

    async def get_task(self, task_id: int) -> Task | None:
        """根据 id 查询任务（不含关系）"""
        ...

    async def get_tasks_by_ids(self, ids: list[int]) -> list[TaskSummary]:
        """批量查询任务摘要"""
        ...

    async def find_missing_ids(self, ids: list[int]) -> list[int]:
        """返回不存在的任务 id"""
        ...

    async def list_tasks(self) -> list[Task]:
        """查询全部任务及关系，按 created_at 倒序"""
        ...

    async def update_task(
        self,
        task_id: int,
        *,
        type: str | None = None,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
    ) -> Task:
        """部分更新任务字段"""
        ...

    async def delete_task(self, task_id: int) -> None:
        """删除任务及其全部边"""
        ...


class LinkGraph(Protocol):
    """任务关系接口 -- 独占 task_links 表"""

    async def set_relations(
        self,
        task_id: int,
        parent_ids: list[int] | None = None,
        child_ids: list[int] | None = None,
    ) -> None:
        """按方向整体替换边"""
        ...

    async def get_with_relations(self, task_id: int) -> Task:
        """查询任务及父/子摘要"""
        ...

    async def list_links(self) -> list[tuple[int, int]]:
        """全部边 (parent_id, child_id)"""
        ...


class SourceAttacher(Protocol):
    """Artifact 来源挂载接口"""

    async def attach(
        self,
        artifact_id: int,
        task_ids: Iterable[Any] | None = None,
        message_ids: Iterable[Any] | None = None,
    ) -> None:
        """挂载 task / message 来源，必要时补 manual 来源"""
        ...

    async def list_sources(self, artifact_id: int) -> list[ArtifactSource]:
        """Artifact 的来源列表"""
        ...


class ExportStore(Protocol):
    """Artifact 版本导出接口"""

    async def add(
        self,
        version_id: int,
        format: str,
        content: str | None = None,
        location: str | None = None,
    ) -> int:
        """追加导出记录，返回 id"""
        ...

    async def list_for_version(self, version_id: int) -> list[ArtifactExport]:
        """查询版本的导出记录"""
        ...


class ArtifactStore(Protocol):
    """Artifact 存储接口 -- 版本 append-only"""

    async def save_artifact_with_version(self, draft: ArtifactDraft) -> ArtifactSnapshot:
        """upsert 元数据 + 追加版本 + 挂载来源"""
        ...

    async def list_latest_artifacts(self) -> list[ArtifactSnapshot]:
        """全部 Artifact 的最新快照"""
        ...

    async def get_latest_artifact_snapshot(self, artifact_id: int) -> ArtifactSnapshot | None:
        """单个 Artifact 的最新快照"""
        ...

    async def get_artifact(self, artifact_id: int) -> Artifact | None:
        """Artifact 元数据"""
        ...

    async def list_versions(self, artifact_id: int) -> list[ArtifactVersion]:
        """完整版本历史"""
        ...

    async def list_sources(self, artifact_id: int) -> list[ArtifactSource]:
        """来源列表"""
        ...

    async def add_artifact_export(
        self,
        version_id: int,
        format: str,
        content: str | None = None,
        location: str | None = None,
    ) -> int:
        """追加导出记录"""
        ...

    async def list_exports(self, version_id: int) -> list[ArtifactExport]:
        """版本的导出记录"""
        ...


class MessageStore(Protocol):
    """对话历史接口"""

    async def save_message(self, user_text: str, bot_reply: str) -> Message:
        """保存一轮对话"""
        ...

    async def get_recent_messages(self, limit: int = 10) -> list[Message]:
        """最近消息（时间正序）"""
        ...

    async def clear_messages(self) -> int:
        """清空对话历史"""
        ...
