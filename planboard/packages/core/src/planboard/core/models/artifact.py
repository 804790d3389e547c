"""Artifact Domain Model

Artifact 本身可原地更新（title/kind/category），
内容全部落在 append-only 的 ArtifactVersion 中，版本号从 1 开始连续递增。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import (
    ArtifactCategory,
    ArtifactExportFormat,
    ArtifactFormat,
    ArtifactKind,
    ArtifactSourceType,
)


class Artifact(BaseModel):
    """Artifact 元数据（内部规范分类）"""

    id: int = Field(description="自增 ID")
    title: str = Field(description="产物标题")
    kind: ArtifactKind = Field(description="text / diagram")
    category: ArtifactCategory = Field(description="内部规范分类")
    created_at: datetime = Field(description="创建时间")


class ArtifactVersion(BaseModel):
    """Artifact 版本 -- append-only，不更新不删除"""

    id: int = Field(description="自增 ID")
    artifact_id: int = Field(description="所属 Artifact")
    version: int = Field(description="版本号，同一 Artifact 内从 1 连续递增")
    format: ArtifactFormat = Field(description="内容格式")
    content: str = Field(description="版本内容")
    render_url: str | None = Field(default=None, description="渲染结果引用")
    notes: str | None = Field(default=None, description="版本备注")
    created_at: datetime = Field(description="创建时间")


class ArtifactSource(BaseModel):
    """Artifact 来源 -- 指向 task / message，或 manual 兜底标记"""

    id: int
    artifact_id: int
    source_type: ArtifactSourceType
    source_id: int | None = None
    description: str | None = None
    created_at: datetime


class ArtifactExport(BaseModel):
    """Artifact 版本导出 -- content 与 location 至少其一非空"""

    id: int
    artifact_version_id: int
    format: ArtifactExportFormat
    content: str | None = None
    location: str | None = None
    created_at: datetime


class ArtifactSnapshot(BaseModel):
    """最新版本快照 -- 对外投影，category 使用对外大写词表"""

    artifact_id: int = Field(description="Artifact ID")
    title: str = Field(description="产物标题")
    kind: ArtifactKind = Field(description="text / diagram")
    category: str = Field(description="对外分类，如 ENTITY_DIAGRAM")
    version: int = Field(description="最新版本号")
    version_id: int = Field(description="最新版本行 ID（用于挂载导出）")
    format: ArtifactFormat = Field(description="内容格式")
    content: str = Field(description="版本内容")
    render_url: str | None = Field(default=None, description="渲染结果引用")
    created_at: datetime = Field(description="版本创建时间")


class ArtifactDraft(BaseModel):
    """save_artifact_with_version 入参

    字段保持宽松的 str 类型，由 ArtifactStore 统一校验并抛出 ValidationError。
    """

    artifact_id: int | None = Field(default=None, description="已有 Artifact ID，None 表示新建")
    title: str = Field(default="", description="产物标题")
    kind: str = Field(default=ArtifactKind.TEXT.value, description="text / diagram")
    category: str = Field(default="", description="分类或其别名")
    format: str = Field(default=ArtifactFormat.MARKDOWN.value, description="内容格式")
    content: str = Field(default="", description="版本内容")
    render_url: str | None = Field(default=None, description="渲染结果引用")
    note: str | None = Field(default=None, description="版本备注")
    source_task_ids: list[int] | None = Field(default=None, description="来源任务 ID")
    source_message_ids: list[int] | None = Field(default=None, description="来源消息 ID")
