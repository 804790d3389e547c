"""Planboard Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .artifact import (
    Artifact,
    ArtifactDraft,
    ArtifactExport,
    ArtifactSnapshot,
    ArtifactSource,
    ArtifactVersion,
)
from .enums import (
    INITIAL_TASK_STATUS,
    LEGACY_TASK_STATUS_MAP,
    ArtifactCategory,
    ArtifactExportFormat,
    ArtifactFormat,
    ArtifactKind,
    ArtifactSourceType,
    ExternalArtifactCategory,
    TaskStatus,
    TaskType,
    normalize_category,
    parse_enum,
    to_external_category,
)
from .message import Message
from .task import Task, TaskSummary

__all__ = [
    # 枚举
    "TaskType",
    "TaskStatus",
    "ArtifactKind",
    "ArtifactCategory",
    "ExternalArtifactCategory",
    "ArtifactFormat",
    "ArtifactSourceType",
    "ArtifactExportFormat",
    # 状态映射
    "INITIAL_TASK_STATUS",
    "LEGACY_TASK_STATUS_MAP",
    # 归一化
    "normalize_category",
    "to_external_category",
    "parse_enum",
    # Task
    "Task",
    "TaskSummary",
    # Artifact
    "Artifact",
    "ArtifactVersion",
    "ArtifactSource",
    "ArtifactExport",
    "ArtifactSnapshot",
    "ArtifactDraft",
    # Message
    "Message",
]
