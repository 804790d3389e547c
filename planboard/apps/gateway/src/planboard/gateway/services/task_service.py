"""TaskService -- 任务 CRUD 业务逻辑

负责 HTTP 载荷的解析与校验（id 数组、路径 id），
写操作委托给 core 的组合事务（任务行 + 关系同一事务提交）。
"""

from typing import Any

import structlog
from planboard.core.exceptions import ValidationError
from planboard.core.models import Task
from planboard.core.store import (
    StoreGroup,
    create_task_with_relations,
    update_task_with_relations,
)
from planboard.core.store.validation import clean_id_list

log = structlog.get_logger()


def parse_positive_id(raw: str | int, label: str = "Task id") -> int:
    """解析路径中的 id

    Raises:
        ValidationError: 非正整数
    """
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a positive number") from None
    if value <= 0:
        raise ValidationError(f"{label} must be a positive number")
    return value


def parse_id_array(value: Any) -> list[int]:
    """解析请求体中的 id 数组；null 视为空数组

    Raises:
        ValidationError: 不是数组
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("Ids must be an array")
    return clean_id_list(value)


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def list_tasks(self) -> list[Task]:
        """全部任务及关系，按 created_at 倒序"""
        return await self._stores.task_store.list_tasks()

    async def get_task(self, task_id: int) -> Task:
        """任务详情（含父/子摘要）

        Raises:
            NotFoundError: 任务不存在
        """
        return await self._stores.link_graph.get_with_relations(task_id)

    async def create_task(
        self,
        type: str | None,
        title: str | None,
        description: str | None,
        status: str | None = None,
        parent_ids: Any = None,
        child_ids: Any = None,
    ) -> Task:
        """创建任务并写入关系

        Raises:
            ValidationError: 字段非法、id 数组非法或关联任务不存在
        """
        return await create_task_with_relations(
            self._stores,
            type or "",
            title or "",
            description or "",
            status,
            parent_ids=parse_id_array(parent_ids),
            child_ids=parse_id_array(child_ids),
        )

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> Task:
        """部分更新

        Args:
            task_id: 目标任务
            changes: 仅包含请求中出现的字段；parent_ids / child_ids 出现时整体替换该方向

        Raises:
            ValidationError: 没有可更新内容或字段非法
            NotFoundError: 任务不存在
        """
        # 显式传入 null 按空值校验，而不是当作未提供
        fields = {
            key: "" if changes[key] is None else changes[key]
            for key in ("type", "title", "description", "status")
            if key in changes
        }

        return await update_task_with_relations(
            self._stores,
            task_id,
            fields,
            parent_ids=parse_id_array(changes["parent_ids"]) if "parent_ids" in changes else None,
            child_ids=parse_id_array(changes["child_ids"]) if "child_ids" in changes else None,
        )

    async def delete_task(self, task_id: int) -> None:
        """删除任务及其全部边

        Raises:
            NotFoundError: 任务不存在
        """
        await self._stores.task_store.delete_task(task_id)
