"""任务 + 关系的组合写操作

在同一 SQLite 事务内完成任务行写入和关系替换：
关联任务预检失败或任一步骤异常时整体回滚，不留下无关系的孤立任务。
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from ..exceptions import NotFoundError, ValidationError
from ..models.task import Task
from .source_attacher import missing_tasks_error
from .validation import clean_id_list

if TYPE_CHECKING:
    from . import StoreGroup

log = structlog.get_logger()

# update_task 接受的字段
_UPDATABLE_FIELDS = ("type", "title", "description", "status")


def _normalize_ids(values: Iterable[Any] | None) -> list[int] | None:
    """None 保持 None（不修改该方向），否则清洗为正整数列表"""
    if values is None:
        return None
    return clean_id_list(values)


async def _require_related_tasks(
    stores: "StoreGroup",
    parent_ids: list[int] | None,
    child_ids: list[int] | None,
) -> None:
    related = clean_id_list([*(parent_ids or []), *(child_ids or [])])
    missing = await stores.task_store.find_missing_ids(related)
    if missing:
        raise missing_tasks_error(missing)


async def create_task_with_relations(
    stores: "StoreGroup",
    type: str,
    title: str,
    description: str,
    status: str | None = None,
    parent_ids: Iterable[Any] | None = None,
    child_ids: Iterable[Any] | None = None,
) -> Task:
    """创建任务并写入父/子关系（单事务）

    Returns:
        含 parents / children 的新任务

    Raises:
        ValidationError: 字段非法或关联任务不存在
    """
    clean_parents = _normalize_ids(parent_ids)
    clean_children = _normalize_ids(child_ids)

    async with stores.db.transaction():
        await _require_related_tasks(stores, clean_parents, clean_children)
        task = await stores.task_store.create_task(type, title, description, status)
        await stores.link_graph.set_relations(
            task.id, parent_ids=clean_parents, child_ids=clean_children
        )

    return await stores.link_graph.get_with_relations(task.id)


async def update_task_with_relations(
    stores: "StoreGroup",
    task_id: int,
    fields: dict[str, Any] | None = None,
    parent_ids: Iterable[Any] | None = None,
    child_ids: Iterable[Any] | None = None,
) -> Task:
    """部分更新任务字段并替换关系（单事务）

    Args:
        fields: type / title / description / status 中的任意子集，值为 None 视为未提供
        parent_ids: None 表示不修改入边
        child_ids: None 表示不修改出边

    Raises:
        ValidationError: 没有任何可更新内容、字段非法或关联任务不存在
        NotFoundError: 任务不存在
    """
    updates = {
        key: value
        for key, value in (fields or {}).items()
        if key in _UPDATABLE_FIELDS and value is not None
    }
    clean_parents = _normalize_ids(parent_ids)
    clean_children = _normalize_ids(child_ids)
    if not updates and clean_parents is None and clean_children is None:
        raise ValidationError("Nothing to update")

    async with stores.db.transaction():
        # 目标任务不存在优先于关联 id 校验
        if await stores.task_store.get_task(task_id) is None:
            raise NotFoundError("task", task_id)
        await _require_related_tasks(stores, clean_parents, clean_children)
        if updates:
            await stores.task_store.update_task(task_id, **updates)
        await stores.link_graph.set_relations(
            task_id, parent_ids=clean_parents, child_ids=clean_children
        )

    log.info(
        "task_updated",
        task_id=task_id,
        fields=sorted(updates),
        relations_replaced=clean_parents is not None or clean_children is not None,
    )
    return await stores.link_graph.get_with_relations(task_id)
