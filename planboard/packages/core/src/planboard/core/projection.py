"""Task 关系投影

list_tasks 只读两次表（tasks 全表 + task_links 全表），
在内存中一次性构建 parent / child 映射，再逐行投影出 parents / children。
复杂度 O(tasks + edges)。
"""

from collections import defaultdict
from collections.abc import Iterable

from .models.task import Task, TaskSummary


def build_adjacency(
    links: Iterable[tuple[int, int]],
) -> tuple[dict[int, list[int]], dict[int, list[int]]]:
    """从 (parent_id, child_id) 边构建邻接表

    Returns:
        (parents_of, children_of) -- task_id -> 相邻 task_id 列表，保持边的读取顺序
    """
    parents_of: dict[int, list[int]] = defaultdict(list)
    children_of: dict[int, list[int]] = defaultdict(list)
    for parent_id, child_id in links:
        parents_of[child_id].append(parent_id)
        children_of[parent_id].append(child_id)
    return parents_of, children_of


def project_relations(
    tasks: list[Task],
    links: Iterable[tuple[int, int]],
) -> list[Task]:
    """为每个任务填充 parents / children 摘要

    指向已不存在任务的边被忽略（读侧容忍部分写入状态）。

    Args:
        tasks: 不含关系的任务列表（顺序即输出顺序）
        links: 全部边

    Returns:
        新的 Task 列表
    """
    by_id: dict[int, TaskSummary] = {task.id: task.summary() for task in tasks}
    parents_of, children_of = build_adjacency(links)

    def resolve(ids: list[int]) -> list[TaskSummary]:
        return [by_id[i] for i in ids if i in by_id]

    return [
        task.model_copy(
            update={
                "parents": resolve(parents_of.get(task.id, [])),
                "children": resolve(children_of.get(task.id, [])),
            }
        )
        for task in tasks
    ]
