"""任务 + 关系组合写操作测试

测试内容：
1. 创建任务并写入关系为单事务（预检失败不留任务行）
2. 部分更新 + 关系替换
3. 事务重入与回滚
"""

import pytest
from planboard.core.exceptions import NotFoundError, ValidationError
from planboard.core.models import TaskStatus
from planboard.core.store import create_task_with_relations, update_task_with_relations


class TestCreateWithRelations:
    """create_task_with_relations 测试"""

    async def test_creates_with_parents_and_children(self, stores, make_task):
        epic = await make_task("史诗", type="epic")
        sub = await make_task("子项", type="subtask")

        task = await create_task_with_relations(
            stores,
            "task",
            "故事",
            "描述",
            parent_ids=[epic.id],
            child_ids=[sub.id],
        )

        assert task.code == "TASK-0003"
        assert [p.id for p in task.parents] == [epic.id]
        assert [c.id for c in task.children] == [sub.id]

    async def test_missing_related_task_rolls_back(self, stores, make_task):
        epic = await make_task("史诗", type="epic")

        with pytest.raises(ValidationError, match="Tasks not found for ids: 7, 9"):
            await create_task_with_relations(
                stores, "task", "故事", "描述", parent_ids=[epic.id, 7], child_ids=[9]
            )

        tasks = await stores.task_store.list_tasks()
        assert [t.id for t in tasks] == [epic.id]
        assert await stores.link_graph.list_links() == []

    async def test_invalid_field_rolls_back(self, stores, make_task):
        epic = await make_task("史诗", type="epic")

        with pytest.raises(ValidationError):
            await create_task_with_relations(
                stores, "story", "故事", "描述", parent_ids=[epic.id]
            )
        assert len(await stores.task_store.list_tasks()) == 1

    async def test_ids_cleaned(self, stores, make_task):
        epic = await make_task("史诗", type="epic")

        task = await create_task_with_relations(
            stores, "task", "故事", "描述", parent_ids=[str(epic.id), epic.id, 0, True]
        )
        assert [p.id for p in task.parents] == [epic.id]


class TestUpdateWithRelations:
    """update_task_with_relations 测试"""

    async def test_fields_and_relations(self, stores, make_task):
        task = await make_task("故事")
        parent = await make_task("史诗", type="epic")

        updated = await update_task_with_relations(
            stores,
            task.id,
            {"status": "needs_clarification", "title": None},
            parent_ids=[parent.id],
        )

        assert updated.status == TaskStatus.NEEDS_CLARIFICATION
        assert updated.title == "故事"
        assert [p.id for p in updated.parents] == [parent.id]

    async def test_relations_only(self, stores, make_task):
        task = await make_task("故事")
        child = await make_task("子项")
        await stores.link_graph.set_relations(task.id, child_ids=[child.id])

        updated = await update_task_with_relations(stores, task.id, {}, child_ids=[])
        assert updated.children == []

    async def test_nothing_to_update(self, stores, make_task):
        task = await make_task("故事")
        with pytest.raises(ValidationError, match="Nothing to update"):
            await update_task_with_relations(stores, task.id, {"title": None})

    async def test_missing_task(self, stores):
        with pytest.raises(NotFoundError):
            await update_task_with_relations(stores, 31, {"title": "新标题"})

    async def test_missing_task_reported_before_missing_related(self, stores):
        with pytest.raises(NotFoundError) as exc_info:
            await update_task_with_relations(stores, 31, {"title": "新标题"}, parent_ids=[50])
        assert exc_info.value.entity == "task"

    async def test_missing_related_keeps_fields(self, stores, make_task):
        task = await make_task("故事")

        with pytest.raises(ValidationError, match="Tasks not found for ids: 50"):
            await update_task_with_relations(
                stores, task.id, {"title": "改名"}, parent_ids=[50]
            )

        reloaded = await stores.task_store.get_task(task.id)
        assert reloaded.title == "故事"


class TestTransactionScope:
    """SqliteDatabase.transaction 行为"""

    async def test_nested_transaction_joins_outer(self, stores):
        db = stores.db
        with pytest.raises(RuntimeError):
            async with db.transaction() as conn:
                await conn.execute(
                    "INSERT INTO messages (user_text, bot_reply) VALUES ('外层', '')"
                )
                async with db.transaction() as inner:
                    assert inner is conn
                    await inner.execute(
                        "INSERT INTO messages (user_text, bot_reply) VALUES ('内层', '')"
                    )
                raise RuntimeError("boom")

        assert await stores.message_store.get_recent_messages() == []

    async def test_commit_visible_after_exit(self, stores):
        async with stores.db.transaction() as conn:
            await conn.execute(
                "INSERT INTO messages (user_text, bot_reply) VALUES ('已提交', '')"
            )

        messages = await stores.message_store.get_recent_messages()
        assert [m.user_text for m in messages] == ["已提交"]
