"""ArtifactStore 单元测试

测试内容：
1. 新建 / 追加版本（版本号连续递增，最新快照）
2. 字段与 category 校验
3. 来源挂载（task / message / manual 兜底）与整体回滚
4. 导出记录
5. 写事务挂起期间的并发读取
"""

import asyncio

import pytest
from planboard.core.exceptions import NotFoundError, ValidationError
from planboard.core.models import (
    ArtifactCategory,
    ArtifactDraft,
    ArtifactExportFormat,
    ArtifactSourceType,
)


def _draft(**overrides) -> ArtifactDraft:
    data = {
        "title": "结账用例图",
        "kind": "diagram",
        "category": "USE_CASE_DIAGRAM",
        "format": "plantuml",
        "content": "@startuml\nactor User\n@enduml",
    }
    data.update(overrides)
    return ArtifactDraft(**data)


class TestSaveArtifact:
    """save_artifact_with_version 测试"""

    async def test_new_artifact_gets_version_one(self, stores):
        snapshot = await stores.artifact_store.save_artifact_with_version(_draft())

        assert snapshot.version == 1
        assert snapshot.category == "USE_CASE_DIAGRAM"
        assert snapshot.content.startswith("@startuml")

    async def test_second_save_appends_version(self, stores):
        first = await stores.artifact_store.save_artifact_with_version(_draft())
        second = await stores.artifact_store.save_artifact_with_version(
            _draft(artifact_id=first.artifact_id, content="v2", note="补充")
        )

        assert second.artifact_id == first.artifact_id
        assert second.version == 2
        assert second.version_id != first.version_id

        latest = await stores.artifact_store.list_latest_artifacts()
        assert len(latest) == 1
        assert latest[0].content == "v2"

        versions = await stores.artifact_store.list_versions(first.artifact_id)
        assert [v.version for v in versions] == [1, 2]
        assert versions[1].notes == "补充"

    async def test_update_overwrites_metadata(self, stores):
        first = await stores.artifact_store.save_artifact_with_version(_draft())
        await stores.artifact_store.save_artifact_with_version(
            _draft(
                artifact_id=first.artifact_id,
                title="实体图",
                category="entity_diagram",
                kind="diagram",
            )
        )

        artifact = await stores.artifact_store.get_artifact(first.artifact_id)
        assert artifact.title == "实体图"
        assert artifact.category == ArtifactCategory.ER_DIAGRAM

        snapshot = await stores.artifact_store.get_latest_artifact_snapshot(first.artifact_id)
        assert snapshot.category == "ENTITY_DIAGRAM"

    async def test_unknown_artifact_id(self, stores):
        with pytest.raises(NotFoundError) as exc_info:
            await stores.artifact_store.save_artifact_with_version(_draft(artifact_id=99))
        assert exc_info.value.code == "ARTIFACT_NOT_FOUND"

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"content": "  "}, "Artifact content is required"),
            ({"title": ""}, "Artifact title is required"),
            ({"kind": "table"}, "Unknown artifact kind"),
            ({"format": "html"}, "Unknown artifact format"),
            ({"category": "wireframe"}, "Unknown artifact category: wireframe"),
        ],
    )
    async def test_validation(self, stores, overrides, message):
        with pytest.raises(ValidationError, match=message):
            await stores.artifact_store.save_artifact_with_version(_draft(**overrides))
        assert await stores.artifact_store.list_latest_artifacts() == []

    async def test_unknown_snapshot_is_none(self, stores):
        assert await stores.artifact_store.get_latest_artifact_snapshot(1) is None

    async def test_list_newest_first(self, stores):
        a = await stores.artifact_store.save_artifact_with_version(_draft(title="A"))
        b = await stores.artifact_store.save_artifact_with_version(_draft(title="B"))
        await stores.artifact_store.save_artifact_with_version(
            _draft(artifact_id=a.artifact_id, title="A", content="新内容")
        )

        latest = await stores.artifact_store.list_latest_artifacts()
        assert [s.artifact_id for s in latest] == [a.artifact_id, b.artifact_id]


class TestSources:
    """来源挂载测试"""

    async def test_manual_source_once(self, stores):
        first = await stores.artifact_store.save_artifact_with_version(_draft())
        await stores.artifact_store.save_artifact_with_version(
            _draft(artifact_id=first.artifact_id, content="v2")
        )

        sources = await stores.artifact_store.list_sources(first.artifact_id)
        assert len(sources) == 1
        assert sources[0].source_type == ArtifactSourceType.MANUAL
        assert sources[0].source_id is None
        assert sources[0].description == "Added manually"

    async def test_task_and_message_sources(self, stores, make_task):
        task = await make_task("来源任务")
        message = await stores.message_store.save_message("画个用例图", "好的")

        snapshot = await stores.artifact_store.save_artifact_with_version(
            _draft(source_task_ids=[task.id, task.id], source_message_ids=[message.id])
        )

        sources = await stores.artifact_store.list_sources(snapshot.artifact_id)
        assert [(s.source_type, s.source_id) for s in sources] == [
            (ArtifactSourceType.TASK, task.id),
            (ArtifactSourceType.MESSAGE, message.id),
        ]

    async def test_repeat_source_ignored(self, stores, make_task):
        task = await make_task("来源任务")
        first = await stores.artifact_store.save_artifact_with_version(
            _draft(source_task_ids=[task.id])
        )
        await stores.artifact_store.save_artifact_with_version(
            _draft(artifact_id=first.artifact_id, content="v2", source_task_ids=[task.id])
        )

        sources = await stores.artifact_store.list_sources(first.artifact_id)
        assert len(sources) == 1

    async def test_missing_source_task_rolls_back_save(self, stores, make_task):
        task = await make_task("存在")

        with pytest.raises(ValidationError, match="Tasks not found for ids: 404"):
            await stores.artifact_store.save_artifact_with_version(
                _draft(source_task_ids=[task.id, 404], source_message_ids=[1])
            )

        assert await stores.artifact_store.list_latest_artifacts() == []
        cursor = await stores.db.conn.execute("SELECT COUNT(*) FROM artifact_sources")
        assert (await cursor.fetchone())[0] == 0

    async def test_missing_source_on_existing_artifact_keeps_version(self, stores):
        first = await stores.artifact_store.save_artifact_with_version(_draft())

        with pytest.raises(ValidationError):
            await stores.artifact_store.save_artifact_with_version(
                _draft(artifact_id=first.artifact_id, title="改名", source_task_ids=[8])
            )

        snapshot = await stores.artifact_store.get_latest_artifact_snapshot(first.artifact_id)
        assert snapshot.version == 1
        assert snapshot.title == "结账用例图"

    async def test_attach_directly(self, stores):
        snapshot = await stores.artifact_store.save_artifact_with_version(
            _draft(source_message_ids=[5])
        )
        await stores.source_attacher.attach(snapshot.artifact_id)

        sources = await stores.artifact_store.list_sources(snapshot.artifact_id)
        assert [s.source_type for s in sources] == [ArtifactSourceType.MESSAGE]


class TestExports:
    """导出记录测试"""

    async def test_location_only(self, stores):
        snapshot = await stores.artifact_store.save_artifact_with_version(_draft())

        export_id = await stores.artifact_store.add_artifact_export(
            snapshot.version_id, "png", location=" exports/use_case.png "
        )

        exports = await stores.artifact_store.list_exports(snapshot.version_id)
        assert [e.id for e in exports] == [export_id]
        assert exports[0].format == ArtifactExportFormat.PNG
        assert exports[0].location == "exports/use_case.png"
        assert exports[0].content is None

    async def test_requires_content_or_location(self, stores):
        snapshot = await stores.artifact_store.save_artifact_with_version(_draft())
        with pytest.raises(ValidationError, match="Export requires content or location"):
            await stores.artifact_store.add_artifact_export(
                snapshot.version_id, "markdown", content="  ", location=None
            )

    async def test_unknown_format(self, stores):
        snapshot = await stores.artifact_store.save_artifact_with_version(_draft())
        with pytest.raises(ValidationError, match="Unknown export format"):
            await stores.export_store.add(snapshot.version_id, "pdf", content="x")

    async def test_unknown_version(self, stores):
        with pytest.raises(NotFoundError) as exc_info:
            await stores.export_store.add(77, "markdown", content="# 标题")
        assert exc_info.value.code == "ARTIFACT_VERSION_NOT_FOUND"


class TestReadIsolation:
    """并发读取只观察已提交状态"""

    async def test_reader_waits_for_rolled_back_save(self, stores, monkeypatch):
        """保存在事务内挂起时发起读取，回滚后读取结果不含该 Artifact"""
        entered = asyncio.Event()
        release = asyncio.Event()
        original = stores.task_store.find_missing_ids

        async def slow_find_missing_ids(ids):
            entered.set()
            await release.wait()
            return await original(ids)

        monkeypatch.setattr(stores.task_store, "find_missing_ids", slow_find_missing_ids)

        save = asyncio.create_task(
            stores.artifact_store.save_artifact_with_version(_draft(source_task_ids=[999]))
        )
        await entered.wait()
        reader = asyncio.create_task(stores.artifact_store.list_latest_artifacts())
        await asyncio.sleep(0.05)
        assert not reader.done()

        release.set()
        with pytest.raises(ValidationError, match="999"):
            await save
        assert await reader == []

    async def test_reader_sees_committed_save(self, stores, monkeypatch):
        entered = asyncio.Event()
        release = asyncio.Event()
        original = stores.task_store.find_missing_ids

        async def slow_find_missing_ids(ids):
            entered.set()
            await release.wait()
            return await original(ids)

        monkeypatch.setattr(stores.task_store, "find_missing_ids", slow_find_missing_ids)
        task = await stores.task_store.create_task("task", "来源任务", "描述")

        save = asyncio.create_task(
            stores.artifact_store.save_artifact_with_version(_draft(source_task_ids=[task.id]))
        )
        await entered.wait()
        reader = asyncio.create_task(stores.artifact_store.list_latest_artifacts())
        release.set()

        snapshot = await save
        latest = await reader
        assert [s.artifact_id for s in latest] == [snapshot.artifact_id]
