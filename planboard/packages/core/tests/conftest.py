"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from planboard.core.models import Task
from planboard.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "sqlite" / "core_test.db"


@pytest_asyncio.fixture
async def stores(core_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 Store 实例组"""
    store_group = await create_store_group(core_db_path)
    yield store_group
    await store_group.close()


@pytest_asyncio.fixture
async def make_task(stores: StoreGroup):
    """按标题快速创建任务"""

    async def _make(title: str, type: str = "task") -> Task:
        return await stores.task_store.create_task(type, title, f"{title} 描述")

    return _make
