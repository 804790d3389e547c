"""apps/gateway 测试配置 -- httpx AsyncClient + 临时数据库"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from planboard.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def gateway_db_path(tmp_path: Path, monkeypatch) -> Path:
    """Gateway 临时数据库路径（同时写入 PLANBOARD_DB_PATH）"""
    db_path = tmp_path / "sqlite" / "gateway.db"
    monkeypatch.setenv("PLANBOARD_DB_PATH", str(db_path))
    monkeypatch.setenv("PLANBOARD_LOG_FORMAT", "json")
    return db_path


@pytest_asyncio.fixture
async def store_group(gateway_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """手动初始化的 StoreGroup（ASGITransport 不触发 lifespan）"""
    group = await create_store_group(gateway_db_path)
    yield group
    await group.close()


@pytest_asyncio.fixture
async def app(store_group: StoreGroup):
    """创建测试用 FastAPI app 实例"""
    from planboard.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
