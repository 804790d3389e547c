"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from planboard.core.store import create_store_group

AppFactory = Callable[[], Awaitable[FastAPI]]


@pytest_asyncio.fixture
async def integration_db_path(tmp_path: Path, monkeypatch) -> Path:
    db_path = tmp_path / "sqlite" / "integration.db"
    monkeypatch.setenv("PLANBOARD_DB_PATH", str(db_path))
    return db_path


@pytest_asyncio.fixture
async def start_app(integration_db_path: Path) -> AsyncGenerator[AppFactory, None]:
    """启动一个新的 app 实例（模拟进程启动），测试结束时关闭全部连接"""
    from planboard.gateway.main import create_app

    started = []

    async def _start() -> FastAPI:
        app = create_app()
        app.state.store_group = await create_store_group(integration_db_path)
        started.append(app.state.store_group)
        return app

    yield _start

    for store_group in started:
        await store_group.close()


@pytest_asyncio.fixture
async def client(start_app: AppFactory) -> AsyncGenerator[AsyncClient, None]:
    app = await start_app()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
