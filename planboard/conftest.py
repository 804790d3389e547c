"""全局 pytest 配置 -- 临时 SQLite 数据库 fixture"""

import os
from collections.abc import AsyncGenerator, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from planboard.core.store.connection import SqliteDatabase
from planboard.core.store.sqlite_init import ensure_schema

_PLANBOARD_ENV_KEYS = (
    "PLANBOARD_DATA_DIR",
    "PLANBOARD_DB_PATH",
    "PLANBOARD_TASK_CODE_PREFIX",
    "PLANBOARD_LOG_FORMAT",
    "PLANBOARD_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_planboard_env() -> Iterator[None]:
    """测试间不共享 PLANBOARD_* 环境变量"""
    saved = {key: os.environ.pop(key) for key in _PLANBOARD_ENV_KEYS if key in os.environ}
    yield
    for key in _PLANBOARD_ENV_KEYS:
        os.environ.pop(key, None)
    os.environ.update(saved)


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db(tmp_db_path: Path) -> AsyncGenerator[SqliteDatabase, None]:
    """提供已初始化 schema 的临时数据库"""
    database = SqliteDatabase(tmp_db_path)
    conn = await database.open()
    await ensure_schema(conn)
    yield database
    await database.close()
