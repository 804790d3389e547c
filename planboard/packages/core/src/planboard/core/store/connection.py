"""共享数据库连接的生命周期对象

所有 Store 通过构造函数注入同一个 SqliteDatabase：
启动时 open()，关闭时 close()；写操作统一走 transaction()，
由一把 asyncio.Lock 串行化（单写者）。

读操作统一走 fetchone() / fetchall()：同样持锁，
不会读到其他协程挂起在 await 上、尚未提交的写事务数据；
事务持有者自身的读取直接复用事务连接，可见本事务的写入。
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from ..exceptions import StoreUnavailableError


class SqliteDatabase:
    """持有单个 aiosqlite 连接，提供事务边界"""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """当前连接

        Raises:
            StoreUnavailableError: 未 open 或已 close
        """
        if self._conn is None:
            raise StoreUnavailableError()
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> aiosqlite.Connection:
        """打开连接（幂等）"""
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(self.db_path)
            conn.row_factory = aiosqlite.Row
            self._conn = conn
        return self._conn

    async def close(self) -> None:
        """关闭连接（幂等）"""
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """写事务：BEGIN IMMEDIATE ... COMMIT，异常时 ROLLBACK

        同一 asyncio task 内可重入：嵌套调用加入外层事务，由外层提交。
        """
        conn = self.conn
        current = asyncio.current_task()
        if self._tx_owner is not None and self._tx_owner is current:
            yield conn
            return

        async with self._write_lock:
            self._tx_owner = current
            try:
                if conn.in_transaction:
                    # 之前的隐式事务残留，先落盘再开启新事务
                    await conn.commit()
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                except BaseException:
                    await conn.rollback()
                    raise
                await conn.commit()
            finally:
                self._tx_owner = None

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> aiosqlite.Row | None:
        """只读查询，返回第一行"""
        async with self._reading() as conn:
            cursor = await conn.execute(sql, params)
            return await cursor.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        """只读查询，返回全部行"""
        async with self._reading() as conn:
            cursor = await conn.execute(sql, params)
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = self.conn
        if self._tx_owner is not None and self._tx_owner is asyncio.current_task():
            yield conn
            return

        # 等待进行中的写事务结束，只观察已提交状态
        async with self._write_lock:
            yield conn
