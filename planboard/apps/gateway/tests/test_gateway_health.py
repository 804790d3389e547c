"""健康检查 + 生命周期 + 请求日志测试

测试内容：
1. GET /health 返回 200 + ok
2. GET /ready 正常时返回 200 + checks 结构，DB 不可用时返回 503
3. lifespan 启动时建库、关闭时释放连接
4. X-Request-ID 响应头
"""

from pathlib import Path

from httpx import ASGITransport, AsyncClient
from planboard.core.store import SqliteDatabase


class TestHealthCheck:
    """健康检查"""

    async def test_health_returns_200(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready_ok(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        assert data["checks"]["sqlite"] == "ok"
        assert data["checks"]["journal_mode"] == "wal"
        assert isinstance(data["checks"]["disk_space_mb"], int)

    async def test_ready_503_when_db_closed(self, app, client: AsyncClient, store_group):
        await store_group.close()

        resp = await client.get("/ready")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["sqlite"].startswith("error:")

    async def test_api_503_when_db_closed(self, client: AsyncClient, store_group):
        await store_group.close()

        resp = await client.get("/api/tasks")
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "STORE_UNAVAILABLE"


class TestRequestId:
    """请求日志中间件"""

    async def test_generated_request_id(self, client: AsyncClient):
        resp = await client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 26

    async def test_inbound_request_id_echoed(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"


class TestLifespan:
    """lifespan 打开 / 关闭 StoreGroup"""

    async def test_lifespan_opens_and_closes(self, gateway_db_path: Path):
        from planboard.gateway.main import create_app, lifespan

        app = create_app()
        async with lifespan(app):
            assert gateway_db_path.exists()
            db: SqliteDatabase = app.state.store_group.db
            assert db.is_open

            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as ac:
                resp = await ac.post(
                    "/api/tasks",
                    json={"type": "epic", "title": "生命周期", "description": "启动后可写"},
                )
                assert resp.status_code == 201

        assert db.is_open is False
