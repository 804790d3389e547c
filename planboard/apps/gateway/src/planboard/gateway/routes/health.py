"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式、磁盘空间。
"""

import shutil
from pathlib import Path

import structlog
from fastapi import APIRouter, Request
from planboard.core.store.sqlite_init import verify_wal_mode
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. journal_mode: 是否为 WAL
    3. disk_space_mb: 数据库所在磁盘剩余空间
    """
    checks = {}
    all_ok = True

    store_group = getattr(request.app.state, "store_group", None)

    # 1. SQLite 连通性检查
    try:
        cursor = await store_group.db.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. WAL 模式
    if all_ok:
        wal = await verify_wal_mode(store_group.db.conn)
        checks["journal_mode"] = "wal" if wal else "not_wal"

    # 3. 磁盘空间检查
    try:
        db_dir = Path(store_group.db.db_path).parent if store_group else Path(".")
        disk_usage = shutil.disk_usage(db_dir if db_dir.exists() else ".")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
