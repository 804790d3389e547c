"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 打开/迁移/关闭 + 异常映射 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from planboard.core.config import get_db_path
from planboard.core.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from planboard.core.store import create_store_group
from starlette.responses import JSONResponse

from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import artifacts, health, tasks

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时打开 DB 并执行迁移，关闭时释放连接"""
    # MigrationError 直接中止启动
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    log.info("store_group_ready", db_path=db_path)

    yield

    # 关闭：清理数据库连接
    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.close()


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def _handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    log.info("request_rejected", error=exc.message)
    return _error_response(400, "VALIDATION_ERROR", exc.message)


async def _handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, exc.code, exc.message)


async def _handle_store_unavailable(
    request: Request, exc: StoreUnavailableError
) -> JSONResponse:
    log.error("store_unavailable", error=exc.message)
    return _error_response(503, "STORE_UNAVAILABLE", exc.message)


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体结构错误同样按 VALIDATION_ERROR 返回"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(400, "VALIDATION_ERROR", message)


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Planboard Gateway",
        version="0.1.0",
        description="任务分解与需求产物管理 API",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()

    # 领域异常 -> HTTP 错误体
    app.add_exception_handler(ValidationError, _handle_validation_error)
    app.add_exception_handler(NotFoundError, _handle_not_found)
    app.add_exception_handler(StoreUnavailableError, _handle_store_unavailable)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(artifacts.router, tags=["artifacts"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
