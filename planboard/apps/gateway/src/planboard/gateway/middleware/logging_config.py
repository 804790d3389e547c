"""structlog 配置模块

dev 模式：ConsoleRenderer 可读输出
json 模式：每行一个 JSON 对象（生产环境采集）

structlog 与标准库 logging 共用同一 handler，
uvicorn / aiosqlite 等第三方日志经 foreign_pre_chain 渲染为相同格式。
"""

import logging
import os

import structlog

LOG_FORMATS = ("dev", "json")

# 调试级别下逐条 SQL 输出，默认压到 WARNING
_NOISY_LOGGERS = ("aiosqlite", "uvicorn.access")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _render_processors(log_format: str) -> list[structlog.types.Processor]:
    if log_format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    # ConsoleRenderer 自行渲染异常栈
    return [structlog.dev.ConsoleRenderer()]


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog + 标准库 logging

    Args:
        log_format: "dev" / "json"；缺省读取 PLANBOARD_LOG_FORMAT（默认 dev），未知值按 dev 处理
        log_level: 缺省读取 PLANBOARD_LOG_LEVEL（默认 INFO）
    """
    log_format = (log_format or os.environ.get("PLANBOARD_LOG_FORMAT", "dev")).lower()
    if log_format not in LOG_FORMATS:
        log_format = "dev"
    level_name = (log_level or os.environ.get("PLANBOARD_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    shared_processors = _shared_processors()
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_processors(log_format),
        ],
        foreign_pre_chain=shared_processors,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
