"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、任务编号前缀、编号分配重试次数等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("PLANBOARD_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "PLANBOARD_DB_PATH",
        str(_get_base_dir() / "sqlite" / "planboard.db"),
    )


def get_task_code_prefix() -> str:
    """获取任务编号前缀（TASK-0001 中的 TASK）"""
    return os.environ.get("PLANBOARD_TASK_CODE_PREFIX", "TASK")


# 任务编号数字部分的补零宽度
TASK_CODE_WIDTH: int = 4

# 编号唯一约束冲突时的最大重试次数（跨进程并发写入）
CODE_ALLOCATION_MAX_RETRIES: int = int(
    os.environ.get("PLANBOARD_CODE_ALLOCATION_MAX_RETRIES", "3")
)

# 无显式来源时自动补充的 manual 来源描述
MANUAL_SOURCE_DESCRIPTION: str = "Added manually"

# 最近消息默认条数
RECENT_MESSAGES_LIMIT: int = 10
