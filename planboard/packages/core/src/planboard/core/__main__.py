"""CLI 入口模块 -- python -m planboard.core <command>

支持的命令：
  migrate         执行 schema 初始化与历史迁移
  list-tasks      列出全部任务及关系
  list-artifacts  列出全部 Artifact 的最新版本
"""

import asyncio
import sys

from .config import get_db_path
from .exceptions import MigrationError

_COMMANDS = {
    "migrate": "执行 schema 初始化与历史迁移",
    "list-tasks": "列出全部任务及关系",
    "list-artifacts": "列出全部 Artifact 的最新版本",
}


def _print_usage() -> None:
    print("用法: python -m planboard.core <command>")
    print("命令:")
    for name, help_text in _COMMANDS.items():
        print(f"  {name:<15} {help_text}")


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        _print_usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "migrate":
        runner = migrate
    elif command == "list-tasks":
        runner = list_tasks
    elif command == "list-artifacts":
        runner = list_artifacts
    else:
        print(f"未知命令: {command}")
        print(f"可用命令: {', '.join(_COMMANDS)}")
        sys.exit(1)

    try:
        asyncio.run(runner())
    except MigrationError as e:
        print(f"迁移失败: {e.message}")
        sys.exit(2)


async def migrate() -> None:
    """打开数据库即执行 ensure_schema（幂等）"""
    from .store import create_store_group
    from .store.sqlite_init import verify_wal_mode

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        wal = await verify_wal_mode(store_group.db.conn)
        print(f"迁移完成（WAL: {'on' if wal else 'off'}）")
    finally:
        await store_group.close()


async def list_tasks() -> None:
    """输出任务列表"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        tasks = await store_group.task_store.list_tasks()
        for task in tasks:
            parents = ", ".join(p.code for p in task.parents) or "-"
            children = ", ".join(c.code for c in task.children) or "-"
            print(
                f"{task.code}  [{task.type.value}/{task.status.value}]  {task.title}"
                f"  parents: {parents}  children: {children}"
            )
        print(f"共 {len(tasks)} 个任务")
    finally:
        await store_group.close()


async def list_artifacts() -> None:
    """输出 Artifact 最新版本列表"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        snapshots = await store_group.artifact_store.list_latest_artifacts()
        for snapshot in snapshots:
            print(
                f"#{snapshot.artifact_id}  {snapshot.category}  v{snapshot.version}"
                f"  [{snapshot.format.value}]  {snapshot.title}"
            )
        print(f"共 {len(snapshots)} 个 Artifact")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
