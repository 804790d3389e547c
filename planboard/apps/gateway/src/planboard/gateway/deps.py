"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 实例

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from planboard.core.exceptions import StoreUnavailableError
from planboard.core.store import StoreGroup


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例

    Raises:
        StoreUnavailableError: lifespan 尚未完成初始化
    """
    store_group = getattr(request.app.state, "store_group", None)
    if store_group is None:
        raise StoreUnavailableError("Store group is not initialized")
    return store_group
