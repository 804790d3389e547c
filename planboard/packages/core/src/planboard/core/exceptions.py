"""Core 异常体系

ValidationError / NotFoundError 直接返回给调用方；
MigrationError / StoreUnavailableError 表示启动或生命周期错误，不可在进程内恢复。
"""


class PlanboardError(Exception):
    """Core 包基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方修正输入后是否可以重试
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(PlanboardError):
    """输入校验失败（必填字段为空、未知枚举值、id 列表非法等）"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)


class NotFoundError(PlanboardError):
    """实体不存在（task / artifact / artifact version）"""

    def __init__(self, entity: str, entity_id: int) -> None:
        """
        Args:
            entity: 实体名称，如 "task"、"artifact"、"artifact_version"
            entity_id: 查询的 id
        """
        super().__init__(f"{entity.replace('_', ' ').capitalize()} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id

    @property
    def code(self) -> str:
        """HTTP 层使用的错误码，如 TASK_NOT_FOUND"""
        return f"{self.entity.upper()}_NOT_FOUND"


class MigrationError(PlanboardError):
    """Schema 迁移失败 -- 中止进程启动"""

    def __init__(self, step: str, original_error: Exception) -> None:
        """
        Args:
            step: 失败的迁移步骤
            original_error: 原始异常
        """
        super().__init__(f"Schema migration failed at step '{step}': {original_error}")
        self.step = step
        self.original_error = original_error


class StoreUnavailableError(PlanboardError):
    """数据库连接未初始化或已关闭（上游生命周期顺序错误）"""

    def __init__(self, message: str = "Database connection is not initialized") -> None:
        super().__init__(message)
