"""枚举定义

包含 TaskType、TaskStatus（5 值闭集）及其历史状态映射表，
以及 Artifact 相关的 kind / category / format / source / export 枚举
和 category 别名归一化函数。
"""

from enum import StrEnum
from typing import TypeVar

from ..exceptions import ValidationError

E = TypeVar("E", bound=StrEnum)


class TaskType(StrEnum):
    """工作项类型 -- 同一实体的三种标签"""

    EPIC = "epic"
    TASK = "task"
    SUBTASK = "subtask"


class TaskStatus(StrEnum):
    """任务状态闭集

    仅校验成员资格，不限制流转顺序。
    """

    OPEN = "open"
    NEEDS_CLARIFICATION = "needs_clarification"
    READY_FOR_FOLLOW_UP = "ready_for_follow_up"
    DECOMPOSED = "decomposed"
    DONE = "done"


# 新建任务的默认状态
INITIAL_TASK_STATUS: TaskStatus = TaskStatus.OPEN

# 历史状态值 -> 当前状态，迁移时使用；未列出的值一律落到 INITIAL_TASK_STATUS
LEGACY_TASK_STATUS_MAP: dict[str, TaskStatus] = {
    # 第一代
    "backlog": TaskStatus.OPEN,
    "in_progress": TaskStatus.READY_FOR_FOLLOW_UP,
    "done": TaskStatus.DONE,
    # 第二代
    "Open": TaskStatus.OPEN,
    "Drafted": TaskStatus.DECOMPOSED,
    "RequiresClarification": TaskStatus.NEEDS_CLARIFICATION,
    "Ready": TaskStatus.READY_FOR_FOLLOW_UP,
    "Done": TaskStatus.DONE,
}


class ArtifactKind(StrEnum):
    """Artifact 类型"""

    TEXT = "text"
    DIAGRAM = "diagram"


class ArtifactCategory(StrEnum):
    """Artifact 分类 -- 内部（数据库）规范小写值"""

    USE_CASE_DIAGRAM = "use_case_diagram"
    ER_DIAGRAM = "er_diagram"
    ENTITY_DIAGRAM = "entity_diagram"
    USER_SCENARIO = "user_scenario"
    FUNCTIONAL_REQUIREMENT = "functional_requirement"
    NON_FUNCTIONAL_REQUIREMENT = "non_functional_requirement"
    ACCEPTANCE_CRITERIA = "acceptance_criteria"


class ExternalArtifactCategory(StrEnum):
    """Artifact 分类 -- 对外大写词表"""

    USE_CASE_DIAGRAM = "USE_CASE_DIAGRAM"
    ENTITY_DIAGRAM = "ENTITY_DIAGRAM"
    USER_SCENARIO = "USER_SCENARIO"
    FUNCTIONAL_REQUIREMENTS = "FUNCTIONAL_REQUIREMENTS"
    NON_FUNCTIONAL_REQUIREMENTS = "NON_FUNCTIONAL_REQUIREMENTS"
    ACCEPTANCE_CRITERIA = "ACCEPTANCE_CRITERIA"


class ArtifactFormat(StrEnum):
    """Artifact 版本内容格式"""

    MARKDOWN = "markdown"
    PLANTUML = "plantuml"
    TEXT = "text"


class ArtifactSourceType(StrEnum):
    """Artifact 来源类型"""

    TASK = "task"
    MESSAGE = "message"
    MANUAL = "manual"


class ArtifactExportFormat(StrEnum):
    """Artifact 导出格式"""

    MARKDOWN = "markdown"
    DOCX = "docx"
    PNG = "png"
    PLANTUML = "plantuml"


# 输入别名 -> 内部规范值（entity_diagram / er_diagram 同义）
_CATEGORY_ALIASES: dict[str, ArtifactCategory] = {
    "use_case_diagram": ArtifactCategory.USE_CASE_DIAGRAM,
    "USE_CASE_DIAGRAM": ArtifactCategory.USE_CASE_DIAGRAM,
    "er_diagram": ArtifactCategory.ER_DIAGRAM,
    "entity_diagram": ArtifactCategory.ER_DIAGRAM,
    "ENTITY_DIAGRAM": ArtifactCategory.ER_DIAGRAM,
    "ER_DIAGRAM": ArtifactCategory.ER_DIAGRAM,
    "user_scenario": ArtifactCategory.USER_SCENARIO,
    "USER_SCENARIO": ArtifactCategory.USER_SCENARIO,
    "functional_requirement": ArtifactCategory.FUNCTIONAL_REQUIREMENT,
    "FUNCTIONAL_REQUIREMENTS": ArtifactCategory.FUNCTIONAL_REQUIREMENT,
    "non_functional_requirement": ArtifactCategory.NON_FUNCTIONAL_REQUIREMENT,
    "NON_FUNCTIONAL_REQUIREMENTS": ArtifactCategory.NON_FUNCTIONAL_REQUIREMENT,
    "acceptance_criteria": ArtifactCategory.ACCEPTANCE_CRITERIA,
    "ACCEPTANCE_CRITERIA": ArtifactCategory.ACCEPTANCE_CRITERIA,
}

# 内部值 -> 对外唯一拼写；entity_diagram 为历史遗留行，同样投影到 ENTITY_DIAGRAM
_EXTERNAL_CATEGORIES: dict[str, ExternalArtifactCategory] = {
    ArtifactCategory.USE_CASE_DIAGRAM: ExternalArtifactCategory.USE_CASE_DIAGRAM,
    ArtifactCategory.ER_DIAGRAM: ExternalArtifactCategory.ENTITY_DIAGRAM,
    ArtifactCategory.ENTITY_DIAGRAM: ExternalArtifactCategory.ENTITY_DIAGRAM,
    ArtifactCategory.USER_SCENARIO: ExternalArtifactCategory.USER_SCENARIO,
    ArtifactCategory.FUNCTIONAL_REQUIREMENT: ExternalArtifactCategory.FUNCTIONAL_REQUIREMENTS,
    ArtifactCategory.NON_FUNCTIONAL_REQUIREMENT: (
        ExternalArtifactCategory.NON_FUNCTIONAL_REQUIREMENTS
    ),
    ArtifactCategory.ACCEPTANCE_CRITERIA: ExternalArtifactCategory.ACCEPTANCE_CRITERIA,
}


def normalize_category(category: str) -> ArtifactCategory:
    """将输入别名归一化为内部规范分类

    Raises:
        ValidationError: 未知分类
    """
    normalized = _CATEGORY_ALIASES.get(category)
    if normalized is None:
        raise ValidationError(f"Unknown artifact category: {category}")
    return normalized


def to_external_category(category: str) -> str:
    """内部分类 -> 对外大写拼写；未知值原样返回"""
    external = _EXTERNAL_CATEGORIES.get(category)
    return external.value if external is not None else category


def parse_enum(enum_cls: type[E], value: str | None, field: str) -> E:
    """将字符串解析为枚举成员

    Args:
        enum_cls: 目标枚举类型
        value: 原始值
        field: 字段名（用于错误信息）

    Raises:
        ValidationError: 值为空或不在枚举中
    """
    if not value:
        raise ValidationError(f"Field '{field}' is required")
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Unknown {field}: {value}. Allowed: {allowed}"
        ) from None
