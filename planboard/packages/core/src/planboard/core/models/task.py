"""Task Domain Model

Task 行由 TaskStore 独占；parents / children 由 LinkGraph 的边表投影得到。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskStatus, TaskType


class TaskSummary(BaseModel):
    """邻接任务摘要"""

    id: int = Field(description="任务 ID")
    code: str = Field(description="人类可读编号，如 TASK-0001")
    title: str = Field(description="任务标题")


class Task(BaseModel):
    """Task 数据模型

    code 一经分配不可修改；parents / children 为空表示关系尚未写入，
    不代表数据损坏。
    """

    id: int = Field(description="自增 ID")
    type: TaskType = Field(description="工作项类型")
    title: str = Field(description="任务标题")
    description: str = Field(description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.OPEN, description="当前状态")
    code: str = Field(description="人类可读编号，唯一")
    created_at: datetime = Field(description="创建时间")
    parents: list[TaskSummary] = Field(default_factory=list, description="父任务")
    children: list[TaskSummary] = Field(default_factory=list, description="子任务")

    def summary(self) -> TaskSummary:
        """转换为邻接摘要"""
        return TaskSummary(id=self.id, code=self.code, title=self.title)
