"""任务路由

GET    /api/tasks:       任务列表（含父/子摘要），按 created_at 倒序
POST   /api/tasks:       创建任务 + 关系
GET    /api/tasks/{id}:  任务详情
PATCH  /api/tasks/{id}:  部分更新；parent_ids / child_ids 出现即整体替换该方向
DELETE /api/tasks/{id}:  删除任务及其全部边
"""

from typing import Any

from fastapi import APIRouter, Depends
from planboard.core.models import Task
from pydantic import AliasChoices, BaseModel, Field
from starlette.responses import Response

from ..deps import get_store_group
from ..services.task_service import TaskService, parse_positive_id

router = APIRouter()


class TaskCreateRequest(BaseModel):
    """创建任务请求体"""

    type: str | None = Field(default=None, description="epic / task / subtask")
    title: str | None = Field(default=None, description="任务标题")
    description: str | None = Field(default=None, description="任务描述")
    status: str | None = Field(default=None, description="初始状态，缺省为 open")
    parent_ids: Any = Field(
        default=None,
        validation_alias=AliasChoices("parent_ids", "parentIds"),
        description="父任务 id 数组",
    )
    child_ids: Any = Field(
        default=None,
        validation_alias=AliasChoices("child_ids", "childIds"),
        description="子任务 id 数组",
    )


class TaskUpdateRequest(TaskCreateRequest):
    """部分更新请求体 -- 未出现的字段保持不变"""


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[Task]


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(store_group=Depends(get_store_group)):
    """查询全部任务"""
    service = TaskService(store_group)
    return TaskListResponse(tasks=await service.list_tasks())


@router.post("/api/tasks", response_model=Task, status_code=201)
async def create_task(body: TaskCreateRequest, store_group=Depends(get_store_group)):
    """创建任务并写入父/子关系"""
    service = TaskService(store_group)
    return await service.create_task(
        body.type,
        body.title,
        body.description,
        body.status,
        parent_ids=body.parent_ids,
        child_ids=body.child_ids,
    )


@router.get("/api/tasks/{task_id}", response_model=Task)
async def get_task(task_id: str, store_group=Depends(get_store_group)):
    """查询任务详情"""
    service = TaskService(store_group)
    return await service.get_task(parse_positive_id(task_id))


@router.patch("/api/tasks/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    body: TaskUpdateRequest,
    store_group=Depends(get_store_group),
):
    """部分更新任务字段和关系"""
    service = TaskService(store_group)
    changes = {name: getattr(body, name) for name in body.model_fields_set}
    return await service.update_task(parse_positive_id(task_id), changes)


@router.delete("/api/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str, store_group=Depends(get_store_group)):
    """删除任务"""
    service = TaskService(store_group)
    await service.delete_task(parse_positive_id(task_id))
    return Response(status_code=204)
