"""Artifact 路由

GET  /api/results:                                 最新 Artifact 列表（结果页）
POST /api/artifacts:                               新建或追加版本
GET  /api/artifacts/{id}:                          最新快照
GET  /api/artifacts/{id}/versions:                 版本历史 + 来源
POST /api/artifact-versions/{version_id}/exports:  追加导出记录
GET  /api/artifact-versions/{version_id}/exports:  导出记录列表
"""

from typing import Any

from fastapi import APIRouter, Depends
from planboard.core.models import (
    ArtifactExport,
    ArtifactSnapshot,
    ArtifactSource,
    ArtifactVersion,
)
from pydantic import AliasChoices, BaseModel, Field

from ..deps import get_store_group
from ..services.artifact_service import ArtifactService
from ..services.task_service import parse_positive_id

router = APIRouter()


class ArtifactSaveRequest(BaseModel):
    """保存 Artifact 请求体 -- artifact_id 缺省表示新建"""

    artifact_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("artifact_id", "artifactId"),
    )
    title: str | None = None
    kind: str | None = Field(default=None, description="text / diagram，缺省 text")
    category: str | None = Field(default=None, description="分类或其别名")
    format: str | None = Field(default=None, description="markdown / plantuml / text")
    content: str | None = None
    render_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("render_url", "renderUrl"),
    )
    note: str | None = None
    source_task_ids: Any = Field(
        default=None,
        validation_alias=AliasChoices("source_task_ids", "sourceTaskIds"),
    )
    source_message_ids: Any = Field(
        default=None,
        validation_alias=AliasChoices("source_message_ids", "sourceMessageIds"),
    )


class ExportCreateRequest(BaseModel):
    """导出请求体 -- content 与 location 至少其一"""

    format: str | None = None
    content: str | None = None
    location: str | None = None


class ResultEntry(BaseModel):
    """结果页条目"""

    id: int
    title: str
    format: str
    content: str
    category: str
    kind: str
    version: int
    render_url: str | None = None
    created_at: str


class ArtifactHistoryResponse(BaseModel):
    """版本历史响应"""

    artifact_id: int
    versions: list[ArtifactVersion]
    sources: list[ArtifactSource]


class ExportListResponse(BaseModel):
    """导出记录列表响应"""

    exports: list[ArtifactExport]


@router.get("/api/results", response_model=list[ResultEntry])
async def list_results(store_group=Depends(get_store_group)):
    """每个 Artifact 的最新版本，按版本创建时间倒序"""
    service = ArtifactService(store_group)
    return await service.list_results()


@router.post("/api/artifacts", response_model=ArtifactSnapshot, status_code=201)
async def save_artifact(body: ArtifactSaveRequest, store_group=Depends(get_store_group)):
    """新建 Artifact 或为已有 Artifact 追加版本"""
    service = ArtifactService(store_group)
    return await service.save(body.model_dump())


@router.get("/api/artifacts/{artifact_id}", response_model=ArtifactSnapshot)
async def get_artifact(artifact_id: str, store_group=Depends(get_store_group)):
    """最新快照"""
    service = ArtifactService(store_group)
    return await service.get_latest(parse_positive_id(artifact_id, "Artifact id"))


@router.get(
    "/api/artifacts/{artifact_id}/versions",
    response_model=ArtifactHistoryResponse,
)
async def list_artifact_versions(artifact_id: str, store_group=Depends(get_store_group)):
    """完整版本历史及来源"""
    service = ArtifactService(store_group)
    parsed_id = parse_positive_id(artifact_id, "Artifact id")
    versions, sources = await service.get_history(parsed_id)
    return ArtifactHistoryResponse(artifact_id=parsed_id, versions=versions, sources=sources)


@router.post(
    "/api/artifact-versions/{version_id}/exports",
    response_model=ArtifactExport,
    status_code=201,
)
async def add_export(
    version_id: str,
    body: ExportCreateRequest,
    store_group=Depends(get_store_group),
):
    """为版本追加导出记录"""
    service = ArtifactService(store_group)
    return await service.add_export(
        parse_positive_id(version_id, "Artifact version id"),
        body.format,
        content=body.content,
        location=body.location,
    )


@router.get(
    "/api/artifact-versions/{version_id}/exports",
    response_model=ExportListResponse,
)
async def list_exports(version_id: str, store_group=Depends(get_store_group)):
    """版本的导出记录"""
    service = ArtifactService(store_group)
    exports = await service.list_exports(
        parse_positive_id(version_id, "Artifact version id")
    )
    return ExportListResponse(exports=exports)
