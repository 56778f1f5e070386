"""案件 API ルート

GET    /api/projects                     → 200 [Project...]（一覧取得失敗時は 503）
POST   /api/projects                     → 202 { id, ok }
GET    /api/projects/export.csv          → 200 text/csv
GET    /api/projects/{id}                → 200 Project
PATCH  /api/projects/{id}                → 202 { ok }
PUT    /api/projects/{id}/status         → 202 { ok }
DELETE /api/projects/{id}                → 202 { ok }
POST   /api/projects/{id}/files          → 202 { ok }
DELETE /api/projects/{id}/files/{name}   → 202 { ok }
POST   /api/projects/{id}/comments       → 202 { ok }

更新系は失敗してもエラーレスポンスにはしない（ログのみ）。
画面は変更通知による一覧の再取得で実際の状態を反映する。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from flyer_tracker.adapters.csv_renderer import ProjectCsvRenderer
from flyer_tracker.domain.models import (
    INITIAL_STATUS,
    NewProject,
    Project,
    ProjectPatch,
    ProjectStatus,
    UserRole,
    apply_flyer_not_needed,
)
from flyer_tracker.entrypoints.api.deps import (
    get_csv_renderer,
    get_live_projects,
    get_project_service,
)
from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.services.project_service import ProjectService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/projects", tags=["projects"])


class FileResponse(BaseModel):
    name: str
    url: str
    uploaded_at: str


class CommentResponse(BaseModel):
    id: str
    text: str
    timestamp: str
    user_name: str
    role: UserRole


class ProjectResponse(BaseModel):
    id: str
    event_name: str
    event_date: str
    event_time: str
    event_location: str
    print_count: int | None
    delivery_hope_date: str
    number_of_recruits: int | None
    notes: str
    is_urgent: bool
    flyer_not_needed: bool
    status: ProjectStatus
    phase: int
    created_at: str
    files: list[FileResponse]
    comments: list[CommentResponse]


class ProjectCreateRequest(BaseModel):
    event_name: str = Field(min_length=1)
    event_date: str = Field(min_length=1)
    event_time: str = ""
    event_location: str = ""
    print_count: int | None = Field(default=None, ge=0)
    delivery_hope_date: str = ""
    number_of_recruits: int | None = Field(default=None, ge=0)
    notes: str = ""
    is_urgent: bool = False
    flyer_not_needed: bool = False


class ProjectUpdateRequest(BaseModel):
    """
    送られたフィールドだけを更新する（既定値は使われない）。
    印刷枚数・募集人数は null で未入力に戻せる。
    """

    event_name: str = Field(default="", min_length=1)
    event_date: str = Field(default="", min_length=1)
    event_time: str = ""
    event_location: str = ""
    print_count: int | None = Field(default=None, ge=0)
    delivery_hope_date: str = ""
    number_of_recruits: int | None = Field(default=None, ge=0)
    notes: str = ""
    is_urgent: bool = False
    flyer_not_needed: bool = False
    status: ProjectStatus = INITIAL_STATUS


class StatusUpdateRequest(BaseModel):
    status: ProjectStatus


class CommentCreateRequest(BaseModel):
    text: str = Field(min_length=1)
    user_name: str = Field(min_length=1)
    role: UserRole


class CreateResponse(BaseModel):
    id: str | None
    ok: bool


class MutationResponse(BaseModel):
    ok: bool


def _to_response(p: Project) -> ProjectResponse:
    return ProjectResponse(
        id=p.id,
        event_name=p.event_name,
        event_date=p.event_date,
        event_time=p.event_time,
        event_location=p.event_location,
        print_count=p.print_count,
        delivery_hope_date=p.delivery_hope_date,
        number_of_recruits=p.number_of_recruits,
        notes=p.notes,
        is_urgent=p.is_urgent,
        flyer_not_needed=p.flyer_not_needed,
        status=p.status,
        phase=p.phase,
        created_at=p.created_at,
        files=[
            FileResponse(name=f.name, url=f.url, uploaded_at=f.uploaded_at)
            for f in p.files
        ],
        comments=[
            CommentResponse(
                id=c.id,
                text=c.text,
                timestamp=c.timestamp,
                user_name=c.user_name,
                role=c.role,
            )
            for c in p.comments
        ],
    )


def _require_loaded(live: LiveProjectList) -> None:
    if live.error is not None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=live.error
        )


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    live: LiveProjectList = Depends(get_live_projects),
) -> list[ProjectResponse]:
    """案件一覧を開催日順で返す"""
    _require_loaded(live)
    return [_to_response(p) for p in live.projects]


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=CreateResponse)
async def create_project(
    body: ProjectCreateRequest,
    service: ProjectService = Depends(get_project_service),
    live: LiveProjectList = Depends(get_live_projects),
) -> CreateResponse:
    """
    案件を登録する（ステータスは「未定」固定）。

    作成が確定した場合は一覧を取り直してから返す。
    レスポンス直後に詳細画面へ遷移しても「見つかりません」にならない。
    """
    project_id = service.create_project(NewProject(**body.model_dump()))
    if project_id is not None:
        live.refresh()
    return CreateResponse(id=project_id, ok=project_id is not None)


@router.get("/export.csv")
async def export_csv(
    live: LiveProjectList = Depends(get_live_projects),
    renderer: ProjectCsvRenderer = Depends(get_csv_renderer),
) -> Response:
    """現在の案件一覧を CSV で返す"""
    _require_loaded(live)
    projects = live.projects
    if not projects:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="出力する案件がありません。"
        )
    return Response(
        content=renderer.render(projects),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="projects.csv"'},
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    live: LiveProjectList = Depends(get_live_projects),
) -> ProjectResponse:
    """現在の一覧から案件を返す"""
    _require_loaded(live)
    project = live.find(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return _to_response(project)


@router.patch(
    "/{project_id}", status_code=status.HTTP_202_ACCEPTED, response_model=MutationResponse
)
async def update_project(
    project_id: str,
    body: ProjectUpdateRequest,
    service: ProjectService = Depends(get_project_service),
    live: LiveProjectList = Depends(get_live_projects),
) -> MutationResponse:
    """案件情報を部分更新する。チラシ不要にチェックを入れるとステータスは「完了」になる"""
    current = live.find(project_id)
    patch = apply_flyer_not_needed(
        ProjectPatch(**body.model_dump(exclude_unset=True)),
        already_not_needed=current is not None and current.flyer_not_needed,
    )
    return MutationResponse(ok=service.update_project(project_id, patch))


@router.put(
    "/{project_id}/status",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MutationResponse,
)
async def update_status(
    project_id: str,
    body: StatusUpdateRequest,
    service: ProjectService = Depends(get_project_service),
) -> MutationResponse:
    """ステータスを上書きする"""
    return MutationResponse(ok=service.update_status(project_id, body.status))


@router.delete(
    "/{project_id}", status_code=status.HTTP_202_ACCEPTED, response_model=MutationResponse
)
async def delete_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> MutationResponse:
    """案件と添付ファイルを削除する"""
    return MutationResponse(ok=service.delete_project(project_id))


@router.post(
    "/{project_id}/files",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MutationResponse,
)
async def upload_file(
    project_id: str,
    file: UploadFile,
    service: ProjectService = Depends(get_project_service),
) -> MutationResponse:
    """ファイルを添付する。同名ファイルは上書き"""
    content = await file.read()
    ok = service.add_file(
        project_id,
        file.filename or "",
        content,
        file.content_type or "application/octet-stream",
    )
    return MutationResponse(ok=ok)


@router.delete(
    "/{project_id}/files/{file_name}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MutationResponse,
)
async def delete_file(
    project_id: str,
    file_name: str,
    service: ProjectService = Depends(get_project_service),
) -> MutationResponse:
    """添付ファイルを削除する"""
    return MutationResponse(ok=service.delete_file(project_id, file_name))


@router.post(
    "/{project_id}/comments",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MutationResponse,
)
async def add_comment(
    project_id: str,
    body: CommentCreateRequest,
    service: ProjectService = Depends(get_project_service),
) -> MutationResponse:
    """コメントを追記する"""
    ok = service.add_comment(
        project_id, body.text.strip(), body.user_name.strip(), body.role
    )
    return MutationResponse(ok=ok)
