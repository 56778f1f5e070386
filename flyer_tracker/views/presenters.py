"""画面ごとのビューモデル

表示に必要な値だけを組み立てる純粋関数群。レイアウトや装飾は扱わない。
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

from pydantic import BaseModel

from flyer_tracker.domain.models import (
    FONT_SIZES,
    INITIAL_STATUS,
    SELECTABLE_STATUSES,
    Comment,
    Project,
    ProjectStatus,
    UserRole,
)
from flyer_tracker.views.routing import LIST_FRAGMENT, project_fragment

PHASE_COUNT = 7


class DashboardRow(BaseModel):
    id: str
    event_name: str
    event_date: str  # 表示用 "YYYY/MM/DD"
    status: str
    phase: int
    is_urgent: bool
    highlight_status: bool  # 「修正指示あり」は強調表示
    link: str


class DashboardView(BaseModel):
    view: str = "dashboard"
    phase_count: int = PHASE_COUNT
    rows: list[DashboardRow]


class FileView(BaseModel):
    name: str
    url: str
    uploaded_at: str


class CommentView(BaseModel):
    id: str
    text: str
    timestamp: str
    user_name: str
    role: str
    is_mine: bool


class DetailView(BaseModel):
    view: str = "detail"
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
    status: str
    phase: int
    status_options: list[str]
    # ステータス選択欄の現在の選択値と、更新ボタンを押せるかどうか
    selected_status: str
    status_update_enabled: bool
    files: list[FileView]
    # ロール未選択の場合は None（コメント欄の前にロール選択を求める）
    comments: list[CommentView] | None
    viewer_role: str | None
    comment_font_size: str
    back_link: str = LIST_FRAGMENT


class NewProjectFormView(BaseModel):
    view: str = "new"
    event_name_choices: list[str]
    initial_status: str = INITIAL_STATUS.value
    cancel_link: str = LIST_FRAGMENT


class NotFoundView(BaseModel):
    view: str = "not_found"
    message: str = "案件が見つかりませんでした。"
    back_link: str = LIST_FRAGMENT


class ErrorView(BaseModel):
    view: str = "error"
    title: str = "データベースへの接続に失敗しました"
    checklist: list[str] = [
        "projects コレクションが存在し、アクセス権限が設定されているか",
        "プロジェクトIDと認証情報（.env）が正しく設定されているか",
        "ネットワークに接続されているか",
    ]
    detail: str


def format_date(value: str) -> str:
    """YYYY-MM-DD → YYYY/MM/DD。解釈できない値はそのまま返す"""
    try:
        return date.fromisoformat(value).strftime("%Y/%m/%d")
    except (TypeError, ValueError):
        return value


def format_timestamp(value: str) -> str:
    """ISO8601 → "2025年6月1日 10:15"。解釈できない値はそのまま返す"""
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return value
    return f"{dt.year}年{dt.month}月{dt.day}日 {dt:%H:%M}"


def status_update_enabled(selected: ProjectStatus, current: ProjectStatus) -> bool:
    """選択中のステータスが現在値と同じなら更新ボタンは無効"""
    return selected != current


def render_dashboard(projects: Sequence[Project]) -> DashboardView:
    return DashboardView(
        rows=[
            DashboardRow(
                id=p.id,
                event_name=p.event_name,
                event_date=format_date(p.event_date),
                status=p.status.value,
                phase=p.phase,
                is_urgent=p.is_urgent,
                highlight_status=p.status is ProjectStatus.REVISION_REQUESTED,
                link=project_fragment(p.id),
            )
            for p in projects
        ]
    )


def _comment_view(c: Comment, viewer_role: UserRole) -> CommentView:
    return CommentView(
        id=c.id,
        text=c.text,
        timestamp=format_timestamp(c.timestamp),
        user_name=c.user_name,
        role=c.role.value,
        is_mine=c.role is viewer_role,
    )


def render_detail(
    project: Project,
    viewer_role: UserRole | None = None,
    font_size: str = "base",
    selected_status: ProjectStatus | None = None,
) -> DetailView:
    selected = selected_status or project.status
    return DetailView(
        id=project.id,
        event_name=project.event_name,
        event_date=format_date(project.event_date),
        event_time=project.event_time,
        event_location=project.event_location,
        print_count=project.print_count,
        delivery_hope_date=format_date(project.delivery_hope_date),
        number_of_recruits=project.number_of_recruits,
        notes=project.notes,
        is_urgent=project.is_urgent,
        flyer_not_needed=project.flyer_not_needed,
        status=project.status.value,
        phase=project.phase,
        status_options=[s.value for s in SELECTABLE_STATUSES],
        selected_status=selected.value,
        status_update_enabled=status_update_enabled(selected, project.status),
        files=[
            FileView(
                name=f.name, url=f.url, uploaded_at=format_timestamp(f.uploaded_at)
            )
            for f in project.files
        ],
        comments=(
            [_comment_view(c, viewer_role) for c in project.comments]
            if viewer_role is not None
            else None
        ),
        viewer_role=viewer_role.value if viewer_role else None,
        comment_font_size=font_size if font_size in FONT_SIZES else "base",
    )


def render_new_form(event_names: Sequence[str]) -> NewProjectFormView:
    return NewProjectFormView(event_name_choices=list(event_names))
