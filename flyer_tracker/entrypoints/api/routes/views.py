"""画面ビューモデル API ルート

GET /api/view?fragment=#/project/{id}&role=agency&font_size=lg&selected_status=完了
  → フラグメントに対応する画面のビューモデル
    （dashboard / new / detail / not_found / error のいずれか）
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from flyer_tracker.domain.models import ProjectStatus, UserRole
from flyer_tracker.entrypoints.api.deps import get_event_names, get_live_projects
from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.views.controller import render_route
from flyer_tracker.views.routing import parse_fragment

router = APIRouter(prefix="/view", tags=["views"])


@router.get("")
async def get_view(
    fragment: str = "",
    role: UserRole | None = None,
    font_size: str = Query("base", pattern="^(sm|base|lg)$"),
    selected_status: ProjectStatus | None = None,
    live: LiveProjectList = Depends(get_live_projects),
    event_names: tuple[str, ...] = Depends(get_event_names),
) -> dict:
    """フラグメントを解釈して画面のビューモデルを返す"""
    view = render_route(
        parse_fragment(fragment),
        live,
        event_names=event_names,
        viewer_role=role,
        font_size=font_size,
        selected_status=selected_status,
    )
    return view.model_dump()
