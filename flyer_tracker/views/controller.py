"""ViewController - 画面状態を持つトップレベルのコントローラ

現在のフラグメント（表示中の画面）と共有の案件一覧（LiveProjectList）を束ね、
フラグメントに対応するビューモデルを返す。グローバル変数は使わず、
呼び出し側がインスタンスを保持して各画面に渡す。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel

from flyer_tracker.domain.models import NewProject, ProjectStatus, UserRole
from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.services.project_service import ProjectService
from flyer_tracker.views.presenters import (
    ErrorView,
    NotFoundView,
    render_dashboard,
    render_detail,
    render_new_form,
)
from flyer_tracker.views.routing import (
    LIST_FRAGMENT,
    Route,
    RouteKind,
    parse_fragment,
)

logger = logging.getLogger(__name__)


class FormValidationError(ValueError):
    """新規登録フォームの入力エラー"""


def validate_new_project(data: NewProject) -> None:
    """
    必須項目と数値の範囲をチェックする。

    Raises:
        FormValidationError: イベント名・開催日が空、または数値が負の場合
    """
    if not data.event_name.strip():
        raise FormValidationError("イベント名は必須です")
    if not data.event_date.strip():
        raise FormValidationError("開催日は必須です")
    for label, value in (
        ("印刷枚数", data.print_count),
        ("募集人数", data.number_of_recruits),
    ):
        if value is not None and value < 0:
            raise FormValidationError(f"{label}は0以上で入力してください")


def render_route(
    route: Route,
    live: LiveProjectList,
    event_names: Sequence[str] = (),
    viewer_role: UserRole | None = None,
    font_size: str = "base",
    selected_status: ProjectStatus | None = None,
) -> BaseModel:
    """
    Route に対応するビューモデルを返す。

    一覧の取得に失敗している場合は、どの画面でもエラー画面を返す（自動リトライなし）。
    """
    error = live.error
    if error is not None:
        return ErrorView(detail=error)

    if route.kind is RouteKind.PROJECT:
        project = live.find(route.project_id or "")
        if project is None:
            return NotFoundView()
        return render_detail(
            project,
            viewer_role=viewer_role,
            font_size=font_size,
            selected_status=selected_status,
        )
    if route.kind is RouteKind.NEW:
        return render_new_form(event_names)
    return render_dashboard(live.projects)


class ViewController:
    """1セッション分の画面状態"""

    def __init__(
        self,
        live: LiveProjectList,
        service: ProjectService,
        event_names: Sequence[str] = (),
    ) -> None:
        self._live = live
        self._service = service
        self._event_names = tuple(event_names)
        self._fragment = LIST_FRAGMENT

    @property
    def fragment(self) -> str:
        return self._fragment

    @property
    def route(self) -> Route:
        return parse_fragment(self._fragment)

    def navigate(self, fragment: str) -> Route:
        """フラグメントを書き換える（画面遷移）"""
        self._fragment = fragment or LIST_FRAGMENT
        logger.debug("Navigate: %r", self._fragment)
        return self.route

    def render(
        self,
        viewer_role: UserRole | None = None,
        font_size: str = "base",
        selected_status: ProjectStatus | None = None,
    ) -> BaseModel:
        return render_route(
            self.route,
            self._live,
            event_names=self._event_names,
            viewer_role=viewer_role,
            font_size=font_size,
            selected_status=selected_status,
        )

    def submit_new_project(self, data: NewProject) -> str | None:
        """
        新規案件を登録して一覧へ戻る。

        作成が確定してから一覧を取り直し、その後に遷移する。
        遷移直後に新しい案件が一覧に無い、という状態を作らないため。

        Raises:
            FormValidationError: 入力エラー（この場合は遷移しない）
        """
        validate_new_project(data)
        project_id = self._service.create_project(data)
        if project_id is not None:
            self._live.refresh()
        self.navigate(LIST_FRAGMENT)
        return project_id
