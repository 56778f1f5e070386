"""画面ルーティング - URL フラグメントから表示する画面を決める

  ""               → 案件一覧（ダッシュボード）
  "#/new"          → 新規案件登録フォーム
  "#/project/{id}" → 案件詳細
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

NEW_FRAGMENT = "#/new"
LIST_FRAGMENT = ""
_PROJECT_PREFIX = "#/project/"


class RouteKind(Enum):
    LIST = "list"
    NEW = "new"
    PROJECT = "project"


@dataclass(frozen=True)
class Route:
    kind: RouteKind
    project_id: str | None = None


def parse_fragment(fragment: str | None) -> Route:
    """フラグメントを Route に変換。該当しないものは全て一覧"""
    fragment = (fragment or "").strip()
    if fragment.startswith(_PROJECT_PREFIX):
        # ID が空でも詳細画面として扱い、見つからない表示にする
        project_id = fragment[len(_PROJECT_PREFIX):].split("/", 1)[0]
        return Route(RouteKind.PROJECT, project_id)
    if fragment == NEW_FRAGMENT:
        return Route(RouteKind.NEW)
    return Route(RouteKind.LIST)


def project_fragment(project_id: str) -> str:
    return f"{_PROJECT_PREFIX}{project_id}"
