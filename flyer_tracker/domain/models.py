"""ドメインモデル - 外部依存なしのデータ構造"""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any


class ProjectStatus(Enum):
    """案件のステータス（8値）"""

    UNDECIDED = "未定"
    PREPARING_REQUEST = "依頼準備中"
    IN_PRODUCTION = "制作中"
    CLIENT_REVIEW = "振興会確認中"
    REVISION_REQUESTED = "修正指示あり"
    AWAITING_DELIVERY = "印刷・納品待ち"
    DONE = "完了"
    NOT_NEEDED = "不要"


INITIAL_STATUS = ProjectStatus.UNDECIDED
TERMINAL_STATUS = ProjectStatus.DONE

# ステータス更新 UI で選択できる値（「不要」はチラシ不要フラグ側で扱う）
SELECTABLE_STATUSES: tuple[ProjectStatus, ...] = (
    ProjectStatus.UNDECIDED,
    ProjectStatus.PREPARING_REQUEST,
    ProjectStatus.IN_PRODUCTION,
    ProjectStatus.CLIENT_REVIEW,
    ProjectStatus.REVISION_REQUESTED,
    ProjectStatus.AWAITING_DELIVERY,
    ProjectStatus.DONE,
)

_PHASES: dict[ProjectStatus, int] = {
    ProjectStatus.UNDECIDED: 1,
    ProjectStatus.NOT_NEEDED: 1,
    ProjectStatus.PREPARING_REQUEST: 2,
    ProjectStatus.IN_PRODUCTION: 3,
    ProjectStatus.CLIENT_REVIEW: 4,
    ProjectStatus.REVISION_REQUESTED: 5,
    ProjectStatus.AWAITING_DELIVERY: 6,
    ProjectStatus.DONE: 7,
}


def phase_of(status: ProjectStatus | str | None) -> int:
    """
    ステータスを表示用の7フェーズ（1〜7）に分類する。

    「未定」と「不要」は同じフェーズ1。未知の値もフェーズ1にフォールバックする。
    遷移の検証には使わない（ステータスはどの値からどの値へも直接上書きできる）。
    """
    if isinstance(status, str):
        status = parse_status(status)
    return _PHASES.get(status, 1)


def parse_status(value: str | None) -> ProjectStatus | None:
    """文字列を ProjectStatus に変換。未知の値は None"""
    try:
        return ProjectStatus(value)
    except ValueError:
        return None


class UserRole(Enum):
    """コメントスレッドの当事者（2者）"""

    COMPANY = "company"  # 依頼側
    AGENCY = "agency"  # 制作側


# コメント欄の文字サイズ
FONT_SIZES = ("sm", "base", "lg")


@dataclass(frozen=True)
class ProjectFile:
    """案件に添付されたファイル。name がリスト内の一意キー"""

    name: str
    url: str
    uploaded_at: str  # ISO8601: "2025-06-01T10:15:00+00:00"


@dataclass(frozen=True)
class Comment:
    """コメント（追記のみ・変更不可）"""

    id: str  # 例: "comm_1717200000000_k3j9x0a1"
    text: str
    timestamp: str  # ISO8601
    user_name: str
    role: UserRole


@dataclass(frozen=True)
class Project:
    """チラシ制作依頼（案件）"""

    id: str
    event_name: str
    event_date: str  # YYYY-MM-DD
    event_time: str = ""
    event_location: str = ""
    print_count: int | None = None
    delivery_hope_date: str = ""  # YYYY-MM-DD
    number_of_recruits: int | None = None
    notes: str = ""
    is_urgent: bool = False
    flyer_not_needed: bool = False
    status: ProjectStatus = INITIAL_STATUS
    created_at: str = ""  # ISO8601（サーバー側で付与）
    files: list[ProjectFile] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)

    @property
    def phase(self) -> int:
        return phase_of(self.status)


@dataclass(frozen=True)
class NewProject:
    """新規作成フォームの入力（id / status / created_at はサーバー側で決まる）"""

    event_name: str
    event_date: str
    event_time: str = ""
    event_location: str = ""
    print_count: int | None = None
    delivery_hope_date: str = ""
    number_of_recruits: int | None = None
    notes: str = ""
    is_urgent: bool = False
    flyer_not_needed: bool = False


class _Unset:
    """未指定を表す番兵（None は「値を空にする」を意味する）"""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class ProjectPatch:
    """
    部分更新パッチ。UNSET のフィールドは更新しない。
    None を指定すると空の値で上書きする（印刷枚数などを未入力に戻す場合）。

    id / created_at / files / comments は含まない（files と comments は専用操作のみで変更する）。
    """

    event_name: str | None = UNSET
    event_date: str | None = UNSET
    event_time: str | None = UNSET
    event_location: str | None = UNSET
    print_count: int | None = UNSET
    delivery_hope_date: str | None = UNSET
    number_of_recruits: int | None = UNSET
    notes: str | None = UNSET
    is_urgent: bool | None = UNSET
    flyer_not_needed: bool | None = UNSET
    status: ProjectStatus | None = UNSET

    def changes(self) -> dict[str, object]:
        """設定されたフィールドだけを返す"""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()


def apply_flyer_not_needed(
    patch: ProjectPatch, already_not_needed: bool = False
) -> ProjectPatch:
    """
    チラシ不要にチェックを入れた編集では、ステータスを終端値（完了）に強制する。

    既にチラシ不要の案件では、同じ編集で選び直したステータスをそのまま使う。
    """
    if patch.flyer_not_needed and not already_not_needed:
        return replace(patch, status=TERMINAL_STATUS)
    return patch


@dataclass(frozen=True)
class FetchResult:
    """一覧取得の結果。失敗時は projects が None で error にメッセージが入る"""

    projects: list[Project] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def sort_projects(
    projects: Iterable[Project], event_name_order: Sequence[str] = ()
) -> list[Project]:
    """
    開催日の昇順に並べ、同日の場合は設定済みイベント名リスト内の順序で並べる。

    リストに無いイベント名は、リストにある名前より後ろ（相互の順序は入力順のまま）。
    """
    rank = {name: i for i, name in enumerate(event_name_order)}
    unranked = len(rank)
    return sorted(
        projects,
        key=lambda p: (p.event_date or "", rank.get(p.event_name, unranked)),
    )


def merge_file(files: Sequence[ProjectFile], new_file: ProjectFile) -> list[ProjectFile]:
    """同名ファイルがあれば置き換え（位置は維持）、無ければ末尾に追加"""
    merged = list(files)
    for i, existing in enumerate(merged):
        if existing.name == new_file.name:
            merged[i] = new_file
            return merged
    merged.append(new_file)
    return merged


def remove_file(files: Sequence[ProjectFile], file_name: str) -> list[ProjectFile]:
    """名前が一致するエントリだけを取り除く"""
    return [f for f in files if f.name != file_name]


def new_comment_id() -> str:
    """時刻 + ランダム接尾辞による衝突しにくいコメント ID"""
    return f"comm_{int(time.time() * 1000)}_{uuid.uuid4().hex[:10]}"


def blob_path_for(project_id: str, file_name: str) -> str:
    """ストレージのキー規約: {projectId}/{fileName}"""
    return f"{project_id}/{file_name}"
