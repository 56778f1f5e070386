"""Ports - 外部サービスとのインターフェース定義（ABC）

各Port（抽象基底クラス）はバックエンドとの契約を定義します。
実装クラス（Adapter）はこれらのABCを継承し、全ての抽象メソッドを実装する必要があります。

配列カラム（files / comments）の変更は ProjectRepository の専用メソッドに限定する。
クライアント側で読み込み→変更→全体書き戻しをすると、同時に追記した他クライアントの
変更が失われるため、実装はサーバー側でアトミックに処理すること。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from flyer_tracker.domain.models import (
    Comment,
    NewProject,
    Project,
    ProjectFile,
    ProjectPatch,
    ProjectStatus,
)


class ProjectRepository(ABC):
    """projects テーブルの永続化（Firestore等）。失敗時は StoreError を送出する"""

    @abstractmethod
    def list_all(self) -> list[Project]:
        """全案件を取得（並び順は保証しない）"""
        pass

    @abstractmethod
    def get(self, project_id: str) -> Project | None:
        """案件を取得。存在しない場合はNoneを返す"""
        pass

    @abstractmethod
    def insert(self, data: NewProject, status: ProjectStatus) -> str:
        """空の files/comments を持つ案件を作成。サーバーが採番したIDを返す"""
        pass

    @abstractmethod
    def update(self, project_id: str, patch: ProjectPatch) -> None:
        """設定済みフィールドのみを上書き（後勝ち）"""
        pass

    @abstractmethod
    def delete(self, project_id: str) -> None:
        """案件の行を削除"""
        pass

    @abstractmethod
    def append_file(self, project_id: str, new_file: ProjectFile) -> None:
        """files に追加。同名エントリがあれば置き換える（アトミック）"""
        pass

    @abstractmethod
    def remove_file(self, project_id: str, file_name: str) -> None:
        """files から名前が一致するエントリを削除（アトミック）"""
        pass

    @abstractmethod
    def append_comment(self, project_id: str, new_comment: Comment) -> None:
        """comments の末尾に追加（アトミック）"""
        pass


class BlobStorage(ABC):
    """バイナリファイルの保存（GCS等）。キーは {projectId}/{fileName}"""

    @abstractmethod
    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """ファイルをアップロード（既存は上書き）。ストレージパスを返す"""
        pass

    @abstractmethod
    def public_url(self, blob_path: str) -> str:
        """キーから公開URLを決定的に求める"""
        pass

    @abstractmethod
    def delete(self, blob_path: str) -> None:
        """ファイルを削除"""
        pass


class Subscription(ABC):
    """変更通知の購読ハンドル"""

    @abstractmethod
    def close(self) -> None:
        """購読を解除"""
        pass


class ChangeFeed(ABC):
    """projects テーブルの変更通知（insert/update/delete 全て）"""

    @abstractmethod
    def subscribe(self, on_change: Callable[[], None]) -> Subscription:
        """変更のたびに on_change を呼ぶ購読を開始。ペイロードは渡さない。失敗時は StoreError"""
        pass


class PreferenceStore(ABC):
    """端末ローカルに永続化するユーザー設定（表示名・ロール・コメント文字サイズ）"""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass
