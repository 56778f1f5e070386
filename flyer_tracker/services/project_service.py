"""ProjectService - 案件データアクセス層

ProjectRepository（Firestore等）と BlobStorage（GCS等）を案件単位の操作にまとめる。
Ports（ABC）にのみ依存し、外部APIの実装詳細からは独立。

失敗時の方針:
- 一覧取得の失敗は FetchResult.error として呼び出し側に返す（画面全体のエラー表示に使う）
- 更新系の失敗はログに記録するだけで例外は送出しない。
  戻り値（成否 / 新しいID）は参考情報で、画面は次回の一覧取得で実際の状態を反映する。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from flyer_tracker.domain.errors import BlobStoreError, StoreError
from flyer_tracker.domain.models import (
    INITIAL_STATUS,
    Comment,
    FetchResult,
    NewProject,
    ProjectFile,
    ProjectPatch,
    ProjectStatus,
    UserRole,
    blob_path_for,
    new_comment_id,
    sort_projects,
)
from flyer_tracker.domain.ports import BlobStorage, ProjectRepository

logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectService:
    """
    案件の一覧・作成・更新・削除、ファイル添付、コメント追記を提供する。

    files / comments の変更は必ず Repository のアトミック操作を経由する。
    """

    def __init__(
        self,
        repository: ProjectRepository,
        storage: BlobStorage,
        event_name_order: Sequence[str] = (),
        clock: Callable[[], str] = _utcnow_iso,
    ) -> None:
        """
        Args:
            repository: projects テーブル
            storage: 添付ファイルのストレージ
            event_name_order: 同日開催の並び順に使うイベント名リスト
            clock: ISO8601 の現在時刻を返す関数（テスト用に差し替え可能）
        """
        self._repo = repository
        self._storage = storage
        self._event_name_order = tuple(event_name_order)
        self._clock = clock

    # ── 一覧 ─────────────────────────────────────────────────────────────────

    def list_projects(self) -> FetchResult:
        """全案件を開催日順で取得。毎回全件を返す"""
        try:
            projects = self._repo.list_all()
        except StoreError as e:
            logger.error("Error fetching projects: %s", e)
            return FetchResult(projects=None, error=f"データの取得に失敗しました: {e}")
        return FetchResult(projects=sort_projects(projects, self._event_name_order))

    # ── 行の作成・更新・削除 ─────────────────────────────────────────────────

    def create_project(self, data: NewProject) -> str | None:
        """
        ステータス「未定」、空の files/comments で案件を作成する。

        Returns:
            新しい案件ID。失敗した場合は None（ログのみ）
        """
        try:
            project_id = self._repo.insert(data, INITIAL_STATUS)
        except StoreError:
            logger.exception("Error adding project: event=%s", data.event_name)
            return None
        logger.info("Project created: id=%s", project_id)
        return project_id

    def update_project(self, project_id: str, patch: ProjectPatch) -> bool:
        """指定フィールドを上書き（後勝ち、楽観ロックなし）"""
        if patch.is_empty():
            return True
        try:
            self._repo.update(project_id, patch)
        except StoreError:
            logger.exception("Error updating project: id=%s", project_id)
            return False
        return True

    def update_status(self, project_id: str, status: ProjectStatus) -> bool:
        """ステータスのみを上書き。遷移の制約は無い"""
        return self.update_project(project_id, ProjectPatch(status=status))

    def delete_project(self, project_id: str) -> bool:
        """
        添付ファイルを削除してから案件の行を削除する。

        ファイル削除はベストエフォートで、失敗しても行の削除は続行する
        （孤立したファイルが残ることは許容）。
        """
        try:
            project = self._repo.get(project_id)
        except StoreError:
            logger.exception("Error looking up files before delete: id=%s", project_id)
            project = None

        for f in project.files if project else []:
            path = blob_path_for(project_id, f.name)
            try:
                self._storage.delete(path)
            except BlobStoreError as e:
                logger.warning("Orphaned file left in storage: path=%s (%s)", path, e)

        try:
            self._repo.delete(project_id)
        except StoreError:
            logger.exception("Error deleting project: id=%s", project_id)
            return False
        return True

    # ── ファイル ─────────────────────────────────────────────────────────────

    def add_file(
        self,
        project_id: str,
        file_name: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> bool:
        """
        ファイルをアップロード（同名は上書き）し、files に追加または置き換える。

        アップロードに失敗した場合は files を変更しない。
        """
        if not project_id or not file_name:
            return False

        path = blob_path_for(project_id, file_name)
        try:
            self._storage.upload(path, content, content_type)
        except BlobStoreError:
            logger.exception("Error uploading file: path=%s", path)
            return False

        new_file = ProjectFile(
            name=file_name,
            url=self._storage.public_url(path),
            uploaded_at=self._clock(),
        )
        try:
            self._repo.append_file(project_id, new_file)
        except StoreError:
            logger.exception("Error adding file to project: id=%s", project_id)
            return False
        return True

    def delete_file(self, project_id: str, file_name: str) -> bool:
        """ストレージから削除（失敗しても続行）し、files から同名エントリを除く"""
        if not project_id or not file_name:
            return False

        path = blob_path_for(project_id, file_name)
        try:
            self._storage.delete(path)
        except BlobStoreError as e:
            logger.warning("Error deleting file from storage: path=%s (%s)", path, e)

        try:
            self._repo.remove_file(project_id, file_name)
        except StoreError:
            logger.exception("Error deleting file from project: id=%s", project_id)
            return False
        return True

    # ── コメント ─────────────────────────────────────────────────────────────

    def add_comment(
        self, project_id: str, text: str, user_name: str, role: UserRole
    ) -> bool:
        """コメントを生成して comments に追記する"""
        comment = Comment(
            id=new_comment_id(),
            text=text,
            timestamp=self._clock(),
            user_name=user_name,
            role=role,
        )
        try:
            self._repo.append_comment(project_id, comment)
        except StoreError:
            logger.exception("Error adding comment: id=%s", project_id)
            return False
        return True
