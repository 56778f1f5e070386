"""Firestore Repository Adapter

ProjectRepository と ChangeFeed の Firestore 実装。

Firestore コレクション構造:
  projects/{projectId}     ← 案件（フィールド名は camelCase）
    files:    [{name, url, uploadedAt}]
    comments: [{id, text, timestamp, userName, role}]

配列フィールドの変更はサーバー側でアトミックに行う:
  - append_file / remove_file: トランザクション（競合時は Firestore が自動リトライ）
  - append_comment: ArrayUnion
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import requests
from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from flyer_tracker.domain.errors import StoreError
from flyer_tracker.domain.models import (
    INITIAL_STATUS,
    Comment,
    NewProject,
    Project,
    ProjectFile,
    ProjectPatch,
    ProjectStatus,
    UserRole,
    merge_file,
    parse_status,
    remove_file,
)
from flyer_tracker.domain.ports import (
    ChangeFeed,
    ProjectRepository,
    Subscription,
)

logger = logging.getLogger(__name__)

# gRPC のエラーは GoogleAPIError になるが、認証情報の更新失敗などはそれ以外で届く
_BACKEND_ERRORS = (
    gexc.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    requests.RequestException,
)

_PROJECTS = "projects"

# Python 属性名 → Firestore フィールド名
_FIELD_NAMES = {
    "event_name": "eventName",
    "event_date": "eventDate",
    "event_time": "eventTime",
    "event_location": "eventLocation",
    "print_count": "printCount",
    "delivery_hope_date": "deliveryHopeDate",
    "number_of_recruits": "numberOfRecruits",
    "notes": "notes",
    "is_urgent": "isUrgent",
    "flyer_not_needed": "flyerNotNeeded",
    "status": "status",
}


class FirestoreProjectRepository(ProjectRepository):
    """
    Firestore を使った ProjectRepository 実装。

    Google API のエラーは全て StoreError に包んで送出する。
    """

    def __init__(self, db: firestore.Client, collection: str = _PROJECTS) -> None:
        """
        Args:
            db: 初期化済みの Firestore クライアント
            collection: コレクション名（デフォルト: projects）
        """
        self._db = db
        self._collection = collection

    def _col(self):
        return self._db.collection(self._collection)

    # ── 行の CRUD ───────────────────────────────────────────────────────────

    def list_all(self) -> list[Project]:
        """全案件を取得"""
        try:
            snaps = list(self._col().stream())
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to list projects: {e}") from e
        return [project_from_dict(snap.id, snap.to_dict() or {}) for snap in snaps]

    def get(self, project_id: str) -> Project | None:
        """案件を取得。存在しない場合は None を返す"""
        try:
            snap = self._col().document(project_id).get()
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to get project {project_id}: {e}") from e
        if not snap.exists:
            return None
        return project_from_dict(project_id, snap.to_dict() or {})

    def insert(self, data: NewProject, status: ProjectStatus) -> str:
        """案件を作成。自動採番したIDを返す"""
        ref = self._col().document()
        doc = {
            "eventName": data.event_name,
            "eventDate": data.event_date,
            "eventTime": data.event_time,
            "eventLocation": data.event_location,
            "printCount": data.print_count,
            "deliveryHopeDate": data.delivery_hope_date,
            "numberOfRecruits": data.number_of_recruits,
            "notes": data.notes,
            "isUrgent": data.is_urgent,
            "flyerNotNeeded": data.flyer_not_needed,
            "status": status.value,
            "createdAt": firestore.SERVER_TIMESTAMP,
            "files": [],
            "comments": [],
        }
        try:
            ref.create(doc)
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to insert project: {e}") from e
        logger.info("Inserted project: id=%s, event=%s", ref.id, data.event_name)
        return ref.id

    def update(self, project_id: str, patch: ProjectPatch) -> None:
        """設定済みフィールドのみを上書き"""
        update = {
            _FIELD_NAMES[name]: value.value if isinstance(value, ProjectStatus) else value
            for name, value in patch.changes().items()
        }
        if not update:
            return
        try:
            self._col().document(project_id).update(update)
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to update project {project_id}: {e}") from e
        logger.info("Updated project: id=%s, fields=%s", project_id, sorted(update))

    def delete(self, project_id: str) -> None:
        """案件の行を削除"""
        try:
            self._col().document(project_id).delete()
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to delete project {project_id}: {e}") from e
        logger.info("Deleted project: id=%s", project_id)

    # ── 配列フィールドのアトミック操作 ──────────────────────────────────────

    def append_file(self, project_id: str, new_file: ProjectFile) -> None:
        """files に追加、同名があれば置き換え（トランザクション）"""
        self._mutate_files(
            project_id, lambda files: merge_file(files, new_file), "append_file"
        )
        logger.info("Added file: id=%s, name=%s", project_id, new_file.name)

    def remove_file(self, project_id: str, file_name: str) -> None:
        """files から名前が一致するエントリを削除（トランザクション）"""
        self._mutate_files(
            project_id, lambda files: remove_file(files, file_name), "remove_file"
        )
        logger.info("Removed file: id=%s, name=%s", project_id, file_name)

    def append_comment(self, project_id: str, new_comment: Comment) -> None:
        """comments に追加（ArrayUnion）"""
        try:
            self._col().document(project_id).update(
                {"comments": firestore.ArrayUnion([comment_to_dict(new_comment)])}
            )
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to append comment to {project_id}: {e}") from e
        logger.info("Added comment: id=%s, comment_id=%s", project_id, new_comment.id)

    def _mutate_files(
        self,
        project_id: str,
        mutate: Callable[[list[ProjectFile]], list[ProjectFile]],
        op: str,
    ) -> None:
        ref = self._col().document(project_id)

        @firestore.transactional
        def _run(transaction: firestore.Transaction) -> None:
            snap = ref.get(transaction=transaction)
            if not snap.exists:
                raise StoreError(f"Project not found: {project_id}")
            data = snap.to_dict() or {}
            files = [file_from_dict(f) for f in data.get("files") or []]
            transaction.update(
                ref, {"files": [file_to_dict(f) for f in mutate(files)]}
            )

        try:
            _run(self._db.transaction())
        except _BACKEND_ERRORS as e:
            raise StoreError(f"{op} failed for {project_id}: {e}") from e


class _FirestoreSubscription(Subscription):
    def __init__(self, watch) -> None:
        self._watch = watch

    def close(self) -> None:
        self._watch.unsubscribe()


class FirestoreChangeFeed(ChangeFeed):
    """
    on_snapshot による projects コレクションの変更通知。

    Firestore は購読開始直後に初回スナップショットも通知する。
    コールバックは Firestore の Watch スレッド上で呼ばれる。
    """

    def __init__(self, db: firestore.Client, collection: str = _PROJECTS) -> None:
        self._db = db
        self._collection = collection

    def subscribe(self, on_change: Callable[[], None]) -> Subscription:
        def _on_snapshot(col_snapshot, changes, read_time) -> None:
            logger.debug("projects changed: %d change(s)", len(changes))
            on_change()

        try:
            watch = self._db.collection(self._collection).on_snapshot(_on_snapshot)
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to subscribe to {self._collection}: {e}") from e
        logger.info("Subscribed to changes: collection=%s", self._collection)
        return _FirestoreSubscription(watch)


# ── 変換ヘルパー ──────────────────────────────────────────────────────────────


def _iso(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value) if value else ""


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def file_to_dict(f: ProjectFile) -> dict:
    return {"name": f.name, "url": f.url, "uploadedAt": f.uploaded_at}


def file_from_dict(d: dict) -> ProjectFile:
    return ProjectFile(
        name=d.get("name") or "",
        url=d.get("url") or "",
        uploaded_at=_iso(d.get("uploadedAt")),
    )


def comment_to_dict(c: Comment) -> dict:
    return {
        "id": c.id,
        "text": c.text,
        "timestamp": c.timestamp,
        "userName": c.user_name,
        "role": c.role.value,
    }


def comment_from_dict(d: dict) -> Comment:
    try:
        role = UserRole(d.get("role"))
    except ValueError:
        logger.warning("Unknown comment role: %r", d.get("role"))
        role = UserRole.COMPANY
    return Comment(
        id=d.get("id") or "",
        text=d.get("text") or "",
        timestamp=_iso(d.get("timestamp")),
        user_name=d.get("userName") or "",
        role=role,
    )


def project_from_dict(project_id: str, data: dict) -> Project:
    """Firestore のドキュメントを Project に変換。None や欠損は既定値にフォールバック"""
    status = parse_status(data.get("status"))
    if status is None:
        logger.warning(
            "Unknown status: id=%s, status=%r", project_id, data.get("status")
        )
        status = INITIAL_STATUS
    return Project(
        id=project_id,
        event_name=data.get("eventName") or "",
        event_date=data.get("eventDate") or "",
        event_time=data.get("eventTime") or "",
        event_location=data.get("eventLocation") or "",
        print_count=_int_or_none(data.get("printCount")),
        delivery_hope_date=data.get("deliveryHopeDate") or "",
        number_of_recruits=_int_or_none(data.get("numberOfRecruits")),
        notes=data.get("notes") or "",
        is_urgent=bool(data.get("isUrgent", False)),
        flyer_not_needed=bool(data.get("flyerNotNeeded", False)),
        status=status,
        created_at=_iso(data.get("createdAt")),
        files=[file_from_dict(f) for f in data.get("files") or []],
        comments=[comment_from_dict(c) for c in data.get("comments") or []],
    )
