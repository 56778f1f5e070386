"""共通テストフィクスチャ

全テストから利用可能なモックオブジェクト・インメモリ実装とサンプルデータを提供。

モックの作成:
- MagicMock(spec=ABC) でABCのメソッドシグネチャを保持
- 配列操作の原子性や一連の流れを検証するテストはインメモリ実装を使う
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from flyer_tracker.domain.errors import BlobStoreError, StoreError
from flyer_tracker.domain.models import (
    Comment,
    NewProject,
    Project,
    ProjectFile,
    ProjectPatch,
    ProjectStatus,
    UserRole,
    merge_file,
    remove_file,
)
from flyer_tracker.domain.ports import (
    BlobStorage,
    ChangeFeed,
    ProjectRepository,
    Subscription,
)
from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.services.project_service import ProjectService

EVENT_NAMES = ("春まつり", "商店街セール", "夏まつり")
FIXED_NOW = "2025-06-01T10:15:00+00:00"


# ========== インメモリ実装 ==========


class InMemoryProjectRepository(ProjectRepository):
    """
    ProjectRepository のインメモリ実装。

    append_file / remove_file / append_comment はロック内で行い、
    サーバー側のアトミックな配列操作を再現する。
    """

    def __init__(self) -> None:
        self._rows: dict[str, Project] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def list_all(self) -> list[Project]:
        with self._lock:
            return list(self._rows.values())

    def get(self, project_id: str) -> Project | None:
        with self._lock:
            return self._rows.get(project_id)

    def insert(self, data: NewProject, status: ProjectStatus) -> str:
        with self._lock:
            project_id = f"proj{next(self._ids)}"
            self._rows[project_id] = Project(
                id=project_id,
                status=status,
                created_at=FIXED_NOW,
                files=[],
                comments=[],
                **vars(data),
            )
            return project_id

    def update(self, project_id: str, patch: ProjectPatch) -> None:
        with self._lock:
            row = self._require(project_id)
            self._rows[project_id] = replace(row, **patch.changes())

    def delete(self, project_id: str) -> None:
        with self._lock:
            self._rows.pop(project_id, None)

    def append_file(self, project_id: str, new_file: ProjectFile) -> None:
        with self._lock:
            row = self._require(project_id)
            self._rows[project_id] = replace(row, files=merge_file(row.files, new_file))

    def remove_file(self, project_id: str, file_name: str) -> None:
        with self._lock:
            row = self._require(project_id)
            self._rows[project_id] = replace(row, files=remove_file(row.files, file_name))

    def append_comment(self, project_id: str, new_comment: Comment) -> None:
        with self._lock:
            row = self._require(project_id)
            self._rows[project_id] = replace(
                row, comments=[*row.comments, new_comment]
            )

    def _require(self, project_id: str) -> Project:
        row = self._rows.get(project_id)
        if row is None:
            raise StoreError(f"Project not found: {project_id}")
        return row


class InMemoryBlobStorage(BlobStorage):
    """BlobStorage のインメモリ実装"""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}

    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        self.objects[blob_path] = content
        return blob_path

    def public_url(self, blob_path: str) -> str:
        return f"https://storage.example.com/flyer-uploads/{blob_path}"

    def delete(self, blob_path: str) -> None:
        if blob_path not in self.objects:
            raise BlobStoreError(f"not found: {blob_path}")
        del self.objects[blob_path]


class _ManualSubscription(Subscription):
    def __init__(self, feed: ManualChangeFeed) -> None:
        self._feed = feed

    def close(self) -> None:
        self._feed.closed += 1
        self._feed.callbacks.clear()


class ManualChangeFeed(ChangeFeed):
    """テストから emit() で変更通知を発火できる ChangeFeed"""

    def __init__(self) -> None:
        self.callbacks: list[Callable[[], None]] = []
        self.subscribed = 0
        self.closed = 0

    def subscribe(self, on_change: Callable[[], None]) -> Subscription:
        self.subscribed += 1
        self.callbacks.append(on_change)
        return _ManualSubscription(self)

    def emit(self) -> None:
        for callback in list(self.callbacks):
            callback()


# ========== サンプルデータ ==========


@pytest.fixture
def sample_file() -> ProjectFile:
    """サンプル添付ファイル"""
    return ProjectFile(
        name="a.pdf",
        url="https://storage.example.com/flyer-uploads/proj1/a.pdf",
        uploaded_at=FIXED_NOW,
    )


@pytest.fixture
def sample_comment() -> Comment:
    """サンプルコメント"""
    return Comment(
        id="comm_1717236900000_abc123",
        text="初稿をアップしました。ご確認ください。",
        timestamp=FIXED_NOW,
        user_name="佐藤",
        role=UserRole.AGENCY,
    )


@pytest.fixture
def sample_project(sample_file, sample_comment) -> Project:
    """サンプル案件"""
    return Project(
        id="proj1",
        event_name="夏まつり",
        event_date="2025-08-01",
        event_time="18:00",
        event_location="中央公園",
        print_count=500,
        delivery_hope_date="2025-07-15",
        notes="カラー両面",
        is_urgent=True,
        status=ProjectStatus.IN_PRODUCTION,
        created_at="2025-05-01T09:00:00+00:00",
        files=[sample_file],
        comments=[sample_comment],
    )


# ========== モック・インメモリフィクスチャ ==========


@pytest.fixture
def mock_repo() -> MagicMock:
    """ProjectRepository のモック"""
    mock = MagicMock(spec=ProjectRepository)
    mock.list_all.return_value = []
    mock.insert.return_value = "proj-new"
    return mock


@pytest.fixture
def mock_storage() -> MagicMock:
    """BlobStorage のモック"""
    mock = MagicMock(spec=BlobStorage)
    mock.upload.side_effect = lambda path, content, content_type: path
    mock.public_url.side_effect = lambda path: f"https://storage.example.com/b/{path}"
    return mock


@pytest.fixture
def memory_repo() -> InMemoryProjectRepository:
    return InMemoryProjectRepository()


@pytest.fixture
def memory_storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()


@pytest.fixture
def change_feed() -> ManualChangeFeed:
    return ManualChangeFeed()


@pytest.fixture
def service(memory_repo, memory_storage) -> ProjectService:
    """インメモリ実装で組み立てた ProjectService"""
    return ProjectService(
        memory_repo, memory_storage, event_name_order=EVENT_NAMES, clock=lambda: FIXED_NOW
    )


@pytest.fixture
def live(service, change_feed) -> LiveProjectList:
    """インメモリ実装で組み立てた LiveProjectList（未開始）"""
    return LiveProjectList(service, change_feed)
