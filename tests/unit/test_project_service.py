"""ProjectService のテスト

前半はモック（MagicMock(spec=ABC)）で呼び出し順序と失敗時の挙動を、
後半はインメモリ実装で一連の流れと同時追記を検証する。
"""

import threading
from unittest.mock import MagicMock

import pytest
import requests
from flyer_tracker.adapters.cloud_storage import GCSBlobStorage
from flyer_tracker.domain.errors import BlobStoreError, StoreError
from flyer_tracker.domain.models import (
    NewProject,
    Project,
    ProjectFile,
    ProjectPatch,
    ProjectStatus,
    UserRole,
    phase_of,
)
from flyer_tracker.services.project_service import ProjectService

_NOW = "2025-06-01T10:15:00+00:00"


@pytest.fixture
def mocked_service(mock_repo, mock_storage) -> ProjectService:
    return ProjectService(
        mock_repo, mock_storage, event_name_order=("A", "B"), clock=lambda: _NOW
    )


class TestListProjects:
    def test_returns_sorted_projects(self, mocked_service, mock_repo):
        """開催日 → 設定順で並べて返す"""
        mock_repo.list_all.return_value = [
            Project(id="2", event_name="B", event_date="2025-01-01"),
            Project(id="3", event_name="A", event_date="2025-02-01"),
            Project(id="1", event_name="A", event_date="2025-01-01"),
        ]
        result = mocked_service.list_projects()
        assert result.ok
        assert [p.id for p in result.projects] == ["1", "2", "3"]

    def test_store_error_becomes_error_value(self, mocked_service, mock_repo):
        """取得失敗は例外ではなく FetchResult.error で返る"""
        mock_repo.list_all.side_effect = StoreError("permission denied")
        result = mocked_service.list_projects()
        assert result.projects is None
        assert "permission denied" in result.error


class TestCreateProject:
    def test_inserts_with_initial_status(self, mocked_service, mock_repo):
        data = NewProject(event_name="Test Festival", event_date="2025-06-01")
        assert mocked_service.create_project(data) == "proj-new"
        mock_repo.insert.assert_called_once_with(data, ProjectStatus.UNDECIDED)

    def test_failure_is_logged_not_raised(self, mocked_service, mock_repo, caplog):
        mock_repo.insert.side_effect = StoreError("constraint violation")
        data = NewProject(event_name="x", event_date="2025-06-01")
        assert mocked_service.create_project(data) is None
        assert "Error adding project" in caplog.text


class TestUpdate:
    def test_update_status_is_a_status_only_patch(self, mocked_service, mock_repo):
        assert mocked_service.update_status("p1", ProjectStatus.DONE)
        mock_repo.update.assert_called_once_with(
            "p1", ProjectPatch(status=ProjectStatus.DONE)
        )

    def test_any_transition_is_allowed(self, mocked_service, mock_repo):
        """完了 → 未定 のような逆戻りも制約なく上書きできる"""
        assert mocked_service.update_status("p1", ProjectStatus.UNDECIDED)
        mock_repo.update.assert_called_once()

    def test_empty_patch_skips_store(self, mocked_service, mock_repo):
        assert mocked_service.update_project("p1", ProjectPatch())
        mock_repo.update.assert_not_called()

    def test_update_failure_returns_false(self, mocked_service, mock_repo):
        mock_repo.update.side_effect = StoreError("boom")
        assert mocked_service.update_project("p1", ProjectPatch(notes="x")) is False


class TestDeleteProject:
    def test_deletes_blobs_then_row(self, mocked_service, mock_repo, mock_storage):
        mock_repo.get.return_value = Project(
            id="p1",
            event_name="x",
            event_date="2025-01-01",
            files=[
                ProjectFile(name="a.pdf", url="", uploaded_at=""),
                ProjectFile(name="b.png", url="", uploaded_at=""),
            ],
        )
        assert mocked_service.delete_project("p1")
        assert [c.args[0] for c in mock_storage.delete.call_args_list] == [
            "p1/a.pdf",
            "p1/b.png",
        ]
        mock_repo.delete.assert_called_once_with("p1")

    def test_blob_failure_does_not_stop_row_delete(
        self, mocked_service, mock_repo, mock_storage
    ):
        """ファイル削除が失敗しても行は削除する"""
        mock_repo.get.return_value = Project(
            id="p1",
            event_name="x",
            event_date="",
            files=[ProjectFile(name="a.pdf", url="", uploaded_at="")],
        )
        mock_storage.delete.side_effect = BlobStoreError("gone")
        assert mocked_service.delete_project("p1")
        mock_repo.delete.assert_called_once_with("p1")

    def test_lookup_failure_still_deletes_row(self, mocked_service, mock_repo, mock_storage):
        mock_repo.get.side_effect = StoreError("unavailable")
        assert mocked_service.delete_project("p1")
        mock_storage.delete.assert_not_called()
        mock_repo.delete.assert_called_once_with("p1")


class TestAddFile:
    def test_uploads_then_appends_entry(self, mocked_service, mock_repo, mock_storage):
        assert mocked_service.add_file("p1", "a.pdf", b"%PDF", "application/pdf")
        mock_storage.upload.assert_called_once_with("p1/a.pdf", b"%PDF", "application/pdf")
        mock_repo.append_file.assert_called_once_with(
            "p1",
            ProjectFile(
                name="a.pdf",
                url="https://storage.example.com/b/p1/a.pdf",
                uploaded_at=_NOW,
            ),
        )

    def test_upload_failure_skips_array_mutation(
        self, mocked_service, mock_repo, mock_storage
    ):
        """アップロードに失敗したら files は変更しない"""
        mock_storage.upload.side_effect = BlobStoreError("quota")
        assert mocked_service.add_file("p1", "a.pdf", b"x") is False
        mock_repo.append_file.assert_not_called()

    def test_missing_name_is_rejected(self, mocked_service, mock_storage):
        assert mocked_service.add_file("p1", "", b"x") is False
        mock_storage.upload.assert_not_called()

    def test_connection_error_from_real_adapter_returns_false(self, memory_repo):
        """GCS アダプタの接続エラーも例外にせず False を返す"""
        gcs = MagicMock()
        gcs.bucket.return_value.blob.return_value.upload_from_string.side_effect = (
            requests.exceptions.ConnectionError("connection reset")
        )
        svc = ProjectService(memory_repo, GCSBlobStorage("flyer-uploads", client=gcs))
        project_id = svc.create_project(NewProject(event_name="x", event_date="2025-06-01"))

        assert svc.add_file(project_id, "a.pdf", b"x") is False
        assert memory_repo.get(project_id).files == []


class TestDeleteFile:
    def test_storage_failure_still_removes_entry(
        self, mocked_service, mock_repo, mock_storage
    ):
        mock_storage.delete.side_effect = BlobStoreError("missing")
        assert mocked_service.delete_file("p1", "a.pdf")
        mock_repo.remove_file.assert_called_once_with("p1", "a.pdf")

    def test_store_failure_returns_false(self, mocked_service, mock_repo):
        mock_repo.remove_file.side_effect = StoreError("boom")
        assert mocked_service.delete_file("p1", "a.pdf") is False


class TestAddComment:
    def test_builds_comment(self, mocked_service, mock_repo):
        assert mocked_service.add_comment("p1", "確認しました", "田中", UserRole.COMPANY)
        _, comment = mock_repo.append_comment.call_args.args
        assert comment.text == "確認しました"
        assert comment.user_name == "田中"
        assert comment.role is UserRole.COMPANY
        assert comment.timestamp == _NOW
        assert comment.id.startswith("comm_")

    def test_failure_returns_false(self, mocked_service, mock_repo):
        mock_repo.append_comment.side_effect = StoreError("boom")
        assert mocked_service.add_comment("p1", "x", "y", UserRole.AGENCY) is False


# ── インメモリ実装による一連の流れ ─────────────────────────────────────────────


def _find(service: ProjectService, project_id: str) -> Project | None:
    for p in service.list_projects().projects:
        if p.id == project_id:
            return p
    return None


class TestScenarios:
    def test_create_update_status_delete(self, service, memory_storage):
        """作成 → ステータス完了 → 削除 の一連の流れ"""
        project_id = service.create_project(
            NewProject(event_name="Test Festival", event_date="2025-06-01")
        )
        created = _find(service, project_id)
        assert created.status is ProjectStatus.UNDECIDED
        assert created.files == []
        assert created.comments == []

        service.add_file(project_id, "flyer.pdf", b"%PDF")
        assert service.update_status(project_id, ProjectStatus.DONE)
        assert phase_of(_find(service, project_id).status) == 7

        assert service.delete_project(project_id)
        assert _find(service, project_id) is None
        assert not any(k.startswith(f"{project_id}/") for k in memory_storage.objects)

    def test_reupload_same_name_replaces_entry(self, service, memory_storage):
        """同名の再アップロードは files の件数を増やさない"""
        project_id = service.create_project(
            NewProject(event_name="x", event_date="2025-06-01")
        )
        service.add_file(project_id, "a.pdf", b"v1")
        service.add_file(project_id, "a.pdf", b"v2")

        project = _find(service, project_id)
        assert [f.name for f in project.files] == ["a.pdf"]
        assert memory_storage.objects[f"{project_id}/a.pdf"] == b"v2"

    def test_delete_file_by_name(self, service):
        project_id = service.create_project(
            NewProject(event_name="x", event_date="2025-06-01")
        )
        service.add_file(project_id, "a.pdf", b"a")
        service.add_file(project_id, "b.pdf", b"b")

        service.delete_file(project_id, "a.pdf")
        assert [f.name for f in _find(service, project_id).files] == ["b.pdf"]

    def test_concurrent_comments_are_not_lost(self, service):
        """同時に2件追記しても両方残る"""
        project_id = service.create_project(
            NewProject(event_name="x", event_date="2025-06-01")
        )
        before = len(_find(service, project_id).comments)
        barrier = threading.Barrier(2)

        def _post(text: str, role: UserRole) -> None:
            barrier.wait()
            service.add_comment(project_id, text, "user", role)

        threads = [
            threading.Thread(target=_post, args=("依頼側です", UserRole.COMPANY)),
            threading.Thread(target=_post, args=("制作側です", UserRole.AGENCY)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        comments = _find(service, project_id).comments
        assert len(comments) == before + 2
        assert {c.text for c in comments} == {"依頼側です", "制作側です"}
