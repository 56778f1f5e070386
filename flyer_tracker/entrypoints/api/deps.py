"""FastAPI 依存性注入

Firestore / GCS クライアントとサービスの初期化を担当する。
各ルートは Depends() でこのモジュールの関数を呼び出してインスタンスを受け取る。

案件一覧（LiveProjectList）はプロセス内で1つだけ持ち、
アプリ起動時に購読を開始、終了時に解除する。
"""

from __future__ import annotations

import logging

from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from flyer_tracker.adapters.cloud_storage import GCSBlobStorage
from flyer_tracker.adapters.csv_renderer import ProjectCsvRenderer
from flyer_tracker.adapters.firestore_repository import (
    FirestoreChangeFeed,
    FirestoreProjectRepository,
)
from flyer_tracker.config import AppConfig
from flyer_tracker.domain.errors import FlyerTrackerError
from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.services.project_service import ProjectService

logger = logging.getLogger(__name__)

# ── 設定（シングルトン） ──────────────────────────────────────────────────────

_config: AppConfig | None = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


# ── Firestore クライアント（シングルトン） ──────────────────────────────────────

_firestore_client: firestore.Client | None = None


def _get_firestore_client() -> firestore.Client:
    global _firestore_client
    if _firestore_client is None:
        project_id = get_config().project_id or None
        _firestore_client = firestore.Client(project=project_id)
        logger.info("Firestore client initialized project=%s", project_id)
    return _firestore_client


# ── リポジトリ・サービス依存 ───────────────────────────────────────────────────


def get_project_repo() -> FirestoreProjectRepository:
    """ProjectRepository を返す依存関数"""
    return FirestoreProjectRepository(
        _get_firestore_client(), collection=get_config().collection
    )


def get_blob_storage() -> GCSBlobStorage:
    """BlobStorage を返す依存関数"""
    return GCSBlobStorage(bucket_name=get_config().bucket_name)


def get_project_service() -> ProjectService:
    """ProjectService を返す依存関数"""
    return ProjectService(
        repository=get_project_repo(),
        storage=get_blob_storage(),
        event_name_order=get_config().event_names,
    )


def get_event_names() -> tuple[str, ...]:
    """並び順・フォーム選択肢に使うイベント名リスト"""
    return get_config().event_names


def get_csv_renderer() -> ProjectCsvRenderer:
    return ProjectCsvRenderer()


# ── 案件一覧（プロセス内で1つ） ───────────────────────────────────────────────

_live_projects: LiveProjectList | None = None


def get_live_projects() -> LiveProjectList:
    """
    LiveProjectList を返す依存関数。

    設定や認証情報の不備で組み立てられない場合は、起動を止めずに
    エラー状態の一覧を返す（各画面は診断画面になる）。
    """
    global _live_projects
    if _live_projects is None:
        try:
            _live_projects = LiveProjectList(
                service=get_project_service(),
                feed=FirestoreChangeFeed(
                    _get_firestore_client(), collection=get_config().collection
                ),
            )
        except (FlyerTrackerError, auth_exceptions.GoogleAuthError) as e:
            logger.exception("Failed to initialize project list")
            _live_projects = LiveProjectList.unavailable(f"初期化に失敗しました: {e}")
    return _live_projects
